"""
app/db/schema.py — Applying and resetting the PostgreSQL schema.

schema.sql is the single source of DDL. Two entry points use it:

  apply_schema(database)   — statement by statement, "already exists" tolerated
  reset_schema(database)   — drop every table and type, then apply strictly
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from app.db.session import Database

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Reverse dependency order: children before parents
DROP_TABLES = [
    "screening_responses",
    "screening_questions",
    "email_templates",
    "sequence_runs",
    "sequences",
    "activities",
    "submissions",
    "candidates",
    "jobs",
    "deals",
    "contacts",
    "companies",
    "icps",
]

DROP_TYPES = [
    "deal_stage",
    "job_status",
    "submission_status",
    "activity_type",
    "sequence_channel",
    "sequence_run_state",
    "partner_status",
]

_DOLLAR_TAG = re.compile(r"\$[A-Za-z_][A-Za-z0-9_]*\$|\$\$")


@dataclass
class SchemaResult:
    executed: int = 0
    skipped: list[str] = field(default_factory=list)


def load_schema_sql(path: Path = SCHEMA_PATH) -> str:
    return path.read_text(encoding="utf-8")


def split_sql_statements(sql: str) -> list[str]:
    """
    Split a DDL script on top-level semicolons.

    Semicolons inside '--' comments, single-quoted literals and
    dollar-quoted bodies ($$ ... $$, $tag$ ... $tag$) do not split.
    """
    statements: list[str] = []
    buf: list[str] = []
    i, n = 0, len(sql)
    in_quote = False
    dollar_tag: str | None = None

    while i < n:
        ch = sql[i]

        if dollar_tag is not None:
            if sql.startswith(dollar_tag, i):
                buf.append(dollar_tag)
                i += len(dollar_tag)
                dollar_tag = None
            else:
                buf.append(ch)
                i += 1
            continue

        if in_quote:
            buf.append(ch)
            if ch == "'":
                in_quote = False     # '' re-enters on the next char
            i += 1
            continue

        if sql.startswith("--", i):
            newline = sql.find("\n", i)
            i = n if newline == -1 else newline
            continue

        if ch == "'":
            in_quote = True
        elif ch == "$":
            match = _DOLLAR_TAG.match(sql, i)
            if match:
                dollar_tag = match.group(0)
                buf.append(dollar_tag)
                i = match.end()
                continue
        elif ch == ";":
            statement = "".join(buf).strip()
            if statement:
                statements.append(statement)
            buf = []
            i += 1
            continue

        buf.append(ch)
        i += 1

    tail = "".join(buf).strip()
    if tail:
        statements.append(tail)
    return statements


def _summarize(statement: str) -> str:
    return " ".join(statement.split())[:80]


def apply_schema(database: Database, tolerate_existing: bool = True, sql: str | None = None) -> SchemaResult:
    """
    Execute schema.sql one statement at a time.

    With tolerate_existing, statements failing because the object
    "already exists" are skipped so re-running on an initialised database
    succeeds. Any other error is re-raised and aborts the run.
    """
    statements = split_sql_statements(sql if sql is not None else load_schema_sql())
    result = SchemaResult()

    logger.info("Applying schema: %d statements.", len(statements))
    for statement in statements:
        try:
            database.execute(statement)
            result.executed += 1
        except Exception as exc:
            if tolerate_existing and "already exists" in str(exc):
                logger.info("Skipping (already exists): %s", _summarize(statement))
                result.skipped.append(statement)
                continue
            logger.error("Schema statement failed: %s", _summarize(statement))
            raise

    logger.info(
        "Schema applied: %d executed, %d skipped.",
        result.executed, len(result.skipped),
    )
    return result


def drop_schema(database: Database) -> None:
    """Drop every CRM table and enum type. Destructive; dev/reset use only."""
    for table in DROP_TABLES:
        database.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
    for type_name in DROP_TYPES:
        database.execute(f"DROP TYPE IF EXISTS {type_name} CASCADE")
    logger.info("Dropped %d tables and %d types.", len(DROP_TABLES), len(DROP_TYPES))


def reset_schema(database: Database) -> SchemaResult:
    """Drop everything, then recreate the schema with no tolerance for errors."""
    drop_schema(database)
    return apply_schema(database, tolerate_existing=False)
