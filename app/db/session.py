"""
app/db/session.py — Connection pool, query helper and session factory.

The pool is an explicitly constructed resource with an open()/close()
lifecycle. The API opens one in its lifespan and stores it on app.state;
scripts construct their own.

Usage:
    from app.db.session import Database, get_db

    # As a FastAPI dependency:
    def my_route(db: Session = Depends(get_db)):
        ...

    # In scripts:
    with Database() as database:
        rows = database.query("SELECT * FROM companies WHERE industry = :industry",
                              {"industry": "Fintech"})
        database.transaction(lambda db: db.add(company))
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Generator, Optional, TypeVar

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _engine_options(url: str) -> dict[str, Any]:
    """Pool and driver options for the given URL's dialect."""
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            # One shared connection so every session sees the same in-memory DB
            options["poolclass"] = StaticPool
        return options

    connect_args: dict[str, Any] = {"connect_timeout": settings.db_connect_timeout}
    if backend == "postgresql":
        connect_args["sslmode"] = settings.db_sslmode

    return {
        "pool_pre_ping": True,                       # reconnect on stale connections
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,    # pool_size + overflow = hard cap
        "pool_recycle": settings.db_pool_recycle,
        "connect_args": connect_args,
        "echo": False,
    }


class Database:
    """
    A pooled database handle.

    query()       — one autocommitted statement, returns rows as dicts
    transaction() — runs a callback inside BEGIN/COMMIT, ROLLBACK on error
    session()     — ORM session context manager with the same semantics

    Failed statements surface immediately; nothing is retried.
    """

    def __init__(self, url: Optional[str] = None, log_queries: Optional[bool] = None):
        self.url = url or settings.database_url
        self.log_queries = settings.is_development if log_queries is None else log_queries
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def open(self) -> "Database":
        if self.engine is not None:
            return self
        self.engine = create_engine(self.url, **_engine_options(self.url))
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database pool opened (%s).", make_url(self.url).get_backend_name())
        return self

    def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Database pool closed.")

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Database is not open; call open() first.")
        return self.engine

    # ── Queries ───────────────────────────────────────────────────────────────

    def query(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """
        Execute a single parameterized statement (":name" placeholders).

        Returns the result rows as dicts; statements that return no rows
        give an empty list.
        """
        engine = self._require_engine()
        started = time.perf_counter()

        with engine.begin() as conn:
            result = conn.execute(text(sql), params or {})
            if result.returns_rows:
                rows = [dict(row) for row in result.mappings()]
                row_count = len(rows)
            else:
                rows = []
                row_count = result.rowcount

        if self.log_queries:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                "Executed query %s",
                {"text": sql, "duration": round(duration_ms, 2), "rows": row_count},
            )
        return rows

    def execute(self, statement: str) -> None:
        """Run one raw statement verbatim (DDL, dollar-quoted bodies, no binds)."""
        engine = self._require_engine()
        with engine.begin() as conn:
            conn.exec_driver_sql(statement)

    def test_connection(self) -> datetime:
        """Round-trip to the server and return its current timestamp."""
        rows = self.query("SELECT CURRENT_TIMESTAMP AS now")
        return rows[0]["now"]

    # ── Sessions / transactions ───────────────────────────────────────────────

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session scope: commit on success, rollback on any exception, always close."""
        self._require_engine()
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def transaction(self, callback: Callable[[Session], T]) -> T:
        """Run callback(session) atomically and return its result."""
        with self.session() as db:
            return callback(db)


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a DB session from the app's Database."""
    database: Database = request.app.state.database
    with database.session() as db:
        yield db


@contextmanager
def get_session(url: Optional[str] = None) -> Generator[Session, None, None]:
    """
    Script helper: open a Database, yield one session, close the pool.

    Usage:
        with get_session() as db:
            repo.create_company(db, name="Acme")
    """
    with Database(url) as database:
        with database.session() as db:
            yield db
