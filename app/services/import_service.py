"""
app/services/import_service.py — Bulk import of companies and candidates.

Each record is processed independently inside its own SAVEPOINT: a record
that fails validation or hits a database error is reported in `failed` and
the rest of the batch carries on.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import ActivityType
from app.db.repository import (
    create_company,
    find_existing_company,
    log_activity,
    update_company,
    upsert_candidate,
)
from app.ingestion.normalizer import ImportValidationError, normalize_candidate, normalize_company

logger = logging.getLogger(__name__)


@dataclass
class ImportResults:
    success: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.success) + len(self.failed)

    @property
    def message(self) -> str:
        return f"Import completed: {len(self.success)} successful, {len(self.failed)} failed"

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "total": self.total}


def _database_error(exc: SQLAlchemyError) -> str:
    detail = str(getattr(exc, "orig", None) or exc)
    return detail.strip().splitlines()[0] if detail.strip() else "Database error"


def import_companies(db: Session, records: list[dict[str, Any]]) -> ImportResults:
    """
    Lookup-or-insert each company record.

    Existing companies (same domain, else same name ignoring case) get their
    non-null fields updated; new ones are inserted and an activity is logged.
    """
    results = ImportResults()

    for raw in records:
        try:
            record = normalize_company(raw)
            with db.begin_nested():
                company = find_existing_company(db, record.domain, record.name)
                if company:
                    update_company(db, company, record.column_values())
                    action = "updated"
                else:
                    company = create_company(db, **record.column_values())
                    log_activity(
                        db,
                        subject_type="company",
                        subject_id=company.id,
                        type=ActivityType.NOTE,
                        title="Company imported",
                        description=f"{company.name} was added via bulk import",
                        payload={"source": "import"},
                    )
                    action = "created"
            results.success.append({"id": str(company.id), "name": company.name, "action": action})
        except ImportValidationError as exc:
            results.failed.append({"data": raw, "error": str(exc)})
        except SQLAlchemyError as exc:
            logger.warning("Company import row failed: %s", exc)
            results.failed.append({"data": raw, "error": _database_error(exc)})

    logger.info(results.message)
    return results


def import_candidates(db: Session, records: list[dict[str, Any]]) -> ImportResults:
    """Upsert each candidate record by email (non-null fields overwrite)."""
    results = ImportResults()

    for raw in records:
        try:
            record = normalize_candidate(raw)
            with db.begin_nested():
                candidate, created = upsert_candidate(db, record.column_values())
                if created:
                    log_activity(
                        db,
                        subject_type="candidate",
                        subject_id=candidate.id,
                        type=ActivityType.NOTE,
                        title="Candidate imported",
                        description=f"{record.first_name} {record.last_name} was added via bulk import",
                        payload={"source": record.source},
                    )
            results.success.append({
                "id": str(candidate.id),
                "email": candidate.email,
                "action": "created" if created else "updated",
            })
        except ImportValidationError as exc:
            results.failed.append({"data": raw, "error": str(exc)})
        except SQLAlchemyError as exc:
            logger.warning("Candidate import row failed: %s", exc)
            results.failed.append({"data": raw, "error": _database_error(exc)})

    logger.info(results.message)
    return results
