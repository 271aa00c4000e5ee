"""
app/services/intake_service.py — Applications arriving from the embeddable widget.

An intake upserts the candidate by email (an existing candidate only has
phone, title and LinkedIn URL refreshed), places them into the job's
pipeline when a job is given and they are not already in it, and logs an
activity.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.db.models import ActivityType, Candidate, SubmissionStatus
from app.db.repository import (
    create_candidate,
    create_submission,
    find_submission,
    get_candidate_by_email,
    get_job,
    log_activity,
    update_candidate,
)
from app.ingestion.normalizer import ImportValidationError, split_full_name

logger = logging.getLogger(__name__)

# Widget experience buckets → representative years
EXPERIENCE_BUCKETS = {"0-2": 1, "3-5": 4, "6-10": 8, "10+": 12}

# Columns a repeat intake may overwrite on an existing candidate
REFRESHED_FIELDS = ("phone", "current_title", "linkedin_url")


@dataclass
class IntakeRequest:
    name: str
    email: str
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    current_role: Optional[str] = None
    experience: Optional[str] = None
    message: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    source: str = "widget"


@dataclass
class IntakeResult:
    candidate: Candidate
    created: bool
    submission_created: bool


def years_from_bucket(bucket: Optional[str]) -> Optional[int]:
    return EXPERIENCE_BUCKETS.get((bucket or "").strip())


def process_intake(db: Session, intake: IntakeRequest) -> IntakeResult:
    if not intake.email or not intake.email.strip():
        raise ImportValidationError("Email is required")

    first_name, last_name = split_full_name(intake.name)
    values = {
        "email": intake.email.strip().lower(),
        "first_name": first_name or None,
        "last_name": last_name or None,
        "phone": intake.phone,
        "current_title": intake.current_role,
        "linkedin_url": intake.linkedin,
        "years_experience": years_from_bucket(intake.experience),
        "source": intake.source,
        "source_details": {
            "job_id": str(intake.job_id) if intake.job_id else None,
            "company_id": str(intake.company_id) if intake.company_id else None,
            "widget_submission": True,
        },
        "notes": intake.message,
    }
    existing = get_candidate_by_email(db, values["email"])
    if existing:
        refreshed = {k: values[k] for k in REFRESHED_FIELDS if values[k] is not None}
        candidate, created = update_candidate(db, existing, refreshed), False
    else:
        candidate, created = create_candidate(db, **values), True

    submission_created = False
    if intake.job_id and get_job(db, intake.job_id) is not None:
        if find_submission(db, intake.job_id, candidate.id) is None:
            create_submission(
                db,
                intake.job_id,
                candidate.id,
                status=SubmissionStatus.DRAFT,
                stage="new",
                notes="Submitted via widget",
            )
            submission_created = True

    log_activity(
        db,
        subject_type="candidate",
        subject_id=candidate.id,
        type=ActivityType.NOTE,
        title="Widget submission",
        description=f"{intake.name} submitted profile via embedded widget",
    )
    logger.info("Widget intake for %s (new=%s, submission=%s)", candidate.email, created, submission_created)
    return IntakeResult(candidate=candidate, created=created, submission_created=submission_created)
