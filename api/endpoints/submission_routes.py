"""
api/endpoints/submission_routes.py — Candidates in job pipelines.

GET    /api/submissions                            — List (job / candidate / status / stage)
POST   /api/submissions                            — Create or update the (job, candidate) row
PATCH  /api/submissions                            — Update the submission whose id is in the body
GET    /api/submissions/{id}                       — Get one submission
POST   /api/submissions/{id}/screening-responses   — Record answers, apply knockouts
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.models import ActivityType, Submission, SubmissionStatus
from app.db.repository import (
    get_candidate,
    get_job,
    get_submission,
    list_submissions,
    log_activity,
    update_submission,
    upsert_submission,
)
from app.db.session import get_db
from app.services.screening import record_screening_answers
from api.schemas import (
    ScreeningAnswersRequest,
    ScreeningOutcomeOut,
    SubmissionCreate,
    SubmissionOut,
    SubmissionUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_submission(db: Session, submission_id: uuid.UUID) -> Submission:
    submission = get_submission(db, submission_id)
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return submission


@router.get("", response_model=list[SubmissionOut], summary="List submissions")
def list_submissions_route(
    job_id: Optional[uuid.UUID] = None,
    candidate_id: Optional[uuid.UUID] = None,
    status: Optional[SubmissionStatus] = None,
    stage: Optional[str] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_submissions(
        db, job_id=job_id, candidate_id=candidate_id, status=status, stage=stage, limit=limit
    )


@router.post("", response_model=SubmissionOut, summary="Submit candidate to job")
def create_submission_route(payload: SubmissionCreate, db: Session = Depends(get_db)):
    """A second submission of the same candidate to the same job updates the first."""
    job = get_job(db, payload.job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    candidate = get_candidate(db, payload.candidate_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")

    fields = payload.model_dump(exclude_none=True, exclude={"job_id", "candidate_id"})
    submission, created = upsert_submission(db, job.id, candidate.id, fields)
    if created:
        log_activity(
            db,
            subject_type="candidate",
            subject_id=candidate.id,
            type=ActivityType.STATUS,
            title="Submitted to job",
            description=f"{candidate.full_name or candidate.email} submitted to {job.title}",
            related_type="job",
            related_id=job.id,
        )
    db.commit()
    return submission


@router.patch("", response_model=SubmissionOut, summary="Update submission")
def update_submission_route(payload: SubmissionUpdate, db: Session = Depends(get_db)):
    """Stages "submitted", "interviewed" and "offered" stamp their timestamps."""
    if payload.id is None:
        raise HTTPException(status_code=400, detail="Submission ID is required")
    submission = _require_submission(db, payload.id)

    previous_status = submission.status
    changed = update_submission(db, submission, payload.model_dump(exclude_unset=True, exclude={"id"}))
    if "status" in changed or "stage" in changed:
        log_activity(
            db,
            subject_type="submission",
            subject_id=submission.id,
            type=ActivityType.STATUS,
            title="Submission updated",
            payload={
                "from_status": previous_status.value if previous_status else None,
                "status": submission.status.value if submission.status else None,
                "stage": submission.stage,
            },
        )
    db.commit()
    return submission


@router.get("/{submission_id}", response_model=SubmissionOut, summary="Get submission")
def get_submission_route(submission_id: uuid.UUID, db: Session = Depends(get_db)):
    return _require_submission(db, submission_id)


@router.post(
    "/{submission_id}/screening-responses",
    response_model=ScreeningOutcomeOut,
    summary="Record screening answers",
)
def screening_responses_route(
    submission_id: uuid.UUID,
    payload: ScreeningAnswersRequest,
    db: Session = Depends(get_db),
):
    """
    Answers are upserted per question. A wrong answer to a knockout question
    rejects the submission.
    """
    submission = _require_submission(db, submission_id)
    answers = {item.question_id: item.answer for item in payload.answers}
    outcome = record_screening_answers(db, submission, answers)
    db.commit()
    return ScreeningOutcomeOut(
        answered=outcome.answered,
        knocked_out=outcome.knocked_out,
        failed_questions=outcome.failed_questions,
        missing_required=outcome.missing_required,
        submission=SubmissionOut.model_validate(submission),
    )
