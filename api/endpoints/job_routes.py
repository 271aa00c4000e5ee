"""
api/endpoints/job_routes.py — Jobs, candidate matching and screening questions.

GET    /api/jobs                              — List jobs (filter by status / company)
POST   /api/jobs                              — Create a job (status defaults to draft)
GET    /api/jobs/{id}                         — Job with its company
PUT    /api/jobs/{id}                         — Update fields
DELETE /api/jobs/{id}                         — Delete (cascades to submissions)
GET    /api/jobs/{id}/matches                 — Best-matching candidates
GET    /api/jobs/{id}/screening-questions     — Questions in display order
POST   /api/jobs/{id}/screening-questions     — Add a question
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.db.models import Job, JobStatus
from app.db.repository import (
    create_job,
    create_screening_question,
    delete_job,
    get_company,
    get_job,
    list_candidates,
    list_jobs,
    list_screening_questions,
    update_job,
)
from app.db.session import get_db
from app.services.matching import criteria_from_job, rank_matches
from api.schemas import (
    CandidateMatch,
    CandidateOut,
    JobCreate,
    JobDetail,
    JobOut,
    JobUpdate,
    OKResponse,
    ScreeningQuestionCreate,
    ScreeningQuestionOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_job(db: Session, job_id: uuid.UUID) -> Job:
    job = get_job(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("", response_model=list[JobOut], summary="List jobs")
def list_jobs_route(
    status: Optional[JobStatus] = None,
    company_id: Optional[uuid.UUID] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_jobs(db, status=status, company_id=company_id, limit=limit)


@router.post("", response_model=JobOut, status_code=201, summary="Create job")
def create_job_route(payload: JobCreate, db: Session = Depends(get_db)):
    if payload.company_id and not get_company(db, payload.company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    job = create_job(db, **payload.model_dump(exclude_none=True))
    db.commit()
    logger.info("Job %s created (%s).", job.title, job.status.value)
    return job


@router.get("/{job_id}", response_model=JobDetail, summary="Get job")
def get_job_route(job_id: uuid.UUID, db: Session = Depends(get_db)):
    return _require_job(db, job_id)


@router.put("/{job_id}", response_model=JobOut, summary="Update job")
def update_job_route(job_id: uuid.UUID, payload: JobUpdate, db: Session = Depends(get_db)):
    """Publishing stamps published_at; closing stamps closed_at."""
    job = _require_job(db, job_id)
    update_job(db, job, payload.model_dump(exclude_unset=True))
    db.commit()
    return job


@router.delete("/{job_id}", response_model=OKResponse, summary="Delete job")
def delete_job_route(job_id: uuid.UUID, db: Session = Depends(get_db)):
    if not delete_job(db, job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    db.commit()
    return OKResponse(message="Job deleted successfully")


@router.get("/{job_id}/matches", response_model=list[CandidateMatch], summary="Match candidates to job")
def job_matches_route(
    job_id: uuid.UUID,
    mode: str = Query(default="balanced", pattern="^(strict|balanced|flexible)$"),
    min_score: Optional[float] = Query(default=None, ge=0, le=100),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Score every candidate against the job's requirements, experience level,
    location and salary band. strict mode drops candidates missing any
    required skill.
    """
    job = _require_job(db, job_id)
    criteria = criteria_from_job(job, mode=mode)
    candidates = [candidate for candidate, _ in list_candidates(db, limit=1000)]
    threshold = settings.min_match_score if min_score is None else min_score

    matches = rank_matches(candidates, criteria, min_score=threshold)[:limit]
    return [
        CandidateMatch(
            candidate=CandidateOut.model_validate(candidate),
            score=result.score,
            reasons=result.reasons,
        )
        for candidate, result in matches
    ]


@router.get(
    "/{job_id}/screening-questions",
    response_model=list[ScreeningQuestionOut],
    summary="List screening questions",
)
def list_screening_questions_route(job_id: uuid.UUID, db: Session = Depends(get_db)):
    _require_job(db, job_id)
    return list_screening_questions(db, job_id)


@router.post(
    "/{job_id}/screening-questions",
    response_model=ScreeningQuestionOut,
    status_code=201,
    summary="Add screening question",
)
def create_screening_question_route(
    job_id: uuid.UUID,
    payload: ScreeningQuestionCreate,
    db: Session = Depends(get_db),
):
    _require_job(db, job_id)
    question = create_screening_question(db, job_id, **payload.model_dump())
    db.commit()
    return question
