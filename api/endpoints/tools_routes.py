"""
api/endpoints/tools_routes.py — Sourcing and authoring helpers, dashboard stats.

POST  /api/generate-boolean           — LinkedIn / Google / Indeed / GitHub search strings
POST  /api/generate-job-description   — Markdown JD from title + skills
POST  /api/rank-candidates            — Rank candidates against a job description
GET   /api/stats                      — Pipeline counts
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.ai_engine.processor import CandidateInput, generate_job_description, rank_candidates
from app.db.models import Candidate, Job
from app.db.repository import get_candidate, get_job, pipeline_stats
from app.db.session import get_db
from app.services.boolean_search import SEARCH_TIPS, generate_boolean_queries
from api.schemas import (
    BooleanSearchRequest,
    BooleanSearchResponse,
    CandidateRankingOut,
    JobDescriptionRequest,
    JobDescriptionResponse,
    RankCandidatesRequest,
    RankCandidatesResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _job_text(job: Job) -> str:
    parts = [job.title, job.jd_text or ""]
    if job.requirements:
        parts.append("Requirements: " + ", ".join(job.requirements))
    if job.nice_to_haves:
        parts.append("Nice to have: " + ", ".join(job.nice_to_haves))
    return "\n".join(p for p in parts if p)


def _candidate_text(candidate: Candidate) -> str:
    """Resume text when present, otherwise a profile summary."""
    if candidate.resume_text:
        return candidate.resume_text
    parts = [
        candidate.current_title,
        candidate.current_company,
        f"{candidate.years_experience} years experience" if candidate.years_experience else None,
        "Skills: " + ", ".join(candidate.skills) if candidate.skills else None,
        candidate.notes,
    ]
    return "\n".join(p for p in parts if p)


@router.post("/generate-boolean", response_model=BooleanSearchResponse, summary="Generate boolean search strings")
def generate_boolean_route(payload: BooleanSearchRequest):
    try:
        queries = generate_boolean_queries(
            jd_text=payload.jd_text,
            requirements=payload.requirements,
            nice_to_haves=payload.nice_to_haves,
            exclude=payload.exclude,
            locations=payload.locations,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return BooleanSearchResponse(
        linkedin=queries.linkedin,
        google=queries.google,
        indeed=queries.indeed,
        github=queries.github,
        must=queries.must,
        bonus=queries.bonus,
        exclude=queries.exclude,
        tips=SEARCH_TIPS,
    )


@router.post(
    "/generate-job-description",
    response_model=JobDescriptionResponse,
    summary="Generate job description",
)
def generate_job_description_route(payload: JobDescriptionRequest):
    """Falls back to a fixed template when no LLM key is configured."""
    if not payload.title or not payload.skills:
        raise HTTPException(status_code=400, detail="Title and skills array are required")

    try:
        result = generate_job_description(payload.title, payload.skills)
    except Exception:
        logger.exception("Job description generation failed for %s", payload.title)
        raise HTTPException(status_code=500, detail="Failed to generate job description")

    return JobDescriptionResponse(job_description=result.markdown, generated_by=result.generated_by)


@router.post("/rank-candidates", response_model=RankCandidatesResponse, summary="Rank candidates for a job")
def rank_candidates_route(payload: RankCandidatesRequest, db: Session = Depends(get_db)):
    """
    The job description comes from the body or from job_id. Without an LLM
    key candidates are ranked by keyword overlap.
    """
    job_description = payload.job_description
    if not job_description and payload.job_id:
        job = get_job(db, payload.job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        job_description = _job_text(job)
    if not job_description:
        raise HTTPException(status_code=400, detail="Job description is required")

    inputs = []
    for candidate_id in payload.candidate_ids:
        candidate = get_candidate(db, candidate_id)
        if not candidate:
            raise HTTPException(status_code=404, detail=f"Candidate {candidate_id} not found")
        inputs.append(CandidateInput(id=str(candidate.id), resume_text=_candidate_text(candidate)))

    try:
        rankings = rank_candidates(job_description, inputs)
    except Exception:
        logger.exception("Candidate ranking failed")
        raise HTTPException(status_code=500, detail="Failed to rank candidates")

    return RankCandidatesResponse(
        rankings=[CandidateRankingOut(id=r.id, score=r.score, reason=r.reason) for r in rankings]
    )


@router.get("/stats", summary="Pipeline counts")
def stats_route(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Deals by stage, jobs and submissions by status, open pipeline value."""
    return pipeline_stats(db)
