"""
api/endpoints/candidate_routes.py — Candidates, search and bulk import.

GET   /api/candidates           — List candidates (filter by source / skills)
POST  /api/candidates           — Create a candidate
POST  /api/candidates/import    — Bulk upsert by email
POST  /api/candidates/search    — Keyword or scored search
GET   /api/candidates/{id}      — Candidate with submissions
PUT   /api/candidates/{id}      — Update fields
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.repository import (
    create_candidate,
    get_candidate,
    list_candidates,
    search_candidates,
    update_candidate,
)
from app.db.session import get_db
from app.ingestion.normalizer import split_list
from app.services.import_service import import_candidates
from app.services.matching import score_candidate_search
from api.schemas import (
    CandidateCreate,
    CandidateDetail,
    CandidateImportRequest,
    CandidateListItem,
    CandidateOut,
    CandidateSearchRequest,
    CandidateSearchResponse,
    CandidateUpdate,
    ImportResponse,
    ScoredCandidate,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[CandidateListItem], summary="List candidates")
def list_candidates_route(
    source: Optional[str] = None,
    skills: Optional[str] = Query(default=None, description="Comma-separated; any match"),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows = list_candidates(db, source=source, skills=split_list(skills), limit=limit)
    return [
        CandidateListItem(**CandidateOut.model_validate(candidate).model_dump(), submission_count=count)
        for candidate, count in rows
    ]


@router.post("", response_model=CandidateOut, status_code=201, summary="Create candidate")
def create_candidate_route(payload: CandidateCreate, db: Session = Depends(get_db)):
    values = payload.model_dump(exclude_none=True)
    values["email"] = values["email"].strip().lower()
    candidate = create_candidate(db, **values)
    db.commit()
    return candidate


@router.post("/import", response_model=ImportResponse, summary="Bulk import candidates")
def import_candidates_route(payload: CandidateImportRequest, db: Session = Depends(get_db)):
    if not isinstance(payload.candidates, list) or not payload.candidates:
        raise HTTPException(status_code=400, detail="Invalid candidates data")

    results = import_candidates(db, payload.candidates)
    db.commit()
    return ImportResponse(results=results.to_dict(), message=results.message)


@router.post("/search", response_model=CandidateSearchResponse, summary="Search candidates")
def search_candidates_route(payload: CandidateSearchRequest, db: Session = Depends(get_db)):
    """
    Keyword search filters on every given criterion. Semantic search matches
    the query text only, then ranks by a 0–1 score over query terms, skills,
    experience and location.
    """
    if payload.semantic and payload.query:
        found = search_candidates(db, q=payload.query, limit=payload.limit)
        scored = [
            ScoredCandidate(
                **CandidateOut.model_validate(candidate).model_dump(),
                similarity_score=score_candidate_search(
                    candidate,
                    query=payload.query,
                    skills=payload.skills,
                    years_experience=payload.years_experience,
                    location=payload.location,
                ),
            )
            for candidate in found
        ]
        scored.sort(key=lambda c: c.similarity_score or 0, reverse=True)
        return CandidateSearchResponse(candidates=scored, total=len(scored), search_type="semantic")

    found = search_candidates(
        db,
        q=payload.query,
        skills=payload.skills,
        min_years=payload.years_experience,
        location=payload.location,
        limit=payload.limit,
    )
    return CandidateSearchResponse(
        candidates=[ScoredCandidate.model_validate(c) for c in found],
        total=len(found),
        search_type="keyword",
    )


@router.get("/{candidate_id}", response_model=CandidateDetail, summary="Get candidate")
def get_candidate_route(candidate_id: uuid.UUID, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return candidate


@router.put("/{candidate_id}", response_model=CandidateOut, summary="Update candidate")
def update_candidate_route(candidate_id: uuid.UUID, payload: CandidateUpdate, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
    update_candidate(db, candidate, changes)
    db.commit()
    return candidate
