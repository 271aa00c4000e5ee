"""
api/endpoints/widget_routes.py — Public intake for the embeddable application widget.

POST  /api/widget/intake   — Upsert the applicant and optionally submit them to a job

Served cross-origin; CORS is open for every route (see api/main.py).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.ingestion.normalizer import ImportValidationError
from app.services.intake_service import IntakeRequest, process_intake
from api.schemas import WidgetIntakeRequest, WidgetIntakeResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/intake", response_model=WidgetIntakeResponse, summary="Widget application intake")
def widget_intake_route(payload: WidgetIntakeRequest, db: Session = Depends(get_db)):
    try:
        result = process_intake(db, IntakeRequest(**payload.model_dump()))
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return WidgetIntakeResponse(candidate_id=result.candidate.id)
