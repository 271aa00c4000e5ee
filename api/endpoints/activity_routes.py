"""
api/endpoints/activity_routes.py — Activity timeline.

GET   /api/activities   — Timeline for any entity (newest first)
POST  /api/activities   — Record a note, call, meeting or task
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.models import ActivityType
from app.db.repository import create_activity, list_activities
from app.db.session import get_db
from api.schemas import ActivityCreate, ActivityOut

router = APIRouter()


@router.get("", response_model=list[ActivityOut], summary="List activities")
def list_activities_route(
    subject_type: Optional[str] = None,
    subject_id: Optional[uuid.UUID] = None,
    type: Optional[ActivityType] = None,
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_activities(db, subject_type=subject_type, subject_id=subject_id, type=type, limit=limit)


@router.post("", response_model=ActivityOut, status_code=201, summary="Record activity")
def create_activity_route(payload: ActivityCreate, db: Session = Depends(get_db)):
    activity = create_activity(db, **payload.model_dump(exclude_none=True))
    db.commit()
    return activity
