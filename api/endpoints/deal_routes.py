"""
api/endpoints/deal_routes.py — BD deals.

GET    /api/deals        — List deals (filter by stage / company)
POST   /api/deals        — Create a deal (stage defaults to prospect)
PATCH  /api/deals        — Update the deal whose id is in the body
GET    /api/deals/{id}   — Get one deal
DELETE /api/deals/{id}   — Delete a deal

Probability is whatever the caller sends; the database only keeps it
within 0–100.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.models import ActivityType, DealStage
from app.db.repository import create_deal, delete_deal, get_deal, list_deals, log_activity, update_deal
from app.db.session import get_db
from api.schemas import DealCreate, DealOut, DealUpdate, OKResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[DealOut], summary="List deals")
def list_deals_route(
    stage: Optional[DealStage] = None,
    company_id: Optional[uuid.UUID] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_deals(db, stage=stage, company_id=company_id, limit=limit)


@router.post("", response_model=DealOut, status_code=201, summary="Create deal")
def create_deal_route(payload: DealCreate, db: Session = Depends(get_db)):
    deal = create_deal(db, **payload.model_dump(exclude_none=True))
    log_activity(
        db,
        subject_type="deal",
        subject_id=deal.id,
        type=ActivityType.NOTE,
        title="Deal created",
        description=f"{deal.name} created at stage {deal.stage.value}",
        payload={"company_id": str(deal.company_id) if deal.company_id else None},
        is_automated=False,
    )
    db.commit()
    return deal


@router.patch("", response_model=DealOut, summary="Update deal")
def update_deal_route(payload: DealUpdate, db: Session = Depends(get_db)):
    """Moving to won / lost stamps closed_at; every stage change is logged."""
    if payload.id is None:
        raise HTTPException(status_code=400, detail="Deal ID is required")
    deal = get_deal(db, payload.id)
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")

    changes = payload.model_dump(exclude_unset=True, exclude={"id"})
    if "stage" in changes and changes["stage"] is None:
        changes.pop("stage")
    previous = update_deal(db, deal, changes)
    if previous is not None:
        log_activity(
            db,
            subject_type="deal",
            subject_id=deal.id,
            type=ActivityType.STATUS,
            title="Deal stage changed",
            description=f"{previous.value} → {deal.stage.value}",
            payload={"from": previous.value, "to": deal.stage.value},
        )
        logger.info("Deal %s moved %s → %s.", deal.id, previous.value, deal.stage.value)
    db.commit()
    return deal


@router.get("/{deal_id}", response_model=DealOut, summary="Get deal")
def get_deal_route(deal_id: uuid.UUID, db: Session = Depends(get_db)):
    deal = get_deal(db, deal_id)
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


@router.delete("/{deal_id}", response_model=OKResponse, summary="Delete deal")
def delete_deal_route(deal_id: uuid.UUID, db: Session = Depends(get_db)):
    deal = get_deal(db, deal_id)
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    log_activity(
        db,
        subject_type="deal",
        subject_id=deal.id,
        type=ActivityType.STATUS,
        title="Deal deleted",
        description=deal.name,
        payload={"stage": deal.stage.value},
    )
    delete_deal(db, deal_id)
    db.commit()
    return OKResponse(message="Deal deleted successfully")
