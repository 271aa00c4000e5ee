"""
api/endpoints/sequence_routes.py — Outreach sequences and reply handling.

GET   /api/sequences                     — List sequences
POST  /api/sequences                     — Create a sequence
POST  /api/sequences/check-replies       — Classify inbound emails, stop runs
GET   /api/sequences/check-replies       — Active runs, recent replies, reply rate
GET   /api/sequences/{id}/runs           — Runs of one sequence
POST  /api/sequences/{id}/runs           — Enrol a contact
"""

import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.models import SequenceRunState
from app.db.repository import (
    create_sequence,
    enroll_contact,
    get_contact,
    get_sequence,
    list_sequence_runs,
    list_sequences,
)
from app.db.session import get_db
from app.outreach.replies import InboundEmail, process_inbound_emails, sequence_reply_summary
from api.schemas import (
    ActivityOut,
    CheckRepliesRequest,
    CheckRepliesResponse,
    EnrollRequest,
    SequenceCreate,
    SequenceOut,
    SequenceRunOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[SequenceOut], summary="List sequences")
def list_sequences_route(active_only: bool = False, db: Session = Depends(get_db)):
    return list_sequences(db, active_only=active_only)


@router.post("", response_model=SequenceOut, status_code=201, summary="Create sequence")
def create_sequence_route(payload: SequenceCreate, db: Session = Depends(get_db)):
    sequence = create_sequence(db, **payload.model_dump())
    db.commit()
    return sequence


@router.post("/check-replies", response_model=CheckRepliesResponse, summary="Process inbound replies")
def check_replies_route(payload: CheckRepliesRequest, db: Session = Depends(get_db)):
    """
    Replies stop the sender's run (replied; out-of-office and unsubscribe
    stop it without counting as a reply). Unsubscribes also mark the
    contact do-not-contact and stop all their runs.
    """
    if payload.emails is None:
        raise HTTPException(status_code=400, detail="Invalid emails data")

    emails = [InboundEmail(**item.model_dump()) for item in payload.emails]
    results = process_inbound_emails(db, emails)
    db.commit()
    return CheckRepliesResponse(processed=len(results), results=results)


@router.get("/check-replies", summary="Reply summary for a sequence")
def reply_summary_route(
    sequence_id: Optional[uuid.UUID] = None,
    days: int = Query(default=7, ge=1, le=90),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if sequence_id is None:
        raise HTTPException(status_code=400, detail="Sequence ID is required")
    if not get_sequence(db, sequence_id):
        raise HTTPException(status_code=404, detail="Sequence not found")

    summary = sequence_reply_summary(db, sequence_id, days=days)
    return {
        "active_runs": [SequenceRunOut.model_validate(r) for r in summary["active_runs"]],
        "recent_replies": [ActivityOut.model_validate(a) for a in summary["recent_replies"]],
        "stats": summary["stats"],
    }


@router.get("/{sequence_id}/runs", response_model=list[SequenceRunOut], summary="List sequence runs")
def list_runs_route(
    sequence_id: uuid.UUID,
    state: Optional[SequenceRunState] = None,
    db: Session = Depends(get_db),
):
    if not get_sequence(db, sequence_id):
        raise HTTPException(status_code=404, detail="Sequence not found")
    return list_sequence_runs(db, sequence_id, states=[state] if state else None)


@router.post("/{sequence_id}/runs", response_model=SequenceRunOut, status_code=201, summary="Enrol contact")
def enroll_route(sequence_id: uuid.UUID, payload: EnrollRequest, db: Session = Depends(get_db)):
    """Opted-out contacts are refused; a contact can run a sequence once."""
    sequence = get_sequence(db, sequence_id)
    if not sequence:
        raise HTTPException(status_code=404, detail="Sequence not found")
    contact = get_contact(db, payload.contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")

    try:
        run = enroll_contact(
            db,
            sequence,
            contact,
            deal_id=payload.deal_id,
            personalization_data=payload.personalization_data,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return run
