"""
app/outreach/replies.py — Applies reply detection to sequence runs.

process_inbound_emails() classifies each inbound email, stops the sender's
sequence run when the reply calls for it, logs the reply as an activity
and opts unsubscribers out of every sequence.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.db.models import ActivityType, SequenceRun, SequenceRunState
from app.db.repository import (
    ACTIVE_RUN_STATES,
    get_sequence_run,
    list_sequence_runs,
    log_activity,
    mark_do_not_contact,
    recent_reply_activities,
    stop_sequence_run,
)
from app.services.reply_detector import (
    OUT_OF_OFFICE,
    UNSUBSCRIBE,
    detect_reply,
    extract_sentiment,
    get_recommended_action,
)

logger = logging.getLogger(__name__)


@dataclass
class InboundEmail:
    content: str
    id: Optional[str] = None
    sequence_run_id: Optional[uuid.UUID] = None
    contact_id: Optional[uuid.UUID] = None
    subject: Optional[str] = None
    from_email: Optional[str] = None
    received_at: Optional[datetime] = None


def _stop_state(reply_type: Optional[str]) -> SequenceRunState:
    # Auto-replies and opt-outs are not real engagement
    if reply_type in (OUT_OF_OFFICE, UNSUBSCRIBE):
        return SequenceRunState.STOPPED
    return SequenceRunState.REPLIED


def _stop_all_runs_for_contact(db: Session, contact_id: uuid.UUID, reason: str) -> int:
    runs = (
        db.query(SequenceRun)
        .filter(SequenceRun.contact_id == contact_id, SequenceRun.state.in_(ACTIVE_RUN_STATES))
        .all()
    )
    for run in runs:
        stop_sequence_run(db, run, SequenceRunState.STOPPED, reason)
    return len(runs)


def process_inbound_email(db: Session, email: InboundEmail) -> dict[str, Any]:
    analysis = detect_reply(email.content)
    sentiment = extract_sentiment(email.content)
    action = get_recommended_action(analysis)

    run = get_sequence_run(db, email.sequence_run_id) if email.sequence_run_id else None
    contact_id = email.contact_id or (run.contact_id if run else None)
    run_stopped = False

    if analysis.is_reply and contact_id:
        reason = f"Reply detected: {analysis.intent}"

        if run and analysis.should_stop_sequence and run.state in ACTIVE_RUN_STATES:
            stop_sequence_run(db, run, _stop_state(analysis.reply_type), reason)
            run_stopped = True

        if analysis.reply_type == UNSUBSCRIBE:
            mark_do_not_contact(db, contact_id)
            if _stop_all_runs_for_contact(db, contact_id, reason):
                run_stopped = True

        log_activity(
            db,
            subject_type="contact",
            subject_id=contact_id,
            type=ActivityType.EMAIL,
            title=f"Reply: {analysis.reply_type}",
            description=(analysis.extracted_text or "")[:500],
            payload={
                "reply_type": analysis.reply_type,
                "sentiment": sentiment.sentiment,
                "confidence": analysis.confidence,
                "suggested_action": action.action,
                "sequence_run_id": str(run.id) if run else None,
            },
        )

    return {
        "email_id": email.id,
        "from_email": email.from_email,
        "subject": email.subject,
        "received_at": email.received_at,
        "analysis": {
            **analysis.to_dict(),
            "sentiment": sentiment.sentiment,
            "sentiment_score": sentiment.score,
        },
        "recommended_action": action.to_dict(),
        "sequence_run_stopped": run_stopped,
    }


def process_inbound_emails(db: Session, emails: list[InboundEmail]) -> list[dict[str, Any]]:
    results = [process_inbound_email(db, email) for email in emails]
    stopped = sum(1 for r in results if r["sequence_run_stopped"])
    logger.info("Checked %d inbound emails; %d sequence runs stopped.", len(results), stopped)
    return results


def sequence_reply_summary(db: Session, sequence_id: uuid.UUID, days: int = 7) -> dict[str, Any]:
    """Active runs, recent replies and the reply rate for one sequence."""
    active_runs = list_sequence_runs(db, sequence_id, states=ACTIVE_RUN_STATES)
    replies = recent_reply_activities(db, sequence_id, days=days)
    rate = f"{len(replies) / len(active_runs) * 100:.1f}%" if active_runs else "0%"
    return {
        "active_runs": active_runs,
        "recent_replies": replies,
        "stats": {
            "total_active": len(active_runs),
            "total_replies": len(replies),
            "reply_rate": rate,
        },
    }
