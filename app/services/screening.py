"""
app/services/screening.py — Knockout-question evaluation for submissions.

Answers are stored per (submission, question); a knockout question whose
answer does not match expected_answer knocks the candidate out of the
pipeline (submission status → rejected).
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from app.db.models import ActivityType, ScreeningQuestion, Submission, SubmissionStatus
from app.db.repository import (
    list_screening_questions,
    log_activity,
    update_submission,
    upsert_screening_response,
)

logger = logging.getLogger(__name__)

_TRUTHY = {"yes", "y", "true", "1"}
_FALSY = {"no", "n", "false", "0"}


@dataclass
class ScreeningOutcome:
    answered: int = 0
    knocked_out: bool = False
    failed_questions: list[str] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)


def _normalize_answer(value: str) -> str:
    text = value.strip().lower()
    if text in _TRUTHY:
        return "yes"
    if text in _FALSY:
        return "no"
    return text


def evaluate_answer(question: ScreeningQuestion, answer: Optional[str]) -> Optional[bool]:
    """
    True / False against expected_answer (case-insensitive, yes/no aliases);
    None when the question has no expected answer.
    """
    if not question.expected_answer:
        return None
    if answer is None:
        return False
    return _normalize_answer(answer) == _normalize_answer(question.expected_answer)


def record_screening_answers(
    db: Session,
    submission: Submission,
    answers: dict[uuid.UUID, Optional[str]],
) -> ScreeningOutcome:
    """Store answers for the submission's job questions and apply knockouts."""
    questions = list_screening_questions(db, submission.job_id)
    outcome = ScreeningOutcome()

    for question in questions:
        if question.id not in answers:
            if question.is_required:
                outcome.missing_required.append(question.question)
            continue

        answer = answers[question.id]
        is_correct = evaluate_answer(question, answer)
        upsert_screening_response(db, submission.id, question.id, answer, is_correct)
        outcome.answered += 1

        if question.is_knockout and is_correct is False:
            outcome.knocked_out = True
            outcome.failed_questions.append(question.question)

    if outcome.knocked_out and submission.status != SubmissionStatus.REJECTED:
        update_submission(db, submission, {
            "status": SubmissionStatus.REJECTED,
            "rejection_reason": "Failed knockout question(s): " + "; ".join(outcome.failed_questions),
        })
        log_activity(
            db,
            subject_type="submission",
            subject_id=submission.id,
            type=ActivityType.STATUS,
            title="Knocked out by screening",
            payload={"failed_questions": outcome.failed_questions},
        )
        logger.info("Submission %s knocked out by screening.", submission.id)

    return outcome
