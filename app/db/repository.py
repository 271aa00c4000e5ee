"""
app/db/repository.py — All database read/write operations.

Business logic should never write raw SQL or ORM queries directly —
everything goes through this module. This keeps DB logic centralized
and easy to test/mock.

Functions flush but never commit: the caller's session scope (get_db,
Database.session / Database.transaction) owns the transaction.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.db.models import (
    CLOSED_DEAL_STAGES,
    ICP,
    Activity,
    ActivityType,
    Candidate,
    Company,
    Contact,
    Deal,
    DealStage,
    EmailTemplate,
    Job,
    JobStatus,
    PartnerStatus,
    ScreeningQuestion,
    ScreeningResponse,
    Sequence,
    SequenceRun,
    SequenceRunState,
    Submission,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)

ACTIVE_RUN_STATES = (SequenceRunState.PENDING, SequenceRunState.SENT)

# Free-text submission stages that stamp a timestamp column
STAGE_TIMESTAMPS = {
    "submitted": "submitted_at",
    "interviewed": "interviewed_at",
    "offered": "offered_at",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _apply_changes(obj: Any, changes: dict[str, Any]) -> list[str]:
    """Set known attributes on an ORM object; returns the names that changed."""
    changed = []
    for key, value in changes.items():
        if key == "id" or not hasattr(type(obj), key):
            continue
        if getattr(obj, key) != value:
            setattr(obj, key, value)
            changed.append(key)
    return changed


# ── Activity ──────────────────────────────────────────────────────────────────

def log_activity(
    db: Session,
    subject_type: str,
    subject_id: uuid.UUID,
    type: ActivityType,
    title: str,
    description: Optional[str] = None,
    payload: Optional[dict] = None,
    is_automated: bool = True,
    related_type: Optional[str] = None,
    related_id: Optional[uuid.UUID] = None,
) -> Activity:
    """Append an audit entry about any entity (no foreign key)."""
    activity = Activity(
        subject_type=subject_type,
        subject_id=subject_id,
        related_type=related_type,
        related_id=related_id,
        type=type,
        title=title,
        description=description,
        payload=payload or {},
        is_automated=is_automated,
    )
    db.add(activity)
    db.flush()
    logger.debug("Activity logged: %s %s — %s", subject_type, subject_id, title)
    return activity


def create_activity(db: Session, **fields: Any) -> Activity:
    """Insert a manually recorded activity (call notes, meetings, tasks)."""
    fields.setdefault("is_automated", False)
    activity = Activity(**fields)
    db.add(activity)
    db.flush()
    return activity


def list_activities(
    db: Session,
    subject_type: Optional[str] = None,
    subject_id: Optional[uuid.UUID] = None,
    type: Optional[ActivityType] = None,
    limit: int = 50,
) -> list[Activity]:
    query = db.query(Activity)
    if subject_type:
        query = query.filter(Activity.subject_type == subject_type)
    if subject_id:
        query = query.filter(Activity.subject_id == subject_id)
    if type:
        query = query.filter(Activity.type == type)
    return query.order_by(Activity.occurred_at.desc()).limit(limit).all()


# ── Company ───────────────────────────────────────────────────────────────────

def list_companies(
    db: Session,
    industry: Optional[str] = None,
    size: Optional[str] = None,
    hiring_urgency: Optional[str] = None,
    partner_status: Optional[PartnerStatus] = None,
    limit: int = 50,
) -> list[tuple[Company, int, int]]:
    """Return (company, active_jobs_count, contacts_count) rows, newest first."""
    active_jobs = (
        db.query(func.count(Job.id))
        .filter(Job.company_id == Company.id, Job.status == JobStatus.PUBLISHED)
        .correlate(Company)
        .scalar_subquery()
    )
    contacts = (
        db.query(func.count(Contact.id))
        .filter(Contact.company_id == Company.id)
        .correlate(Company)
        .scalar_subquery()
    )

    query = db.query(Company, active_jobs.label("active_jobs_count"), contacts.label("contacts_count"))
    if industry:
        query = query.filter(Company.industry == industry)
    if size:
        query = query.filter(Company.size == size)
    if hiring_urgency:
        query = query.filter(Company.hiring_urgency == hiring_urgency)
    if partner_status:
        query = query.filter(Company.partner_status == partner_status)

    rows = query.order_by(Company.created_at.desc()).limit(limit).all()
    return [(company, int(jobs or 0), int(people or 0)) for company, jobs, people in rows]


def get_company(db: Session, company_id: uuid.UUID) -> Optional[Company]:
    return db.get(Company, company_id)


def create_company(db: Session, **fields: Any) -> Company:
    company = Company(**fields)
    db.add(company)
    db.flush()
    logger.debug("Created company: %s", company.name)
    return company


def update_company(db: Session, company: Company, changes: dict[str, Any]) -> Company:
    _apply_changes(company, changes)
    db.flush()
    return company


def delete_company(db: Session, company_id: uuid.UUID) -> bool:
    """
    Delete a company row. Contacts, deals, jobs and everything hanging off
    them are removed by the database's ON DELETE CASCADE.
    """
    result = db.execute(delete(Company).where(Company.id == company_id))
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Company %s deleted (cascade).", company_id)
    return deleted


def search_companies(db: Session, q: str, limit: int = 10) -> list[Company]:
    pattern = f"%{q.strip()}%"
    return (
        db.query(Company)
        .filter(or_(
            Company.name.ilike(pattern),
            Company.domain.ilike(pattern),
            Company.industry.ilike(pattern),
        ))
        .order_by(Company.name.asc())
        .limit(limit)
        .all()
    )


def find_existing_company(db: Session, domain: Optional[str], name: str) -> Optional[Company]:
    """Match by domain first (most reliable), then by case-insensitive name."""
    company = None
    if domain:
        company = db.query(Company).filter(Company.domain == domain).first()
    if not company:
        company = (
            db.query(Company)
            .filter(func.lower(Company.name) == name.strip().lower())
            .first()
        )
    return company


# ── Contact ───────────────────────────────────────────────────────────────────

def list_contacts(db: Session, company_id: Optional[uuid.UUID] = None, limit: int = 100) -> list[Contact]:
    query = db.query(Contact)
    if company_id:
        query = query.filter(Contact.company_id == company_id)
    return query.order_by(Contact.is_primary.desc(), Contact.created_at.desc()).limit(limit).all()


def get_contact(db: Session, contact_id: uuid.UUID) -> Optional[Contact]:
    return db.get(Contact, contact_id)


def create_contact(db: Session, **fields: Any) -> Contact:
    contact = Contact(**fields)
    db.add(contact)
    db.flush()
    return contact


def update_contact(db: Session, contact: Contact, changes: dict[str, Any]) -> Contact:
    _apply_changes(contact, changes)
    db.flush()
    return contact


def mark_do_not_contact(db: Session, contact_id: uuid.UUID) -> None:
    db.query(Contact).filter(Contact.id == contact_id).update({"do_not_contact": True})


# ── Deal ──────────────────────────────────────────────────────────────────────

def list_deals(
    db: Session,
    stage: Optional[DealStage] = None,
    company_id: Optional[uuid.UUID] = None,
    limit: int = 100,
) -> list[Deal]:
    query = db.query(Deal)
    if stage:
        query = query.filter(Deal.stage == stage)
    if company_id:
        query = query.filter(Deal.company_id == company_id)
    return query.order_by(Deal.created_at.desc()).limit(limit).all()


def get_deal(db: Session, deal_id: uuid.UUID) -> Optional[Deal]:
    return db.get(Deal, deal_id)


def create_deal(db: Session, **fields: Any) -> Deal:
    fields.setdefault("stage", DealStage.PROSPECT)
    deal = Deal(**fields)
    if deal.stage in CLOSED_DEAL_STAGES:
        deal.closed_at = _utcnow()
    db.add(deal)
    db.flush()
    logger.debug("Created deal: %s (%s)", deal.name, deal.stage)
    return deal


def update_deal(db: Session, deal: Deal, changes: dict[str, Any]) -> Optional[DealStage]:
    """
    Apply changes to a deal. Moving into won/lost stamps closed_at.

    Returns the previous stage when the stage changed, else None.
    Probability is not derived from stage; only the column CHECK applies.
    """
    previous = deal.stage
    changed = _apply_changes(deal, changes)
    stage_changed = "stage" in changed
    if stage_changed and deal.stage in CLOSED_DEAL_STAGES:
        deal.closed_at = _utcnow()
    db.flush()
    return previous if stage_changed else None


def delete_deal(db: Session, deal_id: uuid.UUID) -> bool:
    result = db.execute(delete(Deal).where(Deal.id == deal_id))
    return result.rowcount > 0


# ── Job ───────────────────────────────────────────────────────────────────────

def list_jobs(
    db: Session,
    status: Optional[JobStatus] = None,
    company_id: Optional[uuid.UUID] = None,
    limit: int = 100,
) -> list[Job]:
    query = db.query(Job)
    if status:
        query = query.filter(Job.status == status)
    if company_id:
        query = query.filter(Job.company_id == company_id)
    return query.order_by(Job.created_at.desc()).limit(limit).all()


def get_job(db: Session, job_id: uuid.UUID) -> Optional[Job]:
    return db.get(Job, job_id)


def _stamp_job_status(job: Job) -> None:
    if job.status == JobStatus.PUBLISHED and job.published_at is None:
        job.published_at = _utcnow()
    elif job.status == JobStatus.CLOSED and job.closed_at is None:
        job.closed_at = _utcnow()


def create_job(db: Session, **fields: Any) -> Job:
    fields.setdefault("status", JobStatus.DRAFT)
    job = Job(**fields)
    _stamp_job_status(job)
    db.add(job)
    db.flush()
    logger.debug("Created job: %s", job.title)
    return job


def update_job(db: Session, job: Job, changes: dict[str, Any]) -> Job:
    if "status" in _apply_changes(job, changes):
        _stamp_job_status(job)
    db.flush()
    return job


def delete_job(db: Session, job_id: uuid.UUID) -> bool:
    result = db.execute(delete(Job).where(Job.id == job_id))
    return result.rowcount > 0


# ── Candidate ─────────────────────────────────────────────────────────────────

def _has_any_skill(candidate: Candidate, wanted: set[str]) -> bool:
    return any(skill.lower() in wanted for skill in (candidate.skills or []))


def list_candidates(
    db: Session,
    source: Optional[str] = None,
    skills: Optional[Iterable[str]] = None,
    limit: int = 100,
) -> list[tuple[Candidate, int]]:
    """
    Return (candidate, submission_count) rows, newest first.

    The skills filter keeps candidates sharing at least one skill
    (case-insensitive); it runs in Python so it works on every backend.
    """
    submission_count = (
        db.query(func.count(Submission.id))
        .filter(Submission.candidate_id == Candidate.id)
        .correlate(Candidate)
        .scalar_subquery()
    )
    query = db.query(Candidate, submission_count.label("submission_count"))
    if source:
        query = query.filter(Candidate.source == source)
    query = query.order_by(Candidate.created_at.desc())

    wanted = {s.strip().lower() for s in (skills or []) if s and s.strip()}
    if not wanted:
        return [(c, int(n or 0)) for c, n in query.limit(limit).all()]

    rows = [(c, int(n or 0)) for c, n in query.all() if _has_any_skill(c, wanted)]
    return rows[:limit]


def get_candidate(db: Session, candidate_id: uuid.UUID) -> Optional[Candidate]:
    return db.get(Candidate, candidate_id)


def get_candidate_by_email(db: Session, email: str) -> Optional[Candidate]:
    return db.query(Candidate).filter(func.lower(Candidate.email) == email.strip().lower()).first()


def create_candidate(db: Session, **fields: Any) -> Candidate:
    candidate = Candidate(**fields)
    db.add(candidate)
    db.flush()
    return candidate


def update_candidate(db: Session, candidate: Candidate, changes: dict[str, Any]) -> Candidate:
    _apply_changes(candidate, changes)
    db.flush()
    return candidate


def upsert_candidate(db: Session, values: dict[str, Any]) -> tuple[Candidate, bool]:
    """
    Insert a candidate, or fill in an existing one matched by email.

    Only non-null incoming values overwrite existing columns.
    Returns (candidate, created).
    """
    existing = get_candidate_by_email(db, values["email"])
    if existing:
        _apply_changes(existing, {k: v for k, v in values.items() if v is not None and k != "email"})
        db.flush()
        return existing, False
    return create_candidate(db, **values), True


def search_candidates(
    db: Session,
    q: Optional[str] = None,
    skills: Optional[list[str]] = None,
    min_years: Optional[int] = None,
    location: Optional[str] = None,
    limit: int = 20,
) -> list[Candidate]:
    """
    Keyword search over name, title, company, notes and resume text.

    skills keeps candidates with any skill containing one of the given
    terms (case-insensitive, evaluated in Python).
    """
    query = db.query(Candidate)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(
            Candidate.full_name.ilike(pattern),
            Candidate.current_title.ilike(pattern),
            Candidate.current_company.ilike(pattern),
            Candidate.notes.ilike(pattern),
            Candidate.resume_text.ilike(pattern),
        ))
    if min_years is not None:
        query = query.filter(Candidate.years_experience >= min_years)
    if location:
        query = query.filter(Candidate.location.ilike(f"%{location.strip()}%"))
    query = query.order_by(Candidate.created_at.desc())

    terms = [s.strip().lower() for s in (skills or []) if s and s.strip()]
    if not terms:
        return query.limit(limit).all()
    return [
        c for c in query.all()
        if any(term in skill.lower() for skill in (c.skills or []) for term in terms)
    ][:limit]


# ── Submission ────────────────────────────────────────────────────────────────

def list_submissions(
    db: Session,
    job_id: Optional[uuid.UUID] = None,
    candidate_id: Optional[uuid.UUID] = None,
    status: Optional[SubmissionStatus] = None,
    stage: Optional[str] = None,
    limit: int = 200,
) -> list[Submission]:
    query = db.query(Submission)
    if job_id:
        query = query.filter(Submission.job_id == job_id)
    if candidate_id:
        query = query.filter(Submission.candidate_id == candidate_id)
    if status:
        query = query.filter(Submission.status == status)
    if stage:
        query = query.filter(Submission.stage == stage)
    return query.order_by(Submission.created_at.desc()).limit(limit).all()


def get_submission(db: Session, submission_id: uuid.UUID) -> Optional[Submission]:
    return db.get(Submission, submission_id)


def find_submission(db: Session, job_id: uuid.UUID, candidate_id: uuid.UUID) -> Optional[Submission]:
    return (
        db.query(Submission)
        .filter(Submission.job_id == job_id, Submission.candidate_id == candidate_id)
        .first()
    )


def create_submission(db: Session, job_id: uuid.UUID, candidate_id: uuid.UUID, **fields: Any) -> Submission:
    """
    Insert a submission. A second row for the same (job, candidate) pair
    raises IntegrityError from the unique constraint.
    """
    submission = Submission(job_id=job_id, candidate_id=candidate_id, **fields)
    _stamp_submission(submission)
    db.add(submission)
    db.flush()
    return submission


def upsert_submission(
    db: Session, job_id: uuid.UUID, candidate_id: uuid.UUID, fields: dict[str, Any]
) -> tuple[Submission, bool]:
    """Create the (job, candidate) submission or update it in place. Returns (submission, created)."""
    existing = find_submission(db, job_id, candidate_id)
    if existing:
        update_submission(db, existing, fields)
        return existing, False
    return create_submission(db, job_id, candidate_id, **fields), True


def _stamp_submission(submission: Submission) -> None:
    column = STAGE_TIMESTAMPS.get((submission.stage or "").lower())
    if column and getattr(submission, column) is None:
        setattr(submission, column, _utcnow())
    if submission.status == SubmissionStatus.SENT and submission.submitted_at is None:
        submission.submitted_at = _utcnow()


def update_submission(db: Session, submission: Submission, changes: dict[str, Any]) -> list[str]:
    changed = _apply_changes(submission, changes)
    if "stage" in changed or "status" in changed:
        _stamp_submission(submission)
    db.flush()
    return changed


# ── Screening ─────────────────────────────────────────────────────────────────

def list_screening_questions(db: Session, job_id: uuid.UUID) -> list[ScreeningQuestion]:
    return (
        db.query(ScreeningQuestion)
        .filter(ScreeningQuestion.job_id == job_id)
        .order_by(ScreeningQuestion.order_index.asc(), ScreeningQuestion.created_at.asc())
        .all()
    )


def create_screening_question(db: Session, job_id: uuid.UUID, **fields: Any) -> ScreeningQuestion:
    question = ScreeningQuestion(job_id=job_id, **fields)
    db.add(question)
    db.flush()
    return question


def upsert_screening_response(
    db: Session,
    submission_id: uuid.UUID,
    question_id: uuid.UUID,
    answer: Optional[str],
    is_correct: Optional[bool],
) -> ScreeningResponse:
    response = (
        db.query(ScreeningResponse)
        .filter(
            ScreeningResponse.submission_id == submission_id,
            ScreeningResponse.question_id == question_id,
        )
        .first()
    )
    if response is None:
        response = ScreeningResponse(submission_id=submission_id, question_id=question_id)
        db.add(response)
    response.answer = answer
    response.is_correct = is_correct
    response.answered_at = _utcnow()
    db.flush()
    return response


# ── Sequence ──────────────────────────────────────────────────────────────────

def list_sequences(db: Session, active_only: bool = False) -> list[Sequence]:
    query = db.query(Sequence)
    if active_only:
        query = query.filter(Sequence.is_active.is_(True))
    return query.order_by(Sequence.created_at.desc()).all()


def get_sequence(db: Session, sequence_id: uuid.UUID) -> Optional[Sequence]:
    return db.get(Sequence, sequence_id)


def create_sequence(db: Session, **fields: Any) -> Sequence:
    sequence = Sequence(**fields)
    db.add(sequence)
    db.flush()
    return sequence


def enroll_contact(
    db: Session,
    sequence: Sequence,
    contact: Contact,
    deal_id: Optional[uuid.UUID] = None,
    personalization_data: Optional[dict] = None,
) -> SequenceRun:
    """
    Start a contact on a sequence. Opted-out contacts are refused with
    ValueError; a second run for the same pair raises IntegrityError.
    """
    if contact.do_not_contact:
        raise ValueError("Contact has opted out of outreach")
    run = SequenceRun(
        sequence_id=sequence.id,
        contact_id=contact.id,
        deal_id=deal_id,
        state=SequenceRunState.PENDING,
        current_step=0,
        personalization_data=personalization_data or {},
        started_at=_utcnow(),
    )
    db.add(run)
    db.flush()
    logger.info("Contact %s enrolled in sequence %s.", contact.id, sequence.name)
    return run


def list_sequence_runs(
    db: Session,
    sequence_id: uuid.UUID,
    states: Optional[Iterable[SequenceRunState]] = None,
) -> list[SequenceRun]:
    query = db.query(SequenceRun).filter(SequenceRun.sequence_id == sequence_id)
    if states:
        query = query.filter(SequenceRun.state.in_(list(states)))
    return query.order_by(SequenceRun.created_at.asc()).all()


def get_sequence_run(db: Session, run_id: uuid.UUID) -> Optional[SequenceRun]:
    return db.get(SequenceRun, run_id)


def stop_sequence_run(db: Session, run: SequenceRun, state: SequenceRunState, reason: str) -> SequenceRun:
    run.state = state
    run.stopped_at = _utcnow()
    run.stop_reason = reason[:255]
    db.flush()
    logger.info("Sequence run %s → %s (%s)", run.id, state.value, reason)
    return run


def recent_reply_activities(db: Session, sequence_id: uuid.UUID, days: int = 7) -> list[Activity]:
    """Reply activities logged in the last `days` for contacts enrolled in the sequence."""
    contact_ids = select(SequenceRun.contact_id).where(SequenceRun.sequence_id == sequence_id)
    cutoff = _utcnow() - timedelta(days=days)
    return (
        db.query(Activity)
        .filter(
            Activity.subject_type == "contact",
            Activity.type == ActivityType.EMAIL,
            Activity.title.like("Reply:%"),
            Activity.occurred_at > cutoff,
            Activity.subject_id.in_(contact_ids),
        )
        .order_by(Activity.occurred_at.desc())
        .all()
    )


# ── Email templates / ICPs ────────────────────────────────────────────────────

def list_email_templates(db: Session, category: Optional[str] = None, active_only: bool = True) -> list[EmailTemplate]:
    query = db.query(EmailTemplate)
    if category:
        query = query.filter(EmailTemplate.category == category)
    if active_only:
        query = query.filter(EmailTemplate.is_active.is_(True))
    return query.order_by(EmailTemplate.name.asc()).all()


def get_email_template(db: Session, template_id: uuid.UUID) -> Optional[EmailTemplate]:
    return db.get(EmailTemplate, template_id)


def create_email_template(db: Session, **fields: Any) -> EmailTemplate:
    template = EmailTemplate(**fields)
    db.add(template)
    db.flush()
    return template


def list_icps(db: Session, active_only: bool = True) -> list[ICP]:
    query = db.query(ICP)
    if active_only:
        query = query.filter(ICP.is_active.is_(True))
    return query.order_by(ICP.created_at.desc()).all()


def get_icp(db: Session, icp_id: uuid.UUID) -> Optional[ICP]:
    return db.get(ICP, icp_id)


def create_icp(db: Session, **fields: Any) -> ICP:
    icp = ICP(**fields)
    db.add(icp)
    db.flush()
    return icp


def list_companies_for_icp(db: Session, icp: ICP, limit: int = 500) -> list[Company]:
    """Pre-filter on industry in SQL; fine-grained matching is done by the caller."""
    query = db.query(Company)
    if icp.industry:
        query = query.filter(func.lower(Company.industry) == icp.industry.lower())
    return query.order_by(Company.created_at.desc()).limit(limit).all()


# ── Stats ─────────────────────────────────────────────────────────────────────

def pipeline_stats(db: Session) -> dict[str, Any]:
    """Aggregate counts for the dashboard: deals, jobs and submissions by state."""
    deals_by_stage = {stage.value: 0 for stage in DealStage}
    for stage, count in db.query(Deal.stage, func.count(Deal.id)).group_by(Deal.stage).all():
        if stage is not None:
            deals_by_stage[DealStage(stage).value] = count

    open_value = (
        db.query(func.coalesce(func.sum(Deal.value), 0))
        .filter(Deal.stage.notin_(list(CLOSED_DEAL_STAGES)))
        .scalar()
    )

    jobs_by_status = {status.value: 0 for status in JobStatus}
    for status, count in db.query(Job.status, func.count(Job.id)).group_by(Job.status).all():
        if status is not None:
            jobs_by_status[JobStatus(status).value] = count

    submissions_by_status = {status.value: 0 for status in SubmissionStatus}
    for status, count in db.query(Submission.status, func.count(Submission.id)).group_by(Submission.status).all():
        if status is not None:
            submissions_by_status[SubmissionStatus(status).value] = count

    return {
        "companies": db.query(Company).count(),
        "contacts": db.query(Contact).count(),
        "candidates": db.query(Candidate).count(),
        "deals_by_stage": deals_by_stage,
        "open_pipeline_value": float(open_value or 0),
        "jobs_by_status": jobs_by_status,
        "submissions_by_status": submissions_by_status,
    }
