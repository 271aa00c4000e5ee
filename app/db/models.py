"""
app/db/models.py — SQLAlchemy ORM models for the recruiting / BD CRM.

Tables:
  - Company            → a client or prospect organisation
  - Contact            → a person at a Company
  - Deal               → a BD opportunity with a Company
  - Job                → an open role at a Company
  - Candidate          → a person who may be placed into Jobs
  - Submission         → one Candidate in one Job's pipeline
  - Activity           → free-form audit trail entry about any entity
  - Sequence           → an outreach cadence (ordered steps)
  - SequenceRun        → one Contact's progress through a Sequence
  - ICP                → ideal company profile used for targeting
  - ScreeningQuestion  → per-Job knockout / screening question
  - ScreeningResponse  → a Submission's answer to a ScreeningQuestion
  - EmailTemplate      → reusable outreach copy with {{variable}} placeholders

app/db/schema.sql is the PostgreSQL DDL for the same tables (triggers,
extensions and enum types included). Column types below carry PostgreSQL
variants so the models also run on SQLite in tests.
"""

import enum
import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Computed,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

EMBEDDING_DIMENSIONS = 1536

# TEXT[] / JSONB on PostgreSQL, JSON everywhere else
StringArray = JSON().with_variant(ARRAY(Text), "postgresql")
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


# ── Base ─────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _pg_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Enum column stored by value, bound to the named PostgreSQL type."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=_enum_values,
        validate_strings=True,
        create_constraint=True,
    )


def _uuid_pk() -> Column:
    return Column(Uuid, primary_key=True, default=uuid.uuid4)


def _created_at() -> Column:
    return Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


def _updated_at() -> Column:
    return Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ── Enums ────────────────────────────────────────────────────────────────────

class PartnerStatus(str, enum.Enum):
    LEAD = "lead"
    PROSPECT = "prospect"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CHURNED = "churned"


class DealStage(str, enum.Enum):
    PROSPECT = "prospect"
    DISCOVERY = "discovery"
    PROPOSAL = "proposal"
    WON = "won"
    LOST = "lost"


class JobStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class SubmissionStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"


class ActivityType(str, enum.Enum):
    EMAIL = "email"
    NOTE = "note"
    CALL = "call"
    STATUS = "status"
    MEETING = "meeting"
    TASK = "task"


class SequenceChannel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"
    LINKEDIN = "linkedin"


class SequenceRunState(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    REPLIED = "replied"
    STOPPED = "stopped"
    COMPLETED = "completed"


CLOSED_DEAL_STAGES = (DealStage.WON, DealStage.LOST)


# ── Models ───────────────────────────────────────────────────────────────────

class Company(Base):
    __tablename__ = "companies"

    id = _uuid_pk()
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True, unique=True)
    industry = Column(String(100), nullable=True)
    size = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    headquarters = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    signals = Column(JsonDocument, default=dict)
    partner_status = Column(
        _pg_enum(PartnerStatus, "partner_status"),
        default=PartnerStatus.LEAD,
        nullable=True,
    )
    hiring_urgency = Column(String(50), nullable=True)
    hiring_volume = Column(Integer, nullable=True)
    growth_stage = Column(String(50), nullable=True)
    funding_amount = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    website_url = Column(String(500), nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    # Relationships (rows are removed by ON DELETE CASCADE, not by the ORM)
    contacts = relationship("Contact", back_populates="company", passive_deletes=True)
    deals = relationship("Deal", back_populates="company", passive_deletes=True)
    jobs = relationship("Job", back_populates="company", passive_deletes=True)

    __table_args__ = (
        Index("idx_companies_partner_status", "partner_status"),
        Index("idx_companies_industry", "industry"),
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"


class Contact(Base):
    __tablename__ = "contacts"

    id = _uuid_pk()
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    full_name = Column(
        String(255),
        Computed("first_name || ' ' || COALESCE(last_name, '')", persisted=True),
    )
    title = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(50), nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    do_not_contact = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    company = relationship("Company", back_populates="contacts")
    sequence_runs = relationship("SequenceRun", back_populates="contact", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Contact id={self.id} email={self.email!r}>"


class Deal(Base):
    __tablename__ = "deals"

    id = _uuid_pk()
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    stage = Column(_pg_enum(DealStage, "deal_stage"), default=DealStage.PROSPECT, nullable=True)
    value = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    probability = Column(Integer, nullable=True)
    owner_id = Column(Uuid, nullable=True)
    next_step = Column(Text, nullable=True)
    close_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    lost_reason = Column(Text, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    company = relationship("Company", back_populates="deals")

    __table_args__ = (
        CheckConstraint(
            "probability >= 0 AND probability <= 100",
            name="deals_probability_check",
        ),
        Index("idx_deals_stage", "stage"),
    )

    def __repr__(self) -> str:
        return f"<Deal id={self.id} stage={self.stage} value={self.value}>"


class Job(Base):
    __tablename__ = "jobs"

    id = _uuid_pk()
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    department = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    location_type = Column(String(50), nullable=True)      # remote / hybrid / onsite
    employment_type = Column(String(50), nullable=True)
    experience_level = Column(String(50), nullable=True)
    salary_min = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    salary_max = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    salary_currency = Column(String(3), default="USD")
    jd_text = Column(Text, nullable=True)
    requirements = Column(StringArray, default=list)
    nice_to_haves = Column(StringArray, default=list)
    benefits = Column(StringArray, default=list)
    status = Column(_pg_enum(JobStatus, "job_status"), default=JobStatus.DRAFT, nullable=True)
    urgency = Column(String(50), nullable=True)
    openings = Column(Integer, default=1)
    embedding = Column(Vector(EMBEDDING_DIMENSIONS), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    company = relationship("Company", back_populates="jobs")
    submissions = relationship("Submission", back_populates="job", passive_deletes=True)
    screening_questions = relationship(
        "ScreeningQuestion",
        back_populates="job",
        passive_deletes=True,
        order_by="ScreeningQuestion.order_index",
    )

    __table_args__ = (Index("idx_jobs_status", "status"),)

    def __repr__(self) -> str:
        return f"<Job id={self.id} title={self.title!r} status={self.status}>"


class Candidate(Base):
    __tablename__ = "candidates"

    id = _uuid_pk()
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    full_name = Column(
        String(255),
        Computed("COALESCE(first_name, '') || ' ' || COALESCE(last_name, '')", persisted=True),
    )
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    current_title = Column(String(255), nullable=True)
    current_company = Column(String(255), nullable=True)
    years_experience = Column(Integer, nullable=True)
    resume_url = Column(String(500), nullable=True)
    resume_text = Column(Text, nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    github_url = Column(String(500), nullable=True)
    portfolio_url = Column(String(500), nullable=True)
    skills = Column(StringArray, default=list)
    education = Column(JsonDocument, default=list)
    experience = Column(JsonDocument, default=list)
    source = Column(String(100), nullable=True, index=True)
    source_details = Column(JsonDocument, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(StringArray, default=list)
    embedding = Column(Vector(EMBEDDING_DIMENSIONS), nullable=True)
    willing_to_relocate = Column(Boolean, nullable=True)
    expected_salary_min = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    expected_salary_max = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    notice_period = Column(String(50), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    submissions = relationship("Submission", back_populates="candidate", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Candidate id={self.id} email={self.email!r}>"


class Submission(Base):
    __tablename__ = "submissions"

    id = _uuid_pk()
    job_id = Column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=True, index=True)
    candidate_id = Column(Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=True, index=True)
    match_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    match_reasons = Column(JsonDocument, default=list)
    brief_md = Column(Text, nullable=True)
    status = Column(
        _pg_enum(SubmissionStatus, "submission_status"),
        default=SubmissionStatus.DRAFT,
        nullable=True,
    )
    stage = Column(String(50), default="new")
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    interviewed_at = Column(DateTime(timezone=True), nullable=True)
    offered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    job = relationship("Job", back_populates="submissions")
    candidate = relationship("Candidate", back_populates="submissions")
    screening_responses = relationship(
        "ScreeningResponse", back_populates="submission", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="submissions_job_id_candidate_id_key"),
        Index("idx_submissions_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Submission id={self.id} job_id={self.job_id} candidate_id={self.candidate_id}>"


class Activity(Base):
    __tablename__ = "activities"

    id = _uuid_pk()
    actor_id = Column(Uuid, nullable=True)
    # Polymorphic reference: no foreign key on purpose
    subject_type = Column(String(50), nullable=False)
    subject_id = Column(Uuid, nullable=False)
    related_type = Column(String(50), nullable=True)
    related_id = Column(Uuid, nullable=True)
    type = Column(_pg_enum(ActivityType, "activity_type"), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    payload = Column(JsonDocument, default=dict)
    is_automated = Column(Boolean, default=False, nullable=False)
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    __table_args__ = (
        Index("idx_activities_subject", "subject_type", "subject_id"),
        Index("idx_activities_occurred_at", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity id={self.id} {self.subject_type}:{self.subject_id} type={self.type}>"


class Sequence(Base):
    __tablename__ = "sequences"

    id = _uuid_pk()
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    channel = Column(
        _pg_enum(SequenceChannel, "sequence_channel"),
        default=SequenceChannel.EMAIL,
        nullable=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    steps = Column(JsonDocument, nullable=False)
    settings = Column(JsonDocument, default=dict)
    created_by = Column(Uuid, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    runs = relationship("SequenceRun", back_populates="sequence", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Sequence id={self.id} name={self.name!r}>"


class SequenceRun(Base):
    __tablename__ = "sequence_runs"

    id = _uuid_pk()
    sequence_id = Column(Uuid, ForeignKey("sequences.id", ondelete="CASCADE"), nullable=True)
    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=True, index=True)
    deal_id = Column(Uuid, ForeignKey("deals.id", ondelete="SET NULL"), nullable=True)
    state = Column(
        _pg_enum(SequenceRunState, "sequence_run_state"),
        default=SequenceRunState.PENDING,
        nullable=True,
    )
    current_step = Column(Integer, default=0)
    last_event = Column(JsonDocument, nullable=True)
    personalization_data = Column(JsonDocument, default=dict)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    stopped_at = Column(DateTime(timezone=True), nullable=True)
    stop_reason = Column(String(255), nullable=True)
    metrics = Column(JsonDocument, default=dict)
    created_at = _created_at()
    updated_at = _updated_at()

    sequence = relationship("Sequence", back_populates="runs")
    contact = relationship("Contact", back_populates="sequence_runs")

    __table_args__ = (
        UniqueConstraint("sequence_id", "contact_id", name="sequence_runs_sequence_id_contact_id_key"),
        Index("idx_sequence_runs_state", "state"),
    )

    def __repr__(self) -> str:
        return f"<SequenceRun id={self.id} state={self.state} step={self.current_step}>"


class ICP(Base):
    __tablename__ = "icps"

    id = _uuid_pk()
    name = Column(String(255), nullable=False)
    industry = Column(String(100), nullable=True)
    geography = Column(String(255), nullable=True)
    company_size_min = Column(Integer, nullable=True)
    company_size_max = Column(Integer, nullable=True)
    tech_keywords = Column(StringArray, default=list)
    hiring_signals = Column(StringArray, default=list)
    other_criteria = Column(JsonDocument, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    def __repr__(self) -> str:
        return f"<ICP id={self.id} name={self.name!r}>"


class ScreeningQuestion(Base):
    __tablename__ = "screening_questions"

    id = _uuid_pk()
    job_id = Column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=True)
    question = Column(Text, nullable=False)
    question_type = Column(String(50), default="text")   # text / yes_no / multiple_choice
    options = Column(StringArray, default=list)
    is_required = Column(Boolean, default=True, nullable=False)
    is_knockout = Column(Boolean, default=False, nullable=False)
    expected_answer = Column(Text, nullable=True)
    order_index = Column(Integer, default=0)
    created_at = _created_at()
    updated_at = _updated_at()

    job = relationship("Job", back_populates="screening_questions")

    def __repr__(self) -> str:
        return f"<ScreeningQuestion id={self.id} knockout={self.is_knockout}>"


class ScreeningResponse(Base):
    __tablename__ = "screening_responses"

    id = _uuid_pk()
    submission_id = Column(Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=True)
    question_id = Column(Uuid, ForeignKey("screening_questions.id", ondelete="CASCADE"), nullable=True)
    answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=True)
    answered_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = _created_at()
    updated_at = _updated_at()

    submission = relationship("Submission", back_populates="screening_responses")
    question = relationship("ScreeningQuestion")

    __table_args__ = (
        UniqueConstraint(
            "submission_id", "question_id",
            name="screening_responses_submission_id_question_id_key",
        ),
    )


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = _uuid_pk()
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=False)
    variables = Column(StringArray, default=list)
    category = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    def __repr__(self) -> str:
        return f"<EmailTemplate id={self.id} name={self.name!r}>"
