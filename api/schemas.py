"""
api/schemas.py — Pydantic request/response models for all API endpoints.

These are the API contract — separate from DB ORM models so we can
control exactly what data is exposed over HTTP. Embedding vectors are
never serialized.

Create models require only the columns the database requires; Update
models make everything optional and are applied with exclude_unset.
"""

import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import (
    ActivityType,
    DealStage,
    JobStatus,
    PartnerStatus,
    SequenceChannel,
    SequenceRunState,
    SubmissionStatus,
)


# ── Shared ────────────────────────────────────────────────────────────────────

class OKResponse(BaseModel):
    """Generic success acknowledgement."""
    success: bool = True
    message: str


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


# ── Company ───────────────────────────────────────────────────────────────────

class CompanyFields(BaseModel):
    domain: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    headquarters: Optional[str] = None
    description: Optional[str] = None
    signals: Optional[dict[str, Any]] = None
    partner_status: Optional[PartnerStatus] = None
    hiring_urgency: Optional[str] = None
    hiring_volume: Optional[int] = None
    growth_stage: Optional[str] = None
    funding_amount: Optional[float] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None


class CompanyCreate(CompanyFields):
    name: str = Field(min_length=1)


class CompanyUpdate(CompanyFields):
    name: Optional[str] = Field(default=None, min_length=1)


class CompanyOut(CompanyFields, ORMModel):
    id: uuid.UUID
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CompanyListItem(CompanyOut):
    active_jobs_count: int = 0
    contacts_count: int = 0


class CompanyImportRequest(BaseModel):
    # Checked by the route so a malformed list gets the import-specific message
    companies: Any = None


class ImportResponse(BaseModel):
    success: bool = True
    results: dict[str, Any]
    message: str


# ── Contact ───────────────────────────────────────────────────────────────────

class ContactCreate(BaseModel):
    company_id: Optional[uuid.UUID] = None
    first_name: str = Field(min_length=1)
    last_name: Optional[str] = None
    title: Optional[str] = None
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    is_primary: bool = False
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    company_id: Optional[uuid.UUID] = None
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = Field(default=None, min_length=3)
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    is_primary: Optional[bool] = None
    do_not_contact: Optional[bool] = None
    notes: Optional[str] = None


class ContactOut(ContactCreate, ORMModel):
    id: uuid.UUID
    full_name: Optional[str] = None
    do_not_contact: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Deal ──────────────────────────────────────────────────────────────────────

class DealFields(BaseModel):
    company_id: Optional[uuid.UUID] = None
    stage: Optional[DealStage] = None
    value: Optional[float] = None
    probability: Optional[int] = None
    owner_id: Optional[uuid.UUID] = None
    next_step: Optional[str] = None
    close_date: Optional[date] = None
    notes: Optional[str] = None
    lost_reason: Optional[str] = None


class DealCreate(DealFields):
    name: str = Field(min_length=1)


class DealUpdate(DealFields):
    id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(default=None, min_length=1)


class DealOut(DealFields, ORMModel):
    id: uuid.UUID
    name: str
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Job ───────────────────────────────────────────────────────────────────────

class JobFields(BaseModel):
    company_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    location: Optional[str] = None
    location_type: Optional[str] = None
    employment_type: Optional[str] = None
    experience_level: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: Optional[str] = None
    jd_text: Optional[str] = None
    requirements: Optional[list[str]] = None
    nice_to_haves: Optional[list[str]] = None
    benefits: Optional[list[str]] = None
    status: Optional[JobStatus] = None
    urgency: Optional[str] = None
    openings: Optional[int] = None


class JobCreate(JobFields):
    title: str = Field(min_length=1)


class JobUpdate(JobFields):
    title: Optional[str] = Field(default=None, min_length=1)


class JobOut(JobFields, ORMModel):
    id: uuid.UUID
    title: str
    published_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobDetail(JobOut):
    company: Optional[CompanyOut] = None


class CompanyDetail(CompanyOut):
    jobs: list[JobOut] = []
    contacts: list[ContactOut] = []
    deals: list[DealOut] = []


# ── Candidate ─────────────────────────────────────────────────────────────────

class CandidateFields(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    years_experience: Optional[int] = None
    resume_url: Optional[str] = None
    resume_text: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    skills: Optional[list[str]] = None
    education: Optional[list[dict[str, Any]]] = None
    experience: Optional[list[dict[str, Any]]] = None
    source: Optional[str] = None
    source_details: Optional[dict[str, Any]] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    willing_to_relocate: Optional[bool] = None
    expected_salary_min: Optional[float] = None
    expected_salary_max: Optional[float] = None
    notice_period: Optional[str] = None


class CandidateCreate(CandidateFields):
    email: str = Field(min_length=3)


class CandidateUpdate(CandidateFields):
    email: Optional[str] = Field(default=None, min_length=3)


class CandidateOut(CandidateFields, ORMModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CandidateListItem(CandidateOut):
    submission_count: int = 0


class CandidateImportRequest(BaseModel):
    candidates: Any = None


class CandidateSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    skills: Optional[list[str]] = None
    years_experience: Optional[int] = Field(default=None, alias="yearsExperience")
    location: Optional[str] = None
    semantic: bool = Field(default=False, alias="useSemanticSearch")
    limit: int = Field(default=20, ge=1, le=100)


class ScoredCandidate(CandidateOut):
    similarity_score: Optional[float] = None


class CandidateSearchResponse(BaseModel):
    candidates: list[ScoredCandidate]
    total: int
    search_type: str


# ── Submission ────────────────────────────────────────────────────────────────

class SubmissionFields(BaseModel):
    match_score: Optional[float] = None
    match_reasons: Optional[list[Any]] = None
    brief_md: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    stage: Optional[str] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None


class SubmissionCreate(SubmissionFields):
    job_id: uuid.UUID
    candidate_id: uuid.UUID


class SubmissionUpdate(SubmissionFields):
    id: Optional[uuid.UUID] = None


class SubmissionOut(SubmissionFields, ORMModel):
    id: uuid.UUID
    job_id: Optional[uuid.UUID] = None
    candidate_id: Optional[uuid.UUID] = None
    submitted_at: Optional[datetime] = None
    interviewed_at: Optional[datetime] = None
    offered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CandidateDetail(CandidateOut):
    submissions: list[SubmissionOut] = []


# ── Matching ──────────────────────────────────────────────────────────────────

class CandidateMatch(BaseModel):
    candidate: CandidateOut
    score: float
    reasons: list[str]


# ── Screening ─────────────────────────────────────────────────────────────────

class ScreeningQuestionCreate(BaseModel):
    question: str = Field(min_length=1)
    question_type: str = "text"
    options: list[str] = []
    is_required: bool = True
    is_knockout: bool = False
    expected_answer: Optional[str] = None
    order_index: int = 0


class ScreeningQuestionOut(ScreeningQuestionCreate, ORMModel):
    id: uuid.UUID
    job_id: Optional[uuid.UUID] = None
    options: Optional[list[str]] = None


class ScreeningAnswer(BaseModel):
    question_id: uuid.UUID
    answer: Optional[str] = None


class ScreeningAnswersRequest(BaseModel):
    answers: list[ScreeningAnswer] = Field(min_length=1)


class ScreeningOutcomeOut(BaseModel):
    answered: int
    knocked_out: bool
    failed_questions: list[str]
    missing_required: list[str]
    submission: SubmissionOut


# ── Sequence ──────────────────────────────────────────────────────────────────

class SequenceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    channel: SequenceChannel = SequenceChannel.EMAIL
    is_active: bool = True
    steps: list[dict[str, Any]]
    settings: dict[str, Any] = {}


class SequenceOut(SequenceCreate, ORMModel):
    id: uuid.UUID
    channel: Optional[SequenceChannel] = None
    settings: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EnrollRequest(BaseModel):
    contact_id: uuid.UUID
    deal_id: Optional[uuid.UUID] = None
    personalization_data: dict[str, Any] = {}


class SequenceRunOut(ORMModel):
    id: uuid.UUID
    sequence_id: Optional[uuid.UUID] = None
    contact_id: Optional[uuid.UUID] = None
    deal_id: Optional[uuid.UUID] = None
    state: Optional[SequenceRunState] = None
    current_step: Optional[int] = None
    personalization_data: Optional[dict[str, Any]] = None
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stop_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InboundEmailIn(BaseModel):
    content: str
    id: Optional[str] = None
    sequence_run_id: Optional[uuid.UUID] = None
    contact_id: Optional[uuid.UUID] = None
    subject: Optional[str] = None
    from_email: Optional[str] = None
    received_at: Optional[datetime] = None


class CheckRepliesRequest(BaseModel):
    emails: Optional[list[InboundEmailIn]] = None


class CheckRepliesResponse(BaseModel):
    success: bool = True
    processed: int
    results: list[dict[str, Any]]


# ── Activity ──────────────────────────────────────────────────────────────────

class ActivityCreate(BaseModel):
    subject_type: str = Field(min_length=1)
    subject_id: uuid.UUID
    type: ActivityType
    title: Optional[str] = None
    description: Optional[str] = None
    related_type: Optional[str] = None
    related_id: Optional[uuid.UUID] = None
    payload: dict[str, Any] = {}
    actor_id: Optional[uuid.UUID] = None


class ActivityOut(ActivityCreate, ORMModel):
    id: uuid.UUID
    payload: Optional[dict[str, Any]] = None
    is_automated: bool = False
    occurred_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ── Email templates ───────────────────────────────────────────────────────────

class EmailTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    subject: Optional[str] = None
    body: str = Field(min_length=1)
    variables: Optional[list[str]] = None
    category: Optional[str] = None
    is_active: bool = True


class EmailTemplateOut(EmailTemplateCreate, ORMModel):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RenderRequest(BaseModel):
    variables: dict[str, Any] = {}
    sender_name: Optional[str] = None


class RenderedEmailOut(BaseModel):
    subject: str
    html_body: str
    plain_body: str
    missing_variables: list[str]


# ── ICP ───────────────────────────────────────────────────────────────────────

class IcpCreate(BaseModel):
    name: str = Field(min_length=1)
    industry: Optional[str] = None
    geography: Optional[str] = None
    company_size_min: Optional[int] = None
    company_size_max: Optional[int] = None
    tech_keywords: list[str] = []
    hiring_signals: list[str] = []
    other_criteria: dict[str, Any] = {}
    is_active: bool = True


class IcpOut(IcpCreate, ORMModel):
    id: uuid.UUID
    tech_keywords: Optional[list[str]] = None
    hiring_signals: Optional[list[str]] = None
    other_criteria: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class IcpCompanyMatch(BaseModel):
    company: CompanyOut
    score: float
    reasons: list[str]


# ── Widget ────────────────────────────────────────────────────────────────────

class WidgetIntakeRequest(BaseModel):
    name: str = ""
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    current_role: Optional[str] = None
    experience: Optional[str] = None
    message: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    source: str = "widget"


class WidgetIntakeResponse(BaseModel):
    success: bool = True
    candidate_id: uuid.UUID
    message: str = "Application received successfully"


# ── AI / tools ────────────────────────────────────────────────────────────────

class BooleanSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    jd_text: Optional[str] = Field(default=None, alias="jobDescription")
    requirements: Optional[list[str]] = None
    nice_to_haves: Optional[list[str]] = Field(default=None, alias="niceToHaves")
    exclude: Optional[list[str]] = None
    locations: Optional[list[str]] = None


class BooleanSearchResponse(BaseModel):
    linkedin: str
    google: str
    indeed: str
    github: str
    must: list[str]
    bonus: list[str]
    exclude: list[str]
    tips: list[str]


class JobDescriptionRequest(BaseModel):
    title: Optional[str] = None
    skills: Optional[list[str]] = None


class JobDescriptionResponse(BaseModel):
    job_description: str
    generated_by: str


class RankCandidatesRequest(BaseModel):
    job_description: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    candidate_ids: list[uuid.UUID] = Field(min_length=1)


class CandidateRankingOut(BaseModel):
    id: str
    score: int
    reason: str = ""


class RankCandidatesResponse(BaseModel):
    rankings: list[CandidateRankingOut]
