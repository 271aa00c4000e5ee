"""
app/services/seed_service.py — Demo data for local development.

seed_database() clears every table and inserts a realistic demo set:
20 companies, 50 contacts, 15 deals, 6 published jobs, 120 candidates,
~50 submissions (random job/candidate pairs; repeats are skipped),
3 email templates, 1 outreach sequence and 1 ICP.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from faker import Faker
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import (
    ICP,
    Activity,
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
    SequenceChannel,
    SequenceRun,
    Submission,
    SubmissionStatus,
)
from app.db.repository import (
    create_candidate,
    create_company,
    create_contact,
    create_deal,
    create_email_template,
    create_icp,
    create_job,
    create_sequence,
    create_submission,
)
from app.ingestion.normalizer import extract_domain

logger = logging.getLogger(__name__)

# Children first so foreign keys never block a delete
CLEAR_ORDER = [
    ScreeningResponse, ScreeningQuestion, SequenceRun, Sequence, Activity,
    Submission, Candidate, Job, Deal, Contact, Company, ICP, EmailTemplate,
]

COMPANIES = [
    ("TechCorp Solutions", "Technology", "51-200", "series-b", "high"),
    ("FinanceHub Inc", "Finance", "201-500", "growth", "medium"),
    ("HealthTech Innovations", "Healthcare", "11-50", "series-a", "high"),
    ("EduLearn Platform", "Education", "51-200", "seed", "low"),
    ("GreenEnergy Systems", "Energy", "501-1000", "enterprise", "medium"),
    ("RetailFlow Commerce", "Retail", "201-500", "growth", "high"),
    ("CloudScale Infrastructure", "Technology", "1001+", "enterprise", "high"),
    ("DataMind Analytics", "Technology", "11-50", "series-a", "medium"),
    ("SecureNet Systems", "Cybersecurity", "51-200", "series-b", "high"),
    ("BioPharm Innovations", "Healthcare", "201-500", "growth", "low"),
    ("LogiChain Solutions", "Logistics", "101-200", "series-b", "medium"),
    ("SmartHome Tech", "Technology", "11-50", "seed", "high"),
    ("AdTech Dynamics", "Marketing", "51-200", "series-a", "medium"),
    ("FoodTech Express", "Food & Beverage", "201-500", "growth", "high"),
    ("AI Ventures", "Technology", "1-10", "seed", "low"),
    ("PropTech Solutions", "Real Estate", "51-200", "series-b", "medium"),
    ("GameStudio Pro", "Entertainment", "101-200", "series-a", "high"),
    ("InsureTech Plus", "Insurance", "201-500", "growth", "medium"),
    ("TravelTech Hub", "Travel", "11-50", "seed", "low"),
    ("MediaStream Networks", "Media", "501-1000", "enterprise", "high"),
]

# title, department, experience level, salary range, skills
JOBS = [
    ("Senior Software Engineer", "Engineering", "senior", (120000, 180000),
     ["JavaScript", "React", "Node.js", "PostgreSQL", "AWS", "Docker"]),
    ("Product Manager", "Product", "mid", (110000, 160000),
     ["Product Strategy", "Agile", "User Research", "Data Analysis", "Roadmap Planning"]),
    ("Data Scientist", "Data", "senior", (130000, 190000),
     ["Python", "Machine Learning", "SQL", "TensorFlow", "Statistics", "R"]),
    ("DevOps Engineer", "Operations", "senior", (115000, 165000),
     ["Kubernetes", "AWS", "CI/CD", "Terraform", "Docker", "Jenkins"]),
    ("UX Designer", "Design", "mid", (95000, 130000),
     ["Figma", "User Research", "Prototyping", "Design Systems", "Adobe XD"]),
    ("Marketing Manager", "Marketing", "mid", (85000, 120000),
     ["Digital Marketing", "SEO", "Content Strategy", "Analytics", "Social Media"]),
]

SUBMISSION_STAGES = ["new", "screening", "shortlisted", "interviewed", "offered", "hired", "rejected"]

MATCH_REASONS = [
    {"reason": "Skills match", "weight": 0.4},
    {"reason": "Experience level", "weight": 0.3},
    {"reason": "Location match", "weight": 0.2},
    {"reason": "Salary expectations", "weight": 0.1},
]

TEMPLATES = [
    ("Initial Outreach", "Partnership Opportunity with {{company_name}}",
     "Hi {{first_name}},\n\nI noticed {{company_name}} is growing rapidly...", "outreach"),
    ("Follow Up", "Following up on recruitment partnership",
     "Hi {{first_name}},\n\nI wanted to follow up on my previous email...", "outreach"),
    ("Candidate Screening", "Exciting opportunity at {{company_name}}",
     "Hi {{candidate_name}},\n\nWe have an exciting {{job_title}} role...", "screening"),
]


@dataclass
class SeedSummary:
    companies: int = 0
    contacts: int = 0
    deals: int = 0
    jobs: int = 0
    candidates: int = 0
    submissions: int = 0
    duplicate_submissions: int = 0
    templates: int = 0
    sequences: int = 0
    icps: int = 0


def clear_database(db: Session) -> None:
    for model in CLEAR_ORDER:
        db.query(model).delete(synchronize_session=False)
    db.flush()
    logger.info("Cleared existing data.")


def _slug(name: str) -> str:
    return "".join(name.lower().split())


def _location(fake: Faker) -> str:
    return f"{fake.city()}, {fake.state()}"


def _deal_probability(fake: Faker, stage: DealStage) -> int:
    if stage == DealStage.WON:
        return 100
    if stage == DealStage.LOST:
        return 0
    return fake.random_int(20, 99)


def seed_database(db: Session, seed: Optional[int] = None, submissions: int = 50) -> SeedSummary:
    """
    Replace all data with a demo set.

    Args:
        db:          Session; the caller's scope commits.
        seed:        Makes Faker output reproducible.
        submissions: Number of random (job, candidate) draws.
    """
    fake = Faker("en_US")
    if seed is not None:
        Faker.seed(seed)
        fake.seed_instance(seed)

    summary = SeedSummary()
    clear_database(db)

    # ── Companies ────────────────────────────────────────────────────────────
    companies = []
    for name, industry, size, growth_stage, urgency in COMPANIES:
        domain = f"{_slug(name)}.com"
        companies.append(create_company(
            db,
            name=name,
            domain=domain,
            website_url=f"https://{domain}",
            industry=industry,
            size=size,
            location=_location(fake),
            growth_stage=growth_stage,
            hiring_urgency=urgency,
            partner_status=fake.random_element([PartnerStatus.LEAD, PartnerStatus.PROSPECT, PartnerStatus.ACTIVE]),
            signals={
                "tech_stack": ["React", "Node.js", "AWS", "PostgreSQL"][: fake.random_int(1, 4)],
                "hiring_signals": fake.boolean(),
                "recent_funding": fake.boolean(chance_of_getting_true=30),
            },
        ))
    summary.companies = len(companies)

    # ── Contacts ─────────────────────────────────────────────────────────────
    for i in range(50):
        company = fake.random_element(companies)
        first, last = fake.first_name(), fake.last_name()
        create_contact(
            db,
            company_id=company.id,
            first_name=first,
            last_name=last,
            email=f"{first.lower()}.{last.lower()}{i}@{extract_domain(company.website_url)}",
            title=fake.job(),
            phone=fake.phone_number(),
            linkedin_url=f"https://linkedin.com/in/{first.lower()}{last.lower()}{i}",
            is_primary=i % 5 == 0,
        )
        summary.contacts += 1

    # ── Deals ────────────────────────────────────────────────────────────────
    for company in companies[:15]:
        stage = fake.random_element(list(DealStage))
        create_deal(
            db,
            company_id=company.id,
            name=f"Recruitment Partnership - {company.name}",
            stage=stage,
            value=float(fake.random_int(10000, 110000)),
            probability=_deal_probability(fake, stage),
            next_step=fake.sentence(),
        )
        summary.deals += 1

    # ── Jobs ─────────────────────────────────────────────────────────────────
    jobs = []
    for company, (title, department, level, (low, high), skills) in zip(companies, JOBS):
        jobs.append(create_job(
            db,
            company_id=company.id,
            title=title,
            department=department,
            location=_location(fake),
            location_type=fake.random_element(["remote", "hybrid", "onsite"]),
            employment_type="full-time",
            experience_level=level,
            salary_min=float(low),
            salary_max=float(high),
            status=JobStatus.PUBLISHED,
            urgency=fake.random_element(["high", "medium", "low"]),
            openings=fake.random_int(1, 3),
            requirements=skills,
            jd_text="\n\n".join(fake.paragraphs(3)),
        ))
    summary.jobs = len(jobs)

    # ── Candidates ───────────────────────────────────────────────────────────
    candidates = []
    for i in range(120):
        first, last = fake.first_name(), fake.last_name()
        _, _, _, _, skills = fake.random_element(JOBS)
        candidates.append(create_candidate(
            db,
            first_name=first,
            last_name=last,
            email=f"{first.lower()}.{last.lower()}{i}@example.com",
            phone=fake.phone_number(),
            location=_location(fake),
            current_title=fake.job(),
            current_company=fake.company(),
            years_experience=fake.random_int(1, 15),
            skills=list(skills),
            source=fake.random_element(["linkedin", "indeed", "referral", "website"]),
            expected_salary_min=float(fake.random_int(80000, 130000)),
            expected_salary_max=float(fake.random_int(130000, 180000)),
        ))
    summary.candidates = len(candidates)

    # ── Submissions ──────────────────────────────────────────────────────────
    for _ in range(submissions):
        job = fake.random_element(jobs)
        candidate = fake.random_element(candidates)
        savepoint = db.begin_nested()
        try:
            create_submission(
                db,
                job.id,
                candidate.id,
                match_score=float(fake.random_int(60, 100)),
                status=fake.random_element(list(SubmissionStatus)),
                stage=fake.random_element(SUBMISSION_STAGES),
                match_reasons=MATCH_REASONS,
            )
            savepoint.commit()
            summary.submissions += 1
        except IntegrityError:
            savepoint.rollback()
            summary.duplicate_submissions += 1

    # ── Templates / sequence / ICP ───────────────────────────────────────────
    for name, subject, body, category in TEMPLATES:
        create_email_template(db, name=name, subject=subject, body=body, category=category, is_active=True)
        summary.templates += 1

    create_sequence(
        db,
        name="BD Outreach Campaign",
        description="Standard 3-step outreach sequence for new prospects",
        channel=SequenceChannel.EMAIL,
        is_active=True,
        steps=[
            {"order": 1, "delay_days": 0, "template": {"subject": "Partnership Opportunity", "body": "Initial outreach..."}},
            {"order": 2, "delay_days": 3, "template": {"subject": "Following up", "body": "Follow up message..."}},
            {"order": 3, "delay_days": 7, "template": {"subject": "Final check-in", "body": "Final message..."}},
        ],
    )
    summary.sequences = 1

    create_icp(
        db,
        name="Tech Startups",
        industry="Technology",
        geography="United States",
        company_size_min=50,
        company_size_max=500,
        tech_keywords=["React", "Node.js", "AWS", "Python"],
        is_active=True,
    )
    summary.icps = 1

    logger.info(
        "Seeded %d companies, %d contacts, %d deals, %d jobs, %d candidates, %d submissions (%d duplicates skipped).",
        summary.companies, summary.contacts, summary.deals, summary.jobs,
        summary.candidates, summary.submissions, summary.duplicate_submissions,
    )
    return summary
