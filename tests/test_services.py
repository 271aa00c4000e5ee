"""
tests/test_services.py — Unit tests for the business services.

Pure helpers (reply detection, matching, boolean search, template rendering,
normalization) run without a database; import, intake, screening and reply
processing use the SQLite session from conftest.py.
"""

import pytest

from app.db.models import (
    ICP,
    Activity,
    ActivityType,
    Candidate,
    Company,
    Job,
    PartnerStatus,
    ScreeningQuestion,
    SequenceRunState,
    SubmissionStatus,
)
from app.db.repository import (
    create_candidate,
    create_company,
    create_contact,
    create_job,
    create_screening_question,
    create_sequence,
    create_submission,
    enroll_contact,
    list_activities,
    list_submissions,
)
from app.ingestion.normalizer import (
    ImportValidationError,
    extract_domain,
    normalize_candidate,
    normalize_company,
    split_list,
    strip_html,
)
from app.outreach.replies import InboundEmail, process_inbound_email, sequence_reply_summary
from app.outreach.templates import extract_variables, render_template
from app.services.boolean_search import extract_key_terms, generate_boolean_queries
from app.services.import_service import import_candidates, import_companies
from app.services.intake_service import IntakeRequest, process_intake, years_from_bucket
from app.services.matching import (
    MatchCriteria,
    calculate_match,
    criteria_from_job,
    match_company_to_icp,
    parse_size_range,
    rank_matches,
    score_candidate_search,
)
from app.services.reply_detector import (
    NEGATIVE,
    OUT_OF_OFFICE,
    POSITIVE,
    QUESTION,
    UNSUBSCRIBE,
    detect_reply,
    extract_sentiment,
    get_recommended_action,
)
from app.services.screening import evaluate_answer, record_screening_answers


# ── Reply detection ───────────────────────────────────────────────────────────

class TestDetectReply:
    def test_positive_reply(self):
        analysis = detect_reply("Re: Our chat\nThanks for reaching out! I'm interested, let's talk next week.")
        assert analysis.is_reply is True
        assert analysis.reply_type == POSITIVE
        assert analysis.should_stop_sequence is True

    def test_negative_reply(self):
        analysis = detect_reply("Re: Partnership\nNo thanks, we are not looking right now.")
        assert analysis.reply_type == NEGATIVE
        assert analysis.should_stop_sequence is True

    def test_question_reply(self):
        analysis = detect_reply("Re: Intro\nWhat is your pricing?")
        assert analysis.reply_type == QUESTION

    def test_out_of_office_wins(self):
        analysis = detect_reply("I am out of the office until Monday and interested to talk then.")
        assert analysis.reply_type == OUT_OF_OFFICE
        assert analysis.confidence == 0.95

    def test_unsubscribe(self):
        analysis = detect_reply("Please remove me from your list.")
        assert analysis.reply_type == UNSUBSCRIBE
        assert analysis.should_stop_sequence is True

    def test_html_body_is_flattened(self):
        assert detect_reply("<div><p>Automatic reply: on vacation</p></div>").reply_type == OUT_OF_OFFICE

    def test_empty_content_is_not_a_reply(self):
        analysis = detect_reply("")
        assert analysis.is_reply is False
        assert analysis.reply_type is None

    def test_quoted_text_is_cut(self):
        analysis = detect_reply("Sounds good, let's talk.\nOn Mon, Jan 1 Sam wrote:\n> original pitch")
        assert analysis.extracted_text == "Sounds good, let's talk."


class TestSentimentAndActions:
    def test_positive_sentiment(self):
        sentiment = extract_sentiment("This is great, thanks!")
        assert sentiment.sentiment == "positive"
        assert sentiment.score == 1.0

    def test_empty_sentiment_is_neutral(self):
        assert extract_sentiment(None).sentiment == "neutral"

    def test_non_reply_continues_sequence(self):
        action = get_recommended_action(detect_reply(""))
        assert action.action == "Continue sequence as planned"
        assert action.priority == "low"

    def test_positive_reply_is_high_priority(self):
        action = get_recommended_action(detect_reply("Re: hi\nThanks for reaching out, I'm interested"))
        assert action.priority == "high"
        assert action.template


# ── Matching ──────────────────────────────────────────────────────────────────

def make_job(**fields):
    fields.setdefault("title", "Backend Engineer")
    fields.setdefault("requirements", ["Python", "AWS"])
    fields.setdefault("nice_to_haves", ["Docker"])
    fields.setdefault("experience_level", "senior")
    fields.setdefault("location", "Austin")
    fields.setdefault("location_type", "onsite")
    fields.setdefault("salary_min", 100000.0)
    fields.setdefault("salary_max", 150000.0)
    return Job(**fields)


def make_candidate(**fields):
    fields.setdefault("first_name", "Ada")
    fields.setdefault("skills", ["Python", "AWS", "Docker"])
    fields.setdefault("years_experience", 6)
    fields.setdefault("location", "Austin, TX")
    fields.setdefault("expected_salary_min", 110000.0)
    fields.setdefault("expected_salary_max", 130000.0)
    return Candidate(**fields)


class TestCalculateMatch:
    def test_perfect_match_scores_100(self):
        result = calculate_match(make_candidate(), criteria_from_job(make_job()))
        assert result.score == 100.0
        assert "Has required skill: Python" in result.reasons
        assert "Experience matches: 6 years" in result.reasons

    def test_strict_mode_disqualifies_missing_required_skill(self):
        result = calculate_match(make_candidate(skills=["Python"]), criteria_from_job(make_job(), mode="strict"))
        assert result.disqualified is True
        assert result.score == 0.0
        assert "Missing required skill: AWS" in result.reasons

    def test_balanced_mode_gives_partial_credit(self):
        result = calculate_match(make_candidate(skills=["Python"]), criteria_from_job(make_job()))
        assert result.disqualified is False
        assert 0 < result.score < 100

    def test_flexible_mode_credits_other_locations(self):
        candidate = make_candidate(location="Denver, CO")
        balanced = calculate_match(candidate, criteria_from_job(make_job(), mode="balanced"))
        flexible = calculate_match(candidate, criteria_from_job(make_job(), mode="flexible"))

        assert flexible.score > balanced.score
        assert "Different location but may relocate" in flexible.reasons

    def test_remote_job_accepts_any_location(self):
        result = calculate_match(
            make_candidate(location="Lisbon"),
            criteria_from_job(make_job(location_type="remote")),
        )
        assert result.score == 100.0

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            calculate_match(make_candidate(), MatchCriteria(mode="loose"))

    def test_rank_matches_filters_and_sorts(self):
        strong = make_candidate(email="a@example.com")
        weak = make_candidate(email="b@example.com", skills=[], years_experience=1, location="Paris")
        criteria = criteria_from_job(make_job())

        ranked = rank_matches([weak, strong], criteria, min_score=60)

        assert [c.email for c, _ in ranked] == ["a@example.com"]


class TestCandidateSearchScore:
    def test_all_signals(self):
        candidate = make_candidate(current_title="Data Engineer", skills=["Python"], years_experience=5)
        score = score_candidate_search(
            candidate, query="data engineer", skills=["python"], years_experience=5, location="austin",
        )
        assert score == 0.85

    def test_capped_at_one(self):
        candidate = make_candidate(current_title="python aws docker engineer")
        score = score_candidate_search(
            candidate, query="python aws docker engineer ada", skills=["python", "aws", "docker"],
            years_experience=6, location="austin",
        )
        assert score == 1.0


class TestIcpMatching:
    def _company(self, **fields):
        fields.setdefault("name", "Acme")
        fields.setdefault("industry", "Technology")
        fields.setdefault("location", "San Francisco, CA")
        fields.setdefault("size", "51-200")
        fields.setdefault("description", "We build with Python and Kubernetes")
        return Company(**fields)

    def _icp(self):
        return ICP(
            name="Tech Startups", industry="technology", geography="San Francisco",
            company_size_min=50, company_size_max=500, tech_keywords=["python"],
        )

    def test_full_match(self):
        match = match_company_to_icp(self._company(), self._icp())
        assert match.matches is True
        assert match.score == 1.0

    def test_partial_match(self):
        match = match_company_to_icp(self._company(industry="Retail"), self._icp())
        assert match.matches is False
        assert match.score == 0.75

    def test_size_ranges(self):
        assert parse_size_range("51-200") == (51, 200)
        assert parse_size_range("1000+") == (1000, None)
        assert parse_size_range("25") == (25, 25)
        assert parse_size_range("unknown") is None


# ── Boolean search ────────────────────────────────────────────────────────────

class TestBooleanSearch:
    def test_platform_queries_from_explicit_terms(self):
        queries = generate_boolean_queries(
            requirements=["Python", "AWS"], nice_to_haves=["Docker"], exclude=["Intern"], locations=["Remote"],
        )
        assert queries.linkedin == '"Python" AND "AWS" AND ("Docker") NOT ("Intern") AND ("Remote")'
        assert queries.google == (
            'site:linkedin.com/in OR site:github.com "Python" "AWS" ("Docker") -"Intern" ("Remote") '
            "(resume OR CV OR profile)"
        )
        assert queries.indeed == 'resume "Python" "AWS" (Docker) NOT Intern'
        assert queries.github == "Python AWS Docker language:* location:*"

    def test_terms_mined_from_job_description(self):
        must, bonus = extract_key_terms(
            "We need Python and AWS with 5+ years of experience. Nice to have: Docker, Kubernetes."
        )
        assert must == ["python", "aws", "5+ years experience"]
        assert bonus == ["docker", "kubernetes"]

    def test_short_terms_need_whole_words(self):
        assert extract_key_terms("Good communication and maintaining documents") == ([], [])

    def test_requires_some_input(self):
        with pytest.raises(ValueError):
            generate_boolean_queries()


# ── Templates ─────────────────────────────────────────────────────────────────

class TestTemplates:
    def test_extract_variables_in_order(self):
        assert extract_variables("Hi {{first_name}}", "{{ company_name }} and {{first_name}}") == [
            "first_name", "company_name",
        ]

    def test_render_fills_and_reports_missing(self):
        email = render_template(
            "Hello {{first_name}}",
            "Hi {{first_name}},\n\nWelcome to {{company}}.",
            {"first_name": "Ada"},
            sender_name="Sam",
        )
        assert email.subject == "Hello Ada"
        assert email.plain_body == "Hi Ada,\n\nWelcome to {{company}}."
        assert email.missing_variables == ["company"]
        assert "<p>Hi Ada,</p>" in email.html_body
        assert "<strong>Sam</strong>" in email.html_body

    def test_html_is_escaped(self):
        email = render_template(None, "Hi {{name}}", {"name": "<script>"})
        assert "&lt;script&gt;" in email.html_body
        assert email.subject == ""


# ── Normalizer ────────────────────────────────────────────────────────────────

class TestNormalizer:
    def test_company_aliases_and_numbers(self):
        company = normalize_company({
            "company_name": " Acme ",
            "website": "https://www.Acme.com/about",
            "hiring_volume": "1,200",
            "funding_amount": "$2,500,000",
            "partner_status": "Active",
        })
        assert company.name == "Acme"
        assert company.domain == "acme.com"
        assert company.hiring_volume == 1200
        assert company.funding_amount == 2500000.0
        assert company.partner_status == PartnerStatus.ACTIVE

    def test_company_requires_name(self):
        with pytest.raises(ImportValidationError, match="Company name is required"):
            normalize_company({"industry": "Retail"})

    def test_candidate_from_full_name(self):
        candidate = normalize_candidate({
            "name": "Ada King Lovelace",
            "email": "ADA@Example.com",
            "skills": "Python; python, SQL",
        })
        assert (candidate.first_name, candidate.last_name) == ("Ada", "King Lovelace")
        assert candidate.email == "ada@example.com"
        assert candidate.skills == ["Python", "SQL"]
        assert candidate.source == "import"

    def test_candidate_requires_email(self):
        with pytest.raises(ImportValidationError, match="First name, last name, and email are required"):
            normalize_candidate({"first_name": "Ada", "last_name": "Lovelace"})

    def test_helpers(self):
        assert strip_html("<p>Tom &amp; Jerry</p>") == "Tom & Jerry"
        assert extract_domain("https://www.acme.com:8080/x") == "acme.com"
        assert extract_domain("acme.io") == "acme.io"
        assert extract_domain(None) is None
        assert split_list("a, b;A|c") == ["a", "b", "c"]


# ── Bulk import ───────────────────────────────────────────────────────────────

class TestImport:
    def test_companies_partial_success(self, db):
        results = import_companies(db, [
            {"name": "Acme", "website": "acme.com"},
            {"name": "Beta"},
            {"industry": "Retail"},
        ])

        assert len(results.success) == 2
        assert results.failed == [{"data": {"industry": "Retail"}, "error": "Company name is required"}]
        assert results.message == "Import completed: 2 successful, 1 failed"
        assert len(list_activities(db, subject_type="company")) == 2

    def test_reimport_updates_existing_company(self, db):
        import_companies(db, [{"name": "Acme", "domain": "acme.com"}])
        results = import_companies(db, [{"name": "ACME", "domain": "acme.com", "industry": "Fintech"}])

        assert results.success[0]["action"] == "updated"
        assert db.query(Company).one().industry == "Fintech"

    def test_candidates_upsert_by_email(self, db):
        results = import_candidates(db, [
            {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"},
            {"first_name": "Ada", "last_name": "Lovelace", "email": "ADA@example.com", "phone": "555"},
            {"first_name": "No", "last_name": "Email"},
        ])

        assert [r["action"] for r in results.success] == ["created", "updated"]
        assert len(results.failed) == 1
        assert db.query(Candidate).one().phone == "555"


# ── Screening ─────────────────────────────────────────────────────────────────

class TestScreening:
    def _submission(self, db):
        company = create_company(db, name="Acme")
        job = create_job(db, company_id=company.id, title="Engineer")
        candidate = create_candidate(db, first_name="Ada", last_name="Lovelace", email="ada@example.com")
        return job, create_submission(db, job.id, candidate.id)

    def test_evaluate_answer(self):
        question = ScreeningQuestion(question="Authorized to work?", expected_answer="Yes")
        assert evaluate_answer(question, "y") is True
        assert evaluate_answer(question, "No") is False
        assert evaluate_answer(question, None) is False
        assert evaluate_answer(ScreeningQuestion(question="Why us?"), "Because") is None

    def test_failed_knockout_rejects_submission(self, db):
        job, submission = self._submission(db)
        knockout = create_screening_question(
            db, job.id, question="Authorized to work?", is_knockout=True, expected_answer="yes",
        )
        create_screening_question(db, job.id, question="Portfolio link", is_required=True)

        outcome = record_screening_answers(db, submission, {knockout.id: "No"})

        assert outcome.answered == 1
        assert outcome.knocked_out is True
        assert outcome.missing_required == ["Portfolio link"]
        assert submission.status == SubmissionStatus.REJECTED
        assert "Authorized to work?" in submission.rejection_reason

    def test_passing_answers_keep_status(self, db):
        job, submission = self._submission(db)
        knockout = create_screening_question(
            db, job.id, question="Authorized to work?", is_knockout=True, expected_answer="yes",
        )

        outcome = record_screening_answers(db, submission, {knockout.id: "Yes"})

        assert outcome.knocked_out is False
        assert submission.status == SubmissionStatus.DRAFT


# ── Widget intake ─────────────────────────────────────────────────────────────

class TestIntake:
    def test_bucket_years(self):
        assert years_from_bucket("3-5") == 4
        assert years_from_bucket("10+") == 12
        assert years_from_bucket(None) is None

    def test_new_applicant_with_job(self, db):
        company = create_company(db, name="Acme")
        job = create_job(db, company_id=company.id, title="Engineer")

        result = process_intake(db, IntakeRequest(
            name="Ada Lovelace", email="Ada@Example.com", experience="3-5", job_id=job.id, message="Hello",
        ))

        assert result.created is True
        assert result.submission_created is True
        assert result.candidate.email == "ada@example.com"
        assert result.candidate.years_experience == 4
        assert result.candidate.source_details["widget_submission"] is True
        assert list_activities(db, subject_type="candidate")[0].title == "Widget submission"

    def test_repeat_applicant_refreshes_contact_fields_only(self, db):
        company = create_company(db, name="Acme")
        job = create_job(db, company_id=company.id, title="Engineer")
        process_intake(db, IntakeRequest(name="Ada Lovelace", email="ada@example.com", current_role="Engineer",
                                         message="First", job_id=job.id))

        result = process_intake(db, IntakeRequest(name="Ada L", email="ada@example.com", phone="555",
                                                  message="Second", job_id=job.id))

        assert result.created is False
        assert result.submission_created is False
        assert result.candidate.phone == "555"
        assert result.candidate.current_title == "Engineer"
        assert result.candidate.notes == "First"
        assert len(list_submissions(db, job_id=job.id)) == 1

    def test_email_required(self, db):
        with pytest.raises(ImportValidationError):
            process_intake(db, IntakeRequest(name="Ada", email="  "))


# ── Reply processing ──────────────────────────────────────────────────────────

class TestReplyProcessing:
    def _enrolled(self, db, email="grace@acme.com"):
        contact = create_contact(db, first_name="Grace", email=email)
        sequence = create_sequence(db, name="Intro", steps=[{"day": 0}, {"day": 3}])
        return contact, sequence, enroll_contact(db, sequence, contact)

    def test_positive_reply_marks_run_replied(self, db):
        contact, _, run = self._enrolled(db)

        result = process_inbound_email(db, InboundEmail(
            content="Re: hi\nThanks for reaching out, I'm interested - let's talk", sequence_run_id=run.id,
        ))

        assert result["sequence_run_stopped"] is True
        assert run.state == SequenceRunState.REPLIED
        activity = db.query(Activity).filter(Activity.subject_id == contact.id).one()
        assert activity.title == "Reply: positive"
        assert activity.type == ActivityType.EMAIL

    def test_out_of_office_stops_without_reply_state(self, db):
        _, _, run = self._enrolled(db)
        process_inbound_email(db, InboundEmail(content="I am out of the office this week", sequence_run_id=run.id))
        assert run.state == SequenceRunState.STOPPED

    def test_unsubscribe_opts_contact_out(self, db):
        contact, _, run = self._enrolled(db)
        other_sequence = create_sequence(db, name="Follow-up", steps=[{"day": 0}])
        other_run = enroll_contact(db, other_sequence, contact)

        process_inbound_email(db, InboundEmail(content="Please unsubscribe me", sequence_run_id=run.id))
        db.refresh(contact)

        assert contact.do_not_contact is True
        assert run.state == SequenceRunState.STOPPED
        assert other_run.state == SequenceRunState.STOPPED

    def test_reply_summary(self, db):
        contact, sequence, run = self._enrolled(db)
        other = create_contact(db, first_name="Alan", email="alan@acme.com")
        enroll_contact(db, sequence, other)
        process_inbound_email(db, InboundEmail(
            content="Re: hi\nThanks for reaching out, I'm interested", sequence_run_id=run.id,
        ))

        summary = sequence_reply_summary(db, sequence.id)

        assert summary["stats"] == {"total_active": 1, "total_replies": 1, "reply_rate": "100.0%"}
