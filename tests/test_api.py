"""
tests/test_api.py — HTTP tests for the FastAPI routers.

Requests go through TestClient with get_db overridden to the per-test
SQLite session (see conftest.py). Error responses are always
{"error": "<message>"}.
"""

import uuid
from unittest.mock import patch

from fastapi.testclient import TestClient

from api.main import app


def create_company(client, **fields):
    fields.setdefault("name", "Acme Corp")
    response = client.post("/api/companies", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


def create_job(client, company_id, **fields):
    fields.setdefault("title", "Backend Engineer")
    response = client.post("/api/jobs", json={"company_id": company_id, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def create_candidate(client, **fields):
    fields.setdefault("first_name", "Ada")
    fields.setdefault("last_name", "Lovelace")
    fields.setdefault("email", "ada@example.com")
    response = client.post("/api/candidates", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


# ── System ────────────────────────────────────────────────────────────────────

class TestSystem:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_cors_is_open(self, client):
        response = client.options(
            "/api/widget/intake",
            headers={"Origin": "https://careers.example.org", "Access-Control-Request-Method": "POST"},
        )
        assert response.headers["access-control-allow-origin"] == "*"


# ── Error shape ───────────────────────────────────────────────────────────────

class TestErrors:
    def test_not_found(self, client):
        response = client.get(f"/api/companies/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Company not found"}

    def test_invalid_body_is_400(self, client):
        response = client.post("/api/companies", json={"industry": "Retail"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request body"
        assert body["details"]

    def test_constraint_violation_is_400(self, client):
        response = client.post("/api/deals", json={"name": "Too sure", "probability": 150})
        assert response.status_code == 400
        assert "CHECK constraint failed" in response.json()["error"]

    def test_unexpected_error_is_500(self, db, client):
        unsafe = TestClient(app, raise_server_exceptions=False)
        with patch("api.endpoints.tools_routes.pipeline_stats", side_effect=RuntimeError("boom")):
            response = unsafe.get("/api/stats")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


# ── Companies ─────────────────────────────────────────────────────────────────

class TestCompanies:
    def test_crud(self, client):
        company = create_company(client, domain="acme.com", industry="Technology")

        detail = client.get(f"/api/companies/{company['id']}").json()
        assert detail["name"] == "Acme Corp"
        assert detail["jobs"] == [] and detail["contacts"] == [] and detail["deals"] == []

        updated = client.put(f"/api/companies/{company['id']}", json={"industry": "Fintech"}).json()
        assert updated["industry"] == "Fintech"
        assert updated["domain"] == "acme.com"

        response = client.delete(f"/api/companies/{company['id']}")
        assert response.json() == {"success": True, "message": "Company deleted successfully"}
        assert client.get(f"/api/companies/{company['id']}").status_code == 404

    def test_list_includes_counts_and_filters(self, client):
        acme = create_company(client, industry="Technology")
        create_company(client, name="Beta", industry="Retail")
        create_job(client, acme["id"], status="published")
        client.post("/api/contacts", json={"company_id": acme["id"], "first_name": "Grace", "email": "grace@acme.com"})

        rows = client.get("/api/companies", params={"industry": "Technology"}).json()

        assert len(rows) == 1
        assert rows[0]["active_jobs_count"] == 1
        assert rows[0]["contacts_count"] == 1

    def test_search_needs_two_characters(self, client):
        create_company(client)
        assert client.get("/api/companies/search", params={"q": "a"}).json() == []
        assert [c["name"] for c in client.get("/api/companies/search", params={"q": "acm"}).json()] == ["Acme Corp"]

    def test_import_reports_each_record(self, client):
        response = client.post("/api/companies/import", json={"companies": [
            {"name": "Acme", "website": "https://acme.com"},
            {"name": "Beta", "industry": "Retail"},
            {"industry": "No name"},
        ]})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Import completed: 2 successful, 1 failed"
        assert body["results"]["total"] == 3
        assert body["results"]["failed"][0]["error"] == "Company name is required"

    def test_import_rejects_non_list(self, client):
        response = client.post("/api/companies/import", json={"companies": "acme"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid companies data"}

    def test_delete_cascades(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])
        candidate = create_candidate(client)
        client.post("/api/submissions", json={"job_id": job["id"], "candidate_id": candidate["id"]})

        client.delete(f"/api/companies/{company['id']}")

        assert client.get(f"/api/jobs/{job['id']}").status_code == 404
        assert client.get("/api/submissions").json() == []
        assert client.get(f"/api/candidates/{candidate['id']}").status_code == 200


# ── Contacts ──────────────────────────────────────────────────────────────────

class TestContacts:
    def test_unknown_company(self, client):
        response = client.post(
            "/api/contacts", json={"company_id": str(uuid.uuid4()), "first_name": "Grace", "email": "g@x.com"},
        )
        assert response.status_code == 404

    def test_email_lowercased_and_full_name(self, client):
        contact = client.post(
            "/api/contacts", json={"first_name": "Grace", "last_name": "Hopper", "email": "Grace@Navy.mil"},
        ).json()
        assert contact["email"] == "grace@navy.mil"
        assert client.get(f"/api/contacts/{contact['id']}").json()["full_name"] == "Grace Hopper"

    def test_update_contact(self, client):
        contact = client.post("/api/contacts", json={"first_name": "Grace", "email": "grace@navy.mil"}).json()

        response = client.put(f"/api/contacts/{contact['id']}", json={"title": "CTO", "email": "Grace@Acme.com"})

        assert response.status_code == 200
        updated = response.json()
        assert updated["title"] == "CTO"
        assert updated["email"] == "grace@acme.com"
        assert updated["first_name"] == "Grace"
        assert client.get(f"/api/contacts/{contact['id']}").json()["title"] == "CTO"

    def test_update_unknown_contact(self, client):
        response = client.put(f"/api/contacts/{uuid.uuid4()}", json={"title": "CTO"})
        assert response.status_code == 404
        assert response.json() == {"error": "Contact not found"}


# ── Deals ─────────────────────────────────────────────────────────────────────

class TestDeals:
    def test_patch_requires_id(self, client):
        response = client.patch("/api/deals", json={"stage": "won"})
        assert response.status_code == 400
        assert response.json() == {"error": "Deal ID is required"}

    def test_patch_unknown_deal(self, client):
        response = client.patch("/api/deals", json={"id": str(uuid.uuid4()), "stage": "won"})
        assert response.status_code == 404

    def test_stage_change_is_logged(self, client):
        deal = client.post("/api/deals", json={"name": "Retainer", "probability": 30}).json()
        assert deal["stage"] == "prospect"

        moved = client.patch("/api/deals", json={"id": deal["id"], "stage": "won"}).json()

        assert moved["stage"] == "won"
        assert moved["probability"] == 30
        assert moved["closed_at"] is not None
        activities = client.get("/api/activities", params={"subject_type": "deal", "subject_id": deal["id"]}).json()
        change = [a for a in activities if a["title"] == "Deal stage changed"][0]
        assert change["payload"] == {"from": "prospect", "to": "won"}

    def test_null_stage_is_ignored(self, client):
        deal = client.post("/api/deals", json={"name": "Retainer", "stage": "proposal"}).json()
        moved = client.patch("/api/deals", json={"id": deal["id"], "stage": None, "next_step": "Call"}).json()
        assert moved["stage"] == "proposal"
        assert moved["next_step"] == "Call"

    def test_filter_and_delete(self, client):
        client.post("/api/deals", json={"name": "A", "stage": "won"})
        deal = client.post("/api/deals", json={"name": "B"}).json()

        assert [d["name"] for d in client.get("/api/deals", params={"stage": "won"}).json()] == ["A"]
        assert client.delete(f"/api/deals/{deal['id']}").json()["message"] == "Deal deleted successfully"
        assert client.get(f"/api/deals/{deal['id']}").status_code == 404
        activities = client.get("/api/activities", params={"subject_type": "deal", "subject_id": deal["id"]}).json()
        deleted = [a for a in activities if a["title"] == "Deal deleted"][0]
        assert deleted["payload"] == {"stage": "prospect"}


# ── Jobs / matching / screening ───────────────────────────────────────────────

class TestJobs:
    def test_unknown_company(self, client):
        response = client.post("/api/jobs", json={"company_id": str(uuid.uuid4()), "title": "Engineer"})
        assert response.status_code == 404
        assert response.json() == {"error": "Company not found"}

    def test_detail_includes_company(self, client):
        company = create_company(client)
        job = create_job(client, company["id"], requirements=["Python"])
        detail = client.get(f"/api/jobs/{job['id']}").json()
        assert detail["company"]["name"] == "Acme Corp"
        assert detail["requirements"] == ["Python"]

    def test_matches(self, client):
        company = create_company(client)
        job = create_job(client, company["id"], requirements=["Python"], location_type="remote")
        create_candidate(client, skills=["Python"])
        create_candidate(client, email="bob@example.com", first_name="Bob", skills=["Java"])

        strict = client.get(f"/api/jobs/{job['id']}/matches", params={"mode": "strict", "min_score": 0}).json()

        assert [m["candidate"]["email"] for m in strict] == ["ada@example.com"]
        assert strict[0]["score"] == 100.0

    def test_matches_rejects_unknown_mode(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])
        assert client.get(f"/api/jobs/{job['id']}/matches", params={"mode": "loose"}).status_code == 400

    def test_screening_knockout(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])
        candidate = create_candidate(client)
        question = client.post(f"/api/jobs/{job['id']}/screening-questions", json={
            "question": "Authorized to work?", "question_type": "yes_no",
            "is_knockout": True, "expected_answer": "yes",
        }).json()
        submission = client.post(
            "/api/submissions", json={"job_id": job["id"], "candidate_id": candidate["id"]},
        ).json()

        outcome = client.post(
            f"/api/submissions/{submission['id']}/screening-responses",
            json={"answers": [{"question_id": question["id"], "answer": "no"}]},
        ).json()

        assert outcome["knocked_out"] is True
        assert outcome["submission"]["status"] == "rejected"


# ── Candidates ────────────────────────────────────────────────────────────────

class TestCandidates:
    def test_detail_and_update(self, client):
        candidate = create_candidate(client, skills=["Python"])
        updated = client.put(f"/api/candidates/{candidate['id']}", json={"current_title": "Staff Engineer"}).json()
        assert updated["current_title"] == "Staff Engineer"
        assert updated["skills"] == ["Python"]
        assert client.get(f"/api/candidates/{candidate['id']}").json()["submissions"] == []

    def test_list_skill_filter(self, client):
        create_candidate(client, skills=["Python"])
        create_candidate(client, email="bob@example.com", skills=["Java"])
        rows = client.get("/api/candidates", params={"skills": "python,go"}).json()
        assert [r["email"] for r in rows] == ["ada@example.com"]
        assert rows[0]["submission_count"] == 0

    def test_import(self, client):
        response = client.post("/api/candidates/import", json={"candidates": [
            {"name": "Ada Lovelace", "email": "ada@example.com", "skills": "Python, SQL"},
            {"first_name": "Nobody"},
        ]})
        body = response.json()
        assert body["message"] == "Import completed: 1 successful, 1 failed"

    def test_keyword_search(self, client):
        create_candidate(client, current_title="Data Engineer", years_experience=6)
        create_candidate(client, email="bob@example.com", first_name="Bob", current_title="Designer")

        body = client.post("/api/candidates/search", json={"query": "data", "yearsExperience": 5}).json()

        assert body["search_type"] == "keyword"
        assert body["total"] == 1
        assert body["candidates"][0]["email"] == "ada@example.com"

    def test_semantic_search_scores(self, client):
        create_candidate(client, current_title="Data Engineer", skills=["Python"])
        body = client.post(
            "/api/candidates/search", json={"query": "data", "skills": ["python"], "useSemanticSearch": True},
        ).json()
        assert body["search_type"] == "semantic"
        assert body["candidates"][0]["similarity_score"] > 0


# ── Submissions ───────────────────────────────────────────────────────────────

class TestSubmissions:
    def test_upsert_and_patch(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])
        candidate = create_candidate(client)
        payload = {"job_id": job["id"], "candidate_id": candidate["id"], "match_score": 70}

        first = client.post("/api/submissions", json=payload).json()
        second = client.post("/api/submissions", json={**payload, "match_score": 90}).json()
        assert second["id"] == first["id"]
        assert second["match_score"] == 90

        patched = client.patch("/api/submissions", json={"id": first["id"], "status": "sent"}).json()
        assert patched["status"] == "sent"
        assert patched["submitted_at"] is not None

    def test_patch_requires_id(self, client):
        response = client.patch("/api/submissions", json={"status": "sent"})
        assert response.json() == {"error": "Submission ID is required"}

    def test_unknown_candidate(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])
        response = client.post("/api/submissions", json={"job_id": job["id"], "candidate_id": str(uuid.uuid4())})
        assert response.status_code == 404


# ── Sequences ─────────────────────────────────────────────────────────────────

class TestSequences:
    def _setup(self, client):
        contact = client.post("/api/contacts", json={"first_name": "Grace", "email": "grace@acme.com"}).json()
        sequence = client.post("/api/sequences", json={"name": "Intro", "steps": [{"day": 0}]}).json()
        run = client.post(f"/api/sequences/{sequence['id']}/runs", json={"contact_id": contact["id"]}).json()
        return contact, sequence, run

    def test_enroll_once(self, client):
        contact, sequence, run = self._setup(client)
        assert run["state"] == "pending"
        again = client.post(f"/api/sequences/{sequence['id']}/runs", json={"contact_id": contact["id"]})
        assert again.status_code == 400

    def test_check_replies_unsubscribe(self, client):
        contact, sequence, run = self._setup(client)

        body = client.post("/api/sequences/check-replies", json={"emails": [
            {"id": "m1", "content": "Please unsubscribe me", "sequence_run_id": run["id"]},
        ]}).json()

        assert body["processed"] == 1
        assert body["results"][0]["sequence_run_stopped"] is True
        runs = client.get(f"/api/sequences/{sequence['id']}/runs").json()
        assert runs[0]["state"] == "stopped"
        assert client.get(f"/api/contacts/{contact['id']}").json()["do_not_contact"] is True

        refused = client.post(f"/api/sequences/{sequence['id']}/runs", json={"contact_id": contact["id"]})
        assert refused.status_code == 400

    def test_check_replies_requires_emails(self, client):
        response = client.post("/api/sequences/check-replies", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid emails data"}

    def test_check_replies_rejects_non_list(self, client):
        response = client.post("/api/sequences/check-replies", json={"emails": "m1"})
        assert response.status_code == 400

    def test_check_replies_empty_batch(self, client):
        response = client.post("/api/sequences/check-replies", json={"emails": []})
        assert response.status_code == 200
        assert response.json()["processed"] == 0

    def test_reply_summary(self, client):
        _, sequence, _ = self._setup(client)
        assert client.get("/api/sequences/check-replies").json() == {"error": "Sequence ID is required"}

        summary = client.get("/api/sequences/check-replies", params={"sequence_id": sequence["id"]}).json()
        assert summary["stats"]["total_active"] == 1
        assert summary["stats"]["reply_rate"] == "0.0%"


# ── Templates / ICPs / activities ─────────────────────────────────────────────

class TestTemplates:
    def test_variables_extracted_and_rendered(self, client):
        template = client.post("/api/email-templates", json={
            "name": "Intro", "subject": "Hi {{first_name}}", "body": "Hello {{first_name}} at {{company_name}}",
        }).json()
        assert template["variables"] == ["first_name", "company_name"]

        rendered = client.post(
            f"/api/email-templates/{template['id']}/render",
            json={"variables": {"first_name": "Ada"}},
        ).json()
        assert rendered["subject"] == "Hi Ada"
        assert rendered["missing_variables"] == ["company_name"]

    def test_unknown_template(self, client):
        response = client.post(f"/api/email-templates/{uuid.uuid4()}/render", json={})
        assert response.json() == {"error": "Template not found"}


class TestIcps:
    def test_company_matches(self, client):
        create_company(client, industry="Technology", location="Austin, TX", size="51-200")
        create_company(client, name="Shop", industry="Retail")
        icp = client.post("/api/icps", json={"name": "Tech", "industry": "technology", "geography": "Austin"}).json()

        matches = client.get(f"/api/icps/{icp['id']}/companies").json()

        assert [m["company"]["name"] for m in matches] == ["Acme Corp"]
        assert matches[0]["score"] == 1.0


class TestActivities:
    def test_record_manual_activity(self, client):
        subject = str(uuid.uuid4())
        created = client.post("/api/activities", json={
            "subject_type": "candidate", "subject_id": subject, "type": "call", "title": "Intro call",
        })
        assert created.status_code == 201
        assert created.json()["is_automated"] is False
        assert len(client.get("/api/activities", params={"subject_id": subject}).json()) == 1


# ── Widget ────────────────────────────────────────────────────────────────────

class TestWidget:
    def test_intake_creates_candidate_and_submission(self, client):
        company = create_company(client)
        job = create_job(client, company["id"])

        response = client.post("/api/widget/intake", json={
            "name": "Ada Lovelace", "email": "ada@example.com", "experience": "6-10", "job_id": job["id"],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Application received successfully"
        candidate = client.get(f"/api/candidates/{body['candidate_id']}").json()
        assert candidate["years_experience"] == 8
        assert len(candidate["submissions"]) == 1

    def test_intake_requires_email(self, client):
        response = client.post("/api/widget/intake", json={"name": "Ada", "email": ""})
        assert response.status_code == 400


# ── Tools ─────────────────────────────────────────────────────────────────────

class TestTools:
    def test_generate_boolean(self, client):
        body = client.post("/api/generate-boolean", json={"requirements": ["Python"], "niceToHaves": ["AWS"]}).json()
        assert body["linkedin"] == '"Python" AND ("AWS")'
        assert body["tips"]

    def test_generate_boolean_requires_input(self, client):
        assert client.post("/api/generate-boolean", json={}).status_code == 400

    def test_job_description_template_fallback(self, client):
        body = client.post(
            "/api/generate-job-description", json={"title": "Data Engineer", "skills": ["SQL"]},
        ).json()
        assert body["generated_by"] == "template"
        assert body["job_description"].startswith("# Data Engineer Position")

    def test_job_description_requires_fields(self, client):
        response = client.post("/api/generate-job-description", json={"title": "Data Engineer"})
        assert response.json() == {"error": "Title and skills array are required"}

    def test_rank_candidates_by_keywords(self, client):
        strong = create_candidate(client, skills=["Python", "Kafka"], current_title="Data Engineer")
        weak = create_candidate(client, email="bob@example.com", skills=["Photoshop"], current_title="Designer")

        body = client.post("/api/rank-candidates", json={
            "job_description": "Data Engineer with Python and Kafka",
            "candidate_ids": [weak["id"], strong["id"]],
        }).json()

        assert [r["id"] for r in body["rankings"]] == [strong["id"], weak["id"]]

    def test_rank_candidates_needs_description(self, client):
        candidate = create_candidate(client)
        response = client.post("/api/rank-candidates", json={"candidate_ids": [candidate["id"]]})
        assert response.json() == {"error": "Job description is required"}

    def test_stats(self, client):
        create_company(client)
        stats = client.get("/api/stats").json()
        assert stats["companies"] == 1
        assert set(stats["deals_by_stage"]) == {"prospect", "discovery", "proposal", "won", "lost"}
