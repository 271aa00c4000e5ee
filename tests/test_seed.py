"""
tests/test_seed.py — Tests for the demo data seeder.
"""

from sqlalchemy import func, select

from app.db.models import Candidate, Company, Deal, DealStage, Job, JobStatus, Submission
from app.services.seed_service import clear_database, seed_database


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class TestSeedDatabase:
    def test_counts(self, db):
        summary = seed_database(db, seed=1)

        assert summary.companies == 20 and _count(db, Company) == 20
        assert summary.contacts == 50
        assert summary.deals == 15
        assert summary.jobs == 6
        assert summary.candidates == 120 and _count(db, Candidate) == 120
        assert summary.submissions + summary.duplicate_submissions == 50
        assert summary.duplicate_submissions > 0
        assert _count(db, Submission) == summary.submissions
        assert (summary.templates, summary.sequences, summary.icps) == (3, 1, 1)

    def test_duplicate_pairs_are_skipped(self, db):
        # 6 jobs x 120 candidates gives 720 distinct pairs, so one more draw must repeat
        summary = seed_database(db, seed=4, submissions=721)

        assert summary.duplicate_submissions >= 1
        assert summary.submissions + summary.duplicate_submissions == 721
        assert _count(db, Submission) == summary.submissions
        pairs = db.execute(select(Submission.job_id, Submission.candidate_id)).all()
        assert len(set(pairs)) == len(pairs)

    def test_jobs_are_published(self, db):
        seed_database(db, seed=2)
        statuses = set(db.scalars(select(Job.status)))
        assert statuses == {JobStatus.PUBLISHED}

    def test_closed_deal_probabilities(self, db):
        seed_database(db, seed=3)
        for deal in db.scalars(select(Deal)):
            if deal.stage == DealStage.WON:
                assert deal.probability == 100
            elif deal.stage == DealStage.LOST:
                assert deal.probability == 0

    def test_reseeding_replaces_data(self, db):
        seed_database(db, seed=4)
        seed_database(db, seed=4)
        assert _count(db, Company) == 20


def test_clear_database(db):
    seed_database(db, seed=5)
    clear_database(db)
    db.expunge_all()
    assert _count(db, Company) == 0
    assert _count(db, Candidate) == 0
