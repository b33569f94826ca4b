"""
Tests for seeder.py - idempotent bulk import with optional history backfill.
"""
from datetime import datetime, timezone

import pytest

from cv_tracker.models.company import Company
from cv_tracker.models.cv_submission import CVType
from cv_tracker.services import seeder, submissions
from cv_tracker.services.errors import ValidationError
from cv_tracker.services.seeder import SeedEntry

from tests.fixtures.cv_fixtures import count_submissions


class TestSeed:
    def test_same_domain_in_two_batches(self, db):
        """First batch creates, second reports the existing row."""
        first = seeder.seed(db, [SeedEntry(domain="acme.example", name="Acme")])
        second = seeder.seed(db, [SeedEntry(domain="acme.example", name="Renamed")])

        assert [r.status for r in first] == ["created"]
        assert [r.status for r in second] == ["existing"]
        assert first[0].company.id == second[0].company.id
        assert second[0].company.name == "Acme"
        assert db.query(Company).count() == 1

    def test_profile_url_only_entries(self, db):
        results = seeder.seed(
            db, [SeedEntry(linkedin_url="https://www.linkedin.com/company/globex")]
        )
        assert results[0].status == "created"
        assert results[0].company.name == "https://www.linkedin.com/company/globex"

    def test_empty_batch_is_rejected(self, db):
        with pytest.raises(ValidationError):
            seeder.seed(db, [])

    def test_invalid_entry_rejects_whole_batch_before_writes(self, db):
        with pytest.raises(ValidationError):
            seeder.seed(db, [SeedEntry(domain="valid.example"), SeedEntry(name="No identity")])
        assert db.query(Company).count() == 0


class TestBackfill:
    ENGLISH_AT = datetime(2025, 5, 1, 9, 30, tzinfo=timezone.utc)
    GERMAN_AT = datetime(2025, 3, 20, 16, 0, tzinfo=timezone.utc)

    def _entry(self):
        return SeedEntry(
            domain="initech.example",
            english_submitted_at=self.ENGLISH_AT,
            english_job_title="Backend Engineer",
            german_submitted_at=self.GERMAN_AT,
        )

    def test_history_is_recorded(self, db):
        [result] = seeder.seed(db, [self._entry()])

        assert len(result.submissions) == 2
        latest_en = submissions.latest_for(db, result.company.id, CVType.ENGLISH)
        assert latest_en.job_title == "Backend Engineer"
        assert submissions.exists_at(db, result.company.id, CVType.GERMAN, self.GERMAN_AT)

    def test_reseeding_does_not_duplicate_history(self, db):
        seeder.seed(db, [self._entry()])
        [again] = seeder.seed(db, [self._entry()])

        assert again.status == "existing"
        assert again.submissions == []
        assert count_submissions(db) == 2
