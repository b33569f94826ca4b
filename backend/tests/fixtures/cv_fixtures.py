"""
Shared test data for the CV submission tests.

Keeps fixed instants and seed batches in one place so scenarios read the
same across the service and API tests.
"""
from datetime import datetime, timedelta, timezone

from cv_tracker.models.cv_submission import CVSubmission


# A fixed "now" with a non-midnight time of day on purpose.
FIXED_NOW = datetime(2025, 6, 15, 14, 37, 21, 250000, tzinfo=timezone.utc)


def days_ago(days: int, now: datetime = FIXED_NOW) -> datetime:
    return now - timedelta(days=days)


def fixed_clock() -> datetime:
    return FIXED_NOW


# ---------------------------------------------------------------------------
# Seed batches
# ---------------------------------------------------------------------------

SEED_BATCH_SIMPLE = [
    {"name": "Acme GmbH", "domain": "acme.example"},
    {"linkedin_url": "https://www.linkedin.com/company/globex"},
]

SEED_BATCH_WITH_HISTORY = [
    {
        "name": "Initech",
        "domain": "initech.example",
        "english_submitted_at": "2025-05-01T09:30:00+00:00",
        "english_job_title": "Backend Engineer",
        "german_submitted_at": "2025-03-20T16:00:00+00:00",
        "german_job_title": "Softwareentwickler",
    },
]

# Second entry has no identity; nothing in the batch may be written.
SEED_BATCH_INVALID = [
    {"name": "Valid Co", "domain": "valid.example"},
    {"name": "No Identity"},
]

CV_TYPES = ("english", "german")


def count_submissions(db, company_id=None) -> int:
    query = db.query(CVSubmission)
    if company_id is not None:
        query = query.filter(CVSubmission.company_id == company_id)
    return query.count()
