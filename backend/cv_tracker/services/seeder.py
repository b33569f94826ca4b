from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Sequence
import logging

from sqlalchemy.orm import Session

from ..models.company import Company
from ..models.cv_submission import CVSubmission, CVType
from . import companies, submissions
from .companies import CompanyIdentity
from .errors import InvalidIdentity, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SeedEntry:
    domain: str | None = None
    linkedin_url: str | None = None
    name: str | None = None
    english_submitted_at: datetime | None = None
    english_job_title: str | None = None
    german_submitted_at: datetime | None = None
    german_job_title: str | None = None

    def backfill(self) -> List[tuple[CVType, datetime, str | None]]:
        history = []
        if self.english_submitted_at:
            history.append((CVType.ENGLISH, self.english_submitted_at, self.english_job_title))
        if self.german_submitted_at:
            history.append((CVType.GERMAN, self.german_submitted_at, self.german_job_title))
        return history


@dataclass
class SeedResult:
    company: Company
    status: Literal["created", "existing"]
    submissions: List[CVSubmission] = field(default_factory=list)


def _validate_batch(entries: Sequence[SeedEntry]) -> List[CompanyIdentity]:
    if not entries:
        raise ValidationError("companies array is required and must not be empty")

    identities = []
    for entry in entries:
        try:
            identities.append(CompanyIdentity.from_fields(entry.domain, entry.linkedin_url))
        except InvalidIdentity:
            raise ValidationError(
                "Each company must have at least a domain or linkedin_url. "
                f"Invalid entry: {entry!r}"
            ) from None
    return identities


def seed(db: Session, entries: Sequence[SeedEntry]) -> List[SeedResult]:
    """
    Idempotent bulk import of companies, upserting by identity.

    The whole batch is validated before the first write. Historical
    submissions are only inserted when the pair has no row at that exact
    instant yet, so re-running a seed never duplicates history.

    Not serialized through the admission queue: do not run it against
    identities that live traffic is touching at the same time.
    """
    identities = _validate_batch(entries)

    results: List[SeedResult] = []
    for entry, identity in zip(entries, identities):
        company, created = companies.get_or_create(db, identity, entry.name)
        result = SeedResult(company=company, status="created" if created else "existing")

        for cv_type, submitted_at, job_title in entry.backfill():
            if submissions.exists_at(db, company.id, cv_type, submitted_at):
                continue
            result.submissions.append(
                submissions.create(
                    db, company.id, cv_type, job_title, submitted_at=submitted_at
                )
            )
        results.append(result)

    logger.info(
        "Seeded companies",
        extra={
            "step": "seed",
            "created_count": sum(1 for r in results if r.status == "created"),
            "existing_count": sum(1 for r in results if r.status == "existing"),
        },
    )
    return results
