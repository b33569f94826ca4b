"""
Eligibility decisions and the cooldown-gated submit.

`check` and `submit` both resolve the company (creating it on first sight),
so both are writes and must run through the admission queue; the decision
taken in `submit` is only valid because nothing else touches the store
between the decision and the insert.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List
import logging

from sqlalchemy.orm import Session, sessionmaker

from ..models.company import Company
from ..models.cv_submission import CVSubmission, CVType
from . import companies, submissions
from .companies import CompanyIdentity
from .cooldown import DEFAULT_COOLDOWN_DAYS, CooldownStatus, evaluate, utcnow
from .errors import CooldownActive, ValidationError

logger = logging.getLogger(__name__)


def parse_cv_type(value: str | CVType | None) -> CVType:
    if isinstance(value, CVType):
        return value
    try:
        return CVType(value)
    except ValueError:
        raise ValidationError('cvType must be either "english" or "german"') from None


@dataclass(frozen=True)
class EligibilityRequest:
    identity: CompanyIdentity
    cv_type: CVType
    company_name: str | None = None
    job_title: str | None = None

    @classmethod
    def build(
        cls,
        *,
        domain: str | None = None,
        linkedin_url: str | None = None,
        cv_type: str | CVType | None = None,
        company_name: str | None = None,
        job_title: str | None = None,
    ) -> "EligibilityRequest":
        # Identity first: a request missing both identity and type reports the identity.
        identity = CompanyIdentity.from_fields(domain, linkedin_url)
        return cls(
            identity=identity,
            cv_type=parse_cv_type(cv_type),
            company_name=company_name,
            job_title=job_title,
        )


@dataclass
class EligibilityDecision:
    company: Company
    cv_type: CVType
    status: CooldownStatus
    last_submission: CVSubmission | None = None
    company_created: bool = False

    @property
    def eligible(self) -> bool:
        return self.status.can_submit


@dataclass
class SubmissionReceipt:
    submission: CVSubmission
    company: Company
    decision: EligibilityDecision | None = None


@dataclass
class CompanyStatus:
    company: Company
    statuses: Dict[CVType, CooldownStatus] = field(default_factory=dict)
    latest: Dict[CVType, CVSubmission | None] = field(default_factory=dict)
    total_submissions: int = 0


class EligibilityService:
    def __init__(
        self,
        cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.cooldown_days = cooldown_days
        self._clock = clock

    def check(self, db: Session, request: EligibilityRequest) -> EligibilityDecision:
        return self._decide(db, request, self._clock())

    # Resolve the company, read its latest submission of this type, decide.
    def _decide(
        self, db: Session, request: EligibilityRequest, now: datetime
    ) -> EligibilityDecision:
        company, created = companies.get_or_create(
            db, request.identity, request.company_name
        )
        latest = submissions.latest_for(db, company.id, request.cv_type)
        status = evaluate(
            latest.submitted_at if latest else None,
            self.cooldown_days,
            now,
        )
        return EligibilityDecision(
            company=company,
            cv_type=request.cv_type,
            status=status,
            last_submission=latest,
            company_created=created,
        )

    def submit(self, db: Session, request: EligibilityRequest) -> SubmissionReceipt:
        # The row is stamped with the same instant the decision was taken at.
        now = self._clock()
        decision = self._decide(db, request, now)
        if not decision.eligible:
            logger.info(
                "CV submission refused, cooldown active",
                extra={
                    "step": "submit",
                    "company_id": str(decision.company.id),
                    "cv_type": request.cv_type.value,
                },
            )
            raise CooldownActive(
                days_remaining=decision.status.days_remaining,
                next_eligible_date=decision.status.next_eligible_date,
                last_submission=decision.last_submission,
            )

        submission = submissions.create(
            db, decision.company.id, request.cv_type, request.job_title, submitted_at=now
        )
        return SubmissionReceipt(
            submission=submission, company=decision.company, decision=decision
        )

    def check_and_submit(self, db: Session, request: EligibilityRequest) -> SubmissionReceipt:
        receipt = self.submit(db, request)
        logger.info(
            "Checked and submitted CV in one task",
            extra={
                "step": "check_and_submit",
                "company_id": str(receipt.company.id),
                "cv_type": request.cv_type.value,
            },
        )
        return receipt

    def list_all(self, db: Session) -> List[CompanyStatus]:
        now = self._clock()
        result: List[CompanyStatus] = []
        for company in companies.list_with_submissions(db):
            entry = CompanyStatus(
                company=company, total_submissions=len(company.submissions)
            )
            for cv_type in CVType:
                of_type = [s for s in company.submissions if s.cv_type == cv_type]
                latest = max(of_type, key=lambda s: s.submitted_at, default=None)
                entry.latest[cv_type] = latest
                entry.statuses[cv_type] = evaluate(
                    latest.submitted_at if latest else None,
                    self.cooldown_days,
                    now,
                )
            result.append(entry)
        return result


def run_in_session(session_factory: sessionmaker, fn: Callable, *args, **kwargs):
    """
    Run `fn(db, *args, **kwargs)` with a fresh session that is closed
    afterwards. Queued tasks use this so each one sees committed state only.
    """
    db = session_factory()
    try:
        return fn(db, *args, **kwargs)
    finally:
        db.close()
