from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models.company import Company
from ..models.cv_submission import CVSubmission
from . import submissions
from .errors import DataIntegrityError, InvalidIdentity, NotFound, StoreError

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


@dataclass(frozen=True)
class CompanyIdentity:
    """
    The (domain, LinkedIn URL) pair companies are deduplicated on.

    Cannot be built with both parts missing.
    """

    domain: str | None = None
    linkedin_url: str | None = None

    def __post_init__(self) -> None:
        if not self.domain and not self.linkedin_url:
            raise InvalidIdentity()

    @classmethod
    def from_fields(cls, domain: str | None, linkedin_url: str | None) -> "CompanyIdentity":
        domain = _clean(domain)
        return cls(
            domain=domain.lower() if domain else None,
            linkedin_url=_clean(linkedin_url),
        )

    @property
    def label(self) -> str:
        return self.domain or self.linkedin_url  # type: ignore[return-value]


def company_snapshot(company: Company) -> Dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "domain": company.domain,
        "linkedin_url": company.linkedin_url,
        "created_at": company.created_at,
    }


def find(db: Session, identity: CompanyIdentity) -> Company | None:
    conditions = []
    if identity.domain:
        conditions.append(Company.domain == identity.domain)
    if identity.linkedin_url:
        conditions.append(Company.linkedin_url == identity.linkedin_url)

    try:
        matches = db.query(Company).filter(or_(*conditions)).limit(2).all()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to look up company: {e}") from e

    if len(matches) > 1:
        logger.error(
            "Multiple companies match one identity",
            extra={
                "step": "resolve_company",
                "company_id": [str(c.id) for c in matches],
            },
        )
        raise DataIntegrityError(
            f"More than one company matches domain={identity.domain!r} "
            f"linkedin_url={identity.linkedin_url!r}"
        )
    return matches[0] if matches else None


def get_or_create(
    db: Session,
    identity: CompanyIdentity,
    display_name: str | None = None,
) -> Tuple[Company, bool]:
    """
    Return the company for `identity`, creating it on first sight.

    Find-then-insert is not atomic here; callers serialize through the
    admission queue. The unique constraints still catch a lost race, in
    which case the winner's row is returned.
    """
    company = find(db, identity)
    if company:
        return company, False

    company = Company(
        name=_clean(display_name) or identity.label,
        domain=identity.domain,
        linkedin_url=identity.linkedin_url,
    )
    try:
        db.add(company)
        db.commit()
        db.refresh(company)
    except IntegrityError:
        db.rollback()
        existing = find(db, identity)
        if not existing:
            raise
        logger.warning(
            "Company insert lost a race, using existing row",
            extra={"step": "resolve_company", "company_id": str(existing.id)},
        )
        return existing, False
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to create company: {e}") from e

    logger.info(
        "Company created",
        extra={"step": "resolve_company", "company_id": str(company.id)},
    )
    return company, True


def delete_by_id(db: Session, company_id: UUID) -> Dict[str, Any]:
    """
    Delete a company together with all of its submissions.

    Both deletes go out in one commit; the returned snapshot, including the
    removed submissions under "submissions", is taken before anything is
    removed.
    """
    try:
        company = db.query(Company).filter(Company.id == company_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to look up company: {e}") from e
    if not company:
        raise NotFound(f"Company {company_id} not found")

    snapshot = company_snapshot(company)
    snapshot["submissions"] = submissions.all_for(db, company_id)
    try:
        deleted_submissions = (
            db.query(CVSubmission)
            .filter(CVSubmission.company_id == company_id)
            .delete(synchronize_session=False)
        )
        db.query(Company).filter(Company.id == company_id).delete(
            synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(
            "Error deleting company",
            extra={"step": "delete_company", "company_id": str(company_id)},
        )
        raise StoreError(f"Failed to delete company: {e}") from e

    logger.info(
        "Deleted company and its submissions",
        extra={
            "step": "delete_company",
            "company_id": str(company_id),
            "deleted_submissions": deleted_submissions,
        },
    )
    return snapshot


def list_with_submissions(db: Session) -> List[Company]:
    try:
        return (
            db.query(Company)
            .options(selectinload(Company.submissions))
            .order_by(Company.created_at.desc(), Company.id.asc())
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to list companies: {e}") from e
