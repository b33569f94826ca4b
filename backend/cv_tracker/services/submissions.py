from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.cv_submission import CVSubmission, CVType
from .cooldown import ensure_utc, utcnow
from .errors import StoreError

logger = logging.getLogger(__name__)


def latest_for(db: Session, company_id: UUID, cv_type: CVType) -> CVSubmission | None:
    try:
        return (
            db.query(CVSubmission)
            .filter(
                CVSubmission.company_id == company_id,
                CVSubmission.cv_type == cv_type,
            )
            .order_by(CVSubmission.submitted_at.desc(), CVSubmission.id.desc())
            .first()
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to read latest submission: {e}") from e


def create(
    db: Session,
    company_id: UUID,
    cv_type: CVType,
    job_title: str | None = None,
    submitted_at: datetime | None = None,
) -> CVSubmission:
    """
    Record a submission. The cooldown is NOT checked here; the eligibility
    service gates every call that comes from live traffic.

    `submitted_at` defaults to now. The eligibility service passes the
    instant its decision was taken at; the seeder passes historical ones.
    """
    submission = CVSubmission(
        company_id=company_id,
        cv_type=cv_type,
        job_title=job_title or None,
        submitted_at=ensure_utc(submitted_at) if submitted_at else utcnow(),
    )
    try:
        db.add(submission)
        db.commit()
        db.refresh(submission)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to record submission: {e}") from e

    logger.info(
        "CV submission recorded",
        extra={
            "step": "record_submission",
            "company_id": str(company_id),
            "cv_type": cv_type.value,
        },
    )
    return submission


def all_for(db: Session, company_id: UUID) -> List[CVSubmission]:
    """Every submission of one company, oldest first, both CV types."""
    try:
        return (
            db.query(CVSubmission)
            .filter(CVSubmission.company_id == company_id)
            .order_by(CVSubmission.submitted_at.asc(), CVSubmission.id.asc())
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to list submissions: {e}") from e


def exists_at(db: Session, company_id: UUID, cv_type: CVType, submitted_at: datetime) -> bool:
    try:
        return (
            db.query(CVSubmission.id)
            .filter(
                CVSubmission.company_id == company_id,
                CVSubmission.cv_type == cv_type,
                CVSubmission.submitted_at == ensure_utc(submitted_at),
            )
            .first()
            is not None
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to look up submission: {e}") from e
