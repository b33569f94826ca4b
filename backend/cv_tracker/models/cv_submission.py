from sqlalchemy import Column, String, Enum, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum
from ..core.db import Base
from .company import utcnow

class CVType(str, enum.Enum):
    ENGLISH = "english"
    GERMAN = "german"

class CVSubmission(Base):
    __tablename__ = "cv_submissions"
    __table_args__ = (
        Index("ix_cv_submissions_company_type_submitted", "company_id", "cv_type", "submitted_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cv_type = Column(
        Enum(CVType, values_callable=lambda e: [m.value for m in e], name="cv_type"),
        nullable=False,
    )
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    job_title = Column(String, nullable=True)

    company = relationship("Company", back_populates="submissions")
