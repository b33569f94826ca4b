from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from ..core.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    # Identity: at least one of domain / linkedin_url is set
    domain = Column(String, unique=True, index=True, nullable=True)
    linkedin_url = Column(String, unique=True, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    submissions = relationship(
        "CVSubmission",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
