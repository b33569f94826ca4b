# backend/cv_tracker/schemas/cv.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.company import Company
from ..models.cv_submission import CVSubmission
from ..services.companies import company_snapshot
from ..services.cooldown import CooldownStatus, ensure_utc
from ..services.seeder import SeedEntry

MAX_COMPANY_NAME_LEN = 200
MAX_JOB_TITLE_LEN = 300
MAX_IDENTITY_LEN = 2048


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str):
        stripped = v.strip()
        return stripped or None
    return v


class EligibilityCheckRequest(BaseModel):
    """
    Body of /cv/check. Identity and cvType are validated by the service so
    that missing values come back as 400 with the same wording the client
    already understands.
    """

    domain: str | None = Field(default=None, max_length=MAX_IDENTITY_LEN)
    linkedin_url: str | None = Field(default=None, alias="linkedinUrl", max_length=MAX_IDENTITY_LEN)
    cv_type: str | None = Field(default=None, alias="cvType")
    company_name: str | None = Field(default=None, alias="companyName", max_length=MAX_COMPANY_NAME_LEN)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("domain", "linkedin_url", "cv_type", "company_name", mode="before")
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)


class SubmissionRequest(EligibilityCheckRequest):
    job_title: str | None = Field(default=None, alias="jobTitle", max_length=MAX_JOB_TITLE_LEN)

    @field_validator("job_title", mode="before")
    @classmethod
    def _strip_job_title(cls, v):
        return _blank_to_none(v)


class SeedCompanyIn(BaseModel):
    name: str | None = Field(default=None, max_length=MAX_COMPANY_NAME_LEN)
    domain: str | None = None
    linkedin_url: str | None = None
    english_submitted_at: datetime | None = None
    english_job_title: str | None = None
    german_submitted_at: datetime | None = None
    german_job_title: str | None = None

    @field_validator(
        "name", "domain", "linkedin_url", "english_job_title", "german_job_title",
        "english_submitted_at", "german_submitted_at",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    def to_entry(self) -> SeedEntry:
        return SeedEntry(**self.model_dump())


class SeedRequest(BaseModel):
    companies: list[SeedCompanyIn] | None = None


# ---------------------------------------------------------------------------
# Response serializers
# ---------------------------------------------------------------------------

def iso(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value else None


def company_out(company: Company | dict, *, with_created_at: bool = False) -> dict[str, Any]:
    if not isinstance(company, dict):
        company = company_snapshot(company)
    out = {
        "id": str(company["id"]),
        "name": company["name"],
        "domain": company["domain"],
        "linkedinUrl": company["linkedin_url"],
    }
    if with_created_at:
        out["createdAt"] = iso(company["created_at"])
    return out


def submission_out(submission: CVSubmission) -> dict[str, Any]:
    return {
        "id": str(submission.id),
        "companyId": str(submission.company_id),
        "cvType": submission.cv_type.value,
        "submittedAt": iso(submission.submitted_at),
        "jobTitle": submission.job_title,
    }


def status_block(status: CooldownStatus, latest: CVSubmission | None) -> dict[str, Any]:
    block: dict[str, Any] = {
        "lastSubmittedAt": iso(status.last_submitted_at),
        "daysRemaining": status.days_remaining,
        "canSubmit": status.can_submit,
        "nextAvailableDate": iso(status.next_eligible_date),
    }
    if latest is not None:
        block["jobTitle"] = latest.job_title
    return block
