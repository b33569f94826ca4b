from __future__ import annotations

from datetime import datetime
from typing import Any


class CVTrackerError(Exception):
    """Base class for every error the submission services raise on purpose."""


class ValidationError(CVTrackerError, ValueError):
    """Caller-correctable input problem (missing identity, unknown CV type, ...)."""


class InvalidIdentity(ValidationError):
    def __init__(self, message: str = "Either domain or linkedinUrl must be provided") -> None:
        super().__init__(message)


class CooldownActive(CVTrackerError):
    """
    Business-rule refusal: the company/CV-type pair is still inside its
    cooldown window. Carries everything the caller needs to explain when
    the next submission becomes possible.
    """

    def __init__(
        self,
        *,
        days_remaining: int,
        next_eligible_date: datetime,
        last_submission: Any,
    ) -> None:
        super().__init__(
            f"CV cannot be submitted yet; {days_remaining} day(s) remaining"
        )
        self.days_remaining = days_remaining
        self.next_eligible_date = next_eligible_date
        self.last_submission = last_submission


class NotFound(CVTrackerError, LookupError):
    pass


class DataIntegrityError(CVTrackerError):
    """The store holds rows that violate the identity invariants."""


class StoreError(CVTrackerError):
    """The underlying store failed; the session has been rolled back."""


class QueueFull(CVTrackerError):
    """A bounded admission queue refused a task."""
