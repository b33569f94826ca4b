"""
Cooldown arithmetic for CV submissions.

Everything here is pure: callers pass `now` explicitly so one logical
operation (a check, a listing) samples the clock exactly once and the
three derived numbers can never disagree with each other.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

DEFAULT_COOLDOWN_DAYS = 60
ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(a: datetime, b: datetime) -> int:
    """Whole days between two instants, ignoring direction."""
    return abs(ensure_utc(b) - ensure_utc(a)) // ONE_DAY


def can_submit(
    last_submitted_at: datetime | None,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    now: datetime | None = None,
) -> bool:
    if last_submitted_at is None:
        return True
    now = now or utcnow()
    return days_between(last_submitted_at, now) >= cooldown_days


def days_remaining(
    last_submitted_at: datetime | None,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    now: datetime | None = None,
) -> int:
    if last_submitted_at is None:
        return 0
    now = now or utcnow()
    return max(0, cooldown_days - days_between(last_submitted_at, now))


def next_eligible_date(
    last_submitted_at: datetime | None,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    now: datetime | None = None,
) -> datetime:
    if last_submitted_at is None:
        return ensure_utc(now or utcnow())
    return ensure_utc(last_submitted_at) + timedelta(days=cooldown_days)


@dataclass(frozen=True)
class CooldownStatus:
    can_submit: bool
    days_remaining: int
    next_eligible_date: datetime
    last_submitted_at: datetime | None = None


def evaluate(
    last_submitted_at: datetime | None,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    now: datetime | None = None,
) -> CooldownStatus:
    now = now or utcnow()
    return CooldownStatus(
        can_submit=can_submit(last_submitted_at, cooldown_days, now),
        days_remaining=days_remaining(last_submitted_at, cooldown_days, now),
        next_eligible_date=next_eligible_date(last_submitted_at, cooldown_days, now),
        last_submitted_at=ensure_utc(last_submitted_at) if last_submitted_at else None,
    )
