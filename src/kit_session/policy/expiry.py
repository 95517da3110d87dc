"""Expiry arithmetic for sealed sessions.

All functions take ``now`` explicitly so that the handle's injectable clock is
the single source of time for a request.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable

from kit_session.session.data import SessionData

Clock = Callable[[], datetime.datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def days_to_max_age(days: float) -> int:
    """Convert a lifetime in days to whole seconds."""
    return int(days * SECONDS_PER_DAY)


def compute_expiry(lifetime_seconds: float, now: datetime.datetime) -> datetime.datetime:
    return now + datetime.timedelta(seconds=lifetime_seconds)


def remaining_lifetime(data: SessionData, now: datetime.datetime) -> float | None:
    """Seconds until *data* expires; negative once it has.  ``None`` when the
    session carries no expiry at all."""
    if data.expires is None:
        return None
    return (data.expires - now).total_seconds()


def is_expired(data: SessionData, now: datetime.datetime) -> bool:
    remaining = remaining_lifetime(data, now)
    return remaining is not None and remaining <= 0
