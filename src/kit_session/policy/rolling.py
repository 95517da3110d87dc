"""Sliding-window renewal.

``rolling`` comes in three flavours:

  - ``False``: never extend a session implicitly.
  - ``True``: extend on every request that carries a valid session.
  - a percentage ``p`` in ``(0, 100]``: extend only once the remaining
    lifetime has dropped below ``p`` percent of the configured lifetime.

The percentage form keeps most requests free of a ``Set-Cookie`` header while
still preventing active users from being logged out.
"""

from __future__ import annotations

import datetime

from kit_session.policy.expiry import remaining_lifetime
from kit_session.session.data import SessionData


def should_refresh(
    rolling: bool | float,
    data: SessionData,
    max_age_seconds: float,
    now: datetime.datetime,
) -> bool:
    """Return whether the non-expired session *data* should be refreshed."""
    if rolling is False:
        return False
    if rolling is True:
        return True

    remaining = remaining_lifetime(data, now)
    if remaining is None:
        # Sealed without an expiry; refreshing stamps one.
        return True
    threshold = (rolling / 100) * max_age_seconds
    return remaining < threshold
