"""Decide whether a decoded session must be re-sealed under the current secret.

A cookie decoded with anything other than the ring's current secret is
migrated on the spot.  Long-lived sessions therefore move off a retiring
secret the next time the client shows up, without a forced logout.
"""

from __future__ import annotations

from kit_session.keys.ring import SecretRing


def needs_re_encrypt(decoded_id: int, ring: SecretRing) -> bool:
    """True when the id a cookie was tagged with is not the current secret's.

    An unknown tag that only decoded through the current-secret fallback also
    counts, so the cookie gets a correct tag on the way out.
    """
    return not ring.is_current(decoded_id)
