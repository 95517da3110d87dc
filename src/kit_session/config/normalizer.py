"""Turn loose ``SessionOptions`` into a canonical ``SessionConfig``.

The normalizer is a pure function: the only environment-dependent default,
whether cookies are ``Secure``, arrives as the ``is_secure`` argument instead
of being read from process state here.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from kit_session.config.options import SessionOptions, parse_options
from kit_session.errors import ConfigurationError
from kit_session.keys.ring import SecretEntry, SecretRing
from kit_session.policy.expiry import days_to_max_age

DEFAULT_KEY = "kit.session"
DEFAULT_EXPIRES_IN_DAYS = 7
DEFAULT_SAME_SITE = "lax"
DEFAULT_PATH = "/"


@dataclasses.dataclass(frozen=True)
class CookieAttributes:
    """Attribute values for the outgoing session cookie.

    Attributes:
        max_age:   Default lifetime in seconds, derived from the configured days.
        http_only: Hide the cookie from client-side scripts.
        same_site: ``"lax"``, ``"strict"`` or ``"none"``.
        path:      Cookie path scope.
        domain:    Cookie domain scope; ``None`` means host-only.
        secure:    Only send over HTTPS.
    """

    max_age: int
    http_only: bool
    same_site: str
    path: str
    domain: str | None
    secure: bool


@dataclasses.dataclass(frozen=True)
class SessionConfig:
    """Fully-defaulted, immutable session configuration.

    ``rolling`` is ``False`` (off), ``True`` (refresh on every request), or a
    percentage in ``(0, 100]``.
    """

    key: str
    expires_in_days: float
    cookie: CookieAttributes
    rolling: bool | float
    secrets: SecretRing


def normalize_config(
    options: SessionOptions | dict[str, Any],
    *,
    is_secure: bool = False,
) -> SessionConfig:
    """Build a ``SessionConfig`` from *options*.

    Raises ``ConfigurationError`` when no secret is supplied or a value is out
    of range.
    """
    opts = parse_options(options)

    if opts.secret is None or (isinstance(opts.secret, list) and not opts.secret):
        raise ConfigurationError("Please provide at least one secret")

    expires_in_days = opts.expires if opts.expires is not None else DEFAULT_EXPIRES_IN_DAYS
    if expires_in_days <= 0:
        raise ConfigurationError(f"'expires' must be a positive number of days, got {expires_in_days}")

    cookie = opts.cookie
    return SessionConfig(
        key=opts.key or DEFAULT_KEY,
        expires_in_days=expires_in_days,
        cookie=CookieAttributes(
            max_age=days_to_max_age(expires_in_days),
            http_only=cookie.http_only if cookie.http_only is not None else True,
            same_site=cookie.same_site or DEFAULT_SAME_SITE,
            path=cookie.path or DEFAULT_PATH,
            domain=cookie.domain or None,
            secure=cookie.secure if cookie.secure is not None else is_secure,
        ),
        rolling=_normalize_rolling(opts.rolling),
        secrets=_build_ring(opts.secret),
    )


def _build_ring(secret: bytes | str | list[Any]) -> SecretRing:
    if isinstance(secret, list):
        return SecretRing(SecretEntry(id=item.id, secret=_as_bytes(item.secret)) for item in secret)
    return SecretRing([SecretEntry(id=1, secret=_as_bytes(secret))])


def _as_bytes(value: bytes | str) -> bytes:
    raw = value.encode("utf-8") if isinstance(value, str) else value
    if not raw:
        raise ConfigurationError("Secrets must not be empty")
    return raw


def _normalize_rolling(rolling: bool | float) -> bool | float:
    if isinstance(rolling, bool):
        return rolling
    if not 0 < rolling <= 100:
        raise ConfigurationError(f"'rolling' percentage must be in (0, 100], got {rolling}")
    return float(rolling)
