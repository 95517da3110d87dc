"""Per-request session handle.

Pattern: Request-Scoped Session Facade
---------------------------------------
A ``SessionHandle`` is created for one inbound request and thrown away with
the response.  Creating it resolves the incoming cookie:

  1. **Decode** the cookie value under the secret ring.  A value that cannot
     be opened is destroyed, so a corrupted or forged cookie heals itself on
     the next response instead of failing the request.
  2. **Expiry**: an expired session is kept internally but reads as empty.
     The stale cookie stays on the client until it is destroyed or
     overwritten.
  3. **Rotation**: a session sealed under a retiring secret is re-sealed under
     the current one, keeping its remaining lifetime.
  4. **Rolling refresh**: a valid session may get a new expiry, depending on
     the ``rolling`` setting.

After that the caller reads and mutates the session.  Every mutation re-seals
the data and replaces the pending outgoing cookie, so at most one
``Set-Cookie`` value exists per request.  Encrypt failures propagate from the
operation that triggered them.
"""

from __future__ import annotations

import copy
import dataclasses
import datetime
import enum
import inspect
import logging
import math
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from kit_session.codec.cookie_codec import DESTROY_SENTINEL, DecodeFailure, decode, encode
from kit_session.config.normalizer import SessionConfig, normalize_config
from kit_session.config.options import SessionOptions
from kit_session.crypto.cipher import Cipher, default_cipher
from kit_session.policy.expiry import Clock, compute_expiry, days_to_max_age, is_expired, utc_now
from kit_session.policy.rolling import should_refresh
from kit_session.policy.rotation import needs_re_encrypt
from kit_session.session.data import SessionData
from kit_session.transport.cookies import CookieDirective, parse_cookie_header

logger = logging.getLogger(__name__)

# Expires attribute on the destroy directive; any instant in the past works.
DESTROYED_AT = datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC)

UpdateFn = Callable[[dict[str, Any]], Mapping[str, Any] | Awaitable[Mapping[str, Any]]]


class HeaderSource(Protocol):
    def get(self, name: str, /) -> str | None: ...


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    EMPTY = "empty"
    ACTIVE = "active"
    INVALID = "invalid"
    FINALIZED = "finalized"


@dataclasses.dataclass
class SessionFlags:
    """Why an outgoing cookie is (or is not) pending for this request.

    Attributes:
        invalid_date:          The decoded session had already expired.
        should_re_encrypt:     The cookie was sealed under a non-current secret.
        should_destroy:        The session was destroyed, explicitly or after a
                               decode failure.
        should_send_to_client: A ``Set-Cookie`` is pending.
    """

    invalid_date: bool = False
    should_re_encrypt: bool = False
    should_destroy: bool = False
    should_send_to_client: bool = False


class SessionFinalizedError(Exception):
    """Raised when a session is mutated after its handle was finalized."""


class SessionHandle:
    """Stateful view of one request's session.  Build it with ``create``."""

    def __init__(
        self,
        config: SessionConfig,
        *,
        cipher: Cipher | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._config = config
        self._cipher = cipher if cipher is not None else default_cipher()
        self._clock = clock
        self._state = SessionState.UNINITIALIZED
        self._finalized = False
        self._flags = SessionFlags()
        self._data: SessionData | None = None
        self._directive: CookieDirective | None = None
        self._cookies: dict[str, str] = {}

    @classmethod
    async def create(
        cls,
        source: str | HeaderSource,
        config: SessionConfig,
        *,
        cipher: Cipher | None = None,
        clock: Clock = utc_now,
    ) -> SessionHandle:
        """Resolve the session carried by *source*.

        *source* is either the raw ``Cookie`` header or a header bag whose
        ``get("cookie")`` returns it.
        """
        handle = cls(config, cipher=cipher, clock=clock)
        await handle._resolve(source)
        return handle

    # -- introspection -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return SessionState.FINALIZED if self._finalized else self._state

    @property
    def flags(self) -> SessionFlags:
        return self._flags

    @property
    def cookies(self) -> dict[str, str]:
        """Every cookie sent with the request."""
        return dict(self._cookies)

    @property
    def stored_data(self) -> SessionData | None:
        """The decoded session regardless of validity (``None`` if absent)."""
        return self._data

    @property
    def is_expired(self) -> bool:
        return self._data is not None and is_expired(self._data, self._clock())

    @property
    def directive(self) -> CookieDirective | None:
        return self._directive

    @property
    def set_cookie(self) -> str | None:
        """The pending ``Set-Cookie`` header value, if any."""
        return self._directive.serialize() if self._directive else None

    # -- operations ----------------------------------------------------------

    def read(self) -> dict[str, Any]:
        """Current session as a flat dict, or ``{}`` unless it is active."""
        if self._state is SessionState.ACTIVE and self._data is not None:
            return self._data.as_dict()
        return {}

    @property
    def data(self) -> dict[str, Any]:
        return self.read()

    async def set(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Replace the payload wholesale and re-seal it.

        An active session keeps its remaining lifetime; otherwise the
        configured default lifetime applies.
        """
        self._ensure_open()
        now = self._clock()
        lifetime = self._lifetime_for_write(now)
        data = SessionData.build(payload, compute_expiry(lifetime, now))
        await self._write(data, lifetime)
        return data.as_dict()

    async def update(self, fn: UpdateFn) -> dict[str, Any]:
        """Apply *fn* to a copy of the current payload and ``set`` the result.

        *fn* receives a deep copy, or ``{}`` when no active session exists,
        and may be a coroutine function.  The stored session is untouched
        until the result is sealed.
        """
        self._ensure_open()
        current = copy.deepcopy(self._data.payload) if self._is_active() else {}
        result = fn(current)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, Mapping):
            raise TypeError(f"update function must return a mapping, got {type(result).__name__}")
        return await self.set(result)

    async def refresh(self, expires_in_days: float | None = None) -> bool:
        """Give an active session a new expiry.

        Uses *expires_in_days* when given, else the configured lifetime.
        Returns ``False`` without side effects when there is nothing to
        refresh.
        """
        self._ensure_open()
        if not self._is_active():
            return False
        if expires_in_days is not None and expires_in_days <= 0:
            raise ValueError(f"expires_in_days must be positive, got {expires_in_days}")

        lifetime = (
            days_to_max_age(expires_in_days)
            if expires_in_days is not None
            else self._config.cookie.max_age
        )
        data = SessionData(payload=self._data.payload, expires=compute_expiry(lifetime, self._clock()))
        await self._write(data, lifetime)
        return True

    async def destroy(self) -> bool:
        """Clear the session and schedule the client-side deletion cookie."""
        self._ensure_open()
        self._destroy()
        return True

    def finalize(self) -> CookieDirective | None:
        """Close the handle and return the directive to attach, if any."""
        self._finalized = True
        return self._directive

    # -- private helpers -----------------------------------------------------

    async def _resolve(self, source: str | HeaderSource) -> None:
        self._cookies = parse_cookie_header(_cookie_header(source))
        raw = self._cookies.get(self._config.key, "")
        self._state = SessionState.EMPTY

        ring = self._config.secrets
        try:
            decoded = await decode(raw, ring, self._cipher)
        except DecodeFailure as exc:
            logger.warning("Discarding undecodable session cookie %s: %s", self._config.key, exc)
            self._destroy()
            return
        if decoded is None:
            return

        now = self._clock()
        self._data = decoded.data
        if is_expired(decoded.data, now):
            self._flags.invalid_date = True
            self._state = SessionState.INVALID
        else:
            self._state = SessionState.ACTIVE

        if needs_re_encrypt(decoded.secret_id, ring):
            self._flags.should_re_encrypt = True
            if self._state is SessionState.ACTIVE:
                logger.info(
                    "Re-sealing session from secret id %s to current id %s",
                    decoded.secret_id,
                    ring.current.id,
                )
                lifetime = self._lifetime_for_write(now)
                data = decoded.data
                if data.expires is None:
                    # Sessions sealed without an expiry gain one on migration.
                    data = SessionData(payload=data.payload, expires=compute_expiry(lifetime, now))
                await self._write(data, lifetime)

        if self._state is SessionState.ACTIVE and should_refresh(
            self._config.rolling, decoded.data, self._config.cookie.max_age, now
        ):
            logger.debug("Rolling refresh of session %s", self._config.key)
            await self.refresh()

    def _is_active(self) -> bool:
        return self._state is SessionState.ACTIVE and self._data is not None

    def _lifetime_for_write(self, now: datetime.datetime) -> float:
        if self._is_active() and self._data.expires is not None:
            remaining = (self._data.expires - now).total_seconds()
            if remaining > 0:
                return remaining
        return self._config.cookie.max_age

    async def _write(self, data: SessionData, lifetime: float) -> None:
        # Seal first so a cipher failure leaves the handle untouched.
        value = await encode(data, self._config.secrets, self._cipher)
        self._data = data
        self._state = SessionState.ACTIVE
        self._flags.invalid_date = False
        self._flags.should_destroy = False
        self._flags.should_send_to_client = True
        self._directive = self._make_directive(value, max_age=max(1, math.ceil(lifetime)))

    def _destroy(self) -> None:
        self._data = None
        self._state = SessionState.EMPTY
        self._flags.should_destroy = True
        self._flags.should_send_to_client = True
        self._directive = self._make_directive(DESTROY_SENTINEL, expires=DESTROYED_AT)
        logger.debug("Session %s destroyed", self._config.key)

    def _make_directive(
        self,
        value: str,
        *,
        max_age: int | None = None,
        expires: datetime.datetime | None = None,
    ) -> CookieDirective:
        cookie = self._config.cookie
        return CookieDirective(
            name=self._config.key,
            value=value,
            http_only=cookie.http_only,
            path=cookie.path,
            same_site=cookie.same_site,
            secure=cookie.secure,
            domain=cookie.domain,
            max_age=max_age,
            expires=expires,
        )

    def _ensure_open(self) -> None:
        if self._finalized:
            raise SessionFinalizedError("Session handle has already been finalized")


def _cookie_header(source: str | HeaderSource) -> str:
    if isinstance(source, str):
        return source
    return source.get("cookie") or ""


async def initialize_session(
    source: str | HeaderSource,
    config: SessionConfig | SessionOptions | dict[str, Any],
    *,
    is_secure: bool = False,
    cipher: Cipher | None = None,
    clock: Clock = utc_now,
) -> SessionHandle:
    """Normalize *config* if needed and resolve the session in *source*.

    Raises ``ConfigurationError`` when the configuration has no secret.
    """
    if not isinstance(config, SessionConfig):
        config = normalize_config(config, is_secure=is_secure)
    return await SessionHandle.create(source, config, cipher=cipher, clock=clock)
