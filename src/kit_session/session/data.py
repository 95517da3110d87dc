"""The decoded session payload and its reserved ``expires`` field."""

from __future__ import annotations

import dataclasses
import datetime
from collections.abc import Mapping
from typing import Any

EXPIRES_FIELD = "expires"


@dataclasses.dataclass(frozen=True)
class SessionData:
    """Caller payload plus the expiry it was sealed with.

    Attributes:
        payload: Arbitrary JSON-serializable mapping owned by the caller.  Never
                 contains the reserved ``expires`` key.
        expires: UTC instant after which the session is no longer valid.
                 ``None`` only for cookies sealed before expiry was recorded.
    """

    payload: dict[str, Any]
    expires: datetime.datetime | None = None

    @classmethod
    def build(cls, payload: Mapping[str, Any] | None, expires: datetime.datetime | None) -> SessionData:
        body = {k: v for k, v in (payload or {}).items() if k != EXPIRES_FIELD}
        return cls(payload=body, expires=expires)

    def as_dict(self) -> dict[str, Any]:
        """Flat view handed to callers: the payload with ``expires`` merged in."""
        data = dict(self.payload)
        if self.expires is not None:
            data[EXPIRES_FIELD] = self.expires
        return data

    def to_wire(self) -> dict[str, Any]:
        data = dict(self.payload)
        if self.expires is not None:
            data[EXPIRES_FIELD] = self.expires.isoformat()
        return data

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> SessionData:
        """Inverse of ``to_wire``.  Raises ``ValueError`` on a bad ``expires``."""
        raw_expires = data.get(EXPIRES_FIELD)
        expires: datetime.datetime | None = None
        if raw_expires is not None:
            if not isinstance(raw_expires, str):
                raise ValueError(f"'expires' must be an ISO-8601 string, got {type(raw_expires).__name__}")
            expires = datetime.datetime.fromisoformat(raw_expires)
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=datetime.UTC)
        return cls.build(data, expires)
