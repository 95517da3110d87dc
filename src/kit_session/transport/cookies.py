"""Minimal ``Cookie`` header parsing and ``Set-Cookie`` serialization.

Values are percent-encoded on the way out and decoded on the way in, so the
``&`` and ``=`` of a tagged cookie value survive any intermediary that is
strict about cookie octets.
"""

from __future__ import annotations

import dataclasses
import datetime
from email.utils import format_datetime
from urllib.parse import quote, unquote


@dataclasses.dataclass(frozen=True)
class CookieDirective:
    """One outgoing cookie and the attributes to send with it."""

    name: str
    value: str
    http_only: bool
    path: str
    same_site: str
    secure: bool
    domain: str | None = None
    max_age: int | None = None
    expires: datetime.datetime | None = None

    def serialize(self) -> str:
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.expires is not None:
            parts.append(f"Expires={format_datetime(self.expires.astimezone(datetime.UTC), usegmt=True)}")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site:
            parts.append(f"SameSite={self.same_site.capitalize()}")
        return "; ".join(parts)

    def __str__(self) -> str:
        return self.serialize()


def parse_cookie_header(header: str) -> dict[str, str]:
    """Split a ``Cookie`` request header into a name -> value mapping.

    The first occurrence of a name wins.  Pairs without ``=`` are skipped.
    """
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        name, sep, value = pair.partition("=")
        if not sep:
            continue
        name = name.strip()
        if not name or name in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[name] = unquote(value)
    return cookies
