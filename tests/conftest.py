"""Shared fixtures for tests."""

from __future__ import annotations

import asyncio
import datetime
from typing import Any
from urllib.parse import quote

import pytest

from kit_session.codec.cookie_codec import encode
from kit_session.config.normalizer import SessionConfig, normalize_config
from kit_session.crypto.cipher import FernetCipher
from kit_session.keys.ring import SecretEntry, SecretRing
from kit_session.session.data import SessionData

FIXED_NOW = datetime.datetime(2026, 1, 15, 12, 0, tzinfo=datetime.UTC)


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime.datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(scope="session")
def cipher() -> FernetCipher:
    # Fewer KDF rounds than production keeps the suite fast.
    return FernetCipher(iterations=1_000)


@pytest.fixture
def ring() -> SecretRing:
    return SecretRing([SecretEntry(id=2, secret=b"new"), SecretEntry(id=1, secret=b"old")])


@pytest.fixture
def config() -> SessionConfig:
    return normalize_config({
        "secret": [{"id": 2, "secret": "new"}, {"id": 1, "secret": "old"}],
        "expires": 7,
    })


def seal(
    payload: dict[str, Any],
    *,
    cipher: FernetCipher,
    expires: datetime.datetime | None,
    secret_id: int = 2,
    secret: bytes = b"new",
) -> str:
    """Seal *payload* under a single ``(secret_id, secret)`` and return the cookie value."""
    single = SecretRing([SecretEntry(id=secret_id, secret=secret)])
    return asyncio.run(encode(SessionData.build(payload, expires), single, cipher))


def cookie_header(value: str, key: str = "kit.session", extra: str = "") -> str:
    header = f"{key}={quote(value, safe='')}"
    return f"{extra}; {header}" if extra else header
