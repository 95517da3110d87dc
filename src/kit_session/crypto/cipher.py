"""Authenticated encryption primitive for session payloads.

Pattern: Opaque Sealing Primitive
----------------------------------
The codec only needs two operations:

  - ``encrypt(data, secret) -> str``: seal a JSON-serializable mapping.
  - ``decrypt(token, secret) -> dict``: open it again, raising ``CipherError``
    on *any* failure (wrong key, tampering, truncation, bad JSON).

Both are coroutines so that a backend which suspends (a KMS, a thread pool)
can be swapped in behind the ``Cipher`` protocol without touching the codec.

``FernetCipher`` is the default implementation.  Fernet gives AES-128-CBC
with an HMAC-SHA256 tag over the whole token, so a flipped byte anywhere is
rejected rather than decrypted into a different payload.  Secrets of any
length are stretched into a Fernet key with PBKDF2-HMAC-SHA256; derived keys
are cached per secret because the derivation is deliberately slow.
"""

from __future__ import annotations

import base64
import functools
import json
from collections.abc import Mapping
from typing import Any, Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

DEFAULT_SALT = b"kit-session.v1"
DEFAULT_ITERATIONS = 100_000


class CipherError(Exception):
    """Raised when sealing or opening a payload fails."""


class Cipher(Protocol):
    async def encrypt(self, data: Mapping[str, Any], secret: bytes) -> str: ...

    async def decrypt(self, token: str, secret: bytes) -> dict[str, Any]: ...


class FernetCipher:
    """``Cipher`` backed by ``cryptography.fernet``."""

    def __init__(self, salt: bytes = DEFAULT_SALT, iterations: int = DEFAULT_ITERATIONS) -> None:
        self._salt = salt
        self._iterations = iterations
        self._fernets: dict[bytes, Fernet] = {}

    async def encrypt(self, data: Mapping[str, Any], secret: bytes) -> str:
        try:
            plaintext = json.dumps(dict(data), separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise CipherError(f"Session payload is not JSON-serializable: {exc}") from exc
        return self._fernet(secret).encrypt(plaintext).decode("ascii")

    async def decrypt(self, token: str, secret: bytes) -> dict[str, Any]:
        try:
            plaintext = self._fernet(secret).decrypt(token.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise CipherError("Token could not be authenticated") from exc

        try:
            data = json.loads(plaintext)
        except ValueError as exc:
            raise CipherError(f"Decrypted payload is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CipherError("Decrypted payload is not a JSON object")
        return data

    # -- private helpers -----------------------------------------------------

    def _fernet(self, secret: bytes) -> Fernet:
        fernet = self._fernets.get(secret)
        if fernet is None:
            fernet = Fernet(base64.urlsafe_b64encode(self._derive_key(secret)))
            self._fernets[secret] = fernet
        return fernet

    def _derive_key(self, secret: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self._salt,
            iterations=self._iterations,
        )
        return kdf.derive(secret)


@functools.lru_cache(maxsize=1)
def default_cipher() -> FernetCipher:
    """Process-wide ``FernetCipher`` so derived keys survive across requests."""
    return FernetCipher()
