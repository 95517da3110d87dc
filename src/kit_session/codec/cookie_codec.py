"""Seal session data into a single cookie value, and open it again.

Wire format
-----------
::

    <ciphertext>&id=<secretId>

``ciphertext`` is whatever the cipher produced; ``secretId`` is the decimal id
of the ring entry used to seal it.  Values written before ids were tagged carry
no ``&id=`` segment and are read as id ``1``.  The literal ``0`` is the destroy
sentinel and decodes to "no session".

Tagging the value with the sealing secret's id makes decoding a single
attempt with a single key instead of a trial of every key in the ring.  The
tag is not itself protected; it only chooses which key to try.
"""

from __future__ import annotations

import dataclasses
import logging

from kit_session.crypto.cipher import Cipher, CipherError
from kit_session.keys.ring import SecretRing
from kit_session.session.data import SessionData

logger = logging.getLogger(__name__)

ID_MARKER = "&id="
DESTROY_SENTINEL = "0"
LEGACY_SECRET_ID = 1


class DecodeFailure(Exception):
    """A cookie value could not be opened under the ring.

    Always recovered by destroying the session; never reaches the end caller.
    """


@dataclasses.dataclass(frozen=True)
class DecodedCookie:
    """Result of a successful decode.

    Attributes:
        data:        The opened session.
        secret_id:   Id the cookie value was tagged with.
        resolved_id: Id of the ring entry actually used to open it.  Differs
                     from ``secret_id`` only when the tag was unknown.
    """

    data: SessionData
    secret_id: int
    resolved_id: int


async def encode(data: SessionData, ring: SecretRing, cipher: Cipher) -> str:
    """Seal *data* with the ring's current secret and tag it with its id."""
    current = ring.current
    ciphertext = await cipher.encrypt(data.to_wire(), current.secret)
    return f"{ciphertext}{ID_MARKER}{current.id}"


async def decode(raw: str, ring: SecretRing, cipher: Cipher) -> DecodedCookie | None:
    """Open the cookie value *raw*.

    Returns ``None`` when *raw* carries no session at all.  Raises
    ``DecodeFailure`` when it carries one that cannot be opened.
    """
    ciphertext, marker, tag = raw.rpartition(ID_MARKER)
    if not marker:
        ciphertext, tag = raw, ""

    if not ciphertext or ciphertext == DESTROY_SENTINEL:
        return None

    secret_id = _parse_secret_id(tag)
    entry = ring.resolve_for_decode(secret_id)
    if entry.id != secret_id:
        logger.debug("Unknown secret id %s; attempting current secret %s", secret_id, entry.id)

    try:
        opened = await cipher.decrypt(ciphertext, entry.secret)
        data = SessionData.from_wire(opened)
    except (CipherError, ValueError) as exc:
        raise DecodeFailure(f"Cookie could not be decoded with secret id {entry.id}") from exc

    return DecodedCookie(data=data, secret_id=secret_id, resolved_id=entry.id)


def _parse_secret_id(tag: str) -> int:
    if not tag:
        return LEGACY_SECRET_ID
    if not (tag.isascii() and tag.isdigit()):
        raise DecodeFailure(f"Malformed secret id tag: {tag[:16]!r}")
    try:
        return int(tag)
    except ValueError as exc:
        # Digit strings past the interpreter's int conversion limit.
        raise DecodeFailure(f"Malformed secret id tag: {tag[:16]!r}...") from exc
