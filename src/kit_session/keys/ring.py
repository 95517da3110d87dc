"""Ordered ring of symmetric secrets used to seal session cookies.

Pattern: Current Key + Retiring Keys
-------------------------------------
A ``SecretRing`` holds every secret that may still appear on a cookie in the
wild.  Element 0 is the *current* secret: it is the only one ever used to
encode.  The remaining entries are kept for decoding until the sessions they
sealed have either expired or been migrated to the current secret.

Rotating a key is therefore a configuration change only:

  1. Prepend a new entry with a fresh id.
  2. Deploy.  Sessions sealed under older ids are re-sealed on their next
     request.
  3. Once the longest session lifetime has elapsed, drop the old entry.

The ring is frozen after construction and shared read-only between requests.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator

from kit_session.errors import ConfigurationError


@dataclasses.dataclass(frozen=True)
class SecretEntry:
    """One ``(id, secret)`` pair.

    Attributes:
        id:     Caller-assigned identifier written into every cookie value
                sealed with this secret.  Unique within a ring.
        secret: Raw key material.  Any length; the cipher derives its own key.
    """

    id: int
    secret: bytes = dataclasses.field(repr=False)


class SecretRing:
    """Non-empty, ordered collection of ``SecretEntry`` values."""

    def __init__(self, entries: Iterable[SecretEntry]) -> None:
        self._entries: tuple[SecretEntry, ...] = tuple(entries)
        if not self._entries:
            raise ConfigurationError("Please provide at least one secret")

        self._by_id: dict[int, SecretEntry] = {}
        for entry in self._entries:
            if entry.id in self._by_id:
                raise ConfigurationError(f"Duplicate secret id: {entry.id}")
            self._by_id[entry.id] = entry

    @property
    def current(self) -> SecretEntry:
        """The preferred secret; every encode uses it."""
        return self._entries[0]

    def get(self, secret_id: int) -> SecretEntry | None:
        return self._by_id.get(secret_id)

    def resolve_for_decode(self, secret_id: int) -> SecretEntry:
        """Return the entry to *attempt* decryption with for *secret_id*.

        Unknown ids fall back to the current secret.  The fallback can only
        ever select a key that is already trusted, and decryption still
        authenticates under it, so a forged id yields a decode failure rather
        than a bypass.
        """
        return self._by_id.get(secret_id, self.current)

    def is_current(self, secret_id: int) -> bool:
        return secret_id == self.current.id

    def ids(self) -> list[int]:
        return [entry.id for entry in self._entries]

    def __iter__(self) -> Iterator[SecretEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SecretRing(ids={self.ids()}, current={self.current.id})"
