"""Secret ring material fetched from HashiCorp Vault.

Pattern: Vault as Key Custodian
--------------------------------
Session secrets are long-lived symmetric keys that every application replica
must share.  Keeping them in Vault's KV v2 engine rather than in a settings
file means rotation is a single ``vault kv put`` followed by a rolling
restart, and the key material never lands in version control.

The secret at ``<mount>/<path>`` holds either a single key::

    {"secret": "..."}

or the full ring, current key first::

    {"secrets": [{"id": 2, "secret": "..."}, {"id": 1, "secret": "..."}]}

The source returns exactly what ``SessionOptions.secret`` accepts, so the
normalizer stays the only place where rings are built and validated.
"""

from __future__ import annotations

import logging
from typing import Any

import hvac

logger = logging.getLogger(__name__)


class SecretSourceError(Exception):
    """Raised when Vault cannot provide the session secrets."""


class VaultSecretSource:
    """Reads session secrets from a KV v2 secret."""

    def __init__(
        self,
        vault_addr: str,
        token: str,
        mount_point: str = "secret",
        path: str = "kit-session",
    ) -> None:
        self._vault_addr = vault_addr
        self._mount_point = mount_point
        self._path = path
        self._client = hvac.Client(url=vault_addr, token=token)

    def load(self) -> str | list[dict[str, Any]]:
        """Return the secret (or ring) stored in Vault.

        Raises ``SecretSourceError`` on Vault errors or an unexpected shape.
        """
        try:
            response = self._client.secrets.kv.v2.read_secret_version(
                path=self._path,
                mount_point=self._mount_point,
                raise_on_deleted_version=True,
            )
        except hvac.exceptions.VaultError as exc:
            raise SecretSourceError(
                f"Vault read failed for {self._mount_point}/{self._path}: {exc}"
            ) from exc

        data: dict[str, Any] = response["data"]["data"]
        if "secrets" in data:
            ring = data["secrets"]
            if not isinstance(ring, list) or not all(
                isinstance(item, dict) and {"id", "secret"} <= item.keys() for item in ring
            ):
                raise SecretSourceError("'secrets' must be a list of {id, secret} objects")
            logger.info(
                "Loaded %d session secrets from %s/%s (current id=%s)",
                len(ring),
                self._mount_point,
                self._path,
                ring[0]["id"] if ring else "none",
            )
            return ring
        if "secret" in data:
            logger.info("Loaded single session secret from %s/%s", self._mount_point, self._path)
            return data["secret"]
        raise SecretSourceError(
            f"Vault secret {self._mount_point}/{self._path} has neither 'secret' nor 'secrets'"
        )
