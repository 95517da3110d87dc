"""Loose, user-facing session options.

``SessionOptions`` is what callers write: every field is optional and the
secret may be a single value or an explicit list.  It is validated with
Pydantic but otherwise left un-defaulted; ``normalize_config`` turns it into
the canonical ``SessionConfig`` the rest of the package works with.

Settings files
--------------
The CLI reads the same options from YAML::

    session:
      key: kit.session
      expires: 7
      rolling: 10
      cookie:
        sameSite: strict
      secret:
        - {id: 2, secret: "new-secret"}
        - {id: 1, secret: "old-secret"}
    vault:
      address: http://127.0.0.1:8200
      mount: secret
      path: kit-session

The ``vault`` block is optional and only consulted when ``session.secret`` is
absent.
"""

from __future__ import annotations

import pathlib
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kit_session.errors import ConfigurationError

SameSite = Literal["lax", "strict", "none"]


class SecretOption(BaseModel):
    id: int
    secret: bytes | str


class CookieOptions(BaseModel):
    """Per-cookie attributes passed through to ``Set-Cookie``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    http_only: bool | None = Field(default=None, alias="httpOnly")
    same_site: SameSite | None = Field(default=None, alias="sameSite")
    path: str | None = None
    domain: str | None = None
    secure: bool | None = None


class SessionOptions(BaseModel):
    """Everything a caller may configure.  Only ``secret`` is required, and
    its absence is reported by the normalizer rather than here so that a
    settings file may defer it to Vault."""

    model_config = ConfigDict(extra="forbid")

    secret: bytes | str | list[SecretOption] | None = None
    key: str | None = None
    expires: float | None = Field(default=None, description="Lifetime in days")
    cookie: CookieOptions = Field(default_factory=CookieOptions)
    rolling: bool | float = False


def parse_options(raw: SessionOptions | dict[str, Any]) -> SessionOptions:
    """Validate *raw* into ``SessionOptions``.

    Raises ``ConfigurationError`` on any validation problem.
    """
    if isinstance(raw, SessionOptions):
        return raw
    try:
        return SessionOptions.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid session options: {exc}") from exc


def is_secure_environment(app_env: str) -> bool:
    """Cookies default to ``Secure`` everywhere except local development."""
    return app_env.strip().lower() != "development"


def load_options(path: str | pathlib.Path) -> tuple[SessionOptions, dict[str, Any]]:
    """Read a YAML settings file.

    Returns the validated ``session`` block and the raw ``vault`` block (empty
    when absent).  Raises ``ConfigurationError`` if the file is missing or
    malformed.
    """
    settings_path = pathlib.Path(path)
    if not settings_path.exists():
        raise ConfigurationError(f"Settings file not found: {settings_path}")
    with open(settings_path) as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Settings file is not valid YAML: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("session"), dict):
        raise ConfigurationError("Settings file must contain a top-level 'session' mapping")

    vault_block = data.get("vault") or {}
    if not isinstance(vault_block, dict):
        raise ConfigurationError("'vault' must be a mapping")
    return parse_options(data["session"]), vault_block
