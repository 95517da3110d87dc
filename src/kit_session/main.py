"""CLI entry point: inspect cookie values, seal payloads, generate secrets."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import pathlib
import sys
from typing import Any
from urllib.parse import unquote

from kit_session.cli import console
from kit_session.codec.cookie_codec import DecodeFailure, decode
from kit_session.config.normalizer import SessionConfig, normalize_config
from kit_session.config.options import is_secure_environment, load_options, parse_options
from kit_session.crypto.cipher import default_cipher
from kit_session.errors import ConfigurationError
from kit_session.policy.expiry import utc_now
from kit_session.session.handle import SessionHandle
from kit_session.vault.secret_source import SecretSourceError, VaultSecretSource


def load_config(path: str | pathlib.Path, environ: dict[str, str] | None = None) -> SessionConfig:
    """Build a ``SessionConfig`` from a settings file, pulling secrets from
    Vault when the file names a ``vault`` block instead of a ``secret``."""
    env = dict(os.environ) if environ is None else environ
    options, vault_cfg = load_options(path)

    if options.secret is None and vault_cfg:
        source = VaultSecretSource(
            vault_addr=vault_cfg.get("address", env.get("VAULT_ADDR", "http://127.0.0.1:8200")),
            token=env.get("VAULT_TOKEN", ""),
            mount_point=vault_cfg.get("mount", "secret"),
            path=vault_cfg.get("path", "kit-session"),
        )
        options = parse_options({**options.model_dump(), "secret": source.load()})

    return normalize_config(
        options,
        is_secure=is_secure_environment(env.get("APP_ENV", "development")),
    )


async def _inspect(config: SessionConfig, raw: str) -> int:
    try:
        decoded = await decode(unquote(raw), config.secrets, default_cipher())
    except DecodeFailure as exc:
        console.print_decode_failure(str(exc))
        return 1
    if decoded is None:
        console.print_no_session()
        return 0
    console.print_inspection(decoded, config, utc_now())
    return 0


async def _encode(config: SessionConfig, payload: dict[str, Any], days: float | None) -> int:
    handle = await SessionHandle.create("", config)
    await handle.set(payload)
    if days is not None:
        await handle.refresh(days)
    console.print_set_cookie(handle.set_cookie)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kit-session",
        description="kit-session: encrypted cookie sessions with secret rotation",
    )
    parser.add_argument(
        "--config",
        default=str(pathlib.Path.cwd() / "config" / "settings.yaml"),
        help="Path to settings.yaml",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Print a fresh random secret")
    keygen.add_argument("--bytes", type=int, default=32, help="Entropy in bytes")

    sub.add_parser("show-config", help="Print the normalized configuration")

    inspect_cmd = sub.add_parser("inspect", help="Decode a session cookie value")
    inspect_cmd.add_argument("cookie", help="Cookie value (URL-encoded or raw)")

    encode_cmd = sub.add_parser("encode", help="Seal a JSON payload into a Set-Cookie header")
    encode_cmd.add_argument("--data", default="{}", help="JSON object to store")
    encode_cmd.add_argument("--days", type=float, default=None, help="Override lifetime in days")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "keygen":
        console.print_secret(console.generate_secret(args.bytes))
        return 0

    try:
        config = load_config(args.config)
    except (ConfigurationError, SecretSourceError) as exc:
        console.print_error(str(exc))
        return 2

    if args.command == "show-config":
        console.print_config(config)
        return 0
    if args.command == "inspect":
        return asyncio.run(_inspect(config, args.cookie))

    try:
        payload = json.loads(args.data)
    except ValueError as exc:
        console.print_error(f"--data is not valid JSON: {exc}")
        return 2
    if not isinstance(payload, dict):
        console.print_error("--data must be a JSON object")
        return 2
    return asyncio.run(_encode(config, payload, args.days))


if __name__ == "__main__":
    sys.exit(main())
