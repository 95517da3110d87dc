"""Rich rendering for the ``kit-session`` command line.

The console layer only formats results; decoding, sealing and configuration
all happen in the library modules it calls.
"""

from __future__ import annotations

import datetime
import json
import secrets
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from kit_session.codec.cookie_codec import DecodedCookie
from kit_session.config.normalizer import SessionConfig
from kit_session.policy.expiry import remaining_lifetime
from kit_session.policy.rotation import needs_re_encrypt

console = Console()


def generate_secret(num_bytes: int = 32) -> str:
    return secrets.token_urlsafe(num_bytes)


def print_secret(secret: str) -> None:
    console.print(Panel(Text(secret), title="New session secret", border_style="green"))
    console.print("[dim]Prepend it to the ring with a new id; keep older ids for decoding.[/dim]")


def print_config(config: SessionConfig) -> None:
    table = Table(title="Session configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Cookie name", config.key)
    table.add_row("Lifetime", f"{config.expires_in_days:g} days ({config.cookie.max_age}s)")
    table.add_row("Rolling", _describe_rolling(config.rolling))
    table.add_row("Secret ids", ", ".join(str(i) for i in config.secrets.ids()))
    table.add_row("Current id", str(config.secrets.current.id))
    table.add_row(
        "Attributes",
        f"HttpOnly={config.cookie.http_only} Secure={config.cookie.secure} "
        f"SameSite={config.cookie.same_site} Path={config.cookie.path} "
        f"Domain={config.cookie.domain or '(host-only)'}",
    )
    console.print(table)


def print_inspection(decoded: DecodedCookie, config: SessionConfig, now: datetime.datetime) -> None:
    """Show what a cookie value holds and what the next request would do with it."""
    data = decoded.data
    remaining = remaining_lifetime(data, now)

    table = Table(title="Session cookie")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Tagged secret id", str(decoded.secret_id))
    table.add_row("Decoded with id", str(decoded.resolved_id))
    table.add_row("Needs rotation", _yes_no(needs_re_encrypt(decoded.secret_id, config.secrets)))
    table.add_row("Expires", data.expires.isoformat() if data.expires else "(never)")
    if remaining is None:
        table.add_row("Remaining", "-")
    else:
        style = "green" if remaining > 0 else "red"
        table.add_row("Remaining", f"[{style}]{remaining:.0f}s[/{style}]")
    console.print(table)
    console.print(Panel(Text(_pretty(data.payload)), title="Payload", border_style="blue"))


def print_no_session() -> None:
    console.print("[yellow]Cookie value carries no session.[/yellow]")


def print_decode_failure(reason: str) -> None:
    console.print(f"[red]Cookie could not be decoded:[/red] {escape(reason)}")
    console.print("[dim]A request carrying it would have its session destroyed.[/dim]")


def print_set_cookie(header: str | None) -> None:
    if header is None:
        console.print("[yellow]No Set-Cookie would be sent.[/yellow]")
        return
    console.print(Panel(Text(header), title="Set-Cookie", border_style="green"))


def print_error(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")


def _describe_rolling(rolling: bool | float) -> str:
    if rolling is True:
        return "every request"
    if rolling is False:
        return "off"
    return f"below {rolling:g}% of lifetime remaining"


def _yes_no(value: bool) -> str:
    return "[yellow]yes[/yellow]" if value else "no"


def _pretty(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, default=str)
