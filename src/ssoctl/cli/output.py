"""Output formatting helpers for CLI."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ssoctl.core.models import Profile, TemporaryCredentials

# Global console instances
console = Console()
error_console = Console(stderr=True)


class OutputFormat(str, Enum):
    """Output format options."""

    TEXT = "text"
    JSON = "json"


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    if hasattr(data, "to_dict"):
        data = data.to_dict()

    def serialize(obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, timedelta):
            return str(obj)
        elif hasattr(obj, "value"):  # Enum
            return obj.value
        elif hasattr(obj, "__dict__"):
            return obj.__dict__
        return str(obj)

    console.print_json(json.dumps(data, default=serialize, indent=2))


def create_table(
    title: str | None = None,
    columns: list[tuple[str, str]] | None = None,
) -> Table:
    """
    Create a rich table.

    Args:
        title: Optional table title
        columns: List of (header, style) tuples

    Returns:
        Rich Table instance
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")

    if columns:
        for header, style in columns:
            table.add_column(header, style=style)

    return table


def format_datetime(dt: datetime | None) -> str:
    """Format a datetime for display."""
    if dt is None:
        return "—"
    return dt.strftime("%Y-%m-%d %H:%M:%S %Z")


def format_timedelta(td: timedelta | None) -> str:
    """Format a timedelta for display."""
    if td is None:
        return "—"

    total_seconds = int(td.total_seconds())

    if total_seconds < 60:
        return f"{total_seconds}s"
    elif total_seconds < 3600:
        return f"{total_seconds // 60}m"
    else:
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def format_expiry(expires_at: datetime, now: datetime | None = None) -> Text:
    """Format a credential expiry with color coding."""
    now = now or datetime.now(timezone.utc)
    remaining = expires_at - now

    if remaining.total_seconds() <= 0:
        return Text("Expired", style="red")
    elif remaining.total_seconds() < 900:  # < 15 minutes
        return Text(f"{format_timedelta(remaining)} remaining", style="yellow")
    else:
        return Text(f"{format_timedelta(remaining)} remaining", style="green")


def print_profile_summary(
    profile: Profile,
    account_name: str = "",
    caller_arn: str | None = None,
    expires_at: datetime | None = None,
) -> None:
    """Print the configured profile in a panel."""
    content = []
    content.append(f"[cyan]Profile:[/cyan]      {profile.profile_name}")
    content.append(f"[cyan]SSO Session:[/cyan]  {profile.session_name or 'N/A'}")
    content.append(f"[cyan]Start URL:[/cyan]    {profile.start_url or 'N/A'}")
    content.append(f"[cyan]Region:[/cyan]       {profile.region or 'N/A'}")

    content.append("")
    account = profile.account_id or "N/A"
    if account_name:
        account = f"{account} ({account_name})"
    content.append(f"[cyan]Account:[/cyan]      {account}")
    content.append(f"[cyan]Role:[/cyan]         {profile.role or 'N/A'}")

    if caller_arn:
        content.append("")
        content.append(f"[cyan]Identity:[/cyan]     {caller_arn}")
    if expires_at is not None:
        content.append(f"[cyan]Expires:[/cyan]      {format_datetime(expires_at)}")

    panel = Panel(
        "\n".join(content),
        title=f"[bold]AWS Profile: {profile.profile_name}[/bold]",
        border_style="green",
    )
    console.print(panel)

    console.print(f"\n[dim]Use it with: aws s3 ls --profile {profile.profile_name}[/dim]")


def print_credentials(credentials: TemporaryCredentials) -> None:
    """Print temporary credentials as shell exports."""
    exports = (
        ("AWS_ACCESS_KEY_ID", credentials.access_key_id),
        ("AWS_SECRET_ACCESS_KEY", credentials.secret_access_key),
        ("AWS_SESSION_TOKEN", credentials.session_token),
    )
    for name, value in exports:
        # Tokens are long; never wrap them.
        console.print(f"export {name}={value}", markup=False, highlight=False, soft_wrap=True)
    console.print(
        Text.assemble("# expires ", format_expiry(credentials.expiration)),
    )


def spinner_context(message: str):
    """
    Create a spinner context manager.

    Usage:
        with spinner_context("Loading..."):
            do_something()
    """
    return console.status(message, spinner="dots")
