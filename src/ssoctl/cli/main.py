"""CLI main entry point and command groups."""

from __future__ import annotations

import sys
from collections.abc import Callable
from functools import wraps

import click

from ssoctl import __version__
from ssoctl.cli.output import OutputFormat, error_console, print_error
from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import UserCancelled
from ssoctl.logging import init_logging


class Context:
    """CLI context object passed to all commands."""

    def __init__(self):
        self.settings: Settings = get_settings()
        self.output_format: OutputFormat = OutputFormat.TEXT
        self.verbose: bool = False
        self._service = None

    def get_service(self):
        """Build the SSO service on first use, with console prompts."""
        if self._service is None:
            from ssoctl.cli.prompt import ConsolePrompter
            from ssoctl.sso.service import SSOService

            self._service = SSOService(ConsolePrompter(), settings=self.settings)
        return self._service


pass_context = click.make_pass_decorator(Context, ensure=True)


def handle_errors(f: Callable) -> Callable:
    """Decorator to handle common errors gracefully."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except UserCancelled:
            # Cancelling a prompt or the login is not a failure.
            sys.exit(0)
        except KeyboardInterrupt:
            print_error("Operation cancelled")
            sys.exit(130)
        except click.ClickException:
            raise
        except Exception as e:
            print_error(str(e))
            if kwargs.get("verbose") or (args and hasattr(args[0], "verbose") and args[0].verbose):
                error_console.print_exception()
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="ssoctl")
@click.option(
    "-f",
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@pass_context
def cli(ctx: Context, output_format: str, verbose: bool):
    """
    ssoctl - AWS SSO credential broker

    Resolve an SSO session, log in when the cached token has expired, pick
    an account and role, and keep ~/.aws/config profiles ready to use.
    """
    ctx.output_format = OutputFormat(output_format)
    ctx.verbose = verbose
    init_logging("DEBUG" if verbose else None)


# Import and register command groups
from ssoctl.cli.commands.sso import sso_group

cli.add_command(sso_group)


# Add shortcuts for common commands
@cli.command("setup")
@click.option("--name", help="SSO session name")
@click.option("--start-url", help="SSO start URL (https://...)")
@click.option("--region", help="SSO region")
@click.option("--refresh", "-r", is_flag=True, help="Force a new SSO login")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@click.pass_context
@handle_errors
def setup_shortcut(ctx, name, start_url, region, refresh, no_browser):
    """Configure an SSO profile (shortcut for 'sso setup')."""
    ctx.invoke(
        sso_group.commands["setup"],
        name=name,
        start_url=start_url,
        region=region,
        refresh=refresh,
        no_browser=no_browser,
    )


@cli.command("init")
@click.option("--refresh", "-r", is_flag=True, help="Force a new SSO login")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@click.pass_context
@handle_errors
def init_shortcut(ctx, refresh, no_browser):
    """Refresh credentials for a profile (shortcut for 'sso init')."""
    ctx.invoke(sso_group.commands["init"], refresh=refresh, no_browser=no_browser)


def main():
    """Main entry point."""
    cli(auto_envvar_prefix="SSOCTL")


if __name__ == "__main__":
    main()
