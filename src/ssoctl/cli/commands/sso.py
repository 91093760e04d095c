"""AWS SSO commands for CLI."""

from __future__ import annotations

import click

from ssoctl.cli.main import Context, handle_errors, pass_context
from ssoctl.cli.output import (
    OutputFormat,
    console,
    create_table,
    print_credentials,
    print_info,
    print_json,
    print_profile_summary,
    print_success,
    spinner_context,
)
from ssoctl.sso.service import SSOOptions


@click.group("sso")
def sso_group():
    """AWS SSO sessions, profiles and credentials."""
    pass


@sso_group.command("setup")
@click.option("--name", help="SSO session name")
@click.option("--start-url", help="SSO start URL (https://...)")
@click.option("--region", help="SSO region")
@click.option("--refresh", "-r", is_flag=True, help="Force a new SSO login")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@pass_context
@handle_errors
def setup(
    ctx: Context,
    name: str | None,
    start_url: str | None,
    region: str | None,
    refresh: bool,
    no_browser: bool,
):
    """
    Configure an AWS profile through SSO.

    Picks or creates an SSO session, registers it in ~/.aws/config, logs
    in if the cached token is missing or expired, then asks for the account,
    role and profile name.
    """
    service = ctx.get_service()
    result = service.setup(
        name=name,
        start_url=start_url,
        region=region,
        options=SSOOptions(force_refresh=refresh, no_browser=no_browser),
    )

    if ctx.output_format == OutputFormat.JSON:
        print_json({
            "profile": result.profile.profile_name,
            "sso_session": result.profile.session_name,
            "sso_start_url": result.profile.start_url,
            "sso_region": result.profile.sso_region,
            "region": result.profile.region,
            "account_id": result.profile.account_id,
            "account_name": result.account_name,
            "role": result.profile.role,
            "default": result.set_as_default,
            "token_expires_at": result.token_expires_at,
        })
        return

    print_success(f"Configured AWS profile '{result.profile.profile_name}'")
    if result.set_as_default and not result.profile.is_default:
        print_success("Set this profile as default")
    print_profile_summary(
        result.profile,
        account_name=result.account_name,
        expires_at=result.token_expires_at,
    )


@sso_group.command("init")
@click.option("--refresh", "-r", is_flag=True, help="Force a new SSO login")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@pass_context
@handle_errors
def init(ctx: Context, refresh: bool, no_browser: bool):
    """
    Refresh the credentials of an existing SSO profile.

    Uses AWS_PROFILE when set, otherwise asks which profile to use (and runs
    setup first if there are none).
    """
    service = ctx.get_service()
    result = service.init(SSOOptions(force_refresh=refresh, no_browser=no_browser))

    if ctx.output_format == OutputFormat.JSON:
        print_json({
            "profile": result.profile.profile_name,
            "account_id": result.profile.account_id,
            "account_name": result.account_name,
            "role": result.profile.role,
            "role_arn": result.caller_arn,
            "expiration": result.credentials.expiration,
        })
        return

    print_success(f"Credentials for profile '{result.profile.profile_name}' are ready")
    print_profile_summary(
        result.profile,
        account_name=result.account_name,
        caller_arn=result.caller_arn,
        expires_at=result.credentials.expiration,
    )


@sso_group.command("token")
@click.option("--session", "session_name", help="SSO session name")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@pass_context
@handle_errors
def token(ctx: Context, session_name: str | None, no_browser: bool):
    """Print a valid SSO access token, logging in if needed."""
    service = ctx.get_service()
    if session_name:
        session = service.sessions.lookup(session_name)
    else:
        session = service.sessions.resolve()

    access_token = service.resolve_token(session, SSOOptions(no_browser=no_browser))

    if ctx.output_format == OutputFormat.JSON:
        print_json({"sso_session": session.name, "access_token": access_token})
        return
    click.echo(access_token)


@sso_group.command("credentials")
@click.option("--profile", "-p", "profile_name", help="Profile to get credentials for")
@click.option("--no-browser", is_flag=True, help="Do not open a browser for login")
@pass_context
@handle_errors
def credentials(ctx: Context, profile_name: str | None, no_browser: bool):
    """Print temporary credentials for a profile's account and role."""
    profile_name = profile_name or ctx.settings.aws_profile
    if not profile_name:
        raise click.UsageError("--profile is required when AWS_PROFILE is not set")

    service = ctx.get_service()
    profile = service.profiles.read_profile(profile_name)
    session = service.session_for_profile(profile)
    access_token = service.resolve_token(session, SSOOptions(no_browser=no_browser))
    creds = service.exchange_for_credentials(
        access_token, profile.role, profile.account_id, region=session.region
    )

    if ctx.output_format == OutputFormat.JSON:
        print_json(creds)
        return
    print_credentials(creds)


@sso_group.command("profiles")
@pass_context
@handle_errors
def profiles(ctx: Context):
    """List AWS CLI profiles."""
    service = ctx.get_service()
    with spinner_context("Listing profiles..."):
        names = service.list_known_profiles()

    if ctx.output_format == OutputFormat.JSON:
        print_json(names)
        return

    if not names:
        print_info("No profiles found")
        console.print("\nRun [bold]ssoctl setup[/bold] to configure one")
        return

    table = create_table(title="AWS Profiles", columns=[("Profile", "cyan")])
    for name in names:
        table.add_row(name)
    console.print(table)
