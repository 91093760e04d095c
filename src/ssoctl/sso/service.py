"""The SSO flows exposed to the command line."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from ssoctl.auth.credentials import CredentialsClient
from ssoctl.auth.login import LoginOrchestrator
from ssoctl.auth.token_cache import TokenCache
from ssoctl.aws.cli import AwsCli
from ssoctl.cli.prompt import Prompter
from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import (
    ConfigurationError,
    SelectionError,
    SSOCtlError,
    StepError,
    ValidationError,
)
from ssoctl.core.models import (
    CachedToken,
    Profile,
    SSOSession,
    TemporaryCredentials,
    is_valid_region,
)
from ssoctl.logging import AuditLogger, get_audit_logger, get_logger
from ssoctl.sso.profile import ProfileWriter
from ssoctl.sso.selection import AccountRoleSelector
from ssoctl.sso.session import SessionResolver
from ssoctl.storage.app_config import AppConfigStore
from ssoctl.storage.aws_config import DEFAULT_PROFILE, AwsConfigFile

logger = get_logger("sso.service")

DEFAULT_PROFILE_NAME = "sso-profile"


@dataclass(frozen=True)
class SSOOptions:
    """Per-run switches for the login step."""

    force_refresh: bool = False
    no_browser: bool = False


@dataclass
class SetupResult:
    """Outcome of a completed setup flow."""

    profile: Profile
    account_name: str
    token_expires_at: datetime | None = None
    set_as_default: bool = False


@dataclass
class InitResult:
    """Outcome of a completed init flow."""

    profile: Profile
    account_name: str
    caller_arn: str
    credentials: TemporaryCredentials


@contextmanager
def _step(name: str) -> Iterator[None]:
    """Attach the step name to any ssoctl error raised inside the block."""
    try:
        yield
    except StepError:
        raise
    except SSOCtlError as e:
        logger.debug("step failed", extra={"step": name, "error": str(e)})
        raise StepError(name, e) from e


def _validate_region(value: str) -> None:
    if not is_valid_region(value):
        raise ValidationError(f"invalid AWS region format: {value!r}")


class SSOService:
    """
    Wires the SSO components together.

    Every collaborator can be injected; by default they are built from
    settings. UserCancelled is never wrapped and reaches the caller as is.
    """

    def __init__(
        self,
        prompter: Prompter,
        settings: Settings | None = None,
        aws: AwsCli | None = None,
        config_file: AwsConfigFile | None = None,
        app_config: AppConfigStore | None = None,
        token_cache: TokenCache | None = None,
        audit: AuditLogger | None = None,
    ):
        self.settings = settings or get_settings()
        self.prompter = prompter
        self.audit = audit or get_audit_logger()
        self.aws = aws or AwsCli(self.settings)
        self.config_file = config_file or AwsConfigFile(settings=self.settings)
        self.app_config = app_config or AppConfigStore(settings=self.settings)
        self.token_cache = token_cache or TokenCache(settings=self.settings)

        self.credentials = CredentialsClient(self.aws, audit=self.audit)
        self.login = LoginOrchestrator(
            self.aws,
            self.config_file,
            self.token_cache,
            credentials=self.credentials,
            settings=self.settings,
            audit=self.audit,
        )
        self.sessions = SessionResolver(
            prompter,
            self.config_file,
            self.app_config,
            settings=self.settings,
            audit=self.audit,
        )
        self.selector = AccountRoleSelector(self.aws, prompter, self.token_cache)
        self.profiles = ProfileWriter(self.config_file, audit=self.audit)

    # -------------------------------------------------------------------------
    # Tokens and credentials
    # -------------------------------------------------------------------------

    def _ensure_token(self, session: SSOSession, options: SSOOptions) -> CachedToken:
        if options.force_refresh:
            self.login.login(session, force_refresh=True, no_browser=options.no_browser)

        def login(s: SSOSession) -> None:
            self.login.login(s, force_refresh=True, no_browser=options.no_browser)

        return self.token_cache.resolve_with_auto_login(session, login)

    def resolve_token(self, session: SSOSession, options: SSOOptions | None = None) -> str:
        """
        Return a valid access token for the session, logging in once if needed.

        Raises:
            ConfigurationError: If the session is not registered in the AWS config
            TokenCacheError: If no valid token exists even after login
            UserCancelled: If the user interrupted the login
        """
        return self._ensure_token(session, options or SSOOptions()).access_token

    def exchange_for_credentials(
        self,
        token: str,
        role: str,
        account_id: str,
        region: str | None = None,
    ) -> TemporaryCredentials:
        """Exchange an access token for temporary role credentials."""
        return self.credentials.get_role_credentials(token, role, account_id, region=region)

    def list_known_profiles(self) -> list[str]:
        """Profiles known to the aws CLI, without the default profile."""
        return [p for p in self.aws.list_profiles() if p != DEFAULT_PROFILE]

    def session_for_profile(self, profile: Profile) -> SSOSession:
        """The SSO session a stored profile logs in through."""
        if not profile.start_url or not profile.sso_region:
            raise ConfigurationError(
                f"profile {profile.profile_name!r} has no SSO start URL or region"
            )
        return SSOSession(
            name=profile.session_name,
            start_url=profile.start_url,
            region=profile.sso_region,
        )

    # -------------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------------

    def setup(
        self,
        name: str | None = None,
        start_url: str | None = None,
        region: str | None = None,
        options: SSOOptions | None = None,
    ) -> SetupResult:
        """
        Interactive first-time configuration.

        Resolves and registers the session, logs in if needed, asks for the
        account and role, writes the profile, and optionally makes it the
        default profile.

        Raises:
            UserCancelled: If the user interrupted any prompt or the login
            StepError: If a step failed; ``cause`` holds the original error
        """
        options = options or SSOOptions()

        with _step("resolve SSO session"):
            session = self.sessions.resolve(name, start_url, region)

        with _step("register SSO session"):
            self.sessions.register(session)
            if session in self.sessions.sessions:
                self.sessions.save(session)

        with _step("SSO login"):
            token = self._ensure_token(session, options)

        with _step("select account"):
            account_id, account_name = self.selector.select_account(session)

        with _step("select role"):
            role = self.selector.select_role(session, account_id)

        with _step("profile details"):
            profile_name = self.prompter.text_input(
                "Profile name to configure", default=DEFAULT_PROFILE_NAME
            )
            profile_region = self.prompter.text_input(
                "AWS region for this profile",
                default=session.region,
                validate=_validate_region,
            )

        with _step("write profile"):
            profile = self.profiles.write_profile(
                profile_name, session, account_id, role, profile_region
            )

        made_default = profile.is_default
        if not profile.is_default and self.prompter.confirm(
            "Set this profile as the default profile?", default=False
        ):
            with _step("set default profile"):
                self.profiles.set_as_default(profile.profile_name)
            made_default = True

        logger.info(
            "setup complete",
            extra={"profile": profile.profile_name, "session": session.name},
        )
        return SetupResult(
            profile=profile,
            account_name=account_name or "Unknown",
            token_expires_at=token.expires_at,
            set_as_default=made_default,
        )

    def _choose_profile(self, options: SSOOptions) -> str:
        if self.settings.aws_profile:
            return self.settings.aws_profile

        with _step("list profiles"):
            profiles = self.list_known_profiles()

        if not profiles:
            logger.info("no profiles found, running setup")
            self.setup(options=options)
            with _step("list profiles"):
                profiles = self.list_known_profiles()
                if not profiles:
                    raise SelectionError("no AWS profiles found after setup")

        return self.prompter.select_one("Select an AWS SSO profile", profiles)

    def init(self, options: SSOOptions | None = None) -> InitResult:
        """
        Make sure an existing profile has a valid token and fresh credentials.

        The profile comes from AWS_PROFILE when set, otherwise the user picks
        one (running setup first when none exist). The credentials are also
        written to the default profile.

        Raises:
            UserCancelled: If the user interrupted a prompt or the login
            StepError: If a step failed; ``cause`` holds the original error
        """
        options = options or SSOOptions()
        profile_name = self._choose_profile(options)

        with _step("SSO login"):
            self.login.login(
                profile_name,
                force_refresh=options.force_refresh,
                no_browser=options.no_browser,
            )

        with _step("read profile"):
            role = self.aws.configure_get("sso_role_name", profile_name)
            account_id = self.aws.configure_get("sso_account_id", profile_name)
            profile = self.profiles.read_profile(profile_name)
            session = self.session_for_profile(profile)

        def login_profile(_: SSOSession) -> None:
            self.login.login(profile_name, force_refresh=True, no_browser=options.no_browser)

        # A valid caller identity can come from credentials written by an
        # earlier init while the SSO token itself has expired.
        with _step("resolve access token"):
            token = self.token_cache.resolve_with_auto_login(session, login_profile)

        with _step("exchange credentials"):
            credentials = self.exchange_for_credentials(
                token.access_token, role, account_id, region=session.region
            )

        with _step("write credentials"):
            self.credentials.save_credentials(profile_name, credentials)
            if profile_name != DEFAULT_PROFILE:
                self.credentials.save_credentials(DEFAULT_PROFILE, credentials)

        with _step("caller identity"):
            caller_arn = self.credentials.caller_identity_arn(profile_name)

        account_name = self.selector.account_name(session, account_id)

        profile.account_id = account_id
        profile.role = role
        return InitResult(
            profile=profile,
            account_name=account_name,
            caller_arn=caller_arn,
            credentials=credentials,
        )
