"""Driving the 'aws sso login' browser/device flow."""

from __future__ import annotations

from ssoctl.auth.credentials import CredentialsClient
from ssoctl.auth.token_cache import TokenCache
from ssoctl.aws.cli import AwsCli
from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import ConfigurationError, SSOCtlError, TokenCacheError
from ssoctl.core.models import SSOSession
from ssoctl.logging import AuditLogger, get_audit_logger, get_logger
from ssoctl.storage.aws_config import AwsConfigFile, profile_section, session_section

logger = get_logger("auth.login")

LoginTarget = SSOSession | str


class LoginOrchestrator:
    """
    Runs 'aws sso login' for an SSO session or a profile.

    The interactive process is bounded by ``Settings.login_timeout_seconds``;
    there is no other login timeout.
    """

    def __init__(
        self,
        aws: AwsCli,
        config_file: AwsConfigFile,
        token_cache: TokenCache,
        credentials: CredentialsClient | None = None,
        settings: Settings | None = None,
        audit: AuditLogger | None = None,
    ):
        self.aws = aws
        self.config_file = config_file
        self.token_cache = token_cache
        self.credentials = credentials or CredentialsClient(aws)
        self.settings = settings or get_settings()
        self.audit = audit or get_audit_logger()

    @staticmethod
    def _describe(target: LoginTarget) -> str:
        if isinstance(target, SSOSession):
            return f"sso-session {target.name}"
        return f"profile {target}"

    def _check_registered(self, target: LoginTarget) -> None:
        if isinstance(target, SSOSession):
            section = session_section(target.name)
        else:
            section = profile_section(target)

        if not self.config_file.has_section(section):
            raise ConfigurationError(
                f"[{section}] not found in {self.config_file.path}; "
                "run 'ssoctl sso setup' to configure it"
            )

    def is_logged_in(self, target: LoginTarget) -> bool:
        """Check whether the target already has usable credentials."""
        if isinstance(target, SSOSession):
            try:
                self.token_cache.resolve(target)
            except TokenCacheError:
                return False
            return True
        return self.credentials.is_caller_identity_valid(target)

    def login(
        self,
        target: LoginTarget,
        force_refresh: bool = False,
        no_browser: bool = False,
    ) -> bool:
        """
        Log in to the target unless it is already valid.

        Args:
            target: SSOSession (logs in with --sso-session) or profile name
                (logs in with --profile)
            force_refresh: Log in even if credentials are still valid
            no_browser: Print the verification URL instead of opening a browser

        Returns:
            True if 'aws sso login' was run, False if it was skipped

        Raises:
            ConfigurationError: If the target is not in the AWS config file
            LoginTimeoutError: If the browser flow was not completed in time
            UserCancelled: If the user interrupted the login
            SubprocessError: If 'aws sso login' failed
        """
        self._check_registered(target)
        name = self._describe(target)

        if not force_refresh and self.is_logged_in(target):
            logger.info("already logged in", extra={"target": name})
            return False

        args = ["sso", "login"]
        if no_browser:
            args.append("--no-browser")
        if isinstance(target, SSOSession):
            args.extend(["--sso-session", target.name])
        else:
            args.extend(["--profile", target])

        self.token_cache.invalidate()
        logger.info("starting SSO login", extra={"target": name, "no_browser": no_browser})
        try:
            self.aws.run_interactive(*args, timeout=self.settings.login_timeout_seconds)
        except SSOCtlError as e:
            self.audit.login(name, success=False, error=str(e))
            raise

        self.audit.login(name)
        return True
