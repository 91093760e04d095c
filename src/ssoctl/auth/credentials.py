"""Temporary role credentials and caller identity via the aws CLI."""

from __future__ import annotations

from ssoctl.aws.cli import AwsCli
from ssoctl.core.exceptions import SubprocessError
from ssoctl.core.models import TemporaryCredentials, validate_account_id
from ssoctl.logging import AuditLogger, get_audit_logger, get_logger

logger = get_logger("auth.credentials")


class CredentialsClient:
    """
    Exchanges an SSO access token for short-lived role credentials.

    Credentials are always fetched fresh; nothing here is cached.
    """

    def __init__(self, aws: AwsCli, audit: AuditLogger | None = None):
        self.aws = aws
        self.audit = audit or get_audit_logger()

    def get_role_credentials(
        self,
        access_token: str,
        role_name: str,
        account_id: str,
        region: str | None = None,
    ) -> TemporaryCredentials:
        """
        Call 'aws sso get-role-credentials'.

        Raises:
            ValidationError: If the account ID is malformed
            SubprocessError: If the call fails or returns an unexpected payload
        """
        validate_account_id(account_id)
        args = [
            "sso",
            "get-role-credentials",
            "--access-token",
            access_token,
            "--role-name",
            role_name,
            "--account-id",
            account_id,
            "--output",
            "json",
        ]
        if region:
            args.extend(["--region", region])

        data = self.aws.run_json(*args)
        try:
            credentials = TemporaryCredentials.from_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise SubprocessError(f"unexpected get-role-credentials response: missing {e}") from e

        self.audit.credentials_exchanged(account_id, role_name)
        return credentials

    def caller_identity(self, profile_name: str) -> dict:
        """Return the 'aws sts get-caller-identity' document for a profile."""
        return self.aws.run_json("sts", "get-caller-identity", "--profile", profile_name, "--output", "json")

    def caller_identity_arn(self, profile_name: str) -> str:
        return str(self.caller_identity(profile_name).get("Arn", ""))

    def is_caller_identity_valid(self, profile_name: str) -> bool:
        """True if the profile's current credentials resolve to an identity."""
        try:
            identity = self.caller_identity(profile_name)
        except SubprocessError as e:
            logger.debug(
                "caller identity unavailable",
                extra={"profile": profile_name, "error": str(e)},
            )
            return False
        return bool(identity.get("UserId"))

    def save_credentials(self, profile_name: str, credentials: TemporaryCredentials) -> None:
        """Store temporary credentials into a profile with 'aws configure set'."""
        self.aws.configure_set("aws_access_key_id", credentials.access_key_id, profile_name)
        self.aws.configure_set("aws_secret_access_key", credentials.secret_access_key, profile_name)
        self.aws.configure_set("aws_session_token", credentials.session_token, profile_name)
        self.audit.credentials_written(profile_name)
