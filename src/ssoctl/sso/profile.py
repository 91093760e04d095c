"""Writing SSO profiles into the AWS config file."""

from __future__ import annotations

from ssoctl.core.exceptions import ConfigurationError, PersistError
from ssoctl.core.models import Profile, SSOSession, validate_account_id, validate_start_url
from ssoctl.logging import AuditLogger, get_audit_logger, get_logger
from ssoctl.storage.aws_config import (
    DEFAULT_PROFILE,
    AwsConfigFile,
    profile_section,
    session_section,
)

logger = get_logger("sso.profile")

# Keys that must read back from [default] exactly as written.
DEFAULT_REQUIRED_KEYS = ("sso_session", "sso_account_id", "sso_role_name")


class ProfileWriter:
    """
    Persists profiles that reference an SSO session.

    A named profile is merged in place. The default profile is dropped and
    re-appended whole, then read back and checked, because other tools rely
    on it being complete.
    """

    def __init__(self, config_file: AwsConfigFile, audit: AuditLogger | None = None):
        self.config_file = config_file
        self.audit = audit or get_audit_logger()

    def write_profile(
        self,
        profile_name: str,
        session: SSOSession,
        account_id: str,
        role: str,
        region: str,
    ) -> Profile:
        """
        Write or update a profile.

        Args:
            profile_name: Profile to write ("default" for the default profile)
            session: SSO session the profile logs in through
            account_id: 12-digit AWS account ID
            role: Permission set (role) name
            region: Region for API calls made with the profile

        Returns:
            The profile as written

        Raises:
            ValidationError: If the account ID or start URL is malformed
            PersistError: If the file cannot be written or fails verification
        """
        validate_account_id(account_id)
        validate_start_url(session.start_url)
        if not profile_name or not profile_name.strip():
            raise ConfigurationError("profile name must not be empty")
        profile_name = profile_name.strip()

        values = {
            "sso_session": session.name,
            "sso_account_id": account_id,
            "sso_role_name": role,
            "region": region,
        }

        document = self.config_file.load()
        if profile_name == DEFAULT_PROFILE:
            if document.has_section(DEFAULT_PROFILE):
                logger.info("overwriting existing default profile")
            values["sso_region"] = session.region
            values["sso_start_url"] = session.start_url
            values["output"] = "json"
            document.replace_section(DEFAULT_PROFILE, values)
            self.config_file.write(document)
            self._verify_default(values)
        else:
            values["output"] = "json"
            document.set_section(profile_section(profile_name), values)
            self.config_file.write(document)

        self.audit.profile_written(profile_name, account_id, role)
        return Profile(
            profile_name=profile_name,
            region=region,
            account_id=account_id,
            role=role,
            start_url=session.start_url,
            session_name=session.name,
            sso_region=session.region,
        )

    def _verify_default(self, expected: dict[str, str]) -> None:
        written = self.config_file.section_values(DEFAULT_PROFILE) or {}
        for key in DEFAULT_REQUIRED_KEYS:
            if written.get(key) != expected[key]:
                raise PersistError(f"failed to configure default profile: missing {key}")

    def read_profile(self, profile_name: str) -> Profile:
        """
        Read a profile back, filling SSO details from its sso-session section.

        Raises:
            ConfigurationError: If the profile is not in the config file
        """
        document = self.config_file.load()
        values = document.get(profile_section(profile_name))
        if values is None:
            raise ConfigurationError(
                f"profile {profile_name!r} not found in {self.config_file.path}"
            )

        session_name = values.get("sso_session", "")
        session_values = document.get(session_section(session_name)) if session_name else None
        session_values = session_values or {}

        sso_region = values.get("sso_region") or session_values.get("sso_region", "")
        return Profile(
            profile_name=profile_name,
            region=values.get("region") or sso_region,
            account_id=values.get("sso_account_id", ""),
            role=values.get("sso_role_name", ""),
            start_url=values.get("sso_start_url") or session_values.get("sso_start_url", ""),
            session_name=session_name,
            sso_region=sso_region,
        )

    def set_as_default(self, profile_name: str) -> Profile:
        """Copy an existing SSO profile into the default profile."""
        profile = self.read_profile(profile_name)
        missing = [
            key
            for key, value in (
                ("sso_session", profile.session_name),
                ("sso_start_url", profile.start_url),
                ("sso_region", profile.sso_region),
                ("sso_account_id", profile.account_id),
                ("sso_role_name", profile.role),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"profile {profile_name!r} is missing {', '.join(missing)}; cannot set it as default"
            )

        session = SSOSession(
            name=profile.session_name,
            start_url=profile.start_url,
            region=profile.sso_region,
        )
        return self.write_profile(
            DEFAULT_PROFILE,
            session,
            profile.account_id,
            profile.role,
            profile.region or profile.sso_region,
        )
