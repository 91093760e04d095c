"""Application settings file (~/.config/ssoctl/config.yaml)."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import ConfigurationError
from ssoctl.core.models import DEFAULT_SCOPES, Account, Profile, SSOSession
from ssoctl.logging import get_logger
from ssoctl.storage.files import write_atomic

logger = get_logger("storage.app_config")

CONFIG_FILENAMES = ("config.yml", "config.yaml", "config.json")


# -----------------------------------------------------------------------------
# File schema
# -----------------------------------------------------------------------------


class _Entry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SessionEntry(_Entry):
    """A saved SSO session."""

    name: str = ""
    start_url: str = Field(default="", alias="startUrl")
    region: str = ""
    scopes: str = ""

    def is_complete(self) -> bool:
        return bool(self.name and self.start_url and self.region)

    def to_session(self) -> SSOSession:
        return SSOSession(
            name=self.name,
            start_url=self.start_url,
            region=self.region,
            scopes=self.scopes or DEFAULT_SCOPES,
        )

    @classmethod
    def from_session(cls, session: SSOSession) -> "SessionEntry":
        return cls(
            name=session.name,
            start_url=session.start_url,
            region=session.region,
            scopes=session.scopes,
        )


class AccountEntry(_Entry):
    """An account listed under a saved profile."""

    account_id: str = Field(default="", alias="accountId")
    account_name: str = Field(default="", alias="accountName")
    sso_region: str = Field(default="", alias="ssoRegion")
    email: str = Field(default="", alias="emailAddress")
    roles: list[str] = Field(default_factory=list)

    def to_account(self) -> Account:
        return Account(
            account_id=self.account_id,
            account_name=self.account_name,
            region=self.sso_region,
            email=self.email,
            roles=list(self.roles),
        )


class ProfileEntry(_Entry):
    """A saved profile with the accounts reachable through it."""

    profile_name: str = Field(default="", alias="profileName")
    region: str = ""
    account_id: str = Field(default="", alias="accountId")
    role: str = ""
    sso_start_url: str = Field(default="", alias="ssoStartUrl")
    sso_session: str = Field(default="", alias="ssoSession")
    accounts: list[AccountEntry] = Field(default_factory=list, alias="accountList")

    def to_profile(self) -> Profile:
        return Profile(
            profile_name=self.profile_name,
            region=self.region,
            account_id=self.account_id,
            role=self.role,
            start_url=self.sso_start_url,
            session_name=self.sso_session,
            accounts=[a.to_account() for a in self.accounts],
        )


class AwsSection(_Entry):
    profiles: list[ProfileEntry] = Field(default_factory=list)


class AppConfig(_Entry):
    """Root of the application settings file."""

    sso_sessions: list[SessionEntry] = Field(default_factory=list, alias="ssoSessions")
    aws: AwsSection = Field(default_factory=AwsSection)

    def sessions(self) -> list[SSOSession]:
        """Saved sessions that have every required field."""
        return [s.to_session() for s in self.sso_sessions if s.is_complete()]

    def add_session(self, session: SSOSession) -> None:
        """Add or replace a session by name."""
        entry = SessionEntry.from_session(session)
        for i, existing in enumerate(self.sso_sessions):
            if existing.name == session.name:
                self.sso_sessions[i] = entry
                return
        self.sso_sessions.append(entry)


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class AppConfigStore:
    """
    Locates, reads and writes the application settings file.

    Looks for config.yml, config.yaml, then config.json in the config
    directory. Content is parsed as YAML first, then as JSON.
    """

    def __init__(self, config_dir: Path | None = None, settings: Settings | None = None):
        if config_dir is None:
            config_dir = (settings or get_settings()).app_config_dir
        self.config_dir = Path(config_dir)

    def find(self) -> Path | None:
        """Return the first existing settings file, or None."""
        if not self.config_dir.exists():
            return None
        if not self.config_dir.is_dir():
            raise ConfigurationError(f"{self.config_dir} is not a directory")
        for filename in CONFIG_FILENAMES:
            path = self.config_dir / filename
            if path.is_file():
                return path
        return None

    def load(self) -> AppConfig:
        """
        Load the settings file.

        Returns:
            Parsed AppConfig, empty if no settings file exists

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        path = self.find()
        if path is None:
            return AppConfig()

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"failed to read config file {path}: {e}") from e

        if not text.strip():
            return AppConfig()

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError:
            logger.debug("YAML parsing failed, trying JSON", extra={"path": str(path)})
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"failed to parse config file {path}: {e}") from e

        if data is None:
            return AppConfig()
        if not isinstance(data, dict):
            raise ConfigurationError(f"failed to parse config file {path}: expected a mapping")

        try:
            return AppConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"invalid config file {path}: {e}") from e

    def save(self, config: AppConfig) -> Path:
        """Atomically write the settings as YAML to config.yaml."""
        path = self.config_dir / "config.yaml"
        data = config.model_dump(by_alias=True, exclude_defaults=False)
        write_atomic(path, yaml.safe_dump(data, sort_keys=False))
        return path
