"""Configuration management for ssoctl using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ssoctl.core.exceptions import ConfigurationError


def home_dir() -> Path:
    """Return the user's home directory."""
    try:
        return Path.home()
    except RuntimeError as e:
        raise ConfigurationError(f"failed to get user home directory: {e}") from e


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with SSOCTL_ (e.g., SSOCTL_LOGIN_TIMEOUT_SECONDS).
    The standard AWS_PROFILE, AWS_REGION and AWS_CONFIG_FILE variables are honored
    as well, before any cache or config lookup.
    """

    model_config = SettingsConfigDict(
        env_prefix="SSOCTL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # AWS CLI
    aws_cli_path: str = Field(
        default="aws",
        description="Path or name of the aws CLI executable",
    )
    aws_config_file: Path = Field(
        default_factory=lambda: home_dir() / ".aws" / "config",
        validation_alias=AliasChoices("SSOCTL_AWS_CONFIG_FILE", "AWS_CONFIG_FILE"),
        description="AWS CLI config file",
    )
    sso_cache_dir: Path = Field(
        default_factory=lambda: home_dir() / ".aws" / "sso" / "cache",
        description="Directory where the aws CLI caches SSO access tokens",
    )
    app_config_dir: Path = Field(
        default_factory=lambda: home_dir() / ".config" / "ssoctl",
        description="Directory holding config.yaml / config.yml / config.json",
    )

    # Environment overrides
    aws_profile: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SSOCTL_AWS_PROFILE", "AWS_PROFILE"),
        description="Profile to use instead of prompting",
    )
    aws_region: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SSOCTL_AWS_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"
        ),
        description="Region override",
    )

    # SSO defaults
    default_region: str = Field(
        default="us-east-1",
        description="Region offered when creating a new SSO session",
    )
    default_session_name: str = Field(
        default="default-sso",
        description="Session name offered when creating a new SSO session",
    )
    default_scopes: str = Field(
        default="sso:account:access",
        description="Registration scopes written for new SSO sessions",
    )

    # Subprocess timeouts
    login_timeout_seconds: int = Field(
        default=600,
        gt=0,
        description="Wall-clock bound for the interactive 'aws sso login' flow",
    )
    command_timeout_seconds: int | None = Field(
        default=None,
        gt=0,
        description="Optional bound for non-interactive aws CLI calls",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format",
    )

    @field_validator("aws_config_file", "sso_cache_dir", "app_config_dir")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Expand ~ in configured paths."""
        return Path(v).expanduser()

    @field_validator("aws_profile", "aws_region", mode="before")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        """Treat empty override variables as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def effective_region(self) -> str:
        """Region override if set, otherwise the default region."""
        return self.aws_region or self.default_region


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
