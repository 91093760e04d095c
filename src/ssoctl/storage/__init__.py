"""Storage layer for ssoctl."""

from ssoctl.storage.app_config import AppConfig, AppConfigStore, SessionEntry
from ssoctl.storage.aws_config import (
    DEFAULT_PROFILE,
    AwsConfigFile,
    profile_section,
    session_section,
)
from ssoctl.storage.files import ensure_dir, write_atomic
from ssoctl.storage.ini import ConfigDocument, Section

__all__ = [
    # Files
    "ensure_dir",
    "write_atomic",
    # INI document
    "ConfigDocument",
    "Section",
    # AWS config
    "AwsConfigFile",
    "DEFAULT_PROFILE",
    "profile_section",
    "session_section",
    # App config
    "AppConfig",
    "AppConfigStore",
    "SessionEntry",
]
