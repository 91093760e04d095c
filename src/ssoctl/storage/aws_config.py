"""Access to the AWS CLI config file (~/.aws/config)."""

from __future__ import annotations

from pathlib import Path

from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import ConfigurationError
from ssoctl.storage.files import write_atomic
from ssoctl.storage.ini import ConfigDocument

DEFAULT_PROFILE = "default"


def profile_section(profile_name: str) -> str:
    """Section name for a profile ('default' has no 'profile ' prefix)."""
    if profile_name == DEFAULT_PROFILE:
        return DEFAULT_PROFILE
    return f"profile {profile_name}"


def session_section(session_name: str) -> str:
    """Section name for an SSO session."""
    return f"sso-session {session_name}"


class AwsConfigFile:
    """
    Reads and atomically rewrites the AWS CLI config file.

    The file is shared with the aws CLI and other tools, so every write goes
    through write_atomic and leaves unrelated sections untouched.
    """

    def __init__(self, path: Path | None = None, settings: Settings | None = None):
        settings = settings or (get_settings() if path is None else None)
        self.path = Path(path) if path is not None else settings.aws_config_file

    def read(self) -> ConfigDocument | None:
        """
        Parse the config file.

        Returns:
            ConfigDocument, or None if the file does not exist

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigurationError(f"failed to read {self.path}: {e}") from e
        return ConfigDocument.parse(text)

    def load(self) -> ConfigDocument:
        """Parse the config file, returning an empty document if it is missing."""
        return self.read() or ConfigDocument()

    def write(self, document: ConfigDocument) -> None:
        """Atomically replace the config file with the rendered document."""
        write_atomic(self.path, document.render())

    def has_section(self, name: str) -> bool:
        document = self.read()
        return document is not None and document.has_section(name)

    def section_values(self, name: str) -> dict[str, str] | None:
        document = self.read()
        if document is None:
            return None
        return document.get(name)

    def profile_names(self) -> list[str]:
        """Profile names declared in the file, 'default' included."""
        document = self.read()
        if document is None:
            return []
        names = []
        for section in document.section_names():
            if section == DEFAULT_PROFILE:
                name = DEFAULT_PROFILE
            elif section.startswith("profile "):
                name = section[len("profile "):].strip()
            else:
                continue
            if name and name not in names:
                names.append(name)
        return names

