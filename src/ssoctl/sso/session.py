"""Choosing, creating and registering SSO sessions."""

from __future__ import annotations

from ssoctl.cli.prompt import Prompter
from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import ConfigurationError, ValidationError
from ssoctl.core.models import (
    DEFAULT_SCOPES,
    SSOSession,
    is_valid_region,
    is_valid_session_name,
    validate_start_url,
)
from ssoctl.logging import AuditLogger, get_audit_logger, get_logger
from ssoctl.storage.app_config import AppConfigStore, SessionEntry
from ssoctl.storage.aws_config import AwsConfigFile, session_section

logger = get_logger("sso.session")

CREATE_NEW_SESSION = "Create new session"


def _validate_session_name(value: str) -> None:
    if not is_valid_session_name(value):
        raise ValidationError(
            f"invalid session name: {value!r} (letters, digits, '-' and '_', 2-128 characters)"
        )


def _validate_region(value: str) -> None:
    if not is_valid_region(value):
        raise ValidationError(f"invalid AWS region format: {value!r}")


class SessionResolver:
    """
    Resolves the SSO session for a run.

    Saved sessions come from the application settings file. Sessions built
    from parameters or created interactively are appended to ``sessions``
    and never modified afterwards.
    """

    def __init__(
        self,
        prompter: Prompter,
        config_file: AwsConfigFile,
        app_config: AppConfigStore,
        settings: Settings | None = None,
        audit: AuditLogger | None = None,
    ):
        self.prompter = prompter
        self.config_file = config_file
        self.app_config = app_config
        self.settings = settings or get_settings()
        self.audit = audit or get_audit_logger()
        self.sessions: list[SSOSession] = []
        self._entries: list[SessionEntry] | None = None

    def saved_entries(self) -> list[SessionEntry]:
        """Sessions from the application settings file, loaded once."""
        if self._entries is None:
            self._entries = list(self.app_config.load().sso_sessions)
        return self._entries

    def resolve(
        self,
        name: str | None = None,
        start_url: str | None = None,
        region: str | None = None,
    ) -> SSOSession:
        """
        Pick the SSO session to use.

        With all three parameters the session is built directly. Otherwise a
        single saved session is used as is, several saved sessions are offered
        for selection, and with none (or on "Create new session") the user is
        asked for the details.

        Raises:
            UserCancelled: If the user interrupted a prompt
            ValidationError: If a supplied start URL is malformed
            ConfigurationError: If the chosen saved session is incomplete
        """
        if name and start_url and region:
            validate_start_url(start_url.strip())
            session = SSOSession(
                name=name, start_url=start_url, region=region, scopes=self.settings.default_scopes
            )
            self.sessions.append(session)
            return session

        entries = self.saved_entries()
        if entries:
            if len(entries) == 1 and not (name or start_url or region):
                session = self._from_entry(entries[0])
                logger.info("using saved SSO session", extra={"session": session.name})
                return session

            selected = self._select(entries)
            if selected is not None:
                return selected

        return self.create(name, start_url, region)

    def _from_entry(self, entry: SessionEntry) -> SSOSession:
        if not entry.is_complete():
            raise ConfigurationError(
                f"saved SSO session {entry.name or '<unnamed>'!r} has missing or invalid fields "
                "(name, startUrl and region are required)"
            )
        return entry.to_session()

    def _select(self, entries: list[SessionEntry]) -> SSOSession | None:
        labels = [e.to_session().label for e in entries]
        choice = self.prompter.select_one("Select an SSO session", [*labels, CREATE_NEW_SESSION])
        if choice == CREATE_NEW_SESSION:
            return None
        try:
            entry = entries[labels.index(choice)]
        except ValueError:
            raise ConfigurationError(f"selected session not found: {choice}") from None
        return self._from_entry(entry)

    def create(
        self,
        name: str | None = None,
        start_url: str | None = None,
        region: str | None = None,
    ) -> SSOSession:
        """Ask for a new session's name, start URL and region."""
        name = self.prompter.text_input(
            "SSO session name",
            default=name or self.settings.default_session_name,
            validate=_validate_session_name,
        )
        start_url = self.prompter.text_input(
            "SSO start URL (e.g., https://my-sso-portal.awsapps.com/start)",
            default=start_url or "",
            validate=validate_start_url,
        )
        region = self.prompter.text_input(
            "SSO region",
            default=region or self.settings.effective_region,
            validate=_validate_region,
        )

        session = SSOSession(
            name=name, start_url=start_url, region=region, scopes=self.settings.default_scopes
        )
        self.sessions.append(session)
        return session

    def lookup(self, name: str) -> SSOSession:
        """
        Find a session by name in the AWS config file or the settings file.

        Raises:
            ConfigurationError: If no complete session of that name exists
        """
        values = self.config_file.section_values(session_section(name))
        if values and values.get("sso_start_url") and values.get("sso_region"):
            return SSOSession(
                name=name,
                start_url=values["sso_start_url"],
                region=values["sso_region"],
                scopes=values.get("sso_registration_scopes", ""),
            )

        for entry in self.saved_entries():
            if entry.name == name:
                return self._from_entry(entry)

        raise ConfigurationError(
            f"SSO session {name!r} not found; run 'ssoctl sso setup' to configure it"
        )

    def register(self, session: SSOSession) -> bool:
        """
        Write the [sso-session NAME] section of the AWS config file.

        Returns:
            False if the section already holds identical values (nothing is
            written), True otherwise

        Raises:
            PersistError: If the config file cannot be written
        """
        section = session_section(session.name)
        values = {
            "sso_start_url": session.start_url,
            "sso_region": session.region,
            "sso_registration_scopes": session.scopes or DEFAULT_SCOPES,
        }

        document = self.config_file.load()
        existing = document.get(section)
        if existing is not None and all(existing.get(k) == v for k, v in values.items()):
            logger.info("sso-session already configured", extra={"session": session.name})
            return False

        document.set_section(section, values)
        self.config_file.write(document)
        self.audit.session_registered(session.name, session.start_url, session.region)
        return True

    def save(self, session: SSOSession) -> None:
        """Add the session to the application settings file."""
        config = self.app_config.load()
        config.add_session(session)
        self.app_config.save(config)
        self._entries = list(config.sso_sessions)
