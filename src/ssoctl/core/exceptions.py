"""Custom exceptions for ssoctl."""

from __future__ import annotations


class UserCancelled(Exception):
    """The user interrupted an interactive step.

    Not an SSOCtlError: handlers that wrap SSOCtlError never capture it, so it
    always reaches the command surface unchanged and ends the run quietly.
    """

    def __init__(self, message: str = "operation cancelled by user"):
        super().__init__(message)


class SSOCtlError(Exception):
    """Base exception for all ssoctl errors."""

    pass


class ConfigurationError(SSOCtlError):
    """Missing home directory, missing or malformed config section, unreadable cache."""

    pass


class ValidationError(SSOCtlError):
    """Malformed account ID, start URL, region or session name."""

    pass


class TokenCacheError(SSOCtlError):
    """Error resolving an access token from the SSO cache."""

    pass


class CacheMissError(TokenCacheError):
    """No cache file matches the session."""

    pass


class CacheExpiredError(TokenCacheError):
    """Every matching cache file is expired."""

    pass


class SubprocessError(SSOCtlError):
    """The aws CLI exited non-zero or could not be run."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
        stdout: str = "",
    ):
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LoginTimeoutError(SubprocessError):
    """The browser login flow was not completed in time."""

    pass


class SelectionError(SSOCtlError):
    """Nothing to choose from (no accounts, no roles, no profiles)."""

    pass


class PersistError(SSOCtlError):
    """Writing a config file failed."""

    pass


class StepError(SSOCtlError):
    """A step of the interactive flow failed."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"{step}: {cause}")
