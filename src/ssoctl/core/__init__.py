"""Core types for ssoctl."""

from ssoctl.core.exceptions import (
    SSOCtlError,
    UserCancelled,
    ConfigurationError,
    ValidationError,
    TokenCacheError,
    CacheMissError,
    CacheExpiredError,
    SubprocessError,
    LoginTimeoutError,
    PersistError,
    SelectionError,
    StepError,
)
from ssoctl.core.models import (
    Account,
    CachedToken,
    Profile,
    SSOSession,
    TemporaryCredentials,
)

__all__ = [
    "SSOCtlError",
    "UserCancelled",
    "ConfigurationError",
    "ValidationError",
    "TokenCacheError",
    "CacheMissError",
    "CacheExpiredError",
    "SubprocessError",
    "LoginTimeoutError",
    "PersistError",
    "SelectionError",
    "StepError",
    "Account",
    "CachedToken",
    "Profile",
    "SSOSession",
    "TemporaryCredentials",
]
