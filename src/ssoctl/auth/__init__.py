"""Authentication module for ssoctl."""

from ssoctl.auth.token_cache import (
    TokenCache,
    TokenState,
)
from ssoctl.auth.login import (
    LoginOrchestrator,
    LoginTarget,
)
from ssoctl.auth.credentials import (
    CredentialsClient,
)

__all__ = [
    # Token cache
    "TokenCache",
    "TokenState",
    # Login
    "LoginOrchestrator",
    "LoginTarget",
    # Credentials
    "CredentialsClient",
]
