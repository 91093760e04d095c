"""SSO session, account, role and profile management."""

from ssoctl.sso.profile import ProfileWriter
from ssoctl.sso.selection import AccountRoleSelector
from ssoctl.sso.service import InitResult, SetupResult, SSOOptions, SSOService
from ssoctl.sso.session import SessionResolver

__all__ = [
    "AccountRoleSelector",
    "InitResult",
    "ProfileWriter",
    "SessionResolver",
    "SetupResult",
    "SSOOptions",
    "SSOService",
]
