"""Domain types shared across ssoctl."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ssoctl.core.exceptions import ValidationError

DEFAULT_SCOPES = "sso:account:access"

_ACCOUNT_ID_RE = re.compile(r"^[0-9]{12}$")
_REGION_RE = re.compile(r"^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d+$")
_SESSION_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-_]{0,126}[a-zA-Z0-9]$")


def normalize_start_url(start_url: str) -> str:
    """Strip surrounding whitespace and a trailing '#' from a start URL."""
    return start_url.strip().removesuffix("#")


def validate_account_id(account_id: str) -> str:
    """Return the account ID if it is exactly 12 ASCII digits."""
    if not _ACCOUNT_ID_RE.match(account_id or ""):
        raise ValidationError(f"invalid account ID: {account_id!r} (must be 12 digits)")
    return account_id


def validate_start_url(start_url: str) -> str:
    """Return the start URL if it uses https."""
    if not (start_url or "").startswith("https://"):
        raise ValidationError(
            f"invalid start URL: {start_url!r} (must start with https://)"
        )
    return start_url


def is_valid_region(region: str) -> bool:
    """Check a region name looks like us-east-1."""
    return bool(_REGION_RE.match(region or ""))


def is_valid_session_name(name: str) -> bool:
    """Check an SSO session name is usable as a config section name."""
    return bool(_SESSION_NAME_RE.match(name or ""))


def parse_expires_at(value: str) -> datetime:
    """
    Parse an SSO cache expiry timestamp.

    Accepts RFC3339 ("2024-01-01T00:00:00Z", with or without fractional
    seconds or an explicit offset) and the legacy "...UTC" suffix written by
    older aws CLI versions.

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"empty expiration time: {value!r}")
    text = value.strip().replace("UTC", "Z", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SSOSession:
    """A named registration of an identity provider start URL and region."""

    name: str
    start_url: str
    region: str
    scopes: str = DEFAULT_SCOPES

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_url", normalize_start_url(self.start_url))
        if not self.scopes:
            object.__setattr__(self, "scopes", DEFAULT_SCOPES)

    @property
    def label(self) -> str:
        """Display label used in selection lists."""
        return f"{self.name} ({self.start_url.rstrip('#/')})"


@dataclass
class CachedToken:
    """One access token file written by 'aws sso login'."""

    start_url: str
    access_token: str
    expires_at: datetime
    session_name: str | None = None
    region: str | None = None
    path: Path | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """A token is usable iff it expires strictly after now."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at > now


@dataclass
class Account:
    """An AWS account reachable through the SSO session."""

    account_id: str
    account_name: str = ""
    region: str = ""
    email: str = ""
    roles: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        """Display label used in selection lists."""
        return f"{self.account_id} ({self.account_name or 'Unnamed'})"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        """Create from a list-accounts entry."""
        return cls(
            account_id=str(data.get("accountId", "")),
            account_name=data.get("accountName") or "",
            email=data.get("emailAddress") or "",
        )


@dataclass
class Profile:
    """A persisted bundle of session, account and role."""

    profile_name: str
    region: str
    account_id: str
    role: str
    start_url: str
    session_name: str
    sso_region: str = ""
    accounts: list[Account] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return self.profile_name == "default"


@dataclass
class TemporaryCredentials:
    """Short-lived credentials returned by get-role-credentials."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "TemporaryCredentials":
        """Create from a get-role-credentials response (expiration in epoch ms)."""
        creds = data["roleCredentials"]
        return cls(
            access_key_id=creds["accessKeyId"],
            secret_access_key=creds["secretAccessKey"],
            session_token=creds["sessionToken"],
            expiration=datetime.fromtimestamp(
                int(creds["expiration"]) / 1000, tz=timezone.utc
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        data = asdict(self)
        data["expiration"] = self.expiration.isoformat()
        return data
