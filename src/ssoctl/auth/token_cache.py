"""SSO access token resolution from the aws CLI token cache."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import (
    CacheExpiredError,
    CacheMissError,
    ConfigurationError,
    TokenCacheError,
)
from ssoctl.core.models import CachedToken, SSOSession, normalize_start_url, parse_expires_at
from ssoctl.logging import get_logger

logger = get_logger("auth.token_cache")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenState:
    """
    Process-local copy of the last resolved token.

    Guarded by a lock so a token checked once for validity and again after a
    forced refresh is never observed half-updated.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._key: tuple[str, str] | None = None
        self._token: CachedToken | None = None

    def get(self, session: SSOSession, now: datetime) -> CachedToken | None:
        """Return the remembered token if it belongs to the session and is still valid."""
        with self._lock:
            if self._token is None or self._key != (session.name, session.start_url):
                return None
            if not self._token.is_valid(now):
                return None
            return self._token

    def set(self, session: SSOSession, token: CachedToken) -> None:
        with self._lock:
            self._key = (session.name, session.start_url)
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._key = None
            self._token = None


class TokenCache:
    """
    Finds the access token for an SSO session in ~/.aws/sso/cache.

    A cache file matches the session if its sessionName equals the session
    name, or its startUrl (trailing '#' stripped) equals the session's start
    URL. Among matches that have not expired, the one with the latest
    expiresAt wins.
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        if cache_dir is None:
            cache_dir = (settings or get_settings()).sso_cache_dir
        self.cache_dir = Path(cache_dir)
        self.clock = clock or _utcnow
        self.state = TokenState()

    def _cache_files(self) -> list[Path]:
        if not self.cache_dir.exists():
            return []
        try:
            return sorted(p for p in self.cache_dir.iterdir() if p.suffix == ".json" and p.is_file())
        except OSError as e:
            raise ConfigurationError(
                f"failed to read SSO cache directory {self.cache_dir}: {e}"
            ) from e

    @staticmethod
    def _read(path: Path) -> dict | None:
        """Load one cache file; None if it cannot be read or parsed."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug("skipping unreadable cache file", extra={"path": str(path), "error": str(e)})
            return None
        if not isinstance(data, dict):
            return None
        return data

    @staticmethod
    def _matches(data: dict, session: SSOSession) -> bool:
        if not data.get("accessToken"):
            return False
        session_name = data.get("sessionName")
        if isinstance(session_name, str) and session_name == session.name:
            return True
        start_url = data.get("startUrl")
        return isinstance(start_url, str) and normalize_start_url(start_url) == session.start_url

    def lookup(self, session: SSOSession) -> CachedToken:
        """
        Scan the cache directory for the session's token.

        Returns:
            The valid matching token with the latest expiry

        Raises:
            CacheMissError: If no cache file matches the session
            CacheExpiredError: If every matching file is expired
            TokenCacheError: If a matching file has a malformed expiresAt
            ConfigurationError: If the cache directory cannot be read
        """
        now = self.clock()
        best: CachedToken | None = None
        matched = 0

        for path in self._cache_files():
            data = self._read(path)
            if data is None or not self._matches(data, session):
                continue
            matched += 1

            try:
                expires_at = parse_expires_at(data.get("expiresAt"))
            except (TypeError, ValueError) as e:
                raise TokenCacheError(
                    f"invalid expiration time in {path.name}: {data.get('expiresAt')!r}"
                ) from e

            token = CachedToken(
                start_url=normalize_start_url(data.get("startUrl") or session.start_url),
                access_token=data["accessToken"],
                expires_at=expires_at,
                session_name=data.get("sessionName"),
                region=data.get("region"),
                path=path,
            )
            if not token.is_valid(now):
                continue
            if best is None or token.expires_at > best.expires_at:
                best = token

        if best is not None:
            return best
        if matched:
            raise CacheExpiredError(
                f"access token expired for SSO session {session.name} ({session.start_url})"
            )
        raise CacheMissError(
            f"no cached access token for SSO session {session.name} ({session.start_url})"
        )

    def resolve(self, session: SSOSession) -> CachedToken:
        """Return the session's token, from memory if still valid, else from disk."""
        now = self.clock()
        cached = self.state.get(session, now)
        if cached is not None:
            return cached

        token = self.lookup(session)
        self.state.set(session, token)
        return token

    def resolve_with_auto_login(
        self,
        session: SSOSession,
        login: Callable[[SSOSession], None],
    ) -> CachedToken:
        """
        Resolve the token, logging in once if it is missing or expired.

        The cache is checked exactly one more time after login; a second miss
        is a hard error rather than another login attempt.

        Raises:
            UserCancelled: If the user interrupted the login
            TokenCacheError: If the token is still unavailable after login
        """
        try:
            return self.resolve(session)
        except (CacheMissError, CacheExpiredError) as e:
            logger.info("token unavailable, logging in", extra={"session": session.name, "reason": str(e)})

        self.invalidate()
        login(session)

        try:
            return self.resolve(session)
        except (CacheMissError, CacheExpiredError) as e:
            raise TokenCacheError(f"no valid access token after SSO login: {e}") from e

    def invalidate(self) -> None:
        """Forget the in-memory token."""
        self.state.clear()
