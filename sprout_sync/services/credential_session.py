"""
Holds the single Google access token used by a sync run.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from google.oauth2.credentials import Credentials

from sprout_sync.core.errors import AuthFailure
from sprout_sync.schemas import AccessToken

logger = logging.getLogger(__name__)


class TokenAuthorizer(Protocol):
    async def authorize(self) -> AccessToken: ...

    async def reauthorize(self) -> AccessToken: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialSession:
    """Owns the access token and refreshes it before it gets close to expiry."""

    def __init__(
        self,
        authorizer: TokenAuthorizer,
        *,
        refresh_threshold: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._authorizer = authorizer
        self._refresh_threshold = refresh_threshold
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    @property
    def credentials(self) -> Credentials:
        """Credentials carrying the live token, for building Google API clients."""
        if self._token is None:
            raise AuthFailure("Credential session has not been authorized yet.")
        return Credentials(token=self._token.token)

    def needs_refresh(self) -> bool:
        if self._token is None:
            return True
        expires_at = self._token.expires_at
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= self._clock() + self._refresh_threshold

    async def ensure_fresh(self, *, force: bool = False) -> None:
        """Authorize on first use, then reauthorize when near expiry or forced."""
        async with self._lock:
            if not force and not self.needs_refresh():
                return

            first_use = self._token is None
            try:
                if first_use:
                    token = await self._authorizer.authorize()
                else:
                    token = await self._authorizer.reauthorize()
            except AuthFailure:
                raise
            except Exception as exc:
                raise AuthFailure(f"Reauthorization failed: {exc}") from exc

            self._token = token
        logger.info(
            "Google access token %s",
            "issued" if first_use else "refreshed",
            extra={"expires_at": token.expires_at.isoformat() if token.expires_at else None},
        )


__all__ = ["CredentialSession", "TokenAuthorizer"]
