"""
Retry wrapper applied to every Drive and Sheets mutation.

Failures are classified by inspecting the error (HTTP status when the error
carries one, otherwise its message). Quota errors back off three times faster
than everything else; an auth error triggers one forced reauthorization before
the next attempt.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Iterator, Optional, TypeVar

from sprout_sync.core.errors import AlreadyExistsError, AuthFailure

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from sprout_sync.services.credential_session import CredentialSession

T = TypeVar("T")

logger = logging.getLogger(__name__)

QUOTA_MULTIPLIER = 3.0
DEFAULT_MULTIPLIER = 2.0

_QUOTA_MARKERS = (
    "quota",
    "rate limit",
    "ratelimitexceeded",
    "userratelimitexceeded",
    "too many requests",
)
_AUTH_MARKERS = (
    "invalid_grant",
    "invalid jwt",
    "invalid credentials",
    "unauthenticated",
    "token has been expired",
)
_EXISTS_MARKERS = ("already exists", "duplicate")


class ErrorClass(str, Enum):
    QUOTA = "quota"
    AUTH = "auth"
    ALREADY_EXISTS = "already_exists"
    OTHER = "other"


def _status_of(exc: BaseException) -> Optional[int]:
    resp = getattr(exc, "resp", None)
    if resp is None:
        resp = getattr(exc, "response", None)
    status = getattr(resp, "status", None) or getattr(resp, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def classify_error(exc: BaseException) -> ErrorClass:
    """
    Sort a failure into the bucket that decides how it is retried.

    Wrapped errors are classified by their causes too, so a lookup that failed
    because the token was missing still counts as an auth error.
    """
    if isinstance(exc, AlreadyExistsError):
        return ErrorClass.ALREADY_EXISTS
    if any(isinstance(link, AuthFailure) for link in _cause_chain(exc)):
        return ErrorClass.AUTH

    message = str(exc).lower()
    status = next(
        (code for code in map(_status_of, _cause_chain(exc)) if code is not None), None
    )

    if status == 429 or any(marker in message for marker in _QUOTA_MARKERS):
        return ErrorClass.QUOTA
    if any(marker in message for marker in _EXISTS_MARKERS):
        return ErrorClass.ALREADY_EXISTS
    if status == 401 or any(marker in message for marker in _AUTH_MARKERS):
        return ErrorClass.AUTH
    return ErrorClass.OTHER


def next_delay(
    delay: float, error_class: ErrorClass, *, max_delay: float | None = None
) -> float:
    """Return the wait before the attempt after one that failed with ``error_class``."""
    multiplier = QUOTA_MULTIPLIER if error_class is ErrorClass.QUOTA else DEFAULT_MULTIPLIER
    result = delay * multiplier
    if max_delay is not None:
        result = min(result, max_delay)
    return result


class BackoffExecutor:
    """Run an async operation with bounded retries and classified backoff."""

    def __init__(
        self,
        *,
        session: "CredentialSession | None" = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_delay: float | None = None,
    ) -> None:
        self._session = session
        self._sleep = sleep
        self._max_delay = max_delay

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int,
        initial_delay: float,
        label: str,
        tolerate_existing: bool = False,
    ) -> Optional[T]:
        """
        Call ``operation`` up to ``max_retries + 1`` times.

        Returns the operation's result, or ``None`` when ``tolerate_existing``
        is set and the store reports the target already exists. Re-raises the
        last error once the retries are used up.
        """
        delay = initial_delay
        reauthorized = False
        attempt = 0

        while True:
            try:
                return await operation()
            except Exception as exc:
                error_class = classify_error(exc)
                if tolerate_existing and error_class is ErrorClass.ALREADY_EXISTS:
                    logger.info("%s: target already exists, treating as done", label)
                    return None

                if attempt >= max_retries:
                    logger.error(
                        "%s failed after %s retries: %s", label, max_retries, exc
                    )
                    raise

                if error_class is ErrorClass.AUTH:
                    if reauthorized:
                        logger.error("%s still unauthorized after reauthorizing", label)
                        raise
                    reauthorized = True
                    await self._reauthorize(label)

                attempt += 1
                logger.warning(
                    "%s failed (%s error, attempt %s/%s), retrying in %.1fs: %s",
                    label,
                    error_class.value,
                    attempt,
                    max_retries,
                    delay,
                    exc,
                )
                await self._sleep(delay)
                delay = next_delay(delay, error_class, max_delay=self._max_delay)

    async def _reauthorize(self, label: str) -> None:
        if self._session is None:
            return
        try:
            await self._session.ensure_fresh(force=True)
        except AuthFailure as exc:
            logger.warning("Reauthorization before retrying %s failed: %s", label, exc)


__all__ = [
    "BackoffExecutor",
    "DEFAULT_MULTIPLIER",
    "ErrorClass",
    "QUOTA_MULTIPLIER",
    "classify_error",
    "next_delay",
]
