from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httplib2
import pytest
from googleapiclient.errors import HttpError

from sprout_sync.core.errors import AlreadyExistsError, AuthFailure, LocateFailure
from sprout_sync.utils.backoff import (
    BackoffExecutor,
    ErrorClass,
    classify_error,
    next_delay,
)


class FlakyOperation:
    def __init__(self, *errors: Exception, result: str = "ok") -> None:
        self._errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return self.result


class StatusError(Exception):
    def __init__(self, status: int, message: str = "boom") -> None:
        super().__init__(message)
        self.resp = type("Resp", (), {"status": status})()


def _http_error(status: int, message: str) -> HttpError:
    resp = httplib2.Response({"status": status})
    content = ('{"error": {"message": "%s"}}' % message).encode("utf-8")
    return HttpError(resp, content)


def test_next_delay_uses_quota_multiplier() -> None:
    assert next_delay(8.0, ErrorClass.QUOTA) == 24.0
    assert next_delay(8.0, ErrorClass.OTHER) == 16.0
    assert next_delay(8.0, ErrorClass.AUTH) == 16.0


def test_next_delay_respects_cap() -> None:
    assert next_delay(600.0, ErrorClass.QUOTA, max_delay=900.0) == 900.0


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (RuntimeError("Quota exceeded for quota metric 'Write requests'"), ErrorClass.QUOTA),
        (StatusError(429), ErrorClass.QUOTA),
        (_http_error(429, "Too Many Requests"), ErrorClass.QUOTA),
        (RuntimeError('A sheet with the name "Facebook" already exists.'), ErrorClass.ALREADY_EXISTS),
        (AlreadyExistsError("tab"), ErrorClass.ALREADY_EXISTS),
        (StatusError(401), ErrorClass.AUTH),
        (RuntimeError("invalid_grant: Invalid JWT Signature."), ErrorClass.AUTH),
        (AuthFailure("expired"), ErrorClass.AUTH),
        (StatusError(500, "backend error"), ErrorClass.OTHER),
        (ValueError("something else"), ErrorClass.OTHER),
    ],
)
def test_classify_error(error: Exception, expected: ErrorClass) -> None:
    assert classify_error(error) is expected


def test_classify_error_reads_status_from_cause() -> None:
    try:
        try:
            raise StatusError(429)
        except StatusError as inner:
            raise LocateFailure("lookup failed") from inner
    except LocateFailure as exc:
        assert classify_error(exc) is ErrorClass.QUOTA


def test_classify_error_finds_auth_failure_behind_wrapper() -> None:
    try:
        try:
            raise AuthFailure("Credential session has not been authorized yet.")
        except AuthFailure as inner:
            raise LocateFailure("Could not search folder f1") from inner
    except LocateFailure as exc:
        assert classify_error(exc) is ErrorClass.AUTH


@pytest.mark.asyncio
async def test_quota_errors_retry_with_tripled_delay(sleeper) -> None:
    operation = FlakyOperation(
        RuntimeError("Quota exceeded"), RuntimeError("Quota exceeded")
    )
    executor = BackoffExecutor(sleep=sleeper)

    result = await executor.execute(
        operation, max_retries=5, initial_delay=1.0, label="write"
    )

    assert result == "ok"
    assert operation.calls == 3
    assert sleeper.delays == [1.0, 3.0]


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(sleeper) -> None:
    operation = FlakyOperation(*(RuntimeError("backend error") for _ in range(10)))
    executor = BackoffExecutor(sleep=sleeper)

    with pytest.raises(RuntimeError, match="backend error"):
        await executor.execute(operation, max_retries=2, initial_delay=2.0, label="write")

    assert operation.calls == 3
    assert sleeper.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_zero_retries_calls_once(sleeper) -> None:
    operation = FlakyOperation(RuntimeError("backend error"))
    executor = BackoffExecutor(sleep=sleeper)

    with pytest.raises(RuntimeError):
        await executor.execute(operation, max_retries=0, initial_delay=1.0, label="write")

    assert operation.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_existing_target_counts_as_success_when_tolerated(sleeper) -> None:
    operation = FlakyOperation(AlreadyExistsError("duplicate sheet"))
    executor = BackoffExecutor(sleep=sleeper)

    result = await executor.execute(
        operation,
        max_retries=3,
        initial_delay=1.0,
        label="add tab",
        tolerate_existing=True,
    )

    assert result is None
    assert operation.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_auth_error_forces_one_reauthorization(session, sleeper) -> None:
    operation = FlakyOperation(StatusError(401, "Request had invalid credentials"))
    executor = BackoffExecutor(session=session, sleep=sleeper)

    result = await executor.execute(
        operation, max_retries=3, initial_delay=1.0, label="rename"
    )

    assert result == "ok"
    assert operation.calls == 2
    assert session.forced == 1


@pytest.mark.asyncio
async def test_repeated_auth_error_is_raised(session, sleeper) -> None:
    operation = FlakyOperation(StatusError(401), StatusError(401))
    executor = BackoffExecutor(session=session, sleep=sleeper)

    with pytest.raises(StatusError):
        await executor.execute(operation, max_retries=5, initial_delay=1.0, label="rename")

    assert operation.calls == 2
    assert session.forced == 1
