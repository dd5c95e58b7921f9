"""Tests for RetryPolicy."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from methodfabric.config import DispatcherSettings
from methodfabric.exceptions import CallCancelledError, ConfigurationError
from methodfabric.retry import RetryPolicy
from methodfabric.types import Classification, Failure, Success

TRANSIENT = Failure(classification=Classification.TRANSIENT, http_status=503, message="down")
RATE_LIMITED = Failure(
    classification=Classification.RATE_LIMITED, http_status=429, message="slow down"
)
PERMANENT = Failure(classification=Classification.PERMANENT, http_status=404, message="gone")
OK = Success(payload={"id": 1}, http_status=200)


def attempts_returning(*outcomes):
    return AsyncMock(side_effect=list(outcomes))


@pytest.fixture
def sleep():
    return AsyncMock()


def test_max_attempts_must_be_positive():
    with pytest.raises(ConfigurationError):
        RetryPolicy(max_attempts=0)


def test_from_settings_disabled_by_default():
    policy = RetryPolicy.from_settings(DispatcherSettings(_env_file=None))
    assert policy.max_attempts == 1
    assert not policy.enabled


def test_from_settings_enabled():
    policy = RetryPolicy.from_settings(
        DispatcherSettings(
            _env_file=None, enable_retries=True, max_retries=4, backoff_factor=0.1
        )
    )
    assert policy.max_attempts == 5
    assert policy.backoff_factor == 0.1
    assert policy.enabled


@pytest.mark.asyncio
async def test_disabled_policy_makes_one_attempt(sleep):
    attempt = attempts_returning(TRANSIENT)
    outcome = await RetryPolicy(sleep=sleep).execute(attempt)
    assert outcome is TRANSIENT
    assert attempt.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_success_first_try(sleep):
    attempt = attempts_returning(OK)
    outcome = await RetryPolicy(max_attempts=3, sleep=sleep).execute(attempt)
    assert outcome is OK
    assert attempt.await_count == 1


@pytest.mark.asyncio
async def test_transient_then_success(sleep):
    attempt = attempts_returning(TRANSIENT, RATE_LIMITED, OK)
    outcome = await RetryPolicy(max_attempts=3, sleep=sleep).execute(attempt)
    assert outcome is OK
    assert attempt.await_count == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_gives_up_with_last_failure_unchanged(sleep):
    last = Failure(classification=Classification.TRANSIENT, http_status=502, message="bad gateway")
    attempt = attempts_returning(TRANSIENT, TRANSIENT, last)
    outcome = await RetryPolicy(max_attempts=3, sleep=sleep).execute(attempt)
    assert outcome is last
    assert attempt.await_count == 3


@pytest.mark.asyncio
async def test_permanent_failure_not_retried(sleep):
    attempt = attempts_returning(PERMANENT)
    outcome = await RetryPolicy(max_attempts=5, sleep=sleep).execute(attempt)
    assert outcome is PERMANENT
    assert attempt.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_auth_required_not_retried(sleep):
    auth = Failure(classification=Classification.AUTH_REQUIRED, http_status=401, message="no")
    attempt = attempts_returning(auth)
    outcome = await RetryPolicy(max_attempts=5, sleep=sleep).execute(attempt)
    assert outcome is auth
    assert attempt.await_count == 1


@pytest.mark.asyncio
async def test_backoff_is_exponential_and_bounded(sleep):
    attempt = attempts_returning(TRANSIENT, TRANSIENT, TRANSIENT, TRANSIENT, OK)
    policy = RetryPolicy(max_attempts=5, backoff_factor=1, max_backoff=3, sleep=sleep)
    await policy.execute(attempt)
    waits = [call.args[0] for call in sleep.await_args_list]
    assert waits == sorted(waits)
    assert max(waits) <= 3


@pytest.mark.asyncio
async def test_cancelled_before_first_attempt(sleep):
    cancel = asyncio.Event()
    cancel.set()
    attempt = attempts_returning(OK)
    with pytest.raises(CallCancelledError):
        await RetryPolicy(max_attempts=3, sleep=sleep).execute(attempt, cancel=cancel)
    attempt.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancelled_between_attempts_returns_last_failure(sleep):
    cancel = asyncio.Event()

    async def attempt():
        cancel.set()
        return TRANSIENT

    outcome = await RetryPolicy(max_attempts=5, sleep=sleep).execute(attempt, cancel=cancel)
    assert outcome is TRANSIENT
    sleep.assert_not_awaited()
