"""Bounded retry with exponential backoff for classified failures.

``RetryPolicy.execute`` drives an attempt function that performs exactly one
network attempt and returns an ExecutionOutcome instead of raising. Only
TRANSIENT and RATE_LIMITED failures are retried; the last failure is
returned unchanged once attempts run out. Retrying is built on tenacity.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

import tenacity
from tenacity import (
    AsyncRetrying,
    retry_if_result,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

from .config import DispatcherSettings
from .exceptions import CallCancelledError, ConfigurationError
from .log_config import logger
from .types import ExecutionOutcome, Failure

AttemptFunction = Callable[[], Awaitable[ExecutionOutcome]]


class CancelToken(Protocol):
    """Anything exposing ``is_set()``: ``asyncio.Event``, ``threading.Event``."""

    def is_set(self) -> bool: ...


def _is_retryable(outcome: ExecutionOutcome) -> bool:
    return isinstance(outcome, Failure) and outcome.retryable


def _last_outcome(retry_state: tenacity.RetryCallState) -> ExecutionOutcome:
    """Returns the final outcome once tenacity stops retrying."""
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


class RetryPolicy:
    """Executes attempts with bounded retries and exponential backoff.

    A policy with ``max_attempts=1`` is a pass-through: one attempt, no waits.
    Clients use that disabled policy unless retrying is explicitly enabled.

    Attributes:
        max_attempts: Total attempts per logical call, including the first.
        backoff_factor: Multiplier of the exponential backoff, in seconds.
        max_backoff: Upper bound for a single wait, in seconds.
    """

    def __init__(
        self,
        max_attempts: int = 1,
        backoff_factor: float = 0.5,
        max_backoff: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ConfigurationError("RetryPolicy requires max_attempts >= 1.")
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff
        self._sleep = sleep

    @classmethod
    def disabled(cls) -> "RetryPolicy":
        """A single-attempt policy."""
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings: DispatcherSettings) -> "RetryPolicy":
        """Builds the policy selected by ``enable_retries`` and friends."""
        if not settings.enable_retries:
            return cls.disabled()
        return cls(
            max_attempts=settings.max_retries + 1,
            backoff_factor=settings.backoff_factor,
            max_backoff=settings.max_backoff,
        )

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1

    async def execute(
        self, attempt_fn: AttemptFunction, cancel: CancelToken | None = None
    ) -> ExecutionOutcome:
        """Runs ``attempt_fn`` until it succeeds, fails permanently, or attempts run out.

        Args:
            attempt_fn: Coroutine function performing exactly one attempt.
            cancel: Optional cancellation token checked before every attempt.

        Returns:
            ExecutionOutcome: The Success, or the last Failure unchanged.

        Raises:
            CallCancelledError: If cancellation was signaled before the first attempt.
        """
        previous: list[ExecutionOutcome] = []

        async def guarded_attempt() -> ExecutionOutcome:
            if cancel is not None and cancel.is_set():
                if not previous:
                    raise CallCancelledError("Call cancelled before the first attempt.")
                # Replaying the last failure lets the stop condition end the loop.
                logger.info("Cancellation signaled; not starting another attempt.")
                return previous[-1]
            outcome = await attempt_fn()
            previous.append(outcome)
            return outcome

        stop = stop_after_attempt(self.max_attempts)
        if cancel is not None:
            stop = stop | stop_when_event_set(cancel)  # type: ignore[arg-type]

        retrying = AsyncRetrying(
            stop=stop,
            wait=wait_exponential(multiplier=self.backoff_factor, max=self.max_backoff),
            retry=retry_if_result(_is_retryable),
            retry_error_callback=_last_outcome,
            before_sleep=self._before_retry_sleep,
            sleep=self._sleep,
        )
        outcome = await retrying(guarded_attempt)
        if isinstance(outcome, Failure) and outcome.retryable and self.enabled:
            logger.error(
                f"Giving up after {len(previous)} attempt(s): {outcome.message}"
            )
        return outcome

    async def _before_retry_sleep(self, retry_state: tenacity.RetryCallState) -> None:
        """Log details before tenacity sleeps between retries."""
        if not retry_state.outcome:
            return
        outcome = retry_state.outcome.result()
        sleep_time = (
            getattr(retry_state.next_action, "sleep", 0)
            if retry_state.next_action
            else 0
        )
        classification = getattr(outcome, "classification", None)
        logger.info(
            f"Retrying in {sleep_time:.2f} seconds after {retry_state.attempt_number} "
            f"attempt(s) due to: {getattr(classification, 'value', classification)} - "
            f"{getattr(outcome, 'message', '')}"
        )
