"""Error-reporting policies: throwing versus last-error wrapping.

Every terminal outcome of a logical call passes through exactly one policy
instance owned by the client. ``ThrowingPolicy`` raises a structured
``ApiError``. ``WrappingPolicy`` records the failure in a last-error slot and
returns the ``NO_RESULT`` sentinel.

Warning:
    The wrapping policy's last-error slot is a single shared, unsynchronized
    slot per client. A call overwrites it whenever it finishes, so with
    overlapping concurrent calls ``last_error()`` may describe another call's
    failure. Read it right after the call that produced it, before issuing the
    next call on the same client. Use the throwing policy for concurrent use.
"""

from datetime import UTC, datetime
from typing import Any, Final, Protocol

from pydantic import BaseModel, ConfigDict

from .config import DispatcherSettings
from .exceptions import ConfigurationError, error_for_failure
from .log_config import logger
from .types import Classification, ExecutionOutcome, Failure


class _NoResult:
    """Type of the ``NO_RESULT`` sentinel returned by wrapped failures."""

    _instance: "_NoResult | None" = None

    def __new__(cls) -> "_NoResult":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_RESULT"


NO_RESULT: Final = _NoResult()
"""Returned instead of a payload when a call fails under the wrapping policy."""


class LastErrorRecord(BaseModel):
    """The most recent failure recorded by a WrappingPolicy."""

    method_name: str | None = None
    classification: Classification
    http_status: int | None = None
    message: str
    raw_body: str | None = None
    error_payload: Any = None
    recorded_at: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_failure(
        cls, failure: Failure, method_name: str | None = None
    ) -> "LastErrorRecord":
        return cls(
            method_name=method_name,
            classification=failure.classification,
            http_status=failure.http_status,
            message=failure.message,
            raw_body=failure.raw_body,
            error_payload=failure.error_payload,
            recorded_at=datetime.now(UTC),
        )


class ErrorReportingPolicy(Protocol):
    """Converts the terminal outcome of a call into a return value or an error."""

    def report(self, outcome: ExecutionOutcome, method_name: str | None = None) -> Any:
        """Returns the payload of a Success; reports a Failure per the policy."""
        ...

    def last_error(self) -> LastErrorRecord | None:
        """The most recent recorded failure, if the policy records failures."""
        ...

    def clear(self) -> None:
        """Forgets any recorded failure."""
        ...


class ThrowingPolicy:
    """Raises a structured ApiError for every terminal failure."""

    def report(self, outcome: ExecutionOutcome, method_name: str | None = None) -> Any:
        if isinstance(outcome, Failure):
            logger.error(
                f"{method_name or 'call'} failed ({outcome.classification.value}, "
                f"status={outcome.http_status}): {outcome.message}"
            )
            raise error_for_failure(outcome, method_name)
        return outcome.payload

    def last_error(self) -> LastErrorRecord | None:
        return None

    def clear(self) -> None:
        """Nothing is recorded by this policy."""


class WrappingPolicy:
    """Records terminal failures in a last-error slot and returns NO_RESULT.

    Not safe for overlapping concurrent calls on one client: the slot is
    overwritten by whichever call finishes last. See the module docstring.

    Attributes:
        clear_on_success: Whether a successful call clears the slot. When
            False the previous failure stays readable (stale) after a success.
    """

    def __init__(self, clear_on_success: bool = True):
        self.clear_on_success = clear_on_success
        self._last_error: LastErrorRecord | None = None

    def report(self, outcome: ExecutionOutcome, method_name: str | None = None) -> Any:
        if isinstance(outcome, Failure):
            self._last_error = LastErrorRecord.from_failure(outcome, method_name)
            logger.warning(
                f"{method_name or 'call'} failed ({outcome.classification.value}, "
                f"status={outcome.http_status}): {outcome.message}; "
                "returning NO_RESULT"
            )
            return NO_RESULT
        if self.clear_on_success:
            self._last_error = None
        return outcome.payload

    def last_error(self) -> LastErrorRecord | None:
        return self._last_error

    def clear(self) -> None:
        self._last_error = None


def policy_from_settings(settings: DispatcherSettings) -> ErrorReportingPolicy:
    """Builds the error-reporting policy named by ``settings.error_policy``."""
    if settings.error_policy == "throw":
        return ThrowingPolicy()
    if settings.error_policy == "wrap":
        return WrappingPolicy(clear_on_success=settings.clear_error_on_success)
    raise ConfigurationError(f"Unknown error policy: {settings.error_policy!r}")
