# methodfabric/types.py
"""Core type definitions shared across the methodfabric dispatcher.

This module defines the request container used for a single HTTP attempt,
the execution outcome union produced by every attempt, and the type aliases
for request hooks.
"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


class RequestData(BaseModel):
    """Encapsulates data for a single HTTP request attempt."""

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    data: Mapping[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    def build_request(self) -> httpx.Request:
        """Builds an httpx.Request object from the stored data."""
        return httpx.Request(
            method=self.method,
            url=self.url,
            params=self.params,
            data=self.data,
            headers=self.headers,
        )


class Classification(Enum):
    """How a failed attempt is classified for retry and reporting purposes."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    AUTH_REQUIRED = "auth_required"
    RATE_LIMITED = "rate_limited"


RETRYABLE_CLASSIFICATIONS: frozenset[Classification] = frozenset(
    [Classification.TRANSIENT, Classification.RATE_LIMITED]
)


class Success(BaseModel):
    """A successful attempt and its decoded payload."""

    payload: Any = None
    http_status: int | None = None
    response: httpx.Response | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return True


class Failure(BaseModel):
    """A failed attempt, classified once when it is produced.

    Attributes:
        classification: Retry/reporting class of the failure.
        http_status: HTTP status of the response, ``None`` for transport failures
            or failures detected before any request was sent.
        message: Human readable message, preferring the provider's own text.
        raw_body: The undecoded response body, if any.
        error_payload: The provider's decoded error document, when parseable.
        retry_after: Seconds the provider asked us to wait (rate limiting).
        reset_at: Unix timestamp at which the provider's rate window resets.
        timed_out: True when the transport gave up waiting for a response.
    """

    classification: Classification
    http_status: int | None = None
    message: str
    raw_body: str | None = None
    error_payload: Any = None
    retry_after: float | None = None
    reset_at: float | None = None
    timed_out: bool = False
    response: httpx.Response | None = None
    request: httpx.Request | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        """Whether a retry policy may attempt the call again."""
        return self.classification in RETRYABLE_CLASSIFICATIONS


ExecutionOutcome = Success | Failure
"""Result of one HTTP attempt, and of one logical call once retries finish."""


PreRequestHook = Callable[[str, str, dict[str, Any] | None, httpx.Headers], None]
"""Type alias for a pre-request hook.

Pre-request hooks run before credentials are attached to a request.

Args:
    method (str): The HTTP method of the request (e.g., "GET", "POST").
    url (str): The full URL of the request.
    params (dict[str, Any] | None): A mutable dictionary of query or form
        parameters. Hooks can modify this dictionary in place.
    headers (httpx.Headers): A mutable `httpx.Headers` object.
Return:
    None: Hooks are expected to modify arguments in-place or perform side effects.
"""

PostRequestHook = Callable[[httpx.Response, Any, int], None]
"""Type alias for a post-request hook.

Post-request hooks run after a successful response has been decoded.

Args:
    response (httpx.Response): The raw `httpx.Response` object.
    payload (Any): The decoded payload, before inflation.
    attempts (int): The number of attempts made for the logical call so far.
Return:
    None: Hooks are expected to perform side effects.
"""
