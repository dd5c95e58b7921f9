"""Custom exception classes for the methodfabric library."""

from typing import Any

import httpx

from .types import Classification, Failure


class MethodfabricError(Exception):
    """Base exception class for all methodfabric errors."""

    def __init__(
        self,
        message: str,
        *,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        """Initializes the base exception.

        Args:
            message: The error message.
            response: Optional httpx.Response object associated with the error.
            request: Optional httpx.Request object associated with the error.
        """
        super().__init__(message)
        self.message = message
        self.response = response
        self.request = request

    def __str__(self) -> str:
        if self.response is not None:
            url_info = getattr(getattr(self.response, "request", None), "url", "N/A")
            return (
                f"{self.message} (Status: {self.response.status_code}, URL: {url_info})"
            )
        if isinstance(self.request, httpx.Request):
            return f"{self.message} (URL: {self.request.url})"
        return self.message


class ConfigurationError(MethodfabricError):
    """Represents an error in the dispatcher's configuration or registry data."""

    def __init__(self, message: str):
        super().__init__(message, response=None)


class BindingError(MethodfabricError):
    """The caller supplied missing, unknown or surplus arguments.

    Binding errors are raised synchronously, before any request is built,
    whichever error-reporting policy is active.
    """

    def __init__(self, message: str, *, method_name: str | None = None):
        super().__init__(message)
        self.method_name = method_name

    def __str__(self) -> str:
        if self.method_name:
            return f"{self.method_name}: {self.message}"
        return self.message


class UnknownMethodError(BindingError):
    """The requested method name or alias is not in the registry."""


class CallCancelledError(MethodfabricError):
    """Cancellation was signaled before the first attempt of a call began."""


class ApiError(MethodfabricError):
    """A terminal failure of a logical call, raised by the throwing policy.

    Attributes:
        http_status: HTTP status code, or None when no response was received.
        classification: The failure classification that ended the call.
        error_payload: The provider's decoded error document, when parseable.
        raw_body: The undecoded response body, if any.
        method_name: Name of the method the caller invoked.
    """

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        classification: Classification | None = None,
        error_payload: Any = None,
        raw_body: str | None = None,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
        method_name: str | None = None,
    ):
        super().__init__(message, response=response, request=request)
        self.method_name = method_name
        self.http_status = http_status
        self.classification = classification
        self.error_payload = error_payload
        self.raw_body = raw_body


class AuthRequiredError(ApiError):
    """The endpoint needs credentials that are missing or were rejected (401)."""


class RateLimitError(ApiError):
    """The provider's rate limit was hit (420/429) and retries, if any, ran out.

    Attributes:
        retry_after: Seconds the provider asked the caller to wait, if sent.
        reset_at: Unix timestamp at which the rate window resets, if sent.
    """

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        reset_at: float | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        self.reset_at = reset_at


class TransientError(ApiError):
    """A failure that may succeed on another attempt (5xx, 408)."""


class NetworkError(TransientError):
    """Represents a network connection error (e.g., DNS failure, connection refused)."""


class TimeoutError(TransientError):
    """Represents a request that did not complete within the transport's timeout."""


class PermanentError(ApiError):
    """A client error (4xx other than auth and rate limiting) that retrying won't fix."""


class NotFoundError(PermanentError):
    """Represents a resource not found error (404 Not Found)."""


def error_for_failure(failure: Failure, method_name: str | None = None) -> ApiError:
    """Builds the structured exception matching a terminal failure outcome.

    Args:
        failure: The terminal Failure of a logical call.
        method_name: Name the caller invoked, kept on the error for context.

    Returns:
        ApiError: An instance of the most specific ApiError subclass.
    """
    message = failure.message
    common: dict[str, Any] = {
        "http_status": failure.http_status,
        "classification": failure.classification,
        "error_payload": failure.error_payload,
        "raw_body": failure.raw_body,
        "response": failure.response,
        "request": failure.request,
        "method_name": method_name,
    }

    match failure.classification:
        case Classification.AUTH_REQUIRED:
            return AuthRequiredError(message, **common)
        case Classification.RATE_LIMITED:
            return RateLimitError(
                message,
                retry_after=failure.retry_after,
                reset_at=failure.reset_at,
                **common,
            )
        case Classification.TRANSIENT:
            if failure.http_status is not None:
                return TransientError(message, **common)
            if failure.timed_out:
                return TimeoutError(message, **common)
            return NetworkError(message, **common)
        case _:
            if failure.http_status == 404:
                return NotFoundError(message, **common)
            return PermanentError(message, **common)
