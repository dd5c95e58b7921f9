"""Registry-driven method dispatcher.

This module provides the MethodDispatcher class: one generic async entry
point (``invoke``) that calls any method described in a MethodRegistry. The
dispatcher composes the cross-cutting behaviors injected at construction:
argument binding, authentication, retry, pagination, response inflation and
the error-reporting policy. It performs no per-endpoint logic of its own.
"""

import functools
import hashlib
import html
import json
import ssl
import time
from collections.abc import AsyncIterator, Callable, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from http import HTTPStatus
from typing import Any, Protocol, Self
from urllib.parse import quote

import certifi
import httpx
from cachetools import TTLCache  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict

from .auth import Credential, CredentialStore, decorate
from .binder import BoundCall, CallArguments, ParameterBinder
from .config import DispatcherSettings, get_base_settings
from .errors import NO_RESULT, ErrorReportingPolicy, LastErrorRecord, policy_from_settings
from .exceptions import BindingError
from .inflate import ResponseInflator, parse_timestamp
from .log_config import logger
from .models import EnvelopeUnwrapper, PayloadUnwrapper
from .pagination import (
    CursorPager,
    PagePager,
    PageResult,
    PaginationState,
    Pager,
    pager_for_state,
)
from .registry import MethodRegistry, path_placeholders
from .retry import CancelToken, RetryPolicy
from .types import Classification, ExecutionOutcome, Failure, RequestData, Success

QUERY_VERBS: frozenset[str] = frozenset(["GET", "DELETE"])
"""Verbs sending parameters in the query string; others send a form body."""


class Transport(Protocol):
    """The HTTP collaborator. ``httpx.AsyncClient`` satisfies it."""

    async def send(self, request: httpx.Request) -> httpx.Response: ...


class RateLimitStatus(BaseModel):
    """Rate limit figures reported by the provider on the last response.

    Attributes:
        limit: Requests allowed per window.
        remaining: Requests left in the current window.
        reset_at: Unix timestamp at which the window resets.
    """

    limit: int | None = None
    remaining: int | None = None
    reset_at: float | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def ratio(self) -> float | None:
        """Share of the window's requests still available, from 0.0 to 1.0."""
        if self.limit is None or self.remaining is None or self.limit <= 0:
            return None
        return self.remaining / self.limit

    def seconds_until_reset(self, now: float | None = None) -> float | None:
        if self.reset_at is None:
            return None
        return max(0.0, self.reset_at - (time.time() if now is None else now))


def classify_status(status_code: int) -> Classification:
    """Maps a non-2xx HTTP status to a failure classification."""
    if status_code == HTTPStatus.UNAUTHORIZED:
        return Classification.AUTH_REQUIRED
    # 420 is the provider's historical "Enhance Your Calm" rate-limit status.
    if status_code in (420, HTTPStatus.TOO_MANY_REQUESTS):
        return Classification.RATE_LIMITED
    if (
        status_code == HTTPStatus.REQUEST_TIMEOUT
        or status_code >= HTTPStatus.INTERNAL_SERVER_ERROR
    ):
        return Classification.TRANSIENT
    return Classification.PERMANENT


def extract_error(response: httpx.Response) -> tuple[Any, str]:
    """Returns the provider's decoded error document and its message.

    Understands ``{"error": "..."}``, ``{"errors": "..."}`` and
    ``{"errors": [{"message": "...", "code": 34}]}``. Falls back to the HTTP
    status line when the body holds no recognizable message.
    """
    fallback = f"HTTP {response.status_code} {response.reason_phrase}".strip()
    try:
        error_payload = response.json()
    except ValueError:
        return None, fallback

    if isinstance(error_payload, dict):
        errors = error_payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first = errors[0]
            if first.get("message"):
                code = first.get("code")
                return error_payload, (
                    f"{first['message']} (code {code})"
                    if code is not None
                    else str(first["message"])
                )
        if isinstance(errors, str) and errors:
            return error_payload, errors
        if isinstance(error_payload.get("error"), str) and error_payload["error"]:
            return error_payload, error_payload["error"]
    return error_payload, fallback


def _encode_param(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(str(item) for item in value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def decode_html_entities(value: Any) -> Any:
    """Unescapes HTML entities in every string of a decoded payload."""
    if isinstance(value, str):
        return html.unescape(value)
    if isinstance(value, list):
        return [decode_html_entities(item) for item in value]
    if isinstance(value, dict):
        return {key: decode_html_entities(item) for key, item in value.items()}
    return value


class MethodDispatcher:
    """Generic asynchronous dispatcher for registry-described API methods.

    The dispatcher resolves a call against the registry, binds its arguments,
    builds the request, attaches credentials, executes it through the retry
    policy, post-processes the payload and hands the terminal outcome to the
    error-reporting policy.

    Key features:
    - One ``invoke`` entry point (and ``client.<method>(...)`` sugar) for every
      registry method and alias
    - Pluggable credentials: Basic, OAuth 1.0a, bearer token, or none
    - Opt-in retries with exponential backoff for transient and rate-limited failures
    - Cursor and page pagination primitives and auto-paging iterators
    - Throwing or last-error-wrapping error reporting
    - Optional payload inflation, HTML entity decoding and GET caching
    - Pre/post request hooks

    Concurrency:
        Registry and definitions are immutable and safe to share. Credential
        updates are not synchronized with in-flight calls; serialize them
        yourself. Under the wrapping policy ``last_error()`` is a single slot
        overwritten by every call; do not rely on it with overlapping calls.

    Attributes:
        _registry: The immutable method catalog.
        _settings: Configuration settings for the dispatcher.
        _base_url: The base URL for API requests.
        _binder: Resolves call arguments against definitions.
        _retry_policy: Executes attempts, with or without retries.
        _error_policy: Converts terminal outcomes to results or errors.
        _inflator: Optional payload inflator.
        _unwrapper: Extracts items and cursors from paged payloads.
        _credential: The credential attached to outgoing requests, if any.
        _cache: Optional TTL cache for GET payloads.
        _http_client: The transport used to send requests.
        _should_close_client: Flag indicating if this instance owns the _http_client.
        _rate_limit: Rate limit figures from the most recent response.
    """

    def __init__(
        self,
        registry: MethodRegistry,
        settings: DispatcherSettings | None = None,
        *,
        base_url: str,
        credential: Credential | None = None,
        credential_store: CredentialStore | None = None,
        credential_key: str | None = None,
        retry_policy: RetryPolicy | None = None,
        error_policy: ErrorReportingPolicy | None = None,
        inflator: ResponseInflator | None = None,
        unwrapper: PayloadUnwrapper | None = None,
        binder: ParameterBinder | None = None,
        http_client: Transport | None = None,
    ):
        """Initialize the MethodDispatcher.

        Args:
            registry: Catalog of the methods this dispatcher can call.
            settings: Dispatcher settings; defaults to ``get_base_settings()``.
            base_url: The base URL for API requests.
            credential: Initial credential. Takes precedence over the store.
            credential_store: Store consulted once, here, when no credential is given.
            credential_key: Lookup key for the store (e.g. the API host).
            retry_policy: Retry policy; defaults to the one the settings select
                (a single attempt unless ``enable_retries`` is set).
            error_policy: Error-reporting policy; defaults to ``settings.error_policy``.
            inflator: Payload inflator; defaults to a ResponseInflator when
                ``enable_inflation`` is set, otherwise no inflation.
            unwrapper: Reads items and cursors from paged payloads.
            binder: Argument binder.
            http_client: Transport; defaults to an owned httpx.AsyncClient.
        """
        self._registry = registry
        self._settings = settings or get_base_settings()
        self._base_url: str = base_url.rstrip("/")
        self._binder = binder or ParameterBinder()
        self._retry_policy = retry_policy or RetryPolicy.from_settings(self._settings)
        self._error_policy: ErrorReportingPolicy = (
            error_policy or policy_from_settings(self._settings)
        )
        if inflator is None and self._settings.enable_inflation:
            inflator = ResponseInflator()
        self._inflator = inflator
        self._unwrapper: PayloadUnwrapper = unwrapper or EnvelopeUnwrapper()

        if credential is None and credential_store is not None and credential_key:
            credential = credential_store.lookup(credential_key)
            logger.debug(
                f"Credential store lookup for '{credential_key}': "
                f"{type(credential).__name__ if credential else 'nothing found'}"
            )
        self._credential: Credential | None = credential

        self._cache: TTLCache[str, Any] | None = None
        if self._settings.enable_caching and self._settings.cache_ttl_seconds > 0:
            logger.info(
                f"GET caching enabled. Max size: {self._settings.cache_max_size}, "
                f"TTL: {self._settings.cache_ttl_seconds}s"
            )
            self._cache = TTLCache(
                maxsize=self._settings.cache_max_size,
                ttl=self._settings.cache_ttl_seconds,
            )

        self._should_close_client = http_client is None
        self._http_client: Transport = http_client or self._create_default_http_client()
        self._rate_limit = RateLimitStatus()

        logger.info(
            f"MethodDispatcher initialized for {self._base_url}: {len(registry)} methods, "
            f"error policy {type(self._error_policy).__name__}, "
            f"retries {'on' if self._retry_policy.enabled else 'off'}, "
            f"inflation {'on' if self._inflator else 'off'}, "
            f"credential {type(self._credential).__name__ if self._credential else 'none'}"
        )

    def _create_default_http_client(self) -> httpx.AsyncClient:
        """Create a default httpx.AsyncClient with configured settings."""
        try:
            verify_ssl: ssl.SSLContext | bool = ssl.create_default_context(
                cafile=certifi.where()
            )
            logger.debug("Using certifi SSL context.")
        except Exception:
            verify_ssl = True
            logger.warning(
                "certifi not found or failed to load. Using default SSL verification."
            )

        return httpx.AsyncClient(
            timeout=self._settings.request_timeout,
            verify=verify_ssl,
            headers={"User-Agent": self._settings.user_agent},
        )

    # --- Public surface ---

    @property
    def registry(self) -> MethodRegistry:
        return self._registry

    @property
    def settings(self) -> DispatcherSettings:
        return self._settings

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def set_credential(self, credential: Credential | None) -> None:
        """Replaces the credential used by subsequent calls.

        Not synchronized with calls already in flight: a call that has not yet
        built its request will pick up the new credential.
        """
        logger.info(
            f"Credential set to {type(credential).__name__ if credential else 'none'}"
        )
        self._credential = credential

    def last_error(self) -> LastErrorRecord | None:
        """The last recorded failure (wrapping policy only; always None otherwise)."""
        return self._error_policy.last_error()

    @property
    def rate_limit(self) -> RateLimitStatus:
        """Rate limit figures from the most recent response that carried them."""
        return self._rate_limit

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        registry = self.__dict__.get("_registry")
        if registry is None or name not in registry:
            raise AttributeError(f"{type(self).__name__} has no method {name!r}")
        return functools.partial(self.invoke, name)

    async def invoke(
        self,
        name: str,
        /,
        *args: Any,
        cancel: CancelToken | None = None,
        **kwargs: Any,
    ) -> Any:
        """Call a registry method by name or alias.

        Positional values bind to required parameters in order. Named values
        come from keyword arguments and from a trailing mapping, if the last
        positional value is one. Keys prefixed with ``_`` are synthetic
        control arguments (``_authenticate``, ``_since``, ``_legacy``).

        ``cancel`` is a dispatcher keyword, as are ``pager`` on ``fetch_page``
        and ``items_key`` and ``max_calls`` on the iterators. An endpoint
        parameter with one of these names must be passed in the trailing
        options mapping, e.g. ``invoke("m", {"cancel": 1})``.

        Args:
            name: Method name or alias.
            *args: Positional values, optionally followed by an options mapping.
            cancel: Optional token; no new attempt starts once it is set.
            **kwargs: Named parameter values.

        Returns:
            Any: The (possibly inflated) payload, or ``NO_RESULT`` when the
                call failed under the wrapping policy.

        Raises:
            BindingError: For unknown methods and invalid arguments, whatever
                the error-reporting policy.
            ApiError: For terminal failures under the throwing policy.
            CallCancelledError: If cancelled before the first attempt.
        """
        definition = self._registry.get(name)
        bound = self._binder.bind(
            definition, CallArguments.from_call(args, kwargs), invoked_as=name
        )
        outcome = await self._execute(bound, cancel)
        return self._error_policy.report(outcome, bound.invoked_as)

    async def fetch_page(
        self,
        name: str,
        state: PaginationState,
        /,
        *args: Any,
        pager: Pager | None = None,
        cancel: CancelToken | None = None,
        **kwargs: Any,
    ) -> PageResult:
        """Fetch one page of a paged method.

        Args:
            name: Method name or alias. It must accept ``cursor`` or ``page``.
            state: CursorState or PageState to send with this call.
            *args: Positional values, optionally followed by an options mapping.
            pager: Pager to use; defaults to the one matching ``state``.
            cancel: Optional cancellation token.
            **kwargs: Named parameter values.

        Returns:
            PageResult: The payload, the state for the next call and whether
                pagination is done. A failed page under the wrapping policy
                yields ``NO_RESULT`` with ``done=True`` and the state unchanged.
        """
        pager = pager or pager_for_state(state, self._unwrapper)
        arguments = CallArguments.from_call(args, kwargs)
        named = pager.apply(dict(arguments.named), state)
        payload = await self.invoke(name, *arguments.positional, cancel=cancel, **named)
        if payload is NO_RESULT:
            return PageResult(payload=NO_RESULT, next_state=state, done=True)
        next_state, done = pager.next_state(payload, state)
        return PageResult(payload=payload, next_state=next_state, done=done)

    async def iterate_cursor(
        self,
        name: str,
        /,
        *args: Any,
        items_key: str | None = None,
        max_calls: int | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[Any]:
        """Yield every item of a cursor-paged method, following ``next_cursor``.

        Args:
            name: Method name or alias accepting ``cursor``.
            items_key: Envelope field holding the items (e.g. "ids").
            max_calls: Stop after this many page fetches, if given.
        """
        unwrapper = EnvelopeUnwrapper(items_key) if items_key else self._unwrapper
        pager = CursorPager(unwrapper)
        async for item in self._iterate(name, pager, args, kwargs, max_calls):
            yield item

    async def iterate_pages(
        self,
        name: str,
        /,
        *args: Any,
        items_key: str | None = None,
        max_calls: int | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[Any]:
        """Yield every item of a page-numbered method until an empty page.

        Args:
            name: Method name or alias accepting ``page``.
            items_key: Envelope field holding the items, if not a bare list.
            max_calls: Stop after this many page fetches, if given.
        """
        unwrapper = EnvelopeUnwrapper(items_key) if items_key else self._unwrapper
        pager = PagePager(unwrapper)
        async for item in self._iterate(name, pager, args, kwargs, max_calls):
            yield item

    async def _iterate(
        self,
        name: str,
        pager: CursorPager | PagePager,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        max_calls: int | None,
    ) -> AsyncIterator[Any]:
        state: Any = pager.initial_state()
        calls = 0
        logger.info(f"Iterating {name} with {type(pager).__name__}")
        while True:
            page = await self.fetch_page(name, state, *args, pager=pager, **kwargs)
            calls += 1
            if page.payload is NO_RESULT:
                logger.debug(f"Iteration of {name} stopped by a wrapped failure.")
                return
            for item in pager.unwrapper.unwrap_items(page.payload):
                yield item
            if page.done:
                logger.debug(f"Iteration of {name} finished after {calls} call(s).")
                return
            if max_calls is not None and calls >= max_calls:
                logger.debug(f"Iteration of {name} reached max_calls={max_calls}.")
                return
            state = page.next_state

    # --- Execution ---

    async def _execute(
        self, bound: BoundCall, cancel: CancelToken | None
    ) -> ExecutionOutcome:
        """Run one logical call and return its terminal outcome."""
        definition = bound.definition
        if definition.deprecated:
            logger.warning(f"Method '{definition.name}' is deprecated.")

        request_data = self._build_request_data(bound)

        if definition.requires_authentication and self._credential is None:
            logger.debug(f"{bound.invoked_as} requires authentication; no credential set.")
            return Failure(
                classification=Classification.AUTH_REQUIRED,
                message=f"{definition.name} requires authentication but no credential is set",
            )

        cache_key: str | None = None
        if self._cache is not None and request_data.method == "GET":
            cache_key = self._generate_cache_key(
                request_data.method,
                request_data.url,
                request_data.params,
                authenticate=bound.synthetic.authenticate,
            )
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for key: {cache_key}")
                return cached.model_copy(
                    update={"payload": self._postprocess(bound, cached.payload)}
                )

        attempts = 0

        async def attempt() -> ExecutionOutcome:
            nonlocal attempts
            attempts += 1
            return await self._execute_single_request(request_data, bound)

        outcome = await self._retry_policy.execute(attempt, cancel)
        if isinstance(outcome, Failure):
            return outcome

        self._run_post_request_hooks(outcome, attempts)
        if cache_key is not None:
            # Raw payload; per-call post-processing runs on every read.
            self._cache[cache_key] = outcome  # type: ignore[index]
            logger.debug(f"Cached payload for key: {cache_key}")
        return outcome.model_copy(
            update={"payload": self._postprocess(bound, outcome.payload)}
        )

    def _build_request_data(self, bound: BoundCall) -> RequestData:
        """Build the request for a bound call: path, query or form parameters."""
        definition = bound.definition
        template = definition.path_template
        if bound.synthetic.legacy and definition.legacy_path_template:
            template = definition.legacy_path_template

        params = dict(bound.params)
        path_values: dict[str, str] = {}
        for placeholder in path_placeholders(template):
            if params.get(placeholder) is None:
                raise BindingError(
                    f"missing path parameter: {placeholder}",
                    method_name=bound.invoked_as,
                )
            path_values[placeholder] = quote(str(params.pop(placeholder)), safe="")
        path = template.format(**path_values)

        encoded = {
            key: _encode_param(value)
            for key, value in params.items()
            if value is not None
        }
        url = f"{self._base_url}/{path.lstrip('/')}"
        if definition.http_verb in QUERY_VERBS:
            return RequestData(method=definition.http_verb, url=url, params=encoded)
        return RequestData(method=definition.http_verb, url=url, data=encoded)

    async def _execute_single_request(
        self, request_data: RequestData, bound: BoundCall
    ) -> ExecutionOutcome:
        """Perform exactly one attempt and classify its result. Never raises for HTTP errors."""
        hook_params: dict[str, Any] | None = None
        source = request_data.params if request_data.params is not None else request_data.data
        if source is not None:
            hook_params = dict(source)
        hook_headers = httpx.Headers(request_data.headers)

        if self._settings.pre_request_hooks:
            logger.debug(
                f"Executing {len(self._settings.pre_request_hooks)} pre-request hooks "
                f"for {request_data.method} {request_data.url}"
            )
            for hook in self._settings.pre_request_hooks:
                try:
                    hook(request_data.method, request_data.url, hook_params, hook_headers)
                except Exception as e:
                    logger.error(
                        f"Error executing pre-request hook {getattr(hook, '__name__', str(hook))}: {e}"
                    )

        field = "params" if request_data.params is not None else "data"
        attempt_data = request_data.model_copy(
            update={field: hook_params, "headers": dict(hook_headers.items())}
        )
        request = attempt_data.build_request()
        if not request.headers.get("User-Agent"):
            request.headers["User-Agent"] = self._settings.user_agent
        request.extensions["timeout"] = httpx.Timeout(
            self._settings.request_timeout
        ).as_dict()
        decorate(request, self._credential, bound.synthetic.authenticate)

        logger.debug(f"Sending request: {request.method} {request.url}")
        logger.trace(f"Request Headers: {request.headers}")
        if request.content:
            logger.trace(f"Request Body: {request.content.decode()}")

        try:
            response = await self._http_client.send(request)
        except httpx.TimeoutException as e:
            logger.error(f"Request timed out: {request.url}")
            return Failure(
                classification=Classification.TRANSIENT,
                message=f"Request timed out: {e}",
                timed_out=True,
                request=request,
            )
        except httpx.TransportError as e:
            logger.error(f"Network error occurred for {request.url}: {e}")
            return Failure(
                classification=Classification.TRANSIENT,
                message=f"Network error: {e}",
                request=request,
            )

        retry_after = self._parse_rate_limit_headers(response)
        logger.debug(f"Received response: {response.status_code} for {request.url}")
        logger.trace(f"Response Headers: {response.headers}")
        return self._classify_response(response, request, retry_after)

    def _classify_response(
        self,
        response: httpx.Response,
        request: httpx.Request,
        retry_after: float | None,
    ) -> ExecutionOutcome:
        status = response.status_code
        if HTTPStatus.OK <= status < HTTPStatus.MULTIPLE_CHOICES:
            if not response.content.strip():
                return Success(payload=None, http_status=status, response=response)
            try:
                payload = response.json()
            except ValueError:
                logger.error(f"Could not decode JSON body from {request.url}")
                return Failure(
                    classification=Classification.PERMANENT,
                    http_status=status,
                    message="Could not decode response body as JSON",
                    raw_body=response.text,
                    response=response,
                    request=request,
                )
            return Success(payload=payload, http_status=status, response=response)

        error_payload, message = extract_error(response)
        classification = classify_status(status)
        return Failure(
            classification=classification,
            http_status=status,
            message=message,
            raw_body=response.text,
            error_payload=error_payload,
            retry_after=retry_after,
            reset_at=self._rate_limit.reset_at
            if classification is Classification.RATE_LIMITED
            else None,
            response=response,
            request=request,
        )

    def _parse_rate_limit_headers(self, response: httpx.Response) -> float | None:
        """Parse rate limit headers from the response and update the client's status.

        Args:
            response: The HTTP response to parse headers from.

        Returns:
            float | None: The 'Retry-After' duration in seconds, if present.
        """

        def header(*names: str) -> str | None:
            for name in names:
                value = response.headers.get(name)
                if value:
                    return value
            return None

        limit_str = header("X-Rate-Limit-Limit", "X-RateLimit-Limit")
        remaining_str = header("X-Rate-Limit-Remaining", "X-RateLimit-Remaining")
        reset_str = header("X-Rate-Limit-Reset", "X-RateLimit-Reset")

        if limit_str or remaining_str or reset_str:
            updates: dict[str, Any] = {}
            if limit_str and limit_str.isdigit():
                updates["limit"] = int(limit_str)
            if remaining_str and remaining_str.isdigit():
                updates["remaining"] = int(remaining_str)
            if reset_str and reset_str.isdigit():
                updates["reset_at"] = float(reset_str)
            elif reset_str:
                try:
                    updates["reset_at"] = parsedate_to_datetime(reset_str).timestamp()
                except (TypeError, ValueError):
                    logger.warning(f"Could not parse rate limit reset value: {reset_str}")
            self._rate_limit = self._rate_limit.model_copy(update=updates)
            logger.debug(f"Rate limit status: {self._rate_limit}")

        retry_after_header = response.headers.get("Retry-After")
        if not retry_after_header:
            return None
        if retry_after_header.isdigit():
            return float(retry_after_header)
        try:
            retry_dt = parsedate_to_datetime(retry_after_header)
        except (TypeError, ValueError) as e:
            logger.warning(
                f"Could not parse Retry-After HTTP date '{retry_after_header}': {e}"
            )
            return None
        if retry_dt.tzinfo is None:
            retry_dt = retry_dt.replace(tzinfo=UTC)
        return max(0.0, (retry_dt - datetime.now(UTC)).total_seconds())

    def _run_post_request_hooks(self, outcome: Success, attempts: int) -> None:
        if not self._settings.post_request_hooks or outcome.response is None:
            return
        logger.debug(
            f"Executing {len(self._settings.post_request_hooks)} post-request hooks"
        )
        for hook in self._settings.post_request_hooks:
            try:
                hook(outcome.response, outcome.payload, attempts)
            except Exception as e:
                logger.error(
                    f"Error executing post-request hook {getattr(hook, '__name__', str(hook))}: {e}"
                )

    def _postprocess(self, bound: BoundCall, payload: Any) -> Any:
        """Entity decoding, ``_since`` filtering, then inflation."""
        if self._settings.decode_html_entities:
            payload = decode_html_entities(payload)
        if bound.synthetic.since is not None:
            payload = self._filter_since(payload, bound.synthetic.since)
        if self._inflator is not None:
            payload = self._inflator.inflate(payload, bound.definition.name)
        return payload

    @staticmethod
    def _filter_since(payload: Any, since: datetime) -> Any:
        """Keeps the list items created after ``since``.

        Items without a parseable ``created_at`` are kept. Non-list payloads
        are returned unchanged.
        """
        if not isinstance(payload, list):
            logger.debug(
                f"_since filter skipped: payload is a {type(payload).__name__}, not a list"
            )
            return payload

        def is_recent(item: Any) -> bool:
            if not isinstance(item, Mapping) or not isinstance(
                item.get("created_at"), str
            ):
                return True
            try:
                return parse_timestamp(item["created_at"]) > since
            except ValueError:
                return True

        kept = [item for item in payload if is_recent(item)]
        logger.debug(f"_since filter kept {len(kept)} of {len(payload)} items")
        return kept

    def _generate_cache_key(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None = None,
        *,
        authenticate: bool | None = None,
    ) -> str:
        """Generate a cache key from the request method, URL, parameters and auth override."""
        key_parts = [method.upper(), url, f"auth={authenticate}"]
        if params:
            key_parts.append(
                json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
            )
        return hashlib.md5("|".join(key_parts).encode("utf-8")).hexdigest()

    # --- Lifecycle ---

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this dispatcher created it."""
        if self._should_close_client and isinstance(self._http_client, httpx.AsyncClient):
            if not self._http_client.is_closed:
                await self._http_client.aclose()
                logger.info("MethodDispatcher internal HTTP client closed.")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
