"""Methodfabric: registry-driven dispatch engine for asynchronous API clients.

This package provides one uniform call surface for a declarative catalog of
remote API methods, with optional cross-cutting behaviors composed around
each call: authentication, cursor and page pagination, retry with backoff,
response inflation, and a throwing or last-error-wrapping error policy.

The engine is designed to be wrapped by concrete clients (like tweetloom)
that supply a method catalog and their own settings.
"""

__version__ = "0.1.0"

from . import (
    auth,
    binder,
    client,
    config,
    errors,
    exceptions,
    inflate,
    log_config,
    models,
    pagination,
    registry,
    retry,
    types,
)
from .auth import BasicCredential, BearerCredential, Credential, OAuthCredential
from .client import MethodDispatcher, RateLimitStatus
from .errors import NO_RESULT, LastErrorRecord, ThrowingPolicy, WrappingPolicy
from .inflate import InflatedObject, InflationSchema, ResponseInflator
from .pagination import CursorState, PageResult, PageState
from .registry import MethodDefinition, MethodRegistry
from .retry import RetryPolicy

__all__ = [
    "__version__",
    # Modules
    "auth",
    "binder",
    "client",
    "config",
    "errors",
    "exceptions",
    "inflate",
    "log_config",
    "models",
    "pagination",
    "registry",
    "retry",
    "types",
    # Core classes
    "MethodDispatcher",
    "MethodDefinition",
    "MethodRegistry",
    "RateLimitStatus",
    "RetryPolicy",
    "ThrowingPolicy",
    "WrappingPolicy",
    "LastErrorRecord",
    "NO_RESULT",
    "ResponseInflator",
    "InflationSchema",
    "InflatedObject",
    "CursorState",
    "PageState",
    "PageResult",
    # Credentials
    "Credential",
    "BasicCredential",
    "OAuthCredential",
    "BearerCredential",
]
