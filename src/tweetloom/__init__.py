"""tweetloom: an asynchronous client for a Twitter-style REST API."""

__version__ = "0.1.0"

from methodfabric.errors import NO_RESULT
from methodfabric.exceptions import (
    ApiError,
    AuthRequiredError,
    BindingError,
    MethodfabricError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
)

from .catalog import METHOD_TABLE, build_registry
from .client import SettingsCredentialStore, TweetloomClient
from .config import TweetloomSettings, get_settings

__all__ = [
    # Core Client
    "TweetloomClient",
    "SettingsCredentialStore",
    "TweetloomSettings",
    "get_settings",
    "METHOD_TABLE",
    "build_registry",
    "NO_RESULT",
    # Core Exceptions
    "MethodfabricError",
    "ApiError",
    "AuthRequiredError",
    "BindingError",
    "NetworkError",
    "NotFoundError",
    "RateLimitError",
    "TimeoutError",
]
