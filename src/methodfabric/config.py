# methodfabric/config.py
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import PostRequestHook, PreRequestHook

METHODFABRIC_VERSION = "0.1.0"


class DispatcherSettings(BaseSettings):
    """
    Manages user-configurable settings for a method dispatcher, primarily
    loaded from environment variables (prefixed with 'METHODFABRIC_') or a
    .env file.

    These settings select which cross-cutting behaviors a dispatcher is built
    with: retries, the error-reporting policy, response inflation, entity
    decoding and caching. Concrete clients subclass this to add their own
    base URL and credential fields.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "secrets.env"),
        env_file_encoding="utf-8",
        env_prefix="METHODFABRIC_",
        extra="ignore",
        case_sensitive=False,
        arbitrary_types_allowed=True,  # Allow hook callables
    )

    # --- Transport Settings ---
    request_timeout: float = Field(
        default=30.0, description="Default request timeout in seconds"
    )
    user_agent: str = Field(
        default=f"methodfabric/{METHODFABRIC_VERSION}",
        description="User-Agent header for requests",
    )

    # --- Retry Settings ---
    enable_retries: bool = Field(
        default=False,
        description="Retry transient and rate-limited failures (off by default)",
    )
    max_retries: int = Field(
        default=3, description="Retries after the first attempt when enabled"
    )
    backoff_factor: float = Field(
        default=0.5, description="Multiplier for exponential backoff (seconds)"
    )
    max_backoff: float = Field(
        default=60.0, description="Upper bound for a single backoff wait (seconds)"
    )

    # --- Error Reporting Settings ---
    error_policy: Literal["throw", "wrap"] = Field(
        default="throw",
        description="'throw' raises ApiError; 'wrap' records the last error and returns NO_RESULT",
    )
    clear_error_on_success: bool = Field(
        default=True,
        description="Under the 'wrap' policy, clear the last error after a successful call",
    )

    # --- Response Processing Settings ---
    enable_inflation: bool = Field(
        default=False,
        description="Inflate decoded payloads into read-only objects with typed dates and URLs",
    )
    decode_html_entities: bool = Field(
        default=False,
        description="Unescape HTML entities in string values of decoded payloads",
    )

    # --- Caching Settings ---
    enable_caching: bool = Field(
        default=False, description="Enable/disable caching of GET results"
    )
    cache_ttl_seconds: int = Field(
        default=300, description="TTL for cache entries in seconds"
    )
    cache_max_size: int = Field(
        default=128, description="Maximum number of items in the cache"
    )

    # --- Hook Settings ---
    pre_request_hooks: list[PreRequestHook] = Field(
        default_factory=list,
        description="List of hooks to call before a request is sent.",
    )
    post_request_hooks: list[PostRequestHook] = Field(
        default_factory=list,
        description="List of hooks to call after a response is decoded.",
    )


@lru_cache
def get_base_settings() -> DispatcherSettings:
    """
    Provides access to the base dispatcher settings.

    Settings are loaded from environment variables or .env/secrets.env files.
    The instance is cached for performance.

    Returns:
        DispatcherSettings: The base dispatcher settings instance.
    """
    return DispatcherSettings()
