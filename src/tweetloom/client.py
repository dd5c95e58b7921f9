"""Asynchronous client for a Twitter-style REST API built on methodfabric."""

import httpx
from methodfabric.auth import (
    BasicCredential,
    BearerCredential,
    Credential,
    OAuthCredential,
)
from methodfabric.client import MethodDispatcher, Transport
from methodfabric.errors import ErrorReportingPolicy
from methodfabric.inflate import ResponseInflator
from methodfabric.log_config import configure_logging, logger
from methodfabric.registry import MethodRegistry
from methodfabric.retry import RetryPolicy

from .catalog import build_registry
from .config import TweetloomSettings, get_settings
from .constants import METHOD_INFLATION_SCHEMAS

configure_logging()


class SettingsCredentialStore:
    """Credential store backed by TweetloomSettings.

    Credentials in the settings belong to the host of ``settings.base_url``;
    lookups for any other host find nothing. When several kinds of
    credentials are configured, the order of preference is:
        1. OAuth 1.0a (all four consumer/access fields set)
        2. Bearer token
        3. Basic (username and password)
    """

    def __init__(self, settings: TweetloomSettings):
        self._settings = settings

    def lookup(self, key: str) -> Credential | None:
        settings = self._settings
        if key != httpx.URL(settings.base_url).host:
            return None
        if (
            settings.consumer_key
            and settings.consumer_secret
            and settings.access_token
            and settings.access_token_secret
        ):
            return OAuthCredential(
                consumer_key=settings.consumer_key,
                consumer_secret=settings.consumer_secret,
                access_token=settings.access_token,
                access_token_secret=settings.access_token_secret,
            )
        if settings.bearer_token:
            return BearerCredential(token=settings.bearer_token)
        if settings.username and settings.password:
            return BasicCredential(
                username=settings.username, password=settings.password
            )
        return None


class TweetloomClient(MethodDispatcher):
    """Asynchronous client for the Twitter-style v1.1 REST API.

    Every method of the tweetloom catalog is callable by name or alias,
    either through ``invoke`` or as an attribute:

    ```python
    async with TweetloomClient() as client:
        status = await client.update("hello")
        async for user_id in client.iterate_cursor("followers_ids", screen_name="bob", items_key="ids"):
            print(user_id)
    ```

    Credentials are resolved from the explicit ``credential`` argument or,
    when it is None, from the settings (see SettingsCredentialStore). If no
    credential is found, requests are sent unauthenticated.

    Attributes:
        _settings (TweetloomSettings): The resolved settings for this client.
    """

    def __init__(
        self,
        settings: TweetloomSettings | None = None,
        credential: Credential | None = None,
        *,
        base_url: str | None = None,
        registry: MethodRegistry | None = None,
        retry_policy: RetryPolicy | None = None,
        error_policy: ErrorReportingPolicy | None = None,
        http_client: Transport | None = None,
    ):
        """Initializes the TweetloomClient.

        Args:
            settings: An optional `TweetloomSettings` instance. If `None`, settings
                are loaded via `tweetloom.config.get_settings()`.
            credential: An explicit credential; takes precedence over the settings.
            base_url: Overrides `settings.base_url`.
            registry: Overrides the catalog built from `METHOD_TABLE`.
            retry_policy: Overrides the retry policy selected by the settings.
            error_policy: Overrides the error policy selected by the settings.
            http_client: Optional transport to use instead of an owned one.
        """
        resolved_settings = settings or get_settings()
        if base_url is not None:
            resolved_settings = resolved_settings.model_copy(
                update={"base_url": base_url}
            )
        inflator = (
            ResponseInflator(method_schemas=METHOD_INFLATION_SCHEMAS)
            if resolved_settings.enable_inflation
            else None
        )
        super().__init__(
            registry or build_registry(),
            resolved_settings,
            base_url=resolved_settings.base_url,
            credential=credential,
            credential_store=SettingsCredentialStore(resolved_settings),
            credential_key=httpx.URL(resolved_settings.base_url).host,
            retry_policy=retry_policy,
            error_policy=error_policy,
            inflator=inflator,
            http_client=http_client,
        )
        self._settings: TweetloomSettings = resolved_settings
        logger.debug(f"TweetloomClient ready with {len(self.registry)} methods")
