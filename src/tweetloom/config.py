# tweetloom/config.py
from functools import lru_cache

from methodfabric.config import DispatcherSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from .constants import DEFAULT_USER_AGENT, TWITTER_API_BASE_URL


class TweetloomSettings(DispatcherSettings):
    """
    Twitter-specific settings for the tweetloom client.

    Inherits all generic dispatcher settings from DispatcherSettings and adds
    the API base URL and the credential fields.

    Settings are loaded from environment variables (prefixed with 'TWEETLOOM_')
    or .env/secrets.env files.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "secrets.env"),
        env_file_encoding="utf-8",
        # Environment variables should be prefixed, e.g., TWEETLOOM_CONSUMER_KEY
        env_prefix="TWEETLOOM_",
        extra="ignore",
        case_sensitive=False,
        arbitrary_types_allowed=True,  # Required for hook callables
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header for requests",
    )
    base_url: str = Field(
        default=TWITTER_API_BASE_URL, description="Base URL of the REST API"
    )

    # --- Authentication Settings ---
    # Option 1: OAuth 1.0a user context
    consumer_key: str | None = Field(default=None, description="OAuth consumer key")
    consumer_secret: str | None = Field(
        default=None, description="OAuth consumer secret"
    )
    access_token: str | None = Field(default=None, description="OAuth access token")
    access_token_secret: str | None = Field(
        default=None, description="OAuth access token secret"
    )

    # Option 2: Application-only bearer token
    bearer_token: str | None = Field(
        default=None, description="Application-only bearer token"
    )

    # Option 3: HTTP Basic (legacy hosts and compatible services)
    username: str | None = Field(default=None, description="Basic auth username")
    password: str | None = Field(default=None, description="Basic auth password")


@lru_cache
def get_settings() -> TweetloomSettings:
    """
    Provides access to the tweetloom settings.

    Settings are loaded from environment variables (prefixed with 'TWEETLOOM_')
    or .env/secrets.env files. The instance is cached for performance.

    Returns:
        TweetloomSettings: The settings instance.
    """
    return TweetloomSettings()
