# tests/tweetloom/conftest.py
import os

import pytest
from dotenv import load_dotenv

from tweetloom.config import TweetloomSettings

# Load environment variables from .env file if it exists
# Useful for storing API credentials locally for live tests
load_dotenv()

LIVE_CREDENTIAL_VARS = (
    "TWEETLOOM_CONSUMER_KEY",
    "TWEETLOOM_CONSUMER_SECRET",
    "TWEETLOOM_ACCESS_TOKEN",
    "TWEETLOOM_ACCESS_TOKEN_SECRET",
)


@pytest.fixture(scope="session")
def live_credentials_available() -> bool:
    """Whether OAuth credentials for live tests are present in the environment."""
    return all(os.getenv(name) for name in LIVE_CREDENTIAL_VARS)


@pytest.fixture
def clean_env(monkeypatch):
    """Removes TWEETLOOM_* variables so settings only see explicit values."""
    for name in list(os.environ):
        if name.startswith("TWEETLOOM_"):
            monkeypatch.delenv(name)


@pytest.fixture
def tweetloom_settings(clean_env) -> TweetloomSettings:
    return TweetloomSettings(_env_file=None)
