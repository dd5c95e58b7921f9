"""Tests for TweetloomClient and the settings-backed credential store."""

import httpx
import pytest

from methodfabric.auth import BasicCredential, BearerCredential, OAuthCredential
from methodfabric.errors import NO_RESULT, WrappingPolicy
from methodfabric.inflate import InflatedObject
from tweetloom import TweetloomClient
from tweetloom.client import SettingsCredentialStore
from tweetloom.config import TweetloomSettings, get_settings
from tweetloom.constants import DEFAULT_USER_AGENT, TWITTER_API_BASE_URL

OAUTH_FIELDS = {
    "consumer_key": "ck",
    "consumer_secret": "cs",
    "access_token": "at",
    "access_token_secret": "ats",
}


def test_settings_defaults(tweetloom_settings):
    assert tweetloom_settings.base_url == TWITTER_API_BASE_URL
    assert tweetloom_settings.user_agent == DEFAULT_USER_AGENT
    assert tweetloom_settings.consumer_key is None


def test_settings_from_environment(monkeypatch, clean_env):
    monkeypatch.setenv("TWEETLOOM_BEARER_TOKEN", "from-env")
    monkeypatch.setenv("TWEETLOOM_ERROR_POLICY", "wrap")
    settings = TweetloomSettings(_env_file=None)
    assert settings.bearer_token == "from-env"
    assert settings.error_policy == "wrap"


def test_get_settings_is_cached(clean_env):
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({}, None),
        ({"username": "bob", "password": "pw"}, BasicCredential(username="bob", password="pw")),
        ({"bearer_token": "t", "username": "bob", "password": "pw"}, BearerCredential(token="t")),
        ({**OAUTH_FIELDS, "bearer_token": "t"}, OAuthCredential(**OAUTH_FIELDS)),
        ({"consumer_key": "ck", "consumer_secret": "cs"}, None),
    ],
)
def test_credential_store_preference(tweetloom_settings, fields, expected):
    settings = tweetloom_settings.model_copy(update=fields)
    assert SettingsCredentialStore(settings).lookup("api.twitter.com") == expected


def test_credential_store_is_keyed_by_host(tweetloom_settings):
    settings = tweetloom_settings.model_copy(update={"bearer_token": "t"})
    assert SettingsCredentialStore(settings).lookup("api.example.org") is None


def test_client_picks_up_settings_credential(tweetloom_settings):
    settings = tweetloom_settings.model_copy(update=OAUTH_FIELDS)
    client = TweetloomClient(settings, http_client=httpx.AsyncClient())
    assert client.credential == OAuthCredential(**OAUTH_FIELDS)


def test_explicit_credential_wins(tweetloom_settings):
    settings = tweetloom_settings.model_copy(update=OAUTH_FIELDS)
    credential = BearerCredential(token="explicit")
    client = TweetloomClient(settings, credential, http_client=httpx.AsyncClient())
    assert client.credential == credential


def test_base_url_override_keeps_settings_credential(tweetloom_settings):
    settings = tweetloom_settings.model_copy(update={"bearer_token": "t"})
    client = TweetloomClient(
        settings, base_url="https://api.example.org/1.1", http_client=httpx.AsyncClient()
    )
    assert client.credential == BearerCredential(token="t")
    assert client.settings.base_url == "https://api.example.org/1.1"


@pytest.mark.asyncio
async def test_update_hello(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(json={"id": 1, "text": "hello"})
    settings = tweetloom_settings.model_copy(update={"username": "bob", "password": "pw"})
    async with TweetloomClient(settings, http_client=httpx.AsyncClient()) as client:
        status = await client.update("hello")

    assert status["text"] == "hello"
    request = httpx_mock.get_requests()[0]
    assert str(request.url) == f"{TWITTER_API_BASE_URL}/statuses/update.json"
    assert request.content == b"status=hello"
    assert request.headers["Authorization"].startswith("Basic ")
    assert request.headers["User-Agent"] == DEFAULT_USER_AGENT


@pytest.mark.asyncio
async def test_inflation_uses_method_schemas(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(
        json={"reset_time": "Fri Mar 01 13:00:00 +0000 2024", "remaining_hits": 150}
    )
    settings = tweetloom_settings.model_copy(update={"enable_inflation": True})
    client = TweetloomClient(settings, http_client=httpx.AsyncClient())

    status = await client.rate_limit_status()

    assert isinstance(status, InflatedObject)
    assert status.reset_time.hour == 13
    assert status.remaining_hits == 150


@pytest.mark.asyncio
async def test_followers_ids_cursor_loop(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(json={"ids": [10, 11], "next_cursor": 7, "previous_cursor": 0})
    httpx_mock.add_response(json={"ids": [12], "next_cursor": 0, "previous_cursor": 7})
    client = TweetloomClient(
        tweetloom_settings, BearerCredential(token="t"), http_client=httpx.AsyncClient()
    )

    ids = [
        user_id
        async for user_id in client.iterate_cursor(
            "followers_ids", screen_name="bob", items_key="ids"
        )
    ]

    assert ids == [10, 11, 12]
    assert all(r.headers["Authorization"] == "Bearer t" for r in httpx_mock.get_requests())


@pytest.mark.asyncio
async def test_wrap_policy_from_settings(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(status_code=404, json={"errors": [{"message": "No status found", "code": 144}]})
    settings = tweetloom_settings.model_copy(update={"error_policy": "wrap"})
    client = TweetloomClient(settings, http_client=httpx.AsyncClient())

    assert await client.show_status(1) is NO_RESULT
    assert client.last_error().message == "No status found (code 144)"


@pytest.mark.asyncio
async def test_explicit_error_policy_overrides_settings(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(status_code=500, text="")
    policy = WrappingPolicy()
    client = TweetloomClient(tweetloom_settings, error_policy=policy, http_client=httpx.AsyncClient())

    assert await client.show_status(1) is NO_RESULT
    assert policy.last_error().http_status == 500


@pytest.mark.asyncio
async def test_live_verify_credentials(live_credentials_available):
    if not live_credentials_available:
        pytest.skip("Live OAuth credentials not configured")
    async with TweetloomClient(TweetloomSettings()) as client:
        user = await client.verify_credentials(skip_status=True)
    assert "screen_name" in user


@pytest.mark.asyncio
async def test_parameter_named_name(tweetloom_settings, httpx_mock):
    httpx_mock.add_response(json={"id": 5, "name": "friends"})
    client = TweetloomClient(
        tweetloom_settings, BearerCredential(token="t"), http_client=httpx.AsyncClient()
    )

    await client.create_list(name="friends", mode="private")

    assert httpx_mock.get_requests()[0].content == b"name=friends&mode=private"
