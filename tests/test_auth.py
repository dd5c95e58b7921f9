"""Tests for credentials and authentication strategies in methodfabric."""

import base64

import httpx
import pytest

from methodfabric.auth import (
    BasicAuth,
    BasicCredential,
    BearerCredential,
    BearerTokenAuth,
    NoAuth,
    OAuth1Auth,
    OAuthCredential,
    decorate,
    strategy_for,
)
from methodfabric.exceptions import ConfigurationError

# Worked example from the provider's "Creating a signature" documentation.
DOC_CREDENTIAL = OAuthCredential(
    consumer_key="xvz1evFS4wEEPTGEFPHBog",
    consumer_secret="kAcSOqF21Fu85e7zjz7ZN2U4ZRhfV3WpwPAoE3Z7kBw",
    access_token="370773112-GmHxMAgYyLbNEtIKZeRNFsMKPR9EyMZeS9weJAEb",
    access_token_secret="LswwdoUaIvS8ltyTt5jkRh4J50vUPVVHtR2YPi5kE",
)
DOC_NONCE = "kYjzVBB8Y0ZFabxSWbWovY3uYSQ2pTgmZeNu2VS4cg"
DOC_TIMESTAMP = 1318622958


@pytest.fixture
def doc_request() -> httpx.Request:
    return httpx.Request(
        "POST",
        "https://api.twitter.com/1.1/statuses/update.json",
        params={"include_entities": "true"},
        data={"status": "Hello Ladies + Gentlemen, a signed OAuth request!"},
    )


@pytest.fixture
def doc_oauth() -> OAuth1Auth:
    return OAuth1Auth(nonce_factory=lambda: DOC_NONCE, clock=lambda: DOC_TIMESTAMP)


def test_no_auth_leaves_request_untouched():
    """Test NoAuth strategy does not modify the request."""
    request = httpx.Request("GET", "http://example.com")
    original_headers = dict(request.headers)
    NoAuth().authenticate(request, BearerCredential(token="unused"))
    assert dict(request.headers) == original_headers


def test_basic_auth_header():
    request = httpx.Request("GET", "http://example.com")
    BasicAuth().authenticate(request, BasicCredential(username="bob", password="s3cret"))
    expected = base64.b64encode(b"bob:s3cret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_basic_auth_rejects_other_credentials():
    request = httpx.Request("GET", "http://example.com")
    with pytest.raises(ConfigurationError, match="BasicCredential"):
        BasicAuth().authenticate(request, BearerCredential(token="t"))


def test_bearer_token_auth_header():
    """Test BearerTokenAuth adds the Authorization header."""
    request = httpx.Request("GET", "http://example.com")
    BearerTokenAuth().authenticate(request, BearerCredential(token="test_token"))
    assert request.headers["Authorization"] == "Bearer test_token"


def test_bearer_token_auth_requires_token():
    request = httpx.Request("GET", "http://example.com")
    with pytest.raises(ConfigurationError, match="non-empty token"):
        BearerTokenAuth().authenticate(request, BearerCredential(token=""))


def test_oauth_signature_base_string(doc_request):
    oauth_params = {
        "oauth_consumer_key": DOC_CREDENTIAL.consumer_key,
        "oauth_nonce": DOC_NONCE,
        "oauth_signature_method": "HMAC-SHA1",
        "oauth_timestamp": str(DOC_TIMESTAMP),
        "oauth_token": DOC_CREDENTIAL.access_token,
        "oauth_version": "1.0",
    }
    base = OAuth1Auth.signature_base_string(doc_request, oauth_params)
    assert base.startswith(
        "POST&https%3A%2F%2Fapi.twitter.com%2F1.1%2Fstatuses%2Fupdate.json&"
    )
    assert "include_entities%3Dtrue" in base
    assert (
        "status%3DHello%2520Ladies%2520%252B%2520Gentlemen%252C%2520a%2520signed%2520OAuth%2520request%2521"
        in base
    )


def test_oauth_signature_matches_documented_example(doc_request, doc_oauth):
    header = doc_oauth.authorization_header(doc_request, DOC_CREDENTIAL)
    assert header.startswith("OAuth ")
    assert 'oauth_signature="tnnArxj06cWHq44gCs1OSKk%2FjLY%3D"' in header
    assert f'oauth_nonce="{DOC_NONCE}"' in header
    assert f'oauth_timestamp="{DOC_TIMESTAMP}"' in header


def test_oauth_signature_is_deterministic(doc_oauth):
    def make_request():
        return httpx.Request(
            "GET", "https://api.example.com/1.1/users/show.json", params={"id": "bob"}
        )

    first = doc_oauth.authorization_header(make_request(), DOC_CREDENTIAL)
    second = doc_oauth.authorization_header(make_request(), DOC_CREDENTIAL)
    assert first == second


def test_oauth_nonce_changes_signature():
    nonces = iter(["one", "two"])
    auth = OAuth1Auth(nonce_factory=lambda: next(nonces), clock=lambda: DOC_TIMESTAMP)
    request = httpx.Request("GET", "https://api.example.com/1.1/x.json")
    assert auth.authorization_header(request, DOC_CREDENTIAL) != auth.authorization_header(
        request, DOC_CREDENTIAL
    )


@pytest.mark.parametrize(
    "credential, expected",
    [
        (None, NoAuth),
        (BasicCredential(username="u", password="p"), BasicAuth),
        (DOC_CREDENTIAL, OAuth1Auth),
        (BearerCredential(token="t"), BearerTokenAuth),
    ],
)
def test_strategy_for(credential, expected):
    assert isinstance(strategy_for(credential), expected)


def test_decorate_attaches_when_credential_present():
    request = httpx.Request("GET", "http://example.com")
    decorate(request, BearerCredential(token="abc"))
    assert request.headers["Authorization"] == "Bearer abc"


def test_decorate_without_credential_sends_nothing():
    request = httpx.Request("GET", "http://example.com")
    decorate(request, None)
    assert "Authorization" not in request.headers


def test_decorate_forced_without_credential_omits_silently():
    request = httpx.Request("GET", "http://example.com")
    decorate(request, None, auth_override=True)
    assert "Authorization" not in request.headers


def test_decorate_suppressed_never_attaches():
    request = httpx.Request(
        "GET", "http://example.com", headers={"Authorization": "Bearer stale"}
    )
    decorate(request, BearerCredential(token="abc"), auth_override=False)
    assert "Authorization" not in request.headers


def test_decorate_with_explicit_strategy():
    request = httpx.Request("GET", "http://example.com")
    decorate(request, BearerCredential(token="abc"), strategy=NoAuth())
    assert "Authorization" not in request.headers
