"""Credentials and authentication strategies for outbound requests.

A client owns at most one credential at a time. Before each attempt the
dispatcher calls ``decorate`` which picks the strategy matching the
credential type and writes the Authorization header. Strategies keep no
mutable state of their own, so the same strategy object can decorate any
number of concurrent requests.
"""

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Callable
from typing import Protocol
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict

from .exceptions import ConfigurationError
from .log_config import logger

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class BasicCredential(BaseModel):
    """Username and password for HTTP Basic authentication."""

    username: str
    password: str

    model_config = ConfigDict(frozen=True)


class OAuthCredential(BaseModel):
    """OAuth 1.0a consumer and access token pairs."""

    consumer_key: str
    consumer_secret: str
    access_token: str
    access_token_secret: str

    model_config = ConfigDict(frozen=True)


class BearerCredential(BaseModel):
    """A pre-issued application bearer token."""

    token: str

    model_config = ConfigDict(frozen=True)


Credential = BasicCredential | OAuthCredential | BearerCredential
"""Any credential a client can hold. ``None`` stands for no credential."""


class CredentialStore(Protocol):
    """Looks up stored credentials, e.g. per API host.

    A store is consulted once, when a client is constructed.
    """

    def lookup(self, key: str) -> Credential | None:
        """Returns the credential stored under ``key``, or None."""
        ...


class AuthStrategy(Protocol):
    """Protocol for computing and attaching authorization to a request.

    Implementations must be pure functions of the request and credential
    passed in; they may not cache credential material between calls.
    """

    def authenticate(self, request: httpx.Request, credential: Credential) -> None:
        """Sets the Authorization header of ``request`` from ``credential``."""
        ...


class NoAuth:
    """Implements the AuthStrategy protocol for requests sent without credentials."""

    def authenticate(self, request: httpx.Request, credential: Credential) -> None:
        """Does nothing as no authentication is applied."""
        logger.trace("Using NoAuth strategy, no authentication applied.")


class BasicAuth:
    """Implements AuthStrategy with HTTP Basic authentication via httpx."""

    def authenticate(self, request: httpx.Request, credential: Credential) -> None:
        if not isinstance(credential, BasicCredential):
            raise ConfigurationError("BasicAuth requires a BasicCredential.")
        logger.trace("Authenticating request using BasicAuth.")
        flow = httpx.BasicAuth(credential.username, credential.password).auth_flow(
            request
        )
        next(flow)


class BearerTokenAuth:
    """Implements AuthStrategy using a static Bearer token."""

    def authenticate(self, request: httpx.Request, credential: Credential) -> None:
        if not isinstance(credential, BearerCredential) or not credential.token:
            raise ConfigurationError("BearerTokenAuth requires a non-empty token.")
        logger.trace("Authenticating request using BearerTokenAuth.")
        request.headers["Authorization"] = f"Bearer {credential.token}"


def _percent_encode(value: str) -> str:
    return quote(value, safe="")


class OAuth1Auth:
    """Implements AuthStrategy by signing requests with OAuth 1.0a HMAC-SHA1.

    The signature covers the HTTP method, the URL without its query, and all
    query and form-encoded body parameters together with the oauth_* protocol
    parameters.

    Attributes:
        _nonce_factory: Callable returning a fresh nonce per request.
        _clock: Callable returning the current Unix time in seconds.
    """

    def __init__(
        self,
        nonce_factory: Callable[[], str] | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._nonce_factory = nonce_factory or (lambda: secrets.token_hex(16))
        self._clock = clock or time.time

    def authenticate(self, request: httpx.Request, credential: Credential) -> None:
        if not isinstance(credential, OAuthCredential):
            raise ConfigurationError("OAuth1Auth requires an OAuthCredential.")
        logger.trace("Authenticating request using OAuth1Auth.")
        request.headers["Authorization"] = self.authorization_header(
            request, credential
        )

    def authorization_header(
        self, request: httpx.Request, credential: OAuthCredential
    ) -> str:
        """Computes the ``OAuth ...`` Authorization header value for a request."""
        oauth_params = {
            "oauth_consumer_key": credential.consumer_key,
            "oauth_nonce": self._nonce_factory(),
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": str(int(self._clock())),
            "oauth_token": credential.access_token,
            "oauth_version": "1.0",
        }
        oauth_params["oauth_signature"] = self.signature(
            request, credential, oauth_params
        )
        return "OAuth " + ", ".join(
            f'{_percent_encode(key)}="{_percent_encode(value)}"'
            for key, value in sorted(oauth_params.items())
        )

    @staticmethod
    def signature_base_string(
        request: httpx.Request, oauth_params: dict[str, str]
    ) -> str:
        """Builds the OAuth 1.0a signature base string for a request."""
        pairs: list[tuple[str, str]] = list(request.url.params.multi_items())
        content_type = request.headers.get("Content-Type", "")
        if content_type.startswith(FORM_CONTENT_TYPE) and request.content:
            pairs.extend(httpx.QueryParams(request.content.decode()).multi_items())
        pairs.extend(oauth_params.items())

        encoded = sorted(
            (_percent_encode(key), _percent_encode(value)) for key, value in pairs
        )
        parameter_string = "&".join(f"{key}={value}" for key, value in encoded)

        raw_path = request.url.raw_path.split(b"?", 1)[0].decode("ascii")
        base_url = f"{request.url.scheme}://{request.url.netloc.decode('ascii')}{raw_path}"
        return "&".join(
            [
                request.method.upper(),
                _percent_encode(base_url),
                _percent_encode(parameter_string),
            ]
        )

    def signature(
        self,
        request: httpx.Request,
        credential: OAuthCredential,
        oauth_params: dict[str, str],
    ) -> str:
        """Signs the base string with the consumer and token secrets."""
        key = (
            f"{_percent_encode(credential.consumer_secret)}&"
            f"{_percent_encode(credential.access_token_secret)}"
        )
        digest = hmac.new(
            key.encode("utf-8"),
            self.signature_base_string(request, oauth_params).encode("utf-8"),
            hashlib.sha1,
        ).digest()
        return base64.b64encode(digest).decode("ascii")


_NO_AUTH = NoAuth()
_BASIC_AUTH = BasicAuth()
_BEARER_AUTH = BearerTokenAuth()
_OAUTH1_AUTH = OAuth1Auth()


def strategy_for(credential: Credential | None) -> AuthStrategy:
    """Selects the authentication strategy matching a credential's type."""
    match credential:
        case BasicCredential():
            return _BASIC_AUTH
        case OAuthCredential():
            return _OAUTH1_AUTH
        case BearerCredential():
            return _BEARER_AUTH
        case _:
            return _NO_AUTH


def decorate(
    request: httpx.Request,
    credential: Credential | None,
    auth_override: bool | None = None,
    strategy: AuthStrategy | None = None,
) -> httpx.Request:
    """Attaches authorization to a request according to the override.

    Args:
        request: The outbound request; its headers are modified in place.
        credential: The client's current credential, or None.
        auth_override: The ``_authenticate`` synthetic argument. None attaches
            authorization whenever a credential is present, True forces an
            attempt to attach it, False always omits it.
        strategy: Explicit strategy to use instead of ``strategy_for(credential)``.

    Returns:
        httpx.Request: The same request object.

    Note:
        Forcing authentication without a credential never fails: the header
        is simply left off.
    """
    if auth_override is False:
        request.headers.pop("Authorization", None)
        logger.trace("Authentication suppressed by _authenticate=False.")
        return request

    if credential is None:
        if auth_override:
            logger.debug(
                "Authentication forced but no credential is set; sending request without it."
            )
        return request

    (strategy or strategy_for(credential)).authenticate(request, credential)
    return request
