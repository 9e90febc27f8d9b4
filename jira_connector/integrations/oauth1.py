"""OAuth1a (RSA-SHA1) support for Jira application links.

Jira signs application-link traffic with the consumer's RSA key. The key is
loaded once into a KeyStore and passed explicitly to everything that signs
requests or exports the public half.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from oauthlib.oauth1 import SIGNATURE_RSA
from requests_oauthlib import OAuth1, OAuth1Session

from ..connector_logging import get_logger
from ..errors import CallbackMalformed, ConnectorError, ExchangeFailed
from .models import LongLivedCredential, TemporaryCredential

logger = get_logger()


class KeyStore:
    """Immutable holder of the plugin's RSA signing key."""

    KEY_SIZE = 2048

    def __init__(self, private_key: rsa.RSAPrivateKey):
        self._private_key = private_key
        self._private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    @classmethod
    def generate(cls) -> KeyStore:
        """Create a store around a freshly generated key."""
        key = rsa.generate_private_key(public_exponent=65537, key_size=cls.KEY_SIZE)
        logger.info("Generated a new RSA key for OAuth1 signing")
        return cls(key)

    @classmethod
    def from_pem(cls, data: bytes) -> KeyStore:
        """Load an unencrypted PEM private key.

        Raises:
            ValueError: If the data is not an RSA private key
        """
        key = serialization.load_pem_private_key(data, password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("OAuth1 signing key must be an RSA private key")
        return cls(key)

    @classmethod
    def load(cls, path: Path | None) -> KeyStore:
        """Load the key at ``path``, or generate one when no path is configured."""
        if path is None:
            return cls.generate()
        return cls.from_pem(Path(path).read_bytes())

    @property
    def private_key_pem(self) -> str:
        return self._private_pem

    def public_key_pem(self) -> bytes:
        """Return the public key as a PEM ``PUBLIC KEY`` block.

        This is what a Jira administrator pastes into the application link.
        """
        try:
            return self._private_key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        except ValueError as e:
            raise ConnectorError(f"failed to encode public key: {e}") from e


def parse_authorization_callback(query: Mapping[str, str]) -> tuple[str, str]:
    """Extract the request token and verifier from an OAuth1 callback.

    Raises:
        CallbackMalformed: If either parameter is missing or empty
    """
    request_token = query.get("oauth_token", "")
    verifier = query.get("oauth_verifier", "")
    if not request_token or not verifier:
        raise CallbackMalformed(
            "failed to parse callback request from Jira: "
            "request missing oauth_token or oauth_verifier"
        )
    return request_token, verifier


class OAuth1Config:
    """OAuth1a endpoints and signing settings for one Jira instance."""

    REQUEST_TOKEN_PATH = "plugins/servlet/oauth/request-token"
    AUTHORIZE_PATH = "plugins/servlet/oauth/authorize"
    ACCESS_TOKEN_PATH = "plugins/servlet/oauth/access-token"

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        key_store: KeyStore,
        callback_url: str = "",
        session_factory: Callable[..., Any] = OAuth1Session,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.key_store = key_store
        self.callback_url = callback_url
        self.timeout = timeout
        self._session_factory = session_factory

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def _session(self, **kwargs: Any) -> Any:
        return self._session_factory(
            self.consumer_key,
            signature_method=SIGNATURE_RSA,
            rsa_key=self.key_store.private_key_pem,
            **kwargs,
        )

    def request_token(self) -> TemporaryCredential:
        """Obtain a request token to start the three-legged flow.

        Raises:
            ConnectorError: If Jira refuses to issue a request token
        """
        oauth = self._session(callback_uri=self.callback_url)
        try:
            token = oauth.fetch_request_token(
                self._url(self.REQUEST_TOKEN_PATH), timeout=self.timeout
            )
        except (ValueError, requests.RequestException) as e:
            raise ConnectorError(f"failed to obtain oauth1 request token: {e}") from e
        return TemporaryCredential(
            token=token.get("oauth_token", ""), secret=token.get("oauth_token_secret", "")
        )

    def authorization_url(self, request_token: str) -> str:
        """URL the user visits to approve the request token."""
        return self._session().authorization_url(
            self._url(self.AUTHORIZE_PATH), request_token=request_token
        )

    def access_token(
        self, request_token: str, request_secret: str, verifier: str
    ) -> LongLivedCredential:
        """Exchange an approved request token for an access token.

        Raises:
            ExchangeFailed: If Jira does not issue an access token
        """
        oauth = self._session(
            resource_owner_key=request_token,
            resource_owner_secret=request_secret,
        )
        try:
            token = oauth.fetch_access_token(
                self._url(self.ACCESS_TOKEN_PATH), verifier=verifier, timeout=self.timeout
            )
        except (ValueError, requests.RequestException) as e:
            raise ExchangeFailed(f"failed to obtain oauth1 access token: {e}") from e

        access_token = token.get("oauth_token", "")
        if not access_token:
            raise ExchangeFailed("failed to obtain oauth1 access token: empty token")
        return LongLivedCredential(
            access_token=access_token,
            access_secret=token.get("oauth_token_secret", ""),
        )

    def auth_for(self, credential: LongLivedCredential) -> OAuth1:
        """Request signer acting on behalf of the credential's owner."""
        return OAuth1(
            self.consumer_key,
            resource_owner_key=credential.access_token,
            resource_owner_secret=credential.access_secret,
            signature_method=SIGNATURE_RSA,
            rsa_key=self.key_store.private_key_pem,
        )
