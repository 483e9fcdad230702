"""
Infisical API Client

A Python client for the Infisical secrets management and KMS API.

Example:
    from infisical_api import InfisicalClient, UniversalAuth

    client = InfisicalClient(base_url="https://app.infisical.com")
    client.login(UniversalAuth("client-id", "client-secret"))

    # List secrets, including imported ones
    secrets = client.secrets.list("project-id", "dev", path="/")

    # Encrypt with a KMS key
    ciphertext = client.kms.encrypt(key_id, encode_base64("hello"))
"""

import logging
import os
import threading
from typing import Any, MutableMapping, Optional

import requests
from requests.exceptions import InvalidHeader
from requests.utils import check_header_validity

from .auth import AuthMethod, UniversalAuth
from .exceptions import (
    InvalidHeaderError,
    NotAuthenticatedError,
    parse_json,
    raise_for_status,
)
from .kms import KmsClient
from .models import AccessToken
from .secrets import SecretsClient

logger = logging.getLogger(__name__)

# SDK version for User-Agent header
SDK_VERSION = "1.0.0"
USER_AGENT = f"infisical-api-python/{SDK_VERSION}"
DEFAULT_BASE_URL = "https://app.infisical.com"
DEFAULT_TIMEOUT = 10.0


class InfisicalClient:
    """
    Client for interacting with the Infisical API.

    The client starts unauthenticated. login() exchanges credentials for an
    access token and rebuilds the underlying requests.Session with an
    ``Authorization: Bearer`` default header. Until then every secrets or
    KMS call raises NotAuthenticatedError without touching the network.

    login() replaces the shared session; serialize it against other calls
    on the same instance.

    Args:
        base_url: Base URL of the Infisical instance
        timeout: Per-request timeout in seconds
        user_agent: User-Agent sent with every request
        environ: Mapping used to attach secrets to the environment and for
            fallback lookups (defaults to os.environ)

    Example:
        >>> client = InfisicalClient()
        >>> client.login_universal_auth("client-id", "client-secret")
        >>> secret = client.secrets.get("DATABASE_URL", "project-id", "prod")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        environ: Optional[MutableMapping[str, str]] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.user_agent = user_agent
        self.environ = os.environ if environ is None else environ

        self._lock = threading.Lock()
        self._session = self._build_session()
        self._authenticated = False

        self.secrets = SecretsClient(self)
        self.kms = KmsClient(self)

    def __repr__(self) -> str:
        return (
            f"InfisicalClient(base_url={self.base_url!r}, "
            f"authenticated={self._authenticated})"
        )

    def __enter__(self) -> 'InfisicalClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the current HTTP session."""
        with self._lock:
            self._session.close()

    def _build_session(self, authorization: Optional[str] = None) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'User-Agent': self.user_agent,
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })
        if authorization is not None:
            session.headers['Authorization'] = authorization
        return session

    @property
    def session(self) -> requests.Session:
        """The session subsequent requests will use."""
        with self._lock:
            return self._session

    # ============ Authentication ============

    def is_authenticated(self) -> bool:
        """Whether login() has installed an access token."""
        return self._authenticated

    def install_token(self, token: str) -> None:
        """
        Rebuild the HTTP session with a bearer token as a default header.

        Args:
            token: Access token returned by a login exchange

        Raises:
            InvalidHeaderError: If the token contains characters that are
                not allowed in an HTTP header value
        """
        authorization = f'Bearer {token}'
        try:
            check_header_validity(('Authorization', authorization))
        except InvalidHeader as e:
            # Never echo the token itself
            raise InvalidHeaderError("Access token is not a valid HTTP header value") from e

        session = self._build_session(authorization)
        with self._lock:
            previous, self._session = self._session, session
            self._authenticated = True
        # Only idle pooled connections are dropped; requests already holding
        # a connection finish on it.
        previous.close()
        logger.debug("Installed new access token for %s", self.base_url)

    def login(self, auth_method: AuthMethod) -> AccessToken:
        """
        Authenticate with the given method and install the resulting token.

        Calling login() again replaces the session with one carrying the
        new token and closes the previous session's connection pool.

        Args:
            auth_method: An AuthMethod such as UniversalAuth

        Returns:
            AccessToken with the raw token, its TTL and max TTL

        Raises:
            AuthenticationFailedError: If the credentials are rejected
            SerializationError: If the login response is malformed
        """
        logger.debug("Logging in to %s with %s", self.base_url, auth_method.redacted_repr())
        token = auth_method.get_access_token(self.session, self.base_url, self.timeout)
        self.install_token(token.access_token)
        return token

    def login_universal_auth(self, client_id: str, client_secret: str) -> AccessToken:
        """Shortcut for login(UniversalAuth(client_id, client_secret))."""
        return self.login(UniversalAuth(client_id, client_secret))

    # ============ Requests ============

    def _request(
        self,
        method: str,
        endpoint: str,
        secret_name: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """
        Make an authenticated API request and decode the JSON response.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint path
            secret_name: Name reported by SecretNotFoundError on a 404
            **kwargs: Additional arguments passed to requests

        Returns:
            Decoded JSON body

        Raises:
            NotAuthenticatedError: If login() has not succeeded
            InfisicalHTTPError: For any non-success status
            SerializationError: If the body is not JSON
        """
        if not self._authenticated:
            raise NotAuthenticatedError()

        url = f'{self.base_url}{endpoint}'
        logger.debug("%s %s", method, url)
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        raise_for_status(response, secret_name=secret_name)
        return parse_json(response)
