"""
Authentication methods for the Infisical API.

Every method exchanges some credential for a short-lived bearer token.
Only Universal Auth (client id + client secret) exists today; new schemes
are added as further AuthMethod subclasses and registered in
create_auth_method().
"""

import abc
import logging
from typing import Any, Dict

import requests

from .exceptions import AuthenticationFailedError, parse_json, raise_for_status
from .models import AccessToken

logger = logging.getLogger(__name__)

UNIVERSAL_AUTH_LOGIN_PATH = '/api/v1/auth/universal-auth/login'


class AuthMethod(abc.ABC):
    """Base class for credential-for-token exchange strategies."""

    @abc.abstractmethod
    def get_access_token(
        self,
        session: requests.Session,
        base_url: str,
        timeout: float,
    ) -> AccessToken:
        """Exchange the configured credential for an access token."""

    @abc.abstractmethod
    def redacted_repr(self) -> str:
        """Human-readable description with sensitive values masked."""

    def __repr__(self) -> str:
        return self.redacted_repr()


class UniversalAuth(AuthMethod):
    """Universal Auth: client id and client secret of a machine identity."""

    def __init__(self, client_id: str, client_secret: str):
        if not client_id or not client_secret:
            raise ValueError("Universal Auth requires both client_id and client_secret")
        self.client_id = client_id
        self._client_secret = client_secret

    def get_access_token(self, session, base_url, timeout):
        url = f'{base_url}{UNIVERSAL_AUTH_LOGIN_PATH}'
        logger.debug("Universal Auth login -> %s", url)

        response = session.post(url, json={
            'clientId': self.client_id,
            'clientSecret': self._client_secret,
        }, timeout=timeout)
        raise_for_status(response, error_class=AuthenticationFailedError)

        token = AccessToken.from_dict(parse_json(response))
        logger.info("Universal Auth login succeeded (expires_in=%ss)", token.expires_in)
        return token

    def redacted_repr(self) -> str:
        return (
            f"UniversalAuth(client_id={self.client_id!r}, "
            f"client_secret={_redact(self._client_secret)})"
        )


def create_auth_method(auth_cfg: Dict[str, Any]) -> AuthMethod:
    """Build an :class:`AuthMethod` from a config dict.

    Expected shape::

        {"type": "universal-auth", "client_id": "...", "client_secret": "..."}

    Raises :class:`ValueError` for unknown types or missing keys.
    """
    auth_type = auth_cfg.get('type', 'universal-auth')
    if auth_type == 'universal-auth':
        for key in ('client_id', 'client_secret'):
            if not auth_cfg.get(key):
                raise ValueError(f"Universal Auth requires '{key}'.")
        return UniversalAuth(auth_cfg['client_id'], auth_cfg['client_secret'])

    raise ValueError(f"Unknown auth type: {auth_type!r}")


def _redact(value: str, visible: int = 4) -> str:
    """Mask all but the last *visible* characters."""
    if len(value) <= visible:
        return "****"
    return "*" * (len(value) - visible) + value[-visible:]
