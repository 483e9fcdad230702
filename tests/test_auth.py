"""Tests for infisical_api.auth — credential exchange methods."""

from unittest.mock import MagicMock

import pytest

from infisical_api.auth import AuthMethod, UniversalAuth, _redact, create_auth_method
from infisical_api.exceptions import AuthenticationFailedError
from tests.conftest import make_response


class TestUniversalAuth:
    def test_requires_both_credentials(self):
        with pytest.raises(ValueError):
            UniversalAuth("", "secret")
        with pytest.raises(ValueError):
            UniversalAuth("cid", "")

    def test_is_an_auth_method(self):
        assert isinstance(UniversalAuth("cid", "secret"), AuthMethod)

    def test_get_access_token(self):
        session = MagicMock()
        session.post.return_value = make_response(200, {
            "accessToken": "tok",
            "expiresIn": 60,
            "accessTokenMaxTTL": 120,
            "tokenType": "Bearer",
        })
        token = UniversalAuth("cid", "secret").get_access_token(session, "https://h", 3)
        assert token.access_token == "tok"
        session.post.assert_called_once_with(
            "https://h/api/v1/auth/universal-auth/login",
            json={"clientId": "cid", "clientSecret": "secret"},
            timeout=3,
        )

    def test_server_error_is_authentication_failure(self):
        session = MagicMock()
        session.post.return_value = make_response(500, text="oops")
        with pytest.raises(AuthenticationFailedError) as exc_info:
            UniversalAuth("cid", "secret").get_access_token(session, "https://h", 3)
        assert exc_info.value.status_code == 500

    def test_redacted_repr_masks_secret(self):
        method = UniversalAuth("my-client", "super-secret-value")
        r = repr(method)
        assert "super-secret-value" not in r
        assert "my-client" in r
        assert "UniversalAuth" in r

    def test_token_not_in_access_token_repr(self):
        session = MagicMock()
        session.post.return_value = make_response(200, {
            "accessToken": "hidden-token",
            "expiresIn": 60,
            "accessTokenMaxTTL": 120,
        })
        token = UniversalAuth("cid", "secret").get_access_token(session, "https://h", 3)
        assert "hidden-token" not in repr(token)
        assert token.token_type == "Bearer"


class TestCreateAuthMethod:
    def test_universal_auth(self):
        method = create_auth_method({"type": "universal-auth", "client_id": "a", "client_secret": "b"})
        assert isinstance(method, UniversalAuth)
        assert method.client_id == "a"

    def test_default_type(self):
        assert isinstance(create_auth_method({"client_id": "a", "client_secret": "b"}), UniversalAuth)

    def test_missing_key(self):
        with pytest.raises(ValueError, match="client_secret"):
            create_auth_method({"type": "universal-auth", "client_id": "a"})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown auth type"):
            create_auth_method({"type": "kerberos"})


class TestRedact:
    def test_short_value(self):
        assert _redact("abc") == "****"

    def test_long_value(self):
        assert _redact("abcdefgh") == "****efgh"
