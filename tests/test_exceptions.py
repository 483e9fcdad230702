"""Tests for infisical_api.exceptions — HTTP response classification."""

import pytest

from infisical_api.exceptions import (
    AuthenticationFailedError,
    BadRequestError,
    InfisicalAPIError,
    InfisicalHTTPError,
    NotFoundError,
    RateLimitedError,
    SecretNotFoundError,
    SerializationError,
    UnauthorizedError,
    parse_json,
    raise_for_status,
)
from tests.conftest import make_response


class TestRaiseForStatus:
    def test_success_does_not_raise(self):
        raise_for_status(make_response(200, {"ok": True}))
        raise_for_status(make_response(201, {}))

    @pytest.mark.parametrize("status,error_class", [
        (400, BadRequestError),
        (401, UnauthorizedError),
        (404, NotFoundError),
        (429, RateLimitedError),
        (403, InfisicalAPIError),
        (500, InfisicalAPIError),
        (503, InfisicalAPIError),
    ])
    def test_status_mapping(self, status, error_class):
        with pytest.raises(error_class) as exc_info:
            raise_for_status(make_response(status, {"reqId": "req-1", "message": "boom"}))
        assert exc_info.value.status_code == status

    def test_envelope_fields(self):
        with pytest.raises(BadRequestError) as exc_info:
            raise_for_status(make_response(400, {"reqId": "req-42", "message": "bad path", "statusCode": 400}))
        err = exc_info.value
        assert err.request_id == "req-42"
        assert err.message == "bad path"
        assert "bad path" in str(err)

    def test_unparseable_envelope_uses_empty_strings(self):
        with pytest.raises(InfisicalAPIError) as exc_info:
            raise_for_status(make_response(502, text="<html>Bad Gateway</html>"))
        err = exc_info.value
        assert err.request_id == ""
        assert err.message == ""
        assert err.body == "<html>Bad Gateway</html>"
        assert "502" in str(err)

    def test_non_object_envelope_uses_empty_strings(self):
        with pytest.raises(InfisicalAPIError) as exc_info:
            raise_for_status(make_response(500, ["unexpected"]))
        assert exc_info.value.request_id == ""
        assert exc_info.value.message == ""

    def test_named_404_is_secret_not_found(self):
        with pytest.raises(SecretNotFoundError) as exc_info:
            raise_for_status(make_response(404, {"reqId": "r", "message": ""}), secret_name="DB_URL")
        err = exc_info.value
        assert err.secret_name == "DB_URL"
        assert "DB_URL" in str(err)
        assert isinstance(err, NotFoundError)

    def test_named_non_404_keeps_status_class(self):
        with pytest.raises(UnauthorizedError):
            raise_for_status(make_response(401, {}), secret_name="DB_URL")

    def test_forced_error_class(self):
        with pytest.raises(AuthenticationFailedError) as exc_info:
            raise_for_status(make_response(401, {"message": "invalid credentials"}),
                             error_class=AuthenticationFailedError)
        assert exc_info.value.message == "invalid credentials"
        assert isinstance(exc_info.value, InfisicalHTTPError)


class TestParseJson:
    def test_valid(self):
        assert parse_json(make_response(200, {"a": 1})) == {"a": 1}

    def test_invalid(self):
        with pytest.raises(SerializationError):
            parse_json(make_response(200, text="not json"))
