"""Infisical API client exceptions"""

from typing import Any, Dict, Optional

import requests


class InfisicalError(Exception):
    """Base exception for Infisical client errors"""
    pass


class InvalidHeaderError(InfisicalError):
    """An access token could not be used as an HTTP header value"""
    pass


class NotAuthenticatedError(InfisicalError):
    """An authenticated operation was attempted before login()"""

    def __init__(self, message: str = "Client is not authenticated. Call login() first."):
        super().__init__(message)


class SerializationError(InfisicalError):
    """Response body did not match the expected shape"""
    pass


class Base64DecodeError(InfisicalError):
    """Input was not valid base64"""
    pass


class Utf8DecodeError(InfisicalError):
    """Decoded bytes were not valid UTF-8 text"""
    pass


class InfisicalHTTPError(InfisicalError):
    """Non-success HTTP response with status code and error envelope details"""

    def __init__(
        self,
        message: str,
        status_code: int = None,
        request_id: str = '',
        body: str = '',
    ):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code
        self.message = message
        self.request_id = request_id
        self.body = body


class BadRequestError(InfisicalHTTPError):
    """Bad request (400)"""
    pass


class UnauthorizedError(InfisicalHTTPError):
    """Token missing, invalid or expired (401)"""
    pass


class NotFoundError(InfisicalHTTPError):
    """Resource not found (404)"""
    pass


class SecretNotFoundError(NotFoundError):
    """Named secret not found (404 on a single secret lookup)"""

    def __init__(self, secret_name: str, message: str = '', status_code: int = 404,
                 request_id: str = '', body: str = ''):
        super().__init__(
            message or f"Secret '{secret_name}' not found",
            status_code=status_code,
            request_id=request_id,
            body=body,
        )
        self.secret_name = secret_name


class RateLimitedError(InfisicalHTTPError):
    """Too many requests (429)"""
    pass


class AuthenticationFailedError(InfisicalHTTPError):
    """Credential exchange was rejected by the login endpoint"""
    pass


class InfisicalAPIError(InfisicalHTTPError):
    """Generic API error with status code and response details"""
    pass


_STATUS_ERRORS = {
    400: BadRequestError,
    401: UnauthorizedError,
    404: NotFoundError,
    429: RateLimitedError,
}


def _error_envelope(response: requests.Response) -> Dict[str, str]:
    """Best-effort parse of the ``{"reqId": ..., "message": ...}`` error body."""
    try:
        data = response.json()
    except ValueError:
        return {'request_id': '', 'message': ''}
    if not isinstance(data, dict):
        return {'request_id': '', 'message': ''}
    message = data.get('message', '')
    if not isinstance(message, str):
        message = str(message)
    return {'request_id': str(data.get('reqId') or ''), 'message': message}


def raise_for_status(
    response: requests.Response,
    secret_name: Optional[str] = None,
    error_class: Optional[type] = None,
) -> None:
    """
    Raise the appropriate InfisicalHTTPError based on the HTTP status code.

    Args:
        response: requests.Response object
        secret_name: Name of the secret being looked up. A 404 is then
            reported as SecretNotFoundError carrying this name.
        error_class: Force a specific error class for every failure
            (used by the login exchange).

    Raises:
        BadRequestError: 400 Bad Request
        UnauthorizedError: 401 Unauthorized
        NotFoundError / SecretNotFoundError: 404 Not Found
        RateLimitedError: 429 Too Many Requests
        InfisicalAPIError: Other 4xx/5xx errors
    """
    if response.ok:
        return

    envelope = _error_envelope(response)
    status = response.status_code
    kwargs = {
        'status_code': status,
        'request_id': envelope['request_id'],
        'body': response.text or '',
    }

    if error_class is not None:
        raise error_class(envelope['message'], **kwargs)
    if status == 404 and secret_name is not None:
        raise SecretNotFoundError(secret_name, message=envelope['message'], **kwargs)

    raise _STATUS_ERRORS.get(status, InfisicalAPIError)(envelope['message'], **kwargs)


def parse_json(response: requests.Response) -> Any:
    """Decode a success body, raising SerializationError on malformed JSON."""
    try:
        return response.json()
    except ValueError as e:
        raise SerializationError(f"Failed to decode API response: {e}") from e
