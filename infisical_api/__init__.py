"""
Infisical API client - secrets management and KMS

A Python client for the Infisical secrets management and key management API.

Quick Start:
    from infisical_api import InfisicalClient, UniversalAuth

    client = InfisicalClient(base_url="https://app.infisical.com")
    client.login(UniversalAuth("client-id", "client-secret"))

    # List secrets at a path, merged with imported secrets
    secrets = client.secrets.list("project-id", "prod", path="/")

    # Get a specific secret by name
    secret = client.secrets.get("DATABASE_URL", "project-id", "prod")

    # Create a new secret
    client.secrets.create("API_KEY", "secret-value", "project-id", "prod")

    # Encrypt with a KMS key
    ciphertext = client.kms.encrypt(key.id, encode_base64("hello"))
"""

__version__ = "1.0.0"

from .auth import AuthMethod, UniversalAuth, create_auth_method
from .client import InfisicalClient
from .exceptions import (
    InfisicalError,
    InfisicalHTTPError,
    InvalidHeaderError,
    NotAuthenticatedError,
    BadRequestError,
    UnauthorizedError,
    NotFoundError,
    SecretNotFoundError,
    RateLimitedError,
    AuthenticationFailedError,
    InfisicalAPIError,
    SerializationError,
    Base64DecodeError,
    Utf8DecodeError,
)
from .kms import (
    EncryptionAlgorithm,
    KeyUsage,
    SigningAlgorithm,
    decode_base64,
    encode_base64,
)
from .models import AccessToken, KmsKey, Secret, SecretImport, SignResult, VerifyResult

__all__ = [
    # Main client
    "InfisicalClient",
    # Authentication
    "AuthMethod",
    "UniversalAuth",
    "create_auth_method",
    # Models
    "AccessToken",
    "Secret",
    "SecretImport",
    "KmsKey",
    "SignResult",
    "VerifyResult",
    # KMS
    "KeyUsage",
    "EncryptionAlgorithm",
    "SigningAlgorithm",
    "encode_base64",
    "decode_base64",
    # Exceptions
    "InfisicalError",
    "InfisicalHTTPError",
    "InvalidHeaderError",
    "NotAuthenticatedError",
    "BadRequestError",
    "UnauthorizedError",
    "NotFoundError",
    "SecretNotFoundError",
    "RateLimitedError",
    "AuthenticationFailedError",
    "InfisicalAPIError",
    "SerializationError",
    "Base64DecodeError",
    "Utf8DecodeError",
    # Metadata
    "__version__",
]
