"""Typed records returned by the Infisical API"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import SerializationError


def _require(data: Dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict):
        raise SerializationError(f"Expected a JSON object for {kind}, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise SerializationError(f"Missing field '{key}' in {kind} response") from None


def require_list(data: Dict[str, Any], key: str, kind: str) -> List[Any]:
    value = _require(data, key, kind)
    if not isinstance(value, list):
        raise SerializationError(f"Field '{key}' in {kind} response must be a list, got {type(value).__name__}")
    return value


def _require_int(data: Dict[str, Any], key: str, kind: str) -> int:
    value = _require(data, key, kind)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"Field '{key}' in {kind} response must be an integer, got {type(value).__name__}")
    return value


@dataclass
class Secret:
    """A key/value pair scoped to a project, environment and path.

    ``is_fallback`` is True when the value was read from the local process
    environment instead of the API.
    """

    secret_key: str
    secret_value: str
    id: str = ''
    project_id: str = ''
    version: int = 0
    type: str = ''
    environment: str = ''
    secret_path: Optional[str] = None
    secret_comment: str = ''
    is_fallback: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Secret':
        return cls(
            secret_key=_require(data, 'secretKey', 'secret'),
            secret_value=_require(data, 'secretValue', 'secret'),
            id=data.get('id') or data.get('_id') or '',
            project_id=data.get('workspace') or data.get('workspaceId') or '',
            version=data.get('version', 0),
            type=data.get('type', ''),
            environment=data.get('environment', ''),
            secret_path=data.get('secretPath'),
            secret_comment=data.get('secretComment') or '',
            is_fallback=bool(data.get('isFallback', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'workspace': self.project_id,
            'version': self.version,
            'type': self.type,
            'environment': self.environment,
            'secretPath': self.secret_path,
            'secretKey': self.secret_key,
            'secretValue': self.secret_value,
            'secretComment': self.secret_comment,
            'isFallback': self.is_fallback,
        }


@dataclass
class SecretImport:
    """Secrets inherited into a path from another path or environment."""

    secret_path: str
    folder_id: str
    environment: str
    secrets: List[Secret] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SecretImport':
        return cls(
            secret_path=_require(data, 'secretPath', 'import'),
            folder_id=data.get('folderId', ''),
            environment=data.get('environment', ''),
            secrets=[Secret.from_dict(s) for s in require_list(data, 'secrets', 'import')],
        )


@dataclass
class KmsKey:
    id: str
    name: str
    project_id: str
    key_usage: str = ''
    encryption_algorithm: str = ''
    description: str = ''
    is_disabled: bool = False
    org_id: str = ''
    version: int = 0
    created_at: str = ''
    updated_at: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KmsKey':
        return cls(
            id=_require(data, 'id', 'KMS key'),
            name=_require(data, 'name', 'KMS key'),
            project_id=_require(data, 'projectId', 'KMS key'),
            key_usage=data.get('keyUsage', ''),
            encryption_algorithm=data.get('encryptionAlgorithm', ''),
            description=data.get('description') or '',
            is_disabled=bool(data.get('isDisabled', False)),
            org_id=data.get('orgId', ''),
            version=data.get('version', 0),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )


@dataclass
class AccessToken:
    """Result of a credential exchange. Expiry is reported, not tracked."""

    access_token: str = field(repr=False)
    expires_in: int
    access_token_max_ttl: int
    token_type: str = 'Bearer'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessToken':
        access_token = _require(data, 'accessToken', 'login')
        if not isinstance(access_token, str) or not access_token:
            raise SerializationError("Field 'accessToken' in login response must be a non-empty string")
        return cls(
            access_token=access_token,
            expires_in=_require_int(data, 'expiresIn', 'login'),
            access_token_max_ttl=_require_int(data, 'accessTokenMaxTTL', 'login'),
            token_type=data.get('tokenType', 'Bearer'),
        )


@dataclass
class SignResult:
    signature: str
    key_id: str
    signing_algorithm: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignResult':
        return cls(
            signature=_require(data, 'signature', 'sign'),
            key_id=data.get('keyId', ''),
            signing_algorithm=data.get('signingAlgorithm', ''),
        )


@dataclass
class VerifyResult:
    signature_valid: bool
    key_id: str
    signing_algorithm: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VerifyResult':
        return cls(
            signature_valid=bool(_require(data, 'signatureValid', 'verify')),
            key_id=data.get('keyId', ''),
            signing_algorithm=data.get('signingAlgorithm', ''),
        )
