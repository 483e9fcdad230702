"""KMS key management and cryptographic operations"""

import base64
import binascii
from enum import Enum
from typing import Any, List, Optional, Union
from urllib.parse import quote

from .exceptions import Base64DecodeError, SerializationError, Utf8DecodeError
from .models import KmsKey, SignResult, VerifyResult, require_list

KEYS_PATH = '/api/v1/kms/keys'


class KeyUsage(str, Enum):
    ENCRYPT_DECRYPT = 'encrypt-decrypt'
    SIGN_VERIFY = 'sign-verify'


class EncryptionAlgorithm(str, Enum):
    AES_256_GCM = 'aes-256-gcm'
    AES_128_GCM = 'aes-128-gcm'
    RSA_4096 = 'RSA_4096'
    ECC_NIST_P256 = 'ECC_NIST_P256'


class SigningAlgorithm(str, Enum):
    RSASSA_PSS_SHA_256 = 'RSASSA_PSS_SHA_256'
    RSASSA_PSS_SHA_384 = 'RSASSA_PSS_SHA_384'
    RSASSA_PSS_SHA_512 = 'RSASSA_PSS_SHA_512'
    RSASSA_PKCS1_V1_5_SHA_256 = 'RSASSA_PKCS1_V1_5_SHA_256'
    RSASSA_PKCS1_V1_5_SHA_384 = 'RSASSA_PKCS1_V1_5_SHA_384'
    RSASSA_PKCS1_V1_5_SHA_512 = 'RSASSA_PKCS1_V1_5_SHA_512'
    ECDSA_SHA_256 = 'ECDSA_SHA_256'
    ECDSA_SHA_384 = 'ECDSA_SHA_384'
    ECDSA_SHA_512 = 'ECDSA_SHA_512'


def _enum_value(enum_cls, value) -> str:
    """Validate *value* against *enum_cls* and return its wire string."""
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValueError(f"Invalid {enum_cls.__name__} {value!r} (expected one of: {allowed})") from None


def encode_base64(data: str) -> str:
    """Base64-encode UTF-8 text."""
    return base64.b64encode(data.encode('utf-8')).decode('ascii')


def decode_base64(data: str) -> str:
    """
    Decode base64 into UTF-8 text.

    Raises:
        Base64DecodeError: If data is not valid base64
        Utf8DecodeError: If the decoded bytes are not valid UTF-8
    """
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(f"Failed to decode base64 data: {e}") from e
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise Utf8DecodeError(f"Failed to convert bytes to UTF-8 string: {e}") from e


def _field(data: Any, key: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise SerializationError(f"Missing field '{key}' in response")
    return data[key]


class KmsClient:
    """
    KMS operations, bound to an InfisicalClient.

    Access through ``client.kms`` rather than constructing directly.
    """

    def __init__(self, client):
        self._client = client

    def _key_endpoint(self, key_id: str, action: str = '') -> str:
        endpoint = f'{KEYS_PATH}/{quote(key_id, safe="")}'
        return f'{endpoint}/{action}' if action else endpoint

    # ============ Keys ============

    def list(self, project_id: str) -> List[KmsKey]:
        """List the KMS keys of a project."""
        data = self._client._request('GET', KEYS_PATH, params={'projectId': project_id})
        return [KmsKey.from_dict(k) for k in require_list(data, 'keys', 'KMS key list')]

    def get(self, key_id: str) -> KmsKey:
        """Get a KMS key by ID."""
        return KmsKey.from_dict(_field(self._client._request('GET', self._key_endpoint(key_id)), 'key'))

    def get_by_name(self, key_name: str) -> KmsKey:
        """Get a KMS key by name."""
        endpoint = f'{KEYS_PATH}/key-name/{quote(key_name, safe="")}'
        return KmsKey.from_dict(_field(self._client._request('GET', endpoint), 'key'))

    def create(
        self,
        project_id: str,
        name: str,
        description: str = '',
        key_usage: Union[KeyUsage, str] = KeyUsage.ENCRYPT_DECRYPT,
        encryption_algorithm: Union[EncryptionAlgorithm, str] = EncryptionAlgorithm.AES_256_GCM,
    ) -> KmsKey:
        """
        Create a KMS key.

        key_usage and encryption_algorithm are checked against KeyUsage and
        EncryptionAlgorithm locally; the server decides which combinations
        are valid (e.g. RSA_4096 with sign-verify).

        Args:
            project_id: Project ID
            name: Key name
            description: Optional description
            key_usage: "encrypt-decrypt" or "sign-verify"
            encryption_algorithm: Key algorithm

        Returns:
            The created KmsKey

        Raises:
            ValueError: If key_usage or encryption_algorithm is not recognised

        Example:
            >>> key = client.kms.create("proj-id", "signing-key",
            ...                         key_usage=KeyUsage.SIGN_VERIFY,
            ...                         encryption_algorithm=EncryptionAlgorithm.RSA_4096)
        """
        data = {
            'projectId': project_id,
            'name': name,
            'description': description,
            'keyUsage': _enum_value(KeyUsage, key_usage),
            'encryptionAlgorithm': _enum_value(EncryptionAlgorithm, encryption_algorithm),
        }
        return KmsKey.from_dict(_field(self._client._request('POST', KEYS_PATH, json=data), 'key'))

    def update(
        self,
        key_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_disabled: Optional[bool] = None,
    ) -> KmsKey:
        """
        Update a KMS key. Only the arguments that are given are sent.

        Returns:
            The updated KmsKey
        """
        data = {}
        if name is not None:
            data['name'] = name
        if is_disabled is not None:
            data['isDisabled'] = is_disabled
        if description is not None:
            data['description'] = description

        return KmsKey.from_dict(
            _field(self._client._request('PATCH', self._key_endpoint(key_id), json=data), 'key')
        )

    def delete(self, key_id: str) -> KmsKey:
        """Delete a KMS key. Returns the deleted KmsKey."""
        return KmsKey.from_dict(_field(self._client._request('DELETE', self._key_endpoint(key_id)), 'key'))

    # ============ Cryptography ============

    def encrypt(self, key_id: str, plaintext: str) -> str:
        """
        Encrypt base64-encoded plaintext.

        Args:
            key_id: KMS key ID
            plaintext: Base64 data (see encode_base64)

        Returns:
            Ciphertext string
        """
        data = self._client._request(
            'POST', self._key_endpoint(key_id, 'encrypt'), json={'plaintext': plaintext}
        )
        return _field(data, 'ciphertext')

    def decrypt(self, key_id: str, ciphertext: str) -> str:
        """Decrypt ciphertext. Returns base64 plaintext (see decode_base64)."""
        data = self._client._request(
            'POST', self._key_endpoint(key_id, 'decrypt'), json={'ciphertext': ciphertext}
        )
        return _field(data, 'plaintext')

    def sign(
        self,
        key_id: str,
        data: str,
        signing_algorithm: Union[SigningAlgorithm, str] = SigningAlgorithm.RSASSA_PKCS1_V1_5_SHA_256,
        is_digest: bool = False,
    ) -> SignResult:
        """
        Sign base64-encoded data with a sign-verify key.

        Args:
            key_id: KMS key ID
            data: Base64 data to sign
            signing_algorithm: Signing algorithm
            is_digest: True if data is already a digest rather than raw content

        Returns:
            SignResult with the signature
        """
        body = {
            'signingAlgorithm': _enum_value(SigningAlgorithm, signing_algorithm),
            'isDigest': is_digest,
            'data': data,
        }
        return SignResult.from_dict(
            self._client._request('POST', self._key_endpoint(key_id, 'sign'), json=body)
        )

    def verify(
        self,
        key_id: str,
        data: str,
        signature: str,
        signing_algorithm: Union[SigningAlgorithm, str] = SigningAlgorithm.RSASSA_PKCS1_V1_5_SHA_256,
        is_digest: bool = False,
    ) -> VerifyResult:
        """Verify a signature. Returns VerifyResult.signature_valid."""
        body = {
            'isDigest': is_digest,
            'data': data,
            'signature': signature,
            'signingAlgorithm': _enum_value(SigningAlgorithm, signing_algorithm),
        }
        return VerifyResult.from_dict(
            self._client._request('POST', self._key_endpoint(key_id, 'verify'), json=body)
        )

    def get_public_key(self, key_id: str) -> str:
        """Get the public key of an asymmetric key."""
        data = self._client._request('GET', self._key_endpoint(key_id, 'public-key'))
        return _field(data, 'publicKey')

    def get_signing_algorithms(self, key_id: str) -> List[str]:
        """List the signing algorithms a key supports."""
        data = self._client._request('GET', self._key_endpoint(key_id, 'signing-algorithms'))
        return _field(data, 'signingAlgorithms')
