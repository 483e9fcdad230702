"""Secrets operations: get, list (with imports), create, update, delete"""

import logging
from typing import Any, Dict, Iterable, List, MutableMapping, Optional
from urllib.parse import quote

from .exceptions import InfisicalHTTPError, SerializationError
from .models import Secret, SecretImport, require_list

logger = logging.getLogger(__name__)

SECRETS_PATH = '/api/v3/secrets/raw'


def _flag(value: bool) -> str:
    return 'true' if value else 'false'


def dedupe_secrets_by_key(secrets: Iterable[Secret]) -> List[Secret]:
    """
    Keep one secret per key, the last one seen wins.

    Each key keeps the position of its first occurrence.
    """
    by_key: Dict[str, Secret] = {}
    for secret in secrets:
        by_key[secret.secret_key] = secret
    return list(by_key.values())


def merge_imports(secrets: Iterable[Secret], imports: Iterable[SecretImport]) -> List[Secret]:
    """
    Overlay imported secrets onto the direct secrets of a path.

    Priority, high to low: direct secrets, then imports in the order the
    server returned them. An imported secret is only appended when its key
    is not already present, so the first value seen for a key wins.
    """
    merged = list(secrets)
    seen = {secret.secret_key for secret in merged}

    for secret_import in imports:
        for secret in secret_import.secrets:
            if secret.secret_key in seen:
                continue
            seen.add(secret.secret_key)
            merged.append(secret)
    return merged


def attach_to_environment(secrets: Iterable[Secret], environ: MutableMapping[str, str]) -> None:
    """Export secrets as environment variables, never overwriting existing ones."""
    for secret in secrets:
        if secret.secret_key in environ:
            continue
        environ[secret.secret_key] = secret.secret_value


def fallback_secret(secret_name: str, environ: MutableMapping[str, str]) -> Optional[Secret]:
    """
    Build a secret from a same-named environment variable.

    Returns None when the variable is not set. The result is marked
    is_fallback=True with empty metadata and version 0.
    """
    if secret_name not in environ:
        return None
    return Secret(
        secret_key=secret_name,
        secret_value=environ[secret_name],
        version=0,
        is_fallback=True,
    )


def _secret_from(data: Any) -> Secret:
    if not isinstance(data, dict) or 'secret' not in data:
        raise SerializationError("Missing field 'secret' in response")
    return Secret.from_dict(data['secret'])


class SecretsClient:
    """
    Secrets operations, bound to an InfisicalClient.

    Access through ``client.secrets`` rather than constructing directly.
    """

    def __init__(self, client):
        self._client = client

    def _endpoint(self, secret_name: str) -> str:
        return f'{SECRETS_PATH}/{quote(secret_name, safe="")}'

    def get(
        self,
        secret_name: str,
        project_id: str,
        environment: str,
        path: str = '/',
        expand_secret_references: bool = True,
        type: str = 'shared',
        include_imports: bool = False,
        fallback_to_env: bool = False,
    ) -> Secret:
        """
        Get a single secret by name.

        Args:
            secret_name: Secret key (e.g., "DATABASE_URL")
            project_id: Project (workspace) ID
            environment: Environment slug (e.g., "dev", "prod")
            path: Folder path of the secret
            expand_secret_references: Resolve ${...} references server-side
            type: "shared" or "personal"
            include_imports: Also search imported secrets
            fallback_to_env: When the API returns an error, return a secret
                built from a same-named environment variable instead. The
                result has is_fallback=True.

        Returns:
            Secret

        Raises:
            SecretNotFoundError: If the API returns 404 and no fallback applies
            InfisicalHTTPError: For other API errors

        Example:
            >>> secret = client.secrets.get("DATABASE_URL", "proj-id", "prod")
            >>> print(secret.secret_value)
        """
        params = {
            'workspaceId': project_id,
            'environment': environment,
            'secretPath': path,
            'expandSecretReferences': _flag(expand_secret_references),
            'type': type,
            'include_imports': _flag(include_imports),
        }

        try:
            data = self._client._request(
                'GET', self._endpoint(secret_name), secret_name=secret_name, params=params
            )
        except InfisicalHTTPError:
            if not fallback_to_env:
                raise
            secret = fallback_secret(secret_name, self._client.environ)
            if secret is None:
                raise
            logger.warning("Using environment fallback for secret %s", secret_name)
            return secret

        return _secret_from(data)

    def list(
        self,
        project_id: str,
        environment: str,
        path: str = '/',
        expand_secret_references: bool = True,
        recursive: bool = False,
        attach_to_env: bool = False,
    ) -> List[Secret]:
        """
        List secrets at a path, merged with the secrets imported into it.

        Direct secrets always win over imported ones, and earlier imports win
        over later ones. With recursive=True the direct secrets are first
        reduced to one per key, keeping the last occurrence.

        Args:
            project_id: Project (workspace) ID
            environment: Environment slug
            path: Folder path to list
            expand_secret_references: Resolve ${...} references server-side
            recursive: Include secrets from sub-folders
            attach_to_env: Export the result to the client's environment
                mapping; variables that are already set are left untouched

        Returns:
            List of Secret objects, unique by key

        Example:
            >>> for secret in client.secrets.list("proj-id", "dev", attach_to_env=True):
            ...     print(secret.secret_key)
        """
        params = {
            'workspaceId': project_id,
            'environment': environment,
            'secretPath': path,
            'expandSecretReferences': _flag(expand_secret_references),
            'recursive': _flag(recursive),
            'include_imports': 'true',
        }
        data = self._client._request('GET', SECRETS_PATH, params=params)
        secrets = [Secret.from_dict(s) for s in require_list(data, 'secrets', 'list')]
        raw_imports = data.get('imports') or []
        if not isinstance(raw_imports, list):
            raise SerializationError("Field 'imports' in list response must be a list")
        imports = [SecretImport.from_dict(i) for i in raw_imports]

        if recursive:
            secrets = dedupe_secrets_by_key(secrets)
        secrets = merge_imports(secrets, imports)

        if attach_to_env:
            attach_to_environment(secrets, self._client.environ)

        return secrets

    def create(
        self,
        secret_name: str,
        secret_value: str,
        project_id: str,
        environment: str,
        path: str = '/',
        type: str = 'shared',
        secret_comment: str = '',
        skip_multiline_encoding: bool = False,
    ) -> Secret:
        """
        Create a new secret.

        Args:
            secret_name: Secret key
            secret_value: Secret value
            project_id: Project (workspace) ID
            environment: Environment slug
            path: Folder path
            type: "shared" or "personal"
            secret_comment: Optional comment
            skip_multiline_encoding: Store multi-line values verbatim

        Returns:
            The created Secret
        """
        return _secret_from(self._client._request('POST', self._endpoint(secret_name), json={
            'secretValue': secret_value,
            'workspaceId': project_id,
            'environment': environment,
            'secretPath': path,
            'type': type,
            'secretComment': secret_comment,
            'skipMultilineEncoding': skip_multiline_encoding,
        }))

    def update(
        self,
        secret_name: str,
        project_id: str,
        environment: str,
        secret_value: Optional[str] = None,
        new_secret_name: Optional[str] = None,
        path: Optional[str] = None,
        type: Optional[str] = None,
        secret_comment: Optional[str] = None,
        skip_multiline_encoding: Optional[bool] = None,
    ) -> Secret:
        """
        Update an existing secret.

        Only the arguments that are given are sent; omitted fields keep their
        server-side values.

        Returns:
            The updated Secret

        Example:
            >>> client.secrets.update("API_KEY", "proj-id", "prod", secret_value="new")
        """
        data = {
            'workspaceId': project_id,
            'environment': environment,
        }
        if new_secret_name is not None:
            data['newSecretName'] = new_secret_name
        if secret_value is not None:
            data['secretValue'] = secret_value
        if path is not None:
            data['secretPath'] = path
        if type is not None:
            data['type'] = type
        if secret_comment is not None:
            data['secretComment'] = secret_comment
        if skip_multiline_encoding is not None:
            data['skipMultilineEncoding'] = skip_multiline_encoding

        return _secret_from(self._client._request('PATCH', self._endpoint(secret_name), json=data))

    def delete(
        self,
        secret_name: str,
        project_id: str,
        environment: str,
        path: str = '/',
        type: str = 'shared',
    ) -> Secret:
        """Delete a secret. Returns the deleted Secret."""
        return _secret_from(self._client._request('DELETE', self._endpoint(secret_name), json={
            'workspaceId': project_id,
            'environment': environment,
            'secretPath': path,
            'type': type,
        }))
