from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import keyring
import keyring.backend
import pytest
import requests


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from infisical_api import InfisicalClient  # noqa: E402

BASE_URL = "https://infisical.test"


class MemoryKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self._data.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._data[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self._data.pop((service, username), None)


def make_response(status: int = 200, body=None, text: str | None = None) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    response.encoding = "utf-8"
    return response


def secret_payload(key: str, value: str, **extra) -> dict:
    payload = {
        "_id": f"id-{key}",
        "workspace": "proj-1",
        "version": 1,
        "type": "shared",
        "environment": "dev",
        "secretKey": key,
        "secretValue": value,
        "secretComment": "",
    }
    payload.update(extra)
    return payload


def key_payload(**extra) -> dict:
    payload = {
        "id": "key-1",
        "description": "",
        "isDisabled": False,
        "orgId": "org-1",
        "name": "app-key",
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-01T00:00:00Z",
        "projectId": "proj-1",
        "keyUsage": "encrypt-decrypt",
        "version": 1,
        "encryptionAlgorithm": "aes-256-gcm",
    }
    payload.update(extra)
    return payload


@pytest.fixture()
def environ() -> dict:
    return {}


@pytest.fixture()
def client(environ) -> InfisicalClient:
    client = InfisicalClient(base_url=BASE_URL, environ=environ)
    client.install_token("test-token")
    return client


@pytest.fixture()
def transport(client) -> MagicMock:
    """Stand-in for the authenticated session's request()."""
    mock = MagicMock(return_value=make_response(200, {}))
    client.session.request = mock
    return mock


@pytest.fixture()
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    config_file = tmp_path / "config"
    monkeypatch.setenv("INFISICAL_API_CONFIG", str(config_file))
    for var in (
        "INFISICAL_API_URL",
        "INFISICAL_CLIENT_ID",
        "INFISICAL_CLIENT_SECRET",
        "INFISICAL_PROJECT_ID",
        "INFISICAL_ENVIRONMENT",
    ):
        monkeypatch.delenv(var, raising=False)
    keyring.set_keyring(MemoryKeyring())
    return config_file
