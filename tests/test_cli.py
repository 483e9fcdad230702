"""Tests for infisical_cli — click commands against a mocked client."""

import json
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

import infisical_cli
from config import CLIConfig
from infisical_api import AccessToken, AuthenticationFailedError, KmsKey, Secret, SecretNotFoundError, VerifyResult


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def logged_in(isolated_config):
    CLIConfig.set_client_id("cid")
    CLIConfig.set_client_secret("csecret")
    CLIConfig.set_project_id("proj-1")
    CLIConfig.set_environment("dev")
    return isolated_config


@pytest.fixture()
def api(logged_in):
    """Mocked InfisicalClient returned by get_client()."""
    client = MagicMock()
    with patch.object(infisical_cli, "InfisicalClient", return_value=client):
        yield client


def secrets_fixture():
    return [
        Secret(secret_key="A", secret_value="1", version=2),
        Secret(secret_key="B", secret_value='two "quoted"\nlines'),
    ]


class TestAuthCommands:
    def test_login_stores_credentials(self, runner, isolated_config):
        client = MagicMock()
        client.login_universal_auth.return_value = AccessToken("tok", 7200, 43200)
        with patch.object(infisical_cli, "InfisicalClient", return_value=client):
            result = runner.invoke(infisical_cli.cli, ["login", "--client-id", "cid", "--client-secret", "csecret"])

        assert result.exit_code == 0, result.output
        assert "Signed in successfully" in result.output
        client.login_universal_auth.assert_called_once_with("cid", "csecret")
        assert CLIConfig.get_client_id() == "cid"
        assert CLIConfig.get_client_secret() == "csecret"

    def test_login_failure_stores_nothing(self, runner, isolated_config):
        client = MagicMock()
        client.login_universal_auth.side_effect = AuthenticationFailedError("Invalid credentials", status_code=401)
        with patch.object(infisical_cli, "InfisicalClient", return_value=client):
            result = runner.invoke(infisical_cli.cli, ["login", "--client-id", "cid", "--client-secret", "bad"])

        assert result.exit_code != 0
        assert "Sign in failed" in result.output
        assert CLIConfig.get_client_id() is None

    def test_logout(self, runner, logged_in):
        result = runner.invoke(infisical_cli.cli, ["logout"])
        assert result.exit_code == 0
        assert not CLIConfig.is_authenticated()

    def test_whoami_not_logged_in(self, runner, isolated_config):
        result = runner.invoke(infisical_cli.cli, ["whoami"])
        assert "Not logged in" in result.output

    def test_commands_require_login(self, runner, isolated_config):
        result = runner.invoke(infisical_cli.cli, ["list", "--project", "p", "--env", "dev"])
        assert result.exit_code != 0
        assert "Not authenticated" in result.output

    def test_use_sets_defaults(self, runner, isolated_config):
        result = runner.invoke(infisical_cli.cli, ["use", "--project", "p2", "--env", "prod", "--path", "/api"])
        assert result.exit_code == 0
        assert CLIConfig.get_project_id() == "p2"
        assert CLIConfig.get_environment() == "prod"
        assert CLIConfig.get_path() == "/api"


class TestSecretCommands:
    def test_list_json(self, runner, api):
        api.secrets.list.return_value = secrets_fixture()
        result = runner.invoke(infisical_cli.cli, ["list", "--output", "json", "--recursive"])

        assert result.exit_code == 0, result.output
        api.secrets.list.assert_called_once_with("proj-1", "dev", path="/", recursive=True)
        data = json.loads(result.output)
        assert [s["secretKey"] for s in data["secrets"]] == ["A", "B"]

    def test_list_yaml(self, runner, api):
        api.secrets.list.return_value = secrets_fixture()
        result = runner.invoke(infisical_cli.cli, ["list", "-o", "yaml"])
        data = yaml.safe_load(result.output)
        assert data["secrets"][0]["secretValue"] == "1"

    def test_list_requires_scope(self, runner, isolated_config):
        CLIConfig.set_client_id("cid")
        CLIConfig.set_client_secret("csecret")
        result = runner.invoke(infisical_cli.cli, ["list"])
        assert result.exit_code != 0
        assert "No project selected" in result.output

    def test_get_value(self, runner, api):
        api.secrets.get.return_value = Secret(secret_key="A", secret_value="1")
        result = runner.invoke(infisical_cli.cli, ["get", "A", "-o", "value", "--fallback"])
        assert result.exit_code == 0
        assert result.output == "1\n"
        api.secrets.get.assert_called_once_with("A", "proj-1", "dev", path="/", fallback_to_env=True)

    def test_get_fallback_marked(self, runner, api):
        api.secrets.get.return_value = Secret(secret_key="A", secret_value="local", is_fallback=True)
        result = runner.invoke(infisical_cli.cli, ["get", "A"])
        assert "from local environment" in result.output

    def test_get_not_found(self, runner, api):
        api.secrets.get.side_effect = SecretNotFoundError("A")
        result = runner.invoke(infisical_cli.cli, ["get", "A"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_set_updates_existing(self, runner, api):
        api.secrets.update.return_value = Secret(secret_key="A", secret_value="v", version=4)
        result = runner.invoke(infisical_cli.cli, ["set", "A", "--value", "v"])
        assert result.exit_code == 0, result.output
        assert "Updated secret: A (v4)" in result.output
        api.secrets.create.assert_not_called()

    def test_set_creates_missing(self, runner, api):
        api.secrets.update.side_effect = SecretNotFoundError("A")
        result = runner.invoke(infisical_cli.cli, ["set", "A", "--value", "v", "--comment", "note"])
        assert result.exit_code == 0, result.output
        api.secrets.create.assert_called_once_with("A", "v", "proj-1", "dev", path="/", secret_comment="note")

    def test_delete_force(self, runner, api):
        result = runner.invoke(infisical_cli.cli, ["delete", "A", "--force"])
        assert result.exit_code == 0
        api.secrets.delete.assert_called_once_with("A", "proj-1", "dev", path="/")

    def test_delete_declined(self, runner, api):
        result = runner.invoke(infisical_cli.cli, ["delete", "A"], input="n\n")
        assert result.exit_code == 0
        api.secrets.delete.assert_not_called()

    def test_export_env(self, runner, api):
        api.secrets.list.return_value = secrets_fixture()
        result = runner.invoke(infisical_cli.cli, ["export"])
        assert result.output == 'A="1"\nB="two \\"quoted\\"\\nlines"\n'

    def test_export_yaml_to_file(self, runner, api, tmp_path):
        api.secrets.list.return_value = secrets_fixture()
        out = tmp_path / "secrets.yaml"
        result = runner.invoke(infisical_cli.cli, ["export", "-f", "yaml", "-o", str(out)])
        assert result.exit_code == 0
        assert yaml.safe_load(out.read_text()) == {"A": "1", "B": 'two "quoted"\nlines'}


class TestKmsCommands:
    def test_keys_table(self, runner, api):
        api.kms.list.return_value = [KmsKey(id="key-1", name="app-key", project_id="proj-1",
                                            key_usage="encrypt-decrypt", encryption_algorithm="aes-256-gcm")]
        result = runner.invoke(infisical_cli.cli, ["kms", "keys"])
        assert result.exit_code == 0
        assert "app-key" in result.output

    def test_create_key(self, runner, api):
        api.kms.create.return_value = KmsKey(id="key-9", name="signer", project_id="proj-1")
        result = runner.invoke(infisical_cli.cli, ["kms", "create-key", "signer", "--usage", "sign-verify", "--algorithm", "RSA_4096"])
        assert result.exit_code == 0, result.output
        api.kms.create.assert_called_once_with("proj-1", "signer", description="", key_usage="sign-verify", encryption_algorithm="RSA_4096")

    def test_encrypt_encodes_plaintext(self, runner, api):
        api.kms.encrypt.return_value = "ciphertext"
        result = runner.invoke(infisical_cli.cli, ["kms", "encrypt", "key-1", "hello"])
        assert result.output == "ciphertext\n"
        api.kms.encrypt.assert_called_once_with("key-1", "aGVsbG8=")

    def test_decrypt_decodes_plaintext(self, runner, api):
        api.kms.decrypt.return_value = "aGVsbG8="
        result = runner.invoke(infisical_cli.cli, ["kms", "decrypt", "key-1", "ciphertext"])
        assert result.output == "hello\n"

    def test_verify_invalid(self, runner, api):
        api.kms.verify.return_value = VerifyResult(signature_valid=False, key_id="key-1", signing_algorithm="x")
        result = runner.invoke(infisical_cli.cli, ["kms", "verify", "key-1", "data", "sig"])
        assert result.exit_code != 0
        assert "NOT valid" in result.output
