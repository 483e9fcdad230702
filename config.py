import os
import keyring
from keyring.errors import KeyringError
from pathlib import Path


class CLIConfig:
    """Configuration management for the infisical-api CLI"""

    SERVICE_NAME = 'infisical-api'
    CLIENT_SECRET_KEY = 'client_secret'

    DEFAULT_API_URL = 'https://app.infisical.com'
    DEFAULT_PATH = '/'

    @classmethod
    def config_file(cls) -> Path:
        """Location of the key=value config file"""
        env_path = os.environ.get('INFISICAL_API_CONFIG')
        if env_path:
            return Path(env_path)
        return Path.home() / '.infisical-api' / 'config'

    # ============ Credentials ============

    @classmethod
    def get_client_id(cls) -> str:
        """Get Universal Auth client id from environment or config"""
        env_id = os.environ.get('INFISICAL_CLIENT_ID')
        if env_id:
            return env_id
        return cls._get_config_value('client_id')

    @classmethod
    def set_client_id(cls, client_id: str):
        """Store Universal Auth client id in config file"""
        cls._set_config_value('client_id', client_id)

    @classmethod
    def get_client_secret(cls) -> str:
        """Get Universal Auth client secret from environment or keychain"""
        env_secret = os.environ.get('INFISICAL_CLIENT_SECRET')
        if env_secret:
            return env_secret
        try:
            return keyring.get_password(cls.SERVICE_NAME, cls.CLIENT_SECRET_KEY)
        except KeyringError:
            return None

    @classmethod
    def set_client_secret(cls, client_secret: str):
        """Store Universal Auth client secret in keychain"""
        try:
            keyring.set_password(cls.SERVICE_NAME, cls.CLIENT_SECRET_KEY, client_secret)
        except KeyringError as e:
            raise RuntimeError(f"Failed to store client secret in keychain: {str(e)}")

    @classmethod
    def delete_credentials(cls):
        """Delete stored client secret and client id"""
        try:
            keyring.delete_password(cls.SERVICE_NAME, cls.CLIENT_SECRET_KEY)
        except KeyringError:
            pass
        cls._remove_config_values('client_id')

    @classmethod
    def is_authenticated(cls) -> bool:
        """Check if credentials are available"""
        return bool(cls.get_client_id() and cls.get_client_secret())

    # ============ API and defaults ============

    @classmethod
    def get_api_url(cls) -> str:
        """Get API URL from environment or config file"""
        # Check environment variable first
        env_url = os.environ.get('INFISICAL_API_URL')
        if env_url:
            return env_url

        # Check config file
        value = cls._get_config_value('api_url')
        return value if value else cls.DEFAULT_API_URL

    @classmethod
    def set_api_url(cls, url: str):
        """Store API URL in config file"""
        cls._set_config_value('api_url', url)

    @classmethod
    def get_project_id(cls) -> str:
        """Get default project id"""
        return os.environ.get('INFISICAL_PROJECT_ID') or cls._get_config_value('project_id')

    @classmethod
    def set_project_id(cls, project_id: str):
        cls._set_config_value('project_id', project_id)

    @classmethod
    def get_environment(cls) -> str:
        """Get default environment slug"""
        return os.environ.get('INFISICAL_ENVIRONMENT') or cls._get_config_value('environment')

    @classmethod
    def set_environment(cls, environment: str):
        cls._set_config_value('environment', environment)

    @classmethod
    def get_path(cls) -> str:
        """Get default secret path"""
        return cls._get_config_value('path') or cls.DEFAULT_PATH

    @classmethod
    def set_path(cls, path: str):
        cls._set_config_value('path', path)

    # ============ Config file ============

    @classmethod
    def _get_config_value(cls, key: str) -> str:
        """Get a value from config file"""
        config_file = cls.config_file()
        if config_file.exists():
            with open(config_file, 'r') as f:
                for line in f:
                    if line.startswith(f'{key}='):
                        return line.split('=', 1)[1].strip()
        return None

    @classmethod
    def _set_config_value(cls, key: str, value: str):
        """Set a value in config file"""
        config_file = cls.config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        # Read existing config
        lines = []
        if config_file.exists():
            with open(config_file, 'r') as f:
                lines = [line for line in f if not line.startswith(f'{key}=')]

        # Add new value
        lines.append(f'{key}={value}\n')

        # Write config
        with open(config_file, 'w') as f:
            f.writelines(lines)

    @classmethod
    def _remove_config_values(cls, *keys: str):
        """Remove keys from config file"""
        config_file = cls.config_file()
        if not config_file.exists():
            return
        prefixes = tuple(f'{key}=' for key in keys)
        with open(config_file, 'r') as f:
            lines = [line for line in f if not line.startswith(prefixes)]
        with open(config_file, 'w') as f:
            f.writelines(lines)
