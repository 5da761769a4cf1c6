"""
Configuration management for the Game Session Client.

This module handles loading, validation, and management of client
configuration from YAML files and environment variables.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

from .exceptions import ConfigurationError


_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


@dataclass
class ApiConfig:
    """Remote game API configuration."""
    base_url: str = "http://localhost:5555/api/"
    # Development convenience only; disables TLS certificate verification
    allow_self_signed_certificate: bool = False
    timeout: float = 10.0
    max_retries: int = 2
    retry_base_delay: float = 0.5


@dataclass
class StorageConfig:
    """Persisted credential storage configuration."""
    data_dir: str = "~/.game-session-client"
    credentials_file: str = "credentials.json"

    @property
    def credentials_path(self) -> Path:
        return Path(self.data_dir) / self.credentials_file


@dataclass
class Config:
    """Main client configuration."""
    api: ApiConfig = field(default_factory=ApiConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    structured_logs: bool = False

    def __post_init__(self):
        """Post-initialization to expand paths."""
        self.storage.data_dir = os.path.expanduser(self.storage.data_dir)
        if self.log_file:
            self.log_file = os.path.expanduser(self.log_file)

    def validate(self) -> None:
        """Validate configuration and raise ConfigurationError if invalid."""
        errors = []

        if not isinstance(self.api.base_url, str) or not self.api.base_url:
            errors.append("API base URL is required")
        elif not self._validate_base_url(self.api.base_url):
            errors.append(f"Invalid API base URL: {self.api.base_url}")

        if not isinstance(self.api.allow_self_signed_certificate, bool):
            errors.append("allow_self_signed_certificate must be a boolean")

        if not _is_number(self.api.timeout):
            errors.append("API timeout must be a number")
        elif self.api.timeout <= 0:
            errors.append("API timeout must be positive")

        if not isinstance(self.api.max_retries, int) or isinstance(self.api.max_retries, bool):
            errors.append("max_retries must be an integer")
        elif self.api.max_retries < 0:
            errors.append("max_retries must not be negative")
        elif self.api.max_retries > 10:
            errors.append("max_retries should not exceed 10")

        if not _is_number(self.api.retry_base_delay):
            errors.append("retry_base_delay must be a number")
        elif self.api.retry_base_delay < 0:
            errors.append("retry_base_delay must not be negative")

        if not isinstance(self.structured_logs, bool):
            errors.append("structured_logs must be a boolean")

        if not self.storage.data_dir:
            errors.append("Storage data_dir is required")
        if not self.storage.credentials_file:
            errors.append("Storage credentials_file is required")

        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of: {', '.join(sorted(valid_log_levels))}")

        if errors:
            raise ConfigurationError("Configuration validation failed", "; ".join(errors))

    def _validate_base_url(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            return False
        if not parsed.hostname:
            return False
        try:
            port = parsed.port
        except ValueError:
            return False
        return port is None or 1 <= port <= 65535


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def expand_env_vars(value: Any) -> Any:
    """Replace ``${VAR}`` references with environment values, recursively."""
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to configuration file. If None, uses default locations.

    Returns:
        Config: Loaded and validated configuration.

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid.
    """
    config = Config()

    if config_path is None:
        possible_paths = [
            "game-session-client.yaml",
            "~/.game-session-client/config.yaml",
            "/etc/game-session-client/config.yaml"
        ]
        for path in possible_paths:
            expanded_path = os.path.expanduser(path)
            if os.path.exists(expanded_path):
                config_path = expanded_path
                break

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                yaml_data = expand_env_vars(yaml.safe_load(f))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config file {config_path}", str(e))

        if yaml_data:
            if not isinstance(yaml_data, dict):
                raise ConfigurationError(
                    f"Failed to load config file {config_path}", "top level must be a mapping"
                )
            config = _merge_config_data(config, yaml_data)

    config = _load_env_overrides(config)
    config.validate()

    return config


def _merge_config_data(config: Config, data: Dict[str, Any]) -> Config:
    """Merge YAML data into configuration object."""

    api_data = data.get('api') or {}
    if 'base_url' in api_data:
        config.api.base_url = str(api_data['base_url'])
    if 'allow_self_signed_certificate' in api_data:
        config.api.allow_self_signed_certificate = _coerce_bool(
            api_data['allow_self_signed_certificate'], 'api.allow_self_signed_certificate'
        )
    if 'timeout' in api_data:
        config.api.timeout = _coerce_number(api_data['timeout'], float, 'api.timeout')
    if 'max_retries' in api_data:
        config.api.max_retries = _coerce_number(api_data['max_retries'], int, 'api.max_retries')
    if 'retry_base_delay' in api_data:
        config.api.retry_base_delay = _coerce_number(
            api_data['retry_base_delay'], float, 'api.retry_base_delay'
        )

    storage_data = data.get('storage') or {}
    if 'data_dir' in storage_data:
        config.storage.data_dir = os.path.expanduser(str(storage_data['data_dir']))
    if 'credentials_file' in storage_data:
        config.storage.credentials_file = str(storage_data['credentials_file'])

    if 'log_level' in data:
        config.log_level = str(data['log_level']).upper()
    if 'log_file' in data:
        config.log_file = os.path.expanduser(str(data['log_file'])) if data['log_file'] else None
    if 'structured_logs' in data:
        config.structured_logs = _coerce_bool(data['structured_logs'], 'structured_logs')

    return config


def _parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    return None


def _coerce_bool(value: Any, name: str) -> bool:
    """Accept a YAML bool or a boolean string (``${VAR}`` expansions are strings)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        parsed = _parse_bool(value)
        if parsed is not None:
            return parsed
    raise ConfigurationError(f"Invalid value for {name}", repr(value))


def _coerce_number(value: Any, cast, name: str):
    """Convert a YAML number or numeric string with ``cast``; bools are rejected."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid value for {name}", repr(value))
    if cast is int and isinstance(value, float):
        if not value.is_integer():
            raise ConfigurationError(f"Invalid value for {name}", repr(value))
        return int(value)
    try:
        return cast(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {name}", repr(value))


def _load_env_overrides(config: Config) -> Config:
    """Load configuration overrides from environment variables."""

    base_url = os.getenv('GAME_API_BASE_URL')
    if base_url:
        config.api.base_url = base_url

    timeout = os.getenv('GAME_API_TIMEOUT')
    if timeout:
        try:
            config.api.timeout = float(timeout)
        except ValueError:
            raise ConfigurationError("Invalid GAME_API_TIMEOUT", timeout)

    allow_self_signed = os.getenv('GAME_API_ALLOW_SELF_SIGNED')
    if allow_self_signed:
        parsed = _parse_bool(allow_self_signed)
        if parsed is None:
            raise ConfigurationError("Invalid GAME_API_ALLOW_SELF_SIGNED", allow_self_signed)
        config.api.allow_self_signed_certificate = parsed

    max_retries = os.getenv('GAME_API_MAX_RETRIES')
    if max_retries:
        try:
            config.api.max_retries = int(max_retries)
        except ValueError:
            raise ConfigurationError("Invalid GAME_API_MAX_RETRIES", max_retries)

    data_dir = os.getenv('GAME_SESSION_DATA_DIR')
    if data_dir:
        config.storage.data_dir = os.path.expanduser(data_dir)

    log_level = os.getenv('LOG_LEVEL')
    if log_level:
        config.log_level = log_level.upper()

    return config


def create_default_config_file(path: str) -> None:
    """Create a default configuration file at the specified path."""

    default_config = {
        'api': {
            'base_url': 'http://localhost:5555/api/',
            'allow_self_signed_certificate': False,
            'timeout': 10,
            'max_retries': 2,
            'retry_base_delay': 0.5
        },
        'storage': {
            'data_dir': '~/.game-session-client',
            'credentials_file': 'credentials.json'
        },
        'log_level': 'INFO',
        'log_file': None,
        'structured_logs': False
    }

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        f.write("# Game Session Client configuration\n")
        f.write("# Values may reference environment variables as ${VAR}.\n")
        yaml.safe_dump(default_config, f, default_flow_style=False, sort_keys=False)
