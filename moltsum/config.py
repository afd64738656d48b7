"""
Configuration management for moltsum.
"""
import os
import copy
import json
import logging
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from dotenv import load_dotenv

from moltsum.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    "data": {
        "directory": "data",
        "latest_name": "latest.json",
        "archive_dir": "archive"
    },
    "feeds": {
        # "rising" is the name older snapshots used for the third bucket
        "buckets": ["hot", "top", "new", "rising"]
    },
    "generation": {
        "auth_token": None,
        "base_url": "https://ai.ppbox.top",
        "model": "claude-sonnet-4-5-20250929",
        "max_tokens": 1024,
        "temperature": 0.7,
        "max_retries": 3,
        "retry_base_delay": 2.0,
        "timeout_seconds": 60
    },
    "summary": {
        "batch_size": 3,
        "batch_delay_ms": 1000,
        "min_content_length": 50
    }
}

# Environment variables recognised by name, mapped to config keys
NAMED_ENV_VARS = {
    "ANTHROPIC_AUTH_TOKEN": "generation.auth_token",
    "ANTHROPIC_BASE_URL": "generation.base_url",
    "SUMMARY_MODEL": "generation.model",
    "SUMMARY_MAX_RETRIES": "generation.max_retries",
    "SUMMARY_BATCH_SIZE": "summary.batch_size",
    "SUMMARY_BATCH_DELAY_MS": "summary.batch_delay_ms",
    "SUMMARY_MIN_CONTENT_LENGTH": "summary.min_content_length",
    "MOLTSUM_DATA_DIR": "data.directory",
}

# Named variables taken verbatim rather than parsed as JSON
STRING_KEYS = {
    "generation.auth_token",
    "generation.base_url",
    "generation.model",
    "data.directory",
}

ENV_PREFIX = "MOLTSUM_"


def _parse_env_value(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class Config:
    """
    Configuration manager for moltsum.

    Values are layered: built-in defaults, then an optional YAML/JSON file,
    then ``MOLTSUM_<SECTION>__<KEY>`` overrides, then the named environment
    variables in ``NAMED_ENV_VARS``.
    """
    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to the configuration file
            environ: Environment to read overrides from (defaults to os.environ)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file or use defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            path = Path(self.config_path)
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    if path.suffix.lower() in ['.yaml', '.yml']:
                        user_config = yaml.safe_load(f) or {}
                    elif path.suffix.lower() == '.json':
                        user_config = json.load(f)
                    else:
                        raise ConfigurationError(f"Unsupported config file format: {path.suffix}")
            except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Error loading config from {path}: {e}") from e

            if not isinstance(user_config, dict):
                raise ConfigurationError(f"Config file {path} must contain a mapping")
            self._update_dict(config, user_config)
            logger.debug(f"Loaded config from {path}")

        self._override_from_env(config)
        self._override_from_named_env(config)

        return config

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _override_from_env(self, config: Dict, prefix: str = ENV_PREFIX) -> None:
        """
        Override configuration with prefixed environment variables.

        ``MOLTSUM_SUMMARY__BATCH_SIZE=5`` sets ``summary.batch_size``. Sections
        are separated by a double underscore so keys may contain single ones.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in self.environ.items():
            if not key.startswith(prefix) or '__' not in key:
                continue

            parts = key[len(prefix):].lower().split('__')

            current = config
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            current[parts[-1]] = _parse_env_value(value)

    def _override_from_named_env(self, config: Dict) -> None:
        for env_name, key in NAMED_ENV_VARS.items():
            value = self.environ.get(env_name)
            if value is None or value == '':
                continue
            section, name = key.split('.')
            if key in STRING_KEYS:
                config[section][name] = value
            else:
                config[section][name] = _parse_env_value(value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'summary.batch_size')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value, creating intermediate sections."""
        parts = key.split('.')
        current = self.config
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value


@dataclass(frozen=True)
class Settings:
    """
    Validated settings for one pipeline run.
    """
    auth_token: Optional[str]
    base_url: str
    model: str
    max_tokens: int
    temperature: float
    max_retries: int
    retry_base_delay: float
    timeout_seconds: float
    batch_size: int
    batch_delay: float
    min_content_length: int
    data_dir: Path
    latest_name: str
    archive_dir: str
    buckets: Tuple[str, ...]


def _as_int(config: Config, key: str, minimum: int) -> int:
    value = config.get(key)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if number < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {number}")
    return number


def _as_float(config: Config, key: str, minimum: float) -> float:
    value = config.get(key)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    if number < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {number}")
    return number


def load_settings(config: Config, require_token: bool = True) -> Settings:
    """
    Validate a Config and turn it into Settings.

    Args:
        config: Loaded configuration
        require_token: Whether a missing auth token is an error

    Returns:
        Settings for the run

    Raises:
        ConfigurationError: If the auth token is missing or a knob is invalid
    """
    token = config.get('generation.auth_token')
    if require_token and not token:
        raise ConfigurationError("Missing ANTHROPIC_AUTH_TOKEN environment variable")

    buckets = config.get('feeds.buckets')
    if isinstance(buckets, str):
        buckets = [b.strip() for b in buckets.split(',') if b.strip()]
    if not buckets:
        raise ConfigurationError("feeds.buckets must name at least one bucket")

    return Settings(
        auth_token=token,
        base_url=str(config.get('generation.base_url')).rstrip('/'),
        model=str(config.get('generation.model')),
        max_tokens=_as_int(config, 'generation.max_tokens', 1),
        temperature=_as_float(config, 'generation.temperature', 0.0),
        max_retries=_as_int(config, 'generation.max_retries', 1),
        retry_base_delay=_as_float(config, 'generation.retry_base_delay', 0.0),
        timeout_seconds=_as_float(config, 'generation.timeout_seconds', 0.0),
        batch_size=_as_int(config, 'summary.batch_size', 1),
        batch_delay=_as_float(config, 'summary.batch_delay_ms', 0.0) / 1000.0,
        min_content_length=_as_int(config, 'summary.min_content_length', 0),
        data_dir=Path(config.get('data.directory')),
        latest_name=str(config.get('data.latest_name')),
        archive_dir=str(config.get('data.archive_dir')),
        buckets=tuple(buckets),
    )


def get_config(config_path: Optional[str] = None) -> Config:
    """
    Load environment variables from .env and build a Config.

    Args:
        config_path: Path to the configuration file (falls back to MOLTSUM_CONFIG_PATH)

    Returns:
        Config instance
    """
    load_dotenv()
    return Config(config_path or os.getenv('MOLTSUM_CONFIG_PATH'))
