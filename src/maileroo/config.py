"""Configuration management for the Maileroo client."""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

ENV_PREFIX = "MAILEROO_"


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    file_path: Optional[str] = Field(None, description="Path to log file")
    max_file_size: int = Field(10 * 1024 * 1024, description="Maximum log file size in bytes")
    backup_count: int = Field(5, description="Number of backup log files to keep")
    console_output: bool = Field(True, description="Enable console logging")

    model_config = ConfigDict(env_prefix=f"{ENV_PREFIX}LOG_", case_sensitive=False)


class Settings(BaseSettings):
    """Client settings."""

    api_key: Optional[str] = Field(None, description="Maileroo sending key")
    timeout: float = Field(30, description="Request timeout in seconds")
    base_url: str = Field(
        "https://smtp.maileroo.com/api/v2/", description="API base URL"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(env_prefix=ENV_PREFIX, case_sensitive=False)

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be a positive number")
        return value


def _load_env_file(env_file: Path) -> Dict[str, Any]:
    """Load a .env file and return its Maileroo settings."""
    load_dotenv(env_file)
    return _settings_from_environ()


def _settings_from_environ() -> Dict[str, Any]:
    """Collect ``MAILEROO_*`` variables as settings keys."""
    fields = set(Settings.model_fields) - {"logging"}
    values = {}
    for key, value in os.environ.items():
        if not key.upper().startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in fields:
            values[name] = value
    return values


def _load_config_file(config_file: Path) -> Dict[str, Any]:
    """Load configuration from a YAML or JSON file."""
    if not config_file.exists():
        return {}

    with open(config_file, "r") as f:
        if config_file.suffix.lower() in [".yaml", ".yml"]:
            return yaml.safe_load(f) or {}
        elif config_file.suffix.lower() == ".json":
            return json.load(f)
        else:
            raise ConfigurationError(f"Unsupported config file format: {config_file.suffix}")


def _merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge configuration dictionaries, later ones winning."""
    result: Dict[str, Any] = {}
    for config in configs:
        if config:
            for key, value in config.items():
                if isinstance(value, dict) and key in result and isinstance(result[key], dict):
                    result[key] = _merge_configs(result[key], value)
                else:
                    result[key] = value
    return result


@lru_cache()
def load_settings(
    config_dir: Optional[Path] = None,
    env_file: Optional[str] = None,
    config_file: Optional[str] = None,
) -> Settings:
    """
    Load client settings from multiple sources.

    Sources are loaded in order of precedence (later sources override earlier):
    1. Default values
    2. Configuration file (YAML/JSON)
    3. Environment file (.env) and environment variables

    Args:
        config_dir: Directory containing config files (default: current directory)
        env_file: Path to environment file (default: .env in config_dir)
        config_file: Path to configuration file (default: maileroo.yaml in config_dir)

    Returns:
        Loaded settings instance

    Raises:
        ConfigurationError: If a source can't be read or the result is invalid
    """
    if config_dir is None:
        config_dir = Path.cwd()
    config_dir = Path(config_dir)

    env_path = Path(env_file) if env_file else config_dir / ".env"
    config_path = Path(config_file) if config_file else config_dir / "maileroo.yaml"

    try:
        file_config = _load_config_file(config_path)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}", cause=e) from e

    env_config = _load_env_file(env_path) if env_path.exists() else _settings_from_environ()

    merged_config = _merge_configs(file_config, env_config)

    try:
        return Settings(**merged_config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}", cause=e) from e
