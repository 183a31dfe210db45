"""
Configuration loading - YAML files, pointer files and environment overrides.
"""

import logging
import os
from pathlib import Path

import yaml

from ..utils.constants import ENV_API_URL, ENV_TOKEN
from .schemas import Config, validate_config_pydantic

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.yaml"


class ConfigValidationError(Exception):
    """Raised when config loading or validation fails."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


def find_config_file(config_path: str = DEFAULT_CONFIG_NAME) -> Path | None:
    """
    Find config file in standard locations.

    Search order:
    1. Specified path (if provided and not default)
    2. Current directory (config.yaml)
    3. ~/.config/detection-feed/config.yaml

    Args:
        config_path: User-specified config path

    Returns:
        Path to config file, or None if the default name is not found
        anywhere (defaults then apply)

    Raises:
        ConfigValidationError: If a non-default path was given and is missing
    """
    if config_path != DEFAULT_CONFIG_NAME:
        specified = Path(config_path)
        if specified.exists():
            return specified
        raise ConfigValidationError(f"Specified config file not found: {config_path}")

    search_paths = [
        Path.cwd() / DEFAULT_CONFIG_NAME,
        Path.home() / ".config" / "detection-feed" / DEFAULT_CONFIG_NAME,
    ]

    for path in search_paths:
        if path.exists():
            logger.info(f"Using config: {path}")
            return path

    logger.info("No config file found, using defaults")
    return None


def load_config_with_env(config: dict) -> dict:
    """
    Apply environment variable overrides to config.

    Args:
        config: Base configuration dictionary

    Returns:
        Configuration with environment variables applied
    """
    if ENV_API_URL in os.environ:
        logger.info(f"Using API URL from environment: {ENV_API_URL}")
        config.setdefault("api", {})
        config["api"]["base_url"] = os.environ[ENV_API_URL]

    return config


def get_token() -> str | None:
    """Bearer credential for the stream, read from the environment only."""
    return os.environ.get(ENV_TOKEN) or None


def read_config_file(config_file: Path) -> dict:
    """
    Read YAML, following a pointer file ``{use: other.yaml}`` once.

    Raises:
        ConfigValidationError: On unreadable or invalid YAML
    """
    try:
        with open(config_file, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        # Support pointer files: { use: "path/to/actual/config.yaml" }
        if isinstance(config, dict) and list(config.keys()) == ["use"]:
            pointer_path = Path(config_file).parent / config["use"]
            logger.info(f"Config pointer: {config_file} -> {config['use']}")
            with open(pointer_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}

    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Cannot read {config_file}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigValidationError(f"{config_file} must contain a mapping at the top level")
    return config


def load_config(config_path: str = DEFAULT_CONFIG_NAME) -> Config:
    """
    Load, override and validate configuration.

    Args:
        config_path: Path to config.yaml

    Returns:
        Validated Config

    Raises:
        ConfigValidationError: If config cannot be loaded or is invalid
    """
    config_file = find_config_file(config_path)
    raw = read_config_file(config_file) if config_file else {}

    raw = load_config_with_env(raw)

    parsed, errors = validate_config_pydantic(raw)
    if parsed is None:
        raise ConfigValidationError("Configuration is invalid", errors)

    logger.debug("Configuration validated")
    return parsed
