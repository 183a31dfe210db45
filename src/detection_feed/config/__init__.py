"""
Configuration loading and validation.

- load_config: find, read, override from environment and validate
- load_config_with_env: apply environment variable overrides
- get_token: stream credential from the environment

Pydantic schemas available for type-safe validation:
- Config: Complete configuration schema
- validate_config_pydantic: Validate and parse config to Pydantic model
"""

from .loader import (
    ConfigValidationError,
    find_config_file,
    get_token,
    load_config,
    load_config_with_env,
    read_config_file,
)
from .schemas import (
    ApiConfig,
    AttentionConfig,
    Config,
    ImagesConfig,
    StreamConfig,
    ViewerConfig,
    validate_config_pydantic,
)

__all__ = [
    "ApiConfig",
    "AttentionConfig",
    "Config",
    "ConfigValidationError",
    "ImagesConfig",
    "StreamConfig",
    "ViewerConfig",
    "find_config_file",
    "get_token",
    "load_config",
    "load_config_with_env",
    "read_config_file",
    "validate_config_pydantic",
]
