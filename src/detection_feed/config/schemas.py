"""
Pydantic schemas for configuration validation.

Provides type-safe, declarative validation with clear error messages.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.constants import (
    DEFAULT_API_URL,
    DEFAULT_DISMISS_MS,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_RESOLVER_WORKERS,
    DEFAULT_REVIEW_CAPABILITIES,
    LOAD_RETRY_DELAY,
    MAX_LOAD_RETRIES,
    MAX_RECONNECT_ATTEMPTS,
    NO_WASTE_CATEGORY,
    NO_WASTE_DISMISS_MS,
    RECONNECT_DELAY,
    STREAM_PATH,
    STREAM_READ_TIMEOUT,
)


class StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


class ApiConfig(StrictModel):
    """Backend connection settings."""

    base_url: str = Field(default=DEFAULT_API_URL, description="Backend origin")
    timeout_seconds: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class StreamConfig(StrictModel):
    """Event stream subscription settings."""

    path: str = Field(default=STREAM_PATH)
    max_reconnect_attempts: int = Field(default=MAX_RECONNECT_ATTEMPTS, ge=0)
    reconnect_delay_seconds: float = Field(default=RECONNECT_DELAY, gt=0)
    read_timeout_seconds: float = Field(default=STREAM_READ_TIMEOUT, gt=0)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


class AttentionConfig(StrictModel):
    """Interrupting view policy."""

    capabilities_allowed: list[str] = Field(
        default_factory=lambda: list(DEFAULT_REVIEW_CAPABILITIES),
        description="Viewer capabilities that may review detections",
    )
    no_waste_category: str = Field(default=NO_WASTE_CATEGORY, min_length=1)
    no_waste_dismiss_ms: int = Field(default=NO_WASTE_DISMISS_MS, ge=0)
    default_dismiss_ms: int = Field(default=DEFAULT_DISMISS_MS, ge=0)


class ImagesConfig(StrictModel):
    """Image resolution and loading."""

    max_load_retries: int = Field(default=MAX_LOAD_RETRIES, ge=0)
    load_retry_delay_seconds: float = Field(default=LOAD_RETRY_DELAY, ge=0)
    max_workers: int = Field(default=DEFAULT_RESOLVER_WORKERS, ge=1)


class ViewerConfig(StrictModel):
    """Who is watching this feed."""

    capabilities: list[str] = Field(default_factory=list)


class Config(StrictModel):
    """Complete configuration schema."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    attention: AttentionConfig = Field(default_factory=AttentionConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    viewer: ViewerConfig = Field(default_factory=ViewerConfig)


def validate_config_pydantic(config: dict) -> tuple[Config | None, list[str]]:
    """
    Validate config using Pydantic schemas.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (parsed Config or None, list of error messages)
    """
    from pydantic import ValidationError

    try:
        parsed = Config.model_validate(config)
        return parsed, []
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"{loc}: {msg}")
        return None, errors
