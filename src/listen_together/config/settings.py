"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class ServerSettings(BaseModel):
    """HTTP and socket.io server configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)
    cors_origins: tuple[str, ...] = Field(
        default=("*",), validation_alias=AliasChoices("cors_origins", "allowed_origins")
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
        """Accept a comma-separated string or a list of origins."""
        if isinstance(v, str):
            return tuple(origin.strip() for origin in v.split(",") if origin.strip())
        return tuple(v)


class AuthSettings(BaseModel):
    """Bearer-token verification against the identity service."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    identity_url: str = Field(
        default="https://discord.com/api/users/@me",
        validation_alias=AliasChoices("identity_url", "userinfo_url"),
    )
    timeout_seconds: float = Field(default=5.0, gt=0.0, le=60.0)
    cache_ttl_seconds: int = Field(
        default=3600, ge=0, validation_alias=AliasChoices("cache_ttl_seconds", "cache_ttl")
    )


class PlaybackSettings(BaseModel):
    """Timeline reconciliation tolerances."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    track_ended_dedup_seconds: float = Field(default=5.0, ge=0.0)
    drift_tolerance_seconds: float = Field(default=1.0, gt=0.0)
    end_threshold_seconds: float = Field(default=0.5, ge=0.0)


class QueueSettings(BaseModel):
    """Queue admission and stream-resolution retry configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    per_user_limit: int = Field(default=20, ge=1, le=1000)
    resolve_max_attempts: int = Field(default=3, ge=1, le=10)
    resolve_base_delay_seconds: float = Field(default=2.0, ge=0.0)
    resolve_timeout_seconds: float = Field(default=15.0, gt=0.0)


class PresenceSettings(BaseModel):
    """Disconnect grace period before a participant is removed."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    grace_period_seconds: float = Field(default=300.0, ge=0.0)


class ResolverSettings(BaseModel):
    """yt-dlp stream resolver configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    ytdlp_format: str = "bestaudio/best"
    socket_timeout: int = Field(default=10, ge=1, le=120)
    cache_ttl_seconds: int = Field(default=1800, ge=0)


class Settings(BaseSettings):
    """Application settings container.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - SERVER__PORT, AUTH__TIMEOUT_SECONDS, QUEUE__PER_USER_LIMIT, etc. (nested)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    server: ServerSettings = Field(default_factory=ServerSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    presence: PresenceSettings = Field(default_factory=PresenceSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded from, in order of precedence:
    1. Environment variables
    2. .env file (if present)
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
