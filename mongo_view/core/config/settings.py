#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
query guard and the resilient cache. All configuration is centralized here
to ensure consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms

Author: System Architect
Date: 2025-12-05
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mongo_view.core.config.constants import (
    CACHE_COMPRESSION_THRESHOLD,
    CACHE_DEFAULT_TTL,
    CACHE_PROBE_TIMEOUT,
)
from mongo_view.core.exceptions import ConfigurationError


class RedisSettings(BaseSettings):
    """
    Remote cache store connection configuration.

    STAGE-0.1: Redis connection configuration

    An empty REDIS_URL means "no remote store": the cache starts directly on
    the in-process backend without probing.
    """

    REDIS_URL: str = Field(default="redis://localhost:6379/0", description="Redis connection string")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=2.0, description="Connect timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(default=2.0, description="Socket read/write timeout in seconds")
    REDIS_OPERATION_TIMEOUT: float = Field(default=2.0, description="Upper bound per cache command")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Resilient cache configuration.

    STAGE-C: Cache behaviour
    """

    ENABLE_CACHING: bool = Field(default=True, description="Master switch for the cache")
    CACHE_DEFAULT_TTL: int = Field(default=CACHE_DEFAULT_TTL, description="Default entry TTL (seconds)")
    CACHE_KEY_PREFIX: str = Field(default="mongo_view:ai:", description="Key namespace")
    CACHE_COMPRESSION_THRESHOLD: int = Field(
        default=CACHE_COMPRESSION_THRESHOLD, description="Serialized size above which compress applies"
    )
    CACHE_PROBE_TIMEOUT: float = Field(
        default=CACHE_PROBE_TIMEOUT, description="Liveness probe bound at startup (seconds)"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Mongo View Query Guard", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api", description="Prefix for every router")

    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from mongo_view.core.config.settings import get_settings

        settings = get_settings()
        url = settings.redis.REDIS_URL
        ttl = settings.cache.CACHE_DEFAULT_TTL
    """

    # Redis settings
    REDIS_URL: str = Field(default="redis://localhost:6379/0", description="Redis connection string")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=2.0, description="Connect timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(default=2.0, description="Socket read/write timeout in seconds")
    REDIS_OPERATION_TIMEOUT: float = Field(default=2.0, description="Upper bound per cache command")

    # Cache settings
    ENABLE_CACHING: bool = Field(default=True, description="Master switch for the cache")
    CACHE_DEFAULT_TTL: int = Field(default=CACHE_DEFAULT_TTL, description="Default entry TTL (seconds)")
    CACHE_KEY_PREFIX: str = Field(default="mongo_view:ai:", description="Key namespace")
    CACHE_COMPRESSION_THRESHOLD: int = Field(
        default=CACHE_COMPRESSION_THRESHOLD, description="Serialized size above which compress applies"
    )
    CACHE_PROBE_TIMEOUT: float = Field(
        default=CACHE_PROBE_TIMEOUT, description="Liveness probe bound at startup (seconds)"
    )

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Mongo View Query Guard", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api", description="Prefix for every router")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_DEFAULT_TTL")
    @classmethod
    def validate_default_ttl(cls, v):
        """Reject non-positive default TTLs."""
        if v <= 0:
            raise ValueError("CACHE_DEFAULT_TTL must be greater than 0")
        return v

    @field_validator("CACHE_COMPRESSION_THRESHOLD")
    @classmethod
    def validate_compression_threshold(cls, v):
        """Reject negative thresholds."""
        if v < 0:
            raise ValueError("CACHE_COMPRESSION_THRESHOLD must not be negative")
        return v

    # Nested configuration objects
    @property
    def redis(self) -> 'RedisSettings':
        """Get Redis settings."""
        return RedisSettings(
            REDIS_URL=self.REDIS_URL,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_OPERATION_TIMEOUT=self.REDIS_OPERATION_TIMEOUT,
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            ENABLE_CACHING=self.ENABLE_CACHING,
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_KEY_PREFIX=self.CACHE_KEY_PREFIX,
            CACHE_COMPRESSION_THRESHOLD=self.CACHE_COMPRESSION_THRESHOLD,
            CACHE_PROBE_TIMEOUT=self.CACHE_PROBE_TIMEOUT,
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT,
        )

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def _load_settings() -> Settings:
    """Build Settings from the environment. Invalid values raise ConfigurationError."""
    try:
        return Settings()
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ConfigurationError.from_exception(e, "Invalid configuration").with_context(
            fields=fields
        ) from e


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance

    Raises:
        ConfigurationError: When an environment value fails validation
    """
    global _settings

    if _settings is None:
        _settings = _load_settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = _load_settings()
    return _settings
