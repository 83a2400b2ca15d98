"""
Shared configuration management for the cached serializer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Settings read from ``CACHED_SERIALIZER_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CACHED_SERIALIZER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="info")

    # Cache keys
    namespace: str = Field(default="cached_serializer", min_length=1)
    identity_attribute: str = Field(default="id", min_length=1)

    # Invalidation
    change_feed_attribute: str = Field(default="change_feed", min_length=1)

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout: float = Field(default=5.0, gt=0)


def get_settings(**overrides) -> CacheSettings:
    """Get settings, with explicit keyword overrides taking precedence over the environment."""
    return CacheSettings(**overrides)
