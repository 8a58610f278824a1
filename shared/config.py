"""
Shared configuration management for the tagged cache layer.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Settings for the tagged cache, read from ``TAGCACHE_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="TAGCACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_file: Optional[str] = Field(default=None)

    # Store
    redis_url: str = Field(default="redis://localhost:6379/0")
    socket_timeout: float = Field(default=5.0, gt=0)
    store_failure_threshold: int = Field(default=5, ge=1)
    store_recovery_timeout: float = Field(default=30.0, gt=0)

    # Lock and wait protocol
    wait_time_ms: int = Field(default=3000, ge=0)
    wait_interval_ms: int = Field(default=200, gt=0)
    lock_ttl_seconds: int = Field(default=5, ge=1)

    # Reserved key namespaces
    lock_prefix: str = Field(default="l_", min_length=1)
    tag_prefix: str = Field(default="t_", min_length=1)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if value.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value.lower()


@lru_cache(maxsize=1)
def get_settings() -> CacheSettings:
    """Get the process-wide settings instance."""
    return CacheSettings()
