"""
Shared configuration management for the query cache.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryCacheConfig(BaseSettings):
    """Settings read from ``QUERY_CACHE_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="QUERY_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache
    default_ttl_seconds: float = Field(default=300.0, gt=0)
    enable_metrics: bool = Field(default=False)

    # Upstream API used by the bundled fetch functions
    api_base_url: str = Field(default="http://localhost:8080")
    http_timeout_seconds: float = Field(default=10.0, gt=0)


def get_config(**overrides) -> QueryCacheConfig:
    """Build configuration, letting explicit keyword overrides win over the environment."""
    return QueryCacheConfig(**overrides)
