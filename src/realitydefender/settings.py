"""
SDK settings using Pydantic Settings.
All configuration can be overridden with REALITY_DEFENDER_* environment variables.
"""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.prd.realitydefender.xyz"
DEFAULT_POLLING_INTERVAL_MS = 2000
DEFAULT_TIMEOUT_MS = 60000
DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_MANIPULATED_LABEL = "MANIPULATED"


class Settings(BaseSettings):
    """SDK settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REALITY_DEFENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Authentication
    api_key: str | None = Field(default=None, description="Reality Defender API key")

    # Transport
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-request HTTP timeout in seconds"
    )

    # Polling
    polling_interval_ms: int = Field(
        default=DEFAULT_POLLING_INTERVAL_MS, description="Delay between polling attempts"
    )
    poll_timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS, description="Event-driven polling budget in milliseconds"
    )
    max_attempts: int = Field(
        default=DEFAULT_MAX_ATTEMPTS, description="Maximum attempts for bounded polling"
    )

    # Result formatting
    manipulated_label: str = Field(
        default=DEFAULT_MANIPULATED_LABEL,
        description="Label that replaces the upstream FAKE status",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    metrics_enabled: bool = Field(default=True, description="Record Prometheus metrics")

    @computed_field
    @property
    def normalized_base_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
