"""Configuration management using pydantic-settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.backpack.exchange/"
DEFAULT_WINDOW_MS = 5_000
DEFAULT_USER_AGENT = "Backpack Python API Client"

RETRY_POLICIES = ("blind", "classified")


class Settings(BaseSettings):
    """Client settings."""

    model_config = SettingsConfigDict(
        env_prefix="BPXC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API endpoint
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Backpack API base URL")

    # Signing
    window_ms: int = Field(
        default=DEFAULT_WINDOW_MS,
        description="Validity window in milliseconds for signed requests",
    )

    # HTTP client settings
    http_timeout: float = Field(
        default=5.0, description="Timeout for a single HTTP attempt in seconds"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header value")

    # Retry settings
    max_retries: int = Field(default=10, description="Retries after the initial attempt")
    backoff_exponent: float = Field(
        default=1.5, description="Delay before retry k is k ** backoff_exponent seconds"
    )
    retry_policy: str = Field(
        default="blind",
        description="'blind' retries every failure, 'classified' retries transient failures only",
    )

    log_level: str = Field(default="INFO", description="Default logging level")

    @field_validator("window_ms", mode="after")
    @classmethod
    def window_positive(cls, v: int) -> int:
        """Reject non-positive windows."""
        if v <= 0:
            raise ValueError("window_ms must be positive")
        return v

    @field_validator("http_timeout", mode="after")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        """Reject non-positive timeouts."""
        if v <= 0:
            raise ValueError("http_timeout must be positive")
        return v

    @field_validator("max_retries", mode="after")
    @classmethod
    def retries_non_negative(cls, v: int) -> int:
        """Reject negative retry counts."""
        if v < 0:
            raise ValueError("max_retries must not be negative")
        return v

    @field_validator("retry_policy", mode="after")
    @classmethod
    def known_policy(cls, v: str) -> str:
        """Normalize and check the retry policy name."""
        policy = v.strip().lower()
        if policy not in RETRY_POLICIES:
            raise ValueError(f"retry_policy must be one of {', '.join(RETRY_POLICIES)}")
        return policy


# Global settings instance (lazy loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings
    _settings = None
