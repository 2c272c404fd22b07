from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Sliding window defaults
    rate_limit_window_ms: int = 60000  # Rolling window length
    rate_limit_max: int = 100  # Requests admitted per window
    rate_limit_key_prefix: str = "rl:"
    rate_limit_strict: bool = False  # Use the atomic server-side consume
    rate_limit_fail_closed: bool = (
        False  # If True, deny requests when the store is unavailable
    )

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0
    redis_connect_timeout: float = 5.0

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("rate_limit_window_ms")
    @classmethod
    def validate_window_positive(cls, v: int) -> int:
        """Validate the window length is positive."""
        if v < 1:
            raise ValueError("rate_limit_window_ms must be at least 1")
        return v

    @field_validator("rate_limit_max")
    @classmethod
    def validate_max_not_negative(cls, v: int) -> int:
        """Validate the quota is not negative."""
        if v < 0:
            raise ValueError("rate_limit_max must not be negative")
        return v

    @field_validator("redis_socket_timeout", "redis_connect_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
