"""Library configuration using Pydantic Settings.

Environment variables (prefixed with ``FLOWDAG_``) are loaded from .env files
and the system environment.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """flowdag settings.

    All settings can be overridden via environment variables.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWDAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "flowdag"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: str | None = None  # No file handler unless set
    LOG_JSON_FORMAT: bool = True  # Use JSON format for file logs

    # Validation report limits (whole nesting tree)
    VALIDATION_MAX_VERTICES: int = 10000
    VALIDATION_MAX_DEPTH: int = 32

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return "INFO"

    @field_validator("VALIDATION_MAX_VERTICES", "VALIDATION_MAX_DEPTH")
    @classmethod
    def positive_limit(cls, v: int) -> int:
        """Limits must be at least 1."""
        if v < 1:
            raise ValueError("limit must be >= 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings.

    Settings are cached after first load for performance.
    """
    return Settings()


# Global settings instance
settings = get_settings()
