"""
Dot Trace - Backend Configuration

Application settings from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Dot Trace"
    DEBUG: bool = False
    API_PREFIX: str = "/api/v1"
    ENVIRONMENT: Literal["development", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Rate Limiting (requests per minute)
    RATE_LIMIT_GAME: int = 600

    # Sessions
    MAX_SESSIONS: int = 1000

    # Hints
    HINT_EXTRA_CELLS: int = 8

    # Time pressure
    BASE_TIME_LIMIT: int = 300  # 5 minutes for stage 1
    TIME_PRESSURE_SCALING: float = 0.85  # -15% per stage
    MIN_TIME_LIMIT: int = 30

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a logging level name, got: {value}")
        return level

    @field_validator("TIME_PRESSURE_SCALING")
    @classmethod
    def validate_scaling(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError(f"TIME_PRESSURE_SCALING must be in (0, 1], got: {value}")
        return value

    @field_validator("MAX_SESSIONS", "BASE_TIME_LIMIT", "MIN_TIME_LIMIT", "RATE_LIMIT_GAME")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"must be positive, got: {value}")
        return value

    @field_validator("HINT_EXTRA_CELLS")
    @classmethod
    def validate_hint_extra(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"HINT_EXTRA_CELLS must not be negative, got: {value}")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parses CORS_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def rate_limit_game(self) -> str:
        return f"{self.RATE_LIMIT_GAME}/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns the settings (cached)."""
    return Settings()


settings = get_settings()
