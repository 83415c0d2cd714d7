"""Application configuration using Pydantic Settings."""

from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    PROJECT_NAME: str = "Slot Manager API"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # Database Configuration
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # Security Configuration
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # CORS Configuration
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        elif isinstance(v, str):
            import json

            return json.loads(v)
        raise ValueError(v)

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # OpenTelemetry Configuration
    OTEL_SERVICE_NAME: str = "slotmanager-api"
    OTEL_TRACE_SAMPLE_RATE: float = 1.0  # 1.0 = 100% sampling
    OTEL_EXPORT_CONSOLE: bool = False

    # Slot allocation policy
    SLOT_LIMIT: int = 4
    SLOT_WINDOW_DAYS: int = 15
    SLOT_TIMEZONE: str = "Asia/Shanghai"

    @field_validator("SLOT_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("SLOT_LIMIT", "SLOT_WINDOW_DAYS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Slot policy values must be positive."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    # Seeded administrator account
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
