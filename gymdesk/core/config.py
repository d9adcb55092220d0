"""
gymdesk/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, member ID format, scanner timings)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="gymdesk",
        description="MongoDB database name"
    )

    # Member identifiers
    USER_ID_PREFIX: str = Field(
        default="BCF",
        description="Prefix of generated member IDs (PREFIX-NNNN)"
    )
    USER_ID_START: int = Field(
        default=1000,
        description="Offset added to the ID counter; first member gets START + 1"
    )
    MAX_ID_ALLOCATION_RETRIES: int = Field(
        default=3,
        description="Attempts to allocate a fresh member ID on a duplicate key"
    )

    # Subscriptions
    EXPIRING_SOON_DAYS: int = Field(
        default=3,
        description="Default threshold (days) for the expiring-soon flag"
    )
    MEMBER_LIST_EXPIRING_DAYS: int = Field(
        default=7,
        description="Expiring-soon threshold used by the member list"
    )

    # QR scanner (keyboard wedge)
    SCAN_DEBOUNCE_MS: int = Field(
        default=500,
        description="Minimum gap between two accepted scans"
    )
    SCAN_IDLE_CLEAR_MS: int = Field(
        default=100,
        description="Idle time after a keystroke before the buffer is discarded"
    )
    SCAN_DISPLAY_MS: int = Field(
        default=2000,
        description="How long a scan result stays on screen before reset"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("USER_ID_PREFIX")
    def validate_prefix(cls, v):
        """Prefix must be non-empty and must not contain the separator."""
        v = v.strip().upper()
        if not v or "-" in v:
            raise ValueError("USER_ID_PREFIX must be non-empty and contain no '-'")
        return v

    @validator("SCAN_DEBOUNCE_MS", "SCAN_IDLE_CLEAR_MS", "SCAN_DISPLAY_MS")
    def validate_timings(cls, v):
        if v < 0:
            raise ValueError("Scanner timings must be non-negative")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    if settings.EXPIRING_SOON_DAYS < 1 or settings.MEMBER_LIST_EXPIRING_DAYS < 1:
        errors.append("Expiring-soon thresholds must be at least 1 day")

    if settings.MAX_ID_ALLOCATION_RETRIES < 1:
        errors.append("MAX_ID_ALLOCATION_RETRIES must be at least 1")

    if settings.is_production and settings.DEBUG:
        errors.append("DEBUG must be disabled in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
