"""Configuration management for Activity Dashboard."""

import os
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow"
    )

    # Application
    app_name: str = "Activity Dashboard"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="development", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./activity.db",
        env="DATABASE_URL"
    )

    # Activity table naming, resolved once and handed to the store
    table_prefix: str = Field(default="", env="TABLE_PREFIX")
    activity_table: str = Field(default="user_activity", env="ACTIVITY_TABLE")

    # Day boundaries are evaluated in the site's local time zone
    site_timezone: str = Field(default="UTC", env="SITE_TIMEZONE")

    # Dashboard
    default_range_days: int = Field(default=30, ge=1, env="DEFAULT_RANGE_DAYS")

    # Only used by the generic-dialect increment fallback
    increment_max_retries: int = Field(default=3, ge=0, env="INCREMENT_MAX_RETRIES")

    # CORS Configuration
    cors_allowed_origins: Optional[str] = Field(
        default=None,
        env="CORS_ALLOWED_ORIGINS",
        description="Comma-separated list of allowed CORS origins. Defaults to ['*'] in dev.",
    )

    # Feature Flags
    enable_metrics: bool = Field(default=False, env="ENABLE_METRICS")

    @field_validator("site_timezone", mode="before")
    @classmethod
    def validate_site_timezone(cls, v):
        name = str(v or "UTC")
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {name}")
        return name

    @field_validator("activity_table", mode="before")
    @classmethod
    def validate_activity_table(cls, v):
        name = str(v)
        if not name.replace("_", "").isalnum():
            raise ValueError("activity_table may only contain letters, digits and underscores")
        return name

    def get_database_url(self) -> str:
        """Get the database URL with an async driver selected."""
        url = self.database_url
        if url.startswith("postgresql://"):
            return "postgresql+asyncpg://" + url[len("postgresql://"):]
        if url.startswith("sqlite://"):
            return "sqlite+aiosqlite://" + url[len("sqlite://"):]
        return url

    def get_activity_table_name(self) -> str:
        """Full activity table name, prefix included."""
        return f"{self.table_prefix}{self.activity_table}"

    def get_cors_origins(self) -> List[str]:
        """Parse CORS allowed origins from config."""
        if self.cors_allowed_origins:
            return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        # Default: allow all in development
        if self.environment != "production":
            return ["*"]
        return []


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
