"""
LexGate - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "LexGate"
    app_env: str = "development"
    debug: bool = False
    api_version: str = "v1"

    # ===========================================
    # DATABASE CONFIGURATION
    # ===========================================
    database_url_async: str  # Required - must be set in .env

    # ===========================================
    # JWT AUTHENTICATION
    # Tokens are minted by the identity provider; LexGate only verifies them.
    # ===========================================
    jwt_secret_key: str  # Required - must be set in .env
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # ===========================================
    # REDIS CONFIGURATION (Celery broker)
    # ===========================================
    redis_url: str = "redis://localhost:6379/0"

    # ===========================================
    # APPROVAL ANOMALY DETECTION
    # ===========================================
    quick_approval_threshold_seconds: int = 5
    quick_approval_min_repetitions: int = 3
    bulk_approval_threshold_count: int = 10
    bulk_approval_window_minutes: int = 1
    anomaly_lookback_hours: int = 24

    # ===========================================
    # DRAFT FLAG POLICY
    # Phrases a flag message may never contain (flags name the next action,
    # never a legal outcome). Comma separated, case-insensitive.
    # ===========================================
    flag_conclusion_blocklist: str = (
        "will be denied,will be granted,will be dismissed,will be approved,"
        "discharge denied,discharge granted,not eligible for discharge,"
        "bankruptcy is appropriate,is guaranteed,"
        "免責不許可,免責される,免責されない,破産が適切,破産が相当"
    )

    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def flag_conclusion_phrases(self) -> List[str]:
        """Parse the flag blocklist into lower-cased phrases."""
        return [
            phrase.strip().lower()
            for phrase in self.flag_conclusion_blocklist.split(",")
            if phrase.strip()
        ]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Export settings instance
settings = get_settings()
