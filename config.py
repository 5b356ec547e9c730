"""Configuration management for the dashboard backend.

Loads settings from .env file with Pydantic validation. Supports dual-database mode
(SQLite for tests and local development, Supabase for production).
"""
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates and provides defaults for all configuration values.
    Use DATABASE_URL for SQLite (tests), or SUPABASE_URL/KEY for production.
    """
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        case_sensitive=True,
        extra="ignore",
    )

    # Database (SQLite for tests, Supabase for production)
    DATABASE_URL: Optional[str] = None  # SQLite: sqlite:///./dashboard.db

    # Supabase (optional if using SQLite)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""  # service_role key for backend

    # CORS - strict allowlist
    FRONTEND_URL: str = "https://localhost:5173"
    PRODUCTION_URL: str = ""

    # Test mode accepts dev-token-<user_id> credentials
    TEST_MODE: bool = False

    # slowapi limits on public endpoints
    RATE_LIMIT_ENABLED: bool = True

    # Session tokens
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Dashboard quick stats until notifications/tasks have real sources
    PLACEHOLDER_NOTIFICATIONS: int = 5
    PLACEHOLDER_TASKS: int = 8

    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings(env_file: str = ".env") -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing .env on every import.
    Allows env_file override for testing with isolated configurations.
    """
    return Settings(_env_file=env_file)


def load_settings_from_env() -> Settings:
    """Build a fresh, uncached settings instance.

    Startup checks and the auth gate use this so environment patches made
    after import (tests) are observed.
    """
    return Settings(_env_file=os.getenv("ENV_FILE", ".env"))


# Default settings instance (respects ENV_FILE when set)
settings = get_settings(os.getenv("ENV_FILE", ".env"))
