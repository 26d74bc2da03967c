"""Configuration management for the shortlink service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram - get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 - Import**::
    from shortlink.config import get_settings

**Step 2 - Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 - Override in tests**::
    settings = Settings(SHORT_CODE_LENGTH=7, SHORTEN_DEDUPLICATE=True)

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- The code alphabet must contain unique characters; the length must be positive.
- Retry bounds and timeouts belong to the deployment, not the core.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["DEFAULT_ALPHABET", "Settings", "get_settings"]

import string
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlink:shortlink@db:5432/shortlink"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_MAX_RETRY_COUNT: int = 3
    DB_RETRY_DELAY_SECONDS: float = 0.05
    DB_COMMAND_TIMEOUT_SECONDS: float = 5.0

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5
    CACHE_TTL_SECONDS: int = 3600
    CACHE_KEY_PREFIX: str = "shortlink"

    # Short code generation
    SHORT_CODE_LENGTH: int = 7
    SHORT_CODE_ALPHABET: str = DEFAULT_ALPHABET
    CODE_GENERATION_MAX_ATTEMPTS: int = 10
    SHORTEN_MAX_ATTEMPTS: int = 5

    # Return the existing link when the same long URL is submitted again
    SHORTEN_DEDUPLICATE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @field_validator("SHORT_CODE_ALPHABET")
    @classmethod
    def validate_alphabet(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Alphabet must contain at least two characters")
        if len(set(v)) != len(v):
            raise ValueError("Alphabet characters must be unique")
        return v

    @field_validator(
        "SHORT_CODE_LENGTH",
        "CODE_GENERATION_MAX_ATTEMPTS",
        "SHORTEN_MAX_ATTEMPTS",
        "CACHE_TTL_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be a positive integer")
        return v

    @property
    def base_url(self) -> str:
        return self.BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
