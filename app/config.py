"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This pattern keeps secrets out of source code — the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from app.config import settings
    print(settings.ACCOUNTS_FILE)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Account Record Service.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Account Record Service"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # "standard" (human-readable lines) or "json" (one JSON object per line)
    LOG_FORMAT: str = "standard"

    # --- Database ---
    # SQLite for local use; swap to a PostgreSQL URL (asyncpg driver) for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/accounts.db"

    # --- Authentication ---
    # REQUIRED: no default, the operator must set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Startup import ---
    # Pipe-delimited account file loaded once into an empty database
    ACCOUNTS_FILE: str = "data/accounts.txt"
    IMPORT_BATCH_SIZE: int = 10
    IMPORT_ON_STARTUP: bool = True

    # --- Admin bootstrap ---
    # Seeded once when no user with ADMIN_USERNAME exists. Change the password
    # in any shared environment.
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@admin.com"
    ADMIN_PASSWORD: str = "password"

    # --- Paging ---
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 2000

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
