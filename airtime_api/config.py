"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Provider credentials in particular must never live in source
code — the .env file is gitignored.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Note that business knobs (deposit bonus, airtime discount, ...) are NOT here.
Those change at run time and live in the system_settings table; see
airtime_api.services.settings_service.

Usage:
    from airtime_api.config import settings
    print(settings.PAYNECTA_BASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Airtime Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Airtime Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local development; use a postgresql+asyncpg URL in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/airtime.db"

    # --- Authentication ---
    # REQUIRED: No default, forces the developer to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- PayNecta (M-Pesa STK push collection) ---
    PAYNECTA_BASE_URL: str = "https://paynecta.co.ke/api/v1"
    PAYNECTA_API_KEY: str = ""
    PAYNECTA_EMAIL: str = ""

    # --- Statum (airtime disbursement) ---
    STATUM_BASE_URL: str = "https://api.statum.co.ke/api/v2"
    STATUM_CONSUMER_KEY: str = ""
    STATUM_CONSUMER_SECRET: str = ""

    # Public base URL the providers post their callbacks to
    CALLBACK_BASE_URL: str = "http://localhost:8000"

    # Applies to every outbound provider call; a timeout is treated as
    # "provider unavailable"
    PROVIDER_TIMEOUT_SECONDS: float = 30.0

    # --- Airtime-to-cash ---
    # The line customers send airtime to when converting it to cash
    CONVERSION_RECEIVE_NUMBER: str = "0718369524"


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
