"""
Settings for the bullion ledger service.

Values come from the environment, optionally seeded from a .env
file. Reversal and credit policy are configurable per deployment.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_REVERSAL_WINDOW_HOURS = 48.0


def _positive_float(raw: str | None, default: float) -> float:
    """Parse a positive number, falling back to the default."""
    try:
        value = float(raw) if raw is not None else default
    except ValueError:
        return default
    if value != value or value in (float("inf"), float("-inf")) or value <= 0:
        return default
    return value


class Settings:
    """Environment-backed settings; read once per process."""

    # Application
    APP_NAME: str = "Bullion Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/bullion_ledger"
    )

    # auto = inspect the database bind, on/off = force
    ATOMIC_GROUPS: str = os.getenv("ATOMIC_GROUPS", "auto").lower()

    # Reversal policy
    REVERSAL_WINDOW_HOURS: float = _positive_float(
        os.getenv("REVERSAL_WINDOW_HOURS"), DEFAULT_REVERSAL_WINDOW_HOURS
    )

    # Credit vouchers fall due this many days after creation
    CREDIT_DUE_DAYS: int = int(os.getenv("CREDIT_DUE_DAYS", "5"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")


@lru_cache()
def get_settings() -> Settings:
    """
    The process-wide Settings instance.

    Tests patch attributes on it directly, so every caller must
    go through this function rather than build its own.
    """
    return Settings()
