"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Residence Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/residence_ledger"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT", "console" if DEBUG else "json"
    )

    # Ledger
    CURRENCY: str = os.getenv("CURRENCY", "USD")
    BALANCE_TOLERANCE: Decimal = Decimal(os.getenv("BALANCE_TOLERANCE", "0.01"))

    # Payment allocation: component order within a month, and what
    # happens to money left over once every known obligation is paid.
    ALLOCATION_ORDER: tuple[str, ...] = tuple(
        part.strip()
        for part in os.getenv(
            "ALLOCATION_ORDER", "rent,admin_fee,deposit"
        ).split(",")
        if part.strip()
    )
    OVERPAYMENT_POLICY: str = os.getenv("OVERPAYMENT_POLICY", "credit_balance")

    # Day of the month on which a month's charges fall due
    RENT_DUE_DAY: int = int(os.getenv("RENT_DUE_DAY", "1"))


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls. This avoids reading
    environment variables repeatedly.
    """
    return Settings()
