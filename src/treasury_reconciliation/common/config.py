'''
Holds all the configurations
'''
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Database URL (only needed by the SQL ledger provider)
    DATABASE_URL_PROD: Optional[str] = None
    DATABASE_URL_TEST: Optional[str] = None
    @property
    def database_url(self) -> Optional[str]:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # Default recurring due schedule, used when a tenant has none stored
    RECURRING_DUE_AMOUNT: Decimal = Decimal("3000")
    FIRST_BILLABLE_MONTH: int = 3   # March
    LAST_BILLABLE_MONTH: int = 12   # December
    DUE_CUTOFF_POLICY: str = "current_period"

    # Payment descriptions containing one of these count as recurring-due payments
    DUE_MARKER_TOKENS: list[str] = ["cuota"]

    # Roster mode fan-out. 1 keeps everything on the calling thread.
    ROSTER_MAX_WORKERS: int = 1

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# Create a single, importable instance of the settings
settings = Settings()
