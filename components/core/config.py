from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings


class ReservationAvailabilityRule(str, Enum):
    """Which stock state permits a new reservation request."""

    # A stock row for the title exists, whatever its availability
    STOCK_EXISTS = "STOCK_EXISTS"
    # At least one free copy must exist (reference behavior)
    REQUIRE_AVAILABLE_COPY = "REQUIRE_AVAILABLE_COPY"
    # Reserve only when every copy is out or earmarked
    REQUIRE_NO_AVAILABLE_COPY = "REQUIRE_NO_AVAILABLE_COPY"


class LendingPolicy(BaseModel):
    """Borrowing policy numbers handed to the services."""

    model_config = ConfigDict(frozen=True)

    max_active_loans: int = 5
    loan_duration_days: int = 14
    reservation_expiry_hours: int = 48
    late_fee_per_day: Decimal = Decimal("0.50")
    reminder_window_hours: int = 24
    reservation_availability_rule: ReservationAvailabilityRule = ReservationAvailabilityRule.STOCK_EXISTS


class Settings(BaseSettings):
    # Database settings
    DB_URL: Optional[str] = None  # Optional full DB URL
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_NAME: str = "library"
    DB_ISOLATION_LEVEL: Optional[str] = "SERIALIZABLE"
    DB_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Lending policy
    MAX_ACTIVE_LOANS: int = 5
    LOAN_DURATION_DAYS: int = 14
    RESERVATION_EXPIRY_HOURS: int = 48
    LATE_FEE_PER_DAY: Decimal = Decimal("0.50")
    REMINDER_WINDOW_HOURS: int = 24
    RESERVATION_AVAILABILITY_RULE: ReservationAvailabilityRule = ReservationAvailabilityRule.STOCK_EXISTS

    # Background workers (seconds)
    RESERVATION_CLEANUP_INTERVAL: float = 3600.0
    LOAN_REMINDER_INTERVAL: float = 3600.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        validate_default = True

    @property
    def async_db_url(self) -> str:
        """Get asynchronous database URL."""
        if self.DB_URL:
            return self.DB_URL
        return f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def lending_policy(self) -> LendingPolicy:
        """Build the policy value object from the configured numbers."""
        return LendingPolicy(
            max_active_loans=self.MAX_ACTIVE_LOANS,
            loan_duration_days=self.LOAN_DURATION_DAYS,
            reservation_expiry_hours=self.RESERVATION_EXPIRY_HOURS,
            late_fee_per_day=self.LATE_FEE_PER_DAY,
            reminder_window_hours=self.REMINDER_WINDOW_HOURS,
            reservation_availability_rule=self.RESERVATION_AVAILABILITY_RULE,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns cached Settings instance to avoid reloading .env file on every access
    """
    return Settings()
