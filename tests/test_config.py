"""Tests for settings and the lending policy value object."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from components.core.config import LendingPolicy, ReservationAvailabilityRule, Settings


class TestSettings:
    def test_policy_defaults(self):
        policy = Settings(_env_file=None).lending_policy()

        assert policy.max_active_loans == 5
        assert policy.loan_duration_days == 14
        assert policy.reservation_expiry_hours == 48
        assert policy.late_fee_per_day == Decimal("0.50")
        assert policy.reservation_availability_rule is ReservationAvailabilityRule.STOCK_EXISTS

    def test_policy_from_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_ACTIVE_LOANS", "2")
        monkeypatch.setenv("RESERVATION_AVAILABILITY_RULE", "REQUIRE_AVAILABLE_COPY")

        policy = Settings(_env_file=None).lending_policy()

        assert policy.max_active_loans == 2
        assert policy.reservation_availability_rule is ReservationAvailabilityRule.REQUIRE_AVAILABLE_COPY

    def test_async_url_built_from_parts(self):
        settings = Settings(_env_file=None, DB_USER="lib", DB_PASSWORD="pw", DB_NAME="books")

        assert settings.async_db_url == "mysql+aiomysql://lib:pw@localhost:3306/books"

    def test_explicit_url_wins(self):
        settings = Settings(_env_file=None, DB_URL="sqlite+aiosqlite:///lending.db")

        assert settings.async_db_url == "sqlite+aiosqlite:///lending.db"


class TestLendingPolicy:
    def test_policy_is_frozen(self):
        policy = LendingPolicy()

        with pytest.raises(ValidationError):
            policy.max_active_loans = 10
