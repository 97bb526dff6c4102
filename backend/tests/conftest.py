# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Settings pinned to the test environment
- In-memory fake sources (balances, ledger, prices, FX)
- Record factories for balances and ledger entries
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tracker.config import Settings
from tracker.services.exceptions import FXProviderError, ProviderUnavailableError
from tracker.services.positions.classifier import CashClassifier
from tracker.services.positions.types import InitialBalance, LedgerEntry, PriceQuote

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# SETTINGS FIXTURES
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with library defaults, independent of the environment."""
    return Settings(
        environment="test",
        default_fx_rate=Decimal("35.0"),
        log_position_warnings=True,
        _env_file=None,
    )


@pytest.fixture
def classifier(test_settings) -> CashClassifier:
    """Cash classifier built from test settings."""
    return CashClassifier(test_settings)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

def balance(
        ticker: str,
        quantity,
        avg_cost="0",
        cost_currency: str = "USD",
        asset_type: str = "stock",
) -> InitialBalance:
    """Build an InitialBalance from loose values."""
    return InitialBalance(
        ticker=ticker,
        quantity=Decimal(str(quantity)),
        avg_cost=Decimal(str(avg_cost)),
        cost_currency=cost_currency,
        asset_type=asset_type,
    )


def entry(
        day: int = 0,
        from_ticker: str | None = None,
        from_amount=None,
        to_ticker: str | None = None,
        to_amount=None,
        **kwargs,
) -> LedgerEntry:
    """Build a LedgerEntry dated BASE_TIME + day days."""
    return LedgerEntry(
        transaction_date=BASE_TIME + timedelta(days=day),
        from_ticker=from_ticker,
        from_amount=Decimal(str(from_amount)) if from_amount is not None else None,
        to_ticker=to_ticker,
        to_amount=Decimal(str(to_amount)) if to_amount is not None else None,
        **kwargs,
    )


# =============================================================================
# FAKE SOURCES
# =============================================================================

class FakeBalanceSource:
    """In-memory InitialBalanceSource keyed by user."""

    def __init__(self, rows: dict[str, list[InitialBalance]] | None = None):
        self.rows = rows or {}

    def get_initial_balances(self, user_id: str) -> list[InitialBalance]:
        return list(self.rows.get(user_id, []))


class FakeLedgerSource:
    """In-memory LedgerSource keyed by user."""

    def __init__(self, rows: dict[str, list[LedgerEntry]] | None = None):
        self.rows = rows or {}

    def get_ledger_entries(self, user_id: str) -> list[LedgerEntry]:
        return list(self.rows.get(user_id, []))


class FakePriceSource:
    """In-memory PriceSource; set `fail` to simulate an outage."""

    def __init__(self, quotes: dict[str, PriceQuote] | None = None, fail: bool = False):
        self.quotes = quotes or {}
        self.fail = fail
        self.requested: list[list[str]] = []

    def get_prices(self, tickers):
        tickers = list(tickers)
        self.requested.append(tickers)
        if self.fail:
            raise ProviderUnavailableError("fake-prices", "simulated outage")
        return {t: self.quotes[t] for t in tickers if t in self.quotes}


class FakeFXSource:
    """FX source returning a fixed rate, or failing on demand."""

    name = "fake-fx"

    def __init__(self, rate: Decimal = Decimal("35"), fail: bool = False):
        self.rate = rate
        self.fail = fail
        self.calls = 0

    def get_usd_thb_rate(self) -> Decimal:
        self.calls += 1
        if self.fail:
            raise FXProviderError("fake-fx", "simulated outage")
        return self.rate


@pytest.fixture
def fake_prices() -> FakePriceSource:
    return FakePriceSource()


@pytest.fixture
def fake_fx() -> FakeFXSource:
    return FakeFXSource()
