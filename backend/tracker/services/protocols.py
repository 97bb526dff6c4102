# backend/tracker/services/protocols.py
"""
Protocol interfaces for the portfolio service's collaborators.

Using typing.Protocol enables structural subtyping:
- Existing repositories and API clients satisfy protocols without modification
- Test fakes work without explicit inheritance
- Clear documentation of required interfaces

None of these are implemented here beyond FixedFXRateSource; persistence
and market-data retrieval belong to the hosting service.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from tracker.services.positions.types import (
        InitialBalance,
        LedgerEntry,
        PriceQuote,
    )


class InitialBalanceSource(Protocol):
    """Opening holdings keyed by user."""

    def get_initial_balances(self, user_id: str) -> Sequence[InitialBalance]:
        ...


class LedgerSource(Protocol):
    """Ledger rows keyed by user, in any order."""

    def get_ledger_entries(self, user_id: str) -> Sequence[LedgerEntry]:
        ...


class FXRateSource(Protocol):
    """
    Current USD/THB rate (THB per 1 USD).

    May raise FXRateError; FXRateResolver turns failures into the default rate.
    """

    def get_usd_thb_rate(self) -> Decimal:
        ...


class PriceSource(Protocol):
    """
    Latest prices for a set of tickers.

    Tickers without a price are simply absent from the result. May raise
    MarketDataError.
    """

    def get_prices(self, tickers: Iterable[str]) -> Mapping[str, PriceQuote]:
        ...
