# backend/tracker/services/positions/types.py
"""
Internal data types for the position-accounting engine.

These dataclasses are the engine's inputs and outputs. They are NOT Pydantic
schemas - those live in tracker/schemas/ and convert to/from these types at
the service boundary.

Design Principles:
- Inputs and outputs are immutable (frozen=True)
- Decimal for ALL financial values (never float)
- Signed quantity: positive = long, negative = short, no separate side field
- Data-integrity problems are returned as Diagnostic records, never raised

Type Hierarchy:
    InitialBalance    - Opening holding for one ticker
    LedgerEntry       - One double-entry transaction (from side / to side)
    Position          - Folded position for one ticker
    FoldResult        - Position map + diagnostics from one fold
    PriceQuote        - Price snapshot entry
    EnrichedPosition  - Position valued in the display currency
    PortfolioSummary  - Totals over enriched positions
    Diagnostic        - Advisory record (kind + ticker + message)
    PortfolioView     - Everything one portfolio request returns
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from tracker.services.constants import DEFAULT_ASSET_TYPE, ZERO


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class InitialBalance:
    """
    Opening holding entered during onboarding.

    Attributes:
        ticker: Asset symbol (case-insensitive, upper-cased by the folder)
        quantity: Signed opening quantity (negative = short)
        avg_cost: Cost per unit in cost_currency (ignored for cash)
        cost_currency: "USD" or "THB"
        asset_type: Free-form asset type (stock, crypto, cash, ...)
    """

    ticker: str
    quantity: Decimal
    avg_cost: Decimal = ZERO
    cost_currency: str = "USD"
    asset_type: str = DEFAULT_ASSET_TYPE


@dataclass(frozen=True)
class LedgerEntry:
    """
    One double-entry ledger transaction.

    Every trade moves value FROM one ticker TO another:
        BUY        : from=USD/THB  -> to=asset
        SELL       : from=asset    -> to=USD/THB
        SWAP       : from=assetA   -> to=assetB
        DEPOSIT    : from=None     -> to=asset
        WITHDRAWAL : from=asset    -> to=None

    Amount semantics:
        Cash amounts are total currency value; non-cash amounts are units.
        On a buy, from_amount is the total cash paid; on a sell, to_amount
        is the total proceeds.

    Attributes:
        transaction_date: Ordering key (ties keep input order)
        transaction_currency: "USD"/"THB"; a cash leg is always read in
            its own currency (THB cash in THB), this covers the rest
        fx_rate_at_time: THB per USD at trade time (None/0 = use current)
        fees: Fee amount, applied in kind when fee_currency names a leg
        transaction_type: Informational label, not used by the folder
    """

    transaction_date: datetime | date
    from_ticker: str | None = None
    from_amount: Decimal | None = None
    from_asset_type: str | None = None
    to_ticker: str | None = None
    to_amount: Decimal | None = None
    to_asset_type: str | None = None
    transaction_currency: str = "USD"
    fx_rate_at_time: Decimal | None = None
    fees: Decimal = ZERO
    fee_currency: str | None = None
    transaction_type: str | None = None


@dataclass(frozen=True)
class PriceQuote:
    """
    Price snapshot entry for one ticker.

    Attributes:
        price: Last price per unit in `currency`
        currency: "USD" or "THB"
        updated_at: When the price was last refreshed (None if unknown)
    """

    price: Decimal
    currency: str = "USD"
    updated_at: datetime | None = None


# =============================================================================
# POSITIONS
# =============================================================================

@dataclass(frozen=True)
class Position:
    """
    Folded position for a single ticker.

    Attributes:
        ticker: Upper-cased symbol
        asset_type: Most specific asset type seen
        quantity: Signed quantity (negative = short)
        avg_cost: Cost per unit in cost_currency (face value for cash)
        cost_basis: |quantity| × avg_cost, never negative
        cost_currency: "USD" or "THB" (always "USD" for cash)
        realized_pnl: Accumulated realized P&L in cost_currency

    Note:
        avg_cost survives a full close so the last entry price stays
        visible; cost_basis is 0 whenever quantity is 0.
    """

    ticker: str
    asset_type: str
    quantity: Decimal
    avg_cost: Decimal
    cost_basis: Decimal
    cost_currency: str
    realized_pnl: Decimal

    @property
    def is_short(self) -> bool:
        """True for a negative (short) quantity."""
        return self.quantity < ZERO

    @property
    def is_closed(self) -> bool:
        """True when nothing is held in either direction."""
        return self.quantity == ZERO


@dataclass
class FoldResult:
    """
    Result of folding balances and a ledger.

    Attributes:
        positions: Read-only map of ticker -> Position (closed ones included)
        diagnostics: Anomalies found and clamped while folding
    """

    positions: Mapping[str, Position]
    diagnostics: list[Diagnostic] = field(default_factory=list)


# =============================================================================
# ENRICHED VIEW
# =============================================================================

@dataclass(frozen=True)
class EnrichedPosition:
    """
    A position valued at the current price in the display currency.

    All monetary attributes are in display_currency. quantity keeps its
    sign; current_value and cost_basis are magnitudes (>= 0), and
    unrealized_pnl already has the short-side sign flip applied.
    """

    ticker: str
    asset_type: str
    quantity: Decimal
    is_short: bool
    is_cash: bool
    avg_cost: Decimal
    cost_basis: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_pct: Decimal
    realized_pnl: Decimal
    display_currency: str
    price_updated_at: datetime | None = None


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Portfolio totals in the display currency.

    Cash counts toward total_value (and cash_value) only; cost basis and
    realized P&L come from investments. Short exposure enters the totals
    with a negative sign, so unrealized_pnl = total_value - cash_value -
    total_cost matches the sum of per-position unrealized P&L.
    """

    total_value: Decimal
    total_cost: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_pct: Decimal
    realized_pnl: Decimal
    total_pnl: Decimal
    cash_value: Decimal
    display_currency: str


# =============================================================================
# DIAGNOSTICS
# =============================================================================

class DiagnosticKind(str, Enum):
    NEGATIVE_COST_BASIS = "negative_cost_basis"
    NEGATIVE_AVG_COST = "negative_avg_cost"
    CASH_FACE_VALUE_DRIFT = "cash_face_value_drift"
    NEGATIVE_QUANTITY = "negative_quantity"
    COVER_EXCEEDS_SHORT = "cover_exceeds_short"
    MIXED_OPENING_LOTS = "mixed_opening_lots"
    OVERSOLD = "oversold"


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal advisory about one ticker."""

    kind: DiagnosticKind
    ticker: str
    message: str

    def __str__(self) -> str:
        return f"{self.ticker}: {self.message}"


# =============================================================================
# PORTFOLIO VIEW
# =============================================================================

@dataclass
class PortfolioView:
    """
    Complete result of one portfolio request.

    Attributes:
        positions: Enriched open positions in display order
        summary: Totals over positions
        exchange_rate: THB per USD used for every conversion
        fx_rate_is_fallback: True if exchange_rate is the configured default
        display_currency: "USD" or "THB"
        last_updated: UTC time the view was computed
        diagnostics: Folder and validator diagnostics
    """

    positions: list[EnrichedPosition]
    summary: PortfolioSummary
    exchange_rate: Decimal
    fx_rate_is_fallback: bool
    display_currency: str
    last_updated: datetime
    diagnostics: list[Diagnostic] = field(default_factory=list)
