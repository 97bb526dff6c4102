# backend/tracker/schemas/ledger.py
"""
Pydantic schemas for opening balances and ledger entries.

These schemas define what a client may send before anything reaches the
engine. The engine assumes numerically well-formed input; everything that
can be rejected is rejected here.

Normalization:
- Tickers and currencies upper-cased and trimmed
- avg_cost stored as its absolute value
- Buy/sell shorthand resolved into full from/to legs
- fee_currency defaults to the transaction currency

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from tracker.schemas.validators import (
    normalize_cost_currency,
    validate_currency,
    validate_ticker,
)
from tracker.services.constants import CASH_ASSET_TYPE, DEFAULT_ASSET_TYPE
from tracker.services.positions.types import InitialBalance, LedgerEntry

TransactionType = Literal["buy", "sell", "swap", "deposit", "withdrawal", "trade"]


# =============================================================================
# INITIAL BALANCE
# =============================================================================

class InitialBalanceCreate(BaseModel):
    """
    Schema for one opening holding.

    Negative quantity records an opening short. avg_cost is ignored by the
    engine for cash tickers.
    """

    ticker: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Asset symbol",
        examples=["AAPL", "PTT", "BTC", "THB"]
    )

    quantity: Decimal = Field(
        ...,
        description="Signed opening quantity (negative = short)",
        examples=["10", "-5", "0.25"]
    )

    avg_cost: Decimal = Field(
        default=Decimal("0"),
        description="Cost per unit in cost_currency (stored as absolute value)",
        examples=["100", "1.25"]
    )

    cost_currency: str = Field(
        default="USD",
        description="USD or THB (anything else is treated as USD)",
        examples=["USD", "THB"]
    )

    asset_type: str = Field(
        default=DEFAULT_ASSET_TYPE,
        max_length=30,
        description="Asset type (stock, crypto, cash, ...)",
        examples=["stock", "crypto", "cash"]
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization)
    # =========================================================================

    @field_validator('ticker')
    @classmethod
    def validate_and_normalize_ticker(cls, v: str) -> str:
        """Validate and normalize ticker symbol."""
        return validate_ticker(v)

    @field_validator('quantity')
    @classmethod
    def validate_quantity_finite(cls, v: Decimal) -> Decimal:
        """Reject NaN and infinity."""
        if not v.is_finite():
            raise ValueError("Quantity must be a finite number")
        return v

    @field_validator('avg_cost')
    @classmethod
    def absolute_avg_cost(cls, v: Decimal) -> Decimal:
        """Store avg_cost as a magnitude."""
        if not v.is_finite():
            raise ValueError("avg_cost must be a finite number")
        return abs(v)

    @field_validator('cost_currency', mode='before')
    @classmethod
    def map_cost_currency(cls, v: str | None) -> str:
        """THB stays THB, anything else becomes USD."""
        return normalize_cost_currency(v)

    @field_validator('asset_type')
    @classmethod
    def normalize_asset_type(cls, v: str) -> str:
        """Lowercase the asset type; empty means 'other'."""
        return v.strip().lower() or DEFAULT_ASSET_TYPE

    def to_record(self) -> InitialBalance:
        """Convert to the engine's InitialBalance record."""
        return InitialBalance(
            ticker=self.ticker,
            quantity=self.quantity,
            avg_cost=self.avg_cost,
            cost_currency=self.cost_currency,
            asset_type=self.asset_type,
        )


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntryCreate(BaseModel):
    """
    Schema for one double-entry ledger transaction.

    Shorthand forms accepted:
        buy  without from_ticker -> from_ticker = transaction_currency (cash)
        sell without from_ticker -> from_ticker = to_ticker
        from_amount missing      -> to_amount × price_per_unit

    At least one of from_ticker / to_ticker must be present after
    resolution.
    """

    transaction_type: TransactionType = Field(
        default="trade",
        description="Informational label; the legs drive the accounting"
    )

    transaction_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the trade happened (naive values are read as UTC)",
        examples=["2026-01-15T14:30:00Z"]
    )

    from_ticker: str | None = Field(default=None, max_length=20)
    from_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Cash paid (cash leg) or units given up (asset leg)"
    )
    from_asset_type: str | None = Field(default=None, max_length=30)

    to_ticker: str | None = Field(default=None, max_length=20)
    to_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Cash received (cash leg) or units received (asset leg)"
    )
    to_asset_type: str | None = Field(default=None, max_length=30)

    price_per_unit: Decimal | None = Field(
        default=None,
        gt=0,
        description="Used to derive from_amount when it is omitted"
    )

    transaction_currency: str = Field(
        default="USD",
        description="Denomination of the cash amounts",
        examples=["USD", "THB"]
    )

    fx_rate_at_time: Decimal | None = Field(
        default=None,
        gt=0,
        description="THB per 1 USD at trade time"
    )

    fees: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Fee amount (0 or positive)"
    )

    fee_currency: str | None = Field(
        default=None,
        max_length=20,
        description="Ticker or currency the fee is charged in (defaults to transaction currency)"
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization & Validation)
    # =========================================================================

    @field_validator('transaction_type', mode='before')
    @classmethod
    def normalize_transaction_type(cls, v: str | None) -> str:
        """Lowercase the label; missing means 'trade'."""
        return (v or "trade").strip().lower()

    @field_validator('transaction_date')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Read naive datetimes as UTC."""
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v

    @field_validator('from_ticker', 'to_ticker', mode='before')
    @classmethod
    def validate_optional_ticker(cls, v: str | None) -> str | None:
        """Validate a ticker leg; blank means absent."""
        if v is None or not str(v).strip():
            return None
        return validate_ticker(str(v))

    @field_validator('fee_currency', mode='before')
    @classmethod
    def normalize_fee_currency(cls, v: str | None) -> str | None:
        """Normalize fee_currency: trim whitespace and uppercase, or None."""
        if v is None or not str(v).strip():
            return None
        return str(v).strip().upper()

    @field_validator('transaction_currency', mode='before')
    @classmethod
    def validate_transaction_currency(cls, v: str | None) -> str:
        """USD or THB only; missing means USD."""
        return validate_currency(v or "USD")

    @model_validator(mode='after')
    def resolve_shorthand(self) -> "LedgerEntryCreate":
        """Fill in the implied legs of buy/sell shorthand."""
        if self.from_amount is None and self.price_per_unit and self.to_amount:
            self.from_amount = self.to_amount * self.price_per_unit

        if self.from_ticker is None:
            if self.transaction_type == "buy":
                self.from_ticker = self.transaction_currency
                self.from_asset_type = CASH_ASSET_TYPE
            elif self.transaction_type == "sell" and self.to_ticker:
                self.from_ticker = self.to_ticker
                self.from_asset_type = self.to_asset_type

        if self.from_ticker is None and self.to_ticker is None:
            raise ValueError("At least one of to_ticker or from_ticker is required")

        if self.fee_currency is None:
            self.fee_currency = self.transaction_currency

        return self

    def to_record(self) -> LedgerEntry:
        """Convert to the engine's LedgerEntry record."""
        return LedgerEntry(
            transaction_date=self.transaction_date,
            from_ticker=self.from_ticker,
            from_amount=self.from_amount,
            from_asset_type=self.from_asset_type,
            to_ticker=self.to_ticker,
            to_amount=self.to_amount,
            to_asset_type=self.to_asset_type,
            transaction_currency=self.transaction_currency,
            fx_rate_at_time=self.fx_rate_at_time,
            fees=self.fees,
            fee_currency=self.fee_currency,
            transaction_type=self.transaction_type,
        )
