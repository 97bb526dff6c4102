# backend/tracker/schemas/portfolio.py
"""
Pydantic schemas for the portfolio view.

These schemas handle:
- Enriched positions (value, P&L in display currency)
- Portfolio summary totals
- Diagnostics raised while folding and validating
- The complete portfolio response

They are response-only: the hosting service builds them from a
PortfolioView with PortfolioResponse.from_view().
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from tracker.services.positions.types import PortfolioView


# =============================================================================
# POSITION SCHEMAS
# =============================================================================

class EnrichedPositionResponse(BaseModel):
    """One open position valued in the display currency."""

    model_config = ConfigDict(from_attributes=True)

    ticker: str
    asset_type: str
    quantity: Decimal = Field(..., description="Signed quantity (negative = short)")
    is_short: bool
    is_cash: bool
    avg_cost: Decimal = Field(..., description="Cost per unit in display currency")
    cost_basis: Decimal = Field(..., description="|quantity| × avg_cost")
    current_price: Decimal
    current_value: Decimal = Field(..., description="|quantity| × current_price")
    unrealized_pnl: Decimal = Field(..., description="Sign already flipped for shorts")
    unrealized_pnl_pct: Decimal
    realized_pnl: Decimal
    display_currency: str
    price_updated_at: dt.datetime | None = None


# =============================================================================
# SUMMARY SCHEMAS
# =============================================================================

class PortfolioSummaryResponse(BaseModel):
    """Portfolio totals in the display currency."""

    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal = Field(..., description="Investments plus cash")
    total_cost: Decimal = Field(..., description="Cost basis of investments (cash excluded)")
    unrealized_pnl: Decimal
    unrealized_pnl_pct: Decimal
    realized_pnl: Decimal
    total_pnl: Decimal = Field(..., description="unrealized_pnl + realized_pnl")
    cash_value: Decimal
    display_currency: str


class DiagnosticResponse(BaseModel):
    """A non-fatal advisory about one ticker."""

    model_config = ConfigDict(from_attributes=True)

    kind: str
    ticker: str
    message: str


# =============================================================================
# PORTFOLIO RESPONSE
# =============================================================================

class PortfolioResponse(BaseModel):
    """Complete portfolio view."""

    positions: list[EnrichedPositionResponse]
    summary: PortfolioSummaryResponse
    exchange_rate: Decimal = Field(..., description="THB per 1 USD used for conversions")
    fx_rate_is_fallback: bool = Field(
        default=False,
        description="True if the configured default rate was used"
    )
    display_currency: str
    last_updated: dt.datetime
    warnings: list[DiagnosticResponse] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: PortfolioView) -> "PortfolioResponse":
        """Build the response from a service-layer PortfolioView."""
        return cls(
            positions=[
                EnrichedPositionResponse.model_validate(p) for p in view.positions
            ],
            summary=PortfolioSummaryResponse.model_validate(view.summary),
            exchange_rate=view.exchange_rate,
            fx_rate_is_fallback=view.fx_rate_is_fallback,
            display_currency=view.display_currency,
            last_updated=view.last_updated,
            warnings=[
                DiagnosticResponse(kind=d.kind.value, ticker=d.ticker, message=d.message)
                for d in view.diagnostics
            ],
        )
