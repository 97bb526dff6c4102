# backend/tracker/services/positions/summary.py
"""
Portfolio summary and position sanity checks.

compute_summary():
    total_value    = Σ signed current_value   (cash included)
    cash_value     = Σ signed cash value
    total_cost     = Σ signed cost_basis      (investments only)
    unrealized_pnl = (total_value - cash_value) - total_cost
    realized_pnl   = Σ realized_pnl           (investments only)
    total_pnl      = unrealized_pnl + realized_pnl

    Shorts enter value and cost with a negative sign, so unrealized_pnl
    equals the sum of per-position unrealized P&L.

    When cash is held, total_value - total_cost is NOT the unrealized P&L:
    cash has no cost basis and would otherwise read as gain.

validate_positions():
    Advisory checks on folded positions. Returns Diagnostic records and
    never raises.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from tracker.config import Settings, settings as default_settings
from tracker.services.constants import HUNDRED, MONEY_QUANTUM, PERCENT_QUANTUM, ZERO
from tracker.services.positions.classifier import CashClassifier
from tracker.services.positions.enricher import resolve_display_currency
from tracker.services.positions.types import (
    Diagnostic,
    DiagnosticKind,
    EnrichedPosition,
    PortfolioSummary,
    Position,
)
from tracker.utils.fx_conversion import USD, safe_fx_rate

logger = logging.getLogger(__name__)


# =============================================================================
# SUMMARY
# =============================================================================

def compute_summary(
        enriched_positions: Iterable[EnrichedPosition],
        display_currency: str = USD,
) -> PortfolioSummary:
    """
    Aggregate enriched positions into portfolio totals.

    unrealized_pnl is total_value - cash_value - total_cost; with cash held,
    total_value - total_cost is NOT the unrealized P&L.

    Args:
        enriched_positions: Output of enrich_positions(), all in display_currency
        display_currency: "USD" or "THB"

    Returns:
        PortfolioSummary with money rounded to 0.01 and percentage to 0.0001
    """
    display = resolve_display_currency(display_currency)

    total_value = ZERO
    cash_value = ZERO
    total_cost = ZERO
    realized = ZERO

    for position in enriched_positions:
        sign = -1 if position.is_short else 1
        value = sign * position.current_value

        total_value += value
        if position.is_cash:
            cash_value += value
            continue

        total_cost += sign * position.cost_basis
        realized += position.realized_pnl

    unrealized = total_value - cash_value - total_cost
    if total_cost != ZERO:
        unrealized_pct = unrealized / abs(total_cost) * HUNDRED
    else:
        unrealized_pct = ZERO

    return PortfolioSummary(
        total_value=total_value.quantize(MONEY_QUANTUM),
        total_cost=total_cost.quantize(MONEY_QUANTUM),
        unrealized_pnl=unrealized.quantize(MONEY_QUANTUM),
        unrealized_pnl_pct=unrealized_pct.quantize(PERCENT_QUANTUM),
        realized_pnl=realized.quantize(MONEY_QUANTUM),
        total_pnl=(unrealized + realized).quantize(MONEY_QUANTUM),
        cash_value=cash_value.quantize(MONEY_QUANTUM),
        display_currency=display,
    )


# =============================================================================
# VALIDATION
# =============================================================================

def validate_positions(
        positions: Mapping[str, Position] | Iterable[Position],
        fx_rate: object = None,
        *,
        classifier: CashClassifier | None = None,
        config: Settings | None = None,
) -> list[Diagnostic]:
    """
    Flag positions worth a human look.

    Checks:
        - positive quantity with negative cost_basis (sold more than bought?)
        - negative avg_cost
        - cash avg_cost off its face value by more than cash_face_tolerance
        - negative quantity (legitimate short or a data error)

    Args:
        positions: Folder output
        fx_rate: THB per USD used for THB cash face value

    Returns:
        Diagnostics in position order; empty when everything looks sane
    """
    config = config or default_settings
    classifier = classifier or CashClassifier(config)
    rate = safe_fx_rate(fx_rate, config.default_fx_rate)
    tolerance = config.cash_face_tolerance

    items = positions.values() if isinstance(positions, Mapping) else positions
    diagnostics: list[Diagnostic] = []

    def flag(kind: DiagnosticKind, ticker: str, message: str) -> None:
        diagnostics.append(Diagnostic(kind=kind, ticker=ticker, message=message))

    for position in items:
        ticker = position.ticker

        if position.quantity > ZERO and position.cost_basis < ZERO:
            flag(
                DiagnosticKind.NEGATIVE_COST_BASIS,
                ticker,
                f"positive quantity ({position.quantity}) but negative "
                f"cost_basis ({position.cost_basis}). Sold more than bought?",
            )

        if position.avg_cost < ZERO:
            flag(
                DiagnosticKind.NEGATIVE_AVG_COST,
                ticker,
                f"negative avg_cost ({position.avg_cost})",
            )

        if classifier.is_cash_asset(ticker):
            face = classifier.cash_face_value_usd(ticker, rate)
            if _relative_drift(position.avg_cost, face) > tolerance:
                flag(
                    DiagnosticKind.CASH_FACE_VALUE_DRIFT,
                    ticker,
                    f"cash avg_cost {position.avg_cost} differs from face "
                    f"value {face}",
                )

        if position.quantity < ZERO:
            flag(
                DiagnosticKind.NEGATIVE_QUANTITY,
                ticker,
                f"negative quantity ({position.quantity}). Short position "
                f"or data error?",
            )

    return diagnostics


def _relative_drift(actual: Decimal, expected: Decimal) -> Decimal:
    if expected == ZERO:
        return abs(actual)
    return abs(actual - expected) / abs(expected)
