# backend/tracker/services/positions/enricher.py
"""
Position enricher: values folded positions at current prices.

Joins the folder's position map with a price snapshot and expresses every
monetary figure in the display currency (USD or THB).

Per position:
    abs_qty        = |quantity|
    current_value  = display_price × abs_qty
    cost_basis     = display_avg_cost × abs_qty
    unrealized_pnl = current_value - cost_basis     (long)
                   = cost_basis - current_value     (short)
    unrealized_pct = unrealized_pnl / cost_basis × 100   (0 when no cost)

Missing data:
    - Closed positions (quantity 0) are skipped
    - Non-cash tickers without a quote are omitted
    - Cash tickers without a quote are valued at face (1 unit of their own
      currency)

Ordering (display contract):
    Non-cash first, then cash; within each group by |current_value|
    descending. The sort is stable, so ties keep the position map's order.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from tracker.config import Settings, settings as default_settings
from tracker.services.constants import HUNDRED, ONE, PERCENT_QUANTUM, ZERO
from tracker.services.exceptions import UnsupportedCurrencyError
from tracker.services.positions.classifier import CashClassifier
from tracker.services.positions.types import EnrichedPosition, Position, PriceQuote
from tracker.utils.fx_conversion import (
    SUPPORTED_CURRENCIES,
    USD,
    convert_amount,
    normalize_currency,
    safe_fx_rate,
    to_decimal,
)

logger = logging.getLogger(__name__)


def resolve_display_currency(display_currency: str | None) -> str:
    """
    Validate and upper-case a requested display currency.

    Raises:
        UnsupportedCurrencyError: If it is not USD or THB
    """
    code = (display_currency or "").strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise UnsupportedCurrencyError(str(display_currency))
    return code


def enrich_positions(
        positions: Mapping[str, Position] | Iterable[Position],
        price_snapshot: Mapping[str, PriceQuote],
        fx_rate: object,
        display_currency: str = USD,
        *,
        classifier: CashClassifier | None = None,
        config: Settings | None = None,
) -> list[EnrichedPosition]:
    """
    Value open positions in the display currency.

    Args:
        positions: Folder output (mapping or plain iterable of Position)
        price_snapshot: ticker -> PriceQuote (keys matched case-insensitively)
        fx_rate: THB per USD; unusable values fall back to the default rate
        display_currency: "USD" or "THB"

    Returns:
        EnrichedPosition list in display order

    Raises:
        UnsupportedCurrencyError: If display_currency is not USD or THB
    """
    display = resolve_display_currency(display_currency)
    config = config or default_settings
    classifier = classifier or CashClassifier(config)
    rate = safe_fx_rate(fx_rate, config.default_fx_rate)

    items = positions.values() if isinstance(positions, Mapping) else positions
    quotes = {
        str(ticker).strip().upper(): quote
        for ticker, quote in (price_snapshot or {}).items()
    }

    enriched: list[EnrichedPosition] = []
    for position in items:
        if position.quantity == ZERO:
            continue

        row = _enrich_one(position, quotes.get(position.ticker), rate, display, classifier)
        if row is not None:
            enriched.append(row)

    enriched.sort(key=lambda p: (p.is_cash, -abs(p.current_value)))
    return enriched


def _enrich_one(
        position: Position,
        quote: PriceQuote | None,
        rate: Decimal,
        display: str,
        classifier: CashClassifier,
) -> EnrichedPosition | None:
    is_cash = classifier.is_cash_asset(position.ticker)

    if quote is None:
        if not is_cash:
            logger.debug(f"No price for {position.ticker}, omitted from view")
            return None
        price = ONE
        price_currency = classifier.cash_currency(position.ticker)
        updated_at = None
    else:
        price_currency = (quote.currency or USD).strip().upper()
        if price_currency not in SUPPORTED_CURRENCIES:
            logger.warning(
                f"Price for {position.ticker} quoted in unsupported currency "
                f"{price_currency}, omitted from view"
            )
            return None
        price = to_decimal(quote.price)
        updated_at = quote.updated_at

    cost_currency = normalize_currency(position.cost_currency)
    display_price = convert_amount(price, price_currency, display, rate)
    display_avg_cost = convert_amount(position.avg_cost, cost_currency, display, rate)
    realized = convert_amount(position.realized_pnl, cost_currency, display, rate)

    is_short = position.quantity < ZERO
    abs_qty = abs(position.quantity)
    current_value = display_price * abs_qty
    cost_display = display_avg_cost * abs_qty

    if is_short:
        unrealized = cost_display - current_value
    else:
        unrealized = current_value - cost_display

    if cost_display != ZERO:
        unrealized_pct = (unrealized / abs(cost_display) * HUNDRED).quantize(PERCENT_QUANTUM)
    else:
        unrealized_pct = ZERO

    return EnrichedPosition(
        ticker=position.ticker,
        asset_type=position.asset_type,
        quantity=position.quantity,
        is_short=is_short,
        is_cash=is_cash,
        avg_cost=display_avg_cost,
        cost_basis=cost_display,
        current_price=display_price,
        current_value=current_value,
        unrealized_pnl=unrealized,
        unrealized_pnl_pct=unrealized_pct,
        realized_pnl=realized,
        display_currency=display,
        price_updated_at=updated_at,
    )
