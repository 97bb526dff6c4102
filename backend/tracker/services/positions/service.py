# backend/tracker/services/positions/service.py
"""
Portfolio Service - orchestrator for one portfolio view.

Pulls inputs from injected sources, runs the pure engine and assembles a
PortfolioView:

    1. Resolve the USD/THB rate (default rate on any FX failure)
    2. Load initial balances and ledger for the user
    3. Fold, then validate (diagnostics logged and returned)
    4. Fetch prices for open tickers (empty snapshot on MarketDataError)
    5. Enrich, summarize, stamp last_updated (UTC)

Design Principles:
- Dependency Injection: every source passed via constructor
- No HTTP Knowledge: raises domain exceptions, never HTTP errors
- Recomputed from scratch on every call (no incremental state)

Usage:
    service = PortfolioService(
        balances_source=balances_repo,
        ledger_source=ledger_repo,
        price_source=price_client,
        fx_resolver=FXRateResolver(source=fx_client),
    )

    view = service.get_portfolio(user_id="u-1", display_currency="THB")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from tracker.config import Settings, settings as default_settings
from tracker.services.exceptions import MarketDataError
from tracker.services.fx_rate_service import FXRateResolver
from tracker.services.positions.classifier import CashClassifier
from tracker.services.positions.enricher import enrich_positions, resolve_display_currency
from tracker.services.positions.folder import LedgerFolder
from tracker.services.positions.summary import compute_summary, validate_positions
from tracker.services.positions.types import PortfolioView, PriceQuote
from tracker.services.protocols import InitialBalanceSource, LedgerSource, PriceSource
from tracker.utils.context import correlation_scope

logger = logging.getLogger(__name__)


class PortfolioService:
    """
    Builds portfolio views from balances, ledger, prices and FX.

    Attributes:
        balances_source: InitialBalanceSource
        ledger_source: LedgerSource
        price_source: PriceSource
        fx_resolver: FXRateResolver (default: one with no source, i.e. the
            configured default rate)
    """

    def __init__(
            self,
            balances_source: InitialBalanceSource,
            ledger_source: LedgerSource,
            price_source: PriceSource,
            fx_resolver: FXRateResolver | None = None,
            config: Settings | None = None,
    ) -> None:
        self.balances_source = balances_source
        self.ledger_source = ledger_source
        self.price_source = price_source
        self.fx_resolver = fx_resolver or FXRateResolver()
        self._config = config or default_settings
        self._classifier = CashClassifier(self._config)

    def get_portfolio(
            self,
            user_id: str,
            display_currency: str | None = None,
    ) -> PortfolioView:
        """
        Compute the complete portfolio view for one user.

        Args:
            user_id: Whose balances and ledger to load
            display_currency: "USD" or "THB" (default: settings)

        Returns:
            PortfolioView with positions, summary, rate and diagnostics

        Raises:
            UnsupportedCurrencyError: If display_currency is not USD or THB
        """
        display = resolve_display_currency(
            display_currency or self._config.default_display_currency
        )

        with correlation_scope():
            logger.info(f"Building portfolio view for user {user_id} in {display}")

            fx = self.fx_resolver.get_usd_thb_rate()

            balances = list(self.balances_source.get_initial_balances(user_id))
            entries = list(self.ledger_source.get_ledger_entries(user_id))

            folder = LedgerFolder(
                fx_rate=fx.rate, classifier=self._classifier, config=self._config
            )
            folded = folder.fold(balances, entries)

            diagnostics = list(folded.diagnostics)
            diagnostics.extend(
                validate_positions(
                    folded.positions,
                    fx.rate,
                    classifier=self._classifier,
                    config=self._config,
                )
            )
            if self._config.log_position_warnings:
                for diagnostic in diagnostics:
                    logger.warning(f"Position check: {diagnostic}")

            open_tickers = [
                ticker for ticker, position in folded.positions.items()
                if not position.is_closed
            ]
            prices = self._fetch_prices(open_tickers)

            enriched = enrich_positions(
                folded.positions,
                prices,
                fx.rate,
                display,
                classifier=self._classifier,
                config=self._config,
            )
            summary = compute_summary(enriched, display)

            logger.info(
                f"Portfolio view for user {user_id}: {len(enriched)} positions, "
                f"{len(diagnostics)} diagnostics, fx={fx.rate}"
                f"{' (fallback)' if fx.is_fallback else ''}"
            )

            return PortfolioView(
                positions=enriched,
                summary=summary,
                exchange_rate=fx.rate,
                fx_rate_is_fallback=fx.is_fallback,
                display_currency=display,
                last_updated=datetime.now(timezone.utc),
                diagnostics=diagnostics,
            )

    def _fetch_prices(self, tickers: list[str]) -> dict[str, PriceQuote]:
        if not tickers:
            return {}
        try:
            return dict(self.price_source.get_prices(tickers))
        except MarketDataError as e:
            logger.warning(f"Price source failed, continuing without prices: {e}")
            return {}
