# backend/tracker/services/positions/classifier.py
"""
Cash / asset classification.

Decides whether a ticker is cash-like (fiat cash or a USD stablecoin) and,
if so, which currency it is denominated in. The folder, enricher and
summarizer all route through these predicates.

Rules (lists come from Settings, never from price data):
    Cash-like   - exact allow-list match (USD, THB, USDT, USDC, ...)
                - CASH-* prefix, *-CASH suffix
                - stablecoin root followed by a separator (USDC.E, USDT-ERC20)
    THB cash    - cash-like AND (exact THB list match OR *-THB suffix)

Face value in USD:
    THB cash    -> 1 / fx_rate
    other cash  -> 1
"""

from __future__ import annotations

from decimal import Decimal

from tracker.config import Settings, settings as default_settings
from tracker.services.constants import ONE
from tracker.utils.fx_conversion import THB, USD, safe_fx_rate

_STABLECOIN_SEPARATORS = ("-", ".", "_")


class CashClassifier:
    """
    Classifies tickers as cash using the configured lists.

    Stateless apart from the lists it is built with; one instance can be
    shared freely.
    """

    def __init__(self, config: Settings | None = None) -> None:
        config = config or default_settings
        self._cash_tickers = frozenset(config.cash_tickers)
        self._thb_cash_tickers = frozenset(config.thb_cash_tickers)
        self._cash_prefixes = tuple(config.cash_prefixes)
        self._cash_suffixes = tuple(config.cash_suffixes)
        self._stablecoin_roots = tuple(
            f"{root}{sep}"
            for root in config.stablecoin_prefixes
            for sep in _STABLECOIN_SEPARATORS
        )
        self._default_fx_rate = config.default_fx_rate

    @property
    def default_fx_rate(self) -> Decimal:
        return self._default_fx_rate

    def is_cash_asset(self, ticker: str | None) -> bool:
        """True if the ticker is fiat cash or a USD/THB stablecoin."""
        if not ticker:
            return False
        t = ticker.strip().upper()
        if not t:
            return False
        return (
            t in self._cash_tickers
            or t in self._thb_cash_tickers
            or t.startswith(self._cash_prefixes)
            or t.endswith(self._cash_suffixes)
            or t.startswith(self._stablecoin_roots)
        )

    def is_thb_cash(self, ticker: str | None) -> bool:
        """True if the ticker is THB-denominated cash."""
        if not self.is_cash_asset(ticker):
            return False
        t = ticker.strip().upper()
        return t in self._thb_cash_tickers or t.endswith(f"-{THB}")

    def cash_currency(self, ticker: str | None) -> str:
        """Denomination of a cash ticker ("THB" or "USD")."""
        return THB if self.is_thb_cash(ticker) else USD

    def cash_face_value_usd(
            self,
            ticker: str | None,
            fx_rate: object,
            default_fx_rate: Decimal | None = None,
    ) -> Decimal:
        """
        USD value of one unit of a cash ticker.

        Args:
            ticker: Cash ticker
            fx_rate: THB per USD; zero, negative or missing values fall back
            default_fx_rate: Fallback rate (defaults to the configured 35.0)

        Returns:
            1 / fx_rate for THB cash, 1 for everything else
        """
        if self.is_thb_cash(ticker):
            rate = safe_fx_rate(fx_rate, default_fx_rate or self._default_fx_rate)
            return ONE / rate
        return ONE


_default_classifier = CashClassifier()


def is_cash_asset(ticker: str | None) -> bool:
    """Module-level shortcut using the configured classifier."""
    return _default_classifier.is_cash_asset(ticker)


def is_thb_cash(ticker: str | None) -> bool:
    """Module-level shortcut using the configured classifier."""
    return _default_classifier.is_thb_cash(ticker)


def cash_face_value_usd(
        ticker: str | None,
        fx_rate: object,
        default_fx_rate: Decimal | None = None,
) -> Decimal:
    """Module-level shortcut using the configured classifier."""
    return _default_classifier.cash_face_value_usd(ticker, fx_rate, default_fx_rate)
