# backend/tracker/services/fx_rate_service.py
"""
USD/THB rate resolution for portfolio views.

=============================================================================
FX RATE CONVENTION
=============================================================================

    rate = THB per 1 USD         (35.0 means 1 USD = 35 THB)

    USD → THB:  THB_amount = USD_amount × rate
    THB → USD:  USD_amount = THB_amount ÷ rate

=============================================================================

The resolver never fails. Any FXRateError from the source, an open circuit
breaker, or a zero/negative/missing rate resolves to the configured default
rate with is_fallback=True, so a dead FX provider degrades a view instead
of breaking it.

Usage:
    resolver = FXRateResolver(source=my_fx_client)

    result = resolver.get_usd_thb_rate()
    thb_value = usd_value * result.rate
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from tracker.config import settings
from tracker.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from tracker.services.exceptions import FXRateError
from tracker.services.protocols import FXRateSource
from tracker.utils.fx_conversion import to_decimal

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "default"


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class FXRateResult:
    """Result of an FX rate lookup."""

    rate: Decimal
    is_fallback: bool = False  # True if the configured default was used
    source: str = FALLBACK_SOURCE


# =============================================================================
# SOURCES
# =============================================================================

class FixedFXRateSource:
    """FX source returning one static rate (offline use and tests)."""

    def __init__(self, rate: Decimal | str | float, name: str = "fixed") -> None:
        self.rate = to_decimal(rate)
        self.name = name

    def get_usd_thb_rate(self) -> Decimal:
        return self.rate


# =============================================================================
# FX RATE RESOLVER
# =============================================================================

class FXRateResolver:
    """
    Wraps an FX source with validation, a circuit breaker and a fallback.

    Attributes:
        source: Injected FXRateSource (None means always use the default)
        default_rate: Fallback rate (default: settings.default_fx_rate)
        breaker: Circuit breaker around the source
    """

    def __init__(
            self,
            source: FXRateSource | None = None,
            default_rate: Decimal | None = None,
            breaker: CircuitBreaker | None = None,
    ) -> None:
        self.source = source
        self.default_rate = default_rate or settings.default_fx_rate
        self.breaker = breaker or CircuitBreaker(
            name="fx-usd-thb",
            failure_threshold=settings.fx_breaker_failure_threshold,
            recovery_timeout=settings.fx_breaker_recovery_timeout,
        )

    def _source_name(self) -> str:
        return getattr(self.source, "name", None) or type(self.source).__name__

    def _fallback(self, reason: str) -> FXRateResult:
        logger.warning(
            f"Using default USD/THB rate {self.default_rate}: {reason}"
        )
        return FXRateResult(rate=self.default_rate, is_fallback=True)

    def get_usd_thb_rate(self) -> FXRateResult:
        """
        Resolve the current rate.

        Returns:
            FXRateResult; is_fallback is True whenever the default was used
        """
        if self.source is None:
            return FXRateResult(rate=self.default_rate, is_fallback=True)

        try:
            with self.breaker:
                raw = self.source.get_usd_thb_rate()
                rate = to_decimal(raw)
                if rate <= 0:
                    raise FXRateError(
                        f"FX source returned unusable rate {raw!r}",
                        base_currency="USD",
                        quote_currency="THB",
                    )
        except CircuitBreakerOpen as e:
            return self._fallback(str(e))
        except FXRateError as e:
            return self._fallback(str(e))

        logger.debug(f"USD/THB rate {rate} from {self._source_name()}")
        return FXRateResult(rate=rate, is_fallback=False, source=self._source_name())
