# backend/tracker/services/__init__.py
"""
Service layer for the portfolio tracker.

Services:
- Have NO knowledge of HTTP (no status codes, no request objects)
- Raise domain-specific exceptions
- Receive their data sources via constructor injection
- Are easily testable with in-memory fakes

Usage:
    from tracker.services.positions import PortfolioService, calculate_positions
    from tracker.services.fx_rate_service import FXRateResolver
    from tracker.services import ServiceError, UnsupportedCurrencyError

Architecture:
    services/
    ├── __init__.py                  # This file - exception exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Accounting constants
    ├── protocols.py                 # Source interfaces (Protocol classes)
    ├── circuit_breaker.py           # Circuit breaker for the FX source
    ├── fx_rate_service.py           # USD/THB rate resolution with fallback
    └── positions/                   # Position-accounting engine
        ├── types.py                 # Records, positions, diagnostics
        ├── classifier.py            # Cash / stablecoin classification
        ├── folder.py                # Ledger folder
        ├── enricher.py              # Valuation in display currency
        ├── summary.py               # Totals and sanity checks
        └── service.py               # PortfolioService orchestrator

Engine modules are imported from their own package so that the utils
layer can depend on these exceptions without a cycle.
"""

from tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    UnsupportedCurrencyError,
    MarketDataError,
    ProviderUnavailableError,
    FXRateError,
    FXProviderError,
    FXConversionError,
    CircuitBreakerOpen,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "UnsupportedCurrencyError",
    "MarketDataError",
    "ProviderUnavailableError",
    "FXRateError",
    "FXProviderError",
    "FXConversionError",
    "CircuitBreakerOpen",
]
