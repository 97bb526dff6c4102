# backend/tracker/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Ticker validation and normalization
- Currency validation (USD/THB only) and lenient cost-currency mapping

These validators ensure consistent input handling across all schemas.
"""

import re

from tracker.utils.fx_conversion import SUPPORTED_CURRENCIES, THB, USD

# =============================================================================
# CONSTANTS
# =============================================================================

# Ticker: 1-20 chars, alphanumeric plus . - _ (BRK.B, CASH-THB, USDC.E),
# optionally starting with a caret for indices (^SET)
TICKER_PATTERN = re.compile(r'^[\^]?[A-Z0-9][A-Z0-9._\-]{0,19}$')
TICKER_MAX_LENGTH = 20


# =============================================================================
# TICKER VALIDATION
# =============================================================================

def validate_ticker(value: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Valid formats:
    - Standard tickers: AAPL, PTT, BTC
    - With dots: BRK.B, USDC.E
    - Cash conventions: CASH-THB, USD-CASH
    - Indices with caret: ^SET

    Args:
        value: Raw ticker input

    Returns:
        Normalized ticker (uppercase, trimmed)

    Raises:
        ValueError: If ticker format is invalid
    """
    if not value:
        raise ValueError("Ticker cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > TICKER_MAX_LENGTH:
        raise ValueError(f"Ticker cannot exceed {TICKER_MAX_LENGTH} characters")

    if not TICKER_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid ticker format: '{normalized}'. "
            "Ticker must be alphanumeric and may include dots (.), "
            "dashes (-) or underscores (_)"
        )

    return normalized


def normalize_ticker(value: str | None) -> str:
    """Normalize ticker without strict validation."""
    return value.strip().upper() if value else ""


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """
    Validate and normalize a transaction currency.

    Args:
        value: Raw currency input (e.g., "usd", "THB")

    Returns:
        "USD" or "THB"

    Raises:
        ValueError: If the currency is not USD or THB
    """
    if not value:
        raise ValueError("Currency cannot be empty")

    normalized = value.strip().upper()

    if normalized not in SUPPORTED_CURRENCIES:
        raise ValueError(
            f"Unsupported currency: '{normalized}'. Valid options: USD, THB"
        )

    return normalized


def normalize_cost_currency(value: str | None) -> str:
    """Map a cost currency onto USD/THB: THB stays THB, anything else is USD."""
    return THB if normalize_ticker(value) == THB else USD
