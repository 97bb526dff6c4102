# backend/tracker/services/constants.py
"""
Centralized constants for the position-accounting engine.

Values that operators may want to tune (default FX rate, dust epsilon,
tolerances, cash lists) live in tracker.config.Settings instead. The
constants here are fixed parts of the accounting contract.

Usage:
    from tracker.services.constants import ZERO, MONEY_QUANTUM
"""

from decimal import Decimal


# =============================================================================
# NUMERIC CONSTANTS
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")


# =============================================================================
# ROUNDING
# =============================================================================

# Currency totals in a portfolio summary are reported to the cent / satang
MONEY_QUANTUM: Decimal = Decimal("0.01")

# Percentages (summary and per-position) keep 4 decimal places
PERCENT_QUANTUM: Decimal = Decimal("0.0001")


# =============================================================================
# ASSET TYPES
# =============================================================================

# Asset type assigned when neither the opening balance nor any ledger
# entry names one; a later, more specific type replaces it
DEFAULT_ASSET_TYPE: str = "other"

# Asset type given to the cash leg of a buy entered in shorthand form
CASH_ASSET_TYPE: str = "cash"
