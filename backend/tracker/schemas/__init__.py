# backend/tracker/schemas/__init__.py
"""
Pydantic schemas for boundary validation and responses.

This package contains:
- ledger: Opening balances and ledger entries (input, converts to engine records)
- portfolio: Portfolio view (positions, summary, diagnostics)
- validators: Reusable validation functions (ticker, currency)

Usage:
    from tracker.schemas import InitialBalanceCreate, LedgerEntryCreate
    from tracker.schemas import PortfolioResponse
"""

from tracker.schemas.ledger import InitialBalanceCreate, LedgerEntryCreate
from tracker.schemas.portfolio import (
    DiagnosticResponse,
    EnrichedPositionResponse,
    PortfolioResponse,
    PortfolioSummaryResponse,
)

__all__ = [
    # Input
    "InitialBalanceCreate",
    "LedgerEntryCreate",
    # Response
    "EnrichedPositionResponse",
    "PortfolioSummaryResponse",
    "DiagnosticResponse",
    "PortfolioResponse",
]
