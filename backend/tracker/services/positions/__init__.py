# backend/tracker/services/positions/__init__.py
"""
Position-accounting engine.

Pure entry points:
    calculate_positions()  - balances + ledger -> ticker -> Position
    enrich_positions()     - positions + prices -> display-currency rows
    compute_summary()      - enriched rows -> PortfolioSummary
    validate_positions()   - positions -> Diagnostic list

Orchestrator:
    PortfolioService.get_portfolio() - sources -> PortfolioView
"""

from tracker.services.positions.classifier import (
    CashClassifier,
    cash_face_value_usd,
    is_cash_asset,
    is_thb_cash,
)
from tracker.services.positions.enricher import enrich_positions
from tracker.services.positions.folder import LedgerFolder, calculate_positions
from tracker.services.positions.service import PortfolioService
from tracker.services.positions.summary import compute_summary, validate_positions
from tracker.services.positions.types import (
    Diagnostic,
    DiagnosticKind,
    EnrichedPosition,
    FoldResult,
    InitialBalance,
    LedgerEntry,
    PortfolioSummary,
    PortfolioView,
    Position,
    PriceQuote,
)

__all__ = [
    # Engine
    "calculate_positions",
    "enrich_positions",
    "compute_summary",
    "validate_positions",
    "LedgerFolder",
    "PortfolioService",
    # Classifier
    "CashClassifier",
    "is_cash_asset",
    "is_thb_cash",
    "cash_face_value_usd",
    # Types
    "InitialBalance",
    "LedgerEntry",
    "PriceQuote",
    "Position",
    "FoldResult",
    "EnrichedPosition",
    "PortfolioSummary",
    "PortfolioView",
    "Diagnostic",
    "DiagnosticKind",
]
