# backend/tracker/utils/__init__.py
"""
Utility modules for the portfolio tracker.

This package contains cross-cutting utilities used throughout the engine:
- logging: Logging configuration and setup with correlation ID support
- context: Correlation ID management for one portfolio view
- fx_conversion: USD/THB conversion helpers (import directly)

Usage:
    from tracker.utils import setup_logging
    from tracker.utils import get_correlation_id, correlation_scope
    from tracker.utils.fx_conversion import convert_amount
"""

from tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    correlation_scope,
)
from tracker.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "correlation_scope",
]
