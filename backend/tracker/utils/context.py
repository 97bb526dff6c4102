# backend/tracker/utils/context.py
"""
Request context management for the portfolio tracker.

Holds the correlation ID of the portfolio view currently being computed so
that every log line emitted by the folder, enricher and summarizer can be
tied back to one request.

Uses Python's contextvars for async-safe storage that automatically
propagates through async/await calls.

Usage:
    from tracker.utils.context import correlation_scope, get_correlation_id

    with correlation_scope():
        get_correlation_id()  # "5f0c..." (generated)
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """
    Get the current request's correlation ID.

    Returns:
        The correlation ID for the current request, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current request."""
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block.

    An ID that is already bound (set by the hosting service) is reused, so
    nested scopes never replace the caller's ID.

    Args:
        correlation_id: Explicit ID to bind; generated when omitted

    Yields:
        The correlation ID in effect inside the block
    """
    existing = _correlation_id_var.get()
    if existing is not None and correlation_id is None:
        yield existing
        return

    token = _correlation_id_var.set(correlation_id or uuid.uuid4().hex)
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)
