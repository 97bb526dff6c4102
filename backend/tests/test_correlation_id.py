# tests/test_correlation_id.py
"""
Tests for correlation ID context management.
"""

from tracker.utils.context import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        """Should return None when correlation ID is not set."""
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Should set and retrieve correlation ID."""
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        clear_correlation_id()

    def test_clear_correlation_id(self):
        """Should clear correlation ID."""
        set_correlation_id("test-correlation-456")
        clear_correlation_id()
        assert get_correlation_id() is None


class TestCorrelationScope:
    """Tests for correlation_scope()."""

    def test_generates_id_and_restores(self):
        """Should bind a fresh ID inside the block and unbind after."""
        clear_correlation_id()

        with correlation_scope() as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_explicit_id(self):
        clear_correlation_id()

        with correlation_scope("view-42") as correlation_id:
            assert correlation_id == "view-42"

        assert get_correlation_id() is None

    def test_reuses_existing_id(self):
        """Should keep an ID already set by the hosting service."""
        set_correlation_id("outer-id")

        with correlation_scope() as correlation_id:
            assert correlation_id == "outer-id"

        assert get_correlation_id() == "outer-id"
        clear_correlation_id()

    def test_nested_explicit_id_restores_outer(self):
        set_correlation_id("outer-id")

        with correlation_scope("inner-id"):
            assert get_correlation_id() == "inner-id"

        assert get_correlation_id() == "outer-id"
        clear_correlation_id()
