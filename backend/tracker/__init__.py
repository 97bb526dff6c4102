# backend/tracker/__init__.py
"""Multi-asset portfolio tracker: USD/THB position-accounting engine."""
