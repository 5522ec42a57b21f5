# src/lkrates/adapters/__init__.py
"""
Adapters Layer - External Integrations

This package contains adapters for external systems:
- Bank source extractors (HTTP, JSON API, headless browser)
- Persistence (JSON-lines files, Redis window store)
- Formatting (plain-text summaries)
"""

__all__ = []
