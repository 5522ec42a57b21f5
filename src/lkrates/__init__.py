# src/lkrates/__init__.py
"""
lkrates - USD/LKR Exchange Rate Scraper

Scrapes USD/LKR rates from Sri Lankan bank websites concurrently, validates
them against sanity bounds, stores the samples and gates external scrape
triggers with a sliding-window rate limiter.
"""

__version__ = "0.1.0"
