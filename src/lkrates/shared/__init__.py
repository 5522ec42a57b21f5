# src/lkrates/shared/__init__.py
"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation of configuration and request input
- Rate limiting (admission gate)
- Logging configuration
"""

from lkrates.shared.validators import (
    KNOWN_SOURCE_IDS,
    parse_source_list,
    unknown_sources,
    validate_http_url,
    validate_redis_url,
    validate_source_id,
)
from lkrates.shared.rate_limiter import (
    AdmissionGate,
    InMemoryWindowStore,
    RateLimitConfig,
    WindowStore,
)

__all__ = [
    "KNOWN_SOURCE_IDS",
    "parse_source_list",
    "unknown_sources",
    "validate_http_url",
    "validate_redis_url",
    "validate_source_id",
    "AdmissionGate",
    "InMemoryWindowStore",
    "RateLimitConfig",
    "WindowStore",
]
