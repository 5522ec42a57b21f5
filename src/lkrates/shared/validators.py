# src/lkrates/shared/validators.py
"""
Input Validation Utilities - Configuration and Request Validation

This module validates configuration values (source lists, URLs) and the
source ids callers pass to the trigger endpoint. Rate sanity rules live in
lkrates.domain.validation.

Files that USE this module:
- lkrates.config.settings (uses validation functions in Settings field validators)
- lkrates.application.trigger_service (normalizes requested source ids)

Files that this module USES:
- None (pure utility functions)
"""
import re
from typing import Iterable, List

KNOWN_SOURCE_IDS = ("combank", "ndb", "sampath", "cbsl")

_SOURCE_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{1,31}$")


def parse_source_list(raw: str) -> List[str]:
    """
    Split a comma-separated source list, dropping blanks and duplicates.

    Args:
        raw: e.g. "combank, ndb,,sampath"

    Returns:
        Lower-cased ids in first-seen order
    """
    seen: List[str] = []
    for part in (raw or "").split(","):
        source_id = part.strip().lower()
        if source_id and source_id not in seen:
            seen.append(source_id)
    return seen


def validate_source_id(source_id: str) -> bool:
    """
    Validate the shape of a source id (short lower-case code).

    Args:
        source_id: Id to validate

    Returns:
        True if valid, False otherwise
    """
    if not source_id:
        return False
    return bool(_SOURCE_ID_PATTERN.match(source_id))


def unknown_sources(source_ids: Iterable[str], known: Iterable[str] = KNOWN_SOURCE_IDS) -> List[str]:
    """Return the ids that are not in the known set, in input order."""
    known_set = set(known)
    return [s for s in source_ids if s not in known_set]


def validate_http_url(url: str) -> bool:
    """
    Validate that a URL is an absolute http(s) URL.

    Args:
        url: URL to validate

    Returns:
        True if valid, False otherwise
    """
    if not url:
        return False
    return bool(re.match(r"^https?://[^\s/$.?#].[^\s]*$", url))


def validate_redis_url(url: str) -> bool:
    """Empty means "no Redis"; otherwise require a redis:// or rediss:// URL."""
    if not url:
        return True
    return url.startswith(("redis://", "rediss://", "unix://"))
