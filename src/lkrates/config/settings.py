# src/lkrates/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Every value can be overridden with an environment variable or a .env file.

Files that USE this module:
- lkrates.app (loads settings and wires the application)
- lkrates.adapters.extractors.registry (per-source URLs, timeouts and retry policy)
- lkrates.adapters.extractors.browser (browser launch options)
- lkrates.shared.logging_conf (via lkrates.app, logging options)

Files that this module USES:
- lkrates.shared.validators (validation functions for settings)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from pathlib import Path  # Object-oriented filesystem paths
from typing import List, Optional  # Type hints for optional values

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from lkrates.shared.validators import (
    KNOWN_SOURCE_IDS,  # Ids that have an extractor implementation
    parse_source_list,  # Split comma-separated source lists
    unknown_sources,  # Find ids without an implementation
    validate_http_url,  # Validate source URLs
    validate_redis_url,  # Validate REDIS_URL
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- Sources ---
    enabled_sources: str = Field(default="combank,ndb,sampath,cbsl", alias="ENABLED_SOURCES")

    # --- HTTP Settings ---
    http_timeout_seconds: int = Field(default=15, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=120)
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        alias="USER_AGENT",
    )

    # --- Commercial Bank (browser) ---
    combank_url: str = Field(default="https://www.combank.lk/rates-tariff#exchange-rates", alias="COMBANK_URL")
    combank_timeout_seconds: int = Field(default=30, alias="COMBANK_TIMEOUT_SECONDS", ge=1, le=120)
    combank_max_attempts: int = Field(default=3, alias="COMBANK_MAX_ATTEMPTS", ge=1, le=10)
    combank_base_delay_ms: int = Field(default=2000, alias="COMBANK_BASE_DELAY_MS", ge=0)

    # --- NDB Bank (browser) ---
    ndb_url: str = Field(default="https://www.ndbbank.com/rates/exchange-rates", alias="NDB_URL")
    ndb_timeout_seconds: int = Field(default=15, alias="NDB_TIMEOUT_SECONDS", ge=1, le=120)
    ndb_max_attempts: int = Field(default=3, alias="NDB_MAX_ATTEMPTS", ge=1, le=10)
    ndb_base_delay_ms: int = Field(default=1000, alias="NDB_BASE_DELAY_MS", ge=0)

    # --- Sampath Bank (JSON API) ---
    sampath_url: str = Field(default="https://www.sampath.lk/api/exchange-rates", alias="SAMPATH_URL")
    # Unset means HTTP_TIMEOUT_SECONDS
    sampath_timeout_seconds: Optional[int] = Field(default=None, alias="SAMPATH_TIMEOUT_SECONDS", ge=1, le=120)
    sampath_max_attempts: int = Field(default=3, alias="SAMPATH_MAX_ATTEMPTS", ge=1, le=10)
    sampath_base_delay_ms: int = Field(default=1000, alias="SAMPATH_BASE_DELAY_MS", ge=0)

    # --- Central Bank of Sri Lanka (static HTML) ---
    cbsl_url: str = Field(default="https://www.cbsl.gov.lk/", alias="CBSL_URL")
    cbsl_timeout_seconds: Optional[int] = Field(default=None, alias="CBSL_TIMEOUT_SECONDS", ge=1, le=120)
    cbsl_max_attempts: int = Field(default=3, alias="CBSL_MAX_ATTEMPTS", ge=1, le=10)
    cbsl_base_delay_ms: int = Field(default=1000, alias="CBSL_BASE_DELAY_MS", ge=0)

    # --- Browser automation ---
    browser_headless: bool = Field(default=True, alias="BROWSER_HEADLESS")
    chrome_executable_path: Optional[str] = Field(default=None, alias="CHROME_EXECUTABLE_PATH")
    browser_settle_ms: int = Field(default=2000, alias="BROWSER_SETTLE_MS", ge=0, le=30000)

    # --- Admission gate (trigger rate limit) ---
    redis_url: str = Field(default="", alias="REDIS_URL")
    rate_limit_window_ms: int = Field(default=60 * 60 * 1000, alias="RATE_LIMIT_WINDOW_MS", ge=1000)
    rate_limit_max_requests: int = Field(default=1, alias="RATE_LIMIT_MAX_REQUESTS", ge=1)
    rate_limit_key_prefix: str = Field(default="scraping_api:", alias="RATE_LIMIT_KEY_PREFIX")
    trigger_key: str = Field(default="scraping_trigger", alias="TRIGGER_KEY")

    # --- Persistence ---
    data_dir: Path = Field(default=Path("./data"), alias="DATA_DIR")

    # --- Logging (for server deployment) ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_stdout: bool = Field(default=True, alias="LKRATES_LOG_STDOUT")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @property
    def enabled_source_ids(self) -> List[str]:
        """Enabled source ids in registration order."""
        return parse_source_list(self.enabled_sources)

    @property
    def uses_redis(self) -> bool:
        return bool(self.redis_url)

    @field_validator("enabled_sources")
    @classmethod
    def validate_enabled_sources(cls, v: str) -> str:
        """Reject ids without an extractor implementation."""
        ids = parse_source_list(v)
        if not ids:
            raise ValueError("ENABLED_SOURCES must name at least one source")
        unknown = unknown_sources(ids)
        if unknown:
            raise ValueError(
                f"Unknown source(s) in ENABLED_SOURCES: {', '.join(unknown)} "
                f"(known: {', '.join(KNOWN_SOURCE_IDS)})"
            )
        return v

    @field_validator("combank_url", "ndb_url", "sampath_url", "cbsl_url")
    @classmethod
    def validate_source_url(cls, v: str) -> str:
        """Validate source URL format."""
        if not validate_http_url(v):
            raise ValueError(f"Invalid source URL: {v!r}")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis(cls, v: str) -> str:
        if not validate_redis_url(v):
            raise ValueError("REDIS_URL must start with redis://, rediss:// or unix://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return level


# Global settings instance
settings = Settings()
