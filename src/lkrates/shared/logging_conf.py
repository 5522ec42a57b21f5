# src/lkrates/shared/logging_conf.py
"""
Logging Setup - Root Logger, Console and Rotating File Handlers

Scrapes run unattended, so the log is the only record of which source failed,
on which attempt, and why. Every module logs through
``logging.getLogger(__name__)``; this module wires those loggers to output.

Files that USE this module:
- lkrates.app (setup_logging, called once at startup)

Files that this module USES:
- None (standard library logging only)
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "lkrates.log"
STDOUT_ENV_VAR = "LKRATES_LOG_STDOUT"

# Third-party loggers that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "asyncio")


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, DATE_FORMAT)


def _stdout_enabled(explicit: Optional[bool]) -> bool:
    if explicit is not None:
        return explicit
    return os.environ.get(STDOUT_ENV_VAR, "true").strip().lower() in ("1", "true", "yes")


def _resolve_log_path(
    log_file: Optional[Union[str, Path]],
    log_dir: Optional[Union[str, Path]],
) -> Optional[Path]:
    """Pick the log file location; ``log_dir`` wins over ``log_file``."""
    if log_dir:
        target = Path(log_dir) / LOG_FILE_NAME
    elif log_file:
        target = Path(log_file)
    else:
        return None
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def _rotating_handler(path: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter())
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter())
    return handler


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    log_to_stdout: Optional[bool] = None,
) -> None:
    """
    Install handlers on the root logger, replacing any configured earlier.

    Args:
        level: Level number or name such as "DEBUG"
        log_file: Path of a rotating log file
        log_dir: Directory for ``lkrates.log``; takes precedence over log_file
        max_bytes: Rotation threshold per file (10MB by default)
        backup_count: Rotated files kept alongside the live one
        log_to_stdout: Console output on/off; unset means read LKRATES_LOG_STDOUT
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    active: List[logging.Handler] = []
    if _stdout_enabled(log_to_stdout):
        active.append(_console_handler())

    log_path = _resolve_log_path(log_file, log_dir)
    if log_path is not None:
        active.append(_rotating_handler(log_path, max_bytes, backup_count))

    # Something must receive records even with stdout disabled and no file
    if not active:
        active.append(_console_handler())

    logging.basicConfig(level=level, handlers=active, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready: level=%s, file=%s",
        logging.getLevelName(level),
        log_path if log_path is not None else "-",
    )
