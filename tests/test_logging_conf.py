# tests/test_logging_conf.py
"""Tests for root logger setup."""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from lkrates.shared.logging_conf import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    def test_log_dir_creates_rotating_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        setup_logging(level="DEBUG", log_dir=log_dir, log_to_stdout=False)

        root = logging.getLogger()
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename == str(log_dir / "lkrates.log")
        assert root.level == logging.DEBUG
        assert log_dir.is_dir()

    def test_log_file_with_missing_parent(self, tmp_path):
        target = tmp_path / "nested" / "run.log"
        setup_logging(log_file=target, log_to_stdout=False, max_bytes=1024, backup_count=2)

        handler = next(h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler))
        assert handler.maxBytes == 1024
        assert handler.backupCount == 2
        assert target.parent.is_dir()

    def test_falls_back_to_stdout_when_nothing_enabled(self):
        setup_logging(log_to_stdout=False)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert not isinstance(handlers[0], RotatingFileHandler)

    def test_env_var_disables_stdout(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LKRATES_LOG_STDOUT", "false")
        setup_logging(log_dir=tmp_path)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RotatingFileHandler)

    def test_quiets_noisy_loggers(self):
        setup_logging(level=logging.DEBUG, log_to_stdout=True)
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING
