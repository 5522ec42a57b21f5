# tests/test_app.py
"""
Application Tests - Composition Root and CLI

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- lkrates.app (build_application, build_window_store, run_cli, main)
- lkrates.config.settings (Settings)
- unittest.mock (patch for HTTP responses)
- pytest (testing framework, tmp_path and capsys fixtures)
"""
from unittest.mock import Mock, patch

import pytest
import requests

from lkrates.adapters.persistence.redis_store import RedisWindowStore
from lkrates.app import EXIT_ALL_FAILED, EXIT_OK, EXIT_USAGE, build_application, build_window_store, run_cli
from lkrates.config.settings import Settings
from lkrates.shared.rate_limiter import InMemoryWindowStore

GET = "lkrates.adapters.extractors.base.requests.get"

SAMPATH_PAYLOAD = {"data": [{"CurrCode": "USD", "TTBUY": "297.50", "ODBUY": "295.87", "TTSEL": "304.00"}]}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENABLED_SOURCES="sampath,cbsl",
        SAMPATH_MAX_ATTEMPTS=1,
        CBSL_MAX_ATTEMPTS=1,
        DATA_DIR=tmp_path,
        RATE_LIMIT_MAX_REQUESTS=2,
    )


def _json_response(payload):
    resp = Mock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class TestBuildApplication:
    def test_in_memory_store_without_redis(self, settings):
        assert isinstance(build_window_store(settings), InMemoryWindowStore)

    def test_redis_store_with_url(self, tmp_path):
        settings = Settings(_env_file=None, REDIS_URL="redis://localhost:6379/0", DATA_DIR=tmp_path)
        assert isinstance(build_window_store(settings), RedisWindowStore)

    async def test_wiring(self, settings):
        app = build_application(settings)
        assert app.service.available_sources() == ["sampath", "cbsl"]
        assert app.gate.limit == 2
        assert app.trigger.trigger_key == "scraping_trigger"
        assert app.repository.data_dir == settings.data_dir
        await app.aclose()


class TestRunCli:
    @patch(GET)
    async def test_selected_source_success(self, mock_get, settings, capsys):
        mock_get.return_value = _json_response(SAMPATH_PAYLOAD)
        app = build_application(settings, window_store=InMemoryWindowStore())

        code = await run_cli(app, ["sampath"])

        assert code == EXIT_OK
        assert "[OK]   sampath" in capsys.readouterr().out
        assert len(app.repository.load_samples()) == 1

    @patch(GET)
    async def test_partial_batch_exits_zero(self, mock_get, settings, capsys):
        def fake_get(url, **kwargs):
            if "sampath" in url:
                return _json_response(SAMPATH_PAYLOAD)
            raise requests.exceptions.ConnectionError("unreachable")

        mock_get.side_effect = fake_get
        app = build_application(settings, window_store=InMemoryWindowStore())

        code = await run_cli(app, [])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "1/2 sources succeeded" in out
        assert "[FAIL] cbsl" in out
        assert len(app.repository.load_batch_logs()) == 1

    @patch(GET)
    async def test_all_failed_exits_one(self, mock_get, settings):
        mock_get.side_effect = requests.exceptions.Timeout("slow")
        app = build_application(settings, window_store=InMemoryWindowStore())
        assert await run_cli(app, []) == EXIT_ALL_FAILED

    async def test_unknown_source_exits_two(self, settings, capsys):
        app = build_application(settings, window_store=InMemoryWindowStore())
        assert await run_cli(app, ["hnb"]) == EXIT_USAGE
        assert "Unknown source(s): hnb" in capsys.readouterr().err
