"""Tests for core.config and core.logging_config."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest

from probehost.core.config import Settings
from probehost.core.logging_config import DEFAULT_LOG_FILENAME, configure_logging


class TestSettings:
    def test_allowed_hosts_parsed(self) -> None:
        s = Settings(PROBE_HTTP_ALLOWED_HOSTS=" API.example.com, *.corp.io ,,")
        assert s.http_allowed_hosts == frozenset({"api.example.com", "*.corp.io"})

    def test_relative_settings_file_under_app_data(self, tmp_path: Path) -> None:
        s = Settings(APP_DATA_DIR=tmp_path, PLUGIN_SETTINGS_FILE=Path("prefs.json"))
        assert s.plugin_settings_path == tmp_path / "prefs.json"

    def test_absolute_settings_file(self, tmp_path: Path) -> None:
        s = Settings(APP_DATA_DIR=tmp_path / "a", PLUGIN_SETTINGS_FILE=tmp_path / "b.json")
        assert s.plugin_settings_path == tmp_path / "b.json"

    def test_cors_from_comma_list(self) -> None:
        s = Settings(BACKEND_CORS_ORIGINS="http://localhost:5173, https://app.example.com/")
        assert s.all_cors_origins == ["http://localhost:5173", "https://app.example.com"]

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Settings(PROBE_TIMEOUT_MS=0)


@contextmanager
def _preserved_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        for h in root.handlers:
            if h not in handlers:
                h.close()
        root.handlers[:] = handlers
        root.setLevel(level)


class TestConfigureLogging:
    def test_stdout_only(self) -> None:
        with _preserved_root_logger():
            assert configure_logging("debug") is None
            assert logging.getLogger().level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING

    def test_file_handler(self, tmp_path: Path) -> None:
        with _preserved_root_logger():
            log_file = configure_logging("INFO", tmp_path / "logs")
            assert log_file == tmp_path / "logs" / DEFAULT_LOG_FILENAME
            logging.getLogger("probehost.test").info("written")
            for h in logging.getLogger().handlers:
                h.flush()
            assert "written" in log_file.read_text()
