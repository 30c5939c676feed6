import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog
from pydantic import BaseModel

from shared.logging import _serialize_values, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "hat"
        log_path = setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename) == log_path
        assert log_path.parent == log_dir
        assert log_path.suffix == ".log"

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "hat")

        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_skips_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "hat") is None
        assert not (tmp_path / "hat").exists()

    def test_writes_to_nested_directory(self, tmp_path):
        log_path = setup_logging(log_dir=str(tmp_path / "nested" / "dir"))

        structlog.get_logger("test.nested").info("nested log")

        assert "nested log" in log_path.read_text()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "hat")

        structlog.contextvars.bind_contextvars(match_id="m-1")
        structlog.get_logger("test.json").info("round completed", round_index=2)
        structlog.contextvars.clear_contextvars()

        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "round completed"
        assert parsed["match_id"] == "m-1"
        assert parsed["round_index"] == 2

    def test_console_mode_produces_readable_output(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "console")
        log_path = setup_logging(log_dir=tmp_path / "hat")

        structlog.get_logger("test.console").info("console test event")

        assert "console test event" in log_path.read_text()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "invalid_value")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeValues:
    class _Phase(Enum):
        OPEN = "open"
        CLOSED = "closed"

    class _Point(BaseModel):
        x: int
        y: int

    def test_replaces_enum_with_value(self):
        result = _serialize_values(None, "", {"phase": self._Phase.OPEN, "msg": "hello"})
        assert result == {"phase": "open", "msg": "hello"}

    def test_dumps_pydantic_models(self):
        result = _serialize_values(None, "", {"point": self._Point(x=1, y=2)})
        assert result["point"] == {"x": 1, "y": 2}

    def test_replaces_values_inside_dict(self):
        result = _serialize_values(None, "", {"data": {"phase": self._Phase.CLOSED, "count": 3}})
        assert result["data"] == {"phase": "closed", "count": 3}

    def test_leaves_plain_values_unchanged(self):
        assert _serialize_values(None, "", {"count": 42, "name": "test"}) == {"count": 42, "name": "test"}
