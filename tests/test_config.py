"""
Tests for configuration and logging setup.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

from stromcollect.config import Config, get_config
from stromcollect.logging_config import JSONFormatter, configure_logging


class TestConfig:
    def test_defaults_validate(self):
        assert get_config() is Config

    def test_rejects_unknown_log_level(self, monkeypatch):
        monkeypatch.setattr(Config, "LOG_LEVEL", "LOUD")

        with pytest.raises(ValueError, match="STROMCOLLECT_LOG_LEVEL"):
            Config.validate()

    def test_rejects_empty_prefix(self, monkeypatch):
        monkeypatch.setattr(Config, "EXPORT_PREFIX", "  ")

        with pytest.raises(ValueError, match="STROMCOLLECT_EXPORT_PREFIX"):
            Config.validate()

    def test_event_log_can_be_disabled(self, monkeypatch):
        monkeypatch.setattr(Config, "EVENT_LOG", "")
        assert Config.event_log_path() is None

        monkeypatch.setattr(Config, "EVENT_LOG", "data/events.jsonl")
        assert Config.event_log_path() == Path("data/events.jsonl")


class TestJSONFormatter:
    """Tests for structured log output."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="stromcollect.export.pipeline",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Exported %d files",
            args=(3,),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_standard_fields(self):
        data = json.loads(JSONFormatter().format(self.make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "stromcollect.export.pipeline"
        assert data["message"] == "Exported 3 files"
        assert "timestamp" in data

    def test_extra_fields_included(self):
        data = json.loads(
            JSONFormatter().format(self.make_record(collection_id="c-1", export_path="/tmp/x"))
        )

        assert data["collection_id"] == "c-1"
        assert data["export_path"] == "/tmp/x"

    def test_exception_included(self):
        try:
            raise OSError("disk full")
        except OSError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "disk full" in data["exception"]


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "stromcollect.log"
    configure_logging(level="INFO", json_format=True, log_file=str(log_file))

    logging.getLogger("stromcollect.test").info("hello", extra={"collection_id": "c-1"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    entry = json.loads(log_file.read_text().splitlines()[-1])
    assert entry["message"] == "hello"
    assert entry["collection_id"] == "c-1"

    configure_logging(level="WARNING")
