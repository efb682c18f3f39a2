"""Tests for logger.py: setup_logging() and JsonFormatter.

Covers:
- CLI mode logging (stderr handler, optional file)
- MCP mode logging (file handler only)
- Level precedence: debug flag, LOG_LEVEL, YAML level, mode default
- JSON formatter output
- HTTP library logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from halo_sync.logger import DEFAULT_MCP_LOG_FILE, JsonFormatter, setup_logging


@pytest.fixture(autouse=True)
def clean_log_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)


def _handlers(mock_basic):
    handlers = mock_basic.call_args[1]["handlers"]
    return handlers


def _close(handlers):
    for handler in handlers:
        handler.close()


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("halo_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        handlers = _handlers(mock_basic)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    @patch("halo_sync.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        log_file = tmp_path / "cli.log"
        setup_logging(mode="cli", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        try:
            assert len(handlers) == 2
            assert isinstance(handlers[1], logging.FileHandler)
            assert handlers[1].baseFilename == str(log_file)
        finally:
            _close(handlers)

    @patch("halo_sync.logger.logging.basicConfig")
    def test_mcp_mode_logs_to_file_only(self, mock_basic, tmp_path):
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        try:
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.FileHandler)
            assert handlers[0].baseFilename == str(log_file)
        finally:
            _close(handlers)

    @patch("halo_sync.logger.logging.FileHandler")
    @patch("halo_sync.logger.logging.basicConfig")
    def test_mcp_mode_default_log_file(self, mock_basic, mock_file_handler):
        setup_logging(mode="mcp")
        mock_file_handler.assert_called_once_with(
            DEFAULT_MCP_LOG_FILE, mode="a"
        )

    @patch("halo_sync.logger.logging.FileHandler")
    @patch("halo_sync.logger.logging.basicConfig")
    def test_log_file_env_var(self, mock_basic, mock_file_handler, monkeypatch):
        monkeypatch.setenv("LOG_FILE", "/tmp/elsewhere.log")
        setup_logging(mode="mcp")
        mock_file_handler.assert_called_once_with(
            "/tmp/elsewhere.log", mode="a"
        )

    @patch("halo_sync.logger.logging.FileHandler")
    @patch("halo_sync.logger.logging.basicConfig")
    def test_mcp_default_level_is_warning(self, mock_basic, _mock_fh):
        setup_logging(mode="mcp")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("halo_sync.logger.logging.basicConfig")
    def test_cli_default_level_is_info(self, mock_basic):
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("halo_sync.logger.logging.basicConfig")
    def test_yaml_level_used(self, mock_basic):
        setup_logging(mode="cli", level="error")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("halo_sync.logger.logging.basicConfig")
    def test_env_level_beats_yaml(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        setup_logging(mode="cli", level="ERROR")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("halo_sync.logger.logging.basicConfig")
    def test_debug_beats_everything(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True, level="ERROR")
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("halo_sync.logger.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic):
        setup_logging(mode="cli", level="chatty")
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("halo_sync.logger.logging.basicConfig")
    def test_json_format_uses_json_formatter(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        assert isinstance(_handlers(mock_basic)[0].formatter, JsonFormatter)

    @patch("halo_sync.logger.logging.basicConfig")
    def test_http_loggers_silenced(self, _mock_basic):
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, msg="hello %s", args=("world",), exc_info=None):
        return logging.LogRecord(
            name="halo_sync.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_basic_output(self):
        data = json.loads(JsonFormatter().format(self._record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "halo_sync.test"
        assert data["msg"] == "hello world"
        assert "ts" in data
        assert "exc" not in data

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record(exc_info=sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in data["exc"]

    def test_single_line_output(self):
        output = JsonFormatter().format(self._record("a\nb", ()))
        assert "\n" not in output
