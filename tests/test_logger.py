"""Tests for logger module."""

import logging
import os
import time
from unittest.mock import patch

import pytest

from linkrelay.util import logger as logger_module
from linkrelay.util.logger import (
    DATE_FORMAT,
    LOG_FORMAT,
    ColorFormatter,
    PromptToolkitHandler,
    console_level,
    get_log_filepath,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


def make_record(level=logging.INFO, msg="message"):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="test_func",
    )


class TestShouldUseColor:
    """Tests for should_use_color function."""

    @patch("sys.stderr.isatty")
    def test_should_use_color_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch("sys.stderr.isatty")
    def test_should_use_color_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert should_use_color() is False

    @patch("sys.stderr.isatty")
    def test_should_use_color_exception(self, mock_isatty):
        """Test color returns False on exception."""
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:
    """Tests for ColorFormatter class."""

    def test_color_formatter_wraps_level_color(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        formatted = formatter.format(make_record(logging.ERROR, "Error message"))

        assert formatted.startswith("\033[31m")
        assert formatted.endswith("\033[0m")
        assert "Error message" in formatted

    def test_color_formatter_includes_function_name(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        formatted = formatter.format(make_record(logging.DEBUG, "Debug message"))

        assert "[test:test_func:10]" in formatted


class TestConsoleLevel:
    """Tests for the LINKRELAY_LOG_LEVEL override."""

    def test_default_is_debug(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("LINKRELAY_LOG_LEVEL", None)
            assert console_level() == logging.DEBUG

    def test_named_level(self):
        with patch.dict(os.environ, {"LINKRELAY_LOG_LEVEL": "warning"}):
            assert console_level() == logging.WARNING

    def test_unknown_level_falls_back_to_debug(self):
        with patch.dict(os.environ, {"LINKRELAY_LOG_LEVEL": "chatty"}):
            assert console_level() == logging.DEBUG


class TestSetupLogger:
    """Tests for setup_logger and get_logger."""

    def test_setup_logger_adds_console_and_file_handlers(self):
        logger = setup_logger("linkrelay_test_handlers")

        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert any(isinstance(h, PromptToolkitHandler) for h in logger.handlers)
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    def test_get_logger_does_not_duplicate_handlers(self):
        first = get_logger("linkrelay_test_idempotent")
        handler_count = len(first.handlers)

        second = get_logger("linkrelay_test_idempotent")

        assert first is second
        assert len(second.handlers) == handler_count

    def test_noisy_loggers_are_silenced(self):
        assert logging.getLogger("discord.http").level == logging.ERROR
        assert logging.getLogger("aiosqlite").propagate is False


class TestLogFilepath:
    """Tests for session log file selection."""

    def test_log_filepath_is_cached(self):
        assert get_log_filepath() == get_log_filepath()

    def test_recent_log_from_today_is_reused(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logger_module, "LOGS_DIR", tmp_path)
        monkeypatch.setattr(logger_module, "LOG_FILEPATH", None)
        recent = tmp_path / (time.strftime("%Y-%m-%d") + " 00-00-00.log")
        recent.write_text("", encoding="utf-8")

        assert get_log_filepath() == recent

    def test_stale_log_starts_new_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logger_module, "LOGS_DIR", tmp_path)
        monkeypatch.setattr(logger_module, "LOG_FILEPATH", None)
        stale = tmp_path / (time.strftime("%Y-%m-%d") + " 00-00-00.log")
        stale.write_text("", encoding="utf-8")
        old = time.time() - 3600
        os.utime(stale, (old, old))

        path = get_log_filepath()

        assert path != stale
        assert path.parent == tmp_path
        assert path.suffix == ".log"


class TestHandleException:
    """Tests for the sys.excepthook replacement."""

    def test_keyboard_interrupt_goes_to_default_hook(self):
        with patch("sys.__excepthook__") as default_hook:
            handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
        default_hook.assert_called_once()

    def test_other_exceptions_are_logged(self):
        error = ValueError("bad")
        with patch("logging.error") as log_error:
            handle_exception(ValueError, error, None)
        log_error.assert_called_once()
        assert log_error.call_args.kwargs["exc_info"][1] is error


@pytest.mark.parametrize("level", [logging.DEBUG, logging.INFO, logging.WARNING])
def test_prompt_toolkit_handler_prints_formatted_record(level):
    handler = PromptToolkitHandler(formatter=logging.Formatter("%(message)s"))

    with patch.object(logger_module, "print_formatted_text") as printer:
        handler.emit(make_record(level, "hello"))

    printer.assert_called_once()
