"""Unit tests for logging configuration module.

Tests cover log levels, line formats, file logging and module-specific levels.
"""

import importlib.util
import logging
from unittest.mock import patch

import pytest

from seoaudit_ai.core.logging_config import (
    DETAILED_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


def _handler(kind):
    return next((h for h in logging.getLogger().handlers if type(h) is kind), None)


@pytest.fixture(autouse=True)
def _restore_root_handlers():
    root_logger = logging.getLogger()
    saved = root_logger.handlers[:]
    saved_level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in saved:
            handler.close()
        root_logger.removeHandler(handler)
    for handler in saved:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("debug", logging.DEBUG),  # Test lowercase
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        console_handler = _handler(logging.StreamHandler)
        assert console_handler is not None
        assert console_handler.level == expected_level

    def test_root_logger_level_is_debug(self):
        setup_logging(log_level="ERROR", enable_file=False)
        assert logging.getLogger().level == logging.DEBUG


class TestSetupLoggingFormats:
    """Test setup_logging with different line formats."""

    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", DETAILED_FORMAT),
            ("unknown", DETAILED_FORMAT),
        ],
    )
    def test_setup_logging_with_different_formats(self, log_format, expected_format):
        setup_logging(log_format=log_format, enable_file=False)

        console_handler = _handler(logging.StreamHandler)
        assert console_handler.formatter._fmt == expected_format


class TestSetupLoggingFileHandling:
    """Test setup_logging file logging functionality."""

    def test_file_handler_created_when_enabled(self, tmp_path):
        log_dir = tmp_path / "logs"
        with patch("seoaudit_ai.core.logging_config.LOG_FILE_DIR", str(log_dir)):
            with patch("seoaudit_ai.core.logging_config.ENABLE_FILE_LOGGING", True):
                setup_logging(log_level="ERROR", enable_file=True)

        file_handler = _handler(logging.FileHandler)
        assert file_handler is not None
        # File handler should always be DEBUG
        assert file_handler.level == logging.DEBUG
        assert (log_dir / "seoaudit_ai.log").exists()

    def test_file_handler_skipped_when_disabled_by_setting(self, tmp_path):
        with patch("seoaudit_ai.core.logging_config.LOG_FILE_DIR", str(tmp_path)):
            with patch("seoaudit_ai.core.logging_config.ENABLE_FILE_LOGGING", False):
                setup_logging(enable_file=True)

        assert _handler(logging.FileHandler) is None

    def test_file_handler_skipped_when_disabled_by_argument(self, tmp_path):
        with patch("seoaudit_ai.core.logging_config.LOG_FILE_DIR", str(tmp_path)):
            with patch("seoaudit_ai.core.logging_config.ENABLE_FILE_LOGGING", True):
                setup_logging(enable_file=False)

        assert _handler(logging.FileHandler) is None


class TestSetupLoggingHandlerManagement:
    """Test handler replacement and module levels."""

    def test_setup_logging_removes_existing_handlers(self):
        root_logger = logging.getLogger()
        stale = logging.NullHandler()
        root_logger.addHandler(stale)

        setup_logging(enable_file=False)

        assert stale not in root_logger.handlers
        assert len(root_logger.handlers) == 1

    @pytest.mark.parametrize("module_name", sorted(n for n in MODULE_LOG_LEVELS if n.startswith("seoaudit_ai.")))
    def test_module_levels_target_existing_packages(self, module_name):
        assert importlib.util.find_spec(module_name) is not None

    @pytest.mark.parametrize("module_name,expected_level", sorted(MODULE_LOG_LEVELS.items()))
    def test_module_specific_log_levels(self, module_name, expected_level):
        setup_logging(enable_file=False)
        assert logging.getLogger(module_name).level == getattr(logging, expected_level)


class TestGetLogger:
    """Test get_logger function."""

    def test_get_logger_returns_named_logger(self):
        logger = get_logger("seoaudit_ai.crawler.page")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "seoaudit_ai.crawler.page"

    def test_get_logger_same_name_returns_same_instance(self):
        assert get_logger("seoaudit_ai.test") is get_logger("seoaudit_ai.test")

    def test_get_logger_inherits_module_level(self):
        setup_logging(enable_file=False)
        logger = get_logger("seoaudit_ai.crawler.sitemap")
        assert logger.getEffectiveLevel() == logging.INFO
