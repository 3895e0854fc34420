"""
Tests for the console logging configuration.
"""

import logging

from common.logging_config import COMPONENT_LOGGERS, QUIET_LOGGERS, build_logging_config, get_logger


class TestBuildLoggingConfig:
    """Tests for the dictConfig schema."""

    def test_handler_level_follows_setting(self):
        config = build_logging_config("warning")
        assert config["handlers"]["console"]["level"] == "WARNING"
        assert config["handlers"]["console"]["class"] == "rich.logging.RichHandler"

    def test_every_component_has_a_logger(self):
        loggers = build_logging_config("INFO")["loggers"]
        for name in COMPONENT_LOGGERS:
            assert loggers[name] == {"level": "DEBUG"}

    def test_http_libraries_quieted(self):
        loggers = build_logging_config("DEBUG")["loggers"]
        for name in QUIET_LOGGERS:
            assert loggers[name] == {"level": "WARNING"}


class TestGetLogger:
    """Tests for named logger access."""

    def test_named_logger(self):
        logger = get_logger("park_ranker")
        assert logger.name == "park_ranker"
        assert logger.level == logging.DEBUG

    def test_root_has_console_handler(self):
        get_logger("ticketing")
        assert any(type(handler).__name__ == "RichHandler" for handler in logging.getLogger().handlers)
