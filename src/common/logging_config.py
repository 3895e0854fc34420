"""
Console logging for the booking components.

Every component logs through a named logger; records go to a single
RichHandler on the root logger. Component loggers pass DEBUG through so the
handler level (BUS_BOOKING_LOG_LEVEL) alone decides what reaches the console.
"""

import logging
import logging.config

from common.config import LOG_LEVEL

# One logger per package, plus the storage and metrics helpers in common
COMPONENT_LOGGERS: tuple[str, ...] = (
    "geocoding_client",
    "query_scheduler",
    "fuzzy_matcher",
    "park_ranker",
    "location_reconciler",
    "booking_draft",
    "ticketing",
    "booking_app",
    "common_storage",
    "common_metrics",
)

# Chatty HTTP client libraries
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def build_logging_config(level: str = LOG_LEVEL) -> dict:
    """dictConfig schema for the Rich console handler at `level`."""
    loggers = {name: {"level": "DEBUG"} for name in COMPONENT_LOGGERS}
    loggers.update({name: {"level": "WARNING"} for name in QUIET_LOGGERS})
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"rich": {"format": "%(message)s", "datefmt": "%Y-%m-%d %H:%M:%S"}},
        "handlers": {
            "console": {
                "class": "rich.logging.RichHandler",
                "level": level.upper(),
                "formatter": "rich",
                "show_time": True,
                "show_level": True,
                "show_path": False,
                "markup": False,
            }
        },
        "loggers": loggers,
        "root": {"level": "INFO", "handlers": ["console"]},
    }


_logging_configured = False


def get_logger(logger_name: str) -> logging.Logger:
    """Return a named logger, applying the console configuration on first use."""
    global _logging_configured
    if not _logging_configured:
        logging.config.dictConfig(build_logging_config())
        _logging_configured = True
    return logging.getLogger(logger_name)
