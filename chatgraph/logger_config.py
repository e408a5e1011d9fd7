"""
Logging configuration for chat-graph.

Sets up logging with dictConfig. Records go to stderr so that the JSON and
debug renderers can own stdout.

Environment Variables:
    LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if not set or invalid.
    NEO4J_LOG_LEVEL: Level for the neo4j driver's own loggers.
               Defaults to WARNING; the driver is chatty at INFO.

Usage:
    from chatgraph.logger_config import setup_logging
    setup_logging()  # Uses LOG_LEVEL env var, defaults to INFO

    # Or override explicitly:
    setup_logging(level=logging.DEBUG)
"""

import logging
import logging.config
import os
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level_from_env(var_name: str, default: int) -> int:
    level_name = os.getenv(var_name, "").upper()
    level = getattr(logging, level_name, None) if level_name else None

    if level is None or not isinstance(level, int):
        return default

    return level


def get_log_level() -> int:
    """
    Get log level from LOG_LEVEL environment variable.

    Supports: DEBUG, INFO, WARNING, ERROR, CRITICAL (case-insensitive).
    Defaults to INFO if not set or invalid.

    Returns:
        Logging level constant (e.g., logging.INFO).
    """
    return _level_from_env("LOG_LEVEL", logging.INFO)


def get_driver_log_level() -> int:
    """Get the neo4j driver log level from NEO4J_LOG_LEVEL (default WARNING)."""
    return _level_from_env("NEO4J_LOG_LEVEL", logging.WARNING)


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the application using dictConfig.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        level: Logging level. If None, reads from LOG_LEVEL env var (default: INFO).
        format_string: Optional custom format string.
        log_file: Optional file path to write logs to (with rotation).
    """
    if level is None:
        level = get_log_level()

    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": format_string or DEFAULT_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "neo4j": {"level": get_driver_log_level()},
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10_485_760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    logging.config.dictConfig(config)
