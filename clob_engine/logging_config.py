"""
Logging configuration for the CLOB engine.

Every handler carries the credential redaction filter.
"""

import copy
import logging
import logging.config
from typing import Any, Optional


LOGGER_NAME = "clob_engine"

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "redact": {
            "()": "clob_engine.utils.structured_logging.CredentialRedactionFilter"
        }
    },
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S"
        },
        "detailed": {
            "format": (
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d "
                "- %(message)s (%(funcName)s)"
            ),
            "datefmt": "%Y-%m-%d %H:%M:%S"
        },
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s"
        },
        "structured": {
            "()": "clob_engine.utils.structured_logging.StructuredFormatter"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "standard",
            "filters": ["redact"],
            "stream": "ext://sys.stdout"
        }
    },
    "loggers": {
        LOGGER_NAME: {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        }
    },
    "root": {
        "level": "WARNING",
        "handlers": ["console"]
    }
}


def build_logging_config(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_format: bool = False,
    structured: bool = False
) -> dict[str, Any]:
    """
    Build a dictConfig for the engine loggers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional rotating log file path
        json_format: Use JSON formatting
        structured: Use the event-aware JSON formatter (overrides json_format)

    Returns:
        Logging config dict
    """
    config = copy.deepcopy(DEFAULT_LOGGING_CONFIG)
    handlers = config["handlers"]

    if level:
        config["loggers"][LOGGER_NAME]["level"] = level.upper()

    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "detailed",
            "filters": ["redact"],
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5
        }
        config["loggers"][LOGGER_NAME]["handlers"].append("file")

    if structured or json_format:
        formatter = "structured" if structured else "json"
        for handler in handlers.values():
            handler["formatter"] = formatter

    return config


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_format: bool = False,
    structured: bool = False
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON formatting
        structured: Use the event-aware JSON formatter
    """
    logging.config.dictConfig(build_logging_config(level, log_file, json_format, structured))
