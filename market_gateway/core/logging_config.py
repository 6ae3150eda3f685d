"""
Logging configuration for Market Gateway.
Every module logs under the ``market_gateway`` namespace, as JSON
(python-json-logger) in deployments or as plain text locally.
"""

import logging
import logging.config
import sys
from typing import Dict, Any
from pythonjsonlogger import jsonlogger

from .config import settings

LOGGER_NAMESPACE = "market_gateway"

FORMATTERS = {
    "json": {
        "()": jsonlogger.JsonFormatter,
        "format": "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(funcName)s %(lineno)d",
        "datefmt": "%Y-%m-%d %H:%M:%S"
    },
    "text": {
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s (%(filename)s:%(lineno)d)",
        "datefmt": "%Y-%m-%d %H:%M:%S"
    },
}

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "redis", "uvicorn.access")


def build_logging_config(log_format: str, log_level: str) -> Dict[str, Any]:
    """dictConfig payload sending every record to stdout in ``log_format``."""
    logger_config = {"handlers": ["console"], "level": log_level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {log_format: FORMATTERS[log_format]},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": log_format,
                "stream": sys.stdout
            }
        },
        "loggers": {
            "": dict(logger_config),
            LOGGER_NAMESPACE: dict(logger_config),
        }
    }


def setup_logging() -> None:
    """Apply the configured format and level to the root and gateway loggers."""
    logging.config.dictConfig(build_logging_config(settings.log_format, settings.log_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger under the gateway namespace; already-qualified names are kept."""
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def create_logger(module_name: str) -> logging.Logger:
    return get_logger(module_name)
