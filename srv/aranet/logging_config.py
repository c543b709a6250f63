import logging
from logging.config import dictConfig

from . import config

_configured = False


def configure_logging(level=None):
    """Configure process-wide logging once."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else config.LOG_LEVEL

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "default",
                }
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )
    # Development server request lines.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    _configured = True
