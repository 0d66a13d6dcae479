"""
Logging setup for MetaGov.

All MetaGov modules log through standard-library loggers named
``metagov.<package>.<module>``. This module attaches a handler to the
``metagov`` parent logger according to a LoggingConfig.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from metagov.config.schema import LoggingConfig

ROOT_LOGGER = "metagov"

_HANDLER_ATTR = "_metagov_handler"


class JsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(config: LoggingConfig, level: str | None = None) -> logging.Logger:
    """
    Configure the ``metagov`` logger.

    Replaces any handler installed by a previous call, so it is safe to
    call more than once.

    Args:
        config: Logging options.
        level: Optional level overriding ``config.level``.

    Returns:
        The configured ``metagov`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel((level or config.level).upper())

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    if config.output_path:
        path = Path(config.output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    if config.json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))

    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    return logger
