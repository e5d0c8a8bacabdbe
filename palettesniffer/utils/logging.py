"""
Palette Sniffer Logging
Sink configuration for loguru. Modules log through ``from loguru import logger``
and attach request ids with ``logger.bind``.
"""
import sys
from typing import Any

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message} | {extra}"


def configure_logging(level: str = "INFO", serialize: bool = False, sink: Any = None) -> int:
    """Replace loguru's default handler with the service format; returns the handler id."""
    logger.remove()
    return logger.add(sink or sys.stdout, format=LOG_FORMAT, level=level, serialize=serialize)
