"""
Logging setup for the shortlink service.

Modules log through ``logging.getLogger(__name__)``; this only installs the
handler on the package logger once, at application startup.
"""

import logging

from shortlink_app.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None) -> logging.Logger:
    """Attach a stream handler to the ``shortlink_app`` logger (idempotent)."""
    logger = logging.getLogger("shortlink_app")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel((level or settings.log_level).upper())
    return logger
