"""
Stock Ledger Logging Configuration

All service loggers live under the ``stockledger`` namespace. Ledger writes
log one INFO line per mutation (item, delta, resulting balance), so the
application log doubles as a readable trail of balance changes.
"""
import logging
import logging.handlers
import sys
from typing import Optional

from .config import settings

ROOT_LOGGER_NAME = "stockledger"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _rotating_handler(filename: str, level: int, max_mb: int, backups: int) -> logging.Handler:
    settings.LOG_DIR.mkdir(exist_ok=True, parents=True)
    handler = logging.handlers.RotatingFileHandler(
        settings.LOG_DIR / filename,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding='utf-8'
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Configure the ``stockledger`` logger

    Console output goes to stdout. With file logging on (``LOG_TO_FILE``),
    everything at the configured level goes to ``LOG_FILE`` and errors are
    copied to ``ERROR_LOG_FILE``. Calling it again replaces the handlers.
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    handlers = []
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        handlers.append(console)
    if log_to_file:
        handlers.append(_rotating_handler(settings.LOG_FILE, level, max_mb=10, backups=5))
        handlers.append(_rotating_handler(settings.ERROR_LOG_FILE, logging.ERROR, max_mb=5, backups=3))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one service area, e.g. ``get_logger("stock.ledger")``"""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    'setup_logging',
    'get_logger',
]
