"""
Logging setup for processes that run the engine.

Library modules only create module loggers. ``setup_logging`` belongs to
entry points such as ``python -m recengine`` and leaves a root logger that
the host application already configured alone.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

from .settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the HTTP client stack
QUIET_LOGGERS = ("aiohttp.client", "aiohttp.internal", "asyncio")


def _resolve_level(level: Optional[str]) -> int:
    return getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)


def _rotating_file_handler(path: str) -> logging.Handler:
    target = Path(path)
    if not target.is_absolute():
        target = Path.cwd() / target
    target.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        str(target),
        maxBytes=settings.LOG_MAX_SIZE,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )


def setup_logging(level: Optional[str] = None) -> bool:
    """
    Attach a console handler, plus a rotating file handler when
    ``ENABLE_FILE_LOG`` is set, to the root logger.

    ``level`` overrides ``LOG_LEVEL``. Returns False, changing nothing, when
    the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    log_level = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    file_error = None
    if settings.ENABLE_FILE_LOG and settings.LOG_FILE_PATH:
        try:
            handlers.append(_rotating_file_handler(settings.LOG_FILE_PATH))
        except OSError as e:
            file_error = e

    root.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    if file_error:
        logger.warning(f"File logging unavailable, console only: {file_error}")
    logger.debug(f"📊 Log level: {logging.getLevelName(log_level)}")
    return True


def get_logger(name: str) -> logging.Logger:
    """Return a logger instance."""
    return logging.getLogger(name)
