"""
Engine configuration package.
"""

from .settings import Settings, settings
from .logging_config import setup_logging, get_logger

__all__ = [
    "Settings",
    "settings",
    "setup_logging",
    "get_logger",
]
