"""Logging configuration for catmigrate.

Every module logs through a child of the ``catmigrate`` logger, which owns
the console handler (and a file handler when ``log_file`` is set). The
package level comes from ``log_level``; ``log_levels`` overrides single
modules, keyed by their name below the package, e.g.
``CATMIGRATE_LOG_LEVELS='{"migration.sigma": "DEBUG"}'``.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from .settings import get_settings

PACKAGE = "catmigrate"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)


def _qualify(name: str) -> str:
    if name == PACKAGE or name.startswith(f"{PACKAGE}."):
        return name
    return f"{PACKAGE}.{name}"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{name}'")
    return level


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """
    Configure the package logger and the per-module overrides.

    Handlers carry no level of their own, so a module raised to DEBUG
    is printed even when the package runs at INFO.

    Args:
        level: Package logging level (defaults to ``log_level``)
        log_file: Optional file path for file logging (defaults to ``log_file``)
    """
    settings = get_settings()
    log_file_path = log_file or settings.log_file
    formatter = logging.Formatter(LOG_FORMAT)

    package_logger = logging.getLogger(PACKAGE)
    package_logger.setLevel(_level(level or settings.log_level))
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # Keep migration logs out of the host application's root handlers
    package_logger.propagate = False

    for module, module_level in settings.log_levels.items():
        logging.getLogger(_qualify(module)).setLevel(_level(module_level))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger below the ``catmigrate`` package logger
    """
    if not logging.getLogger(PACKAGE).handlers:
        setup_logging()
    return logging.getLogger(_qualify(name))
