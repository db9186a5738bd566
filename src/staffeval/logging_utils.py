"""Logging setup for the staffeval CLI, web app and report exports."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import AppConfig

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _console_handlers(logger: logging.Logger) -> list:
    # RotatingFileHandler is a StreamHandler subclass too
    return [handler for handler in logger.handlers if type(handler) is logging.StreamHandler]


def setup_logging(config: AppConfig) -> logging.Logger:
    """Configure the ``staffeval`` logger and return it.

    Reports, stores and the web app log through ``staffeval.<module>``
    children. ``config.log_levels`` sets a level per child, for example
    ``{"aggregator": "ERROR"}`` to hide placeholder-data tracebacks on the
    console of a dashboard that runs against a half-filled workbook.
    Calling this again (CLI, then the web app factory) reuses the handlers.
    """

    log_path = Path(config.log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("staffeval")
    logger.setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.propagate = False

    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    if not file_handlers:
        file_handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=5, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
    elif file_handlers[0].baseFilename != os.path.abspath(log_path):
        logger.warning("Log file stays at %s; %s is ignored", file_handlers[0].baseFilename, log_path)

    if not _console_handlers(logger):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console)

    for module, level in config.log_levels.items():
        logging.getLogger(f"staffeval.{module}").setLevel(level)

    logger.debug("Logging initialized at %s level", config.log_level)
    return logger


__all__ = ["setup_logging"]
