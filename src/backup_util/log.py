"""Logging setup for the backup-util command line."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .settings import BackupSettings

LOGGER_NAME = "backup-util"


def setup_logging(settings: BackupSettings, console: Console | None = None) -> logging.Logger:
    """Set up console and file logging for the ``backup-util`` logger.

    Args:
        settings: Supplies the console log level and the log file location.
        console: Rich console for log output; a stderr console if None.

    Returns:
        Configured logger instance.

    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates on repeated setup
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(getattr(logging, settings.log_level))
    logger.addHandler(console_handler)

    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    logger.addHandler(file_handler)

    return logger
