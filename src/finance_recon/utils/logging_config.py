"""Logging configuration for the reconciliation engine."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "finance_recon"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Repeated calls replace the handlers of the previous call.

    Args:
        level: Logging level, as a constant or a name such as "debug"
        log_file: Optional path to a rotating log file (always at DEBUG)
        log_format: Optional custom console format string

    Returns:
        Configured package logger
    """
    if isinstance(level, str):
        level = level_from_name(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def configure_logging(settings, verbose: bool = False) -> logging.Logger:
    """
    Apply the ``logging`` section of a ReconConfig.

    Args:
        settings: LoggingConfig with ``level``, ``format`` and ``file``
        verbose: Force DEBUG on the console regardless of ``settings.level``
    """
    return setup_logging(
        logging.DEBUG if verbose else settings.level,
        log_file=Path(settings.file) if settings.file else None,
        log_format=settings.format,
    )


def level_from_name(name: str) -> int:
    """Translate a level name such as "debug" into a logging constant."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO
