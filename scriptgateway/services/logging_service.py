# -*- coding: utf-8 -*-
"""Logging Service Implementation.

Copyright 2026
SPDX-License-Identifier: Apache-2.0

This module configures logging for the script gateway. Console output uses a
plain text formatter (or JSON when ``log_format=json``); an optional rotating
file handler always writes JSON records produced by python-json-logger.
"""

# Standard
import logging
from logging.handlers import RotatingFileHandler
import os
from typing import Dict, Optional

# Third-Party
from pythonjsonlogger import jsonlogger

# First-Party
from scriptgateway.config import settings
from scriptgateway.models import LogLevel

# Create a text formatter
text_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Create a JSON formatter
json_formatter = jsonlogger.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")

# RFC 5424 levels without a stdlib equivalent map onto the nearest one
_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.NOTICE: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL,
    LogLevel.EMERGENCY: logging.CRITICAL,
}

# Global handlers will be created lazily
_file_handler: Optional[RotatingFileHandler] = None
_console_handler: Optional[logging.StreamHandler] = None


def _get_file_handler() -> RotatingFileHandler:
    """Get or create the file handler.

    Returns:
        RotatingFileHandler: The file handler for JSON logging.

    Raises:
        ValueError: If file logging is disabled or no log file specified.
    """
    global _file_handler  # pylint: disable=global-statement
    if _file_handler is None:
        if not settings.log_to_file or not settings.log_file:
            raise ValueError("File logging is disabled or no log file specified")

        if settings.log_folder:
            os.makedirs(settings.log_folder, exist_ok=True)
            log_path = os.path.join(settings.log_folder, settings.log_file)
        else:
            log_path = settings.log_file

        _file_handler = RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=5)
        _file_handler.setFormatter(json_formatter)
    return _file_handler


def _get_console_handler() -> logging.StreamHandler:
    """Get or create the console handler.

    Returns:
        logging.StreamHandler: The stream handler for console logging.
    """
    global _console_handler  # pylint: disable=global-statement
    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setFormatter(json_formatter if settings.log_format == "json" else text_formatter)
    return _console_handler


class LoggingService:
    """Gateway logging service.

    Hands out named loggers that share one console handler (and the file
    handler when enabled) and keeps their level in sync.

    Examples:
        >>> service = LoggingService()
        >>> logger = service.get_logger("scriptgateway.test")
        >>> logger is service.get_logger("scriptgateway.test")
        True
        >>> service.set_level(LogLevel.DEBUG)
        >>> logger.level == logging.DEBUG
        True
    """

    def __init__(self, level: Optional[LogLevel] = None):
        """Initialize logging service.

        Args:
            level: Minimum level; defaults to ``settings.log_level``.
        """
        self._level = LogLevel(level or settings.log_level)
        self._loggers: Dict[str, logging.Logger] = {}

    @property
    def level(self) -> LogLevel:
        """Current minimum level."""
        return self._level

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create logger instance.

        Args:
            name: Logger name

        Returns:
            Logger instance
        """
        if name not in self._loggers:
            logger = logging.getLogger(name)

            console = _get_console_handler()
            if console not in logger.handlers:
                logger.addHandler(console)

            if settings.log_to_file and settings.log_file:
                try:
                    file_handler = _get_file_handler()
                    if file_handler not in logger.handlers:
                        logger.addHandler(file_handler)
                except (OSError, ValueError) as e:
                    logging.getLogger(__name__).warning(f"Failed to add file handler to logger {name}: {e}")

            logger.setLevel(_STDLIB_LEVELS[self._level])

            self._loggers[name] = logger

        return self._loggers[name]

    def set_level(self, level: LogLevel) -> None:
        """Set minimum log level for all registered loggers.

        Args:
            level: New log level
        """
        self._level = LogLevel(level)
        for logger in self._loggers.values():
            logger.setLevel(_STDLIB_LEVELS[self._level])
