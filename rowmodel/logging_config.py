"""
Persistence logging configuration.

This module sets up logging for the ``rowmodel`` logger hierarchy. The log
level comes from the ``logging`` section of the configuration file, while
formatting and handlers for persistence operations are configured here.
"""

import logging
import sys
from typing import Dict, Any, Mapping, Optional
from pathlib import Path

from .security import SensitiveDataFilter

ROOT_LOGGER_NAME = 'rowmodel'


class SafeFormatter(logging.Formatter):
    """Formatter that provides default values for missing fields."""

    def format(self, record):
        if not hasattr(record, 'table_context'):
            record.table_context = 'rowmodel'
        return super().format(record)


def setup_model_logging(main_config: Dict[str, Any]) -> logging.Logger:
    """
    Setup persistence logging based on the main configuration.

    Args:
        main_config: Configuration dictionary with an optional ``logging`` section

    Returns:
        Configured ``rowmodel`` logger
    """
    logging_config = main_config.get('logging', {})
    log_level = str(logging_config.get('level', 'INFO')).upper()
    log_dir = Path(logging_config.get('log_dir', 'logs'))

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level))

    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)

    if log_level == 'DEBUG':
        debug_handler = logging.FileHandler(log_dir / 'rowmodel_debug.log')
        debug_handler.setFormatter(SafeFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(table_context)s] '
            '%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        debug_handler.setLevel(logging.DEBUG)
        logger.addHandler(debug_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(SafeFormatter(
            '%(asctime)s - DB - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        ))
        console_handler.setLevel(logging.INFO)
        logger.addHandler(console_handler)
    else:
        info_handler = logging.FileHandler(log_dir / 'rowmodel.log')
        info_handler.setFormatter(SafeFormatter(
            '%(asctime)s.%(msecs)03d - [%(table_context)s] - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        info_handler.setLevel(getattr(logging, log_level))
        logger.addHandler(info_handler)

    sensitive_filter = SensitiveDataFilter()
    for handler in logger.handlers:
        handler.addFilter(sensitive_filter)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def log_query(logger: logging.Logger, query: str,
              params: Optional[Mapping[str, Any]] = None) -> None:
    """
    Log a generated statement and its bound parameters at DEBUG.

    Args:
        logger: Logger or adapter
        query: SQL statement text
        params: Bound parameters
    """
    if logger.isEnabledFor(logging.DEBUG):
        if params:
            logger.debug(f"Query: {query} | Params: {dict(params)}")
        else:
            logger.debug(f"Query: {query}")


class EntityLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds the entity's table to every record.

    The table name is exposed as ``table_context`` for the formatters
    installed by ``setup_model_logging``.
    """

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        if 'extra' not in kwargs:
            kwargs['extra'] = {}
        kwargs['extra']['table_context'] = self.extra.get('table', 'rowmodel')
        return msg, kwargs

    def query(self, query: str, params: Optional[Mapping[str, Any]] = None) -> None:
        """Log a generated statement."""
        log_query(self, query, params)

    def failure(self, operation: str, error: Exception) -> None:
        """Log a failed operation together with the driver message."""
        self.error(f"{operation} failed: {error}")
