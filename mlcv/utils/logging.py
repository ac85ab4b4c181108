"""
Logging configuration and utilities for mlcv.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional
import sys


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the ``mlcv`` package logger.
    
    Replaces any handlers from a previous call, so it is safe to call once
    per CLI invocation.
    
    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Also write to this file, rotated at ``max_bytes``
        log_format: Format string (defaults to DEFAULT_LOG_FORMAT)
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
        
    Returns:
        The ``mlcv`` logger
    """
    fmt = log_format or DEFAULT_LOG_FORMAT
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    
    package_logger = logging.getLogger("mlcv")
    package_logger.setLevel(level)
    package_logger.handlers.clear()
    
    _attach(package_logger, logging.StreamHandler(sys.stdout), level, fmt)
    
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        _attach(package_logger, rotating, level, fmt)
    
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance under the mlcv namespace.
    
    Args:
        name: Logger name (typically a class or module name)
        
    Returns:
        Logger instance
    """
    return logging.getLogger(f"mlcv.{name}")


class LoggingMixin:
    """
    Mixin class to add logging capabilities to any class.
    
    A component may be handed its own logger for the duration of a run by
    setting ``_logger``; otherwise the class-named package logger is used.
    """
    
    _logger: Optional[logging.Logger] = None
    
    @property
    def logger(self) -> logging.Logger:
        """Get logger for this instance."""
        if self._logger is not None:
            return self._logger
        return get_logger(self.__class__.__name__)
    
    @logger.setter
    def logger(self, value: Optional[logging.Logger]) -> None:
        self._logger = value
        
    def log_info(self, msg: str, *args, **kwargs) -> None:
        """Log info message."""
        self.logger.info(msg, *args, **kwargs)
        
    def log_warning(self, msg: str, *args, **kwargs) -> None:
        """Log warning message."""
        self.logger.warning(msg, *args, **kwargs)
        
    def log_error(self, msg: str, *args, **kwargs) -> None:
        """Log error message."""
        self.logger.error(msg, *args, **kwargs)
        
    def log_debug(self, msg: str, *args, **kwargs) -> None:
        """Log debug message."""
        self.logger.debug(msg, *args, **kwargs)
