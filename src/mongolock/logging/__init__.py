"""mongolock Logging Module.

Centralized logging configuration for mongolock: console output, optional
rotating log files, and quieting of chatty driver loggers.
"""

from .logger_setup import (
    LoggerConfigError,
    LoggingConfig,
    configure_logging,
    get_logger,
    setup_logging,
)

__all__ = [
    "LoggerConfigError",
    "LoggingConfig",
    "configure_logging",
    "get_logger",
    "setup_logging",
]
