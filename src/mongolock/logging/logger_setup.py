"""Logging configuration and setup utilities for mongolock.

Library code only asks for loggers; handlers are installed by the command-line
entry point (or by the embedding application) through ``configure_logging``.
"""

import logging
import logging.config
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_LOGGER_NAME = "mongolock"

# pymongo logs every heartbeat and command at DEBUG; keep it out of lock traces.
NOISY_LOGGERS = ("pymongo",)


class LoggerConfigError(Exception):
    """Custom exception for logger configuration errors."""


@dataclass
class LoggingConfig:
    """Configuration for logging setup."""

    log_name: str = DEFAULT_LOGGER_NAME
    log_filename: str | None = None
    log_level: str = "INFO"
    log_dir: Path | None = None
    max_bytes: int = 5 * 1024 * 1024  # 5 MB
    backup_count: int = 3
    enable_console: bool = True
    enable_file: bool = False
    quiet_loggers: tuple[str, ...] = field(default=NOISY_LOGGERS)


def validate_log_level(log_level: str) -> int:
    """Validate and return the numeric log level."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        error_msg = f"Invalid log level: {log_level}"
        raise LoggerConfigError(error_msg)
    return numeric_level


def get_default_log_dir() -> Path:
    """Get the default log directory based on environment."""
    var_log_path = Path("/var/log")
    if var_log_path.exists() and os.access("/var/log", os.W_OK):
        return Path("/var/log/mongolock")
    return Path.home() / ".local" / "log" / "mongolock"


def create_logging_config(config: LoggingConfig) -> dict[str, Any]:
    """Create a ``dictConfig`` compatible logging configuration."""
    numeric_level = validate_log_level(config.log_level)

    formatters = {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "detailed": {
            "format": "%(asctime)s %(levelname)s %(name)s [%(process)d:%(threadName)s]:%(lineno)d: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    }

    handlers: dict[str, dict[str, Any]] = {}

    if config.enable_file:
        log_dir = get_default_log_dir() if config.log_dir is None else config.log_dir
        log_filename = config.log_filename or f"{config.log_name}.log"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error_msg = f"Failed to create log directory {log_dir}: {e}"
            raise LoggerConfigError(error_msg) from e

        handlers["file_handler"] = {
            "level": numeric_level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_dir / log_filename),
            "maxBytes": config.max_bytes,
            "backupCount": config.backup_count,
            "formatter": "detailed",
            "encoding": "utf8",
        }

    if config.enable_console:
        handlers["console_handler"] = {
            "level": numeric_level,
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }

    loggers: dict[str, dict[str, Any]] = {
        config.log_name: {
            "handlers": list(handlers.keys()),
            "level": numeric_level,
            "propagate": False,
        },
    }
    for noisy in config.quiet_loggers:
        loggers[noisy] = {"level": max(numeric_level, logging.WARNING)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": loggers,
    }


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Configure logging for the application.

    Args:
        config: Logging configuration object

    Returns:
        Configured logger instance

    """
    try:
        logging.config.dictConfig(create_logging_config(config))
        logger = logging.getLogger(config.log_name)
        logger.debug(
            "Logging configured for '%s' at level %s",
            config.log_name,
            config.log_level,
        )
    except (LoggerConfigError, ValueError, KeyError):
        # Fallback to basic console logging if configuration fails
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger = logging.getLogger(config.log_name)
        logger.exception("Failed to configure logging. Using fallback configuration.")

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Get a logger instance without installing any handlers.

    Children of ``mongolock`` inherit whatever ``configure_logging`` set up.
    """
    return logging.getLogger(name)


def setup_logging(
    app_name: str = DEFAULT_LOGGER_NAME,
    level: str = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
) -> logging.Logger:
    """Quick setup function for common logging configuration.

    Args:
        app_name: Application name for the logger
        level: Logging level
        log_to_file: Whether to log to file
        log_to_console: Whether to log to console

    Returns:
        Configured logger

    """
    config = LoggingConfig(
        log_name=app_name,
        log_level=level,
        enable_file=log_to_file,
        enable_console=log_to_console,
    )
    return configure_logging(config)
