"""
Centralized logging configuration for Market Analyst.

Provides consistent logging across all engines with support for:
- Multiple log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- File and console output
- Log rotation
- Structured logging (JSON format option)
- Environment-based configuration
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = levelname


HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"
HUMAN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "module": "%(module)s", '
    '"function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)
JSON_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
    rotation: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        name: Logger name (defaults to root logger)
        level: Log level name; falls back to the LOG_LEVEL env var, then INFO
        log_file: Path to log file; falls back to the LOG_FILE env var
        console: Enable console logging
        json_format: Use JSON format for structured logging
        rotation: Enable log file rotation
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logging(name="market_analyst", level="DEBUG")
        >>> logger.info("Backtest worker started")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()

    if log_file is None:
        log_file = os.getenv("LOG_FILE")

    numeric_level = getattr(logging, level, logging.INFO)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if json_format:
        log_format, date_format = JSON_FORMAT, JSON_DATE_FORMAT
    else:
        log_format, date_format = HUMAN_FORMAT, HUMAN_DATE_FORMAT

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        if json_format:
            console_handler.setFormatter(logging.Formatter(log_format, date_format))
        else:
            console_handler.setFormatter(ColoredFormatter(log_format, date_format))
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        if rotation:
            file_handler: logging.Handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")

        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(log_format, date_format))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, configuring defaults on first use.

    Args:
        name: Logger name (typically __name__)
    """
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        setup_logging()
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    message: str = "An exception occurred",
    level: int = logging.ERROR,
) -> None:
    """Log an exception with full traceback."""
    logger.log(level, f"{message}: {exc}", exc_info=True)


def configure_default_logging() -> None:
    """
    Configure default logging for the whole application.

    Reads configuration from environment variables:
    - LOG_LEVEL: Logging level (default: INFO)
    - LOG_FILE: Log file path (default: logs/market_analyst.log)
    - LOG_JSON: Use JSON format (default: false)
    - LOG_CONSOLE: Enable console output (default: true)
    """
    level = os.getenv("LOG_LEVEL", "INFO")
    log_file = os.getenv("LOG_FILE", "logs/market_analyst.log")
    json_format = os.getenv("LOG_JSON", "false").lower() == "true"
    console = os.getenv("LOG_CONSOLE", "true").lower() == "true"

    setup_logging(
        level=level,
        log_file=log_file,
        console=console,
        json_format=json_format,
    )

    logger = logging.getLogger("market_analyst")
    logger.info("=" * 60)
    logger.info("Market Analyst - Logging Initialized")
    logger.info(f"Log Level: {level}")
    logger.info(f"Log File: {log_file}")
    logger.info(f"JSON Format: {json_format}")
    logger.info(f"Console Output: {console}")
    logger.info(f"Timestamp: {datetime.now().isoformat()}")
    logger.info("=" * 60)
