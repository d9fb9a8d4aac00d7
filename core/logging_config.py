"""
Logging configuration for Table Search State.

This module provides centralized logging configuration with proper
formatting, log levels, and file output options.
"""

import logging
import os
from pathlib import Path
from typing import Optional


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """
    Set up logging configuration for the application.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Name of log file (optional)
        log_dir: Directory for log files (defaults to 'logs')
        format_string: Custom format string (optional)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if format_string is None:
        format_string = DEFAULT_FORMAT

    formatter = logging.Formatter(format_string)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        add_file_handler(log_file, log_dir or 'logs', level, format_string)

    logging.debug(f"Logging configured with level: {level}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def set_log_level(level: str) -> None:
    """
    Set the log level for the root logger and all of its handlers.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger().setLevel(numeric_level)

    for handler in logging.getLogger().handlers:
        handler.setLevel(numeric_level)

    logging.info(f"Log level set to: {level}")


def add_file_handler(
    log_file: str,
    log_dir: str = 'logs',
    level: str = 'INFO',
    format_string: Optional[str] = None
) -> str:
    """
    Add a file handler to the root logger.

    Args:
        log_file: Name of log file
        log_dir: Directory for log files
        level: Logging level for this handler
        format_string: Custom format string (optional)

    Returns:
        Full path of the log file
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = os.path.join(log_dir, log_file)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))

    logging.getLogger().addHandler(file_handler)

    logging.info(f"Added file handler: {log_path}")
    return log_path
