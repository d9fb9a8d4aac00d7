"""
Core infrastructure module for Table Search State.

This module provides the foundational components including configuration
management, logging setup, and custom exceptions.
"""

from .config import TableConfig, PersistenceConfig, Config
from .exceptions import TableSearchError, ConfigurationError, ValidationError, PersistenceError
from .logging_config import setup_logging

__all__ = [
    # Configuration
    'TableConfig',
    'PersistenceConfig',
    'Config',

    # Exceptions
    'TableSearchError',
    'ConfigurationError',
    'ValidationError',
    'PersistenceError',

    # Logging
    'setup_logging',
]

# Version info
__version__ = "1.0.0"
