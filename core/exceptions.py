"""
Custom exceptions for Table Search State.

This module defines application-specific exceptions that provide
clear error messages and context for different types of failures.
"""

from typing import Optional, Any


class TableSearchError(Exception):
    """Base exception for all table search state errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class ConfigurationError(TableSearchError):
    """Raised when there are issues with configuration loading or validation."""

    def __init__(self, message: str, config_file: Optional[str] = None, field: Optional[str] = None):
        context = {}
        if config_file:
            context['config_file'] = config_file
        if field:
            context['field'] = field
        super().__init__(message, context)


class ValidationError(TableSearchError):
    """Raised when filter, option or pagination input is malformed."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)
        super().__init__(message, context)


class PersistenceError(TableSearchError):
    """Raised when a state backend cannot be reached or written to."""

    def __init__(self, message: str, backend: Optional[str] = None, key: Optional[str] = None):
        context = {}
        if backend:
            context['backend'] = backend
        if key:
            context['key'] = key
        super().__init__(message, context)
