"""Shared utilities for the Butler console."""

from butler_console.utils.errors import (
    ActionNotAvailableError,
    BackendRejection,
    ButlerConsoleError,
    CodecParseError,
    ConfigurationError,
    NetworkFailure,
    OperationInProgressError,
    ValidationFailure,
)

__all__ = [
    "ActionNotAvailableError",
    "BackendRejection",
    "ButlerConsoleError",
    "CodecParseError",
    "ConfigurationError",
    "NetworkFailure",
    "OperationInProgressError",
    "ValidationFailure",
]
