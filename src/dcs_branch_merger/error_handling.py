"""Errors and error classification for the DCS branch merger."""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class BranchMergerError(Exception):
    """Base class for errors raised by this package."""


class DCSAPIError(BranchMergerError):
    """A DCS API request returned a non-success status."""

    def __init__(self, status: int, url: str, message: str = ""):
        self.status = status
        self.url = url
        self.message = message
        super().__init__(f"{status} from {url}" + (f": {message}" if message else ""))


class EffectFailed(BranchMergerError):
    """A context effect settled with a failure where a value was required."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        super().__init__(f"Effect {operation or '<anonymous>'} failed")


class ErrorSeverity(Enum):
    """Classification of error severity levels."""

    HIGH = "high"  # Likely a bug or a misconfigured environment
    MEDIUM = "medium"  # Network trouble or server-side error
    LOW = "low"  # Expected "no result", e.g. 404 from the API

    @property
    def log_level(self) -> int:
        return {
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.LOW: logging.DEBUG,
        }[self]


class ErrorContext:
    """Context information about a failed operation."""

    def __init__(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        operation: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.severity = severity
        self.operation = operation
        self.metadata = metadata or {}
        self.error_time = time.time()


def classify_error(error: Exception, operation: str = "") -> ErrorContext:
    """
    Classify an error raised by a leaf effect.

    Args:
        error: The exception that occurred
        operation: The operation during which the error occurred

    Returns:
        ErrorContext with a severity matching the kind of failure
    """
    if isinstance(error, DCSAPIError):
        severity = ErrorSeverity.LOW if 400 <= error.status < 500 else ErrorSeverity.MEDIUM
        return ErrorContext(
            error=error,
            severity=severity,
            operation=operation,
            metadata={"status": error.status, "url": error.url},
        )

    if isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)):
        return ErrorContext(error=error, severity=ErrorSeverity.MEDIUM, operation=operation)

    return ErrorContext(error=error, severity=ErrorSeverity.HIGH, operation=operation)


def _empty_stats() -> Dict[str, Any]:
    return {
        "total_errors": 0,
        "errors_by_type": {},
        "errors_by_severity": {severity.value: 0 for severity in ErrorSeverity},
        "errors_by_operation": {},
    }


# Error metrics tracking
_error_stats: Dict[str, Any] = _empty_stats()


def record_error_metric(context: ErrorContext) -> None:
    """Record error metrics for monitoring and analysis."""
    _error_stats["total_errors"] += 1

    error_type = type(context.error).__name__
    _error_stats["errors_by_type"][error_type] = (
        _error_stats["errors_by_type"].get(error_type, 0) + 1
    )
    _error_stats["errors_by_severity"][context.severity.value] += 1

    if context.operation:
        _error_stats["errors_by_operation"][context.operation] = (
            _error_stats["errors_by_operation"].get(context.operation, 0) + 1
        )


def get_error_stats() -> Dict[str, Any]:
    """Get current error statistics."""
    return _error_stats.copy()


def reset_error_stats() -> None:
    """Reset error statistics (useful for testing)."""
    global _error_stats
    _error_stats = _empty_stats()
