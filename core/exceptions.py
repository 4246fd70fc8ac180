"""
Custom exceptions for the delta load with structured error context.

This module provides the exception hierarchy used throughout the load.
Each exception carries context information for debugging and for the
diagnostic text written to the run log.

Exception Hierarchy:
    ETLException (base)
    ├── WatermarkError
    │   ├── NotInitializedError
    │   └── WriteConflictError
    ├── ConcurrentRunDetectedError
    ├── ExtractionError
    │   └── SourceReadError
    │       └── TransientSourceReadError (also RetryableError)
    ├── TransformationError
    │   └── RowProjectionError
    ├── LoadError
    │   └── DestinationWriteError
    │       └── TransientDestinationWriteError (also RetryableError)
    ├── RunLogError
    ├── RunStateError
    ├── RunTimeoutError
    ├── RunCancelledError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class ETLException(Exception):
    """
    Base exception for all load-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (table, run id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that may succeed when retried.

    Use this for transient errors like:
    - Query or connection timeouts
    - Dropped database connections
    - Deadlocks
    """
    pass


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Constraint violations
    - Invalid data format
    - Missing schema objects
    """
    pass


# ============================================================================
# Watermark Errors
# ============================================================================

class WatermarkError(ETLException):
    """
    Base exception for watermark tracking failures.

    Context should include:
        - table_name: The tracking table
        - operation: Operation that failed (read, advance)
    """
    pass


class NotInitializedError(NonRetryableError, WatermarkError):
    """
    The watermark (or lease) singleton row is missing.

    Fatal: requires an operator to repair the schema (see scripts/init_db.py).
    """
    pass


class WriteConflictError(WatermarkError):
    """
    The watermark changed between read and advance.

    Context should include:
        - expected: Value read at the start of the run
        - candidate: Value the run tried to write
    """
    pass


class ConcurrentRunDetectedError(NonRetryableError):
    """
    Another run holds the load lease.

    Context should include:
        - holder: Run id holding the lease
        - expires_at: When the held lease expires
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class SourceReadError(ExtractionError):
    """
    Reading qualifying rows from the source relation failed.

    ``transient`` is True when the failure was a timeout or connectivity
    problem and retries were exhausted; False for permanent failures.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        transient: bool = False
    ):
        super().__init__(message, context, original_exception)
        self.transient = transient
        self.context["transient"] = transient


class TransientSourceReadError(RetryableError, SourceReadError):
    """Source read that kept timing out or losing its connection until retries ran out"""

    def __init__(self, message, context=None, original_exception=None):
        super().__init__(message, context, original_exception, transient=True)


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class RowProjectionError(NonRetryableError, TransformationError):
    """
    A single source row failed conversion to the staging shape.

    Context should include:
        - sales_order_number: Order number of the failing row (if readable)
        - field_errors: Field-level validation errors
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class DestinationWriteError(LoadError):
    """
    Writing a batch to the staging relation failed.

    ``transient`` has the same meaning as on SourceReadError.

    Context should include:
        - table_name: Name of the table
        - batch_index: Index of the failing batch
        - rows_written: Rows written before the failure
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        transient: bool = False
    ):
        super().__init__(message, context, original_exception)
        self.transient = transient
        self.context["transient"] = transient


class TransientDestinationWriteError(RetryableError, DestinationWriteError):
    """Staging write that kept failing transiently until retries ran out"""

    def __init__(self, message, context=None, original_exception=None):
        super().__init__(message, context, original_exception, transient=True)


# ============================================================================
# Run Lifecycle Errors
# ============================================================================

class RunLogError(ETLException):
    """
    Writing to the run log failed, or a run handle was misused.

    A failed terminal log write is surfaced to the caller instead of being
    swallowed, since the log is the record of run outcome.
    """
    pass


class RunStateError(ETLException):
    """An invalid run state transition was attempted."""
    pass


class RunTimeoutError(ETLException):
    """The run exceeded its configured timeout."""
    pass


class RunCancelledError(ETLException):
    """The run was cancelled by an external signal."""
    pass
