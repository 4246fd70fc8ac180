"""
Core utilities and configuration for the Internet Sales delta load.

This package provides foundational components used throughout the load:

Modules:
    config: Application configuration and environment variable management
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import ConcurrentRunDetectedError, NotInitializedError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "get_session",
    "setup_logging",
    # Exceptions
    "ETLException",
    "RetryableError",
    "NonRetryableError",
    "WatermarkError",
    "NotInitializedError",
    "WriteConflictError",
    "ConcurrentRunDetectedError",
    "ExtractionError",
    "SourceReadError",
    "TransientSourceReadError",
    "TransformationError",
    "RowProjectionError",
    "LoadError",
    "DestinationWriteError",
    "TransientDestinationWriteError",
    "RunLogError",
    "RunStateError",
    "RunTimeoutError",
    "RunCancelledError",
]
