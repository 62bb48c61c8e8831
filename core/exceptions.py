"""
Custom exceptions for the sync pipeline with structured error context.

This module provides the exception hierarchy used throughout the pipeline.
Each exception carries context information for debugging and monitoring.

Exception Hierarchy:
    SyncError (base)
    ├── ConfigurationError
    ├── SourceError
    │   └── DumpUnavailableError
    ├── ClassifierError
    │   └── RateLimitError
    └── LoadError

Only ConfigurationError is fatal. SourceError aborts the job that raised
it (its Sync Job Record is left untouched so it retries on the next tick).
ClassifierError and LoadError are per-item and are absorbed by the jobs.
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SyncError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (job, item, url, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
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

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

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
# Startup Errors
# ============================================================================

class ConfigurationError(SyncError):
    """
    Raised at startup when a required setting is missing or invalid.

    Context should include:
        - setting: Name of the offending setting
    """
    pass


# ============================================================================
# Source Errors
# ============================================================================

class SourceError(SyncError):
    """Base exception for job-level failures to reach an external source."""
    pass


class DumpUnavailableError(SourceError):
    """
    Raised when the bulk export cannot be located or downloaded.

    Context should include:
        - url: The index or dump URL that failed
        - status_code: HTTP status code (if applicable)
    """
    pass


# ============================================================================
# Classification Errors
# ============================================================================

class ClassifierError(SyncError):
    """
    Raised by the generative classifier for timeouts, non-2xx responses
    and malformed payloads.

    Context should include:
        - item: owner/name of the item being classified
        - status_code: HTTP status code (if applicable)
    """
    pass


class RateLimitError(ClassifierError):
    """Classifier endpoint answered HTTP 429."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds suggested by the server
        if retry_after:
            self.context["retry_after"] = retry_after


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(SyncError):
    """
    Raised when writing one item to the store fails.

    Context should include:
        - project_id: Store id of the item
        - operation: Type of write (UPSERT, REPLACE, UPDATE)
    """
    pass
