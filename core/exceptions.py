"""
Custom exceptions for the monitoring pipeline with structured error context.

Every failure the pipeline can hit is expressed as a subclass of
MonitorException, carrying a context dictionary for logging. The orchestrator
decides what to do with each class: subject-level errors are absorbed, only
Unauthorized stops a trigger before any subject is touched.

Exception Hierarchy:
    MonitorException (base)
    ├── Unauthorized
    ├── SubjectError
    │   ├── MalformedSubject
    │   ├── SubjectNotFound
    │   ├── NoCredential
    │   └── UpstreamUnavailable
    │       └── RateLimitExceeded
    ├── SinkWriteFailure
    │   └── CheckpointError
    └── EmailDeliveryFailure
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class MonitorException(Exception):
    """
    Base exception for all monitoring errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (subject, repository, etc.)
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
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

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
# Trigger Errors
# ============================================================================

class Unauthorized(MonitorException):
    """Raised when a trigger request does not carry the configured secret."""
    pass


# ============================================================================
# Subject Errors
# ============================================================================

class SubjectError(MonitorException):
    """Base exception for failures scoped to a single subject."""
    pass


class MalformedSubject(SubjectError):
    """
    Subject lacks a usable external reference.

    Treated as "not configured": the subject is skipped without noise.

    Context should include:
        - subject_id: The subject being processed
        - external_ref: The value that could not be parsed
    """
    pass


class SubjectNotFound(SubjectError):
    """Subject id does not exist (on-demand checks only)."""
    pass


class NoCredential(SubjectError):
    """
    The subject's owner has no usable access token.

    Context should include:
        - subject_id: The subject being processed
        - owner_id: Owner whose credential is missing
    """
    pass


class UpstreamUnavailable(SubjectError):
    """
    The external source failed or timed out.

    Context should include:
        - repository: owner/repo being fetched
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class RateLimitExceeded(UpstreamUnavailable):
    """Upstream rejected the request because of rate limiting (HTTP 403/429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


# ============================================================================
# Sink Errors
# ============================================================================

class SinkWriteFailure(MonitorException):
    """
    Persisting a notification or checkpoint failed.

    A failure after a notification was committed but before the checkpoint
    moved means the same event is notified again on the next run.

    Context should include:
        - operation: Which write failed (notification, checkpoint)
        - subject_id: Subject being processed
    """
    pass


class CheckpointError(SinkWriteFailure):
    """
    Checkpoint read or write failed.

    Context should include:
        - subject_id: Subject whose checkpoint failed
        - operation: read, upsert, record_failure
    """
    pass


# ============================================================================
# Delivery Errors
# ============================================================================

class EmailDeliveryFailure(MonitorException):
    """Best-effort email could not be delivered. Never fatal."""
    pass
