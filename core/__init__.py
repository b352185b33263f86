"""
Core utilities and configuration for the Dev Space monitor.

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session management
    exceptions: Exception hierarchy for the monitoring pipeline
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import NoCredential, UpstreamUnavailable
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "get_session",
    "setup_logging",
    # Exceptions
    "MonitorException",
    "Unauthorized",
    "SubjectError",
    "MalformedSubject",
    "SubjectNotFound",
    "NoCredential",
    "UpstreamUnavailable",
    "RateLimitExceeded",
    "SinkWriteFailure",
    "CheckpointError",
    "EmailDeliveryFailure",
]
