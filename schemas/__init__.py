"""
Pydantic schemas for data validation and serialization.

Schemas:
    events: Value objects flowing through the pipeline (ExternalEvent,
        EmailDispatchRequest)
    api: Request/response models of the HTTP surface

Usage:
    from schemas.events import ExternalEvent
    from schemas.api import TriggerResponse, NotificationResponse

Example:
    event = ExternalEvent.from_github(commit_payload)
    event.summary()  # first line of the commit message, max 100 chars
"""

__all__ = [
    "ExternalEvent",
    "EmailTemplate",
    "EmailDispatchRequest",
    "HealthCheckResponse",
    "TriggerResponse",
    "CommitCheckResponse",
    "StaleCheckResponse",
    "NotificationResponse",
    "RunStatsResponse",
]
