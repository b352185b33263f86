"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from models.base import CheckpointStatus, NotificationType, RunStatus, utcnow


# ============================================================================
# Health Check Schemas
# ============================================================================

class CheckpointInfo(BaseModel):
    """Checkpoint information for health check"""
    subject_id: str
    status: CheckpointStatus
    enabled: bool
    last_seen_event_id: Optional[str] = None
    last_checked_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    total_runs: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    checkpoints: List[CheckpointInfo] = Field(default_factory=list)
    total_subjects: int = 0
    successful_subjects: int = 0
    failed_subjects: int = 0

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "total_subjects": 2,
                "successful_subjects": 2,
                "failed_subjects": 0,
                "checkpoints": [
                    {
                        "subject_id": "proj_123",
                        "status": "success",
                        "enabled": True,
                        "last_seen_event_id": "9fceb02d0ae598e95dc970b74767f19372d61af8",
                        "last_checked_at": "2024-01-15T10:00:00Z",
                        "total_runs": 48
                    }
                ]
            }
        }


# ============================================================================
# Trigger Schemas
# ============================================================================

class TriggerResponse(BaseModel):
    """Summary returned to the cron caller"""
    ok: bool = True
    processed: int
    notified: int


class TriggerErrorResponse(BaseModel):
    ok: bool = False
    error: str


# ============================================================================
# On-demand Check Schemas
# ============================================================================

class CommitInfo(BaseModel):
    sha: str
    message: str
    author: Optional[str] = None
    url: Optional[str] = None


class CommitCheckResponse(BaseModel):
    ok: bool = True
    new_commits: int
    commits: List[CommitInfo] = Field(default_factory=list)
    message: Optional[str] = None


class StaleCheckRequest(BaseModel):
    user_id: Optional[str] = None


class StaleCheckResponse(BaseModel):
    ok: bool = True
    stale: bool
    notified: bool = False
    last_entry_at: Optional[datetime] = None
    message: str


# ============================================================================
# Notification Schemas
# ============================================================================

class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    description: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    actor_id: Optional[str] = None
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    unread_count: int


class MarkReadResponse(BaseModel):
    ok: bool = True
    updated: int


# ============================================================================
# Statistics Schemas
# ============================================================================

class MonitorRunSummary(BaseModel):
    run_id: str
    trigger: str
    checks: str
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    subjects_total: int = 0
    subjects_processed: int = 0
    subjects_skipped: int = 0
    subjects_failed: int = 0
    notifications_created: int = 0

    class Config:
        from_attributes = True
        use_enum_values = True


class RunStatsResponse(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    total_runs: int
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    recent_runs: List[MonitorRunSummary] = Field(default_factory=list)


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
