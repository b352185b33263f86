from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
import enum
import uuid

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================================================
# ENUMS
# ============================================================================

class SubjectKind(str, enum.Enum):
    """Kinds of watched entities"""
    PROJECT = "project"
    USER = "user"


class CheckpointStatus(str, enum.Enum):
    """Outcome of the last processing pass for a subject"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class RunStatus(str, enum.Enum):
    """Monitor run status"""
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class NotificationType(str, enum.Enum):
    """Notification types shown in the app"""
    MESSAGE = "message"
    TASK_ASSIGNED = "task_assigned"
    REVIEW_REQUESTED = "review_requested"
    PROJECT_UPDATE = "project_update"
    FOLLOW = "follow"
    COMMENT = "comment"
