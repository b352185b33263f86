from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Boolean, Index
from models.base import Base, CheckpointStatus, utcnow


class SubjectCheckpoint(Base):
    """
    Tracks the last externally-observed event per subject.

    Purpose:
    - Remember which commit was last notified so a re-run is a no-op
    - Record when the subject was last checked
    - Remember when a journal reminder was last sent

    Design:
    - One row per subject (unique index on subject_id)
    - last_seen_event_id is null until the first successful pass
    - enabled=False switches the commit watcher off without touching the subject
    """
    __tablename__ = "subject_checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String(64), nullable=False)

    # Cursor
    last_seen_event_id = Column(String(255), nullable=True)
    last_checked_at = Column(DateTime, nullable=True, index=True)
    enabled = Column(Boolean, nullable=False, default=True)

    # Journal reminders
    stale_notified_at = Column(DateTime, nullable=True)

    # Statistics
    status = Column(Enum(CheckpointStatus), default=CheckpointStatus.PENDING, nullable=False)
    total_runs = Column(Integer, default=0, nullable=False)
    last_success_at = Column(DateTime, nullable=True)
    last_failure_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_checkpoint_subject", "subject_id", unique=True),
    )
