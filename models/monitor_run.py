from sqlalchemy import Column, Integer, String, Enum, DateTime, Float, Text, JSON, Index
from models.base import Base, RunStatus, new_id, utcnow


class MonitorRun(Base):
    """
    Tracks metadata for each orchestrator pass.

    Purpose:
    - Audit trail of scheduled and manual runs
    - Per-run counts for the stats endpoint
    - Error details for subjects that failed
    """
    __tablename__ = "monitor_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(32), default=new_id, unique=True, nullable=False, index=True)

    trigger = Column(String(50), nullable=False, default="cron")
    checks = Column(String(100), nullable=False, default="events,staleness")
    status = Column(Enum(RunStatus), default=RunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    subjects_total = Column(Integer, default=0)
    subjects_processed = Column(Integer, default=0)
    subjects_skipped = Column(Integer, default=0)
    subjects_failed = Column(Integer, default=0)
    notifications_created = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_monitor_run_status", "status", "started_at"),
    )
