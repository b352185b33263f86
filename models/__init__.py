"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative base, shared enums and id/time helpers
    subject: Watched projects (and users)
    user: Owner profiles, e-mail addresses and GitHub tokens
    checkpoint: Per-subject cursor of the last processed commit
    journal_entry: Progress log entries read for staleness
    notification: In-app notifications
    monitor_run: Audit trail of orchestrator passes

The models stick to portable column types (JSON, string ids) so the same
schema runs on PostgreSQL in production and SQLite in tests.

Usage:
    from models.subject import Subject
    from models.checkpoint import SubjectCheckpoint
    from models.base import NotificationType

Relationships (by id, no ORM relationships):
    - Subject.owner_id → User.id
    - SubjectCheckpoint.subject_id → Subject.id (one-to-one)
    - JournalEntry.subject_id → Subject.id (one-to-many)
    - Notification.user_id → User.id
"""

__all__ = [
    "Base",
    "SubjectKind",
    "CheckpointStatus",
    "RunStatus",
    "NotificationType",
    "Subject",
    "User",
    "SubjectCheckpoint",
    "JournalEntry",
    "Notification",
    "MonitorRun",
]
