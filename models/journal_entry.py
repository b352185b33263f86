from sqlalchemy import Column, String, DateTime, Boolean, Index
from models.base import Base, new_id, utcnow


class JournalEntry(Base):
    """
    A progress log entry written by a project's owner or collaborators.

    Owned by the journal UI; the monitor only reads the newest timestamp
    per subject.
    """
    __tablename__ = "journal_entries"

    id = Column(String(64), primary_key=True, default=new_id)
    subject_id = Column(String(64), nullable=False)
    author_id = Column(String(64), nullable=False)
    title = Column(String(300), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    is_public = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_journal_subject_timestamp", "subject_id", "timestamp"),
    )
