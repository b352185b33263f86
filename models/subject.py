from sqlalchemy import Column, String, Enum, DateTime, Boolean, Index
from models.base import Base, SubjectKind, new_id, utcnow


class Subject(Base):
    """
    An entity under watch: a project linked to a repository, or a user.

    Subjects are never deleted. Turning a watch off sets enabled=False.
    external_ref holds the repository URL or "owner/repo" full name and may
    be empty for projects that only keep a journal.
    """
    __tablename__ = "subjects"

    id = Column(String(64), primary_key=True, default=new_id)
    kind = Column(Enum(SubjectKind), nullable=False, default=SubjectKind.PROJECT)
    owner_id = Column(String(64), nullable=False, index=True)
    display_name = Column(String(200), nullable=True)
    external_ref = Column(String(500), nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_subject_enabled", "enabled", "kind"),
    )

    @property
    def title(self) -> str:
        return self.display_name or "Your project"
