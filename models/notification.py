from sqlalchemy import Column, String, Enum, DateTime, Text, Boolean, Index
from models.base import Base, NotificationType, new_id, utcnow


class Notification(Base):
    """
    In-app notification shown to a single recipient.

    Created by the dispatcher; afterwards only the read flag changes, and
    only on the recipient's behalf.
    """
    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False)
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)

    related_entity_id = Column(String(64), nullable=True)
    related_entity_type = Column(String(50), nullable=True)
    actor_id = Column(String(100), nullable=True)

    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_notification_user_created", "user_id", "created_at"),
        Index("idx_notification_user_read", "user_id", "read"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value if self.type else None,
            "title": self.title,
            "description": self.description,
            "related_entity_id": self.related_entity_id,
            "related_entity_type": self.related_entity_type,
            "actor_id": self.actor_id,
            "read": self.read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
