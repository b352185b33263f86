from sqlalchemy import Column, String, DateTime
from models.base import Base, new_id, utcnow


class User(Base):
    """
    App user profile as far as this service needs it.

    github_access_token is written by the sign-in flow and read here to call
    the GitHub API on the owner's behalf.
    """
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=new_id)
    email = Column(String(320), nullable=True)
    username = Column(String(100), nullable=True)
    display_name = Column(String(200), nullable=True)
    github_username = Column(String(100), nullable=True)
    github_access_token = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def greeting_name(self) -> str:
        return self.username or self.display_name or "Developer"
