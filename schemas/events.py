"""
Pydantic value objects passed between pipeline stages
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
import enum


class ExternalEvent(BaseModel):
    """
    One commit fetched from the upstream repository.

    Never persisted; only `id` survives, as the subject's checkpoint.
    """
    id: str = Field(..., min_length=1)
    message: str = ""
    author_name: Optional[str] = None
    author_login: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_github(cls, payload: Dict[str, Any]) -> "ExternalEvent":
        """Build from an item of GET /repos/{owner}/{repo}/commits"""
        commit = payload.get("commit") or {}
        author = payload.get("author") or {}
        commit_author = commit.get("author") or {}
        return cls(
            id=payload["sha"],
            message=commit.get("message") or "",
            author_name=commit_author.get("name"),
            author_login=author.get("login"),
            url=payload.get("html_url"),
        )

    def summary(self, limit: int = 100) -> str:
        """First line of the message, cut to `limit` characters"""
        return self.message.split("\n")[0][:limit]


class UserProfile(BaseModel):
    """Snapshot of an owner's profile, safe to cache between sessions"""
    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    display_name: Optional[str] = None
    github_access_token: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def greeting_name(self) -> str:
        return self.username or self.display_name or "Developer"


class EmailTemplate(str, enum.Enum):
    COMMIT_ALERT = "commit_alert"
    JOURNEY_REMINDER = "journey_reminder"


class EmailDispatchRequest(BaseModel):
    """Ephemeral e-mail job handed to the transport"""
    to: str = Field(..., min_length=3)
    template: EmailTemplate
    fields: Dict[str, Any] = Field(default_factory=dict)
