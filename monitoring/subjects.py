"""
Subject loading and repository reference parsing
"""

from typing import List, NamedTuple, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.subject import Subject
from core.exceptions import MalformedSubject

GITHUB_PREFIXES = (
    "https://github.com/",
    "https://www.github.com/",
    "http://github.com/",
    "http://www.github.com/",
    "github.com/",
    "www.github.com/",
)


class RepositoryRef(NamedTuple):
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repository_ref(external_ref: Optional[str], subject_id: Optional[str] = None) -> RepositoryRef:
    """
    Turn a repository URL or "owner/repo" into a RepositoryRef.

    Raises:
        MalformedSubject: if the reference is empty or has no owner/repo pair
    """
    value = (external_ref or "").strip()
    for prefix in GITHUB_PREFIXES:
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break

    value = value.strip("/")
    if value.endswith(".git"):
        value = value[:-4]

    parts = value.split("/")
    if len(parts) < 2 or not parts[0] or not parts[1] or "://" in value:
        raise MalformedSubject(
            "Subject has no usable repository reference",
            context={"subject_id": subject_id, "external_ref": external_ref}
        )
    return RepositoryRef(owner=parts[0], repo=parts[1])


class SubjectRepository:
    """Read access to watched subjects"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def list_enabled(self) -> List[Subject]:
        result = await self.db.execute(
            select(Subject)
            .where(Subject.enabled.is_(True))
            .order_by(Subject.created_at, Subject.id)
        )
        return list(result.scalars().all())

    async def get(self, subject_id: str) -> Optional[Subject]:
        result = await self.db.execute(select(Subject).where(Subject.id == subject_id))
        return result.scalar_one_or_none()
