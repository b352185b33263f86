"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from datetime import timedelta
from typing import AsyncGenerator, Dict, List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import make_engine, make_session_factory
from core.exceptions import EmailDeliveryFailure
from models.base import Base, SubjectKind, utcnow
from models.subject import Subject
from models.user import User
from models.journal_entry import JournalEntry
from monitoring.fetchers.base import ChangeFetcher
from monitoring.mailer import EmailTransport
from monitoring.runner import MonitorRunner
from monitoring.users import UserDirectory
from schemas.events import ExternalEvent


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite so every session of a run sees the same data"""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'monitor.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return make_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session


# ============================================================================
# Builders
# ============================================================================

def make_event(sha: str, message: str = None, login: Optional[str] = "octocat") -> ExternalEvent:
    return ExternalEvent(
        id=sha,
        message=message or f"Commit {sha}",
        author_name="The Octocat",
        author_login=login,
        url=f"https://github.com/octo/app/commit/{sha}"
    )


def github_commit(sha: str, message: str = "Fix bug", login: Optional[str] = "octocat") -> Dict:
    """One item as returned by GET /repos/{owner}/{repo}/commits"""
    return {
        "sha": sha,
        "html_url": f"https://github.com/octo/app/commit/{sha}",
        "commit": {
            "message": message,
            "author": {"name": "The Octocat", "email": "octocat@github.com"}
        },
        "author": {"login": login} if login else None
    }


class FakeFetcher(ChangeFetcher):
    """Serves canned windows per repository, or raises a canned error"""

    def __init__(self, windows: Dict[str, Union[List[ExternalEvent], Exception]] = None, limit: int = 10):
        self.windows = windows or {}
        self.limit = limit
        self.calls = []

    async def fetch(self, repository, access_token):
        self.calls.append((repository.full_name, access_token))
        window = self.windows.get(repository.full_name, [])
        if isinstance(window, Exception):
            raise window
        return list(window)[:self.limit]


class RecordingTransport(EmailTransport):
    """Keeps every request; optionally fails each send"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, request):
        if self.fail:
            raise EmailDeliveryFailure("SMTP down", context={"to": request.to})
        self.sent.append(request)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def runner(session_factory, fetcher, transport):
    return MonitorRunner(
        session_factory=session_factory,
        fetcher=fetcher,
        users=UserDirectory(),
        email_transport=transport,
        missing_backlog=5,
        staleness_threshold=timedelta(days=7),
        subject_timeout=5.0,
        max_concurrency=1
    )


@pytest.fixture
def seed(db_session):
    """Add and commit rows, returning them"""
    async def _seed(*objects):
        db_session.add_all(objects)
        await db_session.commit()
        return objects
    return _seed


@pytest.fixture
def owner():
    return User(
        id="user_1",
        email="ada@example.com",
        username="ada",
        display_name="Ada",
        github_access_token="gho_token"
    )


def make_project(project_id: str, owner_id: str = "user_1", repo: Optional[str] = "octo/app", **kwargs) -> Subject:
    return Subject(
        id=project_id,
        kind=SubjectKind.PROJECT,
        owner_id=owner_id,
        display_name=kwargs.pop("display_name", f"Project {project_id}"),
        external_ref=f"https://github.com/{repo}" if repo else None,
        **kwargs
    )


def journal_entry(subject_id: str, age: timedelta, author_id: str = "user_1") -> JournalEntry:
    return JournalEntry(
        subject_id=subject_id,
        author_id=author_id,
        title="Progress",
        timestamp=utcnow() - age
    )
