"""
FastAPI dependencies: database sessions, shared pipeline components, trigger auth
"""

import hmac
from typing import AsyncGenerator, Optional
from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.database import async_session_maker
from core.exceptions import Unauthorized
from monitoring.broker import NotificationBroker
from monitoring.cache import ExpiringCache
from monitoring.fetchers import GitHubCommitFetcher
from monitoring.mailer import SMTPEmailTransport
from monitoring.runner import MonitorRunner
from monitoring.users import UserDirectory

broker = NotificationBroker()

_runner: Optional[MonitorRunner] = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with async_session_maker() as session:
        yield session


def build_runner(session_factory=None) -> MonitorRunner:
    return MonitorRunner(
        session_factory=session_factory or async_session_maker,
        fetcher=GitHubCommitFetcher(),
        users=UserDirectory(cache=ExpiringCache(default_ttl=settings.USER_CACHE_TTL_SECONDS)),
        email_transport=SMTPEmailTransport(),
        broker=broker
    )


def get_runner() -> MonitorRunner:
    global _runner
    if _runner is None:
        _runner = build_runner()
    return _runner


def get_broker() -> NotificationBroker:
    return broker


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>`"""
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise Unauthorized("Invalid or missing cron secret")
