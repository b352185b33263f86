"""
Owner profile lookups: access tokens for the fetcher, addresses for e-mail
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.user import User
from schemas.events import UserProfile
from monitoring.cache import ExpiringCache
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


class UserDirectory:
    """
    Reads user profiles, optionally through an injected ExpiringCache.

    Acts as the credential provider of the commit watcher: an absent token is
    reported as None, which the pipeline treats as "cannot process this
    subject" rather than as an error.
    """

    def __init__(self, cache: Optional[ExpiringCache] = None):
        self.cache = cache

    async def get_profile(self, db: AsyncSession, user_id: str) -> Optional[UserProfile]:
        key = ("user", user_id)
        if self.cache is not None:
            cached = self.cache.get(key, _MISSING)
            if cached is not _MISSING:
                return cached

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        profile = UserProfile.model_validate(user) if user else None

        if self.cache is not None:
            self.cache.set(key, profile)
        return profile

    async def get_access_token(self, db: AsyncSession, owner_id: str) -> Optional[str]:
        profile = await self.get_profile(db, owner_id)
        if profile is None:
            logger.debug(f"No user record for owner {owner_id}")
            return None
        return profile.github_access_token or None

    def forget(self, user_id: str) -> None:
        """Drop a cached profile, e.g. after the token turned out to be revoked"""
        if self.cache is not None:
            self.cache.invalidate(("user", user_id))
