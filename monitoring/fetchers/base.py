"""
Abstract base class for upstream change sources
"""

from abc import ABC, abstractmethod
from typing import List
from monitoring.subjects import RepositoryRef
from schemas.events import ExternalEvent


class ChangeFetcher(ABC):
    """
    Pulls a bounded window of recent events for one repository.

    Contract:
    - At most `limit` events, newest first
    - No caching: every call goes upstream
    - Failures raise NoCredential or UpstreamUnavailable, never retried here
    """

    limit: int = 10

    @abstractmethod
    async def fetch(self, repository: RepositoryRef, access_token: str) -> List[ExternalEvent]:
        """
        Fetch recent events.

        Args:
            repository: owner/repo to read
            access_token: the subject owner's token

        Returns:
            Events ordered newest first
        """
        pass
