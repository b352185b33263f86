"""
GitHub commit fetcher.

Reads the most recent commits of a repository with the owner's token. Every
failure is classified once and raised; nothing is retried inside a run, the
next scheduled run is the retry.
"""

import httpx
from typing import List, Optional
from pydantic import ValidationError
from monitoring.fetchers.base import ChangeFetcher
from monitoring.subjects import RepositoryRef
from schemas.events import ExternalEvent
from core.config import settings
from core.exceptions import (
    NoCredential,
    UpstreamUnavailable,
    RateLimitExceeded
)
import logging

logger = logging.getLogger(__name__)


class GitHubCommitFetcher(ChangeFetcher):
    """
    Fetch recent commits from the GitHub REST API.

    Features:
    - Bearer token authentication with the repository owner's token
    - Bounded window (`per_page`), newest first as GitHub returns them
    - Request timeout on every call
    - Rate limit detection (403 with exhausted quota, 429)

    Attributes:
        api_url: GitHub API base URL
        limit: Number of commits requested (default: 10)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        limit: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self.limit = limit or settings.COMMIT_FETCH_LIMIT
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def _headers(self, access_token: str):
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "Dev-Space-App",
        }

    def _raise_for_status(self, response: httpx.Response, repository: RepositoryRef):
        """Map non-success responses onto the error taxonomy"""
        status_code = response.status_code
        if status_code < 400:
            return

        context = {
            "repository": repository.full_name,
            "status_code": status_code,
            "response_body": response.text[:500]
        }

        if status_code == 401:
            raise NoCredential(
                f"GitHub rejected the access token for {repository.full_name}",
                context=context
            )

        rate_limited = status_code == 429 or (
            status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        )
        if rate_limited:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitExceeded(
                f"GitHub rate limit exceeded for {repository.full_name}",
                context=context,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        raise UpstreamUnavailable(
            f"GitHub API error for {repository.full_name}: {status_code}",
            context=context
        )

    async def fetch(self, repository: RepositoryRef, access_token: str) -> List[ExternalEvent]:
        """
        Fetch the newest commits of `repository`.

        Returns:
            Up to `limit` commits, newest first. An empty repository
            (HTTP 409) yields an empty list.

        Raises:
            NoCredential: token missing or rejected (401)
            RateLimitExceeded: GitHub throttled the request
            UpstreamUnavailable: any other HTTP, network or payload failure
        """
        if not access_token:
            raise NoCredential(
                "No access token supplied",
                context={"repository": repository.full_name}
            )

        url = f"{self.api_url}/repos/{repository.owner}/{repository.repo}/commits"
        params = {"per_page": self.limit}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    headers=self._headers(access_token),
                    params=params,
                    timeout=self.timeout
                )
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(
                f"Request timeout for {repository.full_name}",
                context={"repository": repository.full_name, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"Network error for {repository.full_name}",
                context={"repository": repository.full_name, "api_url": url},
                original_exception=e
            )

        if response.status_code == 409:
            # GitHub answers 409 for a repository without commits
            logger.info(f"Repository {repository.full_name} is empty")
            return []

        self._raise_for_status(response, repository)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                "Failed to parse JSON response",
                context={
                    "repository": repository.full_name,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

        if not isinstance(data, list):
            raise UpstreamUnavailable(
                "Unexpected commit list payload",
                context={"repository": repository.full_name, "payload_type": type(data).__name__}
            )

        try:
            events = [ExternalEvent.from_github(item) for item in data[:self.limit]]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise UpstreamUnavailable(
                "Malformed commit in response",
                context={"repository": repository.full_name},
                original_exception=e
            )

        logger.info(f"Fetched {len(events)} commits from {repository.full_name}")
        return events
