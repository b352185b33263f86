"""
Unit tests for the GitHub commit fetcher
"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch
from core.exceptions import NoCredential, UpstreamUnavailable, RateLimitExceeded
from monitoring.fetchers import GitHubCommitFetcher
from monitoring.subjects import RepositoryRef
from conftest import github_commit

REPO = RepositoryRef("octo", "app")
URL = "https://api.github.com/repos/octo/app/commits"


def github_response(status_code, json=None, headers=None, text=None):
    return httpx.Response(
        status_code,
        json=json,
        text=text,
        headers=headers,
        request=httpx.Request("GET", URL)
    )


def mock_client(mock_client_cls, response=None, side_effect=None):
    client = mock_client_cls.return_value.__aenter__.return_value
    client.get = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestGitHubCommitFetcher:

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com", limit=10, timeout=5)
        payload = [
            github_commit("c2", "Add feature\n\nLonger body"),
            github_commit("c1", "Initial commit", login=None),
        ]

        with patch("httpx.AsyncClient") as mock_client_cls:
            client = mock_client(mock_client_cls, github_response(200, json=payload))

            events = await fetcher.fetch(REPO, "gho_token")

        assert [e.id for e in events] == ["c2", "c1"]
        assert events[0].summary() == "Add feature"
        assert events[0].author_login == "octocat"
        assert events[1].author_login is None

        args, kwargs = client.get.call_args
        assert args[0] == URL
        assert kwargs["params"] == {"per_page": 10}
        assert kwargs["headers"]["Authorization"] == "Bearer gho_token"
        assert kwargs["headers"]["User-Agent"] == "Dev-Space-App"

    @pytest.mark.asyncio
    async def test_fetch_truncates_to_limit(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com", limit=2)
        payload = [github_commit(f"c{i}") for i in range(5)]

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(200, json=payload))
            events = await fetcher.fetch(REPO, "gho_token")

        assert len(events) == 2

    @pytest.mark.asyncio
    async def test_empty_repository(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(409, json={"message": "Git Repository is empty."}))
            events = await fetcher.fetch(REPO, "gho_token")

        assert events == []

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(401, json={"message": "Bad credentials"}))

            with pytest.raises(NoCredential):
                await fetcher.fetch(REPO, "gho_revoked")

    @pytest.mark.asyncio
    async def test_missing_token_skips_request(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            client = mock_client(mock_client_cls)

            with pytest.raises(NoCredential):
                await fetcher.fetch(REPO, "")

        client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")
        response = github_response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0", "Retry-After": "60"}
        )

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, response)

            with pytest.raises(RateLimitExceeded) as exc_info:
                await fetcher.fetch(REPO, "gho_token")

        assert exc_info.value.retry_after == 60
        assert isinstance(exc_info.value, UpstreamUnavailable)

    @pytest.mark.asyncio
    async def test_forbidden_without_exhausted_quota(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(403, json={"message": "Forbidden"}))

            with pytest.raises(UpstreamUnavailable) as exc_info:
                await fetcher.fetch(REPO, "gho_token")

        assert not isinstance(exc_info.value, RateLimitExceeded)

    @pytest.mark.asyncio
    async def test_server_error(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(500, text="Internal Server Error"))

            with pytest.raises(UpstreamUnavailable) as exc_info:
                await fetcher.fetch(REPO, "gho_token")

        assert exc_info.value.context["status_code"] == 500

    @pytest.mark.asyncio
    async def test_timeout(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, side_effect=httpx.ReadTimeout("timed out"))

            with pytest.raises(UpstreamUnavailable):
                await fetcher.fetch(REPO, "gho_token")

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        fetcher = GitHubCommitFetcher(api_url="https://api.github.com")

        with patch("httpx.AsyncClient") as mock_client_cls:
            mock_client(mock_client_cls, github_response(200, json={"message": "not a list"}))

            with pytest.raises(UpstreamUnavailable):
                await fetcher.fetch(REPO, "gho_token")
