"""
Upstream change fetchers.

    base: ChangeFetcher contract
    github_fetcher: recent commits of a GitHub repository
"""

from monitoring.fetchers.base import ChangeFetcher
from monitoring.fetchers.github_fetcher import GitHubCommitFetcher

__all__ = ["ChangeFetcher", "GitHubCommitFetcher"]
