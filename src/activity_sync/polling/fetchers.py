"""
Activity fetchers for the polling engine.

Each fetcher resolves a repository and retrieves the raw records of one
activity category that changed since a cursor. Errors are raised as the
translated GitHub exceptions; the engine decides what they mean for the
repository.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import structlog
from github.Repository import Repository

from ..config import PollingConfig
from ..events import ActivityCategory, RepositoryRef
from ..github_client import GitHubClient

logger = structlog.get_logger(__name__)


class FetchResult:
    """Raw records fetched for one repository and category."""

    def __init__(self, repo: Repository, records: list[Any]):
        self.repo = repo
        self.repository = RepositoryRef.from_repo(repo)
        self.records = records

    @property
    def branch(self) -> str:
        """Default branch of the repository the records came from."""
        return self.repository.default_branch


class ActivityFetcher(ABC):
    """Base class for per-category activity fetchers."""

    category: ActivityCategory

    def __init__(self, github_client: GitHubClient, config: PollingConfig):
        self.github_client = github_client
        self.config = config

    async def fetch(self, repo_name: str, since: datetime) -> FetchResult:
        """
        Fetch records of this category changed since a cursor.

        Args:
            repo_name: Repository in owner/name format
            since: Cursor value read for this tick

        Returns:
            Fetched records plus the resolved repository
        """
        repo = await self.github_client.get_repo(repo_name)
        records = await self._list_records(repo, since)

        logger.debug(
            "Fetched activity records",
            repository=repo_name,
            category=self.category.value,
            since=since.isoformat(),
            count=len(records),
        )
        return FetchResult(repo, records)

    @abstractmethod
    async def _list_records(self, repo: Repository, since: datetime) -> list[Any]:
        """List the raw records for a resolved repository."""
        pass


class IssueFetcher(ActivityFetcher):
    """Fetches issues updated since the cursor, excluding pull requests."""

    category = ActivityCategory.ISSUES

    async def _list_records(self, repo: Repository, since: datetime) -> list[Any]:
        issues = await self.github_client.get_issues(repo, since)
        # The issues endpoint also returns pull requests, marked by pull_request
        return [issue for issue in issues if issue.pull_request is None]


class PullRequestFetcher(ActivityFetcher):
    """
    Fetches the most recently updated page of pull requests.

    The pulls endpoint has no since filter; the classifier applies the cutoff.
    """

    category = ActivityCategory.PULL_REQUESTS

    async def _list_records(self, repo: Repository, since: datetime) -> list[Any]:
        return await self.github_client.get_pull_requests(repo)


class CommitFetcher(ActivityFetcher):
    """Fetches at most `commit_limit` commits newer than the cursor."""

    category = ActivityCategory.COMMITS

    async def _list_records(self, repo: Repository, since: datetime) -> list[Any]:
        return await self.github_client.get_commits(
            repo, since, limit=self.config.commit_limit
        )


def build_fetchers(
    github_client: GitHubClient, config: PollingConfig
) -> dict[ActivityCategory, ActivityFetcher]:
    """Create one fetcher per activity category."""
    return {
        ActivityCategory.ISSUES: IssueFetcher(github_client, config),
        ActivityCategory.PULL_REQUESTS: PullRequestFetcher(github_client, config),
        ActivityCategory.COMMITS: CommitFetcher(github_client, config),
    }
