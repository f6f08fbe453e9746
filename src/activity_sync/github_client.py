"""
GitHub API client for the activity sync service.

This module wraps PyGithub with bearer-token authentication, rate limit
tracking, and translation of GitHub errors into the categories the polling
engine reacts to.
"""

import asyncio
import time
from datetime import datetime
from itertools import islice
from typing import Any, NoReturn

import structlog
from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)
from github.Commit import Commit
from github.File import File
from github.Issue import Issue
from github.PullRequest import PullRequest
from github.Repository import Repository

from .exceptions import (
    AuthenticationError,
    GitHubAPIError,
    RateLimitError,
    RepositoryNotFoundError,
)

logger = structlog.get_logger(__name__)


class GitHubClient:
    """
    GitHub API client with authentication and rate limiting.

    Every listing is materialized inside the client so that errors raised by
    PyGithub's lazy pagination surface here, already translated.
    """

    def __init__(self, config: Any) -> None:
        """
        Initialize the GitHub client.

        Args:
            config: Settings object carrying the API token and URL
        """
        self.config = config
        self._github: Github | None = None
        self._login: str | None = None
        self._rate_limit_reset_time: float | None = None
        self._rate_limit_remaining: int | None = None

    def _get_github_instance(self) -> Github:
        """Get authenticated GitHub instance."""
        if self._github is None:
            token = getattr(self.config, "github_api_token", "")
            if not token:
                raise AuthenticationError("No GitHub API token configured")
            self._github = Github(
                auth=Auth.Token(token),
                base_url=getattr(
                    self.config, "github_api_url", "https://api.github.com"
                ),
                timeout=getattr(self.config, "github_request_timeout", 15),
                per_page=getattr(self.config, "github_per_page", 30),
            )
            logger.info("GitHub client created (token mode)")
        return self._github

    def _translate_error(self, error: GithubException, repository: str) -> NoReturn:
        """Raise the domain exception matching a PyGithub error."""
        message = error.data.get("message") if isinstance(error.data, dict) else None
        detail = message or str(error)

        if isinstance(error, RateLimitExceededException):
            raise RateLimitError(
                f"Rate limit exceeded while accessing {repository}: {detail}",
                reset_time=self._rate_limit_reset_time,
            ) from error
        if isinstance(error, BadCredentialsException) or error.status == 401:
            raise AuthenticationError(
                f"Authentication failed for {repository}: {detail}",
                context={"repository": repository},
            ) from error
        if isinstance(error, UnknownObjectException) or error.status == 404:
            raise RepositoryNotFoundError(
                f"Repository {repository} not found: {detail}",
                repository=repository,
            ) from error
        if error.status == 403:
            if "rate limit" in detail.lower():
                raise RateLimitError(
                    f"Secondary rate limit hit for {repository}: {detail}",
                    reset_time=self._rate_limit_reset_time,
                ) from error
            raise RepositoryNotFoundError(
                f"Access to {repository} is forbidden: {detail}",
                repository=repository,
                status_code=403,
            ) from error
        raise GitHubAPIError(
            f"GitHub API error for {repository}: {detail}",
            status_code=error.status,
            context={"repository": repository},
        ) from error

    async def _check_rate_limit(self) -> None:
        """Check and handle rate limiting."""
        if self._rate_limit_remaining is not None and self._rate_limit_remaining <= 10:
            if (
                self._rate_limit_reset_time
                and time.time() < self._rate_limit_reset_time
            ):
                sleep_time = self._rate_limit_reset_time - time.time()
                logger.warning(
                    "Rate limit approaching, sleeping",
                    sleep_time=sleep_time,
                    remaining=self._rate_limit_remaining,
                )
                await asyncio.sleep(sleep_time)

    def _update_rate_limit_info(self) -> None:
        """Update rate limit information from the last response headers."""
        if self._github is None:
            return
        try:
            remaining, _limit = self._github.rate_limiting
            self._rate_limit_remaining = remaining
            self._rate_limit_reset_time = float(self._github.rate_limiting_resettime)
        except Exception as e:
            logger.warning("Failed to read rate limit info", error=str(e))

    async def get_repo(self, full_name: str) -> Repository:
        """
        Get repository by full name.

        Args:
            full_name: Repository full name (owner/repo)

        Returns:
            Repository object
        """
        await self._check_rate_limit()

        try:
            repo = self._get_github_instance().get_repo(full_name)
            self._update_rate_limit_info()
            return repo
        except GithubException as e:
            logger.debug("Failed to get repository", repo=full_name, error=str(e))
            self._translate_error(e, full_name)

    async def get_issues(self, repo: Repository, since: datetime) -> list[Issue]:
        """
        Get issues in any state updated since a timestamp, newest first.

        Args:
            repo: Repository object
            since: Only issues updated at or after this time are returned

        Returns:
            List of Issue objects, pull requests included
        """
        await self._check_rate_limit()

        try:
            issues = list(
                repo.get_issues(
                    state="all", since=since, sort="updated", direction="desc"
                )
            )
            self._update_rate_limit_info()
            return issues
        except GithubException as e:
            self._translate_error(e, repo.full_name)

    async def get_pull_requests(self, repo: Repository) -> list[PullRequest]:
        """
        Get the most recently updated page of pull requests in any state.

        The pulls endpoint has no since filter, so callers must apply their own
        temporal cutoff.

        Args:
            repo: Repository object

        Returns:
            List of PullRequest objects
        """
        await self._check_rate_limit()

        try:
            pulls = repo.get_pulls(state="all", sort="updated", direction="desc")
            page = list(pulls.get_page(0))
            self._update_rate_limit_info()
            return page
        except GithubException as e:
            self._translate_error(e, repo.full_name)

    async def get_commits(
        self, repo: Repository, since: datetime, limit: int = 10
    ) -> list[Commit]:
        """
        Get the most recent commits since a timestamp.

        Args:
            repo: Repository object
            since: Only commits after this time are returned
            limit: Maximum number of commits returned

        Returns:
            List of Commit objects, newest first
        """
        await self._check_rate_limit()

        try:
            commits = list(islice(repo.get_commits(since=since), limit))
            self._update_rate_limit_info()
            return commits
        except GithubException as e:
            self._translate_error(e, repo.full_name)

    async def get_recent_commits(self, repo: Repository, limit: int = 5) -> list[Commit]:
        """
        Get the most recent commits on the default branch.

        Args:
            repo: Repository object
            limit: Maximum number of commits returned

        Returns:
            List of Commit objects, newest first
        """
        await self._check_rate_limit()

        try:
            commits = list(islice(repo.get_commits(), limit))
            self._update_rate_limit_info()
            return commits
        except GithubException as e:
            self._translate_error(e, repo.full_name)

    async def get_commit_files(self, repo: Repository, sha: str) -> list[File]:
        """
        Get the file-level changes of a single commit.

        Args:
            repo: Repository object
            sha: Commit SHA

        Returns:
            List of File objects
        """
        await self._check_rate_limit()

        try:
            files = list(repo.get_commit(sha).files)
            self._update_rate_limit_info()
            return files
        except GithubException as e:
            self._translate_error(e, f"{repo.full_name}@{sha}")

    async def get_authenticated_login(self) -> str:
        """
        Get the login of the account the token belongs to.

        Returns:
            Login name, cached after the first call
        """
        if self._login is None:
            try:
                self._login = self._get_github_instance().get_user().login
                self._update_rate_limit_info()
            except GithubException as e:
                self._translate_error(e, "user")
        return self._login

    async def list_user_repositories(
        self,
        affiliation: str = "owner,collaborator,organization_member",
        sort: str = "full_name",
        direction: str = "asc",
        per_page: int = 100,
        page: int = 1,
    ) -> list[Repository]:
        """
        List repositories the authenticated user can access.

        Args:
            affiliation: Comma-separated affiliation filter
            sort: Sort field (created, updated, pushed, full_name)
            direction: Sort direction (asc, desc)
            per_page: Number of repositories per page
            page: 1-based page number

        Returns:
            List of Repository objects for the requested page
        """
        await self._check_rate_limit()

        try:
            user = self._get_github_instance().get_user()
            repos = user.get_repos(
                affiliation=affiliation, sort=sort, direction=direction
            )
            start = (page - 1) * per_page
            result = list(repos[start : start + per_page])
            self._update_rate_limit_info()
            return result
        except GithubException as e:
            self._translate_error(e, "user/repos")

    async def get_rate_limit_info(self) -> dict[str, Any]:
        """
        Get current rate limit information.

        Returns:
            Dictionary with rate limit information
        """
        try:
            overview = self._get_github_instance().get_rate_limit()
            # Newer PyGithub releases nest the buckets under .resources
            rate_limit = getattr(overview, "resources", overview)

            return {
                "core": {
                    "limit": rate_limit.core.limit,
                    "remaining": rate_limit.core.remaining,
                    "reset": rate_limit.core.reset.isoformat(),
                },
                "search": {
                    "limit": rate_limit.search.limit,
                    "remaining": rate_limit.search.remaining,
                    "reset": rate_limit.search.reset.isoformat(),
                },
            }
        except Exception as e:
            logger.error("Failed to get rate limit info", error=str(e))
            return {"error": str(e)}
