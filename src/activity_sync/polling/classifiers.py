"""
Activity classifiers for the polling engine.

Classifiers turn raw records into action verbs by comparing their timestamps
with the cursor read for the tick, build the matching event variant, and drop
events whose verb is not in the configured allow-set.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

import structlog

from ..config import ActivityPolicy
from ..events import (
    ActivityCategory,
    Actor,
    ClassifiedEvent,
    CommitEvent,
    CommitSnapshot,
    FileChanges,
    IssueEvent,
    IssueSnapshot,
    PullRequestEvent,
    PullRequestSnapshot,
)
from ..github_client import GitHubClient
from .fetchers import FetchResult

logger = structlog.get_logger(__name__)


def _utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with the cursor."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _after(value: datetime | None, cursor: datetime) -> bool:
    return value is not None and _utc(value) > cursor


def classify_issue(issue: Any, cursor: datetime) -> str:
    """
    Map an issue record to an action verb.

    Rules are checked in order; the first match wins.
    """
    if _after(issue.created_at, cursor):
        return "opened"
    if issue.state == "closed" and _after(issue.closed_at, cursor):
        return "closed"
    if issue.state == "open" and issue.closed_at is not None:
        return "reopened"
    return "updated"


def classify_pull_request(pr: Any, cursor: datetime) -> str | None:
    """
    Map a pull request record to an action verb.

    Returns:
        The verb, or None when the record was not updated after the cursor
    """
    if not _after(pr.updated_at, cursor):
        return None
    if _after(pr.created_at, cursor):
        return "opened"
    # Merged and unmerged closures share one verb
    if pr.state == "closed":
        return "closed"
    if pr.state == "open" and pr.merged_at is None:
        return "reopened"
    return "updated"


class ActivityClassifier(ABC):
    """Base class for per-category classifiers."""

    category: ActivityCategory

    def __init__(self, policy: ActivityPolicy):
        self.policy = policy

    def _allowed(self, action: str, repository: str, identifier: Any) -> bool:
        if self.policy.allows(self.category, action):
            return True
        logger.debug(
            "Ignoring event not in allowed actions",
            repository=repository,
            category=self.category.value,
            action=action,
            record=identifier,
        )
        return False

    @abstractmethod
    async def classify(
        self, result: FetchResult, cursor: datetime
    ) -> list[ClassifiedEvent]:
        """Classify fetched records against the cursor read for this tick."""
        pass


class IssueClassifier(ActivityClassifier):
    category = ActivityCategory.ISSUES

    async def classify(
        self, result: FetchResult, cursor: datetime
    ) -> list[ClassifiedEvent]:
        events: list[ClassifiedEvent] = []
        for issue in result.records:
            action = classify_issue(issue, cursor)
            if not self._allowed(action, result.repository.full_name, issue.number):
                continue
            events.append(
                IssueEvent(
                    action=action,
                    repository=result.repository,
                    sender=Actor.from_user(issue.user),
                    issue=IssueSnapshot.from_issue(issue),
                )
            )
        return events


class PullRequestClassifier(ActivityClassifier):
    category = ActivityCategory.PULL_REQUESTS

    async def classify(
        self, result: FetchResult, cursor: datetime
    ) -> list[ClassifiedEvent]:
        events: list[ClassifiedEvent] = []
        for pr in result.records:
            action = classify_pull_request(pr, cursor)
            if action is None:
                continue
            if not self._allowed(action, result.repository.full_name, pr.number):
                continue
            events.append(
                PullRequestEvent(
                    action=action,
                    repository=result.repository,
                    sender=Actor.from_user(pr.user),
                    pull_request=PullRequestSnapshot.from_pull(pr),
                )
            )
        return events


class CommitSynchronizer(ActivityClassifier):
    """
    Builds `pushed` events for fetched commits.

    Each accepted commit gets a second, best-effort lookup of its file changes.
    Commits are attributed to the repository's default branch.
    """

    category = ActivityCategory.COMMITS

    def __init__(self, policy: ActivityPolicy, github_client: GitHubClient):
        super().__init__(policy)
        self.github_client = github_client

    @staticmethod
    def resolve_sender(commit: Any) -> Actor:
        """Prefer the linked account; fall back to the raw committer name."""
        if commit.author is not None:
            return Actor.from_user(commit.author)
        return Actor.unlinked(commit.commit.author.name)

    async def enrich(self, result: FetchResult, sha: str) -> FileChanges | None:
        """Fetch file changes for a commit; failures yield None."""
        try:
            files = await self.github_client.get_commit_files(result.repo, sha)
        except Exception as e:
            logger.warning(
                "Failed to fetch commit details",
                repository=result.repository.full_name,
                sha=sha,
                error=str(e),
            )
            return None
        return FileChanges.from_files(files)

    async def classify(
        self, result: FetchResult, cursor: datetime
    ) -> list[ClassifiedEvent]:
        events: list[ClassifiedEvent] = []
        for commit in result.records:
            if not self._allowed("pushed", result.repository.full_name, commit.sha):
                continue

            snapshot = CommitSnapshot.from_commit(commit)
            files = await self.enrich(result, commit.sha)
            if files is not None:
                snapshot = snapshot.model_copy(update={"files": files})

            events.append(
                CommitEvent(
                    repository=result.repository,
                    sender=self.resolve_sender(commit),
                    commit=snapshot,
                    branch=result.branch,
                )
            )
            logger.info(
                "Found new commit",
                repository=result.repository.full_name,
                sha=commit.sha[:7],
                author=snapshot.author.name,
            )
        return events


def build_classifiers(
    policy: ActivityPolicy, github_client: GitHubClient
) -> dict[ActivityCategory, ActivityClassifier]:
    """Create one classifier per activity category."""
    return {
        ActivityCategory.ISSUES: IssueClassifier(policy),
        ActivityCategory.PULL_REQUESTS: PullRequestClassifier(policy),
        ActivityCategory.COMMITS: CommitSynchronizer(policy, github_client),
    }
