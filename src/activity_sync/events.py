"""
Classified activity events.

This module defines the tagged event variants handed to consumers, plus the
snapshots built from PyGithub objects so that no raw API object outlives the
tick that fetched it.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ActivityCategory(str, Enum):
    """Activity categories polled for every monitored repository."""

    ISSUES = "issues"
    PULL_REQUESTS = "pull_requests"
    COMMITS = "commits"


# Processing order within a tick
CATEGORY_ORDER = (
    ActivityCategory.ISSUES,
    ActivityCategory.PULL_REQUESTS,
    ActivityCategory.COMMITS,
)

ISSUE_ACTIONS = frozenset({"opened", "closed", "reopened", "updated"})
PULL_REQUEST_ACTIONS = frozenset({"opened", "closed", "reopened", "updated"})
COMMIT_ACTIONS = frozenset({"pushed"})


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class Actor(_Snapshot):
    """A GitHub account, or a bare committer name with a sentinel id."""

    login: str
    id: int
    avatar_url: str = ""

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        """Create an Actor from a PyGithub NamedUser."""
        return cls(
            login=user.login,
            id=user.id,
            avatar_url=getattr(user, "avatar_url", None) or "",
        )

    @classmethod
    def unlinked(cls, name: str) -> "Actor":
        """Create an Actor for a commit author with no linked account."""
        return cls(login=name, id=0, avatar_url="")


class RepositoryRef(_Snapshot):
    id: int
    full_name: str
    html_url: str
    default_branch: str = "main"

    @classmethod
    def from_repo(cls, repo: Any) -> "RepositoryRef":
        """Create a RepositoryRef from a PyGithub Repository."""
        return cls(
            id=repo.id,
            full_name=repo.full_name,
            html_url=repo.html_url,
            default_branch=repo.default_branch or "main",
        )


class Label(_Snapshot):
    id: int
    name: str
    color: str
    description: str | None = None


class Milestone(_Snapshot):
    id: int
    number: int
    title: str
    description: str | None = None
    state: str
    due_on: datetime | None = None


class IssueSnapshot(_Snapshot):
    """Issue fields carried by an IssueEvent."""

    id: int
    number: int
    title: str
    body: str | None = None
    state: str
    html_url: str
    user: Actor
    assignees: list[Actor] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    milestone: Milestone | None = None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None

    @staticmethod
    def _common_fields(record: Any) -> dict[str, Any]:
        milestone = getattr(record, "milestone", None)
        return {
            "id": record.id,
            "number": record.number,
            "title": record.title,
            "body": record.body,
            "state": record.state,
            "html_url": record.html_url,
            "user": Actor.from_user(record.user),
            "assignees": [
                Actor.from_user(a) for a in (getattr(record, "assignees", None) or [])
            ],
            "labels": [
                Label(
                    id=label.id,
                    name=label.name,
                    color=label.color,
                    description=getattr(label, "description", None),
                )
                for label in (getattr(record, "labels", None) or [])
            ],
            "milestone": (
                Milestone(
                    id=milestone.id,
                    number=milestone.number,
                    title=milestone.title,
                    description=milestone.description,
                    state=milestone.state,
                    due_on=milestone.due_on,
                )
                if milestone
                else None
            ),
            "created_at": record.created_at,
            "updated_at": record.updated_at,
            "closed_at": record.closed_at,
        }

    @classmethod
    def from_issue(cls, issue: Any) -> "IssueSnapshot":
        """Create an IssueSnapshot from a PyGithub Issue."""
        return cls(**cls._common_fields(issue))


class PullRequestSnapshot(IssueSnapshot):
    """Pull request fields carried by a PullRequestEvent."""

    merged: bool = False
    merged_at: datetime | None = None
    merge_commit_sha: str | None = None
    head_ref: str
    head_sha: str
    base_ref: str
    base_sha: str

    @classmethod
    def from_pull(cls, pr: Any) -> "PullRequestSnapshot":
        """
        Create a PullRequestSnapshot from a PyGithub PullRequest.

        The merged flag is derived from merged_at; listing responses do not
        carry the merged attribute and reading it would trigger another request.
        """
        return cls(
            **cls._common_fields(pr),
            merged=pr.merged_at is not None,
            merged_at=pr.merged_at,
            merge_commit_sha=pr.merge_commit_sha,
            head_ref=pr.head.ref,
            head_sha=pr.head.sha,
            base_ref=pr.base.ref,
            base_sha=pr.base.sha,
        )


class GitSignature(_Snapshot):
    name: str
    email: str
    date: datetime


class FileChanges(_Snapshot):
    """Paths touched by a commit, bucketed by change status."""

    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @classmethod
    def from_files(cls, files: Any) -> "FileChanges":
        """Bucket PyGithub File objects; statuses such as 'renamed' are ignored."""
        added: list[str] = []
        modified: list[str] = []
        removed: list[str] = []
        for file in files:
            if file.status == "added":
                added.append(file.filename)
            elif file.status == "modified":
                modified.append(file.filename)
            elif file.status == "removed":
                removed.append(file.filename)
        return cls(added=added, modified=modified, removed=removed)


class CommitSnapshot(_Snapshot):
    """Commit fields carried by a CommitEvent."""

    sha: str
    message: str
    url: str
    html_url: str
    author: GitSignature
    committer: GitSignature
    tree_sha: str
    tree_url: str
    files: FileChanges | None = None

    @classmethod
    def from_commit(cls, commit: Any) -> "CommitSnapshot":
        """Create a CommitSnapshot from a PyGithub Commit."""
        git_commit = commit.commit
        return cls(
            sha=commit.sha,
            message=git_commit.message,
            url=commit.url,
            html_url=commit.html_url,
            author=GitSignature(
                name=git_commit.author.name,
                email=git_commit.author.email,
                date=git_commit.author.date,
            ),
            committer=GitSignature(
                name=git_commit.committer.name,
                email=git_commit.committer.email,
                date=git_commit.committer.date,
            ),
            tree_sha=git_commit.tree.sha,
            tree_url=git_commit.tree.url,
        )


class IssueEvent(_Snapshot):
    kind: Literal["issue"] = "issue"
    action: str
    repository: RepositoryRef
    sender: Actor
    issue: IssueSnapshot

    @property
    def category(self) -> ActivityCategory:
        return ActivityCategory.ISSUES


class PullRequestEvent(_Snapshot):
    kind: Literal["pull_request"] = "pull_request"
    action: str
    repository: RepositoryRef
    sender: Actor
    pull_request: PullRequestSnapshot

    @property
    def category(self) -> ActivityCategory:
        return ActivityCategory.PULL_REQUESTS


class CommitEvent(_Snapshot):
    kind: Literal["commit"] = "commit"
    action: Literal["pushed"] = "pushed"
    repository: RepositoryRef
    sender: Actor
    commit: CommitSnapshot
    branch: str

    @property
    def category(self) -> ActivityCategory:
        return ActivityCategory.COMMITS


ClassifiedEvent = Annotated[
    Union[IssueEvent, PullRequestEvent, CommitEvent],
    Field(discriminator="kind"),
]
