"""
Activity Sync

Watches GitHub repositories for new issues, pull requests and commits and
turns that activity into a stream of classified events for a consumer.
"""

__version__ = "0.1.0"

from .config import ActivityPolicy, Settings
from .events import (
    ActivityCategory,
    ClassifiedEvent,
    CommitEvent,
    IssueEvent,
    PullRequestEvent,
)
from .exceptions import ActivitySyncError
from .github_client import GitHubClient
from .polling import ActivitySyncEngine

__all__ = [
    "ActivityCategory",
    "ActivityPolicy",
    "ActivitySyncEngine",
    "ActivitySyncError",
    "ClassifiedEvent",
    "CommitEvent",
    "GitHubClient",
    "IssueEvent",
    "PullRequestEvent",
    "Settings",
]
