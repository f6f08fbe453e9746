"""
Event consumers for the activity sync service.

The engine delivers each accepted event to exactly one consumer. Rendering an
event into a printed receipt lives outside this package; the consumer here
logs a one-line summary of every event it receives.
"""

import structlog

from .events import ClassifiedEvent, CommitEvent, IssueEvent, PullRequestEvent

logger = structlog.get_logger(__name__)


def describe_event(event: ClassifiedEvent) -> dict[str, object]:
    """Build a flat summary of an event for logging."""
    summary: dict[str, object] = {
        "kind": event.kind,
        "action": event.action,
        "repository": event.repository.full_name,
        "sender": event.sender.login,
    }
    if isinstance(event, IssueEvent):
        summary.update(number=event.issue.number, title=event.issue.title)
    elif isinstance(event, PullRequestEvent):
        summary.update(
            number=event.pull_request.number,
            title=event.pull_request.title,
            merged=event.pull_request.merged,
        )
    elif isinstance(event, CommitEvent):
        summary.update(
            sha=event.commit.sha[:7],
            branch=event.branch,
            message=event.commit.message.split("\n", 1)[0],
        )
        if event.commit.files is not None:
            summary.update(
                files_added=len(event.commit.files.added),
                files_modified=len(event.commit.files.modified),
                files_removed=len(event.commit.files.removed),
            )
    return summary


class LoggingConsumer:
    """Consumer that logs every delivered event."""

    def __init__(self) -> None:
        self.handled = 0

    async def __call__(self, event: ClassifiedEvent) -> None:
        self.handled += 1
        logger.info("Processing event", **describe_event(event))
