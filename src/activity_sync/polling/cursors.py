"""
Cursor store for the polling engine.

Tracks, per repository and activity category, the timestamp of the last check.
Cursors live only as long as the process; a restart re-validates and starts
again from "now", skipping whatever happened while the process was down.
"""

from datetime import UTC, datetime

import structlog

from ..events import CATEGORY_ORDER, ActivityCategory

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class CursorStore:
    """In-memory, non-decreasing cursors keyed by (repository, category)."""

    def __init__(self) -> None:
        self._cursors: dict[tuple[str, ActivityCategory], datetime] = {}

    def get(self, repo: str, category: ActivityCategory) -> datetime:
        """
        Get the cursor for a repository and category.

        An unseen pair reads as "now" so that it never floods with backlog;
        the value is not stored.
        """
        return self._cursors.get((repo, category)) or utc_now()

    def peek(self, repo: str, category: ActivityCategory) -> datetime | None:
        """Get the stored cursor, or None if it was never set."""
        return self._cursors.get((repo, category))

    def advance(
        self, repo: str, category: ActivityCategory, timestamp: datetime
    ) -> datetime:
        """
        Move a cursor forward.

        Returns:
            The stored cursor, which is never earlier than before the call
        """
        key = (repo, category)
        current = self._cursors.get(key)
        if current is not None and timestamp < current:
            logger.debug(
                "Ignoring backwards cursor move",
                repository=repo,
                category=category.value,
                current=current.isoformat(),
                requested=timestamp.isoformat(),
            )
            return current
        self._cursors[key] = timestamp
        return timestamp

    def initialize(self, repo: str, timestamp: datetime | None = None) -> None:
        """Set every category cursor of a repository to a time, now by default."""
        start = timestamp or utc_now()
        for category in CATEGORY_ORDER:
            self.advance(repo, category, start)

    def discard(self, repo: str) -> None:
        """Drop all cursors of a repository."""
        for category in CATEGORY_ORDER:
            self._cursors.pop((repo, category), None)

    def snapshot(self) -> dict[str, dict[str, str]]:
        """Get all cursors as ISO strings for monitoring."""
        summary: dict[str, dict[str, str]] = {}
        for (repo, category), timestamp in self._cursors.items():
            summary.setdefault(repo, {})[category.value] = timestamp.isoformat()
        return summary
