"""
Polling orchestrator for the activity sync service.

This module owns the monitored repository set, the cursors and the polling
timer, and drives each tick through fetch, classify, filter and dispatch.
"""

import asyncio
from datetime import datetime
from typing import Any

import structlog

from ..config import Settings
from ..events import CATEGORY_ORDER, ActivityCategory, ClassifiedEvent
from ..exceptions import AuthenticationError, RepositoryNotFoundError
from ..github_client import GitHubClient
from .classifiers import build_classifiers
from .cursors import CursorStore, utc_now
from .dispatcher import EventConsumer, EventDispatcher
from .fetchers import build_fetchers
from .validator import RepositoryValidator

logger = structlog.get_logger(__name__)


class ActivitySyncEngine:
    """
    Polls monitored repositories and hands new activity to a consumer.

    Lifecycle is validate -> start -> ticks -> stop. Every mutation of the
    monitored set or the cursors happens while holding a single lock, and the
    timer never starts a tick while the previous one is still in flight: a
    late timer firing is skipped, not queued. The lock is held while the
    consumer runs, so a consumer must not call back into the engine.
    """

    def __init__(self, github_client: GitHubClient, settings: Settings):
        """
        Initialize the engine.

        Args:
            github_client: GitHub API client
            settings: Application settings
        """
        self.github_client = github_client
        self.settings = settings
        self.config = settings.polling_config
        self.policy = settings.activity_policy

        self.validator = RepositoryValidator(github_client)
        self.cursors = CursorStore()
        self.fetchers = build_fetchers(github_client, self.config)
        self.classifiers = build_classifiers(self.policy, github_client)
        self.dispatcher: EventDispatcher | None = None

        self._configured: list[str] = list(settings.repositories)
        self._monitored: list[str] = []
        self._lock = asyncio.Lock()
        self._timer_task: asyncio.Task[None] | None = None
        self._tick_task: asyncio.Task[int] | None = None

        self.ticks_completed = 0
        self.ticks_skipped = 0
        self.last_tick_started: datetime | None = None
        self.last_tick_duration: float | None = None

    @property
    def monitored_repositories(self) -> list[str]:
        """Repositories currently being polled."""
        return list(self._monitored)

    def is_running(self) -> bool:
        """Check if the polling timer is armed."""
        return self._timer_task is not None and not self._timer_task.done()

    def tick_in_flight(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    async def validate(self, repositories: list[str] | None = None) -> list[str]:
        """
        Validate repositories and replace the monitored set with the result.

        Args:
            repositories: Repositories in owner/name format; defaults to the
                configured list. An explicit list also becomes the configured
                list used by later calls to start().

        Returns:
            Repositories confirmed reachable and authorized
        """
        async with self._lock:
            if repositories is None:
                candidates = list(self._configured)
            else:
                candidates = list(repositories)
                self._configured = list(candidates)
            valid = await self.validator.validate(candidates)

            for repo_name in self._monitored:
                if repo_name not in valid:
                    self.cursors.discard(repo_name)
            now = utc_now()
            for repo_name in valid:
                self.cursors.initialize(repo_name, now)
            self._monitored = valid

        return self.monitored_repositories

    async def add_repository(self, identifier: str) -> bool:
        """
        Validate one repository and start monitoring it.

        Cursors of already monitored repositories are left untouched.

        Returns:
            True if the repository is now monitored
        """
        async with self._lock:
            if identifier in self._monitored:
                return True

            if not await self.validator.check(identifier):
                return False

            self._monitored.append(identifier)
            self.cursors.initialize(identifier)
            if identifier not in self._configured:
                self._configured.append(identifier)

        logger.info("Added repository to monitoring list", repository=identifier)
        return True

    def last_checked(
        self,
        repository: str,
        category: ActivityCategory = ActivityCategory.COMMITS,
    ) -> datetime | None:
        """Get the cursor of a repository and category, if it was ever set."""
        return self.cursors.peek(repository, category)

    async def start(self, on_event: EventConsumer) -> list[str]:
        """
        Validate the configured repositories and arm the polling timer.

        Calling start while running restarts the timer.

        Args:
            on_event: Consumer called once per accepted event

        Returns:
            Repositories that will be polled
        """
        if self._timer_task is not None:
            logger.info("Polling already running, restarting")
            await self.stop()

        self.dispatcher = EventDispatcher(on_event)
        monitored = await self.validate()

        if not monitored:
            logger.error("Cannot start polling: no valid repositories found")
            return monitored

        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info(
            "Started polling GitHub API",
            repositories=len(monitored),
            interval_seconds=self.config.interval_seconds,
        )
        return monitored

    async def stop(self) -> None:
        """
        Cancel the polling timer.

        A tick already in flight runs to completion.
        """
        if self._timer_task is None:
            return

        task, self._timer_task = self._timer_task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped polling GitHub API")

    async def _timer_loop(self) -> None:
        """Fire a tick every interval, skipping while one is in flight."""
        while True:
            await asyncio.sleep(self.config.interval_seconds)

            if self.tick_in_flight():
                self.ticks_skipped += 1
                logger.warning(
                    "Previous tick still running, skipping this tick",
                    skipped_total=self.ticks_skipped,
                )
                continue

            self._tick_task = asyncio.create_task(self.run_tick())

    async def run_tick(self) -> int:
        """
        Process every monitored repository once.

        Repositories, categories and events are handled strictly in order.

        Returns:
            Number of events the consumer handled successfully
        """
        if self.dispatcher is None:
            raise RuntimeError("No event consumer registered; call start() first")

        async with self._lock:
            started = utc_now()
            self.last_tick_started = started
            handled = 0

            logger.debug("Polling cycle started", repositories=len(self._monitored))

            try:
                for repo_name in list(self._monitored):
                    for category in CATEGORY_ORDER:
                        if repo_name not in self._monitored:
                            break
                        events = await self._check_category(
                            repo_name, category, monitored=True
                        )
                        handled += await self.dispatcher.dispatch_all(events)
            except Exception as e:
                logger.error("Error polling GitHub API", error=str(e))

            self.ticks_completed += 1
            self.last_tick_duration = (utc_now() - started).total_seconds()

            logger.info(
                "Polling cycle completed",
                duration_seconds=self.last_tick_duration,
                repositories_processed=len(self._monitored),
                events_handled=handled,
            )
            return handled

    async def force_check(
        self, repository: str, category: ActivityCategory
    ) -> list[ClassifiedEvent]:
        """
        Run one category check outside the timer.

        For a monitored repository the cursor advances exactly as in a tick.
        An unmonitored repository is checked against a transient "now" cursor
        and nothing is mutated. Events are returned, not dispatched.
        """
        async with self._lock:
            monitored = repository in self._monitored
            logger.info(
                "Force checking repository",
                repository=repository,
                category=category.value,
                monitored=monitored,
            )
            return await self._check_category(repository, category, monitored)

    async def _check_category(
        self, repo_name: str, category: ActivityCategory, monitored: bool
    ) -> list[ClassifiedEvent]:
        """Fetch and classify one category, applying the failure policy."""
        cursor = self.cursors.get(repo_name, category)
        if monitored:
            # Advanced before the fetch: activity landing while the fetch is in
            # flight falls before the next cursor and is not reported.
            self.cursors.advance(repo_name, category, utc_now())

        try:
            result = await self.fetchers[category].fetch(repo_name, cursor)
            return await self.classifiers[category].classify(result, cursor)
        except RepositoryNotFoundError as e:
            logger.error(
                "Repository not found or not accessible",
                repository=repo_name,
                category=category.value,
                status_code=e.status_code,
            )
            if monitored:
                self._invalidate(repo_name)
        except AuthenticationError as e:
            logger.error(
                "Authentication failed for repository",
                repository=repo_name,
                category=category.value,
                error=str(e),
            )
        except Exception as e:
            logger.error(
                "Error checking repository activity",
                repository=repo_name,
                category=category.value,
                error=str(e),
            )
        return []

    def _invalidate(self, repo_name: str) -> None:
        if repo_name in self._monitored:
            self._monitored.remove(repo_name)
            self.cursors.discard(repo_name)
            logger.warning("Removed repository from monitoring", repository=repo_name)

    def status(self) -> dict[str, Any]:
        """Get engine state for monitoring."""
        return {
            "running": self.is_running(),
            "tick_in_flight": self.tick_in_flight(),
            "interval_seconds": self.config.interval_seconds,
            "configured_repositories": list(self._configured),
            "monitored_repositories": self.monitored_repositories,
            "allowed_actions": {
                category.value: sorted(self.policy.allowed_actions(category))
                for category in CATEGORY_ORDER
            },
            "ticks_completed": self.ticks_completed,
            "ticks_skipped": self.ticks_skipped,
            "last_tick_started": (
                self.last_tick_started.isoformat() if self.last_tick_started else None
            ),
            "last_tick_duration_seconds": self.last_tick_duration,
            "events_delivered": self.dispatcher.delivered if self.dispatcher else 0,
            "events_failed": self.dispatcher.failed if self.dispatcher else 0,
            "cursors": self.cursors.snapshot(),
        }
