"""
Tests for event delivery to the registered consumer.
"""

import pytest

from activity_sync.config import ActivityPolicy
from activity_sync.events import CommitEvent
from activity_sync.polling.classifiers import CommitSynchronizer
from activity_sync.polling.dispatcher import EventDispatcher
from activity_sync.polling.fetchers import FetchResult
from tests.factories import at, make_commit, make_repo


async def build_events(mock_github_client, count=2) -> list[CommitEvent]:
    synchronizer = CommitSynchronizer(ActivityPolicy(), mock_github_client)
    commits = [make_commit(sha=f"{index:040d}") for index in range(count)]
    return await synchronizer.classify(FetchResult(make_repo(), commits), at(0))


@pytest.mark.asyncio
async def test_sync_consumer(mock_github_client):
    seen = []
    dispatcher = EventDispatcher(seen.append)
    events = await build_events(mock_github_client)

    handled = await dispatcher.dispatch_all(events)

    assert handled == 2
    assert seen == events
    assert dispatcher.delivered == 2


@pytest.mark.asyncio
async def test_async_consumer_awaited_in_order(mock_github_client, collector, received):
    dispatcher = EventDispatcher(collector)
    events = await build_events(mock_github_client, count=3)

    await dispatcher.dispatch_all(events)

    assert [event.commit.sha for event in received] == [
        event.commit.sha for event in events
    ]


@pytest.mark.asyncio
async def test_consumer_failure_is_counted_not_raised(mock_github_client):
    def consumer(event):
        raise ValueError("cannot handle")

    dispatcher = EventDispatcher(consumer)
    events = await build_events(mock_github_client)

    handled = await dispatcher.dispatch_all(events)

    assert handled == 0
    assert dispatcher.failed == 2
    assert dispatcher.delivered == 0


@pytest.mark.asyncio
async def test_dispatch_returns_outcome(mock_github_client):
    events = await build_events(mock_github_client, count=1)

    assert await EventDispatcher(lambda event: None).dispatch(events[0]) is True
