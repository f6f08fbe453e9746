"""
Pytest configuration and fixtures for activity sync tests.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from activity_sync.config import Settings
from activity_sync.polling.orchestrator import ActivitySyncEngine
from tests.factories import make_repo


@pytest.fixture
def mock_settings() -> Settings:
    """Settings with every action verb allowed."""
    return Settings(
        github_api_token="test-token",
        github_repositories="acme/widgets",
        github_polling_interval_seconds=60,
        github_issue_actions="opened,closed,reopened,updated",
        github_commit_actions="pushed",
        log_level="DEBUG",
    )


@pytest.fixture
def mock_github_client() -> Mock:
    """GitHub client whose API methods are AsyncMocks returning empty results."""
    client = Mock()
    client.get_repo = AsyncMock(side_effect=lambda name: make_repo(name))
    client.get_issues = AsyncMock(return_value=[])
    client.get_pull_requests = AsyncMock(return_value=[])
    client.get_commits = AsyncMock(return_value=[])
    client.get_recent_commits = AsyncMock(return_value=[])
    client.get_commit_files = AsyncMock(return_value=[])
    client.get_authenticated_login = AsyncMock(return_value="octocat")
    client.list_user_repositories = AsyncMock(return_value=[])
    return client


@pytest.fixture
def engine(mock_github_client: Mock, mock_settings: Settings) -> ActivitySyncEngine:
    """Engine wired to the mock GitHub client."""
    return ActivitySyncEngine(mock_github_client, mock_settings)


@pytest.fixture
def received() -> list:
    """Events collected by the `collector` consumer."""
    return []


@pytest.fixture
def collector(received: list):
    """Async consumer appending every event to `received`."""

    async def consume(event):
        received.append(event)

    return consume
