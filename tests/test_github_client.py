"""
Tests for the GitHub client wrapper.
"""

from unittest.mock import Mock, patch

import pytest
from github import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from activity_sync.config import Settings
from activity_sync.exceptions import (
    AuthenticationError,
    GitHubAPIError,
    RateLimitError,
    RepositoryNotFoundError,
)
from activity_sync.github_client import GitHubClient
from tests.factories import T0, make_commit, make_issue, make_pull, make_repo


@pytest.fixture
def github_instance():
    instance = Mock()
    instance.rate_limiting = (4999, 5000)
    instance.rate_limiting_resettime = 1714564800
    with patch("activity_sync.github_client.Github", return_value=instance):
        yield instance


@pytest.fixture
def client(mock_settings, github_instance) -> GitHubClient:
    return GitHubClient(mock_settings)


def failing_iterator(items, error):
    """Yield items, then fail the way a lazy page fetch does."""
    yield from items
    raise error


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_is_authentication_error(self):
        client = GitHubClient(Settings(github_api_token=""))

        with pytest.raises(AuthenticationError, match="No GitHub API token"):
            await client.get_repo("acme/widgets")

    @pytest.mark.asyncio
    async def test_instance_built_once(self, client, github_instance):
        github_instance.get_repo.return_value = make_repo()

        with patch("activity_sync.github_client.Github") as github_class:
            github_class.return_value = github_instance
            await client.get_repo("acme/widgets")
            await client.get_repo("acme/gadgets")

        github_class.assert_called_once()
        assert github_class.call_args.kwargs["base_url"] == "https://api.github.com"

    @pytest.mark.asyncio
    async def test_authenticated_login_is_cached(self, client, github_instance):
        github_instance.get_user.return_value.login = "octocat"

        assert await client.get_authenticated_login() == "octocat"
        assert await client.get_authenticated_login() == "octocat"
        github_instance.get_user.assert_called_once()


class TestErrorTranslation:
    """Test mapping of PyGithub errors onto the domain exceptions."""

    @pytest.mark.asyncio
    async def test_not_found(self, client, github_instance):
        github_instance.get_repo.side_effect = UnknownObjectException(
            404, {"message": "Not Found"}, None
        )

        with pytest.raises(RepositoryNotFoundError) as exc_info:
            await client.get_repo("acme/missing")

        assert exc_info.value.repository == "acme/missing"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client, github_instance):
        github_instance.get_repo.side_effect = BadCredentialsException(
            401, {"message": "Bad credentials"}, None
        )

        with pytest.raises(AuthenticationError):
            await client.get_repo("acme/widgets")

    @pytest.mark.asyncio
    async def test_forbidden_is_treated_as_not_found(self, client, github_instance):
        github_instance.get_repo.side_effect = GithubException(
            403, {"message": "Resource not accessible by integration"}, None
        )

        with pytest.raises(RepositoryNotFoundError) as exc_info:
            await client.get_repo("acme/secret")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_secondary_rate_limit(self, client, github_instance):
        github_instance.get_repo.side_effect = GithubException(
            403, {"message": "You have exceeded a secondary rate limit"}, None
        )

        with pytest.raises(RateLimitError):
            await client.get_repo("acme/widgets")

    @pytest.mark.asyncio
    async def test_primary_rate_limit(self, client, github_instance):
        github_instance.get_repo.side_effect = RateLimitExceededException(
            403, {"message": "API rate limit exceeded"}, None
        )

        with pytest.raises(RateLimitError):
            await client.get_repo("acme/widgets")

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, client, github_instance):
        github_instance.get_repo.side_effect = GithubException(
            502, {"message": "Bad Gateway"}, None
        )

        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_repo("acme/widgets")

        assert not isinstance(
            exc_info.value, (RepositoryNotFoundError, AuthenticationError)
        )
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_error_during_pagination_is_translated(self, client):
        repo = Mock(full_name="acme/widgets")
        repo.get_issues.return_value = failing_iterator(
            [make_issue()], UnknownObjectException(404, {"message": "Not Found"}, None)
        )

        with pytest.raises(RepositoryNotFoundError):
            await client.get_issues(repo, T0)


class TestListings:
    @pytest.mark.asyncio
    async def test_get_issues_requests_all_states_newest_first(self, client):
        repo = Mock(full_name="acme/widgets")
        repo.get_issues.return_value = iter([make_issue(1), make_issue(2)])

        issues = await client.get_issues(repo, T0)

        assert [issue.number for issue in issues] == [1, 2]
        repo.get_issues.assert_called_once_with(
            state="all", since=T0, sort="updated", direction="desc"
        )

    @pytest.mark.asyncio
    async def test_get_pull_requests_reads_first_page(self, client):
        repo = Mock(full_name="acme/widgets")
        repo.get_pulls.return_value.get_page.return_value = [make_pull()]

        pulls = await client.get_pull_requests(repo)

        assert len(pulls) == 1
        repo.get_pulls.assert_called_once_with(
            state="all", sort="updated", direction="desc"
        )
        repo.get_pulls.return_value.get_page.assert_called_once_with(0)

    @pytest.mark.asyncio
    async def test_get_commits_stops_at_limit(self, client):
        repo = Mock(full_name="acme/widgets")
        repo.get_commits.return_value = iter(
            [make_commit(sha=f"{index:040d}") for index in range(25)]
        )

        commits = await client.get_commits(repo, T0, limit=10)

        assert len(commits) == 10
        repo.get_commits.assert_called_once_with(since=T0)

    @pytest.mark.asyncio
    async def test_get_commit_files(self, client):
        repo = Mock(full_name="acme/widgets")
        repo.get_commit.return_value.files = ["a", "b"]

        assert await client.get_commit_files(repo, "abc") == ["a", "b"]
        repo.get_commit.assert_called_once_with("abc")

    @pytest.mark.asyncio
    async def test_list_user_repositories_slices_page(self, client, github_instance):
        repos = [make_repo(f"acme/repo{index}") for index in range(5)]
        github_instance.get_user.return_value.get_repos.return_value = repos

        page = await client.list_user_repositories(per_page=2, page=2)

        assert [repo.full_name for repo in page] == ["acme/repo2", "acme/repo3"]

    @pytest.mark.asyncio
    async def test_rate_limit_tracking(self, client, github_instance):
        github_instance.get_repo.return_value = make_repo()

        await client.get_repo("acme/widgets")

        assert client._rate_limit_remaining == 4999
        assert client._rate_limit_reset_time == 1714564800.0
