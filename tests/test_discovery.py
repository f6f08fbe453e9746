"""
Tests for repository discovery.
"""

import pytest

from activity_sync.discovery import RepositoryDiscovery, infer_relationship
from activity_sync.exceptions import GitHubAPIError
from tests.factories import make_repo, make_user


class TestRepositoryDiscovery:
    @pytest.fixture(autouse=True)
    def setup(self, mock_github_client):
        self.github_client = mock_github_client
        self.github_client.list_user_repositories.return_value = [
            make_repo("octocat/dotfiles", owner=make_user("octocat")),
            make_repo("acme/widgets"),
            make_repo("friend/project", owner=make_user("friend", 3)),
        ]
        self.discovery = RepositoryDiscovery(self.github_client)

    @pytest.mark.asyncio
    async def test_summaries_carry_relationship_and_monitoring_flag(self):
        repos = await self.discovery.list_repositories(monitored=["acme/widgets"])

        by_name = {repo.full_name: repo for repo in repos}
        assert by_name["octocat/dotfiles"].relationship == "owner"
        assert by_name["acme/widgets"].relationship == "organization_member"
        assert by_name["friend/project"].relationship == "collaborator"
        assert by_name["acme/widgets"].is_monitored is True
        assert by_name["friend/project"].is_monitored is False
        assert by_name["acme/widgets"].permissions["push"] is True
        assert by_name["acme/widgets"].owner.login == "acme"

    @pytest.mark.asyncio
    async def test_paging_parameters_forwarded(self):
        await self.discovery.list_repositories(
            sort="updated", direction="desc", per_page=20, page=3
        )

        self.github_client.list_user_repositories.assert_awaited_once_with(
            affiliation="owner,collaborator,organization_member",
            sort="updated",
            direction="desc",
            per_page=20,
            page=3,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("per_page,page", [(0, 1), (101, 1), (30, 0)])
    async def test_invalid_paging_rejected(self, per_page, page):
        with pytest.raises(ValueError):
            await self.discovery.list_repositories(per_page=per_page, page=page)

        self.github_client.list_user_repositories.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_login_degrades_to_no_ownership(self):
        self.github_client.get_authenticated_login.side_effect = GitHubAPIError(
            "boom", 500
        )

        repos = await self.discovery.list_repositories()

        assert repos[0].relationship == "collaborator"

    @pytest.mark.asyncio
    async def test_discovery_leaves_engine_state_alone(self, engine):
        await engine.validate()
        before = engine.status()["cursors"]

        await RepositoryDiscovery(engine.github_client).list_repositories(
            monitored=engine.monitored_repositories
        )

        assert engine.status()["cursors"] == before
        assert engine.monitored_repositories == ["acme/widgets"]


def test_infer_relationship_ignores_empty_login():
    assert infer_relationship("", "User", "") == "collaborator"
