"""
Repository discovery for the activity sync service.

Lists repositories the credential can access so an operator can pick what to
monitor. Discovery is read-only: it never touches cursors or the monitored set.
"""

from datetime import datetime
from typing import Any, Literal

import structlog
from pydantic import BaseModel

from .github_client import GitHubClient

logger = structlog.get_logger(__name__)

SortField = Literal["created", "updated", "pushed", "full_name"]
SortDirection = Literal["asc", "desc"]
Relationship = Literal["owner", "organization_member", "collaborator"]

DEFAULT_AFFILIATION = "owner,collaborator,organization_member"


class RepositoryOwner(BaseModel):
    login: str
    avatar_url: str = ""


class RepositorySummary(BaseModel):
    """A repository the credential can access."""

    id: int
    name: str
    full_name: str
    private: bool
    html_url: str
    description: str | None = None
    updated_at: datetime | None = None
    permissions: dict[str, bool] | None = None
    owner: RepositoryOwner
    visibility: str | None = None
    relationship: Relationship
    is_monitored: bool = False


def infer_relationship(owner_login: str, owner_type: str, login: str) -> Relationship:
    """Best-effort relationship between the authenticated user and a repository."""
    if login and owner_login == login:
        return "owner"
    if owner_type == "Organization":
        return "organization_member"
    return "collaborator"


def _permissions(repo: Any) -> dict[str, bool] | None:
    permissions = getattr(repo, "permissions", None)
    if permissions is None:
        return None
    return {
        name: bool(getattr(permissions, name, False))
        for name in ("admin", "maintain", "push", "triage", "pull")
    }


class RepositoryDiscovery:
    """Lists repositories accessible to the authenticated user."""

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    async def list_repositories(
        self,
        affiliation: str = DEFAULT_AFFILIATION,
        sort: SortField = "full_name",
        direction: SortDirection = "asc",
        per_page: int = 100,
        page: int = 1,
        monitored: list[str] | None = None,
    ) -> list[RepositorySummary]:
        """
        List accessible repositories.

        Args:
            affiliation: Comma-separated affiliation filter
            sort: Sort field
            direction: Sort direction
            per_page: Repositories per page, 1 to 100
            page: 1-based page number
            monitored: Repositories to flag with is_monitored

        Returns:
            Repository summaries for the requested page
        """
        if not 1 <= per_page <= 100:
            raise ValueError(f"per_page must be between 1 and 100, got {per_page}")
        if page < 1:
            raise ValueError(f"page must be at least 1, got {page}")

        try:
            login = await self.github_client.get_authenticated_login()
        except Exception as e:
            logger.warning("Could not resolve authenticated user", error=str(e))
            login = ""

        repos = await self.github_client.list_user_repositories(
            affiliation=affiliation,
            sort=sort,
            direction=direction,
            per_page=per_page,
            page=page,
        )
        monitored_set = set(monitored or [])

        summaries = [
            RepositorySummary(
                id=repo.id,
                name=repo.name,
                full_name=repo.full_name,
                private=repo.private,
                html_url=repo.html_url,
                description=repo.description,
                updated_at=repo.updated_at,
                permissions=_permissions(repo),
                owner=RepositoryOwner(
                    login=repo.owner.login,
                    avatar_url=repo.owner.avatar_url or "",
                ),
                visibility=getattr(repo, "visibility", None),
                relationship=infer_relationship(
                    repo.owner.login, repo.owner.type, login
                ),
                is_monitored=repo.full_name in monitored_set,
            )
            for repo in repos
        ]

        logger.info("Listed accessible repositories", count=len(summaries))
        return summaries
