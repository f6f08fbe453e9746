"""
Repository validation for the polling engine.

Confirms that configured repositories exist and that the credential can read
them before any activity is fetched.
"""

import structlog

from ..exceptions import AuthenticationError, RepositoryNotFoundError
from ..github_client import GitHubClient

logger = structlog.get_logger(__name__)


def is_valid_full_name(identifier: str) -> bool:
    """Check that an identifier has the owner/name shape."""
    parts = identifier.split("/")
    return len(parts) == 2 and all(part.strip() for part in parts)


class RepositoryValidator:
    """Checks repository reachability and read permission."""

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    async def check(self, identifier: str) -> bool:
        """
        Perform one authorized existence check for a repository.

        Args:
            identifier: Repository in owner/name format

        Returns:
            True if the repository is reachable with the current credential
        """
        if not is_valid_full_name(identifier):
            logger.error("Invalid repository identifier", repository=identifier)
            return False

        try:
            await self.github_client.get_repo(identifier)
        except RepositoryNotFoundError as e:
            logger.error(
                "Repository not found or not accessible with current token",
                repository=identifier,
                status_code=e.status_code,
            )
            return False
        except AuthenticationError as e:
            logger.error(
                "Authentication failed for repository",
                repository=identifier,
                error=str(e),
            )
            return False
        except Exception as e:
            logger.error(
                "Error validating repository",
                repository=identifier,
                error=str(e),
            )
            return False

        logger.info("Repository is valid and accessible", repository=identifier)
        return True

    async def validate(self, identifiers: list[str]) -> list[str]:
        """
        Check every configured repository once.

        Args:
            identifiers: Repositories in owner/name format

        Returns:
            Identifiers that passed validation, in configured order
        """
        logger.info("Validating repositories", count=len(identifiers))
        valid: list[str] = []
        for identifier in identifiers:
            if identifier in valid:
                continue
            if await self.check(identifier):
                valid.append(identifier)

        if not valid:
            logger.error(
                "No valid repositories found, check configuration and token "
                "permissions"
            )
        else:
            logger.info("Found valid repositories to monitor", count=len(valid))
        return valid
