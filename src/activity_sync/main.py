"""
Main application entry point for the activity sync service.

This module sets up the FastAPI application, configures logging, and starts
the polling engine with the default consumer.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import Settings, get_settings
from .consumers import LoggingConsumer
from .discovery import (
    DEFAULT_AFFILIATION,
    RepositoryDiscovery,
    SortDirection,
    SortField,
)
from .events import ActivityCategory, ClassifiedEvent
from .github_client import GitHubClient
from .polling import ActivitySyncEngine, EventDispatcher
from .polling.validator import is_valid_full_name

logger = structlog.get_logger(__name__)


def setup_logging(settings: Settings) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level), format="%(message)s"
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging(settings)

    logger.info("Starting activity sync service")

    # Services may be injected before startup; build the defaults otherwise
    if getattr(app.state, "engine", None) is None:
        settings.validate_for_service()
        logger.info(
            "Configuration loaded",
            repositories=settings.repositories,
            interval_seconds=settings.github_polling_interval_seconds,
            issue_actions=sorted(settings.activity_policy.issue_actions),
            commit_actions=sorted(settings.activity_policy.commit_actions),
        )
        github_client = GitHubClient(settings)
        app.state.engine = ActivitySyncEngine(github_client, settings)
        app.state.discovery = RepositoryDiscovery(github_client)
        app.state.consumer = LoggingConsumer()

    engine: ActivitySyncEngine = app.state.engine
    await engine.start(app.state.consumer)

    yield

    logger.info("Shutting down activity sync service")
    await engine.stop()


class MonitorRequest(BaseModel):
    repository: str = ""


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create the FastAPI application and its routes."""
    app = FastAPI(
        title="Activity Sync",
        description="Polls GitHub repositories and turns activity into events",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/status")
    async def status(request: Request) -> dict[str, Any]:
        """Polling engine status."""
        engine: ActivitySyncEngine = request.app.state.engine
        return {"mode": "api", **engine.status()}

    @app.get("/repositories", response_model=None)
    async def list_repositories(
        request: Request,
        affiliation: str = DEFAULT_AFFILIATION,
        sort: SortField = "full_name",
        direction: SortDirection = "asc",
        per_page: int = Query(default=100, ge=1, le=100),
        page: int = Query(default=1, ge=1),
    ) -> dict[str, Any] | JSONResponse:
        """List repositories the token can access."""
        engine: ActivitySyncEngine = request.app.state.engine
        discovery: RepositoryDiscovery = request.app.state.discovery
        monitored = engine.monitored_repositories

        try:
            repositories = await discovery.list_repositories(
                affiliation=affiliation,
                sort=sort,
                direction=direction,
                per_page=per_page,
                page=page,
                monitored=monitored,
            )
        except Exception as e:
            logger.error("Error listing repositories", error=str(e))
            return _error(500, "Failed to list repositories", str(e))

        return {
            "count": len(repositories),
            "currently_monitoring": monitored,
            "repositories": [repo.model_dump(mode="json") for repo in repositories],
        }

    @app.post("/repositories/monitor", response_model=None)
    async def monitor_repository(
        request: Request, body: MonitorRequest
    ) -> dict[str, Any] | JSONResponse:
        """Validate a repository and add it to the monitored set."""
        engine: ActivitySyncEngine = request.app.state.engine
        repository = body.repository.strip()

        if not repository:
            return _error(400, "Repository name is required")
        if not is_valid_full_name(repository):
            return _error(
                400,
                "Invalid repository format",
                "Use owner/repo format.",
            )

        if not await engine.add_repository(repository):
            return _error(
                404,
                "Repository not found or not accessible",
                f"Could not access repository: {repository}",
            )

        return {
            "success": True,
            "message": f"Repository {repository} is now being monitored",
            "currently_monitoring": engine.monitored_repositories,
        }

    @app.get("/debug/commits", response_model=None)
    async def debug_commits(
        request: Request, repo: str = "", force: bool = False
    ) -> dict[str, Any] | JSONResponse:
        """Show commit cursor state and recent commits for a repository."""
        engine: ActivitySyncEngine = request.app.state.engine

        if not is_valid_full_name(repo):
            return _error(400, "Invalid repository format. Use owner/repo format.")

        try:
            last_checked = engine.last_checked(repo, ActivityCategory.COMMITS)
            is_monitored = repo in engine.monitored_repositories

            new_commits: list[ClassifiedEvent] = []
            if force and is_monitored:
                new_commits = await engine.force_check(repo, ActivityCategory.COMMITS)
                dispatcher = engine.dispatcher or EventDispatcher(
                    request.app.state.consumer
                )
                await dispatcher.dispatch_all(new_commits)

            github_client = engine.github_client
            github_repo = await github_client.get_repo(repo)
            recent = await github_client.get_recent_commits(github_repo, limit=5)
        except Exception as e:
            logger.error("Error in debug commits endpoint", repo=repo, error=str(e))
            return _error(500, "Failed to get commit information")

        return {
            "repository": repo,
            "last_checked": last_checked.isoformat() if last_checked else None,
            "is_monitored": is_monitored,
            "force_check": force,
            "new_commits_found": len(new_commits),
            "recent_commits": [
                {
                    "sha": commit.sha,
                    "message": commit.commit.message.split("\n", 1)[0],
                    "author": commit.commit.author.name,
                    "date": commit.commit.author.date.isoformat(),
                    "url": commit.html_url,
                }
                for commit in recent
            ],
        }

    @app.get("/debug/check", response_model=None)
    async def debug_check(
        request: Request,
        repo: str = "",
        category: ActivityCategory = ActivityCategory.COMMITS,
    ) -> dict[str, Any] | JSONResponse:
        """Run one category check and return the events without dispatching."""
        engine: ActivitySyncEngine = request.app.state.engine

        if not is_valid_full_name(repo):
            return _error(400, "Invalid repository format. Use owner/repo format.")

        events = await engine.force_check(repo, category)
        last_checked = engine.last_checked(repo, category)
        return {
            "repository": repo,
            "category": category.value,
            "is_monitored": repo in engine.monitored_repositories,
            "last_checked": last_checked.isoformat() if last_checked else None,
            "events": [event.model_dump(mode="json") for event in events],
        }

    return app


# Create FastAPI application
app = create_app()


def main() -> None:
    """Main entry point."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings)

    logger.info(
        "Starting server", host=settings.host, port=settings.port, debug=settings.debug
    )

    uvicorn.run(
        "activity_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,  # We handle logging ourselves
    )


if __name__ == "__main__":
    main()
