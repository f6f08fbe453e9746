"""
Configuration management for the activity sync service.

This module handles environment variables, settings validation, and configuration
management using Pydantic Settings for type safety and validation.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .events import (
    COMMIT_ACTIONS,
    ISSUE_ACTIONS,
    PULL_REQUEST_ACTIONS,
    ActivityCategory,
)
from .exceptions import ConfigurationError


def _split_csv(value: Any, field_name: str) -> list[str]:
    """Parse a comma-separated string or list into a clean list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError(f"{field_name} must be a string or list, got {type(value)}")


class ActivityPolicy(BaseModel):
    """Per-category allow-sets of action verbs surfaced to the consumer."""

    model_config = ConfigDict(frozen=True)

    issue_actions: frozenset[str] = Field(
        default=frozenset({"opened", "reopened"}),
        description="Issue actions to surface",
    )
    pull_request_actions: frozenset[str] = Field(
        default=frozenset({"opened", "reopened"}),
        description="Pull request actions to surface",
    )
    commit_actions: frozenset[str] = Field(
        default=frozenset({"pushed"}), description="Commit actions to surface"
    )

    def allowed_actions(self, category: ActivityCategory) -> frozenset[str]:
        """Get the allow-set for a category."""
        if category is ActivityCategory.ISSUES:
            return self.issue_actions
        if category is ActivityCategory.PULL_REQUESTS:
            return self.pull_request_actions
        return self.commit_actions

    def allows(self, category: ActivityCategory, action: str) -> bool:
        """Check whether an action verb should be surfaced for a category."""
        return action in self.allowed_actions(category)


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    interval_seconds: float = Field(
        default=60.0, description="Interval between polling ticks in seconds"
    )
    commit_limit: int = Field(
        default=10, description="Maximum commits examined per repository per tick"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub configuration
    github_api_token: str = Field(default="", description="GitHub API bearer token")
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API URL"
    )
    github_request_timeout: int = Field(
        default=15, description="GitHub API request timeout in seconds"
    )
    github_repositories: str | list[str] = Field(
        default="",
        description="Repositories to monitor (comma-separated owner/name)",
    )

    # Polling configuration
    github_polling_interval_seconds: float = Field(
        default=60.0, description="Polling interval in seconds"
    )
    github_per_page: int = Field(
        default=30, description="Page size for issue and pull request listings"
    )
    github_commit_limit: int = Field(
        default=10, description="Maximum commits examined per tick"
    )

    # Action policy
    github_issue_actions: str | list[str] = Field(
        default="opened,reopened",
        description="Issue actions to surface (comma-separated)",
    )
    github_pr_actions: str | list[str] = Field(
        default="",
        description="Pull request actions to surface; empty reuses issue actions",
    )
    github_commit_actions: str | list[str] = Field(
        default="pushed", description="Commit actions to surface (comma-separated)"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format")

    @field_validator("github_repositories", mode="before")
    @classmethod
    def parse_repositories(cls, v: Any) -> list[str]:
        """Parse repositories from comma-separated string or list."""
        return _split_csv(v, "github_repositories")

    @field_validator("github_issue_actions", mode="before")
    @classmethod
    def parse_issue_actions(cls, v: Any) -> list[str]:
        """Parse and validate issue actions."""
        actions = _split_csv(v, "github_issue_actions")
        for action in actions:
            if action not in ISSUE_ACTIONS:
                raise ValueError(f"Unsupported issue action: {action}")
        return actions

    @field_validator("github_pr_actions", mode="before")
    @classmethod
    def parse_pr_actions(cls, v: Any) -> list[str]:
        """Parse and validate pull request actions."""
        actions = _split_csv(v, "github_pr_actions")
        for action in actions:
            if action not in PULL_REQUEST_ACTIONS:
                raise ValueError(f"Unsupported pull request action: {action}")
        return actions

    @field_validator("github_commit_actions", mode="before")
    @classmethod
    def parse_commit_actions(cls, v: Any) -> list[str]:
        """Parse and validate commit actions."""
        actions = _split_csv(v, "github_commit_actions")
        for action in actions:
            if action not in COMMIT_ACTIONS:
                raise ValueError(f"Unsupported commit action: {action}")
        return actions

    @field_validator("github_polling_interval_seconds")
    @classmethod
    def validate_polling_interval(cls, v: float) -> float:
        """Validate polling interval."""
        if v <= 0:
            raise ValueError("Polling interval must be positive")
        return v

    @field_validator("github_per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        """Validate page size against the GitHub maximum."""
        if not 1 <= v <= 100:
            raise ValueError(f"Invalid page size: {v}")
        return v

    @field_validator("github_commit_limit")
    @classmethod
    def validate_commit_limit(cls, v: int) -> int:
        """Validate the per-tick commit cap."""
        if not 1 <= v <= 10:
            raise ValueError(f"Invalid commit limit: {v}, must be between 1 and 10")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @property
    def repositories(self) -> list[str]:
        """Get configured repositories as a list."""
        return _split_csv(self.github_repositories, "github_repositories")

    @property
    def activity_policy(self) -> ActivityPolicy:
        """Get the action allow-sets."""
        issue_actions = frozenset(
            _split_csv(self.github_issue_actions, "github_issue_actions")
        )
        pr_actions = frozenset(_split_csv(self.github_pr_actions, "github_pr_actions"))
        return ActivityPolicy(
            issue_actions=issue_actions,
            # Pull requests share the issue vocabulary unless configured
            pull_request_actions=pr_actions or issue_actions,
            commit_actions=frozenset(
                _split_csv(self.github_commit_actions, "github_commit_actions")
            ),
        )

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        return PollingConfig(
            interval_seconds=self.github_polling_interval_seconds,
            commit_limit=self.github_commit_limit,
        )

    def validate_for_service(self) -> None:
        """
        Check the settings required to run the polling service.

        Raises:
            ConfigurationError: If the token or repository list is missing
        """
        if not self.github_api_token:
            raise ConfigurationError(
                "GITHUB_API_TOKEN environment variable is required to poll GitHub."
            )
        if not self.repositories:
            raise ConfigurationError(
                "No repositories configured. Set GITHUB_REPOSITORIES to a "
                "comma-separated list of owner/name entries."
            )


# Global settings instance - initialized lazily to avoid import-time errors
_settings_instance = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
