"""
Custom exceptions for the activity sync service.

This module defines the exception hierarchy used to translate GitHub API
failures into the categories the polling engine reacts to.
"""

from typing import Any


class ActivitySyncError(Exception):
    """Base exception for activity sync errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "ACTIVITY_SYNC_ERROR"
        self.context = context or {}


class GitHubAPIError(ActivitySyncError):
    """Exception for transient GitHub API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "GITHUB_API_ERROR", context)
        self.status_code = status_code


class AuthenticationError(GitHubAPIError):
    """Exception for a rejected or expired credential."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, 401, context)
        self.code = "AUTHENTICATION_ERROR"


class RepositoryNotFoundError(GitHubAPIError):
    """Exception for repositories that do not exist or are forbidden."""

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        status_code: int = 404,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, context)
        self.code = "REPOSITORY_NOT_FOUND"
        self.repository = repository


class RateLimitError(GitHubAPIError):
    """Exception for rate limit related errors."""

    def __init__(
        self,
        message: str,
        reset_time: float | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, 403, context)
        self.code = "RATE_LIMIT_ERROR"
        self.reset_time = reset_time


class ConfigurationError(ActivitySyncError):
    """Exception for configuration related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)
