"""GitHub API client package."""

from .auth import AuthProvider, AuthToken, TokenAuth
from .client import GitHubClient, GitHubClientConfig
from .exceptions import (
    GitHubApiError,
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubDecodeError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)
from .pagination import AsyncPaginator, LinkHeader, PaginatedResponse
from .rate_limiting import RateLimitInfo, RateLimitTracker

__all__ = [
    "AsyncPaginator",
    "AuthProvider",
    "AuthToken",
    "GitHubApiError",
    "GitHubAuthenticationError",
    "GitHubClient",
    "GitHubClientConfig",
    "GitHubConnectionError",
    "GitHubDecodeError",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "LinkHeader",
    "PaginatedResponse",
    "RateLimitInfo",
    "RateLimitTracker",
    "TokenAuth",
]
