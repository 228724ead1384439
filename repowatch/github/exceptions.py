"""GitHub API client exceptions.

Every failure raised by the client derives from ``GitHubError`` and falls into
one of three families:

- transport failures (``GitHubConnectionError`` / ``GitHubTimeoutError``)
- API failures carrying an HTTP status and body (``GitHubApiError``)
- payload failures (``GitHubDecodeError``)

Callers polling GitHub treat all of them as "no new signal this cycle".
"""

from typing import Any


class GitHubError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize GitHub error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from GitHub API
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class GitHubConnectionError(GitHubError):
    """Raised when connection to GitHub fails."""

    pass


class GitHubTimeoutError(GitHubConnectionError):
    """Raised when request times out."""

    pass


class GitHubDecodeError(GitHubError):
    """Raised when a response body is not JSON or has an unexpected shape."""

    pass


class GitHubApiError(GitHubError):
    """Raised when GitHub answers with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, response_data)

    @property
    def body(self) -> dict[str, Any]:
        """Decoded error body (``{"message": <text>}`` for non-JSON bodies)."""
        return self.response_data


class GitHubAuthenticationError(GitHubApiError):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, response_data)


class GitHubRateLimitError(GitHubApiError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        status_code: int = 403,
        reset_time: int | None = None,
        remaining: int = 0,
        limit: int = 0,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            status_code: HTTP status code (403 or 429)
            reset_time: Unix timestamp when rate limit resets
            remaining: Remaining API calls
            limit: Total rate limit
        """
        super().__init__(message, status_code)
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit


class GitHubNotFoundError(GitHubApiError):
    """Raised when resource is not found."""

    pass


class GitHubValidationError(GitHubApiError):
    """Raised when request validation fails."""

    pass


class GitHubServerError(GitHubApiError):
    """Raised when GitHub server returns 5xx error."""

    pass
