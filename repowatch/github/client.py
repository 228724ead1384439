"""Async client for the GitHub REST endpoints the monitor polls."""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import aiohttp

from .auth import AuthProvider
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
from .pagination import AsyncPaginator, PaginatedResponse
from .rate_limiting import RateLimitTracker

logger = logging.getLogger(__name__)


@dataclass
class GitHubClientConfig:
    """Connection settings for ``GitHubClient``."""

    base_url: str = "https://api.github.com"
    timeout: int = 20
    user_agent: str = "repowatch/1.0"
    max_concurrent_requests: int = 10
    max_pages: int = 10
    rate_limit_warn_below: int = 100


def _segment(value: str | int) -> str:
    """Quote a value for use as a single URL path segment."""
    return quote(str(value), safe="")


class GitHubClient:
    """Async GitHub API client.

    Requests are bounded by a per-call timeout and a concurrency semaphore.
    Failed requests are not retried; callers poll again on their own schedule.
    """

    def __init__(
        self,
        auth: AuthProvider,
        config: GitHubClientConfig | None = None,
    ) -> None:
        """Create a client; the HTTP session is opened lazily.

        Args:
            auth: Supplies the Authorization header for each request
            config: Connection settings, defaults if omitted
        """
        self.auth = auth
        self.config = config or GitHubClientConfig()
        self.rate_limiter = RateLimitTracker(
            warn_below=self.config.rate_limit_warn_below
        )

        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()
        self._request_semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    timeout = aiohttp.ClientTimeout(total=self.config.timeout)
                    self._session = aiohttp.ClientSession(
                        timeout=timeout,
                        headers={
                            "User-Agent": self.config.user_agent,
                            "Accept": "application/vnd.github+json",
                            "X-GitHub-Api-Version": "2022-11-28",
                        },
                    )

    async def close(self) -> None:
        """Close the HTTP session; safe to call more than once."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _generate_correlation_id(self) -> str:
        # Short id tying request and response debug lines together
        return str(uuid.uuid4())[:8]

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> tuple[Any, Mapping[str, str]]:
        """Issue one HTTP request and decode its JSON body.

        Args:
            method: HTTP method
            url: Absolute request URL
            params: Query parameters

        Returns:
            Tuple of decoded body (``None`` for 204) and response headers

        Raises:
            GitHubError: Transport, API, or decode failure
        """
        correlation_id = self._generate_correlation_id()

        auth_token = await self.auth.get_token()
        await self._ensure_session()
        if not self._session:
            raise GitHubConnectionError("Failed to initialize HTTP session")

        try:
            async with self._request_semaphore:
                start_time = time.monotonic()
                logger.debug(f"GitHub API request [{correlation_id}] {method} {url}")

                async with self._session.request(
                    method, url, params=params, headers=auth_token.to_header()
                ) as response:
                    headers = response.headers.copy()
                    self.rate_limiter.update_rate_limit(headers)

                    logger.debug(
                        f"GitHub API response [{correlation_id}] "
                        f"{response.status} in {time.monotonic() - start_time:.2f}s"
                    )

                    if response.status == 204:
                        return None, headers
                    if 200 <= response.status < 300:
                        return await self._decode(response, url), headers

                    await self._handle_error_response(response, correlation_id)
                    raise GitHubApiError(f"HTTP {response.status}", response.status)

        except GitHubError:
            raise
        except TimeoutError as e:
            raise GitHubTimeoutError(f"Request timeout for {method} {url}") from e
        except aiohttp.ClientError as e:
            raise GitHubConnectionError(
                f"Connection error for {method} {url}: {e}"
            ) from e

    async def _decode(self, response: aiohttp.ClientResponse, url: str) -> Any:
        try:
            return await response.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GitHubDecodeError(
                f"Invalid JSON from {url}: {e}", response.status
            ) from e

    async def _handle_error_response(
        self, response: aiohttp.ClientResponse, correlation_id: str
    ) -> None:
        """Map a non-2xx response onto the ``GitHubApiError`` hierarchy.

        Raises:
            GitHubApiError: Always, as the subclass matching the status
        """
        try:
            error_data = await response.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError):
            error_data = None
        if not isinstance(error_data, dict):
            error_data = {"message": await response.text(errors="replace")}

        error_message = str(error_data.get("message") or f"HTTP {response.status}")

        logger.debug(
            f"GitHub API error [{correlation_id}] {response.status}: {error_message}"
        )

        status = response.status
        if status == 401:
            raise GitHubAuthenticationError(error_message, status, error_data)
        elif status in (403, 429):
            if status == 429 or "rate limit" in error_message.lower():
                reset_time = response.headers.get("X-RateLimit-Reset")
                remaining = response.headers.get("X-RateLimit-Remaining", "0")
                limit = response.headers.get("X-RateLimit-Limit", "0")

                raise GitHubRateLimitError(
                    error_message,
                    status_code=status,
                    reset_time=int(reset_time) if reset_time else None,
                    remaining=int(remaining),
                    limit=int(limit),
                )
            raise GitHubAuthenticationError(error_message, status, error_data)
        elif status == 404:
            raise GitHubNotFoundError(error_message, status, error_data)
        elif status == 422:
            raise GitHubValidationError(error_message, status, error_data)
        elif 500 <= status < 600:
            raise GitHubServerError(error_message, status, error_data)
        else:
            raise GitHubApiError(error_message, status, error_data)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``path`` relative to the base URL and return the decoded body."""
        data, _ = await self._request("GET", self._url(path), params)
        return data

    async def _fetch_paginated(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        items_key: str | None = None,
    ) -> PaginatedResponse:
        """Fetch one page for ``AsyncPaginator``."""
        data, headers = await self._request("GET", url, params)
        return PaginatedResponse(data, headers, url, items_key)

    def paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
        items_key: str | None = None,
    ) -> AsyncPaginator:
        """Paginator over a list endpoint; nothing is fetched until iterated.

        ``max_pages`` defaults to ``config.max_pages``. ``items_key`` names the
        field holding the list for wrapped responses.
        """
        return AsyncPaginator(
            client=self,
            initial_url=self._url(path),
            params=params,
            per_page=per_page,
            max_pages=max_pages if max_pages is not None else self.config.max_pages,
            items_key=items_key,
        )

    # Convenience methods for the endpoints the monitor polls

    def list_branches(self, owner: str, repo: str) -> AsyncPaginator:
        """List branches of a repository."""
        return self.paginate(f"/repos/{owner}/{repo}/branches")

    async def get_branch(self, owner: str, repo: str, branch: str) -> dict[str, Any]:
        """Get a branch, including its head commit."""
        data: dict[str, Any] = await self.get(
            f"/repos/{owner}/{repo}/branches/{_segment(branch)}"
        )
        return data

    def list_check_runs(self, owner: str, repo: str, ref: str) -> AsyncPaginator:
        """Check runs reported for a commit sha, branch or tag."""
        return self.paginate(
            f"/repos/{owner}/{repo}/commits/{_segment(ref)}/check-runs",
            items_key="check_runs",
        )

    async def list_commit_statuses(
        self, owner: str, repo: str, ref: str, per_page: int = 30
    ) -> list[dict[str, Any]]:
        """List legacy commit statuses for a ref, newest first.

        Only the first page is fetched; callers need the most recent entries.
        """
        data: list[dict[str, Any]] = await self.get(
            f"/repos/{owner}/{repo}/commits/{_segment(ref)}/statuses",
            params={"per_page": per_page},
        )
        return data

    def list_pulls(
        self,
        owner: str,
        repo: str,
        state: str = "open",
        head: str | None = None,
        per_page: int = 100,
    ) -> AsyncPaginator:
        """Pull requests in ``state`` (open, closed, all), newest first.

        ``head`` filters by source branch as ``owner:branch``.
        """
        params: dict[str, Any] = {"state": state}
        if head:
            params["head"] = head
        return self.paginate(
            f"/repos/{owner}/{repo}/pulls", params=params, per_page=per_page
        )

    async def get_pull(self, owner: str, repo: str, pull_number: int) -> dict[str, Any]:
        """Pull request detail, including ``merged``."""
        data: dict[str, Any] = await self.get(
            f"/repos/{owner}/{repo}/pulls/{pull_number}"
        )
        return data

    def list_reviews(self, owner: str, repo: str, pull_number: int) -> AsyncPaginator:
        """List reviews of a pull request in chronological order."""
        return self.paginate(f"/repos/{owner}/{repo}/pulls/{pull_number}/reviews")

    def list_issue_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> AsyncPaginator:
        """List conversation comments of an issue or pull request."""
        return self.paginate(f"/repos/{owner}/{repo}/issues/{issue_number}/comments")

    def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        branch: str,
        created_after: datetime | None = None,
    ) -> AsyncPaginator:
        """GitHub Actions runs for ``branch``, optionally since ``created_after``."""
        params: dict[str, Any] = {"branch": branch}
        if created_after is not None:
            stamp = created_after.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
            params["created"] = f">={stamp}"
        return self.paginate(
            f"/repos/{owner}/{repo}/actions/runs",
            params=params,
            items_key="workflow_runs",
        )
