"""
Unit tests for GitHub API client.

Why: Ensure the client authenticates requests, maps HTTP failures onto the
     error taxonomy, and follows pagination the way the monitor relies on.

What: Tests GitHubClient request handling, error mapping, transport
      failures, pagination and the convenience endpoints.

How: Uses aioresponses to answer aiohttp requests without touching the
     real GitHub API.
"""

import asyncio
import re
from datetime import UTC, datetime

import aiohttp
import pytest
from aioresponses import aioresponses

from repowatch.github.auth import TokenAuth
from repowatch.github.client import GitHubClient, GitHubClientConfig
from repowatch.github.exceptions import (
    GitHubApiError,
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubDecodeError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)

API = "https://api.github.com"


def _client(**config: object) -> GitHubClient:
    return GitHubClient(
        auth=TokenAuth("test-token"), config=GitHubClientConfig(**config)
    )


def _sent_headers(mocked: aioresponses) -> dict[str, str]:
    calls = next(iter(mocked.requests.values()))
    return calls[0].kwargs["headers"]


class TestGitHubClientConfig:
    """Test GitHubClientConfig data class."""

    def test_github_client_config_defaults(self) -> None:
        """Test GitHubClientConfig with default values."""
        config = GitHubClientConfig()

        assert config.base_url == "https://api.github.com"
        assert config.timeout == 20
        assert config.user_agent == "repowatch/1.0"
        assert config.max_concurrent_requests == 10
        assert config.max_pages == 10

    def test_github_client_config_custom(self) -> None:
        """Test GitHubClientConfig with custom values."""
        config = GitHubClientConfig(
            base_url="https://github.example.com/api/v3",
            timeout=5,
            user_agent="Custom-Agent/2.0",
            max_concurrent_requests=2,
            max_pages=3,
        )

        assert config.base_url == "https://github.example.com/api/v3"
        assert config.timeout == 5
        assert config.user_agent == "Custom-Agent/2.0"
        assert config.max_concurrent_requests == 2
        assert config.max_pages == 3


class TestGitHubClient:
    """Test GitHubClient request handling."""

    def test_github_client_creation(self) -> None:
        """Test GitHubClient creation without opening a session."""
        config = GitHubClientConfig()
        auth = TokenAuth("test-token")
        client = GitHubClient(auth=auth, config=config)

        assert client.auth is auth
        assert client.config is config
        assert client._session is None

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        """Test GitHubClient as async context manager."""
        client = _client()
        async with client as entered:
            assert entered._session is not None
            assert not entered._session.closed

        assert client._session is None

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        """Closing twice, or without a session, is harmless."""
        client = _client()
        await client.close()
        await client._ensure_session()
        await client.close()
        await client.close()

        assert client._session is None

    @pytest.mark.asyncio
    async def test_get_request_success(self) -> None:
        """Test successful GET request returns decoded JSON."""
        with aioresponses() as mocked:
            mocked.get(
                f"{API}/repos/octo/widgets",
                payload={"full_name": "octo/widgets", "id": 1},
                headers={
                    "X-RateLimit-Limit": "5000",
                    "X-RateLimit-Remaining": "4999",
                    "X-RateLimit-Reset": "1700000000",
                },
            )
            async with _client() as client:
                result = await client.get("/repos/octo/widgets")
                rate_limit = client.rate_limiter.get_rate_limit()

        assert result == {"full_name": "octo/widgets", "id": 1}
        assert rate_limit is not None
        assert rate_limit.remaining == 4999

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self) -> None:
        """Every request carries the provider's authorization header."""
        with aioresponses() as mocked:
            mocked.get(f"{API}/rate_limit", payload={"resources": {}})
            async with _client() as client:
                await client.get("/rate_limit")

            assert _sent_headers(mocked)["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_no_content_returns_none(self) -> None:
        """A 204 response decodes to None."""
        with aioresponses() as mocked:
            mocked.get(f"{API}/repos/octo/widgets/empty", status=204)
            async with _client() as client:
                assert await client.get("/repos/octo/widgets/empty") is None

    @pytest.mark.asyncio
    async def test_trailing_slash_in_base_url(self) -> None:
        """Base URL and path are joined with exactly one slash."""
        with aioresponses() as mocked:
            mocked.get(
                "https://github.example.com/api/v3/repos/octo/widgets",
                payload={"id": 2},
            )
            async with _client(base_url="https://github.example.com/api/v3/") as c:
                assert await c.get("repos/octo/widgets") == {"id": 2}


class TestGitHubClientErrors:
    """Test mapping of HTTP and transport failures onto GitHubError types."""

    URL = f"{API}/repos/octo/widgets"

    async def _get_error(self, **response: object) -> Exception:
        with aioresponses() as mocked:
            mocked.get(self.URL, **response)
            async with _client() as client:
                with pytest.raises(Exception) as exc_info:
                    await client.get("/repos/octo/widgets")
        return exc_info.value

    @pytest.mark.asyncio
    async def test_authentication_error(self) -> None:
        """Test 401 maps to GitHubAuthenticationError with the API message."""
        error = await self._get_error(
            status=401, payload={"message": "Bad credentials"}
        )

        assert isinstance(error, GitHubAuthenticationError)
        assert error.status_code == 401
        assert error.body == {"message": "Bad credentials"}
        assert "Bad credentials" in str(error)

    @pytest.mark.asyncio
    async def test_forbidden_without_rate_limit_is_auth_error(self) -> None:
        """Test 403 for permissions maps to GitHubAuthenticationError."""
        error = await self._get_error(
            status=403, payload={"message": "Resource not accessible by integration"}
        )

        assert isinstance(error, GitHubAuthenticationError)
        assert error.status_code == 403

    @pytest.mark.asyncio
    async def test_rate_limit_error(self) -> None:
        """Test 403 with a rate limit message maps to GitHubRateLimitError."""
        error = await self._get_error(
            status=403,
            payload={"message": "API rate limit exceeded for user ID 1."},
            headers={
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": "1700000000",
            },
        )

        assert isinstance(error, GitHubRateLimitError)
        assert error.remaining == 0
        assert error.limit == 5000
        assert error.reset_time == 1700000000

    @pytest.mark.asyncio
    async def test_too_many_requests_is_rate_limit(self) -> None:
        """Test 429 maps to GitHubRateLimitError regardless of message."""
        error = await self._get_error(status=429, payload={"message": "slow down"})

        assert isinstance(error, GitHubRateLimitError)
        assert error.status_code == 429

    @pytest.mark.asyncio
    async def test_not_found_error(self) -> None:
        """Test handling of 404 Not Found errors."""
        error = await self._get_error(status=404, payload={"message": "Not Found"})

        assert isinstance(error, GitHubNotFoundError)
        assert error.status_code == 404

    @pytest.mark.asyncio
    async def test_validation_error(self) -> None:
        """Test handling of 422 validation errors."""
        error = await self._get_error(
            status=422, payload={"message": "Validation Failed", "errors": []}
        )

        assert isinstance(error, GitHubValidationError)
        assert error.status_code == 422

    @pytest.mark.asyncio
    async def test_server_error_with_text_body(self) -> None:
        """Test 5xx with a non-JSON body keeps the text as the message."""
        error = await self._get_error(status=502, body="Bad gateway")

        assert isinstance(error, GitHubServerError)
        assert error.status_code == 502
        assert error.body == {"message": "Bad gateway"}

    @pytest.mark.asyncio
    async def test_server_error_with_undecodable_body(self) -> None:
        """
        Why: Proxies in front of GitHub can answer with pages that are not
             UTF-8; that must still surface as a GitHubError so the caller's
             error handling applies.
        What: Tests that a 502 with invalid UTF-8 maps to GitHubServerError.
        How: Serves raw bytes that fail UTF-8 decoding.
        """
        error = await self._get_error(status=502, body=b"\xff\xfe<html>bad gateway")

        assert isinstance(error, GitHubServerError)
        assert error.status_code == 502
        assert "bad gateway" in str(error)

    @pytest.mark.asyncio
    async def test_other_status_is_api_error(self) -> None:
        """Unmapped statuses still surface as GitHubApiError."""
        error = await self._get_error(status=409, payload={"message": "Conflict"})

        assert type(error) is GitHubApiError
        assert error.status_code == 409

    @pytest.mark.asyncio
    async def test_malformed_json_response(self) -> None:
        """Test a 200 with an unparsable body raises GitHubDecodeError."""
        error = await self._get_error(status=200, body="{not json")

        assert isinstance(error, GitHubDecodeError)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Test aiohttp connection failures become GitHubConnectionError."""
        error = await self._get_error(
            exception=aiohttp.ClientConnectionError("connection refused")
        )

        assert isinstance(error, GitHubConnectionError)
        assert not isinstance(error, GitHubTimeoutError)

    @pytest.mark.asyncio
    async def test_timeout_error(self) -> None:
        """Test request timeouts become GitHubTimeoutError."""
        error = await self._get_error(exception=asyncio.TimeoutError())

        assert isinstance(error, GitHubTimeoutError)
        assert isinstance(error, GitHubConnectionError)


class TestGitHubClientPagination:
    """Test Link-header pagination through the client."""

    @pytest.mark.asyncio
    async def test_paginate_follows_next_links(self) -> None:
        """All pages are fetched until no rel="next" link remains."""
        page2 = f"{API}/repos/octo/widgets/branches?page=2&per_page=100"
        with aioresponses() as mocked:
            mocked.get(
                re.compile(r".*/branches\?per_page=100$"),
                payload=[{"name": "main"}, {"name": "dev"}],
                headers={"Link": f'<{page2}>; rel="next"'},
            )
            mocked.get(
                re.compile(r".*/branches\?page=2.*"),
                payload=[{"name": "feature-x"}],
            )
            async with _client() as client:
                items = await client.list_branches("octo", "widgets").collect_all()

        assert [item["name"] for item in items] == ["main", "dev", "feature-x"]

    @pytest.mark.asyncio
    async def test_paginate_respects_max_pages(self) -> None:
        """No page beyond ``max_pages`` is requested."""
        page2 = f"{API}/repos/octo/widgets/branches?page=2&per_page=100"
        with aioresponses() as mocked:
            mocked.get(
                re.compile(r".*/branches\?per_page=100$"),
                payload=[{"name": "main"}],
                headers={"Link": f'<{page2}>; rel="next"'},
            )
            async with _client(max_pages=1) as client:
                items = await client.list_branches("octo", "widgets").collect_all()

        assert items == [{"name": "main"}]

    @pytest.mark.asyncio
    async def test_check_runs_are_unwrapped(self) -> None:
        """The check-runs endpoint wraps its list in ``check_runs``."""
        with aioresponses() as mocked:
            mocked.get(
                re.compile(r".*/commits/abc123/check-runs.*"),
                payload={
                    "total_count": 1,
                    "check_runs": [
                        {"id": 1, "status": "completed", "conclusion": "success"}
                    ],
                },
            )
            async with _client() as client:
                paginator = client.list_check_runs("octo", "widgets", "abc123")
                items = await paginator.collect_all()

        assert items == [{"id": 1, "status": "completed", "conclusion": "success"}]

    @pytest.mark.asyncio
    async def test_non_list_page_raises_decode_error(self) -> None:
        """A list endpoint answering with an object is a decode failure."""
        with aioresponses() as mocked:
            mocked.get(
                re.compile(r".*/pulls/3/reviews.*"), payload={"message": "odd"}
            )
            async with _client() as client:
                with pytest.raises(GitHubDecodeError):
                    await client.list_reviews("octo", "widgets", 3).collect_all()


class TestConvenienceEndpoints:
    """Test request shapes of the endpoints the monitor polls."""

    @pytest.mark.asyncio
    async def test_get_branch(self) -> None:
        with aioresponses() as mocked:
            mocked.get(
                f"{API}/repos/octo/widgets/branches/main",
                payload={"name": "main", "commit": {"sha": "abc"}},
            )
            async with _client() as client:
                data = await client.get_branch("octo", "widgets", "main")

        assert data["commit"]["sha"] == "abc"

    @pytest.mark.asyncio
    async def test_list_commit_statuses_single_page(self) -> None:
        with aioresponses() as mocked:
            mocked.get(
                f"{API}/repos/octo/widgets/commits/abc/statuses?per_page=30",
                payload=[{"id": 1, "state": "success"}],
            )
            async with _client() as client:
                data = await client.list_commit_statuses("octo", "widgets", "abc")

        assert data == [{"id": 1, "state": "success"}]

    @pytest.mark.asyncio
    async def test_list_pulls_passes_head_and_state(self) -> None:
        with aioresponses() as mocked:
            mocked.get(
                re.compile(
                    r".*/repos/octo/widgets/pulls\?"
                    r"head=octo(%3A|:)feature-x&per_page=10&state=all$"
                ),
                payload=[],
            )
            async with _client() as client:
                paginator = client.list_pulls(
                    "octo", "widgets", state="all", head="octo:feature-x", per_page=10
                )
                assert await paginator.collect_all() == []

    @pytest.mark.asyncio
    async def test_list_workflow_runs_created_filter(self) -> None:
        """The created filter is an inclusive UTC lower bound."""
        since = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        with aioresponses() as mocked:
            mocked.get(
                re.compile(r".*/actions/runs\?.*"),
                payload={"total_count": 0, "workflow_runs": []},
            )
            async with _client() as client:
                paginator = client.list_workflow_runs(
                    "octo", "widgets", "main", created_after=since
                )
                assert paginator.params["created"] == ">=2024-05-01T12:00:00Z"
                assert paginator.params["branch"] == "main"
                assert await paginator.collect_all() == []
