"""Link-header pagination for GitHub list endpoints."""

import re
from collections.abc import AsyncIterator, Mapping
from typing import Any

from .exceptions import GitHubDecodeError

_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


class LinkHeader:
    """Relations of an RFC 8288 ``Link`` header, keyed by ``rel``."""

    def __init__(self, link_header: str | None = None):
        self.links: dict[str, str] = {}
        if link_header:
            for match in _LINK_PATTERN.finditer(link_header):
                url, rel = match.groups()
                self.links[rel] = url

    @property
    def next_url(self) -> str | None:
        return self.links.get("next")


class PaginatedResponse:
    """One page of a GitHub list endpoint.

    Most list endpoints answer with a bare JSON array. A few (check runs,
    workflow runs) wrap the array in an object; ``items_key`` names the
    field holding it.
    """

    def __init__(
        self,
        data: Any,
        headers: Mapping[str, str],
        url: str,
        items_key: str | None = None,
    ):
        self.data = data
        self.headers = headers
        self.url = url
        self.items_key = items_key
        self.link_header = LinkHeader(headers.get("Link"))

    @property
    def next_page_url(self) -> str | None:
        """Absolute URL of the following page, ``None`` on the last one."""
        return self.link_header.next_url

    @property
    def items(self) -> list[dict[str, Any]]:
        """Objects on this page.

        Raises:
            GitHubDecodeError: If the page does not hold a list of objects
        """
        payload = self.data
        if self.items_key is not None:
            if not isinstance(payload, dict):
                raise GitHubDecodeError(
                    f"Expected object with '{self.items_key}' from {self.url}"
                )
            payload = payload.get(self.items_key, [])

        if not isinstance(payload, list) or not all(
            isinstance(item, dict) for item in payload
        ):
            raise GitHubDecodeError(f"Expected list of objects from {self.url}")
        return payload


class AsyncPaginator:
    """Iterates the objects of a list endpoint across all of its pages."""

    def __init__(
        self,
        client: Any,
        initial_url: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
        per_page: int = 100,
        items_key: str | None = None,
    ):
        """Create a paginator; no request is made until iteration starts.

        Args:
            client: ``GitHubClient`` that fetches each page
            initial_url: URL of the first page
            params: Query parameters for the first page only
            max_pages: Stop after this many pages, ``None`` for no cap
            per_page: Page size, clamped to the API maximum of 100
            items_key: Field holding the list for wrapped responses
        """
        self.client = client
        self.initial_url = initial_url
        self.params = dict(params or {})
        self.max_pages = max_pages
        self.items_key = items_key
        self.params["per_page"] = min(per_page, 100)
        # Set when iteration stopped at max_pages with pages left
        self.truncated = False

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        """Yield items page by page, following ``rel="next"`` links."""
        next_url: str | None = self.initial_url
        # Link URLs already carry the query string
        params: dict[str, Any] | None = self.params
        pages = 0

        while next_url:
            if self.max_pages and pages >= self.max_pages:
                self.truncated = True
                break

            response: PaginatedResponse = await self.client._fetch_paginated(
                next_url, params, self.items_key
            )
            pages += 1
            params = None
            next_url = response.next_page_url

            for item in response.items:
                yield item

    async def collect_all(self) -> list[dict[str, Any]]:
        """Read every page into one list."""
        return [item async for item in self]
