"""Bounded fetching of third-party pages and JSON endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .exceptions import PageFetchError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedPage:
    """A fetched response; non-2xx pages are returned, not raised."""

    url: str
    status_code: int
    content_type: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type or not self.content_type


class PageFetcher:
    """Fetch pages through a request-scoped ``httpx.AsyncClient``."""

    DEFAULT_HEADERS = {
        "User-Agent": "Mozilla/5.0 (compatible; SpotBot/1.0)",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 10.0,
        max_size: int = 5 * 1024 * 1024,
    ):
        """Initialize the fetcher.

        Args:
            client: Shared client for the current import request
            timeout: Per-request timeout in seconds
            max_size: Maximum response size in bytes (5MB default)
        """
        self.client = client
        self.timeout = timeout
        self.max_size = max_size

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch ``url`` following redirects.

        Raises:
            PageFetchError: On transport errors, timeouts, or oversized bodies.
        """
        try:
            response = await self.client.get(
                url,
                headers=self.DEFAULT_HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            raise PageFetchError(f"Request timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise PageFetchError(f"Network error fetching {url}: {e}") from e

        if len(response.content) > self.max_size:
            raise PageFetchError(f"Response too large: {len(response.content)} bytes")

        logger.debug("Fetched %s -> HTTP %s", url, response.status_code)
        return FetchedPage(
            url=str(response.url),
            status_code=response.status_code,
            content_type=response.headers.get("content-type", "").lower(),
            text=response.text,
        )

    async def fetch_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> Any:
        """GET a JSON document; any failure raises ``PageFetchError``."""
        try:
            response = await self.client.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise PageFetchError(
                f"HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise PageFetchError(f"Network error fetching {url}: {e}") from e
        except ValueError as e:
            raise PageFetchError(f"Invalid JSON from {url}") from e
