"""Shared test fixtures for pytest.

ENVIRONMENT is forced to ``test`` before the app is imported so settings
load without an env file and every provider key defaults to unset.
Outbound HTTP is served by ``FakeWeb`` through ``httpx.MockTransport``;
no test touches the network.
"""

import os
from collections.abc import Awaitable, Callable, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient


os.environ["ENVIRONMENT"] = "test"
for _key in ("GOOGLE_MAPS_API_KEY", "YELP_API_KEY", "GEMINI_API_KEY"):
    os.environ.pop(_key, None)

from main import app
from services.url_import.interfaces import ExtractionContext
from services.url_import.models import ImportResult
from services.url_import.page_fetcher import PageFetcher
from services.url_import.places_client import GooglePlacesClient
from services.url_import.yelp_client import YelpClient


Handler = Callable[[httpx.Request], httpx.Response]


class FakeWeb:
    """Canned responses keyed by method and URL (query string ignored)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[httpx.Response | Handler]] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _key(method: str, url: str) -> tuple[str, str]:
        parsed = httpx.URL(url)
        return method.upper(), f"{parsed.scheme}://{parsed.host}{parsed.path}"

    def add(
        self,
        method: str,
        url: str,
        response: httpx.Response | Handler | None = None,
        *,
        status: int = 200,
        html: str | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> "FakeWeb":
        """Queue a response; the last queued one is repeated once exhausted."""
        if response is None:
            if html is not None:
                response = httpx.Response(
                    status,
                    text=html,
                    headers={"content-type": "text/html; charset=utf-8", **(headers or {})},
                )
            elif json is not None:
                response = httpx.Response(status, json=json, headers=headers)
            else:
                response = httpx.Response(status, headers=headers)
        self.routes.setdefault(self._key(method, url), []).append(response)
        return self

    def html(self, url: str, html: str, status: int = 200) -> "FakeWeb":
        return self.add("GET", url, html=html, status=status)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(self._key(request.method, str(request.url)))
        if not queue:
            return httpx.Response(404, text="not found")
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(entry, httpx.Response):
            # Fresh copy: a response object cannot be sent twice.
            return httpx.Response(
                entry.status_code, headers=entry.headers, content=entry.content
            )
        return entry(request)

    def requested(self, method: str, url: str) -> list[httpx.Request]:
        key = self._key(method, url)
        return [r for r in self.requests if self._key(r.method, str(r.url)) == key]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_context() -> Callable[..., ExtractionContext]:
    """Build a strategy context around a client, with following disabled by default."""

    async def _no_follow(url: str) -> ImportResult | None:
        return None

    def _make(
        client: httpx.AsyncClient,
        *,
        places: GooglePlacesClient | None = None,
        yelp: YelpClient | None = None,
        depth: int = 0,
        follow: Callable[[str], Awaitable[ImportResult | None]] | None = None,
    ) -> ExtractionContext:
        return ExtractionContext(
            fetcher=PageFetcher(client),
            follow=follow or _no_follow,
            places=places,
            yelp=yelp,
            depth=depth,
        )

    return _make
