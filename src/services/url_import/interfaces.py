"""Service interfaces for the URL import pipeline.

Strategies and the inference backend are declared as protocols so the
pipeline can be assembled from fakes in tests without patching network code.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .models import DraftField, ImportResult
from .page_fetcher import PageFetcher
from .places_client import GooglePlacesClient
from .provider_classifier import ProviderMatch
from .yelp_client import YelpClient


@dataclass(frozen=True)
class ExtractionContext:
    """Request-scoped collaborators handed to a strategy.

    ``follow`` runs the full pipeline on another URL one level deeper; it
    returns ``None`` when the depth bound is reached or the URL is rejected.
    """

    fetcher: PageFetcher
    follow: Callable[[str], Awaitable[ImportResult | None]]
    places: GooglePlacesClient | None = None
    yelp: YelpClient | None = None
    depth: int = 0
    max_depth: int = 1

    @property
    def can_follow(self) -> bool:
        return self.depth < self.max_depth


class ExtractionStrategyProtocol(Protocol):
    """Common contract: resolved URL → draft + metadata."""

    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        """Extract a draft for ``url``; may raise to trigger pipeline fallback."""
        ...


@dataclass(frozen=True)
class EnrichmentRequest:
    """What the inference backend is allowed to see."""

    fields: tuple[DraftField, ...]
    known: dict[str, Any]
    evidence: dict[str, Any]


class InferenceBackendProtocol(Protocol):
    """Stateless AI backend that proposes values for weak fields."""

    model_name: str

    async def suggest(self, request: EnrichmentRequest) -> Any:
        """Return raw suggestions; the caller validates them against a schema."""
        ...
