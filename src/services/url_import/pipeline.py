"""Orchestrates one URL import: validate, resolve, classify, extract, enrich.

Each request gets its own ``httpx.AsyncClient`` (unless one is injected) and
every stage returns a new ``ImportResult``; nothing is shared between calls.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, assert_never
from urllib.parse import urlsplit

import httpx

from core.observability import get_tracer

from .confidence import regate
from .enrichment import enrich_deterministically, enrich_with_ai
from .enrichment.ai import PydanticAIInferenceBackend
from .exceptions import ExtractionFailedError, URLImportError, URLValidationError
from .geo import canonical_city_id, canonicalize_country, continent_for_country
from .interfaces import (
    ExtractionContext,
    ExtractionStrategyProtocol,
    InferenceBackendProtocol,
)
from .models import DraftField, ImportResult, ProviderType
from .page_fetcher import PageFetcher
from .places_client import GooglePlacesClient
from .provider_classifier import ProviderMatch, classify_url
from .strategies import (
    GenericWebsiteStrategy,
    GoogleMapsStrategy,
    GoogleMapsUrlOnlyStrategy,
    PinterestStrategy,
    SocialMediaStrategy,
    YelpStrategy,
)
from .url_validator import resolve_url, validate_url
from .visit_time import infer_visit_time
from .yelp_client import YelpClient


if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

MAX_RECURSION_DEPTH = 1
MAX_URL_TOKENS = 20
_TOKEN_SPLIT = re.compile(r"[^a-z0-9à-öø-ÿ]+")
_IGNORED_TOKENS = frozenset({"www", "com", "html", "htm", "php", "index", "http", "https"})


def url_signals(url: str) -> dict[str, object]:
    """Domain, top-level domain and lowercase word tokens of ``url``."""
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    domain = host[4:] if host.startswith("www.") else host
    labels = domain.split(".")
    tld = labels[-1] if len(labels) > 1 else None

    tokens: list[str] = []
    for raw in (*labels[:-1], *_TOKEN_SPLIT.split(parts.path.lower())):
        for token in _TOKEN_SPLIT.split(raw):
            if len(token) < 3 or token.isdigit() or token in _IGNORED_TOKENS:
                continue
            if token not in tokens:
                tokens.append(token)
    return {"domain": domain or None, "tld": tld, "url_tokens": tuple(tokens[:MAX_URL_TOKENS])}


def finalize_geography(result: ImportResult) -> ImportResult:
    """Canonical country, continent and city id from the final values."""
    draft = result.draft
    country = canonicalize_country(draft.country)
    continent = continent_for_country(country)
    updated = draft.model_copy(
        update={
            "country": country,
            "continent": continent or draft.continent,
            "canonical_city_id": canonical_city_id(draft.city, country),
        }
    )
    if continent is None:
        return result.model_copy(update={"draft": updated})

    # Continent is only as trustworthy as the country it came from.
    levels = dict(result.meta.confidence)
    levels[DraftField.CONTINENT] = result.level(DraftField.COUNTRY)
    meta = result.meta.model_copy(update={"confidence": levels})
    return result.model_copy(update={"draft": updated, "meta": meta})


class ImportPipeline:
    """``import_from_url`` entry point.

    API keys are optional; each missing key only narrows what the matching
    strategy can do.
    """

    def __init__(
        self,
        google_maps_api_key: str | None = None,
        yelp_api_key: str | None = None,
        inference: InferenceBackendProtocol | None = None,
        http_timeout: float = 10.0,
        max_page_bytes: int = 5 * 1024 * 1024,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.google_maps_api_key = google_maps_api_key
        self.yelp_api_key = yelp_api_key
        self.inference = inference
        self.http_timeout = http_timeout
        self.max_page_bytes = max_page_bytes
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> ImportPipeline:
        inference = None
        if settings.GEMINI_API_KEY:
            inference = PydanticAIInferenceBackend(
                api_key=settings.GEMINI_API_KEY,
                model_name=settings.AI_ENRICHMENT_MODEL,
                timeout=settings.AI_TIMEOUT_SECONDS,
            )
        return cls(
            google_maps_api_key=settings.GOOGLE_MAPS_API_KEY,
            yelp_api_key=settings.YELP_API_KEY,
            inference=inference,
            http_timeout=settings.HTTP_TIMEOUT_SECONDS,
            max_page_bytes=settings.MAX_PAGE_BYTES,
        )

    async def import_from_url(self, raw_url: str) -> ImportResult:
        """Turn a pasted URL into a draft with per-field confidence.

        Raises:
            URLValidationError: The input is not a safe HTTP(S) URL.
            ExtractionFailedError: Every fallback of the chosen strategy failed.
        """
        url = validate_url(raw_url)
        if self._client is not None:
            return await self._run(url, self._client, depth=0)
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            return await self._run(url, client, depth=0)

    def _context(self, client: httpx.AsyncClient, depth: int) -> ExtractionContext:
        async def follow(destination: str) -> ImportResult | None:
            if depth + 1 > MAX_RECURSION_DEPTH:
                return None
            try:
                destination = validate_url(destination)
            except URLValidationError as e:
                logger.info("Not following destination: %s", e.message)
                return None
            return await self._run(destination, client, depth=depth + 1)

        return ExtractionContext(
            fetcher=PageFetcher(client, timeout=self.http_timeout, max_size=self.max_page_bytes),
            follow=follow,
            places=(
                GooglePlacesClient(self.google_maps_api_key, client, self.http_timeout)
                if self.google_maps_api_key
                else None
            ),
            yelp=(
                YelpClient(self.yelp_api_key, client, self.http_timeout)
                if self.yelp_api_key
                else None
            ),
            depth=depth,
            max_depth=MAX_RECURSION_DEPTH,
        )

    async def _run(self, url: str, client: httpx.AsyncClient, depth: int) -> ImportResult:
        resolved = await resolve_url(url, client, self.http_timeout)
        match = classify_url(resolved)
        context = self._context(client, depth)
        logger.info(
            "Importing URL provider=%s depth=%s", match.provider.value, depth
        )

        result = await self._extract(resolved, match, context)

        meta = result.meta
        signals = meta.signals.model_copy(update=url_signals(resolved))
        result = regate(
            result.model_copy(
                update={
                    "meta": meta.model_copy(
                        update={"raw_url": url, "resolved_url": resolved, "signals": signals}
                    )
                }
            )
        )

        if not result.meta.enriched:
            result = enrich_deterministically(result)
            result = await enrich_with_ai(result, self.inference)
            result = result.model_copy(
                update={"meta": result.meta.model_copy(update={"enriched": True})}
            )

        result = infer_visit_time(result)
        return regate(finalize_geography(result))

    def _strategy_for(
        self, provider: ProviderType, context: ExtractionContext
    ) -> ExtractionStrategyProtocol:
        if provider is ProviderType.GOOGLE_MAPS:
            if context.places is None:
                return GoogleMapsUrlOnlyStrategy(api_key_configured=False)
            return GoogleMapsStrategy()
        elif provider is ProviderType.YELP:
            return YelpStrategy()
        elif provider is ProviderType.PINTEREST:
            return PinterestStrategy()
        elif provider is ProviderType.INSTAGRAM or provider is ProviderType.TIKTOK:
            return SocialMediaStrategy()
        elif (
            provider is ProviderType.TRIPADVISOR
            or provider is ProviderType.OPENTABLE
            or provider is ProviderType.WEBSITE
        ):
            return GenericWebsiteStrategy()
        else:
            assert_never(provider)

    async def _extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        strategy = self._strategy_for(match.provider, context)
        with tracer.start_as_current_span("url_import.extract") as span:
            span.set_attribute("url_import.provider", match.provider.value)
            span.set_attribute("url_import.depth", context.depth)
            try:
                result = await strategy.extract(url, match, context)
            except Exception as e:
                reason = e.message if isinstance(e, URLImportError) else str(e)
                logger.warning(
                    "%s failed for provider=%s: %s",
                    type(strategy).__name__,
                    match.provider.value,
                    reason,
                )
                span.record_exception(e)
                result = await self._fallback(url, match, context, strategy, reason)
            span.set_attribute("url_import.method", result.meta.method)
        return result

    async def _fallback(
        self,
        url: str,
        match: ProviderMatch,
        context: ExtractionContext,
        failed: ExtractionStrategyProtocol,
        reason: str,
    ) -> ImportResult:
        if match.provider is ProviderType.GOOGLE_MAPS:
            # Map links never degrade to HTML scraping.
            fallback: ExtractionStrategyProtocol = GoogleMapsUrlOnlyStrategy(
                api_key_configured=context.places is not None, error=reason
            )
        elif isinstance(failed, GenericWebsiteStrategy):
            raise ExtractionFailedError(f"Could not extract a place from this URL: {reason}")
        else:
            fallback = GenericWebsiteStrategy()

        try:
            return await fallback.extract(url, match, context)
        except Exception as e:
            logger.error("Fallback %s failed: %s", type(fallback).__name__, e)
            raise ExtractionFailedError(
                "Could not extract a place from this URL"
            ) from e
