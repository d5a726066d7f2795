"""End-to-end pipeline scenarios over a fake web."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from services.url_import import ImportPipeline
from services.url_import.confidence import build_result
from services.url_import.exceptions import ExtractionFailedError, URLValidationError
from services.url_import.models import Confidence, Draft, DraftField, ProviderType, SpotCategory
from services.url_import.pipeline import finalize_geography, url_signals
from services.url_import.places_client import PLACES_API_BASE
from services.url_import.strategies import GenericWebsiteStrategy
from services.url_import.strategies.pinterest import MERGED_WARNING


PLACE_ID = "ChIJdd4hrwug2EcRmSrV3Vo6llI"
MAPS_URL = f"https://www.google.com/maps/search/?api=1&query=Dishoom&query_place_id={PLACE_ID}"
PLACE = {
    "id": PLACE_ID,
    "displayName": {"text": "Dishoom Covent Garden"},
    "formattedAddress": "12 Upper St Martin's Ln, London WC2H 9FB, UK",
    "location": {"latitude": 51.5124, "longitude": -0.1269},
    "types": ["restaurant", "food"],
    "addressComponents": [
        {"longText": "London", "types": ["postal_town"]},
        {"longText": "United Kingdom", "shortText": "GB", "types": ["country"]},
    ],
    "regularOpeningHours": {"weekdayDescriptions": ["Monday: 8:00 AM - 11:00 PM"]},
}

HOMEPAGE = "https://www.rochellecanteen.test/"
HOMEPAGE_HTML = """
<html><head><title>Rochelle Canteen</title>
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "Restaurant", "name": "Rochelle Canteen",
 "address": {"@type": "PostalAddress", "streetAddress": "16 Playground Gardens",
             "addressLocality": "London", "postalCode": "E2 7FA"}}
</script></head><body></body></html>
"""

PIN_URL = "https://www.pinterest.com/pin/555/"
PIN_HTML = f"""
<html><head>
<meta property="og:title" content="Rochelle Canteen | Pinterest">
<meta property="og:image" content="https://i.pinimg.com/rochelle.jpg">
<meta property="og:see_also" content="{HOMEPAGE}">
</head></html>
"""


class FakeBackend:
    model_name = "fake-model"

    def __init__(self, response):
        self.response = response
        self.requests = []

    async def suggest(self, request):
        self.requests.append(request)
        return self.response


class TestHelpers:
    def test_url_signals(self) -> None:
        signals = url_signals("https://www.le-comptoir.fr/paris/menu-2024.html")
        assert signals["domain"] == "le-comptoir.fr"
        assert signals["tld"] == "fr"
        assert signals["url_tokens"] == ("comptoir", "paris", "menu")

    def test_finalize_geography(self) -> None:
        result = build_result(
            provider=ProviderType.WEBSITE,
            method="opengraph",
            draft=Draft(name="Bar", city="Greater Manchester", country="uk"),
            levels={DraftField.CITY: Confidence.MEDIUM, DraftField.COUNTRY: Confidence.LOW},
        )
        final = finalize_geography(result)
        assert final.draft.country == "United Kingdom"
        assert final.draft.continent == "Europe"
        assert final.level(DraftField.CONTINENT) is Confidence.LOW
        assert final.draft.canonical_city_id == "manchester-united-kingdom"

    @pytest.mark.asyncio
    async def test_invalid_url_rejected_before_any_request(self, fake_web) -> None:
        async with fake_web.client() as client:
            with pytest.raises(URLValidationError):
                await ImportPipeline(client=client).import_from_url("ftp://example.com/")
        assert fake_web.requests == []


class TestGoogleMaps:
    @pytest.mark.asyncio
    async def test_place_id_with_key_needs_no_confirmation(self, fake_web) -> None:
        fake_web.add("GET", f"{PLACES_API_BASE}/places/{PLACE_ID}", json=PLACE)

        async with fake_web.client() as client:
            pipeline = ImportPipeline(google_maps_api_key="key", client=client)
            result = await pipeline.import_from_url(MAPS_URL)

        for field in (DraftField.NAME, DraftField.CITY, DraftField.COUNTRY, DraftField.COORDINATES):
            assert result.level(field) is Confidence.HIGH
        assert result.meta.requires_confirmation is False
        assert result.draft.continent == "Europe"
        assert result.level(DraftField.CONTINENT) is Confidence.HIGH
        assert result.draft.canonical_city_id == "london-united-kingdom"
        assert result.draft.visit_time is None
        assert result.meta.raw_url == MAPS_URL
        assert result.meta.signals.domain == "google.com"

    @pytest.mark.asyncio
    async def test_no_key_is_url_only_without_network(self, fake_web) -> None:
        url = "https://www.google.com/maps/place/Dishoom+Shoreditch/@51.52,-0.077,17z"

        async with fake_web.client() as client:
            result = await ImportPipeline(client=client).import_from_url(url)

        assert fake_web.requests == []
        assert result.meta.method == "url_only"
        assert result.draft.name == "Dishoom Shoreditch"
        assert any("GOOGLE_MAPS_API_KEY" in w for w in result.meta.warnings)
        assert result.meta.requires_confirmation is True

    @pytest.mark.asyncio
    async def test_api_failure_degrades_to_url_only(self, fake_web) -> None:
        fake_web.add(
            "GET",
            f"{PLACES_API_BASE}/places/{PLACE_ID}",
            status=403,
            json={"error": {"message": "API key expired"}},
        )

        async with fake_web.client() as client:
            pipeline = ImportPipeline(google_maps_api_key="key", client=client)
            result = await pipeline.import_from_url(MAPS_URL)

        assert result.meta.method == "url_only"
        assert result.meta.warnings[0].startswith("Google Places API call failed")
        assert "API key expired" in result.meta.warnings[0]


class TestWebsite:
    @pytest.mark.asyncio
    async def test_uk_postcode_fills_country(self, fake_web) -> None:
        fake_web.html(HOMEPAGE, HOMEPAGE_HTML)

        async with fake_web.client() as client:
            result = await ImportPipeline(client=client).import_from_url(HOMEPAGE)

        assert result.meta.method == "json_ld"
        assert result.draft.country == "United Kingdom"
        assert result.level(DraftField.COUNTRY) is Confidence.MEDIUM
        assert result.meta.evidence[DraftField.COUNTRY] == ("postcode:E2 7FA (uk format)",)
        assert result.draft.category is SpotCategory.RESTAURANT
        assert result.draft.continent == "Europe"
        assert result.level(DraftField.CONTINENT) is Confidence.MEDIUM
        assert result.draft.visit_time.label.value == "dinner"
        assert result.meta.requires_confirmation is True
        assert result.meta.enriched is True

    @pytest.mark.asyncio
    async def test_ai_fills_remaining_weak_fields(self, fake_web) -> None:
        url = "https://www.lebouchon.test/lyon"
        fake_web.html(url, "<html><head><title>Le Bouchon</title></head></html>")
        backend = FakeBackend(json.dumps({"city": {"value": "Lyon", "confidence": 0.6}}))

        async with fake_web.client() as client:
            result = await ImportPipeline(inference=backend, client=client).import_from_url(url)

        assert backend.requests[0].evidence["url_tokens"] == ["lebouchon", "lyon"]
        assert result.draft.city == "Lyon"
        assert result.level(DraftField.CITY) is Confidence.MEDIUM
        assert result.meta.ai.applied == {DraftField.CITY: True}
        assert any(w.startswith('AI suggested city "Lyon"') for w in result.meta.warnings)

    @pytest.mark.asyncio
    async def test_yelp_without_key_falls_back_to_generic(self, fake_web) -> None:
        url = "https://www.yelp.com/biz/tartine-bakery-san-francisco"
        fake_web.html(url, '<html><head><meta property="og:title" content="Tartine Bakery"></head></html>')

        async with fake_web.client() as client:
            result = await ImportPipeline(client=client).import_from_url(url)

        assert result.meta.provider is ProviderType.YELP
        assert result.meta.method == "opengraph"
        assert result.draft.name == "Tartine Bakery"

    @pytest.mark.asyncio
    async def test_generic_failure_is_extraction_failed(self, fake_web) -> None:
        failing = AsyncMock(side_effect=RuntimeError("parser exploded"))
        with patch.object(GenericWebsiteStrategy, "extract", failing):
            async with fake_web.client() as client:
                with pytest.raises(ExtractionFailedError):
                    await ImportPipeline(client=client).import_from_url(HOMEPAGE)

        failing.assert_awaited_once()


class TestPinterest:
    @pytest.mark.asyncio
    async def test_pin_destination_is_downgraded_and_gated(self, fake_web) -> None:
        fake_web.html(PIN_URL, PIN_HTML)
        fake_web.html(HOMEPAGE, HOMEPAGE_HTML)

        async with fake_web.client() as client:
            result = await ImportPipeline(client=client).import_from_url(PIN_URL)

        assert result.meta.provider is ProviderType.PINTEREST
        assert result.meta.method == "pinterest+json_ld"
        assert result.meta.warnings[0] == MERGED_WARNING
        assert result.draft.name == "Rochelle Canteen"
        assert result.draft.link == PIN_URL
        assert result.draft.photo_url == "https://i.pinimg.com/rochelle.jpg"
        assert result.draft.country == "United Kingdom"
        assert result.level(DraftField.COUNTRY) is Confidence.MEDIUM
        assert result.level(DraftField.LINK) is Confidence.HIGH
        assert result.meta.requires_confirmation is True
        assert result.meta.confirmation_forced is True
        assert result.meta.signals.pinterest.destination_url == HOMEPAGE
        assert len(fake_web.requested("GET", HOMEPAGE)) == 1

    @pytest.mark.asyncio
    async def test_no_level_exceeds_destination_minus_one_tier(self, fake_web) -> None:
        fake_web.html(HOMEPAGE, HOMEPAGE_HTML)
        fake_web.html(PIN_URL, PIN_HTML)

        async with fake_web.client() as client:
            pipeline = ImportPipeline(client=client)
            destination = await pipeline.import_from_url(HOMEPAGE)
            pinned = await pipeline.import_from_url(PIN_URL)

        for field in (DraftField.NAME, DraftField.CITY, DraftField.COUNTRY, DraftField.COORDINATES):
            assert pinned.level(field) <= destination.level(field).downgraded()

    @pytest.mark.asyncio
    async def test_follow_stops_at_max_depth(self, fake_web) -> None:
        fake_web.html(HOMEPAGE, HOMEPAGE_HTML)

        async with fake_web.client() as client:
            pipeline = ImportPipeline(client=client)
            top = pipeline._context(client, depth=0)
            nested = pipeline._context(client, depth=1)

            assert nested.can_follow is False
            assert await nested.follow(HOMEPAGE) is None
            assert fake_web.requests == []

            followed = await top.follow(HOMEPAGE)

        assert followed is not None
        assert followed.meta.enriched is True

    @pytest.mark.asyncio
    async def test_unsafe_destination_is_not_followed(self, fake_web) -> None:
        async with fake_web.client() as client:
            context = ImportPipeline(client=client)._context(client, depth=0)
            assert await context.follow("http://169.254.169.254/latest") is None
        assert fake_web.requests == []
