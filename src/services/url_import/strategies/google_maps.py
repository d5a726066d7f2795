"""Google Maps links: Places API lookup with URL-only degradation."""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qs, unquote, unquote_plus, urlsplit

from ..confidence import build_result
from ..exceptions import ProviderAPIError, ProviderConfigurationError
from ..interfaces import ExtractionContext
from ..models import (
    Confidence,
    Coordinates,
    Draft,
    DraftField,
    ImportResult,
    ImportSignals,
    ProviderType,
)
from ..places_client import PlaceDetails, category_from_google_types
from ..provider_classifier import ProviderMatch


logger = logging.getLogger(__name__)

METHOD_PLACES_API = "places_api"
METHOD_PLACES_SEARCH = "places_api_search_text"
METHOD_URL_ONLY = "url_only"

MISSING_KEY_WARNING = (
    "Google Places API key not configured on server (GOOGLE_MAPS_API_KEY)."
)
CONFIRM_WARNING = "Please confirm location details."
SEARCH_WARNING = (
    "Place details were found via search; please confirm they match the link."
)

_PLACE_PATH = re.compile(r"/maps/(?:place|search)/([^/@?#]+)")
_AT_COORDS = re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)")
_DATA_COORDS = re.compile(r"!3d(-?\d+(?:\.\d+)?)!4d(-?\d+(?:\.\d+)?)")


def name_from_maps_url(url: str) -> str | None:
    """Place name from ``/maps/place/<name>`` or the ``q``/``query`` param."""
    parts = urlsplit(url)
    match = _PLACE_PATH.search(parts.path)
    if match:
        name = unquote_plus(match.group(1)).strip()
        if name:
            return name
    query = parse_qs(parts.query)
    for key in ("q", "query"):
        values = query.get(key)
        if values and values[0].strip() and not values[0].lower().startswith("place_id:"):
            return values[0].strip()
    return None


def coordinates_from_maps_url(url: str) -> Coordinates | None:
    decoded = unquote(url)
    match = _DATA_COORDS.search(decoded) or _AT_COORDS.search(decoded)
    if not match:
        return None
    try:
        return Coordinates(lat=float(match.group(1)), lng=float(match.group(2)))
    except ValueError:
        return None


def _result_from_place(
    url: str, details: PlaceDetails, *, via_search: bool
) -> ImportResult:
    draft = Draft(
        name=details.name,
        address=details.address,
        city=details.city,
        country=details.country,
        coordinates=details.coordinates,
        category=category_from_google_types(details.types),
        link=url,
        opening_hours=details.opening_hours,
    )
    levels = {
        DraftField.NAME: Confidence.MEDIUM if via_search else Confidence.HIGH,
        DraftField.ADDRESS: Confidence.HIGH,
        DraftField.COORDINATES: Confidence.HIGH,
        DraftField.CITY: Confidence.HIGH,
        DraftField.COUNTRY: Confidence.HIGH,
        DraftField.CATEGORY: Confidence.MEDIUM,
        DraftField.LINK: Confidence.HIGH,
    }
    return build_result(
        provider=ProviderType.GOOGLE_MAPS,
        method=METHOD_PLACES_SEARCH if via_search else METHOD_PLACES_API,
        draft=draft,
        levels=levels,
        warnings=[SEARCH_WARNING] if via_search else [],
        signals=ImportSignals(google_types=details.types),
    )


class GoogleMapsStrategy:
    """Authoritative strategy backed by the Places API (New)."""

    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        places = context.places
        if places is None:
            raise ProviderConfigurationError(MISSING_KEY_WARNING)

        if match.place_id:
            details = await places.get_place(match.place_id)
            return _result_from_place(url, details, via_search=False)

        name = name_from_maps_url(url)
        warnings: list[str] = []
        if name:
            try:
                details = await places.search_text(
                    name, bias=coordinates_from_maps_url(url)
                )
            except ProviderAPIError as e:
                logger.warning("Places text search failed for maps link: %s", e.message)
                warnings.append(f"Google Places search failed: {e.message}")
            else:
                if details is not None:
                    return _result_from_place(url, details, via_search=True)
                warnings.append("Google Places search found no matching place.")
        else:
            warnings.append("No place identifier or name found in the link.")

        return build_result(
            provider=ProviderType.GOOGLE_MAPS,
            method=METHOD_URL_ONLY,
            draft=Draft(name=name, link=url),
            levels={DraftField.NAME: Confidence.MEDIUM, DraftField.LINK: Confidence.HIGH},
            warnings=[*warnings, CONFIRM_WARNING],
        )


class GoogleMapsUrlOnlyStrategy:
    """Non-scraping fallback used without a key or after an API failure."""

    def __init__(self, api_key_configured: bool, error: str | None = None):
        self.api_key_configured = api_key_configured
        self.error = error

    def _reason(self) -> str:
        if not self.api_key_configured:
            return MISSING_KEY_WARNING
        if self.error:
            return f"Google Places API call failed: {self.error}"
        return "Could not resolve place details from this link."

    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        name = name_from_maps_url(url)
        return build_result(
            provider=ProviderType.GOOGLE_MAPS,
            method=METHOD_URL_ONLY,
            draft=Draft(name=name, link=url),
            levels={DraftField.NAME: Confidence.MEDIUM, DraftField.LINK: Confidence.HIGH},
            warnings=[self._reason(), CONFIRM_WARNING],
        )
