"""Google Places API (New) client for place details and text search."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .exceptions import ProviderAPIError
from .geo import canonicalize_country
from .models import Coordinates, OpeningHours, OpeningHoursPeriod, SpotCategory


logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://places.googleapis.com/v1"
DETAILS_FIELDS = (
    "id",
    "displayName",
    "formattedAddress",
    "location",
    "types",
    "addressComponents",
    "regularOpeningHours",
)
# Used for the single retry when the API rejects the full field set.
REDUCED_DETAILS_FIELDS = tuple(f for f in DETAILS_FIELDS if f != "regularOpeningHours")
SEARCH_FIELDS = tuple(f"places.{f}" for f in DETAILS_FIELDS)
SEARCH_BIAS_RADIUS_METERS = 500.0

CITY_COMPONENT_TYPES = (
    "locality",
    "postal_town",
    "administrative_area_level_2",
    "administrative_area_level_1",
)

GOOGLE_TYPE_CATEGORIES: tuple[tuple[str, SpotCategory], ...] = (
    ("restaurant", SpotCategory.RESTAURANT),
    ("cafe", SpotCategory.CAFE),
    ("bar", SpotCategory.BAR),
    ("night_club", SpotCategory.CLUB),
    ("museum", SpotCategory.MUSEUM),
    ("park", SpotCategory.PARK),
    ("tourist_attraction", SpotCategory.ATTRACTION),
    ("lodging", SpotCategory.HOTEL),
    ("store", SpotCategory.SHOP),
)


@dataclass(frozen=True)
class PlaceDetails:
    place_id: str | None
    name: str | None
    address: str | None
    coordinates: Coordinates | None
    city: str | None
    country: str | None
    types: tuple[str, ...] = ()
    opening_hours: OpeningHours | None = None


def category_from_google_types(types: tuple[str, ...] | list[str]) -> SpotCategory:
    for google_type, category in GOOGLE_TYPE_CATEGORIES:
        if google_type in types:
            return category
    return SpotCategory.OTHER


def _component_text(component: dict[str, Any]) -> str | None:
    return component.get("longText") or component.get("shortText")


def _find_component(components: list[dict[str, Any]], wanted: str) -> str | None:
    for component in components:
        if wanted in (component.get("types") or []):
            return _component_text(component)
    return None


def _format_time(point: dict[str, Any]) -> str:
    return f"{int(point.get('hour', 0)):02d}{int(point.get('minute', 0)):02d}"


def parse_opening_hours(
    payload: dict[str, Any] | None, source: str = "google_places"
) -> OpeningHours | None:
    if not payload:
        return None
    periods: list[OpeningHoursPeriod] = []
    for period in payload.get("periods") or []:
        opened = period.get("open")
        if not opened:
            continue
        closed = period.get("close") or {}
        periods.append(
            OpeningHoursPeriod(
                open_day=int(opened.get("day", 0)),
                open_time=_format_time(opened),
                close_day=int(closed["day"]) if "day" in closed else None,
                close_time=_format_time(closed) if closed else None,
            )
        )
    weekday_text = tuple(payload.get("weekdayDescriptions") or ())
    if not weekday_text and not periods:
        return None
    return OpeningHours(source=source, weekday_text=weekday_text, periods=tuple(periods))


def parse_place(payload: dict[str, Any]) -> PlaceDetails:
    """Map a Places API (New) place object onto ``PlaceDetails``."""
    components = payload.get("addressComponents") or []
    city = None
    for component_type in CITY_COMPONENT_TYPES:
        city = _find_component(components, component_type)
        if city:
            break

    location = payload.get("location") or {}
    coordinates = None
    if "latitude" in location and "longitude" in location:
        coordinates = Coordinates(
            lat=float(location["latitude"]), lng=float(location["longitude"])
        )

    display_name = payload.get("displayName") or {}
    return PlaceDetails(
        place_id=payload.get("id"),
        name=display_name.get("text") if isinstance(display_name, dict) else None,
        address=payload.get("formattedAddress"),
        coordinates=coordinates,
        city=city,
        country=canonicalize_country(_find_component(components, "country")),
        types=tuple(payload.get("types") or ()),
        opening_hours=parse_opening_hours(payload.get("regularOpeningHours")),
    )


class GooglePlacesClient:
    """Thin async wrapper over the Places API (New)."""

    def __init__(self, api_key: str, client: httpx.AsyncClient, timeout: float = 10.0):
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    async def get_place(self, place_id: str) -> PlaceDetails:
        """Fetch place details, narrowing the field mask once if rejected.

        Raises:
            ProviderAPIError: If both attempts fail or the first failure is
                unrelated to the requested fields.
        """
        url = f"{PLACES_API_BASE}/places/{place_id}"
        try:
            payload = await self._request("GET", url, DETAILS_FIELDS)
        except ProviderAPIError as e:
            if not e.field_mask_related:
                raise
            logger.warning(
                "Places details rejected field mask (%s); retrying without opening hours",
                e.message,
            )
            payload = await self._request("GET", url, REDUCED_DETAILS_FIELDS)
        return parse_place(payload)

    async def search_text(
        self, query: str, bias: Coordinates | None = None
    ) -> PlaceDetails | None:
        """Best single text-search hit, optionally biased toward ``bias``."""
        body: dict[str, Any] = {"textQuery": query, "maxResultCount": 1}
        if bias is not None:
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": bias.lat, "longitude": bias.lng},
                    "radius": SEARCH_BIAS_RADIUS_METERS,
                }
            }
        payload = await self._request(
            "POST", f"{PLACES_API_BASE}/places:searchText", SEARCH_FIELDS, json=body
        )
        places = payload.get("places") or []
        if not places:
            return None
        return parse_place(places[0])

    async def _request(
        self,
        method: str,
        url: str,
        fields: tuple[str, ...],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": ",".join(fields),
            "Accept": "application/json",
        }
        try:
            response = await self.client.request(
                method, url, headers=headers, json=json, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            raise ProviderAPIError(
                f"Places API request failed: {type(exc).__name__}"
            ) from exc

        if response.status_code >= 400:
            raise ProviderAPIError(
                _error_message(response), status_code=response.status_code
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderAPIError("Places API returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderAPIError("Places API returned an unexpected payload")
        return payload


def _error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error") or {}
        message = error.get("message")
    except (ValueError, AttributeError):
        message = None
    return f"Places API error {response.status_code}: {message or response.reason_phrase}"
