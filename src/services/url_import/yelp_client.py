"""Yelp Fusion business lookup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from .exceptions import ProviderAPIError
from .geo import canonicalize_country
from .models import Coordinates, OpeningHours, OpeningHoursPeriod, SpotCategory


logger = logging.getLogger(__name__)

YELP_BUSINESS_ENDPOINT = "https://api.yelp.com/v3/businesses/{business_id}"

# Ordered: the first matching pattern over category titles wins.
YELP_CATEGORY_PATTERNS: tuple[tuple[re.Pattern[str], SpotCategory], ...] = (
    (re.compile(r"restaurant|diner|bistro|sushi|ramen|pizza|steak"), SpotCategory.RESTAURANT),
    (re.compile(r"cafe|coffee|tea"), SpotCategory.CAFE),
    (re.compile(r"bar|pub|cocktail|brewery"), SpotCategory.BAR),
    (re.compile(r"museum|gallery"), SpotCategory.MUSEUM),
    (re.compile(r"park|garden"), SpotCategory.PARK),
    (re.compile(r"hotel|hostel|resort"), SpotCategory.HOTEL),
    (re.compile(r"nightlife|club"), SpotCategory.CLUB),
    (re.compile(r"shopping|store|market"), SpotCategory.SHOP),
)


@dataclass(frozen=True)
class YelpBusiness:
    name: str | None
    url: str | None
    address: str | None
    city: str | None
    country: str | None
    coordinates: Coordinates | None
    category_titles: tuple[str, ...]
    image_url: str | None
    price: str | None
    opening_hours: OpeningHours | None


def category_from_yelp_titles(titles: tuple[str, ...] | list[str]) -> SpotCategory:
    lowered = [t.lower() for t in titles]
    for pattern, category in YELP_CATEGORY_PATTERNS:
        if any(pattern.search(t) for t in lowered):
            return category
    return SpotCategory.OTHER


def _parse_hours(hours: list[dict[str, Any]] | None) -> OpeningHours | None:
    if not hours:
        return None
    periods = []
    for slot in hours[0].get("open") or []:
        # Yelp days are 0=Monday; periods use 0=Sunday.
        start_day = (int(slot["day"]) + 1) % 7
        end_day = start_day if not slot.get("is_overnight") else (start_day + 1) % 7
        periods.append(
            OpeningHoursPeriod(
                open_day=start_day,
                open_time=str(slot["start"]),
                close_day=end_day,
                close_time=str(slot.get("end")) if slot.get("end") else None,
            )
        )
    if not periods:
        return None
    return OpeningHours(source="yelp", periods=tuple(periods))


def parse_business(payload: dict[str, Any]) -> YelpBusiness:
    location = payload.get("location") or {}
    display_address = location.get("display_address") or []
    coordinates = payload.get("coordinates") or {}
    lat, lng = coordinates.get("latitude"), coordinates.get("longitude")
    return YelpBusiness(
        name=payload.get("name"),
        url=payload.get("url"),
        address=", ".join(display_address) or location.get("address1"),
        city=location.get("city"),
        country=canonicalize_country(location.get("country")),
        coordinates=(
            Coordinates(lat=float(lat), lng=float(lng))
            if isinstance(lat, int | float) and isinstance(lng, int | float)
            else None
        ),
        category_titles=tuple(
            c.get("title") or "" for c in payload.get("categories") or []
        ),
        image_url=payload.get("image_url"),
        price=payload.get("price"),
        opening_hours=_parse_hours(payload.get("hours")),
    )


class YelpClient:
    def __init__(self, api_key: str, client: httpx.AsyncClient, timeout: float = 10.0):
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    async def get_business(self, business_id: str) -> YelpBusiness:
        """Look up a business by its ``/biz/<alias>`` id.

        Raises:
            ProviderAPIError: On transport errors, non-2xx, or bad payloads.
        """
        url = YELP_BUSINESS_ENDPOINT.format(business_id=quote(business_id, safe=""))
        try:
            response = await self.client.get(
                url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderAPIError(
                f"Yelp API failed ({exc.response.status_code})",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderAPIError(f"Yelp API request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise ProviderAPIError("Yelp API returned invalid JSON") from exc

        try:
            return parse_business(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Yelp payload parse failed: %s - %s", type(exc).__name__, exc)
            raise ProviderAPIError("Yelp API returned an unexpected payload") from exc
