"""Fallback strategy for arbitrary websites.

Extraction priority: scored JSON-LD place block, then meta tags with address
heuristics over the visible text, then the first heading or a title derived
from the URL path. A blocked page can still be recovered through one Places
text search when a key is configured.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from ..confidence import build_result
from ..exceptions import PageFetchError, ProviderAPIError
from ..geo import canonicalize_country
from ..interfaces import ExtractionContext
from ..models import (
    Confidence,
    Draft,
    DraftField,
    ImportResult,
    ImportSignals,
    PostcodeHit,
)
from ..page_parser import (
    best_place_node,
    classify_postcode,
    clean_title,
    find_address,
    first_heading,
    json_ld_nodes,
    node_types,
    open_graph,
    page_title,
    parse_html,
    structured_place,
    title_from_url,
    visible_text,
)
from ..places_client import category_from_google_types
from ..provider_classifier import ProviderMatch


logger = logging.getLogger(__name__)

METHOD_JSON_LD = "json_ld"
METHOD_OPENGRAPH = "opengraph"
METHOD_PLACES_SEARCH = "places_search_text"
METHOD_HTTP_ERROR = "http_error"
METHOD_NONE = "none"


def _tld(url: str) -> str | None:
    host = (urlsplit(url).hostname or "").lower()
    return host.rsplit(".", 1)[-1] if "." in host else None


def _medium_if_present(draft: Draft, *fields: DraftField) -> dict[DraftField, Confidence]:
    return {
        field: Confidence.MEDIUM
        for field in fields
        if draft.value_of(field) is not None
    }


class GenericWebsiteStrategy:
    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        try:
            page = await context.fetcher.fetch(url)
        except PageFetchError as e:
            logger.warning("Website fetch failed for %s: %s", url, e.message)
            return self._stub(
                url, match, METHOD_NONE, f"Could not fetch website data: {e.message}"
            )

        if not page.ok:
            return await self._blocked(url, match, page.status_code, context)

        if not page.is_html:
            return self._stub(
                url,
                match,
                METHOD_NONE,
                f"Link does not point to a web page ({page.content_type}).",
            )

        return self._from_html(url, match, page.text)

    def _from_html(self, url: str, match: ProviderMatch, html: str) -> ImportResult:
        soup = parse_html(html)
        nodes = json_ld_nodes(soup)
        preview = open_graph(soup)
        ld_types = tuple(dict.fromkeys(t for node in nodes for t in node_types(node)))
        postcodes: list[PostcodeHit] = []

        best = best_place_node(nodes)
        place = structured_place(best) if best is not None else None
        name = clean_title(place.name, url) if place else None

        if place is not None and name is not None:
            if place.postal_code:
                hit = classify_postcode(place.postal_code, place.region)
                if hit is not None:
                    postcodes.append(hit)
            draft = Draft(
                name=name,
                address=place.address,
                city=place.city,
                country=canonicalize_country(place.country),
                coordinates=place.coordinates,
                link=url,
                comments=place.description or preview.get("og:description"),
                photo_url=preview.get("og:image"),
            )
            levels = _medium_if_present(
                draft,
                DraftField.NAME,
                DraftField.ADDRESS,
                DraftField.CITY,
                DraftField.COUNTRY,
                DraftField.COORDINATES,
            )
            levels[DraftField.LINK] = Confidence.HIGH
            return build_result(
                provider=match.provider,
                method=METHOD_JSON_LD,
                draft=draft,
                levels=levels,
                signals=ImportSignals(
                    json_ld_types=ld_types,
                    open_graph=preview,
                    detected_postcodes=tuple(postcodes),
                ),
            )

        name = (
            clean_title(preview.get("og:title"), url)
            or clean_title(preview.get("title"), url)
            or clean_title(page_title(soup), url)
        )
        name_level = Confidence.MEDIUM
        if name is None:
            name = first_heading(soup) or title_from_url(url)
            name_level = Confidence.LOW

        address_hit = find_address(visible_text(html), tld=_tld(url))
        evidence: dict[DraftField, tuple[str, ...]] = {}
        if address_hit is not None:
            if address_hit.postcode is not None:
                postcodes.append(address_hit.postcode)
            evidence[DraftField.COUNTRY] = (
                f"address_pattern:{address_hit.country}",
            )

        draft = Draft(
            name=name,
            address=address_hit.address if address_hit else None,
            city=address_hit.city if address_hit else None,
            country=address_hit.country if address_hit else None,
            link=url,
            comments=preview.get("og:description") or preview.get("description"),
            photo_url=preview.get("og:image"),
        )
        levels = _medium_if_present(
            draft, DraftField.ADDRESS, DraftField.CITY, DraftField.COUNTRY
        )
        levels[DraftField.NAME] = name_level
        levels[DraftField.LINK] = Confidence.HIGH

        warnings = []
        if preview.get("og:title") is None:
            warnings.append("Limited data extracted from website - please verify details")
        warnings.append("No structured location data found; location fields need review.")

        return build_result(
            provider=match.provider,
            method=METHOD_OPENGRAPH,
            draft=draft,
            levels=levels,
            warnings=warnings,
            evidence=evidence,
            signals=ImportSignals(
                json_ld_types=ld_types,
                open_graph=preview,
                detected_postcodes=tuple(postcodes),
            ),
        )

    async def _blocked(
        self,
        url: str,
        match: ProviderMatch,
        status_code: int,
        context: ExtractionContext,
    ) -> ImportResult:
        title = title_from_url(url)
        if title and context.places is not None:
            try:
                details = await context.places.search_text(title)
            except ProviderAPIError as e:
                logger.warning("Places search fallback failed for %s: %s", url, e.message)
                details = None
            if details is not None:
                draft = Draft(
                    name=details.name or title,
                    address=details.address,
                    city=details.city,
                    country=details.country,
                    coordinates=details.coordinates,
                    category=category_from_google_types(details.types),
                    link=url,
                    opening_hours=details.opening_hours,
                )
                levels = _medium_if_present(
                    draft,
                    DraftField.NAME,
                    DraftField.ADDRESS,
                    DraftField.CITY,
                    DraftField.COUNTRY,
                    DraftField.COORDINATES,
                    DraftField.CATEGORY,
                )
                levels[DraftField.LINK] = Confidence.HIGH
                return build_result(
                    provider=match.provider,
                    method=METHOD_PLACES_SEARCH,
                    draft=draft,
                    levels=levels,
                    warnings=[
                        f"Website blocked automated fetching (HTTP {status_code}); "
                        "used Google Places search, please confirm details"
                    ],
                    signals=ImportSignals(google_types=details.types),
                )

        return self._stub(
            url,
            match,
            METHOD_HTTP_ERROR,
            f"Could not fetch website data: HTTP {status_code}",
            name=title,
        )

    def _stub(
        self,
        url: str,
        match: ProviderMatch,
        method: str,
        warning: str,
        name: str | None = None,
    ) -> ImportResult:
        name = name or title_from_url(url)
        return build_result(
            provider=match.provider,
            method=method,
            draft=Draft(name=name, link=url),
            levels={DraftField.NAME: Confidence.LOW, DraftField.LINK: Confidence.HIGH},
            warnings=[warning, "Please enter the place details manually."],
        )
