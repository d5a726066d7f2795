"""Pinterest pins: follow the pin's destination link one level deep.

The pin page (or the oEmbed endpoint when the page blocks scraping) provides
presentation data. When a destination URL is embedded in the pin, the full
pipeline runs on it and its structured fields win, each downgraded one tier.
Without a usable destination only explicit keywords in the pin text are used.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from ..confidence import build_result, downgrade_levels
from ..exceptions import ExtractionFailedError, PageFetchError
from ..geo import known_country
from ..interfaces import ExtractionContext
from ..models import (
    Confidence,
    Draft,
    DraftField,
    ImportResult,
    ImportSignals,
    PinterestSignals,
    ProviderType,
    SpotCategory,
)
from ..page_parser import (
    canonical_link,
    first_heading,
    json_ld_nodes,
    meta_content,
    page_title,
    parse_html,
)
from ..provider_classifier import ProviderMatch


logger = logging.getLogger(__name__)

OEMBED_ENDPOINT = "https://www.pinterest.com/oembed.json"
METHOD_PINTEREST_ONLY = "pinterest_only"
METHOD_PINTEREST_ERROR = "pinterest_error"
MERGED_WARNING = "Pinterest pin imported - destination URL extracted and processed"
MAX_TEXT_LENGTH = 600

GENERIC_PIN_TITLES = frozenset({"pinterest", "log in", "sign up"})
DESTINATION_LD_KEYS = (
    "url",
    "contentUrl",
    "mainEntityOfPage",
    "sameAs",
    "citation",
    "relatedLink",
    "isBasedOn",
)

_SCRIPT_NOISE = re.compile(
    r"\b(document\.addEventListener|let\s+\w+\s*=|function\s*\(|securitypoli|cspReportsCount)",
    re.IGNORECASE,
)
_SOURCE_FIELDS = re.compile(
    r'"(?:sourceUrl|originUrl|source_url|website_url)"\s*:\s*"(https?:(?:\\?/|\\u002F){2}[^"]+)"'
)
_LINK_FIELD = re.compile(r'"link"\s*:\s*"(https?:(?:\\?/|\\u002F){2}[^"]+)"')
_KEYWORD_SNIPPET = re.compile(
    r".{0,40}\b(restaurant|cafe|coffee|bar|hotel|museum|tickets)\b.{0,120}",
    re.IGNORECASE,
)

# Ordered: first explicit keyword wins.
_CATEGORY_KEYWORDS: tuple[tuple[re.Pattern[str], SpotCategory, str], ...] = (
    (re.compile(r"\brestaurant\b"), SpotCategory.RESTAURANT, "restaurant"),
    (re.compile(r"\bcafe\b|\bcoffee\b"), SpotCategory.CAFE, "cafe/coffee"),
    (re.compile(r"\bbar\b|\bcocktail\b"), SpotCategory.BAR, "bar/cocktail"),
    (re.compile(r"\bmuseum\b|\bmusée\b"), SpotCategory.MUSEUM, "museum"),
    (re.compile(r"\bhotel\b|\brooms\b|\bcheck-?in\b"), SpotCategory.HOTEL, "hotel/rooms"),
)
_PLACE_WORD = r"[A-Za-z][A-Za-z\s'’\-]{2,50}"
_IN_CITY_CODE = re.compile(rf"\bin\s+({_PLACE_WORD})\s*,\s*([A-Za-z]{{2,3}})\b", re.IGNORECASE)
_IN_CITY_COUNTRY = re.compile(
    rf"\bin\s+({_PLACE_WORD})\s*,\s*({_PLACE_WORD})(?=[\s.,!]|$)", re.IGNORECASE
)
_COUNTRY_CUTOFF = re.compile(r"\b(?:with|and|for|near|at|in)\b", re.IGNORECASE)
_TRAILING_TOKEN = re.compile(r",\s*([A-Za-z][A-Za-z\s'’\-]{2,40})\s*$")
_COUNTRY_ABBR = re.compile(r",\s*([A-Za-z]{2,3})\b")


@dataclass(frozen=True)
class PinMetadata:
    title: str | None = None
    description: str | None = None
    image: str | None = None
    destination_url: str | None = None


@dataclass(frozen=True)
class PinInference:
    name: str | None = None
    category: SpotCategory | None = None
    city: str | None = None
    country: str | None = None
    evidence: dict[DraftField, tuple[str, ...]] = field(default_factory=dict)


def clean_pin_title(raw: str | None) -> str | None:
    if not raw:
        return None
    title = " ".join(raw.split())
    title = title.split("|")[0].strip()
    title = title.split("—")[0].strip()
    if not title or title.lower() in GENERIC_PIN_TITLES:
        return None
    return title


def clean_pin_text(raw: str | None) -> str | None:
    if not raw:
        return None
    text = " ".join(raw.split())
    if _SCRIPT_NOISE.search(text):
        text = text.split("document.addEventListener")[0].strip()
        text = text.split("let cspReportsCount")[0].strip()
    if len(text) > MAX_TEXT_LENGTH:
        text = text[:MAX_TEXT_LENGTH].strip() + "…"
    return text or None


def _unescape_url(value: str) -> str:
    return value.replace("\\u002F", "/").replace("\\/", "/")


def _is_external(candidate: Any) -> bool:
    if not isinstance(candidate, str) or not candidate.startswith(("http://", "https://")):
        return False
    host = (urlsplit(candidate).hostname or "").lower()
    return not any(blocked in host for blocked in ("pinterest.", "pinimg.com", "pin.it"))


def _ld_candidates(value: Any) -> list[Any]:
    if isinstance(value, list):
        return [c for item in value for c in _ld_candidates(item)]
    if isinstance(value, dict):
        return [value.get("@id"), value.get("url")]
    return [value]


def find_destination_url(html: str) -> str | None:
    """Locate the external page a pin points to, in priority order."""
    soup = parse_html(html)
    for node in json_ld_nodes(soup):
        for key in DESTINATION_LD_KEYS:
            for candidate in _ld_candidates(node.get(key)):
                if _is_external(candidate):
                    return candidate

    see_also = meta_content(soup, "og:see_also")
    if _is_external(see_also):
        return see_also

    canonical = canonical_link(soup)
    if _is_external(canonical):
        return canonical

    for pattern in (_SOURCE_FIELDS, _LINK_FIELD):
        for match in pattern.finditer(html):
            candidate = _unescape_url(match.group(1))
            if _is_external(candidate):
                return candidate
    return None


def _title_case(value: str) -> str:
    return " ".join(
        w.upper() if len(w) <= 2 else w[:1].upper() + w[1:].lower() for w in value.split()
    )


def infer_from_pin_text(pin: PinMetadata) -> PinInference:
    """Weak prefill from explicit words in the pin title/description only."""
    title = clean_pin_title(pin.title) or ""
    description = (pin.description or "").strip()
    text = f"{title}\n{description}".lower()
    evidence: dict[DraftField, tuple[str, ...]] = {}

    category = None
    for pattern, candidate, label in _CATEGORY_KEYWORDS:
        if pattern.search(text):
            category = candidate
            evidence[DraftField.CATEGORY] = (f'pin_text:contains("{label}")',)
            break

    name = None
    if title:
        stripped = re.sub(r"^restaurant\s+", "", title, flags=re.IGNORECASE).strip()
        if stripped and stripped.lower() != "restaurant":
            name = stripped
            evidence[DraftField.NAME] = ("pin_title:cleaned",)

    city = country = None
    raw_text = f"{title}\n{description}"
    located = _IN_CITY_CODE.search(raw_text) or _IN_CITY_COUNTRY.search(raw_text)
    if located:
        city = located.group(1).strip()
        evidence[DraftField.CITY] = ("pin_text:pattern=in <city>, <country>",)
        country_text = _COUNTRY_CUTOFF.split(located.group(2).strip())[0].strip()
        country = known_country(country_text)
        if country:
            evidence[DraftField.COUNTRY] = ("pin_text:pattern=in <city>, <country>",)

    if city is None and title:
        trailing = _TRAILING_TOKEN.search(title)
        if trailing:
            city = trailing.group(1).strip()
            evidence[DraftField.CITY] = ("pin_title:trailing_comma_token",)

    if country is None:
        for token in _COUNTRY_ABBR.finditer(f"{title} {description}"):
            country = known_country(token.group(1))
            if country:
                evidence[DraftField.COUNTRY] = ("pin_text:country_abbr_token",)
                break

    return PinInference(
        name=name,
        category=category,
        city=_title_case(city) if city else None,
        country=country,
        evidence=evidence,
    )


def merge_with_destination(
    url: str, pin: PinMetadata, destination: ImportResult
) -> ImportResult:
    """Destination fields win; pin keeps its image, caption and link."""
    dest_draft = destination.draft
    comments = "\n\n".join(
        part
        for part in (
            f"Pinterest: {pin.title}" if pin.title else None,
            pin.description,
            dest_draft.comments,
        )
        if part
    )
    draft = dest_draft.model_copy(
        update={
            "link": url,
            "photo_url": pin.image or dest_draft.photo_url,
            "comments": comments or None,
        }
    )
    dest_meta = destination.meta
    signals = dest_meta.signals.model_copy(
        update={
            "pinterest": PinterestSignals(
                pin_title=pin.title,
                pin_description=pin.description,
                destination_url=pin.destination_url,
            )
        }
    )
    result = build_result(
        provider=ProviderType.PINTEREST,
        method=f"pinterest+{dest_meta.method}",
        draft=draft,
        levels={
            **downgrade_levels(dest_meta.confidence),
            DraftField.LINK: Confidence.HIGH,
        },
        warnings=[MERGED_WARNING, *dest_meta.warnings],
        signals=signals,
        evidence=dest_meta.evidence,
        force_confirmation=True,
    )
    meta = result.meta.model_copy(
        update={"ai": dest_meta.ai, "enriched": dest_meta.enriched}
    )
    return result.model_copy(update={"meta": meta})


class PinterestStrategy:
    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        pin = await self._pin_metadata(url, context)
        if pin is None:
            return self._error_result(url, "Pinterest pin could not be fetched")

        destination = pin.destination_url
        if destination is None:
            return self._pin_only(
                url, pin, "No destination link found on this pin."
            )

        if not context.can_follow:
            logger.info("Not following pin destination beyond depth %s", context.depth)
            return self._pin_only(
                url, pin, "Pin destination was not followed (nested pin link)."
            )

        try:
            destination_result = await context.follow(destination)
        except ExtractionFailedError as e:
            logger.warning("Pin destination extraction failed for %s: %s", destination, e)
            destination_result = None

        if destination_result is None:
            return self._pin_only(
                url, pin, f"Could not extract details from the pin destination ({destination})."
            )
        return merge_with_destination(url, pin, destination_result)

    async def _pin_metadata(
        self, url: str, context: ExtractionContext
    ) -> PinMetadata | None:
        html: str | None = None
        try:
            page = await context.fetcher.fetch(url)
        except PageFetchError as e:
            logger.warning("Pin page fetch failed, trying oEmbed: %s", e.message)
        else:
            if page.ok and page.is_html:
                html = page.text

        if html is None:
            return await self._oembed(url, context)

        soup = parse_html(html)
        description = (
            meta_content(soup, "og:description") or meta_content(soup, "description")
        )
        if not description:
            snippet = _KEYWORD_SNIPPET.search(soup.get_text(" "))
            description = snippet.group(0) if snippet else None
        return PinMetadata(
            title=clean_pin_title(meta_content(soup, "og:title"))
            or clean_pin_title(first_heading(soup))
            or clean_pin_title(page_title(soup)),
            description=clean_pin_text(description),
            image=meta_content(soup, "og:image"),
            destination_url=find_destination_url(html),
        )

    async def _oembed(self, url: str, context: ExtractionContext) -> PinMetadata | None:
        try:
            payload = await context.fetcher.fetch_json(
                OEMBED_ENDPOINT, params={"url": url, "omit_script": "true"}
            )
        except PageFetchError as e:
            logger.warning("Pinterest oEmbed failed: %s", e.message)
            return None
        if not isinstance(payload, dict):
            return None
        author = payload.get("author_name")
        return PinMetadata(
            title=clean_pin_title(payload.get("title")),
            description=f"Pinned by {author}" if author else None,
            image=payload.get("thumbnail_url"),
        )

    def _pin_only(self, url: str, pin: PinMetadata, reason: str) -> ImportResult:
        inferred = infer_from_pin_text(pin)
        draft = Draft(
            name=inferred.name or pin.title or "Pinterest Pin",
            city=inferred.city,
            country=inferred.country,
            category=inferred.category,
            link=url,
            comments="\n\n".join(p for p in (pin.title, pin.description) if p) or None,
            photo_url=pin.image,
        )
        levels = {
            DraftField.NAME: Confidence.MEDIUM if inferred.name else Confidence.LOW,
            DraftField.CATEGORY: Confidence.MEDIUM if inferred.category else Confidence.LOW,
            DraftField.CITY: Confidence.LOW,
            DraftField.COUNTRY: Confidence.LOW,
            DraftField.LINK: Confidence.HIGH,
        }
        return build_result(
            provider=ProviderType.PINTEREST,
            method=METHOD_PINTEREST_ONLY,
            draft=draft,
            levels=levels,
            warnings=[
                reason,
                "Details were inferred from the pin text only.",
                "Please confirm location details.",
            ],
            evidence=inferred.evidence,
            signals=ImportSignals(
                pinterest=PinterestSignals(
                    pin_title=pin.title,
                    pin_description=pin.description,
                    destination_url=pin.destination_url,
                )
            ),
            force_confirmation=True,
        )

    def _error_result(self, url: str, reason: str) -> ImportResult:
        return build_result(
            provider=ProviderType.PINTEREST,
            method=METHOD_PINTEREST_ERROR,
            draft=Draft(name="Pinterest Pin", link=url, comments=reason),
            levels={DraftField.NAME: Confidence.LOW, DraftField.LINK: Confidence.HIGH},
            warnings=[reason, "Please enter the place details manually."],
            force_confirmation=True,
        )
