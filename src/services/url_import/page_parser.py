"""BeautifulSoup helpers for pulling place data out of arbitrary HTML."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup

from .models import Coordinates, PostcodeHit


logger = logging.getLogger(__name__)

PLACE_TYPES = frozenset(
    {
        "localbusiness",
        "foodestablishment",
        "restaurant",
        "cafeorcoffeeshop",
        "barorpub",
        "hotel",
        "lodgingbusiness",
        "touristattraction",
        "museum",
        "park",
        "sportsactivitylocation",
        "skiresort",
        "place",
    }
)

GENERIC_TITLES = frozenset({"home", "homepage", "index", "welcome", "accueil"})

IGNORED_PATH_SEGMENTS = frozenset(
    {"overview", "book", "booking", "tickets", "ticket", "en", "en-us", "fr", "de", "it", "pt", "es"}
)
SMALL_WORDS = frozenset({"and", "or", "the", "a", "an", "of", "to", "in", "on", "for"})

US_STATES = frozenset(
    "AL AK AZ AR CA CO CT DE DC FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS "
    "MO MT NE NV NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY".split()
)

_TITLE_SEPARATORS = re.compile(r"\s*[|•—–]\s*|\s+-\s+|\s*:\s+")
_UK_ADDRESS = re.compile(
    r"(\d{1,5}\s+[A-Za-z0-9 .'\-]{1,80},\s*[A-Za-z .'\-]{1,60},\s*[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2})",
    re.IGNORECASE,
)
_US_ADDRESS = re.compile(r"(\d{1,6}\s+[^,\n]{3,80},\s*[^,\n]{2,60},\s*([A-Z]{2})\s*(\d{5}(?:-\d{4})?))")
_FR_ADDRESS = re.compile(r"\b(\d{5})\s+([A-ZÀ-Ö][A-Za-zÀ-ÖØ-öø-ÿ'\-]+)")

# Address heuristics only look at the start of the visible text.
ADDRESS_SCAN_CHARS = 50_000

# Five-digit postcodes that are not French.
_OTHER_FIVE_DIGIT_TLDS = frozenset(
    {"de", "it", "es", "fi", "ee", "gr", "hr", "mx", "my", "th", "tr", "ua", "us", "ma", "kr"}
)

_UK_POSTCODE = re.compile(r"^[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}$")
_CA_POSTCODE = re.compile(r"^[A-Z]\d[A-Z]\s?\d[A-Z]\d$")
_NL_POSTCODE = re.compile(r"^\d{4}\s?[A-Z]{2}$")
_US_ZIP4 = re.compile(r"^\d{5}-\d{4}$")
_FIVE_DIGITS = re.compile(r"^\d{5}$")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def meta_content(soup: BeautifulSoup, key: str) -> str | None:
    """Content of ``<meta property=key>`` or ``<meta name=key>``."""
    tag = soup.find("meta", attrs={"property": key}) or soup.find(
        "meta", attrs={"name": key}
    )
    if tag is None:
        return None
    content = tag.get("content")
    return _clean_text(content) if isinstance(content, str) else None


def open_graph(soup: BeautifulSoup) -> dict[str, str]:
    """OpenGraph and plain meta preview fields that are present."""
    found: dict[str, str] = {}
    for key in (
        "og:title",
        "og:description",
        "og:image",
        "og:site_name",
        "og:see_also",
        "title",
        "description",
    ):
        value = meta_content(soup, key)
        if value:
            found[key] = value
    return found


def page_title(soup: BeautifulSoup) -> str | None:
    if soup.title is None:
        return None
    return _clean_text(soup.title.get_text())


def first_heading(soup: BeautifulSoup) -> str | None:
    h1 = soup.find("h1")
    if h1 is None:
        return None
    return _clean_text(h1.get_text(" "))


def canonical_link(soup: BeautifulSoup) -> str | None:
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = [rel]
        if "canonical" in [r.lower() for r in rel]:
            return link["href"].strip() or None
    return None


def visible_text(html: str) -> str:
    """Page text without scripts, styles and markup."""
    soup = parse_html(html)
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())


def _flatten_ld(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, list):
        nodes: list[dict[str, Any]] = []
        for item in value:
            nodes.extend(_flatten_ld(item))
        return nodes
    if isinstance(value, dict):
        nodes = [value]
        graph = value.get("@graph")
        if graph is not None:
            nodes.extend(_flatten_ld(graph))
        return nodes
    return []


def json_ld_nodes(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """All JSON-LD objects on the page, with ``@graph`` and lists flattened."""
    nodes: list[dict[str, Any]] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON-LD block")
            continue
        nodes.extend(_flatten_ld(data))
    return nodes


def node_types(node: dict[str, Any]) -> list[str]:
    raw = node.get("@type")
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list):
        return [t for t in raw if isinstance(t, str)]
    return []


def score_place_node(node: dict[str, Any]) -> int:
    score = 0
    if any(t.lower() in PLACE_TYPES for t in node_types(node)):
        score += 5
    if node.get("name"):
        score += 2
    if node.get("address"):
        score += 2
    if node.get("geo"):
        score += 1
    return score


def best_place_node(nodes: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Highest scoring node; ``None`` when nothing scores above zero."""
    best: dict[str, Any] | None = None
    best_score = 0
    for node in nodes:
        score = score_place_node(node)
        if score > best_score:
            best, best_score = node, score
    return best


@dataclass(frozen=True)
class StructuredPlace:
    name: str | None
    address: str | None
    city: str | None
    region: str | None
    country: str | None
    postal_code: str | None
    coordinates: Coordinates | None
    types: tuple[str, ...]
    description: str | None = None


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return _clean_text(value)
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, dict):
        return _as_text(value.get("name"))
    return None


def _coordinates(geo: Any) -> Coordinates | None:
    if isinstance(geo, list) and geo:
        geo = geo[0]
    if not isinstance(geo, dict):
        return None
    try:
        lat = float(geo["latitude"])
        lng = float(geo["longitude"])
        return Coordinates(lat=lat, lng=lng)
    except (KeyError, TypeError, ValueError):
        return None


def structured_place(node: dict[str, Any]) -> StructuredPlace:
    address = node.get("address")
    if isinstance(address, list) and address:
        address = address[0]

    street = city = region = country = postal_code = None
    full_address: str | None = None
    if isinstance(address, dict):
        street = _as_text(address.get("streetAddress"))
        city = _as_text(address.get("addressLocality"))
        region = _as_text(address.get("addressRegion"))
        country = _as_text(address.get("addressCountry"))
        postal_code = _as_text(address.get("postalCode"))
        parts = [p for p in (street, city, region, postal_code, country) if p]
        full_address = ", ".join(parts) or None
    elif isinstance(address, str):
        full_address = _clean_text(address)

    return StructuredPlace(
        name=_as_text(node.get("name")) or _as_text(node.get("headline")),
        address=full_address,
        city=city or region,
        region=region,
        country=country,
        postal_code=postal_code,
        coordinates=_coordinates(node.get("geo")) or _coordinates(node),
        types=tuple(node_types(node)),
        description=_as_text(node.get("description")),
    )


def clean_title(title: str | None, url: str) -> str | None:
    """Strip site-name suffixes and reject generic titles like "Home"."""
    cleaned = _clean_text(title)
    if not cleaned or cleaned.lower() in GENERIC_TITLES:
        return None

    host = (urlsplit(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    for suffix in filter(None, (host, host.split(".")[0])):
        cleaned = re.sub(
            rf"\s*[—–\-|•:]\s*{re.escape(suffix)}\s*$", "", cleaned, flags=re.IGNORECASE
        ).strip()

    parts = [p.strip() for p in _TITLE_SEPARATORS.split(cleaned) if p.strip()]
    if len(parts) >= 2 and parts[0].lower() != parts[1].lower():
        cleaned = parts[0]

    if cleaned.lower() in GENERIC_TITLES:
        return None
    return cleaned or None


def title_from_url(url: str) -> str | None:
    """Derive a readable title from the last meaningful path segment."""
    segments = [unquote(s) for s in urlsplit(url).path.split("/") if s]
    pick = next(
        (s for s in reversed(segments) if s.lower() not in IGNORED_PATH_SEGMENTS), None
    )
    if not pick:
        return None
    pick = re.sub(r"\.(html?|php|aspx?)$", "", pick, flags=re.IGNORECASE)
    words = re.sub(r"[-_]+", " ", pick).split()
    if not words:
        return None
    return " ".join(
        w.lower() if w.lower() in SMALL_WORDS else w[:1].upper() + w[1:] for w in words
    )


def classify_postcode(value: str, region: str | None = None) -> PostcodeHit | None:
    """Tag a postal code with the national format it matches, if any."""
    normalized = " ".join(value.upper().split())
    if _CA_POSTCODE.match(normalized):
        return PostcodeHit(value=normalized, format="ca")
    if _UK_POSTCODE.match(normalized):
        return PostcodeHit(value=normalized, format="uk")
    if _NL_POSTCODE.match(normalized):
        return PostcodeHit(value=normalized, format="nl")
    if _US_ZIP4.match(normalized):
        return PostcodeHit(value=normalized, format="us")
    if _FIVE_DIGITS.match(normalized):
        if region and region.strip().upper() in US_STATES:
            return PostcodeHit(value=normalized, format="us")
        return PostcodeHit(value=normalized, format="five_digit")
    return None


@dataclass(frozen=True)
class AddressHit:
    address: str
    city: str | None
    country: str
    postcode: PostcodeHit | None


def find_address(text: str, tld: str | None = None) -> AddressHit | None:
    """Recover an address line for a few well-known postal formats.

    ``tld`` is the page's top-level domain; the French pattern is skipped on
    domains of other countries that also use five-digit postcodes.
    """
    text = text[:ADDRESS_SCAN_CHARS]
    uk = _UK_ADDRESS.search(text)
    if uk:
        address = uk.group(1).strip()
        parts = [p.strip() for p in address.split(",")]
        return AddressHit(
            address=address,
            city=parts[-2] if len(parts) >= 2 else None,
            country="United Kingdom",
            postcode=classify_postcode(parts[-1]),
        )

    us = _US_ADDRESS.search(text)
    if us and us.group(2) in US_STATES:
        address = us.group(1).strip()
        parts = [p.strip() for p in address.split(",")]
        return AddressHit(
            address=address,
            city=parts[1] if len(parts) >= 2 else None,
            country="United States",
            postcode=classify_postcode(us.group(3), region=us.group(2)),
        )

    if tld in _OTHER_FIVE_DIGIT_TLDS:
        return None
    fr = _FR_ADDRESS.search(text)
    if fr:
        return AddressHit(
            address=fr.group(0).strip(),
            city=fr.group(2).strip(),
            country="France",
            postcode=PostcodeHit(value=fr.group(1), format="five_digit"),
        )
    return None
