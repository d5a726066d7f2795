"""Pure URL → provider classification (no I/O)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote, urlsplit

from .models import Confidence, ProviderType


_PLACE_ID_MARKER = re.compile(r"!1s((?:ChI|GhI)[^!&/?#]+)")
_Q_PLACE_ID = re.compile(r"[?&]q=place_id:([^&#]+)", re.IGNORECASE)
_YELP_BIZ = re.compile(r"^/biz/([^/?#]+)", re.IGNORECASE)
_TRIPADVISOR_ID = re.compile(r"-d(\d+)-", re.IGNORECASE)
_TRIPADVISOR_ALT_ID = re.compile(r"^/.+_d(\d+)\.html$", re.IGNORECASE)
_OPENTABLE_PROFILE = re.compile(r"/restaurant/profile/(\d+)", re.IGNORECASE)
_OPENTABLE_SLUG = re.compile(r"^/r/([^/?#]+)", re.IGNORECASE)
_PIN_ID = re.compile(r"/pin/(\d+)")
_INSTAGRAM_HANDLE = re.compile(r"^/([A-Za-z0-9_.]+)/?")
_TIKTOK_HANDLE = re.compile(r"^/@([A-Za-z0-9_.]+)")


@dataclass(frozen=True)
class ProviderMatch:
    """Provider tag plus any native identifier recoverable from the URL."""

    provider: ProviderType
    confidence: Confidence
    place_id: str | None = None
    identifier: str | None = None
    handle: str | None = None


def _normalized_host(url: str) -> str:
    host = (urlsplit(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _is_google_host(host: str) -> bool:
    labels = host.split(".")
    return "google" in labels[:-1] and not host.startswith("mail.")


def is_valid_place_id(candidate: str | None) -> bool:
    return bool(candidate) and candidate.startswith(("ChI", "GhI"))


def extract_google_place_id(url: str) -> str | None:
    """Find a Places id in query params, ``q=place_id:``, the data blob or path."""
    parts = urlsplit(url)
    query = parse_qs(parts.query)

    for key in ("place_id", "query_place_id"):
        values = query.get(key)
        if values and is_valid_place_id(values[0]):
            return values[0]

    match = _Q_PLACE_ID.search(url)
    if match and is_valid_place_id(unquote(match.group(1))):
        return unquote(match.group(1))

    for blob in (*query.get("data", []), parts.path, parts.fragment, unquote(url)):
        found = _PLACE_ID_MARKER.search(unquote(blob))
        if found and is_valid_place_id(found.group(1)):
            return found.group(1)
    return None


def _is_google_maps(host: str, path: str) -> bool:
    if host == "maps.app.goo.gl":
        return True
    if host == "goo.gl" and path.startswith("/maps"):
        return True
    if not _is_google_host(host):
        return False
    return host.startswith("maps.") or path.startswith("/maps")


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1) if match else None


def classify_url(url: str) -> ProviderMatch:
    """Assign a provider tag and extract native identifiers.

    Deterministic for a given URL; falls back to ``ProviderType.WEBSITE``.
    """
    parts = urlsplit(url)
    host = _normalized_host(url)
    path = parts.path or "/"
    query = parse_qs(parts.query)

    if _is_google_maps(host, path):
        place_id = extract_google_place_id(url)
        cid = (query.get("cid") or [None])[0]
        return ProviderMatch(
            provider=ProviderType.GOOGLE_MAPS,
            confidence=Confidence.HIGH if place_id else Confidence.MEDIUM,
            place_id=place_id,
            identifier=cid,
        )

    if host.startswith("yelp.") or ".yelp." in host:
        biz = _first(_YELP_BIZ, path)
        return ProviderMatch(
            provider=ProviderType.YELP,
            confidence=Confidence.HIGH if biz else Confidence.MEDIUM,
            identifier=unquote(biz) if biz else None,
        )

    if host == "tripadvisor.com" or host.endswith(".tripadvisor.com") or host.startswith(
        "tripadvisor."
    ):
        location_id = _first(_TRIPADVISOR_ID, path) or _first(_TRIPADVISOR_ALT_ID, path)
        return ProviderMatch(
            provider=ProviderType.TRIPADVISOR,
            confidence=Confidence.HIGH if location_id else Confidence.MEDIUM,
            identifier=location_id,
        )

    if host == "opentable.com" or host.endswith(".opentable.com") or host.startswith(
        "opentable."
    ):
        restaurant = (
            _first(_OPENTABLE_PROFILE, path)
            or _first(_OPENTABLE_SLUG, path)
            or (query.get("rid") or [None])[0]
        )
        return ProviderMatch(
            provider=ProviderType.OPENTABLE,
            confidence=Confidence.HIGH if restaurant else Confidence.MEDIUM,
            identifier=restaurant,
        )

    if host == "pin.it" or host.startswith("pinterest.") or ".pinterest." in host:
        return ProviderMatch(
            provider=ProviderType.PINTEREST,
            confidence=Confidence.MEDIUM,
            identifier=_first(_PIN_ID, path),
        )

    if host == "instagram.com" or host.endswith(".instagram.com"):
        handle = _first(_INSTAGRAM_HANDLE, path)
        if handle in ("p", "reel", "reels", "stories", "explore"):
            handle = None
        return ProviderMatch(
            provider=ProviderType.INSTAGRAM, confidence=Confidence.LOW, handle=handle
        )

    if host == "tiktok.com" or host.endswith(".tiktok.com"):
        return ProviderMatch(
            provider=ProviderType.TIKTOK,
            confidence=Confidence.LOW,
            handle=_first(_TIKTOK_HANDLE, path),
        )

    return ProviderMatch(provider=ProviderType.WEBSITE, confidence=Confidence.LOW)
