"""Input URL validation and short-link resolution."""

from __future__ import annotations

import ipaddress
import logging
from urllib.parse import urlsplit

import httpx

from .exceptions import URLValidationError


logger = logging.getLogger(__name__)

BLOCKED_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "0.0.0.0",
        "169.254.169.254",
        "metadata.google.internal",
    }
)

SHORT_LINK_HOSTS = frozenset(
    {
        "bit.ly",
        "t.co",
        "goo.gl",
        "tinyurl.com",
        "ow.ly",
        "maps.app.goo.gl",
        "pin.it",
    }
)


def validate_url(raw_url: str) -> str:
    """Return the trimmed URL if it is an absolute, fetchable HTTP(S) URL.

    Raises:
        URLValidationError: If the URL is malformed, not HTTP(S), or points at
            a blocked or private host.
    """
    url = (raw_url or "").strip()
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise URLValidationError("Invalid URL format") from e

    if not parsed.scheme or not parsed.netloc:
        raise URLValidationError("Invalid URL format")

    if parsed.scheme.lower() not in ("http", "https"):
        raise URLValidationError(
            f"Protocol {parsed.scheme}: not allowed. Use HTTP or HTTPS."
        )

    if not hostname:
        raise URLValidationError("Invalid URL format")

    host = hostname.lower().rstrip(".")
    if host in BLOCKED_HOSTS:
        raise URLValidationError(f"Host {host} is blocked for security reasons")

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return url

    if (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    ):
        raise URLValidationError("Private IP addresses are not allowed")
    return url


def is_short_link(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host in SHORT_LINK_HOSTS


async def resolve_url(url: str, client: httpx.AsyncClient, timeout: float) -> str:
    """Follow a short link to its final URL; fall back to ``url`` on any failure.

    Only known shortener hosts are resolved. A HEAD request is tried first and
    a GET is used when the server refuses HEAD. The resolved URL must pass
    ``validate_url`` again, otherwise the original is kept.
    """
    if not is_short_link(url):
        return url

    try:
        response = await client.head(url, follow_redirects=True, timeout=timeout)
        if response.status_code == 405 or response.status_code >= 400:
            response = await client.get(url, follow_redirects=True, timeout=timeout)
    except httpx.HTTPError as e:
        logger.warning("Short link resolution failed for %s: %s", url, e)
        return url

    resolved = str(response.url)
    try:
        return validate_url(resolved)
    except URLValidationError as e:
        logger.warning("Resolved URL rejected (%s); keeping original %s", e, url)
        return url
