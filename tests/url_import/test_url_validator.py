"""Tests for URL validation and short-link resolution."""

from __future__ import annotations

import httpx
import pytest

from services.url_import.exceptions import URLValidationError
from services.url_import.url_validator import is_short_link, resolve_url, validate_url


class TestValidateUrl:
    def test_accepts_https_and_strips_whitespace(self) -> None:
        assert validate_url("  https://example.com/menu  ") == "https://example.com/menu"

    @pytest.mark.parametrize("raw", ["", "not a url", "example.com/path", "https://"])
    def test_rejects_malformed(self, raw: str) -> None:
        with pytest.raises(URLValidationError) as exc_info:
            validate_url(raw)
        assert exc_info.value.message == "Invalid URL format"
        assert exc_info.value.error_code == "invalid_url"

    def test_rejects_other_schemes(self) -> None:
        with pytest.raises(URLValidationError) as exc_info:
            validate_url("ftp://example.com/file")
        assert "not allowed. Use HTTP or HTTPS." in exc_info.value.message

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:8000/admin",
            "http://169.254.169.254/latest/meta-data",
            "http://metadata.google.internal/computeMetadata",
        ],
    )
    def test_rejects_blocked_hosts(self, url: str) -> None:
        with pytest.raises(URLValidationError) as exc_info:
            validate_url(url)
        assert "blocked for security reasons" in exc_info.value.message

    @pytest.mark.parametrize("url", ["http://10.0.0.5/", "http://192.168.1.1/", "http://[::1]/"])
    def test_rejects_private_ip_literals(self, url: str) -> None:
        with pytest.raises(URLValidationError) as exc_info:
            validate_url(url)
        assert exc_info.value.message == "Private IP addresses are not allowed"

    def test_public_ip_literal_is_allowed(self) -> None:
        assert validate_url("http://8.8.8.8/") == "http://8.8.8.8/"


class TestIsShortLink:
    def test_known_shorteners(self) -> None:
        assert is_short_link("https://maps.app.goo.gl/abc123")
        assert is_short_link("https://pin.it/xyz")
        assert is_short_link("https://www.bit.ly/abc")

    def test_regular_host(self) -> None:
        assert not is_short_link("https://www.google.com/maps/place/Foo")


class TestResolveUrl:
    @pytest.mark.asyncio
    async def test_non_short_link_is_not_fetched(self, fake_web) -> None:
        async with fake_web.client() as client:
            resolved = await resolve_url("https://example.com/a", client, 5.0)
        assert resolved == "https://example.com/a"
        assert fake_web.requests == []

    @pytest.mark.asyncio
    async def test_follows_redirect_with_head(self, fake_web) -> None:
        target = "https://www.google.com/maps/place/Cafe+Luna/"
        fake_web.add("HEAD", "https://maps.app.goo.gl/abc", status=301, headers={"location": target})
        fake_web.add("HEAD", target, status=200)

        async with fake_web.client() as client:
            resolved = await resolve_url("https://maps.app.goo.gl/abc", client, 5.0)

        assert resolved == target

    @pytest.mark.asyncio
    async def test_falls_back_to_get_when_head_refused(self, fake_web) -> None:
        target = "https://www.pinterest.com/pin/123/"
        fake_web.add("HEAD", "https://pin.it/xyz", status=405)
        fake_web.add("GET", "https://pin.it/xyz", status=302, headers={"location": target})
        fake_web.add("GET", target, html="<html></html>")

        async with fake_web.client() as client:
            resolved = await resolve_url("https://pin.it/xyz", client, 5.0)

        assert resolved == target
        assert fake_web.requested("GET", "https://pin.it/xyz")

    @pytest.mark.asyncio
    async def test_transport_error_keeps_original(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            resolved = await resolve_url("https://bit.ly/abc", client, 5.0)

        assert resolved == "https://bit.ly/abc"

    @pytest.mark.asyncio
    async def test_unsafe_redirect_target_keeps_original(self, fake_web) -> None:
        fake_web.add(
            "HEAD",
            "https://bit.ly/evil",
            status=302,
            headers={"location": "http://169.254.169.254/latest/meta-data"},
        )
        fake_web.add("HEAD", "http://169.254.169.254/latest/meta-data", status=200)

        async with fake_web.client() as client:
            resolved = await resolve_url("https://bit.ly/evil", client, 5.0)

        assert resolved == "https://bit.ly/evil"
