"""Tests for the HTML parsing helpers."""

from __future__ import annotations

import time

import pytest

from services.url_import.page_parser import (
    ADDRESS_SCAN_CHARS,
    best_place_node,
    canonical_link,
    classify_postcode,
    clean_title,
    find_address,
    json_ld_nodes,
    open_graph,
    parse_html,
    structured_place,
    title_from_url,
    visible_text,
)


LD_PAGE = """
<html><head>
<title>Dishoom Covent Garden | Dishoom</title>
<meta property="og:title" content="Dishoom Covent Garden">
<meta property="og:image" content="https://cdn.dishoom.test/cg.jpg">
<link rel="canonical" href="https://www.dishoom.com/covent-garden/">
<script type="application/ld+json">{not json</script>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "WebSite", "name": "Dishoom"},
  {"@type": ["Restaurant", "LocalBusiness"],
   "name": "Dishoom Covent Garden",
   "address": {"@type": "PostalAddress",
               "streetAddress": "12 Upper St Martin's Lane",
               "addressLocality": "London",
               "postalCode": "WC2H 9FB"},
   "geo": {"latitude": "51.5124", "longitude": -0.1269}}
]}
</script>
</head><body><h1>Bombay cafe</h1><script>var x = 1;</script><p>Open daily</p></body></html>
"""


class TestJsonLd:
    def test_graph_is_flattened_and_malformed_blocks_skipped(self) -> None:
        nodes = json_ld_nodes(parse_html(LD_PAGE))
        names = [node.get("name") for node in nodes]
        assert "Dishoom" in names
        assert "Dishoom Covent Garden" in names

    def test_best_node_prefers_place_types(self) -> None:
        best = best_place_node(json_ld_nodes(parse_html(LD_PAGE)))
        assert best is not None
        assert best["name"] == "Dishoom Covent Garden"

    def test_best_node_none_when_nothing_scores(self) -> None:
        assert best_place_node([{"@type": "BreadcrumbList"}]) is None

    def test_structured_place(self) -> None:
        best = best_place_node(json_ld_nodes(parse_html(LD_PAGE)))
        place = structured_place(best)
        assert place.city == "London"
        assert place.country is None
        assert place.postal_code == "WC2H 9FB"
        assert place.coordinates is not None
        assert place.coordinates.lat == pytest.approx(51.5124)
        assert "Restaurant" in place.types
        assert place.address == "12 Upper St Martin's Lane, London, WC2H 9FB"

    def test_string_address_and_bad_geo(self) -> None:
        place = structured_place(
            {"name": "Kiosk", "address": "1 Main St", "geo": {"latitude": "north"}}
        )
        assert place.address == "1 Main St"
        assert place.coordinates is None


class TestMetaHelpers:
    def test_open_graph_collects_present_keys(self) -> None:
        preview = open_graph(parse_html(LD_PAGE))
        assert preview["og:title"] == "Dishoom Covent Garden"
        assert "og:description" not in preview

    def test_canonical_link(self) -> None:
        assert canonical_link(parse_html(LD_PAGE)) == "https://www.dishoom.com/covent-garden/"

    def test_visible_text_drops_scripts(self) -> None:
        text = visible_text(LD_PAGE)
        assert "Open daily" in text
        assert "var x" not in text


class TestTitles:
    def test_site_suffix_removed(self) -> None:
        assert (
            clean_title("Dishoom Covent Garden | Dishoom", "https://www.dishoom.com/")
            == "Dishoom Covent Garden"
        )

    def test_tagline_after_separator_removed(self) -> None:
        assert clean_title("Le Cafe - Best Brunch in Paris", "https://lecafe.fr/") == "Le Cafe"

    @pytest.mark.parametrize("title", ["Home", "  welcome ", None, ""])
    def test_generic_titles_rejected(self, title) -> None:
        assert clean_title(title, "https://example.com/") is None

    def test_title_from_url_skips_ignored_segments(self) -> None:
        assert title_from_url("https://example.com/en/cafe-de-flore.html") == "Cafe De Flore"
        assert title_from_url("https://example.com/venues/rooftop_bar/overview") == "Rooftop Bar"

    def test_title_from_url_empty_path(self) -> None:
        assert title_from_url("https://example.com/") is None


class TestPostcodes:
    @pytest.mark.parametrize(
        ("value", "region", "expected"),
        [
            ("sw1a 1aa", None, "uk"),
            ("M5V 3L9", None, "ca"),
            ("1012 AB", None, "nl"),
            ("94110-1234", None, "us"),
            ("94110", "CA", "us"),
            ("75001", None, "five_digit"),
        ],
    )
    def test_formats(self, value: str, region, expected: str) -> None:
        hit = classify_postcode(value, region)
        assert hit is not None
        assert hit.format == expected

    def test_uk_value_is_normalized(self) -> None:
        assert classify_postcode("sw1a   1aa").value == "SW1A 1AA"

    def test_unknown_format(self) -> None:
        assert classify_postcode("ABC") is None


class TestFindAddress:
    def test_uk_address(self) -> None:
        hit = find_address("Visit us at 7 Boundary Street, London, E2 7JE today")
        assert hit is not None
        assert hit.country == "United Kingdom"
        assert hit.city == "London"
        assert hit.postcode.format == "uk"

    def test_us_address(self) -> None:
        hit = find_address("We are at 500 Guerrero Street, San Francisco, CA 94110.")
        assert hit is not None
        assert hit.country == "United States"
        assert hit.city == "San Francisco"
        assert hit.postcode.format == "us"

    def test_french_address(self) -> None:
        hit = find_address("12 Rue de Rivoli, 75004 Paris", tld="fr")
        assert hit is not None
        assert hit.country == "France"
        assert hit.city == "Paris"

    def test_french_pattern_skipped_on_other_five_digit_domains(self) -> None:
        assert find_address("Hauptstrasse 5, 10115 Berlin", tld="de") is None

    def test_long_comma_free_text_is_scanned_quickly(self) -> None:
        text = "1 aaaaa" + " 2 bb" * 40_000
        started = time.perf_counter()
        assert find_address(text, tld="com") is None
        assert time.perf_counter() - started < 1.0

    def test_address_after_long_preamble_is_found(self) -> None:
        text = "menu " * 5_000 + "500 Guerrero Street, San Francisco, CA 94110"
        hit = find_address(text)
        assert hit is not None
        assert hit.city == "San Francisco"

    def test_text_beyond_scan_window_is_ignored(self) -> None:
        text = "x" * ADDRESS_SCAN_CHARS + " 7 Boundary Street, London, E2 7JE"
        assert find_address(text) is None
