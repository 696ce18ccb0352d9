"""Tests for website metadata extraction and the homepage fetch."""

import httpx
import pytest

from lead_research.models import FetchFailureKind
from lead_research.scrape.extractor import (
    decode_html_entities,
    extract_company_name,
    extract_meta_tags,
    fetch_metadata,
    parse_metadata,
)
from lead_research.scrape.http_scraper import classify_status


HOMEPAGE = """
<html><head>
<title>Acme &amp; Sons | Handmade Goods</title>
<meta name="description" content="We make things &quot;by hand&quot;">
<meta content="Acme &amp; Sons" property="og:site_name">
<meta name="msapplication-TileColor" content="#ffffff">
</head><body>Hello</body></html>
"""


def _transport(handler):
    return httpx.MockTransport(handler)


class TestParsing:
    def test_meta_tags_in_either_attribute_order(self):
        tags = extract_meta_tags(HOMEPAGE)
        assert tags["description"] == "We make things &quot;by hand&quot;"
        assert tags["og:site_name"] == "Acme &amp; Sons"

    def test_later_duplicate_wins(self):
        html = '<meta name="description" content="first"><meta name="description" content="second">'
        assert extract_meta_tags(html)["description"] == "second"

    def test_parse_metadata_decodes_entities(self):
        metadata = parse_metadata("https://acme.test", HOMEPAGE)
        assert metadata.company_name == "Acme & Sons"
        assert metadata.title == "Acme & Sons | Handmade Goods"
        assert metadata.description == 'We make things "by hand"'
        assert metadata.ok

    def test_title_truncated_at_separator(self):
        html = "<title>Globex - Industrial Solutions</title>"
        assert extract_company_name({}, html) == "Globex"

    def test_tile_color_is_not_a_name(self):
        html = "<title>Initech</title>"
        assert extract_company_name({"msapplication-TileColor": "#2b5797"}, html) == "Initech"
        assert extract_company_name({"msapplication-TileColor": "white"}, html) == "Initech"

    def test_tile_value_used_when_not_a_color(self):
        assert extract_company_name({"msapplication-TileColor": "Initech"}, "") == "Initech"

    def test_application_name_before_title(self):
        assert extract_company_name({"application-name": "Hooli"}, "<title>Home</title>") == "Hooli"

    def test_no_name_sources(self):
        assert extract_company_name({}, "<html></html>") is None

    def test_decode_numeric_entities(self):
        assert decode_html_entities("R&#233;sum&#xE9; &#39;x&#39; &lt;b&gt;") == "Résumé 'x' <b>"

    def test_decode_is_single_pass(self):
        assert decode_html_entities("&amp;lt;") == "&lt;"

    def test_malformed_html_does_not_raise(self):
        metadata = parse_metadata("https://acme.test", "<meta name=<title>>><<")
        assert metadata.company_name is None


class TestClassifyStatus:
    @pytest.mark.parametrize("status, kind", [
        (403, FetchFailureKind.BLOCKED),
        (404, FetchFailureKind.NOT_FOUND),
        (500, FetchFailureKind.SERVER_ERROR),
        (503, FetchFailureKind.SERVER_ERROR),
        (410, FetchFailureKind.FETCH_FAILED),
    ])
    def test_status_mapping(self, status, kind):
        failure = classify_status(status, "Reason")
        assert failure.kind == kind
        assert failure.status_code == status

    def test_other_status_message_includes_code(self):
        assert "410" in classify_status(410, "Gone").message


class TestFetchMetadata:
    @pytest.mark.asyncio
    async def test_success(self):
        def handler(request):
            assert request.headers["user-agent"].startswith("Mozilla/5.0")
            return httpx.Response(200, text=HOMEPAGE)

        metadata = await fetch_metadata("acme.test", transport=_transport(handler))
        assert metadata.url == "https://acme.test"
        assert metadata.company_name == "Acme & Sons"

    @pytest.mark.asyncio
    async def test_timeout_is_reported_not_raised(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        metadata = await fetch_metadata("https://acme.test", transport=_transport(handler))
        assert not metadata.ok
        assert metadata.failure.kind == FetchFailureKind.TIMEOUT
        assert "too long" in metadata.failure.message

    @pytest.mark.asyncio
    async def test_connection_error_is_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        metadata = await fetch_metadata("https://acme.test", transport=_transport(handler))
        assert metadata.failure.kind == FetchFailureKind.UNREACHABLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, kind", [
        (403, FetchFailureKind.BLOCKED),
        (404, FetchFailureKind.NOT_FOUND),
        (500, FetchFailureKind.SERVER_ERROR),
    ])
    async def test_error_status(self, status, kind):
        metadata = await fetch_metadata(
            "https://acme.test",
            transport=_transport(lambda request: httpx.Response(status)),
        )
        assert metadata.failure.kind == kind

    @pytest.mark.asyncio
    async def test_invalid_url_skips_network(self):
        def handler(request):
            raise AssertionError("no request expected")

        metadata = await fetch_metadata("javascript:alert(1)", transport=_transport(handler))
        assert metadata.failure.kind == FetchFailureKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/":
                return httpx.Response(301, headers={"Location": "https://acme.test/home"})
            return httpx.Response(200, text="<title>Acme Home</title>")

        metadata = await fetch_metadata("https://acme.test/", transport=_transport(handler))
        assert metadata.title == "Acme Home"
