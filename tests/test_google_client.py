"""Tests for the Google Custom Search client."""

import httpx
import pytest

from lead_research.search.google_client import build_query, search_google, search_topic


class TestBuildQuery:
    def test_company_and_topic(self):
        assert build_query("news announcements", "Acme Co") == "Acme Co news announcements"

    def test_site_restriction(self):
        assert build_query("news", "Acme Co", "https://www.acme.test/about") == "Acme Co news site:acme.test"

    def test_invalid_website_is_ignored(self):
        assert build_query("news", "Acme Co", "http://localhost") == "Acme Co news"


class TestSearchGoogle:
    @pytest.mark.asyncio
    async def test_results_are_decoded(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"items": [
                {"title": "Acme &amp; Sons raises $5M", "link": "https://news.test/a", "snippet": "It&#39;s official"},
            ]})

        result = await search_topic(
            "funding", "Acme Co", "key", "cx", website="acme.test",
            transport=httpx.MockTransport(handler),
        )
        assert result == {"results": [
            {"title": "Acme & Sons raises $5M", "link": "https://news.test/a", "snippet": "It's official"},
        ]}
        assert seen["cx"] == "cx"
        assert seen["q"].startswith("Acme Co funding")
        assert seen["q"].endswith("site:acme.test")

    @pytest.mark.asyncio
    async def test_no_items(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        assert await search_google("q", "Acme", "key", "cx", transport=transport) == {"results": []}

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, json={}))
        result = await search_google("q", "Acme", "key", "cx", transport=transport)
        assert result == {"results": [], "error": "http_403"}

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await search_google("q", "Acme", "key", "cx", transport=httpx.MockTransport(handler))
        assert result == {"results": [], "error": "timeout"}

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        result = await search_google("q", "Acme", "", "")
        assert result["results"] == []
        assert "not configured" in result["error"]
