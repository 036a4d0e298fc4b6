"""Tests for evidence search."""

import asyncio
import json

import httpx
import pytest

from app.models.wine import RecognizedLabel
from app.services.search import (
    MAX_RESULTS,
    RETAILER_DOMAINS,
    build_search_query,
    normalize_evidence,
    search_evidence,
)


class TestBuildSearchQuery:
    def test_identifying_fields_price_and_sites(self):
        label = RecognizedLabel(producer="Château Musar", wine="Rouge", country="Lebanon", vintage=2016)
        query = build_search_query(label)
        assert query.startswith("Château Musar Rouge Lebanon 2016 price (")
        for domain in RETAILER_DOMAINS:
            assert f"site:{domain}" in query
        assert query.count(" OR ") == len(RETAILER_DOMAINS) - 1

    def test_no_identifying_fields(self):
        assert build_search_query(RecognizedLabel()) is None
        assert build_search_query(RecognizedLabel(producer="  ")) is None


class TestNormalizeEvidence:
    def test_truncates_title_and_snippet(self):
        items = normalize_evidence(
            {"results": [{"title": "t" * 300, "url": "https://vivino.com/w/1", "content": "c" * 900}]}
        )
        assert len(items) == 1
        assert len(items[0].title) == 140
        assert len(items[0].snippet) == 500
        assert items[0].url == "https://vivino.com/w/1"

    def test_skips_results_without_url(self):
        items = normalize_evidence({"results": [{"title": "no url"}, "junk", {"url": "https://bbr.com/x"}]})
        assert [i.url for i in items] == ["https://bbr.com/x"]
        assert items[0].title == ""

    def test_caps_result_count(self):
        results = [{"url": f"https://bbr.com/{i}"} for i in range(10)]
        assert len(normalize_evidence({"results": results})) == MAX_RESULTS

    @pytest.mark.parametrize("payload", [None, [], {"results": None}, {"answer": "x"}])
    def test_malformed_payload(self, payload):
        with pytest.raises(ValueError):
            normalize_evidence(payload)


class TestSearchEvidence:
    def test_posts_advanced_bounded_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["headers"] = request.headers
            return httpx.Response(
                200,
                json={"results": [{"title": "Musar 2016", "url": "https://wine-searcher.com/m", "content": "£45"}]},
            )

        items = asyncio.run(search_evidence("musar price", "tvly-key", transport=httpx.MockTransport(handler)))

        assert seen["url"] == "https://api.tavily.com/search"
        assert seen["body"]["query"] == "musar price"
        assert seen["body"]["max_results"] == 6
        assert seen["body"]["search_depth"] == "advanced"
        assert seen["headers"]["authorization"] == "Bearer tvly-key"
        assert seen["headers"]["cache-control"] == "no-cache"
        assert [i.snippet for i in items] == ["£45"]

    def test_non_ok_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "down"}))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(search_evidence("q", "k", transport=transport))

    def test_custom_endpoint(self, monkeypatch):
        monkeypatch.setenv("TAVILY_URL", "https://search.internal/api")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"results": []})

        assert asyncio.run(search_evidence("q", "k", transport=httpx.MockTransport(handler))) == []
        assert seen["url"] == "https://search.internal/api"
