from __future__ import annotations

from typing import Dict

import httpx
import pytest

from seoaudit_ai.crawler import SitemapError, SitemapParser
from seoaudit_ai.crawler.sitemap import parse_sitemap_xml

NS = 'xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"'


def _urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc> {loc} </loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset {NS}>{entries}</urlset>'


def _index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex {NS}>{entries}</sitemapindex>'


def _client(docs: Dict[str, str]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = docs.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body, headers={"content-type": "application/xml"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_parse_urlset_and_index() -> None:
    assert parse_sitemap_xml(_urlset("https://mock.site/a"), "s") == ("urlset", ["https://mock.site/a"])
    assert parse_sitemap_xml(_index("https://mock.site/s1.xml"), "s") == ("sitemapindex", ["https://mock.site/s1.xml"])


def test_parse_rejects_invalid_documents() -> None:
    with pytest.raises(SitemapError):
        parse_sitemap_xml("<urlset>", "s")
    with pytest.raises(SitemapError):
        parse_sitemap_xml("<html><body/></html>", "s")


def test_is_sitemap_heuristic() -> None:
    assert SitemapParser.is_sitemap("https://mock.site/sitemap_index.xml") is True
    assert SitemapParser.is_sitemap("https://mock.site/pages.XML") is True
    assert SitemapParser.is_sitemap("https://mock.site/blog/coffee") is False


@pytest.mark.asyncio
async def test_expand_follows_nested_indexes_and_dedupes() -> None:
    docs = {
        "https://mock.site/sitemap.xml": _index("https://mock.site/posts.xml", "https://mock.site/pages.xml"),
        "https://mock.site/posts.xml": _urlset("https://mock.site/p1", "https://mock.site/p2"),
        "https://mock.site/pages.xml": _urlset("https://mock.site/p2", "https://mock.site/about"),
    }
    async with _client(docs) as client:
        urls = await SitemapParser(client=client).expand("https://mock.site/sitemap.xml")

    assert urls == ["https://mock.site/p1", "https://mock.site/p2", "https://mock.site/about"]


@pytest.mark.asyncio
async def test_expand_caps_url_count() -> None:
    docs = {"https://mock.site/sitemap.xml": _urlset(*(f"https://mock.site/p{i}" for i in range(10)))}
    async with _client(docs) as client:
        urls = await SitemapParser(client=client, max_urls=3).expand("https://mock.site/sitemap.xml")

    assert urls == ["https://mock.site/p0", "https://mock.site/p1", "https://mock.site/p2"]


@pytest.mark.asyncio
async def test_expand_skips_broken_nested_sitemap() -> None:
    docs = {
        "https://mock.site/sitemap.xml": _index("https://mock.site/missing.xml", "https://mock.site/ok.xml"),
        "https://mock.site/ok.xml": _urlset("https://mock.site/ok"),
    }
    async with _client(docs) as client:
        urls = await SitemapParser(client=client).expand("https://mock.site/sitemap.xml")

    assert urls == ["https://mock.site/ok"]


@pytest.mark.asyncio
async def test_expand_respects_depth_limit() -> None:
    docs = {
        "https://mock.site/sitemap.xml": _index("https://mock.site/level1.xml"),
        "https://mock.site/level1.xml": _index("https://mock.site/level2.xml"),
        "https://mock.site/level2.xml": _urlset("https://mock.site/deep"),
    }
    async with _client(docs) as client:
        urls = await SitemapParser(client=client, max_depth=1).expand("https://mock.site/sitemap.xml")

    assert urls == []


@pytest.mark.asyncio
async def test_expand_top_level_failure_raises() -> None:
    async with _client({}) as client:
        with pytest.raises(SitemapError) as exc:
            await SitemapParser(client=client).expand("https://mock.site/sitemap.xml")
    assert str(exc.value).startswith("Failed to parse sitemap")
