from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Set

import httpx

from .errors import SitemapError

logger = logging.getLogger(__name__)


def _localname(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[-1]
    return tag


def _child_text(node: ET.Element, name: str) -> Optional[str]:
    for child in node:
        if _localname(child.tag) == name and child.text:
            return child.text.strip()
    return None


def parse_sitemap_xml(xml_text: str, source: str) -> tuple[str, List[str]]:
    """Parse a sitemap document.

    Returns:
        ``("urlset", page_urls)`` or ``("sitemapindex", child_sitemap_urls)``.

    Raises:
        SitemapError: If the document is not valid XML or not a sitemap.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise SitemapError(f"Invalid XML in {source}: {exc}") from exc

    kind = _localname(root.tag)
    if kind not in {"urlset", "sitemapindex"}:
        raise SitemapError(f"Unsupported sitemap root element in {source}: {kind}")

    entry = "url" if kind == "urlset" else "sitemap"
    locs: List[str] = []
    for node in root:
        if _localname(node.tag) != entry:
            continue
        loc = _child_text(node, "loc")
        if loc:
            locs.append(loc)
    return kind, locs


class SitemapParser:
    """Expand a sitemap URL into the list of page URLs it references.

    Sitemap indexes are followed recursively up to ``max_depth`` levels. The
    result keeps document order, contains no duplicates and is capped at
    ``max_urls`` entries.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = "Mozilla/5.0 (compatible; SEOAuditAI/1.0)",
        timeout_seconds: float = 30.0,
        max_urls: int = 50,
        max_depth: int = 3,
    ) -> None:
        self._client = client
        self._headers = {"User-Agent": user_agent}
        self._timeout = timeout_seconds
        self._max_urls = max_urls
        self._max_depth = max_depth

    @staticmethod
    def is_sitemap(url: str) -> bool:
        lowered = url.lower()
        return "sitemap" in lowered or lowered.endswith(".xml")

    async def expand(self, url: str) -> List[str]:
        """Return the page URLs listed by the sitemap at ``url``.

        Raises:
            SitemapError: If the top-level sitemap cannot be fetched or parsed.
        """
        if self._client is not None:
            return await self._expand(self._client, url)
        async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout) as client:
            return await self._expand(client, url)

    async def _expand(self, client: httpx.AsyncClient, url: str) -> List[str]:
        urls: List[str] = []
        seen: Set[str] = set()
        visited: Set[str] = set()
        await self._walk(client, url, 0, urls, seen, visited)
        logger.info(f"Sitemap {url} expanded to {len(urls)} URL(s)")
        return urls

    async def _walk(
        self,
        client: httpx.AsyncClient,
        url: str,
        depth: int,
        urls: List[str],
        seen: Set[str],
        visited: Set[str],
    ) -> None:
        if url in visited or len(urls) >= self._max_urls:
            return
        visited.add(url)
        kind, locs = parse_sitemap_xml(await self._fetch(client, url), url)

        if kind == "urlset":
            for loc in locs:
                if len(urls) >= self._max_urls:
                    break
                if loc not in seen:
                    seen.add(loc)
                    urls.append(loc)
            return

        if depth >= self._max_depth:
            logger.warning(f"Not following sitemap index {url}: nesting deeper than {self._max_depth}")
            return
        for child in locs:
            try:
                await self._walk(client, child, depth + 1, urls, seen, visited)
            except SitemapError as e:
                logger.warning(f"Skipping nested sitemap {child}: {e}")

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            resp = await client.get(url, headers=self._headers, follow_redirects=True, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise SitemapError(f"Failed to parse sitemap: {e}") from e
        if resp.status_code >= 400:
            raise SitemapError(f"Failed to parse sitemap: HTTP {resp.status_code} for {url}")
        return resp.text
