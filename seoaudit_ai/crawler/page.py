from __future__ import annotations

import json
import logging
import re
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urljoin, urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from .errors import PageFetchError

logger = logging.getLogger(__name__)

ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}


def normalize_url(raw: str) -> str:
    """Add a missing scheme, reject non-HTTP schemes and drop the fragment."""
    value = raw.strip()
    parsed = urlparse(value)
    if not parsed.scheme:
        value = f"https://{value}"
        parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")
    if not parsed.netloc:
        raise ValueError(f"URL has no host: {raw}")
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path or "/", "", parsed.query, ""))


def _normalize_host(host: str) -> str:
    lowered = host.lower().strip(".")
    if lowered.startswith("www."):
        return lowered[4:]
    return lowered


def same_site(url_a: str, url_b: str) -> bool:
    a = _normalize_host(urlparse(url_a).hostname or "")
    b = _normalize_host(urlparse(url_b).hostname or "")
    if not a or not b:
        return False
    return a == b or a.endswith("." + b) or b.endswith("." + a)


def _meta_content(soup: BeautifulSoup, *, name: Optional[str] = None, prop: Optional[str] = None) -> str:
    attrs = {"name": name} if name else {"property": prop}
    tag = soup.find("meta", attrs=attrs)
    return str(tag.get("content") or "").strip() if tag else ""


def _extract_schema(soup: BeautifulSoup) -> List[Any]:
    blocks: List[Any] = []
    for script in soup.find_all("script", type="application/ld+json"):
        payload = script.string or script.get_text() or ""
        if not payload.strip():
            continue
        try:
            blocks.append(json.loads(payload))
        except ValueError:
            logger.debug("Skipping invalid JSON-LD block")
    return blocks


def parse_page(
    html: str,
    url: str,
    *,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
    response_ms: Optional[float] = None,
) -> Dict[str, Any]:
    """Parse an HTML document into the ``PageData`` dictionary.

    Args:
        html: The raw document.
        url: Final URL of the document, used to resolve relative links.
        status_code: HTTP status of the response.
        headers: Response headers (lower-cased keys are stored).
        response_ms: Time to the response, in milliseconds.

    Returns:
        A JSON-serializable dictionary with the sections ``meta``, ``headings``,
        ``links``, ``images``, ``schema``, ``content`` and ``html``.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    html_tag = soup.find("html")
    charset_tag = soup.find("meta", charset=True)
    canonical_tag = soup.find("link", rel="canonical")
    doctype = re.search(r"<!doctype[^>]*>", html, re.IGNORECASE)

    internal: List[Dict[str, str]] = []
    external: List[Dict[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "").strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        absolute = urljoin(url, href).split("#", 1)[0]
        link = {"url": absolute, "text": anchor.get_text(" ", strip=True), "anchor": href}
        (internal if same_site(url, absolute) else external).append(link)

    images = [
        {
            "src": urljoin(url, str(img.get("src") or "")) if img.get("src") else "",
            "alt": str(img.get("alt") or "").strip(),
            "title": str(img.get("title") or "").strip(),
            "has_alt": img.get("alt") is not None,
        }
        for img in soup.find_all("img")
    ]

    schema = _extract_schema(soup)
    headings = {
        level: [h.get_text(" ", strip=True) for h in soup.find_all(level)] for level in ("h1", "h2", "h3")
    }
    paragraphs = [p.get_text(" ", strip=True) for p in soup.find_all("p")]
    paragraphs = [p for p in paragraphs if p]

    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    body = soup.find("body") or soup
    text = re.sub(r"\s+", " ", body.get_text(" ", strip=True)).strip()

    return {
        "url": url,
        "status_code": status_code,
        "title": title_tag.get_text(strip=True) if title_tag else "",
        "meta": {
            "description": _meta_content(soup, name="description"),
            "keywords": _meta_content(soup, name="keywords"),
            "viewport": _meta_content(soup, name="viewport"),
            "robots": _meta_content(soup, name="robots"),
            "canonical": str(canonical_tag.get("href") or "") if canonical_tag else "",
            "og": {
                "title": _meta_content(soup, prop="og:title"),
                "description": _meta_content(soup, prop="og:description"),
                "image": _meta_content(soup, prop="og:image"),
                "url": _meta_content(soup, prop="og:url"),
            },
        },
        "headings": headings,
        "links": {"internal": internal, "external": external, "total": len(internal) + len(external)},
        "images": images,
        "schema": schema,
        "content": {
            "text": text,
            "word_count": len(re.findall(r"\b\w+\b", text)),
            "paragraphs": paragraphs,
        },
        "html": {
            "lang": str(html_tag.get("lang") or "") if html_tag else "",
            "charset": str(charset_tag.get("charset") or "utf-8") if charset_tag else "",
            "doctype": doctype.group(0) if doctype else "",
        },
        "headers": {k.lower(): v for k, v in (headers or {}).items()},
        "response_ms": response_ms,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class PageFetcher:
    """Fetch a page over HTTP and parse it into ``PageData``.

    A shared ``httpx.AsyncClient`` may be injected (tests pass one with a
    ``MockTransport``); otherwise a client is opened per fetch.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = "Mozilla/5.0 (compatible; SEOAuditAI/1.0)",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self._headers = {"User-Agent": user_agent, **ACCEPT_HEADERS}
        self._timeout = timeout_seconds

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout) as client:
            yield client

    async def fetch(self, url: str) -> Dict[str, Any]:
        """Fetch ``url`` and return its ``PageData``.

        Raises:
            PageFetchError: On invalid URLs, transport errors, HTTP errors and non-HTML responses.
        """
        try:
            target = normalize_url(url)
        except ValueError as e:
            raise PageFetchError(f"Crawl failed: {e}") from e

        started = time.perf_counter()
        try:
            async with self._session() as client:
                resp = await client.get(target, headers=self._headers, follow_redirects=True, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise PageFetchError(f"Crawl failed: {e}") from e
        elapsed = round((time.perf_counter() - started) * 1000.0, 2)

        if resp.status_code >= 400:
            raise PageFetchError(f"Crawl failed: HTTP {resp.status_code} for {target}")
        content_type = resp.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            raise PageFetchError(f"Crawl failed: {target} is not an HTML document ({content_type})")

        logger.debug(f"Fetched {target} -> {resp.status_code} in {elapsed}ms")
        return parse_page(
            resp.text,
            str(resp.url),
            status_code=resp.status_code,
            headers=dict(resp.headers),
            response_ms=elapsed,
        )
