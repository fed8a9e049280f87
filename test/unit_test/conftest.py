from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List

import pytest

from seoaudit_ai.crawler import PageFetchError, parse_page

SAMPLE_SCHEMA = {
    "@context": "https://schema.org",
    "@type": "Article",
    "headline": "Coffee brewing guide",
    "author": {"@type": "Person", "name": "A. Barista"},
}

SAMPLE_HTML = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Coffee Brewing Guide: Pour Over Coffee at Home</title>
  <meta name="description" content="Learn coffee brewing at home.">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="https://mock.site/blog/coffee">
  <meta property="og:title" content="Coffee Brewing Guide">
  <script type="application/ld+json">{json.dumps(SAMPLE_SCHEMA)}</script>
</head>
<body>
  <h1>Coffee Brewing Guide</h1>
  <p>Coffee brewing is simple. Good coffee needs fresh beans, clean water and patience.
     Pour over coffee gives a clean cup. Grind the coffee beans right before brewing.</p>
  <h2>Equipment</h2>
  <p>You need a kettle, a dripper, filters and a scale. Coffee brewing with a scale is consistent.</p>
  <img src="/img/pour-over-dripper.jpg" alt="Pour over dripper on a scale">
  <img src="/img/IMG_1234.png">
  <a href="/blog/espresso">Espresso guide</a>
  <a href="https://other.example/coffee">Coffee shop</a>
</body>
</html>
"""


class FakeFetcher:
    """Stand-in for ``PageFetcher`` serving ``SAMPLE_HTML`` for every URL."""

    def __init__(self, *, failing: Iterable[str] = (), html: str = SAMPLE_HTML) -> None:
        self.failing = set(failing)
        self.html = html
        self.calls: List[str] = []

    async def fetch(self, url: str) -> Dict[str, Any]:
        self.calls.append(url)
        if url in self.failing:
            raise PageFetchError(f"Crawl failed: HTTP 503 for {url}")
        return parse_page(
            self.html,
            url,
            headers={"content-type": "text/html", "x-frame-options": "DENY"},
            response_ms=120.0,
        )


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_HTML


@pytest.fixture
def fake_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher
