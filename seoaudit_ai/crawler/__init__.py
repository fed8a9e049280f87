"""Page fetching and sitemap expansion.

- ``PageFetcher`` turns a URL into the ``PageData`` dictionary consumed by the
  ``crawl`` capability and, through it, by every other capability.
- ``SitemapParser`` expands a sitemap (or sitemap index) URL into the list of
  page URLs audited by the multi-target driver.
"""

from .errors import CrawlerError, PageFetchError, SitemapError
from .page import PageFetcher, normalize_url, parse_page
from .sitemap import SitemapParser

__all__ = [
    "CrawlerError",
    "PageFetchError",
    "PageFetcher",
    "SitemapError",
    "SitemapParser",
    "normalize_url",
    "parse_page",
]
