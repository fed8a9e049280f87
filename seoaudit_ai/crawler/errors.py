"""Errors raised by the crawler collaborators."""


class CrawlerError(Exception):
    """Base class for fetch and sitemap errors."""


class PageFetchError(CrawlerError):
    """A page could not be fetched or is not an HTML document."""


class SitemapError(CrawlerError):
    """A sitemap could not be fetched or parsed."""
