from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default capability registry
with its dependency table, and the ``EngineDeps`` bundle from the application
settings.

The intent is to keep application wiring and tests concise, while still
allowing deployments and tests to provide their own registry, fetcher and
text generator.
"""

from typing import Any, Optional

from .capabilities.builtin import (
    CrawlCapability,
    ImageCapability,
    KeywordCapability,
    SchemaCapability,
    TechnicalCapability,
)
from .capabilities.registry import CapabilityRegistry
from .capabilities.synthesis import (
    ContentCapability,
    LearningCapability,
    MetaCapability,
    ReportCapability,
    ValidationCapability,
)
from .runtime import EngineDeps
from .schemas.domain import CapabilityName as C


def build_default_registry() -> CapabilityRegistry:
    """Build and validate the default ``CapabilityRegistry``.

    ``crawl`` is the root and the only foundational capability. ``validation``,
    ``report`` and ``learning`` consume the outputs of the analyzers without
    requiring them.
    """
    reg = CapabilityRegistry(root=C.crawl)
    reg.register(CrawlCapability(), foundational=True)
    reg.register(KeywordCapability(), depends_on=[C.crawl])
    reg.register(TechnicalCapability(), depends_on=[C.crawl])
    reg.register(SchemaCapability(), depends_on=[C.crawl])
    reg.register(ImageCapability(), depends_on=[C.crawl])
    reg.register(ContentCapability(), depends_on=[C.crawl, C.keyword])
    reg.register(MetaCapability(), depends_on=[C.crawl, C.keyword])
    reg.register(
        ValidationCapability(),
        depends_on=[C.crawl],
        consumes=[C.keyword, C.content, C.meta, C.schema],
    )
    reg.register(
        ReportCapability(),
        depends_on=[C.crawl],
        consumes=[C.keyword, C.technical, C.schema, C.image, C.content, C.meta, C.validation],
    )
    reg.register(
        LearningCapability(),
        depends_on=[C.crawl],
        consumes=[C.keyword, C.schema, C.content, C.meta, C.report],
    )
    reg.validate()
    return reg


def build_engine_deps(
    *,
    registry: Optional[CapabilityRegistry] = None,
    fetcher: Any | None = None,
    text_generator: Any | None = None,
    capability_timeout_seconds: Optional[float] = None,
) -> EngineDeps:
    """Construct ``EngineDeps``, filling unspecified collaborators from settings."""
    from seoaudit_ai.crawler import PageFetcher
    from seoaudit_ai.server.core.config import settings

    from .model_provider import create_text_generator

    crawler_cfg = settings.crawler
    return EngineDeps(
        capabilities=registry or build_default_registry(),
        fetcher=fetcher
        or PageFetcher(user_agent=crawler_cfg.user_agent, timeout_seconds=crawler_cfg.fetch_timeout_seconds),
        text_generator=text_generator or create_text_generator(),
        capability_timeout_seconds=(
            capability_timeout_seconds
            if capability_timeout_seconds is not None
            else settings.capability_timeout_seconds
        ),
    )
