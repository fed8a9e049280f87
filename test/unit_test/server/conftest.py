from typing import AsyncGenerator, List
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from seoaudit_ai.agent_core.factory import build_default_registry
from seoaudit_ai.agent_core.model_provider import TextGenerator
from seoaudit_ai.agent_core.runtime import EngineDeps
from seoaudit_ai.agent_core.service import AuditService, AuditServiceDeps
from seoaudit_ai.crawler import SitemapError

SITEMAP_URLS = ["https://mock.site/", "https://mock.site/blog/coffee"]


class StubSitemapParser:
    """Serve a fixed URL list for ``https://mock.site/sitemap.xml`` only."""

    async def expand(self, url: str) -> List[str]:
        if url == "https://mock.site/sitemap.xml":
            return list(SITEMAP_URLS)
        if url == "https://mock.site/empty.xml":
            return []
        raise SitemapError(f"Failed to parse sitemap {url}: HTTP 404")


@pytest.fixture
def audit_service(fake_fetcher) -> AuditService:
    """An ``AuditService`` working on canned pages, without a model."""
    engine_deps = EngineDeps(
        capabilities=build_default_registry(),
        fetcher=fake_fetcher(),
        text_generator=TextGenerator(model=None),
        capability_timeout_seconds=5.0,
    )
    return AuditService(deps=AuditServiceDeps(engine_deps=engine_deps, sitemap_parser=StubSitemapParser()))


@pytest_asyncio.fixture(name="client")
async def client_fixture(audit_service: AuditService) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from seoaudit_ai.server.main import app
    from seoaudit_ai.server.services.audit import get_audit_service

    app.dependency_overrides[get_audit_service] = lambda: audit_service

    # Mock the lifespan to prevent building the settings-based service during tests
    async def mock_lifespan(app):
        yield

    with patch("seoaudit_ai.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()
