"""
Audit Service Wiring.

Builds the process-wide ``AuditService`` from the application settings. The
capability registry (and with it the learning capability's pattern store) is
shared by every request served by this process.
"""

from typing import Optional

from seoaudit_ai.agent_core.factory import build_engine_deps
from seoaudit_ai.agent_core.service import AuditService, AuditServiceDeps
from seoaudit_ai.core.logging_config import get_logger
from seoaudit_ai.crawler import SitemapParser
from seoaudit_ai.server.core.config import settings

logger = get_logger(__name__)


def build_audit_service() -> AuditService:
    crawler_cfg = settings.crawler
    parser = SitemapParser(
        user_agent=crawler_cfg.user_agent,
        timeout_seconds=crawler_cfg.fetch_timeout_seconds,
        max_urls=crawler_cfg.max_sitemap_urls,
        max_depth=crawler_cfg.max_sitemap_depth,
    )
    return AuditService(deps=AuditServiceDeps(engine_deps=build_engine_deps(), sitemap_parser=parser))


_audit_service: Optional[AuditService] = None


def get_audit_service() -> AuditService:
    global _audit_service
    if _audit_service is None:
        logger.debug("Building audit service")
        _audit_service = build_audit_service()
    return _audit_service
