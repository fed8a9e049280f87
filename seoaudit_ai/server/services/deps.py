"""
Audit Service Dependency.

Provides a singleton instance of the AuditService for API endpoints.
"""

from typing import Annotated

from fastapi import Depends

from seoaudit_ai.agent_core.service import AuditService
from seoaudit_ai.server.services.audit import get_audit_service

AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
