"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from seoaudit_ai.agent_core.schemas.domain import CapabilityName, ProgressEvent, ResultRecord


class AnalyzeRequest(BaseModel):
    """
    Schema for starting an audit.

    Defines the target and the capabilities to run on it.
    """
    url: str = Field(
        ...,
        description="The page to audit, or a sitemap whose pages should all be audited.",
        examples=["https://example.com/", "https://example.com/sitemap.xml"],
    )
    capabilities: Optional[List[str]] = Field(
        default=None,
        description="Capabilities to run. Dependencies are added automatically. Defaults to all.",
        examples=[["meta", "schema"]],
    )
    is_sitemap: Optional[bool] = Field(
        default=None,
        description="Treat the URL as a sitemap. Detected from the URL when omitted.",
    )


class AnalyzeResponse(BaseModel):
    """
    Schema for the result of a non-streaming audit.

    ``results`` maps every audited URL to its capability records; a capability
    that was not part of the plan is absent, one that failed holds a failure record.
    """
    results: Dict[str, Dict[CapabilityName, ResultRecord]] = Field(
        default_factory=dict, description="Capability records per audited URL."
    )
    events: List[ProgressEvent] = Field(
        default_factory=list, description="Every progress event emitted during the audit, in order."
    )


class CapabilityInfo(BaseModel):
    """
    Schema describing one registered capability and its place in the dependency graph.
    """
    name: CapabilityName
    depends_on: List[CapabilityName] = Field(default_factory=list)
    consumes: List[CapabilityName] = Field(default_factory=list)
    foundational: bool = False
