"""
Audit API Endpoints.

This module provides the interface for auditing a page or a sitemap.

Includes:
- Non-streaming audit returning the final results and every emitted event
- Real-time progress streaming via Server-Sent Events (SSE)
- Listing of the registered capabilities and their dependencies
"""

from contextlib import aclosing
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from seoaudit_ai.agent_core.runtime import CollectingProgressEmitter
from seoaudit_ai.core.logging_config import get_logger
from seoaudit_ai.server.schemas import AnalyzeRequest, AnalyzeResponse, CapabilityInfo
from seoaudit_ai.server.services.deps import AuditServiceDep

logger = get_logger(__name__)
router = APIRouter()


def _split_capabilities(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get(
    "/capabilities",
    response_model=List[CapabilityInfo],
    summary="List Capabilities",
    description="List the registered capabilities with their hard dependencies and consumed inputs.",
)
async def list_capabilities(service: AuditServiceDep):
    registry = service.registry
    return [
        CapabilityInfo(
            name=name,
            depends_on=sorted(registry.dependencies_of(name), key=lambda n: n.value),
            consumes=sorted(registry.consumes_of(name), key=lambda n: n.value),
            foundational=registry.is_foundational(name),
        )
        for name in sorted(registry.all_ids(), key=lambda n: n.value)
    ]


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Audit a URL",
    description="Run the requested capabilities on a page (or every page of a sitemap) and return the results.",
)
async def analyze(body: AnalyzeRequest, service: AuditServiceDep):
    """
    Audit a URL and wait for the results.

    Unknown capabilities are rejected with 400, malformed URLs with 422.
    """
    try:
        service.prepare(body.url, body.capabilities)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    emitter = CollectingProgressEmitter()
    results = await service.run(body.url, body.capabilities, emitter=emitter, is_sitemap=body.is_sitemap)
    return AnalyzeResponse(results=results, events=emitter.events)


@router.get(
    "/analyze/stream",
    summary="Stream an Audit",
    description="Audit a URL and subscribe to its progress events via Server-Sent Events (SSE).",
    response_description="A stream of progress event objects.",
    responses={
        200: {
            "description": "SSE stream established",
            "content": {
                "text/event-stream": {
                    "example": 'data: {"kind": "capability_start", "message": "Starting crawl...", "percent": 0.0}\n\n'
                }
            },
        }
    },
)
async def analyze_stream(
    request: Request,
    service: AuditServiceDep,
    url: str,
    capabilities: Optional[str] = None,
    is_sitemap: Optional[bool] = None,
):
    """
    Stream the progress events of an audit via Server-Sent Events (SSE).

    The stream emits one JSON-formatted ``ProgressEvent`` per message and
    always ends with a ``complete`` or ``error`` event, unless the client
    disconnects first. A disconnect stops delivery only; the audit itself
    runs to completion.

    **Query Parameters:**
    - `url`: The page or sitemap to audit
    - `capabilities`: Comma-separated capability names (defaults to all)
    - `is_sitemap`: Force sitemap handling on or off
    """
    requested = _split_capabilities(capabilities)
    try:
        service.prepare(url, requested)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    logger.info(f"Starting event stream for {url}")

    async def event_generator():
        async with aclosing(service.stream(url, requested, is_sitemap=is_sitemap)) as events:
            async for event in events:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected from stream for {url}")
                    break
                yield event.model_dump_json()

    return EventSourceResponse(event_generator())
