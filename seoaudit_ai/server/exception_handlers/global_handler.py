"""
Global Exception Handler for FastAPI Application.

This module provides a global exception handler that catches all unhandled
exceptions and logs detailed information including error ID, request context,
and full traceback for debugging purposes.

Request validation problems raised by the orchestration core (unknown
capability, malformed URL, unusable sitemap) are mapped to 4xx responses
instead.
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from seoaudit_ai.agent_core.errors import UnknownCapabilityError
from seoaudit_ai.core.logging_config import get_logger
from seoaudit_ai.crawler import SitemapError

logger = get_logger(__name__)


async def unknown_capability_handler(request: Request, exc: UnknownCapabilityError) -> JSONResponse:
    """Reject requests naming a capability that is not registered."""
    logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc), "error_type": type(exc).__name__})


async def sitemap_error_handler(request: Request, exc: SitemapError) -> JSONResponse:
    """Report a sitemap that could not be expanded into targets."""
    logger.warning(f"Sitemap error in {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc), "error_type": type(exc).__name__})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler to log detailed error information.

    This handler is called for any unhandled exception in the application.
    It logs the full error context and returns a JSON response with an error ID
    that clients can use to reference the error when reporting issues.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with error details and error ID
    """
    # Generate unique error ID for tracking
    error_id = id(exc)

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    This function should be called during application initialization to set up
    all custom exception handlers.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(UnknownCapabilityError, unknown_capability_handler)
    app.add_exception_handler(SitemapError, sitemap_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
