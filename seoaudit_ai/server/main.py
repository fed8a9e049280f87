"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
and includes all API routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from seoaudit_ai import __version__
from seoaudit_ai.core.logging_config import get_logger, setup_logging

from .api.v1 import analyze, health
from .core import constant
from .exception_handlers import setup_exception_handlers
from .services.audit import get_audit_service

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Handles startup and shutdown events for the FastAPI application.
    The audit service is built eagerly so that registry configuration errors
    surface at startup rather than on the first request.
    """
    # Startup
    logger.info("Starting up SEOAudit-AI Server...")
    service = get_audit_service()
    logger.info(f"Capability registry ready: {', '.join(sorted(n.value for n in service.registry.all_ids()))}")

    yield

    # Shutdown
    logger.info("Shutting down SEOAudit-AI Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    SEOAudit-AI Server API

    This API audits web pages, or every page listed in a sitemap, and returns SEO recommendations.
    It supports request/response audits and streaming real-time progress events.
    """,
    version=__version__,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(analyze.router, prefix=constant.API_V1_STR, tags=["analyze"])


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    from .core.config import settings

    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
