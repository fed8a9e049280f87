"""
SEOAudit-AI Server Package.

This package contains the web server implementation for the SEOAudit-AI service.
It exposes the audit orchestration core over HTTP, including a Server-Sent
Events stream of progress events.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Core configuration and constants.
    exception_handlers: Application-wide exception handlers.
    services: Service wiring shared by the endpoints.
"""
