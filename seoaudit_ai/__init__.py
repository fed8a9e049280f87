"""SEOAudit-AI.

This package audits a web page (or every page listed in a sitemap) and emits
SEO optimization recommendations by running a set of analysis capabilities
over crawled page data.

High-level architecture
-----------------------

The codebase is organized around a small orchestration core and a set of
independent capabilities:

- **Capabilities**: one unit of analysis each (crawl, keyword, technical,
  schema, image, content, meta, validation, report, learning). A capability
  declares the capabilities it depends on and whether its failure is fatal to
  the whole target.
- **Orchestration**: dependency resolution into concurrent stages, stage
  execution with per-capability failure isolation, an ordered progress event
  stream and per-target result aggregation.

Core subpackages
----------------

- ``seoaudit_ai.agent_core``:

  - Capability registry, descriptors and the built-in SEO capabilities.
  - The dependency resolver (planning).
  - A LangGraph-based task coordinator, the capability executor, progress
    emitters and the multi-target driver.

- ``seoaudit_ai.crawler``:

  - Page fetching/parsing and sitemap expansion used by the ``crawl``
    capability and by the service layer.

- ``seoaudit_ai.server``:

  - FastAPI application exposing the audit as a JSON endpoint and as a
    server-sent event stream.

Typical workflow
----------------

Most integrations should use ``seoaudit_ai.agent_core.service.AuditService``:

1. Pass a URL (or a sitemap URL) and the requested capabilities.
2. Consume progress events while the audit runs.
3. Read the ``{url: {capability: ResultRecord}}`` map once it completes.
"""

__version__ = "0.1.0"
