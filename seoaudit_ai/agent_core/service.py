from __future__ import annotations

"""High-level orchestration service for audit jobs.

``AuditService`` provides an application-friendly API for auditing a URL or a
whole sitemap without needing to manually wire the resolver, driver and
emitters.

Workflow
--------

- ``run``:

  1. Validates the URL and the requested capabilities (errors raise before
     any event is emitted).
  2. Expands the sitemap when the URL is one, announcing the discovered
     targets with a ``targets_discovered`` event.
  3. Runs the ``MultiTargetDriver`` over the targets.
  4. For sitemap jobs, emits a job-level ``complete`` event carrying the
     ``ResultAggregator.summarize`` payload.
  5. Closes the emitter.

- ``stream``: runs the same job in a background task and yields its events as
  they are produced. If the consumer stops iterating, the job still runs to
  completion and its later events are dropped.

``AuditService`` is intentionally thin: it delegates execution semantics to
the driver and coordinator.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set, Union

from seoaudit_ai.crawler import SitemapError, SitemapParser, normalize_url

from .capabilities.registry import CapabilityRegistry
from .planning import DependencyResolver
from .runtime import EngineDeps, MultiTargetDriver, ProgressEmitter, QueueProgressEmitter, ResultAggregator
from .schemas.domain import CapabilityName, ProgressEvent, ProgressEventKind, ResultRecord

logger = logging.getLogger(__name__)

JobResults = Dict[str, Dict[CapabilityName, ResultRecord]]


@dataclass(frozen=True)
class AuditServiceDeps:
    """Dependency bundle for ``AuditService``.

    This allows applications and tests to inject:

    - the runtime dependencies shared by every task,
    - a sitemap parser (any object with ``expand(url)``).
    """

    engine_deps: EngineDeps
    sitemap_parser: Any | None = None


class AuditService:
    """Orchestrate target discovery and execution for one audit job."""

    def __init__(self, *, deps: AuditServiceDeps) -> None:
        self._deps = deps
        self._resolver = DependencyResolver(deps.engine_deps.capabilities)
        self._background: Set[asyncio.Task] = set()

    @property
    def registry(self) -> CapabilityRegistry:
        return self._deps.engine_deps.capabilities

    def prepare(
        self,
        url: str,
        capabilities: Optional[Iterable[Union[CapabilityName, str]]] = None,
    ) -> tuple[str, frozenset[CapabilityName]]:
        """
        Validate a job request.

        An empty or missing capability list requests every registered capability.

        Raises:
            ValueError: If ``url`` is not an HTTP(S) URL.
            UnknownCapabilityError: If a requested capability is not registered.
        """
        target = normalize_url(url)
        requested = list(capabilities or [])
        if not requested:
            return target, self.registry.all_ids()
        return target, self._resolver.normalize(requested)

    async def run(
        self,
        url: str,
        capabilities: Optional[Iterable[Union[CapabilityName, str]]] = None,
        *,
        emitter: ProgressEmitter,
        is_sitemap: Optional[bool] = None,
    ) -> JobResults:
        """Audit ``url`` (or every URL of the sitemap at ``url``).

        Returns:
            ``{target: {capability: ResultRecord}}`` for every processed target.

        Raises:
            ValueError, UnknownCapabilityError: Invalid request, nothing emitted.
            SitemapError: The sitemap could not be expanded or lists no URL; an
                ``error`` event was emitted.
        """
        target, requested = self.prepare(url, capabilities)
        sitemap = SitemapParser.is_sitemap(target) if is_sitemap is None else is_sitemap
        try:
            targets = await self._discover(target, emitter) if sitemap else [target]
            driver = MultiTargetDriver(deps=self._deps.engine_deps, emitter=emitter)
            results = await driver.run(targets, requested)
            if sitemap:
                summary = ResultAggregator.summarize(results)
                logger.info(
                    f"Sitemap job {target} done: {summary['targets']} target(s), "
                    f"{len(driver.failed_targets())} aborted"
                )
                emitter.publish(
                    ProgressEvent(
                        kind=ProgressEventKind.complete,
                        message=f"Analyzed {summary['targets']} page(s)",
                        percent=100.0,
                        payload=summary,
                    )
                )
            return results
        except SitemapError:
            raise
        except Exception as e:
            emitter.publish(
                ProgressEvent(
                    kind=ProgressEventKind.error,
                    message=f"Analysis failed: {e}",
                    target=target,
                    percent=emitter.last_percent,
                )
            )
            raise
        finally:
            emitter.close()

    async def stream(
        self,
        url: str,
        capabilities: Optional[Iterable[Union[CapabilityName, str]]] = None,
        *,
        is_sitemap: Optional[bool] = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield the events of a job as it runs.

        The request is validated before the first event, so validation errors
        raise from the first ``__anext__`` call.
        """
        self.prepare(url, capabilities)
        emitter = QueueProgressEmitter()
        job = asyncio.create_task(self._run_detached(url, capabilities, emitter, is_sitemap))
        self._background.add(job)
        job.add_done_callback(self._background.discard)
        try:
            async for event in emitter:
                yield event
        finally:
            # consumer gone: the job keeps running, its later events are dropped
            emitter.close()

    async def _run_detached(
        self,
        url: str,
        capabilities: Optional[Iterable[Union[CapabilityName, str]]],
        emitter: ProgressEmitter,
        is_sitemap: Optional[bool],
    ) -> None:
        try:
            await self.run(url, capabilities, emitter=emitter, is_sitemap=is_sitemap)
        except SitemapError as e:
            logger.warning(f"Sitemap job for {url} stopped: {e}")
        except Exception as e:
            logger.error(f"Audit job for {url} failed: {e}", exc_info=True)

    async def _discover(self, url: str, emitter: ProgressEmitter) -> List[str]:
        emitter.publish(ProgressEvent(kind=ProgressEventKind.progress, message="Parsing sitemap...", target=url))
        parser = self._deps.sitemap_parser or SitemapParser()
        try:
            urls = await parser.expand(url)
        except SitemapError as e:
            emitter.publish(ProgressEvent(kind=ProgressEventKind.error, message=str(e), target=url))
            raise
        if not urls:
            message = "No URLs found in sitemap"
            emitter.publish(ProgressEvent(kind=ProgressEventKind.error, message=message, target=url))
            raise SitemapError(message)
        emitter.publish(
            ProgressEvent(
                kind=ProgressEventKind.targets_discovered,
                message=len(urls),
                target=url,
                payload={"urls": urls},
            )
        )
        return urls
