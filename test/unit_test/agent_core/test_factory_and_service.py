from __future__ import annotations

from typing import List, Optional

import pytest

from seoaudit_ai.agent_core.errors import UnknownCapabilityError
from seoaudit_ai.agent_core.factory import build_default_registry, build_engine_deps
from seoaudit_ai.agent_core.runtime import CollectingProgressEmitter
from seoaudit_ai.agent_core.schemas.domain import (
    CapabilityName as C,
    Failure,
    ProgressEvent,
    ProgressEventKind as K,
    Success,
)
from seoaudit_ai.agent_core.service import AuditService, AuditServiceDeps
from seoaudit_ai.crawler import PageFetcher, SitemapError

SITEMAP = "https://mock.site/sitemap.xml"
PAGES = ["https://mock.site/", "https://mock.site/blog/coffee"]


class _StubSitemapParser:
    def __init__(self, urls: Optional[List[str]] = None, error: Optional[Exception] = None) -> None:
        self.urls = urls or []
        self.error = error
        self.calls: List[str] = []

    async def expand(self, url: str) -> List[str]:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return list(self.urls)


def _service(fetcher, parser=None) -> AuditService:
    deps = build_engine_deps(fetcher=fetcher, capability_timeout_seconds=5.0)
    return AuditService(deps=AuditServiceDeps(engine_deps=deps, sitemap_parser=parser))


def test_build_default_registry_wires_dependency_table() -> None:
    reg = build_default_registry()

    assert reg.all_ids() == frozenset(C)
    assert reg.is_foundational(C.crawl) is True
    assert [n for n in C if reg.is_foundational(n)] == [C.crawl]
    assert reg.dependencies_of(C.meta) == {C.crawl, C.keyword}
    assert reg.dependencies_of(C.validation) == {C.crawl}
    assert C.validation in reg.consumes_of(C.report)
    assert C.report in reg.consumes_of(C.learning)


def test_build_engine_deps_fills_collaborators_from_settings() -> None:
    deps = build_engine_deps()

    assert isinstance(deps.fetcher, PageFetcher)
    assert deps.text_generator.available is False
    assert deps.capability_timeout_seconds == 120.0
    assert deps.capabilities.has(C.learning)


def test_prepare_validates_request(fake_fetcher) -> None:
    service = _service(fake_fetcher())

    target, requested = service.prepare("mock.site/blog/coffee", None)
    assert target == "https://mock.site/blog/coffee"
    assert requested == frozenset(C)

    _, requested = service.prepare(PAGES[0], ["meta", "image"])
    assert requested == {C.meta, C.image}

    with pytest.raises(ValueError):
        service.prepare("ftp://mock.site/", ["meta"])
    with pytest.raises(UnknownCapabilityError):
        service.prepare(PAGES[0], ["backlinks"])


@pytest.mark.asyncio
async def test_run_single_target(fake_fetcher) -> None:
    emitter = CollectingProgressEmitter()
    results = await _service(fake_fetcher()).run(PAGES[1], ["meta"], emitter=emitter)

    assert list(results) == [PAGES[1]]
    assert set(results[PAGES[1]]) == {C.crawl, C.keyword, C.meta}
    assert all(isinstance(r, Success) for r in results[PAGES[1]].values())
    assert emitter.events[-1].kind == K.complete
    assert emitter.events[-1].percent == 100.0
    assert not any(e.kind == K.targets_discovered for e in emitter.events)
    assert emitter.closed is True


@pytest.mark.asyncio
async def test_run_sitemap_announces_targets_and_summarizes(fake_fetcher) -> None:
    fetcher = fake_fetcher(failing={PAGES[0]})
    parser = _StubSitemapParser(PAGES)
    emitter = CollectingProgressEmitter()

    results = await _service(fetcher, parser).run(SITEMAP, ["image"], emitter=emitter)

    assert parser.calls == [SITEMAP]
    assert fetcher.calls == PAGES
    assert isinstance(results[PAGES[0]][C.crawl], Failure)
    assert isinstance(results[PAGES[1]][C.image], Success)

    kinds = [e.kind for e in emitter.events]
    assert kinds[0] == K.progress
    discovered = emitter.events[1]
    assert discovered.kind == K.targets_discovered
    assert discovered.message == 2
    assert discovered.payload == {"urls": PAGES}

    final = emitter.events[-1]
    assert final.kind == K.complete and final.target is None
    assert final.percent == 100.0
    assert final.payload["targets"] == 2
    assert final.payload["per_target"][PAGES[0]]["failed"] == ["crawl"]


@pytest.mark.asyncio
async def test_run_sitemap_flag_overrides_heuristic(fake_fetcher) -> None:
    parser = _StubSitemapParser(["https://mock.site/only"])
    emitter = CollectingProgressEmitter()

    results = await _service(fake_fetcher(), parser).run(
        "https://mock.site/feed", ["keyword"], emitter=emitter, is_sitemap=True
    )

    assert list(results) == ["https://mock.site/only"]


@pytest.mark.asyncio
async def test_run_empty_sitemap_emits_error(fake_fetcher) -> None:
    fetcher = fake_fetcher()
    emitter = CollectingProgressEmitter()

    with pytest.raises(SitemapError):
        await _service(fetcher, _StubSitemapParser([])).run(SITEMAP, ["meta"], emitter=emitter)

    assert emitter.events[-1].kind == K.error
    assert emitter.events[-1].message == "No URLs found in sitemap"
    assert fetcher.calls == []
    assert emitter.closed is True


@pytest.mark.asyncio
async def test_run_broken_sitemap_emits_error(fake_fetcher) -> None:
    parser = _StubSitemapParser(error=SitemapError("Failed to parse sitemap: HTTP 404"))
    emitter = CollectingProgressEmitter()

    with pytest.raises(SitemapError):
        await _service(fake_fetcher(), parser).run(SITEMAP, ["meta"], emitter=emitter)

    assert [e.kind for e in emitter.events] == [K.progress, K.error]


@pytest.mark.asyncio
async def test_run_invalid_request_emits_nothing(fake_fetcher) -> None:
    emitter = CollectingProgressEmitter()
    with pytest.raises(UnknownCapabilityError):
        await _service(fake_fetcher()).run(PAGES[0], ["backlinks"], emitter=emitter)
    assert emitter.events == []


@pytest.mark.asyncio
async def test_stream_yields_events_until_terminal(fake_fetcher) -> None:
    service = _service(fake_fetcher())

    events = [e async for e in service.stream(PAGES[1], ["technical"])]

    assert events[0].percent == 0.0
    assert events[-1].kind == K.complete
    assert sum(1 for e in events if e.terminal) == 1
    assert [e.percent for e in events] == sorted(e.percent for e in events)


@pytest.mark.asyncio
async def test_stream_validates_before_first_event(fake_fetcher) -> None:
    stream = _service(fake_fetcher()).stream(PAGES[1], ["backlinks"])
    with pytest.raises(UnknownCapabilityError):
        await stream.__anext__()


class _CrashingDriver:
    """Reports progress on the first target, then fails outside any task."""

    def __init__(self, *, deps, emitter) -> None:
        self._emitter = emitter

    async def run(self, targets, requested):
        self._emitter.publish(ProgressEvent(kind=K.progress, message="halfway", percent=60.0, target=targets[0]))
        raise RuntimeError("worker pool gone")


@pytest.mark.asyncio
async def test_run_failure_error_event_keeps_percent(fake_fetcher, monkeypatch) -> None:
    monkeypatch.setattr("seoaudit_ai.agent_core.service.MultiTargetDriver", _CrashingDriver)
    emitter = CollectingProgressEmitter()

    with pytest.raises(RuntimeError):
        await _service(fake_fetcher()).run(PAGES[1], ["meta"], emitter=emitter)

    last = emitter.events[-1]
    assert last.kind == K.error
    assert last.message == "Analysis failed: worker pool gone"
    assert last.percent == 60.0
    percents = [e.percent for e in emitter.events]
    assert percents == sorted(percents)
