from __future__ import annotations

from typing import Any, Dict

import pytest

from seoaudit_ai.agent_core.capabilities.base import CapabilityContext
from seoaudit_ai.agent_core.capabilities.builtin import (
    ImageCapability,
    KeywordCapability,
    SchemaCapability,
    TechnicalCapability,
)
from seoaudit_ai.agent_core.capabilities.synthesis import (
    DESCRIPTION_MAX,
    TITLE_MAX,
    ContentCapability,
    LearningCapability,
    MetaCapability,
    PatternStore,
    ReportCapability,
    ValidationCapability,
    flesch_reading_ease,
)
from seoaudit_ai.agent_core.schemas.domain import CapabilityName as C, Failure, Success
from seoaudit_ai.crawler import parse_page

URL = "https://mock.site/blog/coffee"


def _ctx() -> CapabilityContext:
    return CapabilityContext(task_id="t1", target=URL, deps=None)


async def _analyzed(html: str, *names: C) -> Dict[C, Any]:
    """Run crawl output through the given analyzers, in order."""
    caps = {
        C.keyword: KeywordCapability(),
        C.technical: TechnicalCapability(),
        C.schema: SchemaCapability(),
        C.image: ImageCapability(),
        C.content: ContentCapability(),
        C.meta: MetaCapability(),
        C.validation: ValidationCapability(),
        C.report: ReportCapability(),
    }
    inputs: Dict[C, Any] = {C.crawl: Success(output=parse_page(html, URL))}
    for name in names:
        res = await caps[name].execute(_ctx(), inputs=dict(inputs))
        inputs[name] = Success(output=res.output)
    return inputs


def test_flesch_reading_ease_bounds() -> None:
    assert flesch_reading_ease("") == 0.0
    assert 0.0 <= flesch_reading_ease("The cat sat on the mat. It was warm.") <= 100.0
    assert flesch_reading_ease("The cat sat on the mat.") > flesch_reading_ease(
        "Extraordinarily sophisticated methodologies necessitate considerable organizational deliberation."
    )


@pytest.mark.asyncio
async def test_content_keyword_placement(sample_html: str) -> None:
    inputs = await _analyzed(sample_html, C.keyword)
    res = await ContentCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    placement = out["keyword_placement"]
    assert placement["keyword"] == "coffee"
    assert placement["title"] and placement["h1"] and placement["first_paragraph"] and placement["meta_description"]
    assert placement["score"] == 100
    assert out["structure"]["h1"] == 1 and out["structure"]["h2"] == 1
    assert out["internal_links"] == 1
    assert out["recommendations"][0]["type"] == "content_length"


@pytest.mark.asyncio
async def test_meta_optimizes_short_description(sample_html: str) -> None:
    inputs = await _analyzed(sample_html, C.keyword)
    res = await MetaCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["title"]["status"] == "optimal"
    assert out["title"]["optimized"] == out["title"]["current"]
    assert out["description"]["status"] == "too_short"
    assert 29 < len(out["description"]["optimized"]) <= DESCRIPTION_MAX
    assert out["open_graph"] == {"title": True, "description": False, "image": False, "url": False}
    types = [r["type"] for r in out["recommendations"]]
    assert types == ["meta_description", "open_graph"]


@pytest.mark.asyncio
async def test_meta_missing_title_is_critical() -> None:
    html = "<html><body><h1>Espresso basics</h1><p>Espresso needs pressure. Espresso is strong.</p></body></html>"
    inputs = await _analyzed(html, C.keyword)
    res = await MetaCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["title"]["status"] == "missing"
    assert out["title"]["optimized"] == "Espresso basics"
    assert len(out["title"]["optimized"]) <= TITLE_MAX
    assert out["recommendations"][0]["priority"] == "critical"


@pytest.mark.asyncio
async def test_validation_with_crawl_only(sample_html: str) -> None:
    inputs = await _analyzed(sample_html)
    res = await ValidationCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["status"] == "warning"
    assert out["critical_issues"] == []
    assert out["quality_score"] == 90
    assert out["inputs"] == {"keyword": "not_requested", "content": "not_requested", "meta": "not_requested", "schema": "not_requested"}


@pytest.mark.asyncio
async def test_validation_tells_failed_from_absent(sample_html: str) -> None:
    inputs = await _analyzed(sample_html, C.keyword, C.schema)
    inputs[C.meta] = Failure(message="model unavailable")
    res = await ValidationCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["inputs"] == {"keyword": "available", "content": "not_requested", "meta": "failed", "schema": "available"}
    assert "Incomplete Article schema" in out["warnings"]


@pytest.mark.asyncio
async def test_validation_missing_basics_fail() -> None:
    inputs = await _analyzed("<html><body><p>hi</p></body></html>")
    res = await ValidationCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["status"] == "fail"
    assert out["critical_issues"] == ["Missing title tag", "Missing meta description", "Missing H1 heading"]


@pytest.mark.asyncio
async def test_report_merges_recommendations(sample_html: str) -> None:
    inputs = await _analyzed(sample_html, C.keyword, C.technical, C.image, C.meta, C.validation)
    res = await ReportCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    scores = out["scores"]
    assert set(scores) == {"technical", "validation"}
    assert out["overall_score"] == round((scores["technical"] + scores["validation"]) / 2)
    priorities = [r["priority"] for r in out["recommendations"]]
    order = {"critical": 0, "high": 1, "medium": 2, "low": 3}
    assert priorities == sorted(priorities, key=order.get)
    assert {r["source"] for r in out["recommendations"]} >= {"technical", "image", "meta"}
    assert out["summary"]["total_recommendations"] == len(out["recommendations"])
    assert out["sections"]["schema"] == "not_requested"
    assert out["sections"]["meta"] == "available"


@pytest.mark.asyncio
async def test_report_without_analyzers(sample_html: str) -> None:
    inputs = await _analyzed(sample_html)
    inputs[C.technical] = Failure(message="boom")
    res = await ReportCapability().execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["recommendations"] == []
    assert out["overall_score"] == 100
    assert out["sections"]["technical"] == "failed"


def test_pattern_store_is_bounded() -> None:
    store = PatternStore(max_patterns=2)
    for i in range(3):
        store.add({"i": i})
    assert len(store) == 2
    assert store.snapshot() == [{"i": 1}, {"i": 2}]


@pytest.mark.asyncio
async def test_learning_accumulates_across_audits(sample_html: str) -> None:
    learning = LearningCapability(store=PatternStore(max_patterns=100))
    inputs = await _analyzed(sample_html, C.keyword, C.schema, C.report)

    await learning.execute(_ctx(), inputs=inputs)
    res = await learning.execute(_ctx(), inputs=inputs)

    out = res.output
    assert out["patterns_learned"] == 2
    assert out["pattern"]["schema_types"] == ["Article"]
    assert out["insights"]["common_keywords"][0] == "coffee"
    assert out["insights"]["average_score"] == float(inputs[C.report].output["overall_score"])
