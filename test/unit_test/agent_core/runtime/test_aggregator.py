from __future__ import annotations

from seoaudit_ai.agent_core.runtime import ResultAggregator
from seoaudit_ai.agent_core.schemas.domain import CapabilityName, Failure, Success, Task


def test_merge_copies_results() -> None:
    results = {CapabilityName.crawl: Success(output={}), CapabilityName.meta: Failure(message="x")}
    task = Task(target="https://mock.site/", results=results)

    merged = ResultAggregator.merge(task)

    assert merged == results
    merged.pop(CapabilityName.crawl)
    assert CapabilityName.crawl in task.results


def test_summarize_counts_per_target() -> None:
    summary = ResultAggregator.summarize(
        {
            "https://mock.site/a": {
                CapabilityName.crawl: Success(output={}),
                CapabilityName.meta: Success(output={}),
                CapabilityName.technical: Failure(message="x"),
            },
            "https://mock.site/b": {CapabilityName.crawl: Failure(message="down")},
        }
    )

    assert summary["targets"] == 2
    assert summary["succeeded"] == 2
    assert summary["failed"] == 2
    assert summary["per_target"]["https://mock.site/a"] == {"succeeded": ["crawl", "meta"], "failed": ["technical"]}
    assert summary["per_target"]["https://mock.site/b"] == {"succeeded": [], "failed": ["crawl"]}
