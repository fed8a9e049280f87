"""Per-target result aggregation.

A capability that is absent from the merged record was not part of the plan;
a capability that was planned but did not succeed is present as a
``Failure``. Callers must keep the two cases apart.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from ..schemas.domain import CapabilityName, Failure, ResultRecord, Success, Task


class ResultAggregator:
    @staticmethod
    def merge(task: Task) -> Dict[CapabilityName, ResultRecord]:
        """Return the keyed result record of ``task``."""
        return dict(task.results)

    @staticmethod
    def summarize(results_by_target: Mapping[str, Mapping[CapabilityName, ResultRecord]]) -> Dict[str, Any]:
        """Count succeeded and failed capabilities per target and overall."""
        per_target: Dict[str, Dict[str, Any]] = {}
        for target, results in results_by_target.items():
            per_target[target] = {
                "succeeded": sorted(n.value for n, r in results.items() if isinstance(r, Success)),
                "failed": sorted(n.value for n, r in results.items() if isinstance(r, Failure)),
            }
        return {
            "targets": len(per_target),
            "succeeded": sum(len(v["succeeded"]) for v in per_target.values()),
            "failed": sum(len(v["failed"]) for v in per_target.values()),
            "per_target": per_target,
        }
