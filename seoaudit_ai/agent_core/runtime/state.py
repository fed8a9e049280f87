"""Pure state transitions for ``Task``.

The coordinator never mutates a ``Task``; it replaces its current value with
the result of one of these functions. Each function validates the transition
and returns a new instance.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ..schemas.domain import CapabilityName, ResultRecord, Task, TaskStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def start_task(task: Task) -> Task:
    if task.status != TaskStatus.pending:
        raise ValueError(f"cannot start task in status {task.status.value}")
    return task.model_copy(update={"status": TaskStatus.running})


def record_result(task: Task, name: CapabilityName, record: ResultRecord) -> Task:
    """Add the result of ``name``; an existing entry is never replaced."""
    if name in task.results:
        raise ValueError(f"result for {name.value} already recorded")
    results = dict(task.results)
    results[name] = record
    return task.model_copy(update={"results": results})


def complete_task(task: Task) -> Task:
    if task.status != TaskStatus.running:
        raise ValueError(f"cannot complete task in status {task.status.value}")
    return task.model_copy(update={"status": TaskStatus.completed, "completed_at": _utc_now()})


def fail_task(task: Task, error: Optional[str] = None) -> Task:
    if task.status in (TaskStatus.completed, TaskStatus.failed):
        raise ValueError(f"cannot fail task in status {task.status.value}")
    return task.model_copy(update={"status": TaskStatus.failed, "error": error, "completed_at": _utc_now()})
