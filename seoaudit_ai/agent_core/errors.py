from __future__ import annotations

"""Exception hierarchy of the orchestration core.

Only two kinds of conditions ever cross a stage boundary as exceptions:

- configuration errors in the capability registry (``UnknownCapabilityError``,
  ``DependencyCycleError``), raised before any task starts, and
- the failure of a foundational capability (``FatalCapabilityFailure``), which
  the coordinator turns into a ``TaskAbortedError`` for its caller.

Every other capability failure is converted into a ``Failure`` record.
"""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .schemas.domain import CapabilityName, Failure, Task


class OrchestrationError(Exception):
    """Base class for all orchestration errors."""


class UnknownCapabilityError(OrchestrationError, KeyError):
    def __init__(self, name: object) -> None:
        super().__init__(f"unknown capability: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class DependencyCycleError(OrchestrationError):
    def __init__(self, members: Iterable[object]) -> None:
        self.members = sorted(str(getattr(m, "value", m)) for m in members)
        super().__init__(f"dependency cycle between capabilities: {', '.join(self.members)}")


class FatalCapabilityFailure(OrchestrationError):
    """A foundational capability failed; the current target cannot continue."""

    def __init__(self, capability: "CapabilityName", record: "Failure") -> None:
        super().__init__(f"{capability.value} failed: {record.message}")
        self.capability = capability
        self.record = record


class TaskAbortedError(OrchestrationError):
    """Raised by the coordinator when a task ends in the ``failed`` state."""

    def __init__(self, task: "Task") -> None:
        super().__init__(task.error or f"task {task.id} failed")
        self.task = task
