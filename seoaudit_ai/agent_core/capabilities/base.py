from __future__ import annotations

"""Capability protocol and execution data models.

A capability is one independently invokable analysis unit (crawl, keyword,
meta, ...).

The coordinator resolves capability names through a ``CapabilityRegistry``
and the executor invokes the implementation with a ``CapabilityContext`` and
the results of the capabilities it declared as inputs.

Capabilities should:

- only read the inputs they declared in their ``CapabilityDescriptor``,
- return structured outputs in ``CapabilityResult.output``,
- leave retries, if any, to themselves; the executor never retries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Protocol

from ..schemas.domain import CapabilityName, ResultRecord, Success


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Static declaration of a capability's place in the dependency graph.

    Attributes
    ----------
    name:
        Unique capability id.
    hard_dependencies:
        Capabilities whose successful output is required. They are injected
        into the plan when missing, and a failure of any of them marks this
        capability as "dependency unmet" without invoking it.
    consumes:
        Capabilities whose output is used when present. They only constrain
        ordering; they are never injected into the plan.
    foundational:
        Whether a failure of this capability aborts the whole target.
    """

    name: CapabilityName
    hard_dependencies: FrozenSet[CapabilityName] = field(default_factory=frozenset)
    consumes: FrozenSet[CapabilityName] = field(default_factory=frozenset)
    foundational: bool = False

    @property
    def inputs(self) -> FrozenSet[CapabilityName]:
        return self.hard_dependencies | self.consumes


@dataclass(frozen=True)
class CapabilityContext:
    """Execution context passed to capability implementations.

    Attributes
    ----------
    task_id:
        Identifier of the task the execution belongs to.
    target:
        The URL being audited.
    deps:
        Runtime collaborators bundled in ``EngineDeps`` (page fetcher, text
        generator, ...).
    """

    task_id: str
    target: str
    deps: Any


@dataclass(frozen=True)
class CapabilityResult:
    """Structured capability execution result."""

    ok: bool
    output: Dict[str, Any]


class Capability(Protocol):
    """Protocol for capability implementations."""

    name: CapabilityName

    async def execute(
        self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]
    ) -> CapabilityResult: ...


def output_of(inputs: Mapping[CapabilityName, ResultRecord], name: CapabilityName) -> Optional[Dict[str, Any]]:
    """Return the output of ``name`` if it is present in ``inputs`` and succeeded."""
    record = inputs.get(name)
    if isinstance(record, Success):
        return record.output
    return None
