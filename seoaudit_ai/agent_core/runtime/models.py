from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

The runtime is designed to be dependency-injected.

- ``EngineDeps`` collects the registry and the collaborators capabilities
  need (page fetcher, generative text service).
- ``_GraphState`` is the state passed between the coordinator's LangGraph
  nodes for one task.
"""

from dataclasses import dataclass
from typing import Any, List, NotRequired, Optional, Required, TypedDict

from ..capabilities import CapabilityRegistry
from ..planning import Stage
from ..schemas.domain import Task


@dataclass(frozen=True)
class EngineDeps:
    """Dependency bundle for ``TaskCoordinator`` and ``MultiTargetDriver``.

    This object is typically constructed by ``factory.build_engine_deps`` and
    shared by every task of a job. Capabilities reach the collaborators
    through ``CapabilityContext.deps``.
    """

    capabilities: CapabilityRegistry

    fetcher: Any | None = None
    text_generator: Any | None = None
    capability_timeout_seconds: Optional[float] = None


class _GraphState(TypedDict):
    """LangGraph state for a single task.

    Required keys:

    - ``task``: the current ``Task`` value.
    - ``plan``: the resolved stage plan.
    - ``idx``: index of the next stage to execute.

    Optional keys:

    - ``_fatal``: set to the error message once a foundational capability
      failed; routes the graph to the abort node.
    """

    task: Required[Task]
    plan: Required[List[Stage]]
    idx: Required[int]
    _fatal: NotRequired[str]
