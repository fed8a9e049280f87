"""SEO audit orchestration core.

This package contains the “engine room” of the audit system.

Design overview
---------------

An audit job takes one target URL (or the URLs listed by a sitemap) and a
requested subset of capabilities:

- The ``DependencyResolver`` expands the request with every transitive hard
  dependency and groups it into stages; a stage only depends on earlier ones.
- The ``TaskCoordinator`` runs the stages of one target with LangGraph,
  fanning out the members of a stage concurrently and waiting for all of
  them before the next stage.
- The ``CapabilityExecutor`` turns every capability outcome (success,
  exception, timeout, unmet dependency) into a ``ResultRecord``. Only the
  failure of a foundational capability (``crawl``) aborts a target.
- The ``MultiTargetDriver`` processes targets one after the other and rescales
  their progress into one job-wide, non-decreasing percentage.

Typical usage
-------------

Most applications should use ``agent_core.service.AuditService``:

1. Build ``EngineDeps`` with ``factory.build_engine_deps``.
2. Pick a ``ProgressEmitter`` for the observer (queue for streaming,
   collecting for request/response).
3. Call ``AuditService.run`` (or iterate ``AuditService.stream``).
"""

from .errors import (
    DependencyCycleError,
    FatalCapabilityFailure,
    OrchestrationError,
    TaskAbortedError,
    UnknownCapabilityError,
)
from .factory import build_default_registry, build_engine_deps
from .model_provider import TextGenerator, create_text_generator
from .schemas.domain import (
    CapabilityName,
    Failure,
    FailureReason,
    ProgressEvent,
    ProgressEventKind,
    Success,
    Task,
    TaskStatus,
)
from .service import AuditService, AuditServiceDeps

__all__ = [
    "AuditService",
    "AuditServiceDeps",
    "CapabilityName",
    "DependencyCycleError",
    "Failure",
    "FailureReason",
    "FatalCapabilityFailure",
    "OrchestrationError",
    "ProgressEvent",
    "ProgressEventKind",
    "Success",
    "Task",
    "TaskAbortedError",
    "TaskStatus",
    "TextGenerator",
    "UnknownCapabilityError",
    "build_default_registry",
    "build_engine_deps",
    "create_text_generator",
]
