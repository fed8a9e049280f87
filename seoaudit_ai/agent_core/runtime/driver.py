from __future__ import annotations

"""Sequential multi-target execution.

``MultiTargetDriver`` audits a list of targets (typically the URLs of a
sitemap) one after the other. Targets never overlap: the coordinator of
target ``i`` finishes before the one of target ``i + 1`` starts, which bounds
outbound fetches to a single page at a time.

Progress of target ``i`` out of ``N`` is rescaled into the window
``[i / N * 100, (i + 1) / N * 100]`` of the job-wide stream, so the observer
sees one non-decreasing percentage for the whole job.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..errors import TaskAbortedError
from ..planning import DependencyResolver
from ..schemas.domain import CapabilityName, ResultRecord, Task
from .aggregator import ResultAggregator
from .emitter import ProgressEmitter, RescalingProgressEmitter
from .engine import TaskCoordinator
from .models import EngineDeps

logger = logging.getLogger(__name__)

CoordinatorFactory = Callable[[EngineDeps, ProgressEmitter], TaskCoordinator]


def _default_coordinator(deps: EngineDeps, emitter: ProgressEmitter) -> TaskCoordinator:
    return TaskCoordinator(deps=deps, emitter=emitter)


class MultiTargetDriver:
    """Run one ``TaskCoordinator`` per target, strictly in sequence."""

    def __init__(
        self,
        *,
        deps: EngineDeps,
        emitter: ProgressEmitter,
        coordinator_factory: CoordinatorFactory = _default_coordinator,
    ) -> None:
        self._deps = deps
        self._emitter = emitter
        self._coordinator_factory = coordinator_factory
        self._tasks: Dict[str, Task] = {}

    @property
    def tasks(self) -> Dict[str, Task]:
        """Final task value per processed target."""
        return dict(self._tasks)

    async def run(
        self,
        targets: Iterable[str],
        requested: Iterable[Union[CapabilityName, str]],
    ) -> Dict[str, Dict[CapabilityName, ResultRecord]]:
        """Audit every target and return ``{target: {capability: ResultRecord}}``.

        A target whose task aborts is recorded with the results it produced
        before aborting; the remaining targets are still processed.

        Raises:
            UnknownCapabilityError: If ``requested`` names an unknown capability.
                Raised before the first target starts.
        """
        capabilities = DependencyResolver(self._deps.capabilities).normalize(requested)
        unique: List[str] = list(dict.fromkeys(targets))
        total = len(unique)
        results: Dict[str, Dict[CapabilityName, ResultRecord]] = {}

        for i, target in enumerate(unique):
            window = RescalingProgressEmitter(self._emitter, low=100.0 * i / total, high=100.0 * (i + 1) / total)
            coordinator = self._coordinator_factory(self._deps, window)
            task = Task(target=target, requested_capabilities=capabilities)
            logger.debug(f"Target {i + 1}/{total}: {target} (task {task.id})")
            try:
                task = await coordinator.run(task)
            except TaskAbortedError as e:
                task = e.task
                logger.warning(f"Target {target} failed, continuing with the next one: {e}")
            self._tasks[target] = task
            results[target] = ResultAggregator.merge(task)

        return results

    def failed_targets(self) -> List[str]:
        return [t for t, task in self._tasks.items() if task.error is not None]

    def task_for(self, target: str) -> Optional[Task]:
        return self._tasks.get(target)
