from __future__ import annotations

"""LangGraph task coordinator.

``TaskCoordinator`` drives one target through the stage plan produced by the
``DependencyResolver``.

Execution model
---------------

- The coordinator runs a LangGraph state machine over ``_GraphState``.
- Each iteration of the ``execute_stage`` node runs exactly one stage:

  1. emits ``capability_start`` for every member of the stage,
  2. launches all members concurrently through the ``CapabilityExecutor``,
  3. waits for every launched execution to reach a terminal state (fan-in
     barrier),
  4. records each result and emits ``capability_complete`` or
     ``capability_error``.

- A failure of a foundational capability routes the graph to ``abort``: no
  later stage runs, the task ends ``failed`` and ``run`` raises
  ``TaskAbortedError``. Every other failure is recorded and execution goes on.

Status transitions
------------------

``pending -> running -> completed | failed``. The task value is replaced, never
mutated, through the functions in ``runtime.state``. Percentages reported for
one task never decrease: stage boundaries map to ``0..95`` and the final
``complete`` event reports ``100``.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from ..capabilities.base import CapabilityContext
from ..errors import FatalCapabilityFailure, TaskAbortedError
from ..planning import DependencyResolver
from ..schemas.domain import (
    CapabilityName,
    Failure,
    ProgressEvent,
    ProgressEventKind,
    Success,
    Task,
    TaskStatus,
)
from . import state as transitions
from .emitter import ProgressEmitter
from .executor import CapabilityExecutor
from .models import EngineDeps, _GraphState

logger = logging.getLogger(__name__)

STAGES_PERCENT = 95.0


class TaskCoordinator:
    """Execute the stage plan of one task with failure isolation and progress events.

    One coordinator owns one task: it is the only writer of the task value and
    the only producer on its emitter.
    """

    def __init__(
        self,
        *,
        deps: EngineDeps,
        emitter: ProgressEmitter,
        resolver: Optional[DependencyResolver] = None,
        executor: Optional[CapabilityExecutor] = None,
    ) -> None:
        """
        Initialize the TaskCoordinator.

        Args:
            deps: The runtime dependencies (registry, collaborators).
            emitter: The progress channel of this task.
            resolver: Optional resolver override; defaults to one over ``deps.capabilities``.
            executor: Optional executor override; defaults to one honouring the configured timeout.
        """
        self._deps = deps
        self._emitter = emitter
        self._resolver = resolver or DependencyResolver(deps.capabilities)
        self._executor = executor or CapabilityExecutor(
            deps.capabilities, timeout_seconds=deps.capability_timeout_seconds
        )
        self._task: Optional[Task] = None
        self._percent = 0.0
        self._graph = self._build_graph()

    @property
    def task(self) -> Optional[Task]:
        """The latest value of the task being processed."""
        return self._task

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("execute_stage", self._node_execute_stage)
        g.add_node("finish", self._node_finish)
        g.add_node("abort", self._node_abort)

        g.set_entry_point("start")
        g.add_edge("start", "execute_stage")
        g.add_conditional_edges(
            "execute_stage",
            self._route_after_stage,
            {
                "abort": "abort",
                "finish": "finish",
                "continue": "execute_stage",
            },
        )
        g.add_edge("finish", END)
        g.add_edge("abort", END)
        return g.compile()

    async def run(self, task: Task) -> Task:
        """Process ``task`` to a terminal state and return the final value.

        The plan is resolved before the task starts running, so registry
        configuration errors (``UnknownCapabilityError``,
        ``DependencyCycleError``) propagate unchanged and no event is emitted.

        Raises
        ------
        TaskAbortedError
            If the task ended ``failed``; the exception carries the final task.
        """
        plan = self._resolver.resolve(task.requested_capabilities)
        self._task = task
        state: _GraphState = {"task": task, "plan": plan, "idx": 0}
        try:
            final = await self._graph.ainvoke(state, config={"recursion_limit": len(plan) + 10})
        except Exception as e:
            logger.error(f"[{task.id}] Coordinator failed for {task.target}: {e}", exc_info=True)
            current = self._task
            if current.status not in (TaskStatus.completed, TaskStatus.failed):
                self._set_task(transitions.fail_task(current, f"unexpected error: {e}"))
                self._emit(ProgressEventKind.error, f"Analysis failed: {e}")
            raise TaskAbortedError(self._task) from e

        result: Task = final["task"]
        if result.status == TaskStatus.failed:
            raise TaskAbortedError(result)
        return result

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Mark the task running and announce the target."""
        task = self._set_task(transitions.start_task(state["task"]))
        logger.info(f"[{task.id}] Starting analysis of {task.target} in {len(state['plan'])} stage(s)")
        self._emit(ProgressEventKind.target_start, task.target, 0.0)
        state["task"] = task
        return state

    async def _node_execute_stage(self, state: _GraphState) -> _GraphState:
        """Run one stage: fan out, wait for every member, record the results."""
        plan = state["plan"]
        idx = state["idx"]
        task = state["task"]
        names = sorted(plan[idx], key=lambda n: n.value)
        before = STAGES_PERCENT * idx / len(plan)
        after = STAGES_PERCENT * (idx + 1) / len(plan)

        self._emit(
            ProgressEventKind.progress,
            f"Running stage {idx + 1}/{len(plan)}: {', '.join(n.value for n in names)}",
            before,
        )
        for name in names:
            self._emit(ProgressEventKind.capability_start, f"Starting {name.value}...", before, capability=name)

        ctx = CapabilityContext(task_id=task.id, target=task.target, deps=self._deps)
        outcomes = await asyncio.gather(
            *(self._executor.run(name, self._executor.inputs_for(name, task.results), ctx) for name in names),
            return_exceptions=True,
        )

        fatal: Optional[FatalCapabilityFailure] = None
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, FatalCapabilityFailure):
                record = outcome.record
                fatal = fatal or outcome
            elif isinstance(outcome, BaseException):
                record = Failure(message=str(outcome) or type(outcome).__name__)
                if self._deps.capabilities.is_foundational(name):
                    fatal = fatal or FatalCapabilityFailure(name, record)
            else:
                record = outcome

            task = self._set_task(transitions.record_result(task, name, record))
            if isinstance(record, Success):
                self._emit(
                    ProgressEventKind.capability_complete,
                    f"{name.value} completed",
                    after,
                    capability=name,
                    payload=record.output,
                )
            else:
                self._emit(ProgressEventKind.capability_error, record.message, after, capability=name)

        state["task"] = task
        state["idx"] = idx + 1
        if fatal is not None:
            state["_fatal"] = str(fatal)
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Mark the task completed and emit the terminal event."""
        task = self._set_task(transitions.complete_task(state["task"]))
        failed = [n.value for n, r in task.results.items() if isinstance(r, Failure)]
        logger.info(f"[{task.id}] Completed {task.target} ({len(task.results)} results, {len(failed)} failed)")
        self._emit(ProgressEventKind.complete, "Analysis complete", 100.0)
        state["task"] = task
        return state

    async def _node_abort(self, state: _GraphState) -> _GraphState:
        """Mark the task failed and emit the terminal error event."""
        reason = state.get("_fatal") or "aborted"
        task = self._set_task(transitions.fail_task(state["task"], reason))
        logger.warning(f"[{task.id}] Aborted {task.target}: {reason}")
        self._emit(ProgressEventKind.error, reason)
        state["task"] = task
        return state

    def _route_after_stage(self, state: _GraphState) -> str:
        """Route to abort/finish/continue after a stage."""
        if state.get("_fatal"):
            return "abort"
        if state["idx"] >= len(state["plan"]):
            return "finish"
        return "continue"

    def _set_task(self, task: Task) -> Task:
        self._task = task
        return task

    def _emit(
        self,
        kind: ProgressEventKind,
        message: Any,
        percent: Optional[float] = None,
        *,
        capability: Optional[CapabilityName] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if percent is not None:
            self._percent = max(self._percent, round(percent, 2))
        task = self._task
        self._emitter.publish(
            ProgressEvent(
                kind=kind,
                message=message,
                percent=self._percent,
                capability=capability,
                payload=payload,
                target=task.target if task is not None else None,
                task_id=task.id if task is not None else None,
            )
        )
