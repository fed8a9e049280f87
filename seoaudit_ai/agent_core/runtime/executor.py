from __future__ import annotations

"""Single-capability execution with failure containment.

``CapabilityExecutor.run`` is the only place where capability code is
invoked. It guarantees that:

- a capability whose hard dependency recorded a ``Failure`` is not invoked
  and is reported as ``dependency_unmet``,
- exceptions, timeouts and ``ok=False`` results are converted into
  ``Failure`` records and never reach the caller,
- a failure of a foundational capability is additionally signalled with
  ``FatalCapabilityFailure`` so the coordinator can abort the task.

No retries are performed here.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from ..capabilities.base import CapabilityContext, CapabilityResult
from ..capabilities.registry import CapabilityRegistry
from ..errors import FatalCapabilityFailure
from ..schemas.domain import CapabilityName, Failure, FailureReason, ResultRecord, Success

logger = logging.getLogger(__name__)


class CapabilityExecutor:
    """Invoke registered capabilities and turn every outcome into a ``ResultRecord``."""

    def __init__(self, registry: CapabilityRegistry, *, timeout_seconds: Optional[float] = None) -> None:
        """
        Initialize the executor.

        Args:
            registry: Registry providing descriptors and implementations.
            timeout_seconds: Upper bound on one execution; ``None`` disables the limit.
        """
        self._registry = registry
        self._timeout = timeout_seconds

    def inputs_for(
        self, name: CapabilityName, results: Mapping[CapabilityName, ResultRecord]
    ) -> Dict[CapabilityName, ResultRecord]:
        """Select the subset of ``results`` that ``name`` declared as inputs."""
        declared = self._registry.descriptor(name).inputs
        return {dep: record for dep, record in results.items() if dep in declared}

    async def run(
        self,
        name: CapabilityName,
        inputs: Mapping[CapabilityName, ResultRecord],
        ctx: CapabilityContext,
    ) -> ResultRecord:
        """Execute ``name`` and return its result record.

        Raises:
            FatalCapabilityFailure: If ``name`` is foundational and did not succeed.
        """
        descriptor = self._registry.descriptor(name)
        record = await self._invoke(name, inputs, ctx)
        if isinstance(record, Failure):
            logger.info(f"[{ctx.task_id}] {name.value} failed ({record.reason.value}): {record.message}")
            if descriptor.foundational:
                raise FatalCapabilityFailure(name, record)
        return record

    async def _invoke(
        self,
        name: CapabilityName,
        inputs: Mapping[CapabilityName, ResultRecord],
        ctx: CapabilityContext,
    ) -> ResultRecord:
        descriptor = self._registry.descriptor(name)
        unmet = sorted(
            dep.value
            for dep in descriptor.hard_dependencies
            if isinstance(inputs.get(dep), Failure)
        )
        if unmet:
            return Failure(message=f"dependency unmet: {', '.join(unmet)}", reason=FailureReason.dependency_unmet)

        cap = self._registry.get(name)
        try:
            if self._timeout is None:
                res = await cap.execute(ctx, inputs=dict(inputs))
            else:
                res = await asyncio.wait_for(cap.execute(ctx, inputs=dict(inputs)), timeout=self._timeout)
            return _to_record(res, name)
        except asyncio.TimeoutError:
            return Failure(message=f"{name.value} timed out after {self._timeout}s", reason=FailureReason.timeout)
        except Exception as e:
            logger.debug(f"[{ctx.task_id}] {name.value} raised", exc_info=True)
            return Failure(message=str(e) or type(e).__name__)


def _to_record(res: Any, name: CapabilityName) -> ResultRecord:
    if not isinstance(res, CapabilityResult) or not isinstance(res.output, Mapping):
        return Failure(message=f"{name.value} returned an invalid result: {type(res).__name__}")
    if not res.ok:
        return Failure(message=_error_message(res.output, name))
    return Success(output=dict(res.output))


def _error_message(output: Mapping[str, Any], name: CapabilityName) -> str:
    error = output.get("error")
    return str(error) if error else f"{name.value} reported failure"
