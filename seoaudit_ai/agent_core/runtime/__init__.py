"""LangGraph-based execution runtime for audit tasks.

The runtime takes the stage plan produced by the planning subsystem and
executes it with strong guarantees:

- a stage starts only after every capability of the previous stages reached a
  terminal state,
- capability failures are contained and recorded; only a foundational
  failure aborts the task,
- progress events of one task are emitted in program order and their
  percentages never decrease.

The main entry points are ``TaskCoordinator`` (one target) and
``MultiTargetDriver`` (a list of targets).
"""

from .aggregator import ResultAggregator
from .driver import MultiTargetDriver
from .emitter import (
    CallbackProgressEmitter,
    CollectingProgressEmitter,
    ProgressEmitter,
    QueueProgressEmitter,
    RescalingProgressEmitter,
)
from .engine import TaskCoordinator
from .executor import CapabilityExecutor
from .models import EngineDeps

__all__ = [
    "CallbackProgressEmitter",
    "CapabilityExecutor",
    "CollectingProgressEmitter",
    "EngineDeps",
    "MultiTargetDriver",
    "ProgressEmitter",
    "QueueProgressEmitter",
    "RescalingProgressEmitter",
    "ResultAggregator",
    "TaskCoordinator",
]
