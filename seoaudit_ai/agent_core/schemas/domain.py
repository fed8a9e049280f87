from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, Literal, Optional, Union
from uuid import uuid4

from pydantic import ConfigDict, Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CapabilityName(str, Enum):
    crawl = "crawl"
    keyword = "keyword"
    technical = "technical"
    schema = "schema"
    image = "image"
    content = "content"
    meta = "meta"
    validation = "validation"
    report = "report"
    learning = "learning"


class TaskStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class FailureReason(str, Enum):
    error = "error"
    timeout = "timeout"
    dependency_unmet = "dependency_unmet"


class ProgressEventKind(str, Enum):
    progress = "progress"
    capability_start = "capability_start"
    capability_complete = "capability_complete"
    capability_error = "capability_error"
    target_start = "target_start"
    targets_discovered = "targets_discovered"
    complete = "complete"
    error = "error"


TERMINAL_EVENT_KINDS = frozenset({ProgressEventKind.complete, ProgressEventKind.error})


class Success(BaseSchema):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["success"] = "success"
    output: Dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


class Failure(BaseSchema):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["failure"] = "failure"
    message: str
    reason: FailureReason = FailureReason.error

    @property
    def ok(self) -> bool:
        return False


ResultRecord = Annotated[Union[Success, Failure], Field(discriminator="kind")]


class Task(BaseSchema):
    """Audit of one target URL.

    Instances are never mutated in place; the coordinator derives new values
    through the transition functions in ``agent_core.runtime.state``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid4()))
    target: str
    requested_capabilities: FrozenSet[CapabilityName] = frozenset()

    status: TaskStatus = TaskStatus.pending
    results: Dict[CapabilityName, ResultRecord] = Field(default_factory=dict)
    error: Optional[str] = None

    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: Optional[datetime] = None


class ProgressEvent(BaseSchema):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ProgressEventKind
    message: Union[int, str] = ""
    percent: float = Field(default=0.0, ge=0.0, le=100.0)

    capability: Optional[CapabilityName] = None
    payload: Optional[Dict[str, Any]] = None

    target: Optional[str] = None
    task_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)

    @property
    def terminal(self) -> bool:
        return self.kind in TERMINAL_EVENT_KINDS
