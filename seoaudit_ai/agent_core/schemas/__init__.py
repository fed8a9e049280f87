"""Schemas and DTOs for the agent core."""

from .domain import (
    CapabilityName,
    Failure,
    FailureReason,
    ProgressEvent,
    ProgressEventKind,
    ResultRecord,
    Success,
    Task,
    TaskStatus,
)

__all__ = [
    "CapabilityName",
    "Failure",
    "FailureReason",
    "ProgressEvent",
    "ProgressEventKind",
    "ResultRecord",
    "Success",
    "Task",
    "TaskStatus",
]
