from __future__ import annotations

"""Progress event channels.

A ``ProgressEmitter`` is the single, ordered, append-only channel of progress
events for one task (or one multi-target job), consumed by exactly one
observer.

Contract
--------

- ``publish`` never blocks and never raises, whatever the state of the
  observer. Delivery is best effort.
- Events are delivered in the order they were published. Each emitter has a
  single producer, so no locking is involved.
- After ``close`` no further events are accepted; late events are dropped.

Whether the observer is still connected is a transport concern: the emitters
here only decide what to do with an event once it has been handed over.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

from ..schemas.domain import ProgressEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class ProgressEmitter:
    """Base class implementing the closed-state bookkeeping."""

    def __init__(self) -> None:
        self._closed = False
        self._last_percent = 0.0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_percent(self) -> float:
        """Highest percent accepted so far; a later event should not go below it."""
        return self._last_percent

    def publish(self, event: ProgressEvent) -> None:
        if self._closed:
            logger.debug(f"Dropping {event.kind.value} event published after close")
            return
        self._last_percent = max(self._last_percent, event.percent)
        try:
            self._deliver(event)
        except Exception as e:
            logger.warning(f"Progress delivery failed for {event.kind.value} event: {e}")

    def close(self) -> None:
        self._closed = True

    def _deliver(self, event: ProgressEvent) -> None:
        raise NotImplementedError


class CollectingProgressEmitter(ProgressEmitter):
    """Keep every event in memory; used by the non-streaming API and tests."""

    def __init__(self) -> None:
        super().__init__()
        self.events: List[ProgressEvent] = []

    def _deliver(self, event: ProgressEvent) -> None:
        self.events.append(event)


class CallbackProgressEmitter(ProgressEmitter):
    """Forward events to a synchronous callable.

    If the callable raises, the observer is considered gone: the error is
    logged once and later events are dropped.
    """

    def __init__(self, callback: Callable[[ProgressEvent], None]) -> None:
        super().__init__()
        self._callback: Optional[Callable[[ProgressEvent], None]] = callback

    def _deliver(self, event: ProgressEvent) -> None:
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception as e:
            logger.warning(f"Progress observer raised, detaching it: {e}")
            self._callback = None


class QueueProgressEmitter(ProgressEmitter):
    """Hand events over to an async consumer through an unbounded queue.

    The consumer iterates with ``async for event in emitter``; iteration ends
    once ``close`` has been called and every queued event was delivered.
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: asyncio.Queue = asyncio.Queue()

    def _deliver(self, event: ProgressEvent) -> None:
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            super().close()
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class RescalingProgressEmitter(ProgressEmitter):
    """Map ``percent`` of every event from 0-100 into ``[low, high]``.

    The wrapped emitter is shared with other windows, so closing this one
    does not close it.
    """

    def __init__(self, inner: ProgressEmitter, *, low: float, high: float) -> None:
        super().__init__()
        if not 0.0 <= low <= high <= 100.0:
            raise ValueError(f"invalid progress window [{low}, {high}]")
        self._inner = inner
        self.low = low
        self.high = high

    def scale(self, percent: float) -> float:
        return round(self.low + (self.high - self.low) * percent / 100.0, 2)

    def _deliver(self, event: ProgressEvent) -> None:
        self._inner.publish(event.model_copy(update={"percent": self.scale(event.percent)}))
