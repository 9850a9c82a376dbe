"""
Training events published while a run progresses.

Epoch events arrive in epoch order. Weight snapshots are delivered by
fire-and-forget tasks, so they are best-effort and may arrive out of order
relative to later epoch events.
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, List, Optional


class EventKind(enum.Enum):
    EPOCH_END = "epoch_end"
    WEIGHTS = "weights"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TrainingEvent:
    kind: EventKind
    model_name: str
    entry: Optional[Any] = None             # EpochLog for EPOCH_END
    weights: Optional[List[Any]] = None     # ranked WeightDescription list for WEIGHTS
    result: Optional[Any] = None            # TrainingResult for DONE
    error: Optional[BaseException] = None   # exception for FAILED


_CLOSED = object()


class EventChannel:
    """Unbounded queue of TrainingEvents, consumed with ``async for``."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: TrainingEvent) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish on a closed EventChannel")
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> TrainingEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the sentinel so further iteration also stops
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item
