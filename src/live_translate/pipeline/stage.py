"""Shared drain machinery for the serialized pipeline stages."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from .types import StageState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SerializedStage(Generic[T]):
    """
    FIFO queue drained by at most one task at a time.

    The stage state is the in-flight lock: drain() only starts work from
    IDLE, and the drain task itself returns the stage to IDLE when it exits,
    whichever way it exits. The queue head is peeked while it is processed and
    removed afterwards, on success and failure alike.

    Subclasses implement _process(); it must absorb provider failures and only
    let cancellation through.
    """

    name = "stage"

    def __init__(self) -> None:
        self.state = StageState.IDLE
        self._queue: Deque[T] = deque()
        self._task: Optional[asyncio.Task] = None

    def enqueue(self, item: T) -> None:
        self._queue.append(item)
        self.drain()

    def drain(self) -> None:
        """Start draining unless work is already in flight or nothing is queued."""
        if self.state is StageState.DRAINING or not self._queue:
            return
        self.state = StageState.DRAINING
        self._task = asyncio.get_running_loop().create_task(
            self._drain(), name=f"{self.name}-drain"
        )

    async def _drain(self) -> None:
        try:
            while self._queue:
                await self._process(self._queue[0])
                self._queue.popleft()
        finally:
            # reset() may already have handed the stage to a newer task
            if self._task is asyncio.current_task():
                self.state = StageState.IDLE
                self._task = None

    async def _process(self, item: T) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        """Discard queued items and abandon the in-flight call, if any."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"Cancelled in-flight {self.name} task")
        self._queue.clear()
        self.state = StageState.IDLE

    async def join(self) -> None:
        """Wait until the stage has nothing in flight."""
        while self._task is not None:
            task = self._task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if self._task is task:
                self._task = None
                self.state = StageState.IDLE

    def pending(self) -> List[T]:
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)


__all__ = ["SerializedStage"]
