"""
Deferred callbacks for the task store.

The store never sleeps or spawns threads; it hands work to whichever scheduler
the host supplies. The interactive app uses the prompt_toolkit event loop,
headless callers and tests drive a ManualScheduler.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class Handle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle: ...


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop (the one prompt_toolkit runs on)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(delay, callback)


@dataclass(order=True)
class ManualHandle:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    _cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Virtual-clock scheduler; callbacks run only when the clock is advanced."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._pending: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        self._seq += 1
        handle = ManualHandle(self.now + max(0.0, delay), self._seq, callback)
        self._pending.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._pending if not h.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run everything that became due. Returns the number run."""
        self.now += seconds
        ran = 0
        while True:
            due = sorted(h for h in self._pending if h.due <= self.now)
            if not due:
                return ran
            handle = due[0]
            self._pending.remove(handle)
            if handle.cancelled():
                logger.debug("Skipping cancelled callback %s", handle.seq)
                continue
            handle.callback()
            ran += 1

    def run_all(self) -> int:
        """Run every pending callback regardless of its delay."""
        if not self._pending:
            return 0
        latest = max(h.due for h in self._pending)
        return self.advance(max(0.0, latest - self.now))
