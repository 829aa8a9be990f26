"""Deferred-callback schedulers the clock can run on."""

from __future__ import annotations

import asyncio
import heapq
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, override

if TYPE_CHECKING:
    from collections.abc import Callable


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Monotonic time source plus single-shot deferred callbacks."""

    def now_ms(self) -> float: ...

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
    ) -> TimerHandle: ...


@dataclass
class AsyncioScheduler(Scheduler):
    """Runs callbacks on an asyncio event loop; `loop.time()` is monotonic."""

    loop: asyncio.AbstractEventLoop = field(default_factory=asyncio.get_running_loop)

    @override
    def now_ms(self) -> float:
        return self.loop.time() * 1000

    @override
    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
    ) -> TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000, callback)


@dataclass(order=False)
class VirtualTimer:
    due_ms: float
    serial: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: VirtualTimer) -> bool:
        return (self.due_ms, self.serial) < (other.due_ms, other.serial)


@dataclass
class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler on virtual time.

    Nothing fires until `advance` or `fire_next` is called, which lets
    tests and the simulator drive the clock tick by tick, including
    callbacks that fire late.
    """

    current_ms: float = 0.0
    queue: list[VirtualTimer] = field(default_factory=list)
    serial: int = 0

    @override
    def now_ms(self) -> float:
        return self.current_ms

    @override
    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
    ) -> VirtualTimer:
        self.serial += 1
        timer = VirtualTimer(self.current_ms + max(0.0, delay_ms), self.serial, callback)
        heapq.heappush(self.queue, timer)
        return timer

    @property
    def pending(self) -> list[VirtualTimer]:
        return sorted(t for t in self.queue if not t.cancelled)

    def advance(self, ms: float) -> int:
        """Move time forward by `ms`, firing every timer that falls due. Returns the count fired."""
        target = self.current_ms + ms
        fired = 0
        while (timer := self._peek()) is not None and timer.due_ms <= target:
            _ = heapq.heappop(self.queue)
            self.current_ms = timer.due_ms
            timer.callback()
            fired += 1
        self.current_ms = target
        return fired

    def fire_next(self, late_by_ms: float = 0.0) -> bool:
        """Fire the earliest pending timer, optionally `late_by_ms` after it was due."""
        timer = self._peek()
        if timer is None:
            return False
        _ = heapq.heappop(self.queue)
        self.current_ms = max(self.current_ms, timer.due_ms + late_by_ms)
        timer.callback()
        return True

    def _peek(self) -> VirtualTimer | None:
        while self.queue and self.queue[0].cancelled:
            _ = heapq.heappop(self.queue)
        return self.queue[0] if self.queue else None
