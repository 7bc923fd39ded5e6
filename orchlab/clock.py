from __future__ import annotations

"""Wall-clock driver interfaces for the playback controller and retry simulator.

The core never sleeps or owns a timer. Callers plug in a driver: the manual
implementations here (deterministic, used by tests and the CLI) or the
QTimer-backed ones in the Qt client.
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, Protocol


class Ticker(Protocol):
    """Periodic callback; at most one callback is registered at a time."""

    def start(self, interval_ms: float, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def is_active(self) -> bool:
        raise NotImplementedError


class TimerHandle(Protocol):
    def cancel(self) -> None:
        raise NotImplementedError


class DelayScheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError


class ManualTicker:
    """Ticker that only fires when told to."""

    def __init__(self) -> None:
        self._callback: Callable[[], None] | None = None
        self.interval_ms: float | None = None
        self.start_count = 0

    def start(self, interval_ms: float, callback: Callable[[], None]) -> None:
        if self._callback is not None:
            raise RuntimeError("Ticker already active")
        self._callback = callback
        self.interval_ms = float(interval_ms)
        self.start_count += 1

    def stop(self) -> None:
        self._callback = None

    def is_active(self) -> bool:
        return self._callback is not None

    def fire(self, times: int = 1) -> int:
        """Deliver up to `times` ticks; returns how many were delivered."""

        delivered = 0
        for _ in range(times):
            cb = self._callback
            if cb is None:
                break
            cb()
            delivered += 1
        return delivered


@dataclass(order=True)
class _Pending:
    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimeouts:
    """DelayScheduler over a virtual clock advanced explicitly by the caller."""

    def __init__(self) -> None:
        self.now_ms = 0.0
        self._heap: list[_Pending] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _Pending:
        p = _Pending(
            due_ms=self.now_ms + max(0.0, float(delay_ms)),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._heap, p)
        return p

    def pending_count(self) -> int:
        return sum(1 for p in self._heap if not p.cancelled)

    def advance(self, ms: float) -> None:
        target = self.now_ms + float(ms)
        while self._heap and self._heap[0].due_ms <= target:
            p = heapq.heappop(self._heap)
            if p.cancelled:
                continue
            self.now_ms = p.due_ms
            p.callback()
        self.now_ms = target

    def run_all(self, limit: int = 10_000) -> None:
        for _ in range(limit):
            live = [p for p in self._heap if not p.cancelled]
            if not live:
                return
            self.advance(min(p.due_ms for p in live) - self.now_ms)
        raise RuntimeError(f"run_all exceeded {limit} callbacks")
