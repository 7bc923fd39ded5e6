from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from orchlab.clock import Ticker
from orchlab.model import Scenario
from orchlab.observe import Observable
from orchlab.schedule import makespan, schedule_for, states_from_schedule, visible_messages
from orchlab.types import COMPLETED, RUNNING, TaskWindow

logger = logging.getLogger(__name__)

IDLE = "idle"
PLAYING = "playing"
PAUSED = "paused"
FINISHED = "finished"

DEFAULT_TICK_MS = 50.0
DEFAULT_SPEEDS: tuple[float, ...] = (0.5, 1.0, 2.0, 3.0)


@dataclass(frozen=True)
class PlaybackSnapshot:
    state: str
    current_time: float
    is_running: bool
    speed: float


class PlaybackController:
    """Owns simulated time for one visualization.

    Ticks come from a single injected Ticker. Every pause/reset/step/close
    bumps a generation token, and a tick carrying a stale token is dropped, so
    nothing advances time after the user stopped it.
    """

    def __init__(
        self,
        scenario: Scenario,
        *,
        ticker: Ticker,
        strategy: str = "parallel",
        concurrency_limit: int | None = None,
        tick_ms: float = DEFAULT_TICK_MS,
        speed: float = 1.0,
    ) -> None:
        if tick_ms <= 0:
            raise ValueError(f"tick_ms must be > 0 (got {tick_ms})")
        _check_speed(speed)

        self._scenario = scenario
        self._strategy = strategy
        self._schedule = schedule_for(scenario, strategy, concurrency_limit)
        self._total = makespan(self._schedule)

        self._ticker = ticker
        self._tick_ms = float(tick_ms)
        self._speed = float(speed)

        self._state = IDLE
        self._time = 0.0
        self._generation = 0
        self._closed = False
        self._observers: Observable[PlaybackSnapshot] = Observable()

    # --- read side -------------------------------------------------------

    @property
    def scenario(self) -> Scenario:
        return self._scenario

    @property
    def strategy(self) -> str:
        return self._strategy

    @property
    def schedule(self) -> tuple[TaskWindow, ...]:
        return self._schedule

    @property
    def state(self) -> str:
        return self._state

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def is_running(self) -> bool:
        return self._state == PLAYING

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def total_duration(self) -> float:
        return self._total

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            state=self._state,
            current_time=self._time,
            is_running=self.is_running,
            speed=self._speed,
        )

    def subscribe(self, callback: Callable[[PlaybackSnapshot], None]) -> Callable[[], None]:
        return self._observers.subscribe(callback)

    def task_states(self) -> dict[str, str]:
        return states_from_schedule(self._schedule, self._time)

    def visible_messages(self) -> list[str]:
        return visible_messages(self._scenario, self.task_states(), self._time)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.task_states().values() if s == COMPLETED)

    @property
    def running_count(self) -> int:
        return sum(1 for s in self.task_states().values() if s == RUNNING)

    @property
    def progress(self) -> float:
        if not self._schedule:
            return 0.0
        return self.completed_count / len(self._schedule) * 100.0

    # --- transitions -----------------------------------------------------

    def play(self) -> None:
        self._ensure_open()
        if self._state == PLAYING:
            return
        if self._state == FINISHED:
            # Replaying a finished run starts over.
            self._time = 0.0
        if self._time >= self._total:
            self._time = self._total
            self._set_state(FINISHED)
            return
        self._start_ticks()
        self._set_state(PLAYING)

    def pause(self) -> None:
        if self._state != PLAYING:
            return
        self._cancel_ticks()
        self._set_state(PAUSED)

    def toggle(self) -> None:
        if self._state == PLAYING:
            self.pause()
        else:
            self.play()

    def reset(self) -> None:
        self._cancel_ticks()
        self._time = 0.0
        self._set_state(IDLE)

    def step(self, delta: float | None = None) -> None:
        """Advance by a fixed increment; always leaves auto-advance stopped."""

        self._ensure_open()
        delta = self._tick_ms if delta is None else float(delta)
        if delta < 0:
            raise ValueError(f"step delta must be >= 0 (got {delta})")
        if self._state == FINISHED:
            return
        self._cancel_ticks()
        self._time = min(self._total, self._time + delta)
        self._set_state(FINISHED if self._time >= self._total else PAUSED)

    def seek(self, time: float) -> None:
        self._ensure_open()
        self._cancel_ticks()
        self._time = min(self._total, max(0.0, float(time)))
        self._set_state(FINISHED if self._time >= self._total else PAUSED)

    def set_speed(self, multiplier: float) -> None:
        _check_speed(multiplier)
        self._speed = float(multiplier)
        self._publish()

    def close(self) -> None:
        self._cancel_ticks()
        self._closed = True

    # --- internals -------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("PlaybackController is closed")

    def _start_ticks(self) -> None:
        self._cancel_ticks()
        token = self._generation
        self._ticker.start(self._tick_ms, lambda: self._on_tick(token))

    def _cancel_ticks(self) -> None:
        self._generation += 1
        self._ticker.stop()

    def _on_tick(self, token: int) -> None:
        if token != self._generation or self._state != PLAYING:
            return
        self._time += self._tick_ms * self._speed
        if self._time >= self._total:
            self._time = self._total
            self._cancel_ticks()
            self._set_state(FINISHED)
            return
        self._publish()

    def _set_state(self, state: str) -> None:
        if state != self._state:
            logger.debug(
                "playback %s: %s -> %s at t=%.1f",
                self._scenario.id,
                self._state,
                state,
                self._time,
            )
        self._state = state
        self._publish()

    def _publish(self) -> None:
        self._observers.publish(self.snapshot())


def _check_speed(multiplier: float) -> None:
    if not multiplier > 0:
        raise ValueError(f"speed multiplier must be > 0 (got {multiplier})")
