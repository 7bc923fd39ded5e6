from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from orchlab.clock import DelayScheduler, TimerHandle
from orchlab.observe import Observable
from orchlab.types import AttemptRecord

logger = logging.getLogger(__name__)

NONE = "none"
LINEAR = "linear"
EXPONENTIAL = "exponential"
BACKOFF_POLICIES: tuple[str, ...] = (NONE, LINEAR, EXPONENTIAL)

IDLE = "idle"
ATTEMPTING = "attempting"
SUCCEEDED = "succeeded"
EXHAUSTED = "exhausted"

FAILURE_REASONS: tuple[str, ...] = (
    "Rate limited",
    "Timeout",
    "Server error",
    "Model overloaded",
)


class RandomSource(Protocol):
    """Anything with `random() -> float` in [0, 1): random.Random, numpy Generator."""

    def random(self) -> float:
        raise NotImplementedError


@dataclass(frozen=True)
class RetryConfig:
    policy: str = EXPONENTIAL
    base_delay_ms: float = 1000.0
    failure_rate: float = 60.0  # percent, 0..100
    max_attempts: int = 5
    max_delay_ms: float | None = None
    jitter: float = 0.0  # extra fraction of the delay, drawn uniformly
    # Demo pacing: wall-clock wait is delay * playback_scale, capped.
    playback_scale: float = 0.2
    max_wait_ms: float = 800.0

    def __post_init__(self) -> None:
        if self.policy not in BACKOFF_POLICIES:
            raise ValueError(
                f"unknown backoff policy '{self.policy}' "
                f"(expected one of {', '.join(BACKOFF_POLICIES)})"
            )
        if not 0 <= self.failure_rate <= 100:
            raise ValueError(f"failure_rate must be in 0..100 (got {self.failure_rate})")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1 (got {self.max_attempts})")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.max_delay_ms is not None and self.max_delay_ms < 0:
            raise ValueError("max_delay_ms must be >= 0")
        if self.jitter < 0:
            raise ValueError("jitter must be >= 0")

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "RetryConfig":
        max_delay = obj.get("max_delay_ms")
        return RetryConfig(
            policy=str(obj.get("policy", EXPONENTIAL)),
            base_delay_ms=float(obj.get("base_delay_ms", 1000.0)),
            failure_rate=float(obj.get("failure_rate", 60.0)),
            max_attempts=int(obj.get("max_attempts", 5)),
            max_delay_ms=float(max_delay) if max_delay is not None else None,
            jitter=float(obj.get("jitter", 0.0)),
            playback_scale=float(obj.get("playback_scale", 0.2)),
            max_wait_ms=float(obj.get("max_wait_ms", 800.0)),
        )


def backoff_delay(
    policy: str,
    attempt: int,
    base_delay_ms: float,
    max_delay_ms: float | None = None,
) -> float:
    """Delay before 1-based `attempt`.

    Uses the zero-based retry index i = attempt - 1: linear waits base*(i+1),
    exponential waits base*2**i.
    """

    if attempt < 1:
        raise ValueError(f"attempt must be >= 1 (got {attempt})")
    i = attempt - 1
    if policy == NONE:
        delay = 0.0
    elif policy == LINEAR:
        delay = base_delay_ms * (i + 1)
    elif policy == EXPONENTIAL:
        delay = base_delay_ms * (2**i)
    else:
        raise ValueError(f"unknown backoff policy '{policy}'")
    if max_delay_ms is not None:
        delay = min(delay, max_delay_ms)
    return float(delay)


def attempt_delay(config: RetryConfig, attempt: int, rng: RandomSource) -> float:
    delay = backoff_delay(
        config.policy, attempt, config.base_delay_ms, config.max_delay_ms
    )
    if config.jitter > 0 and delay > 0:
        delay += delay * config.jitter * float(rng.random())
    return delay


def draw_attempt(
    config: RetryConfig, position: int, delay_ms: float, rng: RandomSource
) -> AttemptRecord:
    if float(rng.random()) * 100.0 >= config.failure_rate:
        return AttemptRecord(position=position, outcome="success", delay_ms=delay_ms)
    idx = min(int(float(rng.random()) * len(FAILURE_REASONS)), len(FAILURE_REASONS) - 1)
    return AttemptRecord(
        position=position,
        outcome="failure",
        delay_ms=delay_ms,
        reason=FAILURE_REASONS[idx],
    )


def simulate_run(config: RetryConfig, rng: RandomSource) -> tuple[AttemptRecord, ...]:
    """One complete run without timers; same draws as the timer-driven simulator."""

    history: tuple[AttemptRecord, ...] = ()
    for n in range(1, config.max_attempts + 1):
        delay = attempt_delay(config, n, rng)
        record = draw_attempt(config, n, delay, rng)
        history = history + (record,)
        if record.succeeded:
            break
    return history


@dataclass(frozen=True)
class RetrySnapshot:
    state: str
    attempt: int  # attempt in flight (or last made); 0 before the first
    history: tuple[AttemptRecord, ...]
    pending_delay_ms: float | None


class RetrySimulator:
    """Timer-driven retry run: idle -> attempting(n) -> succeeded | exhausted."""

    def __init__(
        self,
        config: RetryConfig,
        *,
        scheduler: DelayScheduler,
        rng: RandomSource,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._rng = rng

        self._state = IDLE
        self._attempt = 0
        self._history: tuple[AttemptRecord, ...] = ()
        self._pending_delay: float | None = None
        self._handle: TimerHandle | None = None
        self._generation = 0
        self._observers: Observable[RetrySnapshot] = Observable()

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def state(self) -> str:
        return self._state

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def history(self) -> tuple[AttemptRecord, ...]:
        return self._history

    def snapshot(self) -> RetrySnapshot:
        return RetrySnapshot(
            state=self._state,
            attempt=self._attempt,
            history=self._history,
            pending_delay_ms=self._pending_delay,
        )

    def subscribe(self, callback: Callable[[RetrySnapshot], None]) -> Callable[[], None]:
        return self._observers.subscribe(callback)

    def wall_delay_ms(self, delay_ms: float) -> float:
        return min(delay_ms * self._config.playback_scale, self._config.max_wait_ms)

    def start(self) -> None:
        if self._state == ATTEMPTING:
            raise RuntimeError("Run already active")
        if self._state != IDLE:
            self.reset()
        self._enter_attempt(1)

    def reset(self) -> None:
        self._cancel_pending()
        self._state = IDLE
        self._attempt = 0
        self._history = ()
        self._publish()

    def close(self) -> None:
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending_delay = None

    def _enter_attempt(self, n: int) -> None:
        delay = attempt_delay(self._config, n, self._rng)
        self._cancel_pending()
        self._state = ATTEMPTING
        self._attempt = n
        self._pending_delay = delay
        token = self._generation
        self._handle = self._scheduler.call_later(
            self.wall_delay_ms(delay), lambda: self._fire(token)
        )
        self._publish()

    def _fire(self, token: int) -> None:
        if token != self._generation or self._state != ATTEMPTING:
            return
        self._handle = None
        delay = self._pending_delay if self._pending_delay is not None else 0.0
        record = draw_attempt(self._config, self._attempt, delay, self._rng)
        self._history = self._history + (record,)
        logger.debug(
            "retry attempt %d: %s (%s)", record.position, record.outcome, record.reason
        )

        if record.succeeded:
            self._finish(SUCCEEDED)
        elif self._attempt >= self._config.max_attempts:
            self._finish(EXHAUSTED)
        else:
            self._enter_attempt(self._attempt + 1)

    def _finish(self, state: str) -> None:
        self._pending_delay = None
        self._state = state
        self._publish()

    def _publish(self) -> None:
        self._observers.publish(self.snapshot())
