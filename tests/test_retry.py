from __future__ import annotations

import random

import pytest

from orchlab.clock import ManualTimeouts
from orchlab.retry import (
    ATTEMPTING,
    EXHAUSTED,
    FAILURE_REASONS,
    IDLE,
    SUCCEEDED,
    RetryConfig,
    RetrySimulator,
    RetrySnapshot,
    attempt_delay,
    backoff_delay,
    simulate_run,
)


class _Scripted:
    def __init__(self, values: list[float]) -> None:
        self._values = list(values)

    def random(self) -> float:
        if not self._values:
            raise AssertionError("random source exhausted")
        return self._values.pop(0)


def _sim(config: RetryConfig, rng) -> tuple[RetrySimulator, ManualTimeouts]:
    timeouts = ManualTimeouts()
    return RetrySimulator(config, scheduler=timeouts, rng=rng), timeouts


def test_backoff_policies() -> None:
    assert [backoff_delay("none", n, 1000) for n in (1, 2, 3)] == [0.0, 0.0, 0.0]
    assert [backoff_delay("linear", n, 1000) for n in (1, 2, 3)] == [1000.0, 2000.0, 3000.0]
    assert [backoff_delay("exponential", n, 1000) for n in (1, 2, 3, 4)] == [
        1000.0,
        2000.0,
        4000.0,
        8000.0,
    ]
    assert backoff_delay("exponential", 6, 1000, max_delay_ms=5000) == 5000.0
    with pytest.raises(ValueError):
        backoff_delay("exponential", 0, 1000)
    with pytest.raises(ValueError):
        backoff_delay("fibonacci", 1, 1000)


def test_jitter_adds_a_fraction_of_the_delay() -> None:
    config = RetryConfig(policy="linear", jitter=0.5)
    assert attempt_delay(config, 1, _Scripted([0.5])) == 1250.0


def test_exponential_run_delays_double_after_failures() -> None:
    config = RetryConfig(policy="exponential", base_delay_ms=1000, max_attempts=5)
    # fail (reason 0), fail (reason 1), succeed
    sim, timeouts = _sim(config, _Scripted([0.1, 0.0, 0.1, 0.3, 0.9]))

    sim.start()
    assert (sim.state, sim.attempt) == (ATTEMPTING, 1)
    assert sim.snapshot().pending_delay_ms == 1000.0

    # Wall-clock waits are scaled down: 1000ms of backoff is 200ms of demo time.
    timeouts.advance(199)
    assert sim.history == ()
    timeouts.advance(1)
    assert [a.outcome for a in sim.history] == ["failure"]
    assert sim.history[0].reason == FAILURE_REASONS[0]
    assert sim.snapshot().pending_delay_ms == 2000.0

    timeouts.run_all()
    assert sim.state == SUCCEEDED
    assert [a.delay_ms for a in sim.history] == [1000.0, 2000.0, 4000.0]
    assert [a.position for a in sim.history] == [1, 2, 3]
    assert sim.history[1].reason == "Timeout"
    assert sim.history[2].succeeded
    assert timeouts.now_ms == 200 + 400 + 800


@pytest.mark.parametrize("seed", range(20))
def test_zero_failure_rate_succeeds_on_first_attempt(seed: int) -> None:
    sim, timeouts = _sim(RetryConfig(failure_rate=0), random.Random(seed))
    sim.start()
    timeouts.run_all()
    assert sim.state == SUCCEEDED
    assert len(sim.history) == 1


@pytest.mark.parametrize("cap", [1, 3, 5])
def test_full_failure_rate_exhausts_at_the_cap(cap: int) -> None:
    sim, timeouts = _sim(
        RetryConfig(failure_rate=100, max_attempts=cap), random.Random(cap)
    )
    sim.start()
    timeouts.run_all()
    assert sim.state == EXHAUSTED
    assert len(sim.history) == cap
    assert all(a.reason in FAILURE_REASONS for a in sim.history)


def test_reset_mid_attempt_leaves_nothing_pending() -> None:
    sim, timeouts = _sim(RetryConfig(failure_rate=100), random.Random(0))
    sim.start()
    timeouts.advance(200)
    assert len(sim.history) == 1
    assert timeouts.pending_count() == 1

    sim.reset()
    assert timeouts.pending_count() == 0
    timeouts.advance(100_000)
    assert (sim.state, sim.attempt, sim.history) == (IDLE, 0, ())


def test_history_is_extended_not_mutated() -> None:
    sim, timeouts = _sim(RetryConfig(failure_rate=100, max_attempts=3), random.Random(0))
    sim.start()
    timeouts.advance(200)
    early = sim.snapshot().history

    timeouts.run_all()
    assert len(early) == 1
    assert sim.history[:1] == early
    with pytest.raises(AttributeError):
        early[0].outcome = "success"  # type: ignore[misc]


def test_start_while_attempting_raises_and_restart_after_finish() -> None:
    sim, timeouts = _sim(RetryConfig(failure_rate=0), random.Random(0))
    sim.start()
    with pytest.raises(RuntimeError, match="already active"):
        sim.start()
    timeouts.run_all()
    assert sim.state == SUCCEEDED

    sim.start()
    assert (sim.state, sim.attempt, sim.history) == (ATTEMPTING, 1, ())


def test_subscribers_see_each_transition() -> None:
    sim, timeouts = _sim(RetryConfig(failure_rate=0), random.Random(0))
    seen: list[RetrySnapshot] = []
    sim.subscribe(seen.append)

    sim.start()
    timeouts.run_all()
    assert [s.state for s in seen] == [ATTEMPTING, SUCCEEDED]
    assert seen[-1].pending_delay_ms is None


def test_close_cancels_the_pending_attempt() -> None:
    sim, timeouts = _sim(RetryConfig(), random.Random(0))
    sim.start()
    sim.close()
    timeouts.run_all()
    assert sim.history == ()


def test_simulate_run_matches_timer_driven_run() -> None:
    config = RetryConfig(failure_rate=60, max_attempts=5)
    sim, timeouts = _sim(config, random.Random(42))
    sim.start()
    timeouts.run_all()
    assert simulate_run(config, random.Random(42)) == sim.history


@pytest.mark.parametrize(
    "kwargs",
    [
        {"policy": "fibonacci"},
        {"failure_rate": 101},
        {"failure_rate": -1},
        {"max_attempts": 0},
        {"base_delay_ms": -1},
        {"jitter": -0.1},
    ],
)
def test_invalid_config_raises(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RetryConfig(**kwargs)


def test_config_from_json() -> None:
    config = RetryConfig.from_json({"policy": "linear", "failure_rate": 25, "max_delay_ms": 3000})
    assert config.policy == "linear"
    assert config.failure_rate == 25.0
    assert config.max_delay_ms == 3000.0
    assert config.max_attempts == 5
