from __future__ import annotations

# Deterministic task-state scheduling over a Scenario.
#
# The schedule is a pure function of (scenario, concurrency limit); states at a
# given time are read off the precomputed windows, so scrubbing to any time
# yields the same answer as playing up to it.

import heapq
import logging
from collections.abc import Iterable

from orchlab.graph import component_waves, dependents
from orchlab.model import STRATEGY_NAMES, Scenario
from orchlab.types import COMPLETED, PENDING, RUNNING, TaskWindow
from orchlab.validate import validate_scenario

logger = logging.getLogger(__name__)

# Completion times closer than this (ms) count as one instant, so float sums
# such as 0.1 + 0.2 land together with 0.3.
SAME_INSTANT_MS = 1e-9


class InvalidTaskError(KeyError):
    # KeyError would repr() the message and wrap it in quotes.
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


def _check_limit(concurrency_limit: int | None) -> None:
    if concurrency_limit is not None and concurrency_limit < 1:
        raise ValueError(
            f"concurrency_limit must be >= 1 or None (got {concurrency_limit})"
        )


def compute_schedule(
    scenario: Scenario, concurrency_limit: int | None = None
) -> tuple[TaskWindow, ...]:
    """Admission/completion windows for every task, in scenario order.

    Eligible tasks are admitted in (eligible_at, id) order while slots are
    free; with no limit every eligible task starts immediately.
    """

    _check_limit(concurrency_limit)
    validate_scenario(scenario)

    tasks = scenario.task_map()
    children = dependents(scenario)
    remaining = {t.id: len(set(t.dependencies)) for t in scenario.tasks}

    # (eligible_at, task_id)
    ready: list[tuple[float, str]] = []
    # (end_time, task_id)
    completion_heap: list[tuple[float, str]] = []
    windows: dict[str, TaskWindow] = {}
    running = 0

    for t in scenario.tasks:
        if remaining[t.id] == 0:
            heapq.heappush(ready, (0.0, t.id))

    def try_start(now: float) -> None:
        nonlocal running
        while ready and (concurrency_limit is None or running < concurrency_limit):
            eligible_at, tid = heapq.heappop(ready)
            end = now + float(tasks[tid].duration)
            windows[tid] = TaskWindow(
                task_id=tid, eligible_at=eligible_at, start=now, end=end
            )
            heapq.heappush(completion_heap, (end, tid))
            running += 1

    try_start(0.0)

    while completion_heap:
        t_next = completion_heap[0][0]

        # Drain every completion at this instant before admitting new work.
        while completion_heap and completion_heap[0][0] - t_next <= SAME_INSTANT_MS:
            _, tid = heapq.heappop(completion_heap)
            running -= 1
            for child in children[tid]:
                remaining[child] -= 1
                if remaining[child] == 0:
                    heapq.heappush(ready, (t_next, child))

        try_start(t_next)

    return tuple(windows[t.id] for t in scenario.tasks)


def compute_staged_schedule(scenario: Scenario) -> tuple[TaskWindow, ...]:
    """Wave-batched schedule: a wave starts once its component's previous wave ends."""

    validate_scenario(scenario)
    tasks = scenario.task_map()
    windows: dict[str, TaskWindow] = {}

    for waves in component_waves(scenario):
        wave_start = 0.0
        for wave in waves:
            wave_end = wave_start
            for tid in wave:
                task = tasks[tid]
                eligible_at = max(
                    (windows[d].end for d in task.dependencies), default=0.0
                )
                end = wave_start + float(task.duration)
                windows[tid] = TaskWindow(
                    task_id=tid, eligible_at=eligible_at, start=wave_start, end=end
                )
                wave_end = max(wave_end, end)
            wave_start = wave_end

    return tuple(windows[t.id] for t in scenario.tasks)


def schedule_for(
    scenario: Scenario, strategy: str, concurrency_limit: int | None = None
) -> tuple[TaskWindow, ...]:
    """Schedule that visualizes `strategy`; the limit only applies to parallel."""

    if strategy == "sequential":
        return compute_schedule(scenario, concurrency_limit=1)
    if strategy == "parallel":
        return compute_schedule(scenario, concurrency_limit=concurrency_limit)
    if strategy == "staged":
        return compute_staged_schedule(scenario)
    raise ValueError(
        f"unknown strategy '{strategy}' (expected one of {', '.join(STRATEGY_NAMES)})"
    )


def makespan(schedule: Iterable[TaskWindow]) -> float:
    return max((w.end for w in schedule), default=0.0)


def states_from_schedule(
    schedule: Iterable[TaskWindow], time: float
) -> dict[str, str]:
    return {w.task_id: w.state_at(time) for w in schedule}


def compute_states(
    scenario: Scenario, time: float, concurrency_limit: int | None = None
) -> dict[str, str]:
    return states_from_schedule(compute_schedule(scenario, concurrency_limit), time)


def state_of(
    scenario: Scenario,
    task_id: str,
    time: float,
    concurrency_limit: int | None = None,
) -> str:
    states = compute_states(scenario, time, concurrency_limit)
    if task_id not in states:
        raise InvalidTaskError(f"unknown task id '{task_id}'")
    return states[task_id]


def states_for(
    scenario: Scenario,
    time: float,
    task_ids: Iterable[str],
    concurrency_limit: int | None = None,
    strict: bool = False,
) -> dict[str, str]:
    """States for a subset of ids.

    Unknown ids raise InvalidTaskError when `strict`, otherwise they are
    dropped with a warning so one bad reference cannot take down a view.
    """

    states = compute_states(scenario, time, concurrency_limit)
    out: dict[str, str] = {}
    for tid in task_ids:
        if tid in states:
            out[tid] = states[tid]
        elif strict:
            raise InvalidTaskError(f"unknown task id '{tid}'")
        else:
            logger.warning(
                "ignoring unknown task id '%s' in scenario '%s'", tid, scenario.id
            )
    return out


def visible_messages(
    scenario: Scenario, states: dict[str, str], time: float
) -> list[str]:
    """Ids of chat messages revealed by the given task states, in chat order."""

    out: list[str] = []
    for msg in scenario.chat:
        if msg.triggered_at_start is None and msg.triggered_by is None:
            if time >= msg.offset_ms:
                out.append(msg.id)
            continue
        started = msg.triggered_at_start is not None and states.get(
            msg.triggered_at_start, PENDING
        ) in (RUNNING, COMPLETED)
        finished = (
            msg.triggered_by is not None
            and states.get(msg.triggered_by, PENDING) == COMPLETED
        )
        if started or finished:
            out.append(msg.id)
    return out
