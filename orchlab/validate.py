from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from orchlab.model import Scenario

logger = logging.getLogger(__name__)


class ScenarioError(ValueError):
    pass


def _find_cycle(deps: dict[str, tuple[str, ...]]) -> list[str] | None:
    """Return one dependency cycle as a list of ids (first == last), or None."""

    WHITE, GREY, BLACK = 0, 1, 2
    color = {tid: WHITE for tid in deps}

    for root in deps:
        if color[root] != WHITE:
            continue
        # Iterative DFS; stack holds (node, iterator over its deps).
        path: list[str] = [root]
        stack = [(root, iter(deps[root]))]
        color[root] = GREY
        while stack:
            node, it = stack[-1]
            nxt = next(it, None)
            if nxt is None:
                color[node] = BLACK
                stack.pop()
                path.pop()
                continue
            if color[nxt] == GREY:
                return path[path.index(nxt) :] + [nxt]
            if color[nxt] == WHITE:
                color[nxt] = GREY
                path.append(nxt)
                stack.append((nxt, iter(deps[nxt])))
    return None


def validate_scenario(scenario: Scenario) -> None:
    seen: set[str] = set()
    for task in scenario.tasks:
        if not task.id:
            raise ScenarioError("task ids must be non-empty")
        if task.id in seen:
            raise ScenarioError(f"duplicate task id '{task.id}'")
        seen.add(task.id)

        if not math.isfinite(task.duration) or task.duration < 0:
            raise ScenarioError(
                f"task '{task.id}' duration must be a finite number >= 0 "
                f"(got {task.duration})"
            )
        for key in ("input_tokens", "output_tokens"):
            v = getattr(task, key)
            if v is not None and v < 0:
                raise ScenarioError(f"task '{task.id}' {key} must be >= 0")

    for task in scenario.tasks:
        for dep in task.dependencies:
            if dep == task.id:
                raise ScenarioError(f"task '{task.id}' depends on itself")
            if dep not in seen:
                raise ScenarioError(
                    f"task '{task.id}' has missing dependency '{dep}'"
                )

    cycle = _find_cycle({t.id: t.dependencies for t in scenario.tasks})
    if cycle is not None:
        raise ScenarioError(f"dependency cycle detected: {' -> '.join(cycle)}")

    for msg in scenario.chat:
        for key in ("triggered_by", "triggered_at_start"):
            ref = getattr(msg, key)
            if ref is not None and ref not in seen:
                raise ScenarioError(
                    f"chat message '{msg.id}' {key} references unknown task '{ref}'"
                )

    for strategy, o in scenario.overhead.items():
        if o.per_wave_tokens < 0 or o.per_task_tokens < 0:
            raise ScenarioError(
                f"overhead for '{strategy}' must not be negative"
            )

    logger.debug(
        "scenario '%s' is valid (%d tasks)", scenario.id, len(scenario.tasks)
    )


def load_scenario(obj: dict) -> Scenario:
    """Parse and validate in one step; the usual entrypoint for content data."""

    from orchlab.model import Scenario

    scenario = Scenario.from_json(obj)
    validate_scenario(scenario)
    return scenario
