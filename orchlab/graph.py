from __future__ import annotations

"""Dependency-graph helpers over a validated Scenario.

Every function assumes `validate_scenario` has already accepted the scenario
(no cycles, no dangling ids). Iteration orders follow the scenario's task
order so results are reproducible.
"""

from collections import deque

from orchlab.model import Scenario, Task


def dependents(scenario: Scenario) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {t.id: [] for t in scenario.tasks}
    for t in scenario.tasks:
        for dep in dict.fromkeys(t.dependencies):
            out[dep].append(t.id)
    return out


def topological_order(scenario: Scenario) -> list[Task]:
    # Kahn's algorithm; ready tasks are taken in scenario order.
    tasks = scenario.task_map()
    indegree = {t.id: len(set(t.dependencies)) for t in scenario.tasks}
    children = dependents(scenario)

    ready = deque(t.id for t in scenario.tasks if indegree[t.id] == 0)
    order: list[Task] = []
    while ready:
        tid = ready.popleft()
        order.append(tasks[tid])
        for child in children[tid]:
            indegree[child] -= 1
            if indegree[child] == 0:
                ready.append(child)
    return order


def ancestors(scenario: Scenario, task_id: str) -> set[str]:
    tasks = scenario.task_map()
    seen: set[str] = set()
    stack = list(tasks[task_id].dependencies)
    while stack:
        tid = stack.pop()
        if tid in seen:
            continue
        seen.add(tid)
        stack.extend(tasks[tid].dependencies)
    return seen


def descendants(scenario: Scenario, task_id: str) -> set[str]:
    children = dependents(scenario)
    seen: set[str] = set()
    stack = list(children[task_id])
    while stack:
        tid = stack.pop()
        if tid in seen:
            continue
        seen.add(tid)
        stack.extend(children[tid])
    return seen


def parallel_siblings(scenario: Scenario, task_id: str) -> list[str]:
    """Tasks other than `task_id` that share exactly its dependency set."""

    key = frozenset(scenario.task_map()[task_id].dependencies)
    return [
        t.id
        for t in scenario.tasks
        if t.id != task_id and frozenset(t.dependencies) == key
    ]


def critical_path(scenario: Scenario) -> tuple[list[str], float]:
    """Longest root-to-leaf chain by cumulative duration.

    Ties keep the first candidate in topological order.
    """

    best: dict[str, tuple[float, str | None]] = {}
    for task in topological_order(scenario):
        prev: str | None = None
        prev_len = 0.0
        for dep in task.dependencies:
            if best[dep][0] > prev_len or prev is None:
                prev, prev_len = dep, best[dep][0]
        best[task.id] = (prev_len + task.duration, prev)

    if not best:
        return [], 0.0

    children = dependents(scenario)
    leaves = [tid for tid in best if not children[tid]]
    end = max(leaves, key=lambda tid: best[tid][0])
    length = best[end][0]
    path: list[str] = []
    cur: str | None = end
    while cur is not None:
        path.append(cur)
        cur = best[cur][1]
    path.reverse()
    return path, length


def components(scenario: Scenario) -> list[list[str]]:
    """Weakly connected components, each listed in scenario order."""

    neighbours: dict[str, set[str]] = {t.id: set() for t in scenario.tasks}
    for t in scenario.tasks:
        for dep in t.dependencies:
            neighbours[t.id].add(dep)
            neighbours[dep].add(t.id)

    position = {t.id: i for i, t in enumerate(scenario.tasks)}
    seen: set[str] = set()
    out: list[list[str]] = []
    for t in scenario.tasks:
        if t.id in seen:
            continue
        members: list[str] = []
        stack = [t.id]
        seen.add(t.id)
        while stack:
            tid = stack.pop()
            members.append(tid)
            for n in neighbours[tid]:
                if n not in seen:
                    seen.add(n)
                    stack.append(n)
        out.append(sorted(members, key=position.__getitem__))
    return out


def wave_index(scenario: Scenario) -> dict[str, int]:
    """Wave 0 for roots, otherwise one past the deepest dependency's wave."""

    waves: dict[str, int] = {}
    for task in topological_order(scenario):
        waves[task.id] = (
            1 + max(waves[d] for d in task.dependencies) if task.dependencies else 0
        )
    return waves


def component_waves(scenario: Scenario) -> list[list[list[str]]]:
    """Per component, the list of waves; each wave's ids sorted ascending."""

    idx = wave_index(scenario)
    out: list[list[list[str]]] = []
    for members in components(scenario):
        depth = max(idx[m] for m in members) + 1
        waves: list[list[str]] = [[] for _ in range(depth)]
        for m in members:
            waves[idx[m]].append(m)
        out.append([sorted(w) for w in waves])
    return out
