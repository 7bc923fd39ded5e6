from __future__ import annotations

from orchlab.graph import (
    ancestors,
    component_waves,
    components,
    critical_path,
    dependents,
    descendants,
    parallel_siblings,
    topological_order,
    wave_index,
)
from orchlab.io import read_scenario
from orchlab.model import Scenario


def _diamond() -> Scenario:
    return Scenario.from_json(
        {
            "tasks": [
                {"id": "r", "duration": 0},
                {"id": "a", "duration": 1, "dependencies": ["r"]},
                {"id": "b", "duration": 5, "dependencies": ["r"]},
                {"id": "c", "duration": 5, "dependencies": ["a"]},
                {"id": "d", "duration": 0, "dependencies": ["b", "c"]},
            ]
        }
    )


def test_dependents_ignore_repeated_dependency_entries() -> None:
    scenario = Scenario.from_json(
        {
            "tasks": [
                {"id": "a", "duration": 1},
                {"id": "b", "duration": 1, "dependencies": ["a", "a"]},
            ]
        }
    )
    assert dependents(scenario) == {"a": ["b"], "b": []}
    assert [t.id for t in topological_order(scenario)] == ["a", "b"]


def test_topological_order_respects_dependencies() -> None:
    order = [t.id for t in topological_order(_diamond())]
    pos = {tid: i for i, tid in enumerate(order)}
    assert pos["r"] < pos["a"] < pos["c"] < pos["d"]
    assert pos["b"] < pos["d"]


def test_ancestors_descendants_and_siblings(abc: Scenario) -> None:
    diamond = _diamond()
    assert ancestors(diamond, "d") == {"r", "a", "b", "c"}
    assert descendants(diamond, "a") == {"c", "d"}
    assert parallel_siblings(abc, "B") == ["C"]
    assert parallel_siblings(abc, "A") == []


def test_critical_path_of_diamond() -> None:
    path, length = critical_path(_diamond())
    assert path == ["r", "a", "c", "d"]
    assert length == 6.0


def test_critical_path_of_empty_scenario() -> None:
    assert critical_path(Scenario.from_json({"tasks": []})) == ([], 0.0)


def test_waves_are_longest_path_levels() -> None:
    assert wave_index(_diamond()) == {"r": 0, "a": 1, "b": 1, "c": 2, "d": 3}
    assert component_waves(_diamond()) == [[["r"], ["a", "b"], ["c"], ["d"]]]


def test_disconnected_subgraphs_get_independent_waves() -> None:
    scenario = Scenario.from_json(
        {
            "tasks": [
                {"id": "p", "duration": 2},
                {"id": "r", "duration": 4},
                {"id": "q", "duration": 3, "dependencies": ["p"]},
            ]
        }
    )
    assert components(scenario) == [["p", "q"], ["r"]]
    assert component_waves(scenario) == [[["p"], ["q"]], [["r"]]]


def test_search_mapreduce_critical_path(examples_dir) -> None:
    scenario = read_scenario(examples_dir / "search_mapreduce.json")
    path, length = critical_path(scenario)
    assert path == ["query", "search", "analyze-3", "synthesize"]
    assert length == 4100.0
