from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from orchlab.model import Scenario
from orchlab.types import AttemptRecord, TaskWindow
from orchlab.validate import ScenarioError, load_scenario


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def read_scenario_json(path: Path) -> Any:
    try:
        return read_json(path)
    except json.JSONDecodeError as e:
        raise ScenarioError(f"{path.name}: invalid JSON ({e})") from e


def read_scenario(path: Path) -> Scenario:
    return load_scenario(read_scenario_json(path))


def write_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")


def write_timeline_csv(path: Path, schedule: tuple[TaskWindow, ...] | list[TaskWindow]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["task_id", "eligible_at", "start", "end", "queue_wait", "duration"])
        for win in sorted(schedule, key=lambda x: (x.start, x.task_id)):
            w.writerow(
                [
                    win.task_id,
                    win.eligible_at,
                    win.start,
                    win.end,
                    win.queue_wait,
                    win.end - win.start,
                ]
            )


def write_attempts_csv(path: Path, runs: list[tuple[AttemptRecord, ...]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["run_id", "position", "outcome", "delay_ms", "reason"])
        for run_id, run in enumerate(runs):
            for a in run:
                w.writerow([run_id, a.position, a.outcome, a.delay_ms, a.reason or ""])
