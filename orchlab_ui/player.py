from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TextIO

from PySide6.QtCore import QCoreApplication

from orchlab.fmt import format_duration
from orchlab.io import read_scenario_json
from orchlab.model import STRATEGY_NAMES
from orchlab.playback import FINISHED, PlaybackSnapshot
from orchlab.types import COMPLETED, ELIGIBLE, RUNNING
from orchlab.validate import ScenarioError
from orchlab_ui.bridges import PlaybackBridge


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="orchlab_ui", description="Play a scenario on the Qt event loop"
    )
    p.add_argument("--scenario", required=True, type=Path)
    p.add_argument("--strategy", choices=STRATEGY_NAMES, default="parallel")
    p.add_argument("--concurrency", type=int, default=None)
    p.add_argument("--speed", type=float, default=1.0)
    p.add_argument("--tick-ms", type=float, default=50.0)
    return p


def format_states_line(time_ms: float, states: dict[str, str]) -> str:
    running = sorted(t for t, s in states.items() if s == RUNNING)
    waiting = sorted(t for t, s in states.items() if s == ELIGIBLE)
    done = sum(1 for s in states.values() if s == COMPLETED)
    line = f"[{format_duration(time_ms):>7}] done {done}/{len(states)}"
    if running:
        line += f" running: {', '.join(running)}"
    if waiting:
        line += f" waiting: {', '.join(waiting)}"
    return line


def run_player(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    args = _build_parser().parse_args(argv)
    out = out if out is not None else sys.stdout

    app = QCoreApplication.instance() or QCoreApplication(["orchlab_ui"])
    bridge = PlaybackBridge()
    errors: list[str] = []

    bridge.failed.connect(errors.append)

    def _on_states(states: dict[str, str]) -> None:
        controller = bridge.controller()
        t = controller.current_time if controller is not None else 0.0
        out.write(format_states_line(t, states) + "\n")

    def _on_snapshot(snapshot: PlaybackSnapshot) -> None:
        if snapshot.state == FINISHED:
            app.quit()

    bridge.states_changed.connect(_on_states)
    bridge.snapshot_changed.connect(_on_snapshot)

    try:
        raw = read_scenario_json(args.scenario)
    except ScenarioError as e:
        sys.stderr.write(f"scenario error: {e}\n")
        return 2

    loaded = bridge.load(
        raw,
        strategy=args.strategy,
        concurrency_limit=args.concurrency,
        tick_ms=args.tick_ms,
    )
    if not loaded:
        sys.stderr.write(f"scenario error: {errors[-1] if errors else 'unknown'}\n")
        return 2

    controller = bridge.controller()
    assert controller is not None
    controller.set_speed(args.speed)
    controller.play()
    if controller.state == FINISHED:
        # Empty scenario: nothing to wait for.
        bridge.unload()
        return 0

    rc = app.exec()
    bridge.unload()
    return rc
