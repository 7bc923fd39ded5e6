"""Headless engine behind the orchestration guide's interactive simulations.

- `schedule`: deterministic per-task states for a scenario at any time
- `strategies`: latency and cost of sequential / parallel / staged execution
- `playback`: play/pause/step/seek/reset controller over simulated time
- `retry`: backoff retry state machine with injected randomness

The package is UI-agnostic; the Qt client is a separate package on top of it.
"""

from __future__ import annotations

from orchlab.model import Scenario, Task
from orchlab.schedule import InvalidTaskError, compute_states
from orchlab.strategies import evaluate
from orchlab.validate import ScenarioError, load_scenario

__all__ = [
    "InvalidTaskError",
    "Scenario",
    "ScenarioError",
    "Task",
    "__version__",
    "compute_states",
    "evaluate",
    "load_scenario",
]

__version__ = "0.1.0"
