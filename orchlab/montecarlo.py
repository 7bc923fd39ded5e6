from __future__ import annotations

# Seeded batch runs of the retry simulator, backed by NumPy's Generator.

import numpy as np

from orchlab.retry import RetryConfig, simulate_run
from orchlab.types import AttemptRecord


def _splitmix64(x: int) -> int:
    x = (x + 0x9E3779B97F4A7C15) & 0xFFFFFFFFFFFFFFFF
    z = x
    z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & 0xFFFFFFFFFFFFFFFF
    z = (z ^ (z >> 27)) * 0x94D049BB133111EB & 0xFFFFFFFFFFFFFFFF
    return z ^ (z >> 31)


def seed_for_run(base_seed: int, run_id: int) -> int:
    return _splitmix64((base_seed & 0xFFFFFFFFFFFFFFFF) ^ (run_id & 0xFFFFFFFFFFFFFFFF))


def simulate_many(
    *, config: RetryConfig, runs: int, seed: int
) -> list[tuple[AttemptRecord, ...]]:
    if runs < 0:
        raise ValueError(f"runs must be >= 0 (got {runs})")
    out: list[tuple[AttemptRecord, ...]] = []
    for run_id in range(runs):
        # Each run gets its own stream so results do not depend on run count.
        rng = np.random.default_rng(seed_for_run(seed, run_id))
        out.append(simulate_run(config, rng))
    return out
