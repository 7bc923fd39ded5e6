from __future__ import annotations

import math
from collections import Counter
from dataclasses import asdict
from typing import Any

from orchlab.graph import critical_path
from orchlab.model import Scenario
from orchlab.retry import RetryConfig
from orchlab.types import AttemptRecord, CostComparison, CostResult


def _percentile_sorted(values_sorted: list[float], p: int) -> float:
    if not values_sorted:
        return math.nan
    if p <= 0:
        return float(values_sorted[0])
    if p >= 100:
        return float(values_sorted[-1])

    # Linear interpolation between closest ranks.
    n = len(values_sorted)
    pos = (p / 100.0) * (n - 1)
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return float(values_sorted[lo])
    frac = pos - lo
    return float(values_sorted[lo] * (1.0 - frac) + values_sorted[hi] * frac)


def percentiles(values: list[float], ps: list[int]) -> dict[str, float]:
    if not values:
        return {f"p{p}": math.nan for p in ps}
    values_sorted = sorted(float(x) for x in values)
    return {f"p{p}": _percentile_sorted(values_sorted, p) for p in ps}


def aggregate_retry_runs(
    *, config: RetryConfig, runs: list[tuple[AttemptRecord, ...]]
) -> dict[str, Any]:
    ok = [r for r in runs if r and r[-1].succeeded]
    attempts = [len(r) for r in runs]
    waited = [sum(a.delay_ms for a in r) for r in runs]

    reasons = Counter(a.reason for r in runs for a in r if a.reason is not None)

    return {
        "config": asdict(config),
        "runs_requested": len(runs),
        "runs_succeeded": len(ok),
        "runs_exhausted": len(runs) - len(ok),
        "success_rate": (len(ok) / len(runs)) if runs else math.nan,
        "attempts": percentiles([float(a) for a in attempts], [50, 90, 99, 100]),
        "attempts_histogram": {
            str(k): v for k, v in sorted(Counter(attempts).items())
        },
        "total_delay_ms": percentiles(waited, [50, 90, 95, 99]),
        "failure_reasons": {k: reasons[k] for k in sorted(reasons)},
    }


def summarize_strategies(
    *,
    scenario: Scenario,
    results: list[CostResult],
    isolation: CostComparison | None = None,
) -> dict[str, Any]:
    path, length = critical_path(scenario)
    summary: dict[str, Any] = {
        "scenario": scenario.id,
        "task_count": len(scenario.tasks),
        "critical_path": {"tasks": ">".join(path), "length": length},
        "strategies": {r.strategy: asdict(r) for r in results},
    }
    if isolation is not None:
        summary["context_isolation"] = asdict(isolation)
    return summary
