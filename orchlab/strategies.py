from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from orchlab.graph import component_waves, critical_path, wave_index
from orchlab.model import STRATEGY_NAMES, Scenario
from orchlab.pricing import (
    DEFAULT_PRICING,
    DEFAULT_TOKEN_CONFIG,
    PricingModel,
    TokenEstimationConfig,
    TokenTally,
    task_tallies,
    task_tokens,
    token_cost,
    tokens_to_duration,
)
from orchlab.schedule import compute_schedule
from orchlab.types import CostComparison, CostResult
from orchlab.validate import validate_scenario


class ExecutionStrategy(Protocol):
    name: str

    def latency(self, scenario: Scenario) -> float:
        raise NotImplementedError

    def dispatch_batches(self, scenario: Scenario) -> int:
        raise NotImplementedError


@dataclass(frozen=True)
class SequentialStrategy:
    name: str = "sequential"

    def latency(self, scenario: Scenario) -> float:
        return float(sum(t.duration for t in scenario.tasks))

    def dispatch_batches(self, scenario: Scenario) -> int:
        return len(scenario.tasks)


@dataclass(frozen=True)
class ParallelStrategy:
    name: str = "parallel"

    def latency(self, scenario: Scenario) -> float:
        _path, length = critical_path(scenario)
        return float(length)

    def dispatch_batches(self, scenario: Scenario) -> int:
        return len({w.start for w in compute_schedule(scenario)})


@dataclass(frozen=True)
class StagedStrategy:
    """Orchestrator that batches ready work into dependency waves.

    Components run side by side, so the slowest component sets the latency.
    """

    name: str = "staged"

    def latency(self, scenario: Scenario) -> float:
        tasks = scenario.task_map()
        per_component = [
            sum(max(tasks[tid].duration for tid in wave) for wave in waves)
            for waves in component_waves(scenario)
        ]
        return float(max(per_component, default=0.0))

    def dispatch_batches(self, scenario: Scenario) -> int:
        return sum(len(waves) for waves in component_waves(scenario))


def strategy_for_name(name: str) -> ExecutionStrategy:
    if name == "sequential":
        return SequentialStrategy()
    if name == "parallel":
        return ParallelStrategy()
    if name == "staged":
        return StagedStrategy()
    raise ValueError(
        f"unknown strategy '{name}' (expected one of {', '.join(STRATEGY_NAMES)})"
    )


def evaluate(
    scenario: Scenario,
    strategy: str,
    pricing: PricingModel = DEFAULT_PRICING,
    token_config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG,
) -> CostResult:
    impl = strategy_for_name(strategy)
    validate_scenario(scenario)

    input_tokens = 0
    output_tokens = 0
    for task in scenario.tasks:
        i, o = task_tokens(task, token_config)
        input_tokens += i
        output_tokens += o

    batches = impl.dispatch_batches(scenario)
    overhead = scenario.overhead_for(impl.name)
    overhead_tokens = (
        overhead.per_wave_tokens * batches
        + overhead.per_task_tokens * len(scenario.tasks)
    )

    # Coordination overhead is orchestrator prompt traffic, billed as input.
    cost = token_cost(input_tokens + overhead_tokens, output_tokens, pricing)

    latency = impl.latency(scenario)
    baseline = SequentialStrategy().latency(scenario)
    speedup = baseline / latency if latency > 0 else 1.0

    return CostResult(
        strategy=impl.name,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        overhead_tokens=overhead_tokens,
        input_cost=cost.input_cost,
        output_cost=cost.output_cost,
        total_cost=cost.total_cost,
        total_latency=latency,
        waves=batches,
        speedup_vs_baseline=speedup,
    )


def compare_strategies(
    scenario: Scenario,
    pricing: PricingModel = DEFAULT_PRICING,
    token_config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG,
) -> list[CostResult]:
    return [evaluate(scenario, name, pricing, token_config) for name in STRATEGY_NAMES]


def compare_context_isolation(
    scenario: Scenario,
    pricing: PricingModel = DEFAULT_PRICING,
    token_config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG,
) -> CostComparison:
    """Linear accumulated-context execution versus isolated parallel workers.

    In the linear baseline every step re-reads everything before it, so input
    tokens grow with the running total. Isolated workers only pay for their
    own context, and their time is the slowest task of each wave.
    """

    validate_scenario(scenario)
    waves = wave_index(scenario)
    order = sorted(
        scenario.tasks, key=lambda t: (waves[t.id], t.column, t.row)
    )
    tallies = {t.id: task_tallies(t) for t in scenario.tasks}
    per_task = {
        tid: (i.total(token_config), o.total(token_config))
        for tid, (i, o) in tallies.items()
    }

    # Totals sum words first and round once; times stay per task.
    isolated_input = sum((i for i, _o in tallies.values()), TokenTally()).total(
        token_config
    )
    output_tokens = sum((o for _i, o in tallies.values()), TokenTally()).total(
        token_config
    )

    linear = TokenTally()
    accumulated = TokenTally()
    for task in order:
        accumulated += tallies[task.id][0]
        linear += accumulated
    linear_input = linear.total(token_config)

    linear_time = sum(tokens_to_duration(i, token_config) for i, _o in per_task.values())
    wave_max: dict[int, int] = {}
    for tid, (i, _o) in per_task.items():
        wave_max[waves[tid]] = max(wave_max.get(waves[tid], 0), i)
    isolated_time = sum(tokens_to_duration(i, token_config) for i in wave_max.values())

    baseline = token_cost(linear_input, output_tokens, pricing, linear_time)
    optimized = token_cost(isolated_input, output_tokens, pricing, isolated_time)

    tokens_saved = baseline.input_tokens - optimized.input_tokens
    cost_saved = baseline.total_cost - optimized.total_cost
    return CostComparison(
        baseline=baseline,
        optimized=optimized,
        tokens_saved=tokens_saved,
        token_savings_percent=(
            tokens_saved / baseline.input_tokens * 100 if baseline.input_tokens else 0.0
        ),
        cost_saved=cost_saved,
        cost_savings_percent=(
            cost_saved / baseline.total_cost * 100 if baseline.total_cost > 0 else 0.0
        ),
        time_saved_ms=linear_time - isolated_time,
        speedup_factor=linear_time / isolated_time if isolated_time > 0 else 1.0,
    )
