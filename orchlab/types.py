from __future__ import annotations

from dataclasses import dataclass

PENDING = "pending"
ELIGIBLE = "eligible"
RUNNING = "running"
COMPLETED = "completed"

TASK_STATES: tuple[str, ...] = (PENDING, ELIGIBLE, RUNNING, COMPLETED)


@dataclass(frozen=True)
class TaskWindow:
    task_id: str
    eligible_at: float
    start: float
    end: float

    @property
    def queue_wait(self) -> float:
        return self.start - self.eligible_at

    def state_at(self, time: float) -> str:
        if time >= self.end:
            return COMPLETED
        if time >= self.start:
            return RUNNING
        if time >= self.eligible_at:
            return ELIGIBLE
        return PENDING


@dataclass(frozen=True)
class CostResult:
    strategy: str
    input_tokens: int
    output_tokens: int
    overhead_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    total_latency: float
    waves: int
    speedup_vs_baseline: float


@dataclass(frozen=True)
class TokenCost:
    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    estimated_time_ms: float | None = None


@dataclass(frozen=True)
class CostComparison:
    baseline: TokenCost
    optimized: TokenCost
    tokens_saved: int
    token_savings_percent: float
    cost_saved: float
    cost_savings_percent: float
    time_saved_ms: float
    speedup_factor: float


@dataclass(frozen=True)
class ConversationTurnCost:
    turn: int
    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    cumulative_input_tokens: int
    cumulative_total_cost: float


@dataclass(frozen=True)
class AttemptRecord:
    position: int  # 1-based
    outcome: str  # "success" | "failure"
    delay_ms: float
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"
