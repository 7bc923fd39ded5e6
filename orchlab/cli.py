from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from orchlab.io import (
    read_json,
    read_scenario,
    write_attempts_csv,
    write_summary_json,
    write_timeline_csv,
)
from orchlab.metrics import aggregate_retry_runs, summarize_strategies
from orchlab.model import STRATEGY_NAMES
from orchlab.montecarlo import simulate_many
from orchlab.pricing import (
    DEFAULT_PRICING,
    DEFAULT_TOKEN_CONFIG,
    PricingModel,
    TokenEstimationConfig,
)
from orchlab.retry import BACKOFF_POLICIES, RetryConfig
from orchlab.schedule import schedule_for
from orchlab.strategies import compare_context_isolation, compare_strategies
from orchlab.validate import ScenarioError


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="orchlab", description="Orchestration strategy simulator"
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    ev = sub.add_parser("evaluate", help="Compare execution strategies for a scenario")
    ev.add_argument("--scenario", required=True, type=Path)
    ev.add_argument("--pricing", required=False, type=Path)
    ev.add_argument("--token-config", required=False, type=Path)
    ev.add_argument("--out-summary", required=True, type=Path)

    tl = sub.add_parser("timeline", help="Write the task schedule for a strategy")
    tl.add_argument("--scenario", required=True, type=Path)
    tl.add_argument("--strategy", choices=STRATEGY_NAMES, default="parallel")
    tl.add_argument(
        "--concurrency",
        required=False,
        type=int,
        default=None,
        help="Cap on simultaneously running tasks (parallel strategy only)",
    )
    tl.add_argument("--out-trace", required=True, type=Path)

    rt = sub.add_parser("retry", help="Monte Carlo runs of the retry simulator")
    rt.add_argument("--policy", choices=BACKOFF_POLICIES, default="exponential")
    rt.add_argument("--base-ms", type=float, default=1000.0)
    rt.add_argument("--failure-rate", type=float, default=60.0)
    rt.add_argument("--max-attempts", type=int, default=5)
    rt.add_argument("--max-delay-ms", type=float, default=None)
    rt.add_argument("--jitter", type=float, default=0.0)
    rt.add_argument("--runs", required=True, type=int)
    rt.add_argument("--seed", required=True, type=int)
    rt.add_argument("--out-summary", required=True, type=Path)
    rt.add_argument("--out-attempts", required=False, type=Path)
    return p


def _evaluate(args: argparse.Namespace) -> int:
    scenario = read_scenario(args.scenario)
    pricing = (
        PricingModel.from_json(read_json(args.pricing)) if args.pricing else DEFAULT_PRICING
    )
    token_config = (
        TokenEstimationConfig.from_json(read_json(args.token_config))
        if args.token_config
        else DEFAULT_TOKEN_CONFIG
    )
    results = compare_strategies(scenario, pricing, token_config)
    isolation = compare_context_isolation(scenario, pricing, token_config)
    summary = summarize_strategies(
        scenario=scenario, results=results, isolation=isolation
    )
    write_summary_json(args.out_summary, summary)
    return 0


def _timeline(args: argparse.Namespace) -> int:
    scenario = read_scenario(args.scenario)
    schedule = schedule_for(scenario, args.strategy, args.concurrency)
    write_timeline_csv(args.out_trace, schedule)
    return 0


def _retry(args: argparse.Namespace) -> int:
    config = RetryConfig(
        policy=args.policy,
        base_delay_ms=args.base_ms,
        failure_rate=args.failure_rate,
        max_attempts=args.max_attempts,
        max_delay_ms=args.max_delay_ms,
        jitter=args.jitter,
    )
    runs = simulate_many(config=config, runs=args.runs, seed=args.seed)
    write_summary_json(args.out_summary, aggregate_retry_runs(config=config, runs=runs))
    if args.out_attempts:
        write_attempts_csv(args.out_attempts, runs)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    handlers = {"evaluate": _evaluate, "timeline": _timeline, "retry": _retry}
    handler = handlers.get(args.cmd)
    if handler is None:
        raise AssertionError(f"Unhandled command: {args.cmd}")

    try:
        return handler(args)
    except ScenarioError as e:
        sys.stderr.write(f"scenario error: {e}\n")
        return 2
