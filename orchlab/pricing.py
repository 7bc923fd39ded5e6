from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from orchlab.model import Task
from orchlab.types import ConversationTurnCost, TokenCost

TOKEN_TYPES: tuple[str, ...] = ("input", "output")


@dataclass(frozen=True)
class PricingModel:
    """Dollar price per million tokens, by token type."""

    input_price_per_million: float
    output_price_per_million: float
    model_name: str = "Default"

    def price_for(self, token_type: str) -> float:
        if token_type == "input":
            return self.input_price_per_million
        if token_type == "output":
            return self.output_price_per_million
        raise ValueError(f"unknown token type '{token_type}'")

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "PricingModel":
        prices = obj.get("prices") or {}
        return PricingModel(
            input_price_per_million=float(
                obj.get("input_price_per_million", prices.get("input", 1.75))
            ),
            output_price_per_million=float(
                obj.get("output_price_per_million", prices.get("output", 14.0))
            ),
            model_name=str(obj.get("model_name", "Default")),
        )


@dataclass(frozen=True)
class TokenEstimationConfig:
    tokens_per_word: float = 1.3
    tokens_per_second: float = 80.0

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "TokenEstimationConfig":
        cfg = TokenEstimationConfig(
            tokens_per_word=float(obj.get("tokens_per_word", 1.3)),
            tokens_per_second=float(obj.get("tokens_per_second", 80.0)),
        )
        if cfg.tokens_per_word < 0 or cfg.tokens_per_second <= 0:
            raise ValueError(
                "tokens_per_word must be >= 0 and tokens_per_second must be > 0"
            )
        return cfg


@dataclass(frozen=True)
class CachingConfig:
    enabled: bool = True
    hit_rate: float = 0.8  # 0..1
    cache_discount: float = 0.9  # 0.9 means cached tokens cost 10%


@dataclass(frozen=True)
class ConversationConfig:
    system_prompt_tokens: int = 500
    user_message_tokens: int = 100
    assistant_message_tokens: int = 200


DEFAULT_PRICING = PricingModel(input_price_per_million=1.75, output_price_per_million=14.0)
DEFAULT_TOKEN_CONFIG = TokenEstimationConfig()
DEFAULT_CACHING_CONFIG = CachingConfig()
DEFAULT_CONVERSATION_CONFIG = ConversationConfig()


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def count_words(text: str) -> int:
    if not text:
        return 0
    return len(text.split())


def words_to_tokens(
    word_count: float, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG
) -> int:
    return _round_half_up(word_count * config.tokens_per_word)


def estimate_tokens(
    text: str, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG
) -> int:
    return words_to_tokens(count_words(text), config)


def tokens_to_duration(
    tokens: float, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG
) -> float:
    return (tokens / config.tokens_per_second) * 1000.0


def words_to_duration(
    words: float, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG
) -> float:
    return tokens_to_duration(words_to_tokens(words, config), config)


def task_input_words(task: Task) -> int:
    words = count_words(task.description)
    words += sum(count_words(c.value) for c in task.context)
    words += sum(count_words(m.content) for m in task.internal_chat)
    return words


def task_output_words(task: Task) -> int:
    if task.internal_chat:
        return sum(
            count_words(m.content) for m in task.internal_chat if m.type == "output"
        )
    return sum(count_words(c.value) for c in task.context if c.type == "output")


@dataclass(frozen=True)
class TokenTally:
    """Explicit token counts plus content words that still need estimating.

    Words are summed before conversion, so a total over many tasks rounds once.
    """

    tokens: int = 0
    words: int = 0

    def __add__(self, other: "TokenTally") -> "TokenTally":
        return TokenTally(self.tokens + other.tokens, self.words + other.words)

    def total(self, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG) -> int:
        return self.tokens + words_to_tokens(self.words, config)


def task_tallies(task: Task) -> tuple[TokenTally, TokenTally]:
    """(input, output) tallies; explicit counts win over content words."""

    input_tally = (
        TokenTally(tokens=task.input_tokens)
        if task.input_tokens is not None
        else TokenTally(words=task_input_words(task))
    )
    output_tally = (
        TokenTally(tokens=task.output_tokens)
        if task.output_tokens is not None
        else TokenTally(words=task_output_words(task))
    )
    return input_tally, output_tally


def task_tokens(
    task: Task, config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG
) -> tuple[int, int]:
    input_tally, output_tally = task_tallies(task)
    return input_tally.total(config), output_tally.total(config)


def token_cost(
    input_tokens: int,
    output_tokens: int,
    pricing: PricingModel = DEFAULT_PRICING,
    estimated_time_ms: float | None = None,
) -> TokenCost:
    input_cost = (input_tokens / 1_000_000) * pricing.price_for("input")
    output_cost = (output_tokens / 1_000_000) * pricing.price_for("output")
    return TokenCost(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
        estimated_time_ms=estimated_time_ms,
    )


def cached_cost(
    input_tokens: int,
    output_tokens: int,
    pricing: PricingModel = DEFAULT_PRICING,
    caching: CachingConfig = DEFAULT_CACHING_CONFIG,
) -> TokenCost:
    if not caching.enabled:
        return token_cost(input_tokens, output_tokens, pricing)

    cached_tokens = _round_half_up(input_tokens * caching.hit_rate)
    uncached_tokens = input_tokens - cached_tokens
    price = pricing.price_for("input")
    input_cost = (uncached_tokens / 1_000_000) * price + (
        cached_tokens / 1_000_000
    ) * price * (1.0 - caching.cache_discount)
    output_cost = (output_tokens / 1_000_000) * pricing.price_for("output")
    return TokenCost(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def _turn_input_tokens(turn: int, config: ConversationConfig) -> int:
    # Each turn resends the system prompt plus the whole history so far.
    return (
        config.system_prompt_tokens
        + turn * config.user_message_tokens
        + (turn - 1) * config.assistant_message_tokens
    )


def naive_conversation_cost(
    turns: int,
    config: ConversationConfig = DEFAULT_CONVERSATION_CONFIG,
    pricing: PricingModel = DEFAULT_PRICING,
    token_config: TokenEstimationConfig = DEFAULT_TOKEN_CONFIG,
) -> TokenCost:
    input_tokens = sum(_turn_input_tokens(n, config) for n in range(1, turns + 1))
    output_tokens = turns * config.assistant_message_tokens
    return token_cost(
        input_tokens,
        output_tokens,
        pricing,
        estimated_time_ms=tokens_to_duration(input_tokens + output_tokens, token_config),
    )


def conversation_cost_series(
    max_turns: int,
    config: ConversationConfig = DEFAULT_CONVERSATION_CONFIG,
    pricing: PricingModel = DEFAULT_PRICING,
) -> list[ConversationTurnCost]:
    out: list[ConversationTurnCost] = []
    cumulative_input = 0
    cumulative_cost = 0.0
    for turn in range(1, max_turns + 1):
        input_tokens = _turn_input_tokens(turn, config)
        output_tokens = config.assistant_message_tokens
        cost = token_cost(input_tokens, output_tokens, pricing)
        cumulative_input += input_tokens
        cumulative_cost += cost.total_cost
        out.append(
            ConversationTurnCost(
                turn=turn,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                input_cost=cost.input_cost,
                output_cost=cost.output_cost,
                total_cost=cost.total_cost,
                cumulative_input_tokens=cumulative_input,
                cumulative_total_cost=cumulative_cost,
            )
        )
    return out
