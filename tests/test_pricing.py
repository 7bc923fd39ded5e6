from __future__ import annotations

import pytest

from orchlab.fmt import (
    format_cost,
    format_duration,
    format_percentage,
    format_speedup,
    format_tokens,
)
from orchlab.model import Task
from orchlab.pricing import (
    CachingConfig,
    PricingModel,
    TokenEstimationConfig,
    TokenTally,
    cached_cost,
    conversation_cost_series,
    count_words,
    estimate_tokens,
    naive_conversation_cost,
    task_tokens,
    token_cost,
    tokens_to_duration,
    words_to_duration,
    words_to_tokens,
)


def test_word_based_estimates() -> None:
    assert count_words("") == 0
    assert count_words("  one\ttwo\nthree ") == 3
    assert words_to_tokens(10) == 13
    # 6.5 rounds up.
    assert words_to_tokens(5) == 7
    assert estimate_tokens("one two three") == 4
    assert tokens_to_duration(80) == 1000.0
    assert words_to_duration(10) == pytest.approx(162.5)


def test_custom_estimation_config() -> None:
    cfg = TokenEstimationConfig.from_json({"tokens_per_word": 2, "tokens_per_second": 40})
    assert words_to_tokens(3, cfg) == 6
    assert tokens_to_duration(40, cfg) == 1000.0
    with pytest.raises(ValueError):
        TokenEstimationConfig.from_json({"tokens_per_second": 0})


def test_task_tokens_estimate_from_content_unless_explicit() -> None:
    task = Task.from_json(
        {
            "id": "t",
            "duration": 1,
            "description": "a b c d",
            "context": [
                {"label": "In", "value": "x y", "type": "input"},
                {"label": "Out", "value": "z", "type": "output"},
            ],
        }
    )
    assert task_tokens(task) == (9, 1)

    explicit = Task.from_json(
        {"id": "t", "duration": 1, "description": "a b c d", "input_tokens": 50}
    )
    assert task_tokens(explicit) == (50, 0)


def test_token_tally_rounds_summed_words_once() -> None:
    single = TokenTally(words=1)
    assert single.total() == 1
    assert (single + single + single).total() == 4
    assert (TokenTally(tokens=7) + TokenTally(words=2)).total() == 10


def test_output_words_prefer_worker_output_messages() -> None:
    task = Task.from_json(
        {
            "id": "t",
            "duration": 1,
            "context": [{"label": "Out", "value": "ignored here", "type": "output"}],
            "internal_chat": [
                {"id": "w1", "type": "thought", "content": "thinking"},
                {"id": "w2", "type": "output", "content": "one two three four five"},
            ],
        }
    )
    _in, out = task_tokens(task)
    assert out == words_to_tokens(5)


def test_pricing_model() -> None:
    pricing = PricingModel.from_json({"model_name": "m", "prices": {"input": 3, "output": 15}})
    assert pricing.price_for("input") == 3.0
    assert pricing.price_for("output") == 15.0
    with pytest.raises(ValueError, match="unknown token type"):
        pricing.price_for("cached")


def test_token_cost_uses_per_million_prices() -> None:
    cost = token_cost(1_000_000, 1_000_000)
    assert cost.input_cost == pytest.approx(1.75)
    assert cost.output_cost == pytest.approx(14.0)
    assert cost.total_cost == pytest.approx(15.75)


def test_cached_cost_discounts_cache_hits() -> None:
    cost = cached_cost(1_000_000, 0)
    assert cost.input_cost == pytest.approx(0.35 + 0.14)
    disabled = cached_cost(1_000_000, 10, caching=CachingConfig(enabled=False))
    assert disabled == token_cost(1_000_000, 10)


def test_conversation_history_grows_quadratically() -> None:
    cost = naive_conversation_cost(3)
    assert cost.input_tokens == 600 + 900 + 1200
    assert cost.output_tokens == 600
    assert cost.estimated_time_ms == pytest.approx(3300 / 80 * 1000)

    series = conversation_cost_series(3)
    assert [s.cumulative_input_tokens for s in series] == [600, 1500, 2700]
    assert series[-1].cumulative_total_cost == pytest.approx(
        sum(s.total_cost for s in series)
    )


def test_formatting_helpers() -> None:
    assert format_cost(0.01234) == "$0.0123"
    assert format_cost(2.5) == "$2.50"
    assert format_percentage(50) == "50%"
    assert format_speedup(5 / 3) == "1.7x"
    assert format_tokens(999) == "999"
    assert format_tokens(1500) == "1.5K"
    assert format_tokens(2_500_000) == "2.5M"
    assert format_duration(500) == "500ms"
    assert format_duration(1500) == "1.5s"
    assert format_duration(90_000) == "1m 30s"
