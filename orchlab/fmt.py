from __future__ import annotations

# Display helpers shared by the CLI and the Qt client.


def format_cost(cost: float, decimals: int = 4) -> str:
    if cost >= 1:
        return f"${cost:.2f}"
    return f"${cost:.{decimals}f}"


def format_percentage(value: float, decimals: int = 0) -> str:
    return f"{value:.{decimals}f}%"


def format_speedup(factor: float) -> str:
    return f"{factor:.1f}x"


def format_tokens(tokens: float) -> str:
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return f"{int(tokens):,}"


def format_duration(ms: float) -> str:
    if ms >= 60_000:
        minutes = int(ms // 60_000)
        seconds = (ms % 60_000) / 1000
        return f"{minutes}m {seconds:.0f}s"
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{round(ms)}ms"
