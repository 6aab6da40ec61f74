"""
Crypto Risk Guard - Statistics Utilities

Numeric primitives shared by the scorers and record builders.
"""
import math

from utils import safe_float


def daily_returns(prices: list[float]) -> list[float]:
    """Fractional day-over-day returns r_i = (p_i - p_{i-1}) / p_{i-1}.

    Pairs whose previous price is zero are skipped.
    """
    returns = []
    for prev, curr in zip(prices, prices[1:]):
        prev = safe_float(prev)
        curr = safe_float(curr)
        if prev == 0:
            continue
        returns.append((curr - prev) / prev)
    return returns


def population_std(values: list[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def volatility(prices: list[float]) -> float:
    """Population standard deviation of daily returns. Fewer than 2 prices -> 0."""
    if len(prices) < 2:
        return 0.0
    return population_std(daily_returns(prices))


def safe_ratio(numerator: float, denominator: float, default: float | None = None) -> float | None:
    """numerator / denominator, or `default` when the denominator is not positive."""
    if denominator is None or numerator is None or denominator <= 0:
        return default
    return numerator / denominator


def pct_change(old: float, new: float) -> float | None:
    """Percent change from old to new, None when old is missing or zero."""
    if not old or new is None:
        return None
    return (new - old) / old * 100


def percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return part / whole * 100


def percentage_breakdown(labels: list[str],
                         keys: tuple = ("positive", "neutral", "negative")) -> dict:
    """Share of each label in `labels`, in rounded whole percent.

    An empty list is reported as fully neutral.
    """
    if not labels:
        return {k: (100 if k == "neutral" else 0) for k in keys}
    total = len(labels)
    return {k: round(percentage(labels.count(k), total)) for k in keys}


def holder_concentration(percentages: list[float]) -> tuple[float, float]:
    """(top holder %, top 10 holders %) after sorting holdings descending."""
    ordered = sorted((safe_float(p) for p in percentages), reverse=True)
    if not ordered:
        return 0.0, 0.0
    return ordered[0], sum(ordered[:10])


def buy_sell_ratio(buys: int, sells: int) -> float:
    """buys / sells; 2 when only buys exist, 1 when there is no activity."""
    if sells > 0:
        return buys / sells
    return 2.0 if buys > 0 else 1.0
