"""
Weight normalization helpers.

Declared weights are relative: they are scaled so that the contributions of
a division always add up to WEIGHT_TOTAL, whatever the declared sum.
"""
import math
from typing import Iterable, List, Optional

from goal_progress.config_manager import config


def total_weight(weights: Iterable[Optional[float]]) -> float:
    return sum((w or 0) for w in weights)


def normalization_factor(total: float) -> float:
    """
    Multiplier applied to every declared weight.

    Returns WEIGHT_TOTAL / total, or 0 when nothing is weighted, in which
    case every contribution is 0.
    """
    if total > 0:
        return config.WEIGHT_TOTAL / total
    return 0


def clamp01(x: float) -> float:
    if math.isnan(x) or x < 0:
        return 0
    if x >= 1:
        return 1
    return x


def round_percent(value: float) -> float:
    """Round half-up to PERCENT_DECIMALS and clamp into [0, WEIGHT_TOTAL]."""
    scale = 10 ** config.PERCENT_DECIMALS
    rounded = math.floor(value * scale + 0.5) / scale
    return max(0, min(config.WEIGHT_TOTAL, rounded))


def suggest_equal_weights(count: int) -> List[int]:
    """
    Split WEIGHT_TOTAL into `count` integer weights.

    The remainder goes to the first items, so the spread is at most 1:
        >>> suggest_equal_weights(3)
        [34, 33, 33]
    """
    if count <= 0:
        return []
    total = int(config.WEIGHT_TOTAL)
    base = total // count
    remainder = total - base * count
    weights = [base] * count
    for i in range(remainder):
        weights[i] += 1
    return weights


def is_weight_in_range(weight: float) -> bool:
    return not math.isnan(weight) and config.WEIGHT_MIN <= weight <= config.WEIGHT_MAX
