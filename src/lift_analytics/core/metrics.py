"""
Pure metric computation functions.

All functions are pure and typed for testability.
"""

import math
from typing import Sequence

from .config import WEIGHT_INCREMENT
from .models import SetRecord


def clip(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return min(max(value, lower), upper)


def round_to_increment(weight: float, increment: float = WEIGHT_INCREMENT) -> float:
    """
    Round a weight to the nearest loadable increment.

    round_to_increment(w, i) = round(w / i) * i

    Halves round up (7.5 / 5 → 10), so applying the function twice gives
    the same result as applying it once.

    Args:
        weight: Raw weight
        increment: Plate step (default 2.5)

    Returns:
        Weight snapped to the increment grid
    """
    if increment <= 0:
        return weight
    steps = math.floor(weight / increment + 0.5)
    return steps * increment


def epley_1rm(weight: float, reps: int) -> float:
    """
    Estimate 1RM using Epley formula.

    1RM = weight * (1 + reps/30)
    """
    if reps <= 0:
        return 0.0
    return weight * (1 + reps / 30)


def estimate_one_rm(weight: float, reps: int) -> float:
    """
    Estimate 1RM from a performed weight/rep pair.

    Brzycki: weight * 36 / (37 - reps) for reps ≤ 36, Epley above that.
    A single rep is its own 1RM.  Rounded to 2 decimals.

    Args:
        weight: Weight lifted
        reps: Reps performed

    Returns:
        Estimated 1RM, 0.0 for non-positive inputs
    """
    if weight <= 0 or reps <= 0:
        return 0.0
    if reps == 1:
        return weight
    if reps <= 36:
        return round(weight * (36 / (37 - reps)), 2)
    return round(epley_1rm(weight, reps), 2)


def best_volume_set(sets: Sequence[SetRecord]) -> SetRecord | None:
    """
    Return the highest-volume set; the earliest wins ties.

    Args:
        sets: Logged sets

    Returns:
        Best set, or None for an empty sequence
    """
    best: SetRecord | None = None
    for s in sets:
        if best is None or (s.volume or 0) > (best.volume or 0):
            best = s
    return best


def heaviest_set(sets: Sequence[SetRecord]) -> SetRecord | None:
    """Return the heaviest set; the earliest wins ties."""
    best: SetRecord | None = None
    for s in sets:
        if best is None or s.weight > best.weight:
            best = s
    return best


def linear_regression(points: Sequence[tuple[float, float]]) -> tuple[float, float]:
    """
    Ordinary least squares fit y = a + b*x.

    Args:
        points: (x, y) pairs

    Returns:
        Tuple (intercept a, slope b); a flat line through the mean when
        x has no spread
    """
    if len(points) < 2:
        if len(points) == 1:
            return (float(points[0][1]), 0.0)
        return (0.0, 0.0)

    n = len(points)
    sum_x = sum(p[0] for p in points)
    sum_y = sum(p[1] for p in points)
    sum_xy = sum(p[0] * p[1] for p in points)
    sum_x2 = sum(p[0] ** 2 for p in points)

    denominator = n * sum_x2 - sum_x**2
    if abs(denominator) < 1e-10:
        return (sum_y / n, 0.0)

    b = (n * sum_xy - sum_x * sum_y) / denominator
    a = (sum_y - b * sum_x) / n

    return (a, b)


def r_squared(
    points: Sequence[tuple[float, float]],
    intercept: float,
    slope: float,
) -> float:
    """
    Coefficient of determination of a fitted line.

    R² = 1 - SS_res / SS_tot.  A series with no variance is fitted
    perfectly by its mean, so R² is 1.0 when the residuals are also zero
    and 0.0 otherwise.
    """
    if not points:
        return 0.0
    mean_y = sum(p[1] for p in points) / len(points)
    ss_tot = sum((p[1] - mean_y) ** 2 for p in points)
    ss_res = sum((p[1] - (intercept + slope * p[0])) ** 2 for p in points)
    if ss_tot < 1e-12:
        return 1.0 if ss_res < 1e-12 else 0.0
    return 1 - ss_res / ss_tot
