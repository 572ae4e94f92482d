"""
Overload calculator: readiness → load multiplier.

The multiplier is the single lever by which readiness influences every
downstream weight suggestion.
"""

from .config import (
    BEGINNER_OVERLOAD_CAP,
    OVERLOAD_MAX,
    OVERLOAD_MIN,
    OVERLOAD_SENSITIVITY,
    UNSAFE_READINESS,
    WEIGHT_INCREMENT,
)
from .metrics import clip, round_to_increment


def overload_multiplier(rho: float, experience_level: str = "intermediate") -> float:
    """
    Calculate the overload multiplier Delta.

    Delta = clip(1 + 0.3 * (rho - 0.5), 0.9, 1.1)

    Beginners are capped at 1.05 regardless of readiness.

    Args:
        rho: Readiness in [0, 1]
        experience_level: beginner / intermediate / advanced

    Returns:
        Multiplier in [0.9, 1.1]
    """
    delta = clip(1 + OVERLOAD_SENSITIVITY * (rho - 0.5), OVERLOAD_MIN, OVERLOAD_MAX)
    if experience_level == "beginner":
        delta = min(delta, BEGINNER_OVERLOAD_CAP)
    return delta


def apply_overload(
    weight: float,
    rho: float,
    experience_level: str = "intermediate",
    increment: float = WEIGHT_INCREMENT,
) -> float:
    """
    Scale a working weight by Delta and snap to the increment grid.

    Example: rho=0.8, intermediate, 100 → Delta 1.09 → 109 → 110.
    """
    return round_to_increment(weight * overload_multiplier(rho, experience_level), increment)


def is_unsafe_readiness(rho: float) -> bool:
    """True when readiness is too low to recommend any overload."""
    return rho < UNSAFE_READINESS
