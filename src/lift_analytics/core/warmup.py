"""
Warm-up pattern detection and default warm-up protocols.

Strategy:
1. Fetch recent sessions of the exercise (up to lookback_sessions)
2. Keep sessions that logged warm-up sets
3. Use the most recent pattern (the lifter's latest preference)
4. Scale it to today's working weight
5. Grade confidence by how many sessions carried warm-ups
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from .config import (
    WARMUP_HIGH_CONFIDENCE_SESSIONS,
    WARMUP_LOOKBACK_SESSIONS,
    WARMUP_MEDIUM_CONFIDENCE_SESSIONS,
    WARMUP_MIN_SESSIONS,
    WEIGHT_INCREMENT,
)
from .metrics import round_to_increment
from .models import (
    Confidence,
    SetRecord,
    WarmupPattern,
    WarmupProtocolConfig,
    WarmupSessionRecord,
    WarmupSet,
)

if TYPE_CHECKING:
    from ..io.repository import WarmupSource


def warmup_confidence(sessions_with_warmups: int) -> Confidence:
    """high for ≥5 warm-up sessions, medium for ≥2, else low."""
    if sessions_with_warmups >= WARMUP_HIGH_CONFIDENCE_SESSIONS:
        return "high"
    if sessions_with_warmups >= WARMUP_MEDIUM_CONFIDENCE_SESSIONS:
        return "medium"
    return "low"


def scale_warmup_sets(
    warmup_sets: list[SetRecord],
    top_set_weight: float,
    target_working_weight: float,
    increment: float = WEIGHT_INCREMENT,
) -> list[WarmupSet]:
    """
    Scale a past warm-up ladder to a new working weight.

    percentage_of_top = warmup_weight / top_set_weight
    weight = round_to_increment(percentage_of_top * target_working_weight)
    """
    scaled: list[WarmupSet] = []
    for number, warmup in enumerate(warmup_sets, 1):
        pct = warmup.weight / top_set_weight if top_set_weight > 0 else 0.0
        scaled.append(
            WarmupSet(
                set_number=number,
                weight=round_to_increment(pct * target_working_weight, increment),
                reps=warmup.reps,
                percentage_of_top=pct,
            )
        )
    return scaled


def pattern_from_sessions(
    sessions: list[WarmupSessionRecord],
    target_working_weight: float,
    min_sessions: int = WARMUP_MIN_SESSIONS,
    increment: float = WEIGHT_INCREMENT,
) -> WarmupPattern:
    """
    Derive a warm-up pattern from recent sessions (most recent first).

    Returns a low-confidence empty pattern with source "protocol" when
    there are fewer than min_sessions sessions or none logged warm-ups.
    """
    if len(sessions) < min_sessions:
        return WarmupPattern(confidence="low", sets=[], source="protocol", session_count=0)

    with_warmups = [s for s in sessions if s.warmup_sets]
    if not with_warmups:
        return WarmupPattern(
            confidence="low", sets=[], source="protocol", session_count=len(sessions)
        )

    latest = with_warmups[0]
    top = latest.top_set_weight if latest.top_set_weight is not None else target_working_weight

    return WarmupPattern(
        confidence=warmup_confidence(len(with_warmups)),
        sets=scale_warmup_sets(latest.warmup_sets, top, target_working_weight, increment),
        source="history",
        session_count=len(with_warmups),
    )


def detect_warmup_pattern(
    source: "WarmupSource",
    user_id: str,
    exercise_name: str,
    target_working_weight: float,
    target_working_reps: int | None = None,
    min_sessions: int = WARMUP_MIN_SESSIONS,
    lookback_sessions: int = WARMUP_LOOKBACK_SESSIONS,
    increment: float = WEIGHT_INCREMENT,
) -> WarmupPattern:
    """
    Detect the user's warm-up pattern for an exercise.

    Args:
        source: Data access for past sessions
        user_id: User id
        exercise_name: Exercise to look up
        target_working_weight: Today's top working weight
        target_working_reps: Today's working reps (unused by detection;
            kept so callers can pass the same arguments to plan_warmup)
        min_sessions: Minimum sessions required to trust history
        lookback_sessions: Number of recent sessions to inspect
        increment: Weight rounding step

    Returns:
        WarmupPattern with confidence, sets, source and session count
    """
    sessions = source.load_warmup_sessions(user_id, exercise_name, lookback_sessions)
    return pattern_from_sessions(sessions, target_working_weight, min_sessions, increment)


def generate_default_warmup_protocol(
    working_weight: float,
    working_reps: int,
    config: WarmupProtocolConfig | None = None,
    increment: float = WEIGHT_INCREMENT,
) -> list[WarmupSet]:
    """
    Percentage-ladder warm-up used when there is no history.

    Set i uses percentages[i] (the last percentage repeats, 80 if none).
    Reps: match_working → working reps; descending → max(5, 10 - 2i);
    fixed → fixed_reps.

    Args:
        working_weight: Target working weight
        working_reps: Target working reps
        config: Ladder preferences (default 40/60/80, 3 sets, match_working)
        increment: Weight rounding step

    Returns:
        Warm-up sets numbered from 1
    """
    config = config or WarmupProtocolConfig()
    sets: list[WarmupSet] = []

    for i in range(config.sets_count):
        if i < len(config.percentages):
            percentage = config.percentages[i]
        elif config.percentages:
            percentage = config.percentages[-1]
        else:
            percentage = 80

        if config.reps_strategy == "match_working":
            reps = working_reps
        elif config.reps_strategy == "descending":
            reps = max(5, 10 - i * 2)
        else:
            reps = config.fixed_reps

        sets.append(
            WarmupSet(
                set_number=i + 1,
                weight=round_to_increment(working_weight * percentage / 100, increment),
                reps=reps,
                percentage_of_top=percentage / 100,
            )
        )

    return sets


def plan_warmup(
    source: "WarmupSource",
    user_id: str,
    exercise_name: str,
    target_working_weight: float,
    target_working_reps: int,
    config: WarmupProtocolConfig | None = None,
    **kwargs,
) -> WarmupPattern:
    """
    Detected pattern, or the default protocol when history gives none.

    The fallback carries source "default" and low confidence.
    """
    pattern = detect_warmup_pattern(
        source, user_id, exercise_name, target_working_weight, target_working_reps, **kwargs
    )
    if pattern.sets:
        return pattern

    increment = kwargs.get("increment", WEIGHT_INCREMENT)
    return WarmupPattern(
        confidence="low",
        sets=generate_default_warmup_protocol(
            target_working_weight, target_working_reps, config, increment
        ),
        source="default",
        session_count=pattern.session_count,
    )


def volume_breakdown(sets: Iterable[SetRecord]) -> dict[str, float]:
    """
    Volume split by set type.

    Returns:
        Dict with total, working, warmup, backoff and drop volume
    """
    breakdown = {"total": 0.0, "working": 0.0, "warmup": 0.0, "backoff": 0.0, "drop": 0.0}
    for s in sets:
        volume = s.weight * s.reps
        breakdown["total"] += volume
        breakdown[s.set_type] += volume
    return breakdown
