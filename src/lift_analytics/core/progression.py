"""
Progression suggestions: next weight or rep target per exercise.

Implements linear, percentage and readiness-adaptive progression with
best-set plateau detection.
"""

from collections.abc import Iterable

from .config import (
    DELOAD_FACTOR,
    GOOD_READINESS_FACTOR,
    MODERATE_READINESS_FACTOR,
    PLATEAU_PUSH_FACTOR,
    PLATEAU_THRESHOLD,
    POOR_READINESS_FACTOR,
    READINESS_HIGH,
    READINESS_MODERATE,
    STARTING_WEIGHT,
    WEIGHT_INCREMENT,
)
from .metrics import best_volume_set, round_to_increment
from .models import (
    ExerciseHistory,
    ExerciseProgression,
    ExerciseSessionRecord,
    ProgressionPreferences,
    Suggestion,
)


def detect_plateau(
    sessions: list[ExerciseSessionRecord],
    threshold: float = PLATEAU_THRESHOLD,
) -> bool:
    """
    Detect a best-set volume plateau between the two most recent sessions.

    Plateau = (best_now - best_prev) ≤ threshold * best_prev

    Args:
        sessions: Sessions for one exercise, most recent first
        threshold: Fractional gain at or below which progress has stalled

    Returns:
        True if plateau detected; False with fewer than two usable sessions
    """
    if len(sessions) < 2:
        return False

    latest = best_volume_set(sessions[0].sets)
    previous = best_volume_set(sessions[1].sets)
    if latest is None or previous is None:
        return False

    current_volume = latest.volume or 0
    previous_volume = previous.volume or 0
    return current_volume - previous_volume <= threshold * previous_volume


def adaptive_factor(rho: float, plateau: bool) -> tuple[float, str]:
    """
    Load factor and rationale for adaptive progression.

    Plateau with rho < 0.7 deloads 10%; plateau with good readiness pushes
    2.5%.  Otherwise 1.05 / 1.0 / 0.975 for rho above 0.7 / above 0.5 / else.
    """
    if plateau and rho < READINESS_HIGH:
        return DELOAD_FACTOR, "Deload recommended: plateau detected with poor readiness"
    if plateau:
        return PLATEAU_PUSH_FACTOR, "Light progression despite plateau (good readiness allows push)"

    if rho > READINESS_HIGH:
        return GOOD_READINESS_FACTOR, "Adaptive progression based on excellent readiness"
    if rho > READINESS_MODERATE:
        return MODERATE_READINESS_FACTOR, "Adaptive progression based on good readiness"
    return POOR_READINESS_FACTOR, "Adaptive progression based on low readiness"


def _plateau_note(plateau: bool) -> str:
    return " (plateau detected - consider deload)" if plateau else ""


def suggest_progression(
    history: ExerciseHistory,
    rho: float,
    strategy: str = "adaptive",
    preferences: ProgressionPreferences | None = None,
    *,
    increment: float = WEIGHT_INCREMENT,
    plateau_threshold: float = PLATEAU_THRESHOLD,
    starting_weight: float = STARTING_WEIGHT,
) -> ExerciseProgression:
    """
    Suggest the next target for one exercise.

    Args:
        history: Recent sessions for the exercise, most recent first
        rho: Readiness in [0, 1]
        strategy: "linear", "percentage" or "adaptive" (anything else is
            treated as adaptive)
        preferences: Increments and progression model
        increment: Weight rounding step
        plateau_threshold: Fractional best-set volume gain counted as a plateau
        starting_weight: Suggestion when there is no history

    Returns:
        ExerciseProgression (possibly with no suggestions)
    """
    prefs = preferences or ProgressionPreferences()
    name = history.exercise_name

    if not history.sessions:
        return ExerciseProgression(
            exercise_name=name,
            suggestions=[
                Suggestion(
                    type="weight",
                    current=0,
                    suggested=starting_weight,
                    rationale="No historical data - starting with conservative weight",
                )
            ],
        )

    best = best_volume_set(history.sessions[0].sets)
    if best is None:
        return ExerciseProgression(exercise_name=name)

    plateau = detect_plateau(history.sessions, plateau_threshold)

    if not best.weight or not best.reps:
        return ExerciseProgression(exercise_name=name, plateau_detected=plateau)

    current_weight = best.weight
    current_reps = best.reps

    if strategy == "linear":
        step = prefs.linear_increment
        suggestion = Suggestion(
            type="weight",
            current=current_weight,
            suggested=current_weight + step,
            rationale=f"Linear progression: +{step}kg from last session{_plateau_note(plateau)}",
            plateau_detected=plateau,
        )
    elif strategy == "percentage":
        pct = prefs.percentage_increment / 100
        suggestion = Suggestion(
            type="weight",
            current=current_weight,
            suggested=round_to_increment(current_weight * (1 + pct), increment),
            rationale=(
                f"Percentage progression: +{pct * 100:.1f}% from last session"
                f"{_plateau_note(plateau)}"
            ),
            plateau_detected=plateau,
        )
    else:
        factor, rationale = adaptive_factor(rho, plateau)
        model = prefs.progression_model or ("reps" if factor == 1.0 else "weight")
        if model == "weight":
            suggestion = Suggestion(
                type="weight",
                current=current_weight,
                suggested=round_to_increment(current_weight * factor, increment),
                rationale=rationale,
                plateau_detected=plateau,
            )
        else:
            suggestion = Suggestion(
                type="reps",
                current=current_reps,
                suggested=current_reps + 1,
                rationale="Volume progression: add 1 rep while maintaining weight",
                plateau_detected=plateau,
            )

    return ExerciseProgression(
        exercise_name=name,
        suggestions=[suggestion],
        plateau_detected=plateau,
    )


def suggest_progressions(
    histories: Iterable[ExerciseHistory],
    rho: float,
    strategy: str = "adaptive",
    preferences: ProgressionPreferences | None = None,
    **kwargs,
) -> list[ExerciseProgression]:
    """Run suggest_progression for each exercise history, in order."""
    return [
        suggest_progression(history, rho, strategy, preferences, **kwargs)
        for history in histories
    ]
