"""
Session load plan: readiness + progression → prescribed sets.

Combines the readiness score, the overload multiplier and per-exercise
progression suggestions into weight / reps / rest for each planned set.
Below the unsafe readiness threshold no overload is prescribed at all.
"""

from collections.abc import Sequence

from .config import (
    DEFAULT_BASE_REPS,
    DEFAULT_BASE_WEIGHT,
    READINESS_HIGH,
    READINESS_MODERATE,
    REST_STEP_SECONDS,
    SET_FATIGUE_STEP,
    WEIGHT_INCREMENT,
    rest_seconds_for_readiness,
)
from .metrics import heaviest_set, round_to_increment
from .models import (
    ExerciseAdvice,
    ExerciseHistory,
    ExerciseProgression,
    PlannedSetAdvice,
    ReadinessResult,
    SessionAdvice,
)
from .overload import is_unsafe_readiness, overload_multiplier


def _tiered(rho: float, high: float, moderate: float, low: float) -> float:
    if rho > READINESS_HIGH:
        return high
    if rho > READINESS_MODERATE:
        return moderate
    return low


def _readiness_word(rho: float) -> str:
    if rho > READINESS_HIGH:
        return "good"
    if rho > READINESS_MODERATE:
        return "moderate"
    return "low"


def _plan_exercise(
    history: ExerciseHistory,
    progression: ExerciseProgression | None,
    rho: float,
    delta: float,
    sets_count: int,
    increment: float,
) -> ExerciseAdvice:
    base_weight, base_reps = DEFAULT_BASE_WEIGHT, DEFAULT_BASE_REPS
    last_sets = history.sessions[0].sets if history.sessions else []
    top = heaviest_set(last_sets)
    if top is not None:
        base_weight = top.weight or base_weight
        base_reps = top.reps or base_reps

    plateau = False
    lead_rationale = ""
    if progression is not None and progression.suggestions:
        weight_s = next((s for s in progression.suggestions if s.type == "weight"), None)
        reps_s = next((s for s in progression.suggestions if s.type == "reps"), None)
        target_weight = weight_s.suggested if weight_s else base_weight
        target_reps = int(reps_s.suggested) if reps_s else base_reps
        plateau = progression.plateau_detected
        lead_rationale = progression.suggestions[0].rationale
    else:
        target_weight = round_to_increment(base_weight * delta, increment)
        target_reps = round(base_reps * delta)

    base_rest = rest_seconds_for_readiness(rho)
    planned: list[PlannedSetAdvice] = []
    for i in range(sets_count):
        scale = 1.0 if i == 0 else 1 - SET_FATIGUE_STEP * i
        rest = base_rest + REST_STEP_SECONDS * i
        fatigue_pct = round((1 - scale) * 100)

        if lead_rationale:
            rationale = f"Set {i + 1}: {lead_rationale}"
            if plateau:
                rationale += " [Plateau Alert]"
            if i > 0:
                rationale += f" with {fatigue_pct}% fatigue adjustment"
        elif top is not None:
            rationale = (
                f"Set {i + 1}: Based on last session performance "
                f"({base_weight:g}kg x {base_reps}) with {_readiness_word(rho)} readiness"
            )
            if i > 0:
                rationale += f" and {fatigue_pct}% fatigue adjustment"
        else:
            rationale = f"Set {i + 1}: Conservative estimate with readiness adjustment"
            if i > 0:
                rationale += " and fatigue consideration"
        rationale += f". Rest {round(rest / 60)} minutes."

        planned.append(
            PlannedSetAdvice(
                set_id=f"{history.exercise_name}_{i + 1}",
                suggested_weight=round_to_increment(target_weight * scale, increment),
                suggested_reps=max(1, round(target_reps * scale)),
                suggested_rest_seconds=rest,
                rationale=rationale,
            )
        )

    best_volume = sum(s.volume or 0 for s in last_sets)
    return ExerciseAdvice(
        exercise_name=history.exercise_name,
        predicted_chance_to_beat_best=_tiered(rho, 0.8, 0.6, 0.4),
        best_volume=best_volume if best_volume > 0 else None,
        sets=planned,
    )


def build_session_advice(
    readiness: ReadinessResult,
    experience_level: str,
    histories: Sequence[ExerciseHistory],
    progressions: Sequence[ExerciseProgression] = (),
    sets_per_exercise: int = 3,
    increment: float = WEIGHT_INCREMENT,
) -> SessionAdvice:
    """
    Build the prescribed load plan for the upcoming session.

    Args:
        readiness: Output of calculate_readiness()
        experience_level: beginner / intermediate / advanced
        histories: Recent sessions per planned exercise
        progressions: Suggestions per exercise (matched by name)
        sets_per_exercise: Working sets to prescribe per exercise
        increment: Weight rounding step

    Returns:
        SessionAdvice; empty per-exercise plan when readiness is unsafe
    """
    rho = readiness.rho

    if is_unsafe_readiness(rho):
        return SessionAdvice(
            readiness=ReadinessResult(rho=rho, flags=[*readiness.flags, "unsafe_readiness"]),
            overload_multiplier=1.0,
            session_predicted_chance=0.3,
            summary="Your recovery metrics suggest taking it easy today. Stick to your planned loads.",
            warnings=["Low readiness detected - no overload recommended"],
        )

    delta = overload_multiplier(rho, experience_level)
    by_name = {p.exercise_name: p for p in progressions}

    per_exercise = [
        _plan_exercise(h, by_name.get(h.exercise_name), rho, delta, sets_per_exercise, increment)
        for h in histories
    ]

    total_sets = sum(len(e.sets) for e in per_exercise)
    base_rest = rest_seconds_for_readiness(rho)
    minutes = round((total_sets * base_rest + 60 * total_sets) / 60)

    plateaus = sum(1 for p in progressions if p.plateau_detected)
    warnings = []
    if plateaus:
        plural = "s" if plateaus > 1 else ""
        warnings.append(f"Plateau detected in {plateaus} exercise{plural} - consider deload or variation")

    source = "historical performance data" if any(h.sessions for h in histories) else "conservative estimates"
    summary = (
        f"Load recommendations based on readiness ({round(rho * 100)}%) and {source}. "
        f"Allow {minutes} minutes for this session."
    )

    return SessionAdvice(
        readiness=readiness,
        overload_multiplier=delta,
        session_predicted_chance=_tiered(rho, 0.75, 0.6, 0.45),
        summary=summary,
        per_exercise=per_exercise,
        warnings=warnings,
        estimated_minutes=minutes,
    )
