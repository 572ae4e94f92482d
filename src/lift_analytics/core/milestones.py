"""
Milestone achievement checking and default milestone generation.

check_and_record_milestones() batches every read into three queries
(milestones, 30-day performances, recent achievements), groups the rows in
memory, and evaluates each milestone through a table of pure evaluators
keyed by MilestoneType.  New achievements are appended exactly once per
milestone per dedup window.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from .config import (
    DEFAULT_BODYWEIGHT,
    DEFAULT_SETTINGS,
    MILESTONES_PER_LEVEL,
    EngineSettings,
)
from .models import (
    Milestone,
    MilestoneAchievement,
    MilestoneNotification,
    MilestoneType,
    Performance,
)

if TYPE_CHECKING:
    from ..io.repository import MilestoneSource

LOGGER = logging.getLogger(__name__)

UNKNOWN_EXERCISE = "Unknown exercise"


@dataclass(frozen=True)
class Evaluation:
    """Outcome of checking one milestone."""

    achieved: bool
    value: float


NOT_ACHIEVED = Evaluation(achieved=False, value=0)


# =============================================================================
# EVALUATORS
# =============================================================================

Evaluator = Callable[[Milestone, Sequence[Performance], datetime, EngineSettings], Evaluation]


def _evaluate_one_rm(
    milestone: Milestone,
    performances: Sequence[Performance],
    now: datetime,
    settings: EngineSettings,
) -> Evaluation:
    """Best 1RM estimate in the window must reach the target."""
    estimates = [p.one_rm_estimate for p in performances if p.one_rm_estimate is not None]
    best = max(estimates, default=0.0)
    return Evaluation(achieved=best >= milestone.target_value, value=best)


def _evaluate_volume(
    milestone: Milestone,
    performances: Sequence[Performance],
    now: datetime,
    settings: EngineSettings,
) -> Evaluation:
    """
    Volume of the single most recent session in the last 7 days.

    Older qualifying sessions are deliberately not considered.
    """
    cutoff = now - timedelta(days=settings.volume_window_days)
    recent = [p for p in performances if p.workout_date >= cutoff]
    if not recent:
        return NOT_ACHIEVED

    latest = max(recent, key=lambda p: p.workout_date)
    total = latest.volume
    return Evaluation(achieved=total >= milestone.target_value, value=total)


def _evaluate_reps(
    milestone: Milestone,
    performances: Sequence[Performance],
    now: datetime,
    settings: EngineSettings,
) -> Evaluation:
    """Max reps performed at ≥90% of the target weight."""
    floor_weight = milestone.target_value * settings.reps_weight_fraction
    max_reps = max(
        (p.reps for p in performances if p.weight >= floor_weight),
        default=0,
    )
    return Evaluation(achieved=max_reps >= milestone.target_value, value=max_reps)


EVALUATORS: dict[MilestoneType, Evaluator] = {
    MilestoneType.ABSOLUTE_WEIGHT: _evaluate_one_rm,
    MilestoneType.BODYWEIGHT_MULTIPLIER: _evaluate_one_rm,
    MilestoneType.VOLUME: _evaluate_volume,
    MilestoneType.REPS: _evaluate_reps,
}


def evaluate_milestone(
    milestone: Milestone,
    performances: Sequence[Performance],
    now: datetime | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Evaluation:
    """
    Check one milestone against performances of its exercise.

    Unknown milestone types are logged and treated as not achieved.
    """
    kind = MilestoneType.parse(milestone.type)
    if kind is None:
        LOGGER.warning(
            "milestone.unknown_type user_id=%s milestone_id=%s milestone_type=%s",
            milestone.user_id,
            milestone.id,
            milestone.type,
        )
        return NOT_ACHIEVED
    return EVALUATORS[kind](milestone, performances, now or datetime.now(), settings)


# =============================================================================
# BATCH CHECKING
# =============================================================================


def group_milestones(milestones: Iterable[Milestone]) -> dict[int, list[Milestone]]:
    """Group milestones by master exercise id."""
    grouped: dict[int, list[Milestone]] = defaultdict(list)
    for m in milestones:
        grouped[m.master_exercise_id].append(m)
    return dict(grouped)


def group_performances(performances: Iterable[Performance]) -> dict[int, list[Performance]]:
    """Group performances by master exercise id, keeping input order."""
    grouped: dict[int, list[Performance]] = defaultdict(list)
    for p in performances:
        grouped[p.master_exercise_id].append(p)
    return dict(grouped)


def latest_achievement_by_milestone(
    achievements: Iterable[MilestoneAchievement],
) -> dict[int, MilestoneAchievement]:
    """One achievement per milestone id (the first seen wins)."""
    by_milestone: dict[int, MilestoneAchievement] = {}
    for a in achievements:
        by_milestone.setdefault(a.milestone_id, a)
    return by_milestone


def check_and_record_milestones(
    source: "MilestoneSource",
    user_id: str,
    workout_id: int,
    master_exercise_ids: Sequence[int],
    exercise_names: Mapping[int, str] | None = None,
    *,
    now: datetime | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[MilestoneNotification]:
    """
    Evaluate and record milestone achievements for a completed workout.

    Reads: milestones for the exercises, performances in the last 30 days,
    achievements in the dedup window.  Evaluation runs in memory; each new
    achievement is appended once and yields one notification.

    A concurrent trigger for the same workout may still record a
    duplicate; the existence check is against the batch read only.

    Args:
        source: Data access for milestones, performances and achievements
        user_id: User whose workout was saved
        workout_id: Workout that triggered the check
        master_exercise_ids: Distinct master exercises in the workout
        exercise_names: Display names by master exercise id
        now: Evaluation time (defaults to the current time)
        settings: Engine tunables (windows, fractions)

    Returns:
        Notifications for newly achieved milestones
    """
    if not master_exercise_ids:
        return []

    now = now or datetime.now()
    names = exercise_names or {}
    exercise_ids = list(dict.fromkeys(master_exercise_ids))

    LOGGER.debug(
        "milestone.checking.start user_id=%s master_exercise_ids=%d",
        user_id,
        len(exercise_ids),
    )

    all_milestones = source.load_milestones(user_id, exercise_ids)
    milestones_by_exercise = group_milestones(all_milestones)

    since = now - timedelta(days=settings.performance_window_days)
    performances_by_exercise = group_performances(
        source.load_performances(user_id, exercise_ids, since)
    )

    recent: dict[int, MilestoneAchievement] = {}
    milestone_ids = [m.id for m in all_milestones]
    if milestone_ids:
        dedup_since = now - timedelta(hours=settings.achievement_dedup_hours)
        recent = latest_achievement_by_milestone(
            source.load_achievements(user_id, milestone_ids, dedup_since)
        )

    notifications: list[MilestoneNotification] = []

    for exercise_id in exercise_ids:
        exercise_milestones = milestones_by_exercise.get(exercise_id, [])
        performances = performances_by_exercise.get(exercise_id, [])
        if not exercise_milestones or not performances:
            continue

        exercise_name = names.get(exercise_id, UNKNOWN_EXERCISE)

        for milestone in exercise_milestones:
            if milestone.id in recent:
                continue

            result = evaluate_milestone(milestone, performances, now, settings)
            if not result.achieved:
                continue

            achievement = MilestoneAchievement(
                milestone_id=milestone.id,
                workout_id=workout_id,
                achieved_at=now,
                achieved_value=result.value,
                user_id=user_id,
            )
            source.record_achievement(achievement)
            recent[milestone.id] = achievement

            notifications.append(
                MilestoneNotification(
                    exercise_name=exercise_name,
                    milestone_type=milestone.type,
                    achieved_value=result.value,
                    target_value=milestone.target_value,
                    achieved_date=now.isoformat(),
                )
            )
            LOGGER.info(
                "milestone.achieved user_id=%s milestone_id=%s master_exercise_id=%s "
                "milestone_type=%s achieved_value=%s target_value=%s",
                user_id,
                milestone.id,
                exercise_id,
                milestone.type,
                result.value,
                milestone.target_value,
            )

    LOGGER.debug(
        "milestone.checking.complete user_id=%s achievements_found=%d",
        user_id,
        len(notifications),
    )
    return notifications


# =============================================================================
# DEFAULTS AND PROGRESS
# =============================================================================

# Canonical master exercise ids for the seeded lifts
DEFAULT_LIFTS: dict[str, int] = {
    "Squat": 1,
    "Deadlift": 2,
    "Bench Press": 3,
    "Overhead Press": 4,
    "Barbell Row": 5,
}


def _milestone_targets(bodyweight: float) -> dict[str, list[tuple[str, float, float | None]]]:
    # (type, target_value, multiplier); bodyweight targets are stored as
    # absolute loads so the 1RM comparison is in weight units
    def bw(multiplier: float) -> tuple[str, float, float | None]:
        return ("bodyweight_multiplier", round(bodyweight * multiplier, 2), multiplier)

    def absolute(multiplier: float) -> tuple[str, float, float | None]:
        return ("absolute_weight", round(bodyweight * multiplier, 2), None)

    return {
        "Squat": [bw(1), bw(1.5), bw(2), absolute(1), absolute(0.5)],
        "Deadlift": [bw(1.5), bw(2), bw(2.5), absolute(2), absolute(1.5)],
        "Bench Press": [bw(0.75), bw(1), bw(1.25), absolute(0.75), absolute(0.5)],
        "Overhead Press": [bw(0.5), bw(0.75), bw(1), absolute(0.75), absolute(0.5)],
        "Barbell Row": [bw(0.75), bw(1), bw(1.25), absolute(1), absolute(0.75)],
    }


def generate_default_milestones(
    user_id: str,
    experience_level: str = "intermediate",
    bodyweight: float | None = None,
    first_id: int = 1,
) -> list[Milestone]:
    """
    Seed milestones for the major lifts.

    Beginners get the first 2 targets per lift, intermediates 3,
    advanced lifters all 5.

    Args:
        user_id: Owner of the milestones
        experience_level: beginner / intermediate / advanced
        bodyweight: Bodyweight for multiplier targets (default 150)
        first_id: Id assigned to the first milestone; the rest follow

    Returns:
        New Milestone objects (not stored)
    """
    keep = MILESTONES_PER_LEVEL.get(experience_level)
    targets = _milestone_targets(bodyweight or DEFAULT_BODYWEIGHT)

    generated: list[Milestone] = []
    next_id = first_id
    for lift, lift_targets in targets.items():
        chosen = lift_targets if keep is None else lift_targets[:keep]
        for kind, value, multiplier in chosen:
            generated.append(
                Milestone(
                    id=next_id,
                    user_id=user_id,
                    master_exercise_id=DEFAULT_LIFTS[lift],
                    type=kind,
                    target_value=value,
                    target_multiplier=multiplier,
                    experience_level=experience_level,  # type: ignore[arg-type]
                )
            )
            next_id += 1
    return generated


def suggest_milestones(
    user_id: str,
    master_exercise_id: int,
    current_one_rm: float,
    best_weight: float,
    experience_level: str = "intermediate",
) -> list[Milestone]:
    """
    Next logical custom milestones from current performance.

    +10% 1RM target rounded up to a multiple of 5, and a volume target of
    ten times the current best weight.
    """
    suggestions: list[Milestone] = []
    if current_one_rm > 0:
        suggestions.append(
            Milestone(
                id=0,
                user_id=user_id,
                master_exercise_id=master_exercise_id,
                type=MilestoneType.ABSOLUTE_WEIGHT.value,
                target_value=math.ceil(current_one_rm * 1.1 / 5) * 5,
                experience_level=experience_level,  # type: ignore[arg-type]
                is_system_default=False,
            )
        )
    if best_weight > 0:
        suggestions.append(
            Milestone(
                id=0,
                user_id=user_id,
                master_exercise_id=master_exercise_id,
                type=MilestoneType.VOLUME.value,
                target_value=best_weight * 10,
                experience_level=experience_level,  # type: ignore[arg-type]
                is_system_default=False,
            )
        )
    return suggestions


def milestone_progress(current_value: float, target_value: float) -> float:
    """Progress toward a target in percent, capped at 100, 2 dp."""
    if target_value <= 0:
        return 0.0
    return round(min(100.0, current_value / target_value * 100), 2)


def milestone_difficulty(milestone: Milestone, experience_level: str) -> str:
    """
    Rough difficulty label: easy / moderate / challenging / advanced.
    """
    kind = MilestoneType.parse(milestone.type)

    if kind is MilestoneType.ABSOLUTE_WEIGHT:
        easy, moderate = {
            "beginner": (135, 185),
            "intermediate": (185, 225),
            "advanced": (225, 315),
        }.get(experience_level, (185, 225))
        if milestone.target_value <= easy:
            return "easy"
        if milestone.target_value <= moderate:
            return "moderate"
        return "challenging"

    if kind is MilestoneType.BODYWEIGHT_MULTIPLIER and milestone.target_multiplier:
        if milestone.target_multiplier <= 0.75:
            return "easy"
        if milestone.target_multiplier <= 1:
            return "moderate"
        if milestone.target_multiplier <= 1.5:
            return "challenging"
        return "advanced"

    if kind is MilestoneType.VOLUME:
        if milestone.target_value <= 1000:
            return "easy"
        if milestone.target_value <= 2500:
            return "moderate"
        if milestone.target_value <= 5000:
            return "challenging"
        return "advanced"

    return "moderate"
