"""
Plateau detection and rule-based recommendations.

A plateau is declared when neither the top-set weight nor its reps went up
between any two consecutive sessions of the detection window (3 sessions
by default).  Confidence grows as the window gets flatter: the summed
variance of weight and reps is graded against 0.5 and 2.0.

check_and_record_plateaus() mirrors the milestone check: one bulk read of
recent performances for every exercise in the workout, grouping in memory,
and at most one active plateau stored per (user, exercise).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from .config import (
    DEFAULT_SETTINGS,
    MAX_PLATEAU_RECOMMENDATIONS,
    PLATEAU_HIGH_CONFIDENCE_VARIANCE,
    PLATEAU_MEDIUM_CONFIDENCE_VARIANCE,
    PLATEAU_WINDOW_SESSIONS,
    EngineSettings,
)
from .milestones import UNKNOWN_EXERCISE, group_performances
from .models import (
    Confidence,
    Performance,
    Plateau,
    PlateauNotification,
    PlateauRecommendation,
    Trajectory,
)

if TYPE_CHECKING:
    from ..io.repository import PlateauSource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlateauCheck:
    """Outcome of checking one exercise's recent sessions."""

    detected: bool
    stalled_weight: float = 0.0
    stalled_reps: int = 0
    session_count: int = 0
    confidence: Confidence = "low"
    duration_weeks: int = 1


NO_PLATEAU = PlateauCheck(detected=False)


# =============================================================================
# DETECTION
# =============================================================================


def population_variance(values: Sequence[float]) -> float:
    """Mean squared deviation from the mean; 0 for an empty sequence."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def has_progressed(performances: Sequence[Performance]) -> bool:
    """
    True when any session beat the one before it in weight or reps.

    Args:
        performances: Sessions of one exercise, most recent first
    """
    chronological = list(reversed(performances))
    return any(
        later.weight > earlier.weight or later.reps > earlier.reps
        for earlier, later in zip(chronological, chronological[1:])
    )


def plateau_confidence(performances: Sequence[Performance]) -> Confidence:
    """high below 0.5 summed weight + reps variance, medium below 2.0, else low."""
    total = population_variance([p.weight for p in performances]) + population_variance(
        [float(p.reps) for p in performances]
    )
    if total < PLATEAU_HIGH_CONFIDENCE_VARIANCE:
        return "high"
    if total < PLATEAU_MEDIUM_CONFIDENCE_VARIANCE:
        return "medium"
    return "low"


def plateau_duration_weeks(performances: Sequence[Performance]) -> int:
    """Whole weeks between the oldest and newest session, at least 1."""
    if not performances:
        return 1
    dates = [p.workout_date for p in performances]
    span = max(dates) - min(dates)
    return max(1, round(span.total_seconds() / (7 * 24 * 3600)))


def evaluate_plateau(
    performances: Sequence[Performance],
    window: int = PLATEAU_WINDOW_SESSIONS,
) -> PlateauCheck:
    """
    Check the most recent sessions of one exercise for a plateau.

    Args:
        performances: Sessions of one exercise, most recent first
        window: Number of sessions that must show no progress

    Returns:
        PlateauCheck; NO_PLATEAU with fewer than window sessions or when
        the window shows any progress
    """
    recent = list(performances[:window])
    if len(recent) < window or has_progressed(recent):
        return NO_PLATEAU

    latest = recent[0]
    return PlateauCheck(
        detected=True,
        stalled_weight=latest.weight,
        stalled_reps=latest.reps,
        session_count=len(recent),
        confidence=plateau_confidence(recent),
        duration_weeks=plateau_duration_weeks(recent),
    )


def check_and_record_plateaus(
    source: "PlateauSource",
    user_id: str,
    master_exercise_ids: Sequence[int],
    exercise_names: Mapping[int, str] | None = None,
    *,
    now: datetime | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[PlateauNotification]:
    """
    Detect plateaus for the exercises of a saved workout.

    Reads: recent performances for all exercises, then the active
    plateaus (only when something was detected).  A plateau already
    active for an exercise is not stored twice, but is still reported.

    Args:
        source: Data access for performances and plateaus
        user_id: User whose workout was saved
        master_exercise_ids: Distinct master exercises in the workout
        exercise_names: Display names by master exercise id
        now: Detection time (defaults to the current time)
        settings: Engine tunables (detection window)

    Returns:
        One notification per plateaued exercise
    """
    if not master_exercise_ids:
        return []

    now = now or datetime.now()
    names = exercise_names or {}
    exercise_ids = list(dict.fromkeys(master_exercise_ids))

    LOGGER.debug(
        "plateau.checking.start user_id=%s master_exercise_ids=%d",
        user_id,
        len(exercise_ids),
    )

    by_exercise = group_performances(
        source.load_recent_performances(user_id, exercise_ids, settings.plateau_window_sessions)
    )
    checks = {
        exercise_id: evaluate_plateau(by_exercise.get(exercise_id, []), settings.plateau_window_sessions)
        for exercise_id in exercise_ids
    }
    detected = {exercise_id: c for exercise_id, c in checks.items() if c.detected}
    if not detected:
        LOGGER.debug("plateau.checking.complete user_id=%s plateaus_found=0", user_id)
        return []

    active = {p.master_exercise_id for p in source.load_plateaus(user_id, "active")}

    notifications: list[PlateauNotification] = []
    for exercise_id, check in detected.items():
        if exercise_id not in active:
            source.record_plateau(
                Plateau(
                    id=0,
                    user_id=user_id,
                    master_exercise_id=exercise_id,
                    stalled_weight=check.stalled_weight,
                    stalled_reps=check.stalled_reps,
                    session_count=check.session_count,
                    confidence=check.confidence,
                    detected_at=now,
                    duration_weeks=check.duration_weeks,
                )
            )
            active.add(exercise_id)
            LOGGER.info(
                "plateau.detected user_id=%s master_exercise_id=%s stalled_weight=%s "
                "stalled_reps=%s confidence=%s",
                user_id,
                exercise_id,
                check.stalled_weight,
                check.stalled_reps,
                check.confidence,
            )

        notifications.append(
            PlateauNotification(
                exercise_name=names.get(exercise_id, UNKNOWN_EXERCISE),
                stalled_weight=check.stalled_weight,
                stalled_reps=check.stalled_reps,
                confidence=check.confidence,
                duration_weeks=check.duration_weeks,
            )
        )

    LOGGER.debug(
        "plateau.checking.complete user_id=%s plateaus_found=%d",
        user_id,
        len(notifications),
    )
    return notifications


# =============================================================================
# RECOMMENDATIONS
# =============================================================================


@dataclass(frozen=True)
class PlateauAnalysis:
    """Summary of recent sessions used by the recommendation rules."""

    avg_weight: float
    avg_reps: float
    avg_volume: float
    weight_variance: float
    reps_variance: float
    volume_trend: Trajectory
    intensity: str  # low / moderate / high
    consistency_score: float


def volume_trend(volumes: Sequence[float]) -> Trajectory:
    """
    Compare the older half of a series with the newer half.

    Args:
        volumes: Session volumes, oldest first

    Returns:
        "stable" within 5% of the older average, else "improving" or
        "declining"
    """
    if len(volumes) < 2:
        return "stable"
    half = len(volumes) // 2
    older = sum(volumes[:half]) / half
    newer = sum(volumes[half:]) / (len(volumes) - half)
    difference = newer - older
    if difference == 0 or abs(difference) < older * 0.05:
        return "stable"
    return "improving" if difference > 0 else "declining"


def analyze_plateau(performances: Sequence[Performance]) -> PlateauAnalysis:
    """
    Describe recent sessions (most recent first) for the rules below.

    Intensity is read from average reps: 8+ low, 5-7 moderate, under 5
    high.  consistency_score = max(0, 100 - 10 * (weight var + reps var)).
    """
    if not performances:
        return PlateauAnalysis(0.0, 0.0, 0.0, 0.0, 0.0, "stable", "low", 0.0)

    chronological = list(reversed(performances))
    weights = [p.weight for p in chronological]
    reps = [float(p.reps) for p in chronological]
    volumes = [p.weight * p.reps for p in chronological]

    avg_reps = sum(reps) / len(reps)
    if avg_reps >= 8:
        intensity = "low"
    elif avg_reps >= 5:
        intensity = "moderate"
    else:
        intensity = "high"

    weight_variance = population_variance(weights)
    reps_variance = population_variance(reps)

    return PlateauAnalysis(
        avg_weight=sum(weights) / len(weights),
        avg_reps=avg_reps,
        avg_volume=sum(volumes) / len(volumes),
        weight_variance=weight_variance,
        reps_variance=reps_variance,
        volume_trend=volume_trend(volumes),
        intensity=intensity,
        consistency_score=max(0.0, 100 - (weight_variance + reps_variance) * 10),
    )


Rule = Callable[[PlateauAnalysis, str], list[PlateauRecommendation]]


def _volume_rules(a: PlateauAnalysis, level: str) -> list[PlateauRecommendation]:
    recs = []
    if a.volume_trend == "declining":
        recs.append(PlateauRecommendation(
            rule="volume_overload",
            description="Your training volume has been decreasing. Progressive overload is key to breaking plateaus.",
            action="Increase total weekly volume by 10-15% through additional sets or slightly higher weight.",
            priority="high",
            playbook_cta=True,
        ))
    if a.intensity == "high" and a.avg_reps < 5:
        recs.append(PlateauRecommendation(
            rule="volume_accumulation",
            description="You're training with very high intensity but low volume. Consider a volume phase.",
            action="Reduce weight by 10-15% and increase reps to 8-12 per set for 2-3 weeks.",
            priority="medium",
            playbook_cta=True,
        ))
    return recs


def _intensity_rules(a: PlateauAnalysis, level: str) -> list[PlateauRecommendation]:
    recs = []
    if a.intensity == "low" and a.avg_reps > 10:
        recs.append(PlateauRecommendation(
            rule="intensity_increase",
            description="Your training intensity is quite low. Heavier weights will stimulate new adaptation.",
            action="Increase weight so you're working in the 6-8 rep range for main compound lifts.",
            priority="high",
            playbook_cta=True,
        ))
    if a.consistency_score > 80:
        recs.append(PlateauRecommendation(
            rule="intensive_technique",
            description="You're very consistent but may need intensity variation. Time to focus on strength.",
            action="Implement heavy doubles/triples (2-3 reps) at 85-90% of your 1RM for 2 weeks.",
            priority="medium",
        ))
    return recs


def _variation_rules(a: PlateauAnalysis, level: str) -> list[PlateauRecommendation]:
    recs = []
    if a.weight_variance < 5:
        recs.append(PlateauRecommendation(
            rule="exercise_variation",
            description="You're using very similar weights. Exercise variation can stimulate new growth.",
            action="Switch to close-grip or pause variations for 2-3 weeks to overcome adaptation.",
            priority="medium",
            playbook_cta=True,
        ))
    if level == "advanced":
        recs.append(PlateauRecommendation(
            rule="specialization",
            description="As an advanced lifter, you may need specialized techniques.",
            action="Try cluster sets, partial reps, or isometric holds for 1-2 weeks.",
            priority="low",
        ))
    return recs


def _recovery_rules(a: PlateauAnalysis, level: str) -> list[PlateauRecommendation]:
    recs = []
    if a.volume_trend == "stable" and a.intensity == "high":
        recs.append(PlateauRecommendation(
            rule="recovery_focus",
            description="High intensity with stable volume may indicate recovery issues.",
            action="Take a deload week (50% volume) or add 2 extra rest days before next training block.",
            priority="medium",
        ))
    recs.append(PlateauRecommendation(
        rule="sleep_optimization",
        description="Sleep is critical for recovery and breaking plateaus.",
        action="Ensure 7-9 hours of quality sleep and maintain consistent sleep schedule.",
        priority="low",
    ))
    return recs


def _periodization_rules(a: PlateauAnalysis, level: str) -> list[PlateauRecommendation]:
    recs = []
    if level in ("intermediate", "advanced"):
        recs.append(PlateauRecommendation(
            rule="periodization",
            description="Structured periodization can prevent long-term plateaus.",
            action="Implement a 4-week block: 2 weeks volume focus, 1 week intensity, 1 week deload.",
            priority="medium",
            playbook_cta=True,
        ))
    if a.consistency_score > 90:
        recs.append(PlateauRecommendation(
            rule="strategic_deconditioning",
            description="Very high consistency sometimes requires strategic breaks.",
            action="Take 5-7 days completely off training to allow full recovery and supercompensation.",
            priority="low",
        ))
    return recs


RULES: tuple[Rule, ...] = (
    _volume_rules,
    _intensity_rules,
    _variation_rules,
    _recovery_rules,
    _periodization_rules,
)

PRIORITY_SCORE: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

MAINTENANCE_RECOMMENDATION = PlateauRecommendation(
    rule="maintenance_mode",
    description="This exercise is currently in maintenance mode.",
    action=(
        "Focus on other lifts while maintaining current strength. "
        "Consider switching back to tracking when ready to progress."
    ),
    priority="low",
)


def generate_plateau_recommendations(
    performances: Sequence[Performance],
    experience_level: str = "intermediate",
    maintenance_mode: bool = False,
    limit: int = MAX_PLATEAU_RECOMMENDATIONS,
) -> list[PlateauRecommendation]:
    """
    Rule-based advice for breaking a plateau.

    Args:
        performances: Recent sessions of the exercise, most recent first
        experience_level: beginner / intermediate / advanced
        maintenance_mode: Exercise is deliberately held steady
        limit: Maximum number of recommendations

    Returns:
        Recommendations ordered high → low priority (rule order within a
        priority), at most limit of them
    """
    if maintenance_mode:
        return [MAINTENANCE_RECOMMENDATION]

    analysis = analyze_plateau(performances)
    recs = [r for rule in RULES for r in rule(analysis, experience_level)]
    recs.sort(key=lambda r: PRIORITY_SCORE.get(r.priority, 0), reverse=True)
    return recs[:limit]


def filter_recommendations(
    recommendations: Iterable[PlateauRecommendation],
    prefers_playbooks: bool = False,
    max_recommendations: int | None = None,
    excluded_rules: Iterable[str] = (),
) -> list[PlateauRecommendation]:
    """Apply user preferences: playbook-only, excluded rules, count cap."""
    excluded = set(excluded_rules)
    filtered = [
        r
        for r in recommendations
        if r.rule not in excluded and (r.playbook_cta or not prefers_playbooks)
    ]
    if max_recommendations:
        filtered = filtered[:max_recommendations]
    return filtered


SPECIFIC_RECOMMENDATIONS: dict[str, PlateauRecommendation] = {
    "strength": PlateauRecommendation(
        rule="strength_plateau",
        description="You've hit a strength plateau. Time for neural adaptation focus.",
        action="Work with 85-95% intensity for 1-3 reps per set, with longer rest periods (3-5 minutes).",
        priority="high",
        playbook_cta=True,
    ),
    "hypertrophy": PlateauRecommendation(
        rule="hypertrophy_plateau",
        description="Muscle growth has stalled. Volume and time under tension need adjustment.",
        action="Increase training volume by 20% and focus on 2-3 second eccentric phases.",
        priority="high",
        playbook_cta=True,
    ),
    "endurance": PlateauRecommendation(
        rule="endurance_plateau",
        description="Muscular endurance has plateaued. Metabolic stress is needed.",
        action="Implement drop sets, supersets, or rest-pause techniques to increase metabolic demand.",
        priority="medium",
    ),
    "technique": PlateauRecommendation(
        rule="technique_plateau",
        description="Technical limitations may be holding back progress.",
        action="Film your lifts and work with lighter weights to perfect form before progressing.",
        priority="high",
    ),
}


def specific_plateau_recommendation(plateau_type: str) -> PlateauRecommendation:
    """Advice for a named plateau kind; unknown kinds get the strength advice."""
    return SPECIFIC_RECOMMENDATIONS.get(plateau_type, SPECIFIC_RECOMMENDATIONS["strength"])
