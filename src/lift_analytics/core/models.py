"""
Data models for lift-analytics.

All core dataclasses representing biometric inputs, logged training data,
milestones, forecasts and warm-up plans.  Optional fields stand for data a
collaborator may not have; the engine substitutes neutral defaults rather
than failing.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
ProgressionStrategy = Literal["linear", "percentage", "adaptive"]
ProgressionModel = Literal["reps", "weight"]
SuggestionType = Literal["weight", "reps"]
SetType = Literal["warmup", "working", "backoff", "drop"]
Confidence = Literal["low", "medium", "high"]
WarmupSource = Literal["history", "protocol", "default"]
RepsStrategy = Literal["match_working", "descending", "fixed"]
Trajectory = Literal["improving", "stable", "declining"]
PlateauStatus = Literal["active", "resolved"]
Priority = Literal["low", "medium", "high"]

EXPERIENCE_LEVELS: tuple[str, ...] = ("beginner", "intermediate", "advanced")
SET_TYPES: tuple[str, ...] = ("warmup", "working", "backoff", "drop")


class MilestoneType(str, Enum):
    """Closed set of milestone kinds the evaluator knows how to check."""

    ABSOLUTE_WEIGHT = "absolute_weight"
    BODYWEIGHT_MULTIPLIER = "bodyweight_multiplier"
    VOLUME = "volume"
    REPS = "reps"

    @classmethod
    def parse(cls, raw: str) -> "MilestoneType | None":
        """Return the member for raw, or None for an unknown type."""
        try:
            return cls(raw)
        except ValueError:
            return None


# =============================================================================
# READINESS
# =============================================================================


@dataclass
class BiometricSnapshot:
    """
    Wearable recovery metrics for one day.

    recovery_score and sleep_performance are percentages (0-100).
    Every field is optional.
    """

    recovery_score: float | None = None
    sleep_performance: float | None = None
    hrv_now_ms: float | None = None
    hrv_baseline_ms: float | None = None
    rhr_now_bpm: float | None = None
    rhr_baseline_bpm: float | None = None
    yesterday_strain: float | None = None


@dataclass
class ManualWellness:
    """Self-reported wellness check-in (1-10 scales)."""

    energy_level: int
    sleep_quality: int
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate wellness input."""
        if not 1 <= self.energy_level <= 10:
            raise ValueError("energy_level must be between 1 and 10")
        if not 1 <= self.sleep_quality <= 10:
            raise ValueError("sleep_quality must be between 1 and 10")
        if self.notes is not None and len(self.notes) > 500:
            raise ValueError("notes must be at most 500 characters")


@dataclass
class ReadinessResult:
    """Fused readiness score with explanatory flags."""

    rho: float
    flags: list[str] = field(default_factory=list)


# =============================================================================
# LOGGED TRAINING DATA
# =============================================================================


@dataclass
class SetRecord:
    """
    A single logged set.

    volume defaults to weight * reps when not supplied.
    """

    weight: float
    reps: int
    volume: float | None = None
    set_type: SetType = "working"

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.set_type not in SET_TYPES:
            raise ValueError(f"Invalid set_type: {self.set_type}")
        if self.volume is None:
            self.volume = self.weight * self.reps


@dataclass
class ExerciseSessionRecord:
    """One exercise's performance within one saved workout."""

    workout_date: datetime
    session_id: int
    sets: list[SetRecord] = field(default_factory=list)

    @property
    def working_sets(self) -> list[SetRecord]:
        """Sets that are not warm-ups."""
        return [s for s in self.sets if s.set_type != "warmup"]


@dataclass
class WorkoutEntry:
    """
    One exercise logged in one workout, as stored on disk.

    master_exercise_id links the entry to a canonical exercise; entries
    without a link are ignored by milestone and forecast reads.
    """

    session_id: int
    workout_date: datetime
    exercise_name: str
    sets: list[SetRecord] = field(default_factory=list)
    master_exercise_id: int | None = None
    user_id: str = "local"

    @property
    def working_sets(self) -> list[SetRecord]:
        """Sets that are not warm-ups."""
        return [s for s in self.sets if s.set_type != "warmup"]


@dataclass
class ExerciseHistory:
    """Recent sessions for one exercise, most recent first."""

    exercise_name: str
    sessions: list[ExerciseSessionRecord] = field(default_factory=list)


@dataclass
class Performance:
    """
    Per-session aggregate row for a master exercise.

    weight/reps describe the top set; sets counts working sets.
    """

    master_exercise_id: int
    session_id: int
    workout_date: datetime
    weight: float = 0.0
    reps: int = 0
    sets: int = 0
    one_rm_estimate: float | None = None

    @property
    def volume(self) -> float:
        """weight * reps * sets."""
        return self.weight * self.reps * self.sets


# =============================================================================
# PROGRESSION
# =============================================================================


@dataclass
class ProgressionPreferences:
    """User preferences driving the progression suggester."""

    linear_increment: float = 2.5
    percentage_increment: float = 2.5
    progression_model: ProgressionModel | None = None

    def __post_init__(self) -> None:
        if self.linear_increment < 0:
            raise ValueError("linear_increment must be non-negative")
        if self.percentage_increment < 0:
            raise ValueError("percentage_increment must be non-negative")
        if self.progression_model not in (None, "reps", "weight"):
            raise ValueError(f"Invalid progression_model: {self.progression_model}")


@dataclass
class Suggestion:
    """A proposed next weight or rep target."""

    type: SuggestionType
    current: float
    suggested: float
    rationale: str
    plateau_detected: bool = False


@dataclass
class ExerciseProgression:
    """Suggestions for one exercise."""

    exercise_name: str
    suggestions: list[Suggestion] = field(default_factory=list)
    plateau_detected: bool = False


# =============================================================================
# MILESTONES
# =============================================================================


@dataclass
class Milestone:
    """
    A strength, volume or rep target for one master exercise.

    type is kept as the stored string so rows with a type this engine
    does not know still load; the evaluator treats them as unmet.
    """

    id: int
    user_id: str
    master_exercise_id: int
    type: str
    target_value: float
    target_multiplier: float | None = None
    experience_level: ExperienceLevel = "intermediate"
    is_system_default: bool = True

    def __post_init__(self) -> None:
        if self.target_value < 0:
            raise ValueError("target_value must be non-negative")
        if self.experience_level not in EXPERIENCE_LEVELS:
            raise ValueError(f"Invalid experience_level: {self.experience_level}")


@dataclass
class MilestoneAchievement:
    """An append-only record that a milestone was reached."""

    milestone_id: int
    workout_id: int
    achieved_at: datetime
    achieved_value: float
    user_id: str = ""


@dataclass
class MilestoneNotification:
    """Notification payload emitted once per newly achieved milestone."""

    exercise_name: str
    milestone_type: str
    achieved_value: float
    target_value: float
    achieved_date: str  # ISO timestamp
    type: str = "milestone_achieved"


# =============================================================================
# PLATEAUS
# =============================================================================


@dataclass
class Plateau:
    """
    A stall on one master exercise: neither weight nor reps progressed
    over the detection window.

    At most one active plateau is kept per (user, exercise); resolving it
    sets status and resolved_at.
    """

    id: int
    user_id: str
    master_exercise_id: int
    stalled_weight: float
    stalled_reps: int
    session_count: int
    confidence: Confidence
    detected_at: datetime
    duration_weeks: int = 1
    status: PlateauStatus = "active"
    resolved_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status not in ("active", "resolved"):
            raise ValueError(f"Invalid plateau status: {self.status}")
        if self.confidence not in ("low", "medium", "high"):
            raise ValueError(f"Invalid plateau confidence: {self.confidence}")


@dataclass
class PlateauNotification:
    """Notification payload emitted for each plateau found on save."""

    exercise_name: str
    stalled_weight: float
    stalled_reps: int
    confidence: Confidence
    duration_weeks: int
    type: str = "plateau_detected"


@dataclass
class PlateauRecommendation:
    """One rule-based suggestion for breaking a plateau."""

    rule: str
    description: str
    action: str
    priority: Priority
    playbook_cta: bool = False


# =============================================================================
# PR FORECASTS
# =============================================================================


@dataclass
class ForecastData:
    """A single PR forecast for one exercise."""

    exercise_name: str
    master_exercise_id: int
    current_weight: float
    forecasted_weight: float
    estimated_weeks_low: int
    estimated_weeks_high: int
    confidence_percent: int
    calculated_at: datetime
    trajectory: Trajectory


@dataclass
class ForecastResult:
    """Forecast list; empty when history is insufficient."""

    forecasts: list[ForecastData] = field(default_factory=list)
    total_count: int = 0
    average_confidence: float = 0.0


@dataclass
class PRForecast:
    """The single live forecast row stored per (user, exercise)."""

    user_id: str
    master_exercise_id: int
    forecasted_weight: float
    estimated_weeks_low: int
    estimated_weeks_high: int
    confidence_percent: int
    calculated_at: datetime
    trajectory: Trajectory = "stable"
    current_weight: float = 0.0


# =============================================================================
# WARM-UP
# =============================================================================


@dataclass
class WarmupSet:
    """A planned warm-up set."""

    set_number: int
    weight: float
    reps: int
    percentage_of_top: float


@dataclass
class WarmupPattern:
    """Detected or synthesized warm-up plan."""

    confidence: Confidence
    sets: list[WarmupSet] = field(default_factory=list)
    source: WarmupSource = "protocol"
    session_count: int = 0


@dataclass
class WarmupSessionRecord:
    """
    Warm-up view of one past session of an exercise.

    warmup_sets are in set order; top_set_weight is the heaviest working
    set of that session (None when unknown).
    """

    session_exercise_id: int
    workout_date: datetime
    top_set_weight: float | None
    warmup_sets: list[SetRecord] = field(default_factory=list)


@dataclass
class WarmupProtocolConfig:
    """Preferences for the default percentage-ladder warm-up."""

    percentages: list[float] = field(default_factory=lambda: [40, 60, 80])
    sets_count: int = 3
    reps_strategy: RepsStrategy = "match_working"
    fixed_reps: int = 5

    def __post_init__(self) -> None:
        if self.sets_count < 0:
            raise ValueError("sets_count must be non-negative")
        if self.reps_strategy not in ("match_working", "descending", "fixed"):
            raise ValueError(f"Invalid reps_strategy: {self.reps_strategy}")
        if self.fixed_reps < 0:
            raise ValueError("fixed_reps must be non-negative")


# =============================================================================
# SESSION ADVICE
# =============================================================================


@dataclass
class PlannedSetAdvice:
    """One prescribed set in a session load plan."""

    set_id: str
    suggested_weight: float
    suggested_reps: int
    suggested_rest_seconds: int
    rationale: str


@dataclass
class ExerciseAdvice:
    """Per-exercise load plan."""

    exercise_name: str
    predicted_chance_to_beat_best: float
    best_volume: float | None
    sets: list[PlannedSetAdvice] = field(default_factory=list)


@dataclass
class SessionAdvice:
    """Readiness-driven plan for the upcoming session."""

    readiness: ReadinessResult
    overload_multiplier: float
    session_predicted_chance: float
    summary: str
    per_exercise: list[ExerciseAdvice] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    estimated_minutes: int = 0
