"""
Configuration constants for the readiness and progression engine.

All adjustable parameters are centralized here for easy tuning.
Values in engine.yaml (bundled or user override) take precedence at
runtime through EngineSettings.from_config().
"""

from dataclasses import dataclass, fields
from typing import Any, Final

# =============================================================================
# READINESS FUSION
# =============================================================================

NEUTRAL_SIGNAL: Final[float] = 0.5  # Fallback for missing recovery / sleep
NEUTRAL_RATIO: Final[float] = 1.0  # Fallback for missing HRV / RHR ratios
RATIO_MIN: Final[float] = 0.8  # Floor for HRV and RHR ratios
RATIO_MAX: Final[float] = 1.2  # Ceiling for HRV and RHR ratios

W_RECOVERY: Final[float] = 0.40
W_SLEEP: Final[float] = 0.30
W_HRV: Final[float] = 0.15
W_RHR: Final[float] = 0.15

# Manual wellness: self-report dominates
W_MANUAL_ENERGY: Final[float] = 0.50
W_MANUAL_SLEEP: Final[float] = 0.40
W_MANUAL_HRV: Final[float] = 0.05
W_MANUAL_RHR: Final[float] = 0.05
MANUAL_LOW_THRESHOLD: Final[int] = 3  # energy / sleep at or below this is flagged
MANUAL_NOTES_MAX_CHARS: Final[int] = 500

HIGH_STRAIN_THRESHOLD: Final[float] = 14.0  # Yesterday's strain above this costs readiness
HIGH_STRAIN_PENALTY: Final[float] = 0.05

LOW_SIGNAL_THRESHOLD: Final[float] = 0.6  # below: low_recovery / poor_sleep
GOOD_SIGNAL_THRESHOLD: Final[float] = 0.8  # at or above: good_recovery / good_sleep

# =============================================================================
# OVERLOAD
# =============================================================================

OVERLOAD_SENSITIVITY: Final[float] = 0.3
OVERLOAD_MIN: Final[float] = 0.9
OVERLOAD_MAX: Final[float] = 1.1
BEGINNER_OVERLOAD_CAP: Final[float] = 1.05
UNSAFE_READINESS: Final[float] = 0.35  # below this no overload is recommended

WEIGHT_INCREMENT: Final[float] = 2.5  # Smallest plate step

# =============================================================================
# PROGRESSION
# =============================================================================

STARTING_WEIGHT: Final[float] = 20.0  # Suggestion when no history exists
PLATEAU_THRESHOLD: Final[float] = 0.05  # ≤5% best-set volume gain = plateau
PROGRESSION_SESSIONS: Final[int] = 2
LINEAR_INCREMENT: Final[float] = 2.5
PERCENTAGE_INCREMENT: Final[float] = 2.5

READINESS_HIGH: Final[float] = 0.7
READINESS_MODERATE: Final[float] = 0.5

DELOAD_FACTOR: Final[float] = 0.90
PLATEAU_PUSH_FACTOR: Final[float] = 1.025
GOOD_READINESS_FACTOR: Final[float] = 1.05
MODERATE_READINESS_FACTOR: Final[float] = 1.0
POOR_READINESS_FACTOR: Final[float] = 0.975

# =============================================================================
# PR FORECASTING
# =============================================================================

FORECAST_LOOKBACK_SESSIONS: Final[int] = 20
REGRESSION_WINDOW: Final[int] = 10
MIN_FORECAST_POINTS: Final[int] = 3
PR_STEP: Final[float] = 2.5

PLAUSIBLE_VELOCITY_MIN: Final[float] = 0.5  # weight units / session
PLAUSIBLE_VELOCITY_MAX: Final[float] = 5.0
IMPLAUSIBLE_VELOCITY: Final[float] = 10.0
PLAUSIBLE_BOOST: Final[float] = 0.2
IMPLAUSIBLE_PENALTY: Final[float] = 0.3
IMPROVING_VELOCITY: Final[float] = 0.5

WEEKLY_FREQUENCY: Final[dict[str, int]] = {
    "beginner": 2,
    "intermediate": 3,
    "advanced": 4,
}
DEFAULT_WEEKLY_FREQUENCY: Final[int] = 3

# =============================================================================
# MILESTONES
# =============================================================================

ACHIEVEMENT_DEDUP_HOURS: Final[int] = 24
PERFORMANCE_WINDOW_DAYS: Final[int] = 30
VOLUME_WINDOW_DAYS: Final[int] = 7
REPS_WEIGHT_FRACTION: Final[float] = 0.9  # reps count at ≥90% of target weight
DEFAULT_BODYWEIGHT: Final[float] = 150.0

MILESTONES_PER_LEVEL: Final[dict[str, int | None]] = {
    "beginner": 2,
    "intermediate": 3,
    "advanced": None,  # keep all
}

# =============================================================================
# PLATEAUS
# =============================================================================

PLATEAU_WINDOW_SESSIONS: Final[int] = 3  # sessions without progress that make a plateau
PLATEAU_CONTEXT_SESSIONS: Final[int] = 10  # sessions analysed for recommendations
PLATEAU_HIGH_CONFIDENCE_VARIANCE: Final[float] = 0.5  # weight + reps variance below this
PLATEAU_MEDIUM_CONFIDENCE_VARIANCE: Final[float] = 2.0
MAX_PLATEAU_RECOMMENDATIONS: Final[int] = 6

# =============================================================================
# WARM-UP
# =============================================================================

WARMUP_MIN_SESSIONS: Final[int] = 2
WARMUP_LOOKBACK_SESSIONS: Final[int] = 10
WARMUP_HIGH_CONFIDENCE_SESSIONS: Final[int] = 5
WARMUP_MEDIUM_CONFIDENCE_SESSIONS: Final[int] = 2
DEFAULT_WARMUP_PERCENTAGES: Final[tuple[int, ...]] = (40, 60, 80)
DEFAULT_WARMUP_SETS: Final[int] = 3
DEFAULT_FIXED_WARMUP_REPS: Final[int] = 5

# =============================================================================
# SESSION ADVICE
# =============================================================================

DEFAULT_BASE_WEIGHT: Final[float] = 20.0
DEFAULT_BASE_REPS: Final[int] = 8
SET_FATIGUE_STEP: Final[float] = 0.05  # per-set load reduction after the first
REST_STEP_SECONDS: Final[int] = 15


def rest_seconds_for_readiness(rho: float) -> int:
    """
    Base rest between sets for a given readiness.

    Better readiness allows shorter rest: 120 s above 0.7,
    150 s above 0.5, otherwise 180 s.
    """
    if rho > READINESS_HIGH:
        return 120
    if rho > READINESS_MODERATE:
        return 150
    return 180


def weekly_frequency(experience_level: str) -> int:
    """Expected training sessions per week for an experience level."""
    return WEEKLY_FREQUENCY.get(experience_level, DEFAULT_WEEKLY_FREQUENCY)


@dataclass(frozen=True)
class EngineSettings:
    """Runtime tunables; defaults mirror the module constants."""

    weight_increment: float = WEIGHT_INCREMENT
    starting_weight: float = STARTING_WEIGHT
    plateau_threshold: float = PLATEAU_THRESHOLD
    progression_sessions: int = PROGRESSION_SESSIONS
    achievement_dedup_hours: int = ACHIEVEMENT_DEDUP_HOURS
    performance_window_days: int = PERFORMANCE_WINDOW_DAYS
    volume_window_days: int = VOLUME_WINDOW_DAYS
    reps_weight_fraction: float = REPS_WEIGHT_FRACTION
    forecast_lookback_sessions: int = FORECAST_LOOKBACK_SESSIONS
    regression_window: int = REGRESSION_WINDOW
    min_forecast_points: int = MIN_FORECAST_POINTS
    plateau_window_sessions: int = PLATEAU_WINDOW_SESSIONS
    plateau_context_sessions: int = PLATEAU_CONTEXT_SESSIONS

    def __post_init__(self) -> None:
        if self.weight_increment <= 0:
            raise ValueError("weight_increment must be positive")
        if self.plateau_threshold < 0:
            raise ValueError("plateau_threshold must be non-negative")
        if self.achievement_dedup_hours <= 0:
            raise ValueError("achievement_dedup_hours must be positive")
        if self.min_forecast_points < 2:
            raise ValueError("min_forecast_points must be at least 2")
        if self.plateau_window_sessions < 2:
            raise ValueError("plateau_window_sessions must be at least 2")
        if self.plateau_context_sessions < self.plateau_window_sessions:
            raise ValueError("plateau_context_sessions must cover plateau_window_sessions")

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EngineSettings":
        """
        Build settings from a loaded config dict.

        Sections are flattened; unknown keys are ignored and missing keys
        keep their defaults.

        Args:
            config: Merged YAML config (see config_loader.load_model_config)

        Returns:
            EngineSettings

        Raises:
            ValueError: If a known key holds a value of the wrong type
        """
        known = {f.name: f.type for f in fields(cls)}
        values: dict[str, Any] = {}
        for section in config.values():
            if not isinstance(section, dict):
                continue
            for key, raw in section.items():
                if key not in known:
                    continue
                default = getattr(cls, key)
                try:
                    values[key] = type(default)(raw)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"Invalid value for {key}: {raw!r}") from e
        return cls(**values)


DEFAULT_SETTINGS: Final[EngineSettings] = EngineSettings()
