"""
PR forecasting from recent 1RM estimates.

Fits a least-squares line to the most recent 1RM values, converts the
trend into a per-session progression velocity, and predicts when the next
plate-increment PR becomes achievable.  Confidence comes from the fit's R².

Forecasts are a live snapshot: storing one replaces the previous forecast
for the same (user, exercise).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Sequence

from .config import (
    DEFAULT_SETTINGS,
    IMPLAUSIBLE_PENALTY,
    IMPLAUSIBLE_VELOCITY,
    IMPROVING_VELOCITY,
    PLAUSIBLE_BOOST,
    PLAUSIBLE_VELOCITY_MAX,
    PLAUSIBLE_VELOCITY_MIN,
    PR_STEP,
    REGRESSION_WINDOW,
    EngineSettings,
    weekly_frequency,
)
from .metrics import clip, linear_regression, r_squared
from .models import ForecastData, ForecastResult, Performance, PRForecast

if TYPE_CHECKING:
    from ..io.repository import ForecastSource

LOGGER = logging.getLogger(__name__)


@dataclass
class ForecastCalculation:
    """Intermediate values of one forecast."""

    current_pr: float
    next_pr_weight: float
    sessions_to_next_pr: int
    weeks_to_next_pr: int
    velocity: float
    confidence: float


def valid_one_rms(points: Sequence[Performance]) -> list[float]:
    """1RM estimates in input order, skipping missing or non-positive ones."""
    return [
        p.one_rm_estimate
        for p in points
        if p.one_rm_estimate is not None and p.one_rm_estimate > 0
    ]


def _regression_points(one_rms: Sequence[float], window: int) -> list[tuple[float, float]]:
    # x = session index, 0 = most recent, increasing into the past
    return [(float(i), y) for i, y in enumerate(one_rms[:window])]


def progression_velocity(one_rms: Sequence[float], window: int = REGRESSION_WINDOW) -> float:
    """
    1RM gained per session from a least-squares fit.

    The regression runs over session index (0 = most recent), so the
    slope is negated; a flat or falling trend gives 0.

    Args:
        one_rms: 1RM estimates, most recent first
        window: Number of most recent points to fit

    Returns:
        Non-negative velocity in weight units per session
    """
    points = _regression_points(one_rms, window)
    if len(points) < 2:
        return 0.0
    _, slope = linear_regression(points)
    return max(0.0, -slope)


def next_pr_weight(current_pr: float, step: float = PR_STEP) -> float:
    """Next achievable plate increment: ceil((pr + step) / step) * step."""
    return math.ceil((current_pr + step) / step) * step


def forecast_confidence(
    one_rms: Sequence[float],
    velocity: float,
    window: int = REGRESSION_WINDOW,
) -> float:
    """
    Confidence in [0, 1] from the regression's goodness of fit.

    confidence = clip(R², 0, 1), +0.2 (cap 1) for a plausible velocity in
    [0.5, 5], -0.3 (floor 0) for a velocity above 10.  Rounded to 2 dp.
    """
    points = _regression_points(one_rms, window)
    intercept, slope = linear_regression(points)
    confidence = clip(r_squared(points, intercept, slope), 0.0, 1.0)

    if PLAUSIBLE_VELOCITY_MIN <= velocity <= PLAUSIBLE_VELOCITY_MAX:
        confidence = min(1.0, confidence + PLAUSIBLE_BOOST)

    if velocity > IMPLAUSIBLE_VELOCITY:
        confidence = max(0.0, confidence - IMPLAUSIBLE_PENALTY)

    return round(confidence, 2)


def calculate_forecast(
    one_rms: Sequence[float],
    velocity: float,
    experience_level: str,
    window: int = REGRESSION_WINDOW,
) -> ForecastCalculation:
    """
    Turn a positive velocity into sessions and weeks to the next PR.

    Args:
        one_rms: Valid 1RM estimates, most recent first
        velocity: Positive 1RM gain per session
        experience_level: Sets the expected weekly frequency (2 / 3 / 4)
        window: Regression window used for confidence

    Returns:
        ForecastCalculation
    """
    current_pr = max(one_rms)
    target = next_pr_weight(current_pr)
    sessions = math.ceil((target - current_pr) / velocity)
    weeks = math.ceil(sessions / weekly_frequency(experience_level))

    return ForecastCalculation(
        current_pr=current_pr,
        next_pr_weight=target,
        sessions_to_next_pr=sessions,
        weeks_to_next_pr=weeks,
        velocity=velocity,
        confidence=forecast_confidence(one_rms, velocity, window),
    )


def forecast_from_points(
    points: Sequence[Performance],
    experience_level: str = "intermediate",
    *,
    master_exercise_id: int = 0,
    exercise_name: str = "",
    now: datetime | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ForecastResult:
    """
    Forecast the next PR from historical performances.

    Args:
        points: Performances for one exercise, most recent first
        experience_level: beginner / intermediate / advanced
        master_exercise_id: Exercise the points belong to
        exercise_name: Display name copied into the forecast
        now: Calculation timestamp (defaults to the current time)
        settings: Engine tunables

    Returns:
        ForecastResult with one forecast, or the empty result when there
        are fewer than the minimum valid 1RM points or no upward trend
    """
    one_rms = valid_one_rms(points[: settings.forecast_lookback_sessions])
    if len(one_rms) < settings.min_forecast_points:
        LOGGER.debug(
            "forecast.insufficient_data master_exercise_id=%s points=%d",
            master_exercise_id,
            len(one_rms),
        )
        return ForecastResult()

    velocity = progression_velocity(one_rms, settings.regression_window)
    if velocity <= 0:
        return ForecastResult()

    calc = calculate_forecast(one_rms, velocity, experience_level, settings.regression_window)

    forecast = ForecastData(
        exercise_name=exercise_name,
        master_exercise_id=master_exercise_id,
        current_weight=calc.current_pr,
        forecasted_weight=calc.next_pr_weight,
        estimated_weeks_low=max(1, calc.weeks_to_next_pr - 1),
        estimated_weeks_high=calc.weeks_to_next_pr + 1,
        confidence_percent=round(calc.confidence * 100),
        calculated_at=now or datetime.now(),
        trajectory="improving" if calc.velocity > IMPROVING_VELOCITY else "stable",
    )

    return ForecastResult(
        forecasts=[forecast],
        total_count=1,
        average_confidence=calc.confidence,
    )


def generate_pr_forecast(
    source: "ForecastSource",
    user_id: str,
    master_exercise_id: int,
    experience_level: str = "intermediate",
    *,
    exercise_name: str = "",
    now: datetime | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ForecastResult:
    """Load up to the lookback window of history and forecast from it."""
    points = source.load_forecast_history(
        user_id, master_exercise_id, settings.forecast_lookback_sessions
    )
    return forecast_from_points(
        points,
        experience_level,
        master_exercise_id=master_exercise_id,
        exercise_name=exercise_name,
        now=now,
        settings=settings,
    )


def store_pr_forecast(
    sink: "ForecastSource",
    user_id: str,
    forecast: ForecastData,
) -> PRForecast:
    """
    Replace the stored forecast for (user, exercise) with this one.

    Returns:
        The row that was written
    """
    row = PRForecast(
        user_id=user_id,
        master_exercise_id=forecast.master_exercise_id,
        forecasted_weight=forecast.forecasted_weight,
        estimated_weeks_low=forecast.estimated_weeks_low,
        estimated_weeks_high=forecast.estimated_weeks_high,
        confidence_percent=forecast.confidence_percent,
        calculated_at=forecast.calculated_at,
        trajectory=forecast.trajectory,
        current_weight=forecast.current_weight,
    )
    sink.replace_forecast(row)
    LOGGER.info(
        "forecast.stored user_id=%s master_exercise_id=%s forecasted_weight=%s confidence=%s",
        user_id,
        forecast.master_exercise_id,
        forecast.forecasted_weight,
        forecast.confidence_percent,
    )
    return row


def forecast_context(points: Sequence[Performance]) -> list[dict]:
    """
    Historical points flattened for analysis views.

    Each entry has weight, reps, date, one_rm_estimate (0 when missing)
    and volume = weight * reps.
    """
    return [
        {
            "weight": p.weight,
            "reps": p.reps,
            "date": p.workout_date,
            "one_rm_estimate": p.one_rm_estimate or 0.0,
            "volume": p.weight * p.reps,
        }
        for p in points
    ]
