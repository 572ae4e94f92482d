"""
PR forecasting tests.

1RM series are given most recent first, as the store returns them.
"""

from datetime import datetime, timedelta

import pytest

from lift_analytics.core.config import EngineSettings
from lift_analytics.core.forecast import (
    forecast_confidence,
    forecast_context,
    forecast_from_points,
    generate_pr_forecast,
    next_pr_weight,
    progression_velocity,
    store_pr_forecast,
)
from lift_analytics.core.models import Performance, PRForecast

NOW = datetime(2026, 3, 10, 12, 0)


def _points(*one_rms: float | None, master_id: int = 1) -> list[Performance]:
    """Performances two days apart, most recent first."""
    return [
        Performance(
            master_exercise_id=master_id,
            session_id=100 - i,
            workout_date=NOW - timedelta(days=2 * i),
            weight=orm or 0.0,
            reps=1,
            sets=1,
            one_rm_estimate=orm,
        )
        for i, orm in enumerate(one_rms)
    ]


class FakeForecastSource:
    """Records the reads and writes of a forecast run."""

    def __init__(self, points: list[Performance]):
        self.points = points
        self.limits: list[int] = []
        self.stored: list[PRForecast] = []

    def load_forecast_history(self, user_id, master_exercise_id, limit):
        self.limits.append(limit)
        return [p for p in self.points if p.master_exercise_id == master_exercise_id][:limit]

    def replace_forecast(self, forecast):
        self.stored = [
            f
            for f in self.stored
            if (f.user_id, f.master_exercise_id) != (forecast.user_id, forecast.master_exercise_id)
        ]
        self.stored.append(forecast)


class TestVelocityAndTarget:
    def test_steady_progress(self):
        # chronological 100 → 107.5 in 2.5 steps: slope over index = -2.5
        assert progression_velocity([107.5, 105, 102.5, 100]) == pytest.approx(2.5)

    def test_declining_trend_is_zero(self):
        assert progression_velocity([100, 102.5, 105]) == 0.0

    def test_window_limits_points(self):
        # only the two most recent points are fitted: 110 vs 100 → 10
        assert progression_velocity([110, 100, 300, 50], window=2) == pytest.approx(10.0)

    @pytest.mark.parametrize(
        ("current", "expected"),
        [(107.5, 110.0), (108, 112.5), (100, 102.5)],
    )
    def test_next_pr_weight(self, current, expected):
        # ceil((pr + 2.5) / 2.5) * 2.5
        assert next_pr_weight(current) == pytest.approx(expected)


class TestConfidence:
    def test_perfect_fit_plausible_velocity_caps_at_one(self):
        # R² = 1, +0.2 → capped 1.0
        assert forecast_confidence([107.5, 105, 102.5, 100], 2.5) == 1.0

    def test_implausible_velocity_penalized(self):
        # R² = 1, velocity 15 > 10 → 1.0 - 0.3 = 0.7
        assert forecast_confidence([130, 115, 100], 15.0) == pytest.approx(0.7)

    def test_noisy_series(self):
        # x̄ = 1.5, ȳ = 102.25; Sxy = -5.5, Sxx = 5 → slope -1.1
        # SS_tot = 20.75, SS_reg = 1.21 * 5 = 6.05 → R² ≈ 0.2916
        # plausible velocity 1.1 → +0.2 → 0.49
        assert forecast_confidence([105, 100, 104, 100], 1.1) == pytest.approx(0.49)


class TestForecastFromPoints:
    def test_steady_progress_forecast(self):
        result = forecast_from_points(
            _points(107.5, 105, 102.5, 100),
            "intermediate",
            master_exercise_id=1,
            exercise_name="Squat",
            now=NOW,
        )
        assert result.total_count == 1
        assert result.average_confidence == 1.0

        f = result.forecasts[0]
        assert f.exercise_name == "Squat"
        assert f.current_weight == pytest.approx(107.5)
        assert f.forecasted_weight == pytest.approx(110.0)
        # 1 session at 3/week → 1 week → band 1..2
        assert f.estimated_weeks_low == 1
        assert f.estimated_weeks_high == 2
        assert f.confidence_percent == 100
        assert f.trajectory == "improving"
        assert f.calculated_at == NOW

    def test_noisy_beginner_forecast(self):
        # velocity 1.1 → ceil(2.5 / 1.1) = 3 sessions → ceil(3 / 2) = 2 weeks
        result = forecast_from_points(_points(105, 100, 104, 100), "beginner", now=NOW)
        f = result.forecasts[0]
        assert f.forecasted_weight == pytest.approx(107.5)
        assert f.estimated_weeks_low == 1
        assert f.estimated_weeks_high == 3
        assert f.confidence_percent == 49

    def test_fewer_than_three_points_is_empty(self):
        result = forecast_from_points(_points(107.5, 105))
        assert result.forecasts == []
        assert result.total_count == 0

    def test_points_without_estimates_do_not_count(self):
        result = forecast_from_points(_points(107.5, None, 105, 0))
        assert result.total_count == 0

    def test_declining_series_is_empty(self):
        assert forecast_from_points(_points(100, 102.5, 105, 107.5)).total_count == 0

    def test_flat_series_is_empty(self):
        assert forecast_from_points(_points(100, 100, 100)).total_count == 0

    def test_min_points_configurable(self):
        settings = EngineSettings(min_forecast_points=5)
        assert forecast_from_points(_points(107.5, 105, 102.5, 100), settings=settings).total_count == 0

    def test_insufficient_data_is_logged(self, caplog):
        with caplog.at_level("DEBUG", logger="lift_analytics.core.forecast"):
            forecast_from_points(_points(100), master_exercise_id=7)
        assert "forecast.insufficient_data" in caplog.text


class TestForecastStorage:
    def test_generate_reads_lookback_window(self):
        source = FakeForecastSource(_points(107.5, 105, 102.5, 100))
        result = generate_pr_forecast(source, "u1", 1, now=NOW)
        assert source.limits == [20]
        assert result.total_count == 1

    def test_store_replaces_previous_forecast(self):
        source = FakeForecastSource(_points(107.5, 105, 102.5, 100))
        first = generate_pr_forecast(source, "u1", 1, now=NOW).forecasts[0]
        store_pr_forecast(source, "u1", first)
        later = generate_pr_forecast(source, "u1", 1, now=NOW + timedelta(days=1)).forecasts[0]
        row = store_pr_forecast(source, "u1", later)

        assert len(source.stored) == 1
        assert source.stored[0] is row
        assert row.calculated_at == NOW + timedelta(days=1)
        assert row.forecasted_weight == pytest.approx(110.0)

    def test_forecast_context(self):
        points = _points(100, None)
        context = forecast_context(points)
        assert context[0]["volume"] == pytest.approx(100.0)
        assert context[1]["one_rm_estimate"] == 0.0
