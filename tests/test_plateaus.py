"""
Plateau detection and recommendation tests.

PlateauStub keeps performances and plateaus in memory and counts reads,
mirroring the milestone tests.
"""

from datetime import datetime, timedelta

import pytest

from lift_analytics.core.config import EngineSettings
from lift_analytics.core.models import Performance, Plateau
from lift_analytics.core.plateaus import (
    NO_PLATEAU,
    analyze_plateau,
    check_and_record_plateaus,
    evaluate_plateau,
    filter_recommendations,
    generate_plateau_recommendations,
    has_progressed,
    plateau_duration_weeks,
    population_variance,
    specific_plateau_recommendation,
    volume_trend,
)

NOW = datetime(2026, 3, 10, 12, 0)
USER = "u1"


def _perf(days_ago: float, weight: float, reps: int, master_id: int = 1) -> Performance:
    return Performance(
        master_exercise_id=master_id,
        session_id=int(100 - days_ago),
        workout_date=NOW - timedelta(days=days_ago),
        weight=weight,
        reps=reps,
        sets=3,
    )


def _sessions(*weight_reps: tuple[float, int], master_id: int = 1, gap_days: float = 3) -> list[Performance]:
    """Performances most recent first, gap_days apart."""
    return [_perf(i * gap_days, w, r, master_id) for i, (w, r) in enumerate(weight_reps)]


class PlateauStub:
    """In-memory PlateauSource that counts every read."""

    def __init__(self, performances=None, plateaus=None):
        self.performances = list(performances or [])
        self.plateaus = list(plateaus or [])
        self.reads: list[str] = []

    def load_recent_performances(self, user_id, master_exercise_ids, per_exercise):
        self.reads.append("performances")
        counts: dict[int, int] = {}
        rows = []
        for p in sorted(self.performances, key=lambda p: p.workout_date, reverse=True):
            if p.master_exercise_id in master_exercise_ids and counts.get(p.master_exercise_id, 0) < per_exercise:
                counts[p.master_exercise_id] = counts.get(p.master_exercise_id, 0) + 1
                rows.append(p)
        return rows

    def load_plateaus(self, user_id, status=None):
        self.reads.append("plateaus")
        return [p for p in self.plateaus if p.user_id == user_id and (status is None or p.status == status)]

    def record_plateau(self, plateau):
        plateau.id = len(self.plateaus) + 1
        self.plateaus.append(plateau)
        return plateau


class TestDetection:
    def test_flat_sessions_are_high_confidence(self):
        check = evaluate_plateau(_sessions((100, 5), (100, 5), (100, 5)))
        assert check.detected
        assert (check.stalled_weight, check.stalled_reps) == (100, 5)
        assert check.session_count == 3
        assert check.confidence == "high"

    def test_any_progress_is_not_a_plateau(self):
        # Oldest 100x5, then 102.5x5
        assert evaluate_plateau(_sessions((100, 5), (102.5, 5), (100, 5))) == NO_PLATEAU
        # Rep gain at the same weight
        assert evaluate_plateau(_sessions((100, 6), (100, 5), (100, 5))) == NO_PLATEAU

    def test_declining_sessions_count_as_stalled(self):
        check = evaluate_plateau(_sessions((100, 4), (100, 5), (100, 6)))
        assert check.detected
        assert check.stalled_reps == 4

    def test_needs_full_window(self):
        assert evaluate_plateau(_sessions((100, 5), (100, 5))) == NO_PLATEAU
        assert evaluate_plateau([]) == NO_PLATEAU

    def test_only_window_is_checked(self):
        # Progress happened before the last three sessions
        perfs = _sessions((105, 5), (105, 5), (105, 5), (100, 5))
        assert evaluate_plateau(perfs).detected

    @pytest.mark.parametrize(
        "weights, expected",
        [
            ((100, 100, 100), "high"),
            ((100, 100, 102.5), "medium"),  # variance 1.39
            ((100, 100, 105), "low"),  # variance 5.56
        ],
    )
    def test_confidence_tiers(self, weights, expected):
        check = evaluate_plateau(_sessions(*[(w, 5) for w in weights]))
        assert check.detected
        assert check.confidence == expected

    def test_has_progressed_reads_oldest_to_newest(self):
        assert has_progressed(_sessions((110, 5), (100, 5)))
        assert not has_progressed(_sessions((100, 5), (110, 5)))

    def test_population_variance(self):
        assert population_variance([]) == 0.0
        assert population_variance([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(4.0)

    def test_duration_weeks(self):
        assert plateau_duration_weeks(_sessions((100, 5), (100, 5), gap_days=2)) == 1
        assert plateau_duration_weeks(_sessions((100, 5), (100, 5), (100, 5), gap_days=10.5)) == 3
        assert plateau_duration_weeks([]) == 1


class TestCheckAndRecord:
    def test_records_and_notifies(self):
        source = PlateauStub(_sessions((100, 5), (100, 5), (100, 5)))
        notes = check_and_record_plateaus(source, USER, [1], {1: "Squat"}, now=NOW)

        assert source.reads == ["performances", "plateaus"]
        assert len(notes) == 1
        assert notes[0].type == "plateau_detected"
        assert notes[0].exercise_name == "Squat"
        assert notes[0].confidence == "high"

        assert len(source.plateaus) == 1
        stored = source.plateaus[0]
        assert (stored.id, stored.master_exercise_id, stored.status) == (1, 1, "active")
        assert stored.detected_at == NOW

    def test_active_plateau_not_stored_twice(self):
        existing = Plateau(1, USER, 1, 100, 5, 3, "high", NOW - timedelta(days=7))
        source = PlateauStub(_sessions((100, 5), (100, 5), (100, 5)), [existing])

        notes = check_and_record_plateaus(source, USER, [1], now=NOW)
        assert len(notes) == 1
        assert notes[0].exercise_name == "Unknown exercise"
        assert source.plateaus == [existing]

    def test_resolved_plateau_allows_new_one(self):
        old = Plateau(1, USER, 1, 100, 5, 3, "high", NOW - timedelta(days=30), status="resolved")
        source = PlateauStub(_sessions((100, 5), (100, 5), (100, 5)), [old])

        check_and_record_plateaus(source, USER, [1], now=NOW)
        assert [p.status for p in source.plateaus] == ["resolved", "active"]

    def test_progressing_exercise_skips_plateau_read(self):
        source = PlateauStub(_sessions((105, 5), (100, 5), (95, 5)))
        assert check_and_record_plateaus(source, USER, [1], now=NOW) == []
        assert source.reads == ["performances"]

    def test_batch_uses_one_performance_read(self):
        perfs = _sessions((100, 5), (100, 5), (100, 5), master_id=1) + _sessions(
            (60, 8), (60, 8), (60, 8), master_id=2
        ) + _sessions((80, 5), (77.5, 5), (75, 5), master_id=3)
        source = PlateauStub(perfs)

        notes = check_and_record_plateaus(source, USER, [1, 2, 3, 1], {1: "Squat", 2: "Row", 3: "Bench"}, now=NOW)
        assert [n.exercise_name for n in notes] == ["Squat", "Row"]
        assert source.reads.count("performances") == 1
        assert source.reads.count("plateaus") == 1

    def test_no_exercises(self):
        source = PlateauStub()
        assert check_and_record_plateaus(source, USER, []) == []
        assert source.reads == []

    def test_window_from_settings(self):
        source = PlateauStub(_sessions((100, 5), (100, 5), (100, 5)))
        settings = EngineSettings(plateau_window_sessions=4)
        assert check_and_record_plateaus(source, USER, [1], now=NOW, settings=settings) == []


class TestAnalysis:
    def test_volume_trend(self):
        assert volume_trend([500, 500, 450, 450]) == "declining"
        assert volume_trend([450, 450, 500, 500]) == "improving"
        assert volume_trend([500, 510, 505]) == "stable"
        assert volume_trend([500]) == "stable"
        assert volume_trend([0, 0]) == "stable"

    def test_analyze_flat_sessions(self):
        a = analyze_plateau(_sessions((100, 5), (100, 5), (100, 5)))
        assert a.avg_weight == pytest.approx(100)
        assert a.avg_volume == pytest.approx(500)
        assert a.volume_trend == "stable"
        assert a.intensity == "moderate"
        assert a.consistency_score == pytest.approx(100)

    def test_analyze_empty(self):
        a = analyze_plateau([])
        assert a.volume_trend == "stable"
        assert a.consistency_score == 0


class TestRecommendations:
    def test_flat_intermediate(self):
        recs = generate_plateau_recommendations(_sessions((100, 5), (100, 5), (100, 5)))
        assert [r.rule for r in recs] == [
            "intensive_technique",
            "exercise_variation",
            "periodization",
            "sleep_optimization",
            "strategic_deconditioning",
        ]

    def test_heavy_declining_beginner(self):
        # Oldest first volumes: 390, 390, 360, 360
        perfs = _sessions((120, 3), (120, 3), (130, 3), (130, 3))
        recs = generate_plateau_recommendations(perfs, "beginner")
        assert [r.rule for r in recs] == ["volume_overload", "volume_accumulation", "sleep_optimization"]
        assert recs[0].priority == "high"
        assert recs[0].playbook_cta

    def test_capped_at_six_by_priority(self):
        recs = generate_plateau_recommendations(_sessions((60, 12), (60, 12), (60, 12)), "advanced")
        assert len(recs) == 6
        assert recs[0].rule == "intensity_increase"
        assert [r.priority for r in recs] == ["high", "medium", "medium", "medium", "low", "low"]
        assert "strategic_deconditioning" not in [r.rule for r in recs]

    def test_maintenance_mode(self):
        recs = generate_plateau_recommendations(_sessions((100, 5), (100, 5), (100, 5)), maintenance_mode=True)
        assert [r.rule for r in recs] == ["maintenance_mode"]

    def test_filter(self):
        recs = generate_plateau_recommendations(_sessions((100, 5), (100, 5), (100, 5)))
        assert [r.rule for r in filter_recommendations(recs, prefers_playbooks=True)] == [
            "exercise_variation",
            "periodization",
        ]
        trimmed = filter_recommendations(recs, max_recommendations=2, excluded_rules=["intensive_technique"])
        assert [r.rule for r in trimmed] == ["exercise_variation", "periodization"]

    def test_specific_recommendation(self):
        assert specific_plateau_recommendation("hypertrophy").rule == "hypertrophy_plateau"
        assert specific_plateau_recommendation("mystery").rule == "strength_plateau"
