"""
Milestone batch evaluation tests.

CountingSource stands in for the persistence layer and counts bulk reads,
so the tests can pin down the three-read contract.
"""

from datetime import datetime, timedelta

import pytest

from lift_analytics.core.config import EngineSettings
from lift_analytics.core.milestones import (
    DEFAULT_LIFTS,
    check_and_record_milestones,
    evaluate_milestone,
    generate_default_milestones,
    milestone_difficulty,
    milestone_progress,
    suggest_milestones,
)
from lift_analytics.core.models import Milestone, Performance

NOW = datetime(2026, 3, 10, 12, 0)
USER = "u1"


def _milestone(mid: int, kind: str, target: float, master_id: int = 1) -> Milestone:
    return Milestone(id=mid, user_id=USER, master_exercise_id=master_id, type=kind, target_value=target)


def _perf(
    days_ago: float,
    weight: float,
    reps: int,
    sets: int,
    one_rm: float | None = None,
    master_id: int = 1,
) -> Performance:
    return Performance(
        master_exercise_id=master_id,
        session_id=int(days_ago * 10),
        workout_date=NOW - timedelta(days=days_ago),
        weight=weight,
        reps=reps,
        sets=sets,
        one_rm_estimate=one_rm,
    )


class CountingSource:
    """In-memory MilestoneSource that counts every read."""

    def __init__(self, milestones=None, performances=None):
        self.milestones = list(milestones or [])
        self.performances = list(performances or [])
        self.achievements = []
        self.reads: list[str] = []

    def load_milestones(self, user_id, master_exercise_ids):
        self.reads.append("milestones")
        return [
            m for m in self.milestones
            if m.user_id == user_id and m.master_exercise_id in master_exercise_ids
        ]

    def load_performances(self, user_id, master_exercise_ids, since):
        self.reads.append("performances")
        return [
            p for p in self.performances
            if p.master_exercise_id in master_exercise_ids and p.workout_date >= since
        ]

    def load_achievements(self, user_id, milestone_ids, since):
        self.reads.append("achievements")
        return [
            a for a in self.achievements
            if a.user_id == user_id and a.milestone_id in milestone_ids and a.achieved_at >= since
        ]

    def record_achievement(self, achievement):
        self.achievements.append(achievement)


# ===========================================================================
# Evaluators
# ===========================================================================


class TestEvaluators:
    def test_one_rm_milestone(self):
        result = evaluate_milestone(
            _milestone(1, "absolute_weight", 110),
            [_perf(1, 100, 5, 3, one_rm=112.5), _perf(5, 100, 3, 3, one_rm=105.88)],
            NOW,
        )
        assert result.achieved is True
        assert result.value == pytest.approx(112.5)

    def test_bodyweight_milestone_uses_one_rm(self):
        result = evaluate_milestone(
            _milestone(1, "bodyweight_multiplier", 120), [_perf(1, 100, 5, 3, one_rm=112.5)], NOW
        )
        assert result.achieved is False
        assert result.value == pytest.approx(112.5)

    def test_volume_most_recent_session(self):
        # 100 * 10 * 2 = 2000
        result = evaluate_milestone(_milestone(1, "volume", 2000), [_perf(1, 100, 10, 2)], NOW)
        assert result.achieved is True
        assert result.value == pytest.approx(2000)

    def test_volume_ignores_older_qualifying_session(self):
        # 3 days ago: 1000; 5 days ago: 3000 → only the most recent counts
        performances = [_perf(3, 100, 5, 2), _perf(5, 100, 10, 3)]
        result = evaluate_milestone(_milestone(1, "volume", 2000), performances, NOW)
        assert result.achieved is False
        assert result.value == pytest.approx(1000)

    def test_volume_outside_seven_days(self):
        result = evaluate_milestone(_milestone(1, "volume", 2000), [_perf(8, 100, 10, 2)], NOW)
        assert result.achieved is False
        assert result.value == 0

    def test_reps_at_ninety_percent_of_target(self):
        # target 10 → weight floor 9; 8 kg sets do not count
        performances = [_perf(1, 9.5, 12, 1), _perf(2, 8, 20, 1)]
        result = evaluate_milestone(_milestone(1, "reps", 10), performances, NOW)
        assert result.achieved is True
        assert result.value == 12

    def test_unknown_type_warns(self, caplog):
        with caplog.at_level("WARNING", logger="lift_analytics.core.milestones"):
            result = evaluate_milestone(_milestone(1, "speed", 1), [_perf(1, 100, 10, 2)], NOW)
        assert result.achieved is False
        assert "milestone.unknown_type" in caplog.text


# ===========================================================================
# Batch check
# ===========================================================================


class TestBatchCheck:
    def test_volume_milestone_achieved_once(self):
        source = CountingSource(
            milestones=[_milestone(1, "volume", 2000)],
            performances=[_perf(1, 100, 10, 2)],
        )

        notes = check_and_record_milestones(source, USER, 42, [1], {1: "Squat"}, now=NOW)

        assert source.reads == ["milestones", "performances", "achievements"]
        assert len(notes) == 1
        n = notes[0]
        assert n.type == "milestone_achieved"
        assert n.exercise_name == "Squat"
        assert n.milestone_type == "volume"
        assert n.achieved_value == pytest.approx(2000)
        assert n.target_value == pytest.approx(2000)
        assert n.achieved_date == NOW.isoformat()

        assert len(source.achievements) == 1
        assert source.achievements[0].workout_id == 42
        assert source.achievements[0].achieved_value == pytest.approx(2000)

    def test_rerun_within_dedup_window_records_nothing(self):
        source = CountingSource(
            milestones=[_milestone(1, "volume", 2000)],
            performances=[_perf(1, 100, 10, 2)],
        )
        check_and_record_milestones(source, USER, 42, [1], now=NOW)
        again = check_and_record_milestones(source, USER, 42, [1], now=NOW + timedelta(hours=2))

        assert again == []
        assert len(source.achievements) == 1

    def test_rerun_after_dedup_window_records_again(self):
        source = CountingSource(
            milestones=[_milestone(1, "absolute_weight", 100)],
            performances=[_perf(0, 100, 1, 1, one_rm=100)],
        )
        check_and_record_milestones(source, USER, 1, [1], now=NOW)
        later = check_and_record_milestones(source, USER, 2, [1], now=NOW + timedelta(hours=25))

        assert len(later) == 1
        assert len(source.achievements) == 2

    def test_dedup_window_configurable(self):
        settings = EngineSettings(achievement_dedup_hours=1)
        source = CountingSource(
            milestones=[_milestone(1, "absolute_weight", 100)],
            performances=[_perf(0, 100, 1, 1, one_rm=100)],
        )
        check_and_record_milestones(source, USER, 1, [1], now=NOW, settings=settings)
        later = check_and_record_milestones(
            source, USER, 2, [1], now=NOW + timedelta(hours=2), settings=settings
        )
        assert len(later) == 1

    def test_three_reads_for_many_exercises(self):
        milestones = [_milestone(i, "absolute_weight", 100, master_id=i) for i in range(1, 6)]
        performances = [_perf(1, 100, 1, 1, one_rm=100, master_id=i) for i in range(1, 6)]
        source = CountingSource(milestones, performances)

        notes = check_and_record_milestones(source, USER, 9, [1, 2, 3, 4, 5, 1], now=NOW)

        assert len(source.reads) == 3
        assert len(notes) == 5

    def test_no_milestones_skips_achievement_read(self):
        source = CountingSource(performances=[_perf(1, 100, 10, 2)])
        assert check_and_record_milestones(source, USER, 1, [1], now=NOW) == []
        assert source.reads == ["milestones", "performances"]

    def test_no_exercises_no_reads(self):
        source = CountingSource()
        assert check_and_record_milestones(source, USER, 1, [], now=NOW) == []
        assert source.reads == []

    def test_performances_older_than_window_ignored(self):
        source = CountingSource(
            milestones=[_milestone(1, "absolute_weight", 100)],
            performances=[_perf(31, 120, 1, 1, one_rm=120)],
        )
        assert check_and_record_milestones(source, USER, 1, [1], now=NOW) == []

    def test_unknown_type_never_raises(self):
        source = CountingSource(
            milestones=[_milestone(1, "speed", 1), _milestone(2, "absolute_weight", 50)],
            performances=[_perf(1, 100, 1, 1, one_rm=100)],
        )
        notes = check_and_record_milestones(source, USER, 1, [1], now=NOW)
        assert [n.milestone_type for n in notes] == ["absolute_weight"]

    def test_missing_exercise_name(self):
        source = CountingSource(
            milestones=[_milestone(1, "absolute_weight", 50)],
            performances=[_perf(1, 100, 1, 1, one_rm=100)],
        )
        notes = check_and_record_milestones(source, USER, 1, [1], now=NOW)
        assert notes[0].exercise_name == "Unknown exercise"


# ===========================================================================
# Defaults and progress
# ===========================================================================


class TestDefaults:
    def test_counts_per_level(self):
        # 5 lifts × 2 / 3 / 5 targets
        assert len(generate_default_milestones(USER, "beginner")) == 10
        assert len(generate_default_milestones(USER, "intermediate")) == 15
        assert len(generate_default_milestones(USER, "advanced")) == 25

    def test_bodyweight_targets_are_absolute_loads(self):
        squat = [
            m for m in generate_default_milestones(USER, "beginner", bodyweight=80)
            if m.master_exercise_id == DEFAULT_LIFTS["Squat"]
        ]
        # 1.0× and 1.5× of 80
        assert [m.target_value for m in squat] == [80, 120]
        assert [m.target_multiplier for m in squat] == [1, 1.5]
        assert all(m.type == "bodyweight_multiplier" for m in squat)

    def test_default_bodyweight(self):
        first = generate_default_milestones(USER, "beginner")[0]
        assert first.target_value == pytest.approx(150)

    def test_ids_are_sequential(self):
        ids = [m.id for m in generate_default_milestones(USER, "beginner", first_id=11)]
        assert ids == list(range(11, 21))

    def test_suggestions(self):
        # 1RM 112.5 → 123.75 → rounded up to 125; volume 10 × 100
        suggestions = suggest_milestones(USER, 1, 112.5, 100)
        assert [(m.type, m.target_value) for m in suggestions] == [
            ("absolute_weight", 125),
            ("volume", 1000),
        ]
        assert all(not m.is_system_default for m in suggestions)

    def test_progress(self):
        assert milestone_progress(75, 100) == 75.0
        assert milestone_progress(150, 100) == 100.0
        assert milestone_progress(10, 0) == 0.0

    def test_difficulty(self):
        assert milestone_difficulty(_milestone(1, "absolute_weight", 135), "beginner") == "easy"
        assert milestone_difficulty(_milestone(1, "volume", 6000), "beginner") == "advanced"
        bw = Milestone(1, USER, 1, "bodyweight_multiplier", 160, target_multiplier=2)
        assert milestone_difficulty(bw, "advanced") == "advanced"
