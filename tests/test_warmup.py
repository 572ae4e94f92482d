"""Warm-up detection and default protocol tests."""

from datetime import datetime, timedelta

import pytest

from lift_analytics.core.models import SetRecord, WarmupProtocolConfig, WarmupSessionRecord
from lift_analytics.core.warmup import (
    detect_warmup_pattern,
    generate_default_warmup_protocol,
    pattern_from_sessions,
    plan_warmup,
    volume_breakdown,
    warmup_confidence,
)

NOW = datetime(2026, 3, 10, 12, 0)


def _session(days_ago: int, top: float | None, *warmups: tuple[float, int]) -> WarmupSessionRecord:
    return WarmupSessionRecord(
        session_exercise_id=days_ago,
        workout_date=NOW - timedelta(days=days_ago),
        top_set_weight=top,
        warmup_sets=[SetRecord(weight=w, reps=r, set_type="warmup") for w, r in warmups],
    )


class FakeWarmupSource:
    def __init__(self, sessions):
        self.sessions = sessions
        self.calls = []

    def load_warmup_sessions(self, user_id, exercise_name, limit):
        self.calls.append((user_id, exercise_name, limit))
        return self.sessions[:limit]


class TestConfidence:
    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "low"), (1, "low"), (2, "medium"), (4, "medium"), (5, "high"), (9, "high")],
    )
    def test_tiers(self, count, expected):
        assert warmup_confidence(count) == expected


class TestPatternFromSessions:
    def test_scales_latest_pattern(self):
        sessions = [
            _session(2, 100, (50, 8)),
            _session(5, 80, (20, 10), (40, 5), (60, 3)),
        ]
        pattern = pattern_from_sessions(sessions, 120)

        assert pattern.source == "history"
        assert pattern.confidence == "medium"
        assert pattern.session_count == 2
        assert len(pattern.sets) == 1
        s = pattern.sets[0]
        assert s.set_number == 1
        assert s.weight == pytest.approx(60.0)
        assert s.reps == 8
        assert s.percentage_of_top == pytest.approx(0.5)

    def test_weights_rounded_to_plates(self):
        # 0.4 * 120 = 48 → 47.5; 0.6 * 120 = 72 → 72.5
        sessions = [_session(1, 100, (40, 5), (60, 3)), _session(3, 100, (40, 5))]
        pattern = pattern_from_sessions(sessions, 120)
        assert [s.weight for s in pattern.sets] == [47.5, 72.5]
        assert [s.set_number for s in pattern.sets] == [1, 2]

    def test_skips_sessions_without_warmups(self):
        sessions = [_session(1, 100), _session(3, 100, (50, 5)), _session(6, 100)]
        pattern = pattern_from_sessions(sessions, 100)
        assert pattern.session_count == 1
        assert pattern.confidence == "low"
        assert [s.weight for s in pattern.sets] == [50.0]

    def test_unknown_top_uses_target(self):
        sessions = [_session(1, None, (50, 5)), _session(2, None, (50, 5))]
        pattern = pattern_from_sessions(sessions, 100)
        assert pattern.sets[0].percentage_of_top == pytest.approx(0.5)

    def test_too_few_sessions(self):
        pattern = pattern_from_sessions([_session(1, 100, (50, 5))], 100)
        assert pattern.sets == []
        assert pattern.source == "protocol"
        assert pattern.confidence == "low"
        assert pattern.session_count == 0

    def test_no_warmups_logged(self):
        pattern = pattern_from_sessions([_session(1, 100), _session(2, 100), _session(3, 100)], 100)
        assert pattern.sets == []
        assert pattern.source == "protocol"
        assert pattern.session_count == 3


class TestDefaultProtocol:
    def test_default_ladder(self):
        sets = generate_default_warmup_protocol(100, 5)
        assert [s.weight for s in sets] == [40.0, 60.0, 80.0]
        assert [s.reps for s in sets] == [5, 5, 5]
        assert [s.set_number for s in sets] == [1, 2, 3]
        assert [s.percentage_of_top for s in sets] == pytest.approx([0.4, 0.6, 0.8])

    def test_rounding(self):
        # 102.5 * 0.4 = 41 → 40
        assert generate_default_warmup_protocol(102.5, 5)[0].weight == 40.0

    def test_descending_reps(self):
        config = WarmupProtocolConfig(sets_count=4, reps_strategy="descending")
        assert [s.reps for s in generate_default_warmup_protocol(100, 3, config)] == [10, 8, 6, 5]

    def test_fixed_reps(self):
        config = WarmupProtocolConfig(reps_strategy="fixed", fixed_reps=4)
        assert [s.reps for s in generate_default_warmup_protocol(100, 12, config)] == [4, 4, 4]

    def test_last_percentage_repeats(self):
        config = WarmupProtocolConfig(percentages=[50, 70], sets_count=4)
        assert [s.weight for s in generate_default_warmup_protocol(100, 5, config)] == [
            50.0, 70.0, 70.0, 70.0,
        ]

    def test_empty_percentages_use_eighty(self):
        config = WarmupProtocolConfig(percentages=[], sets_count=2)
        assert [s.weight for s in generate_default_warmup_protocol(100, 5, config)] == [80.0, 80.0]

    def test_zero_sets(self):
        assert generate_default_warmup_protocol(100, 5, WarmupProtocolConfig(sets_count=0)) == []

    def test_invalid_strategy(self):
        with pytest.raises(ValueError):
            WarmupProtocolConfig(reps_strategy="pyramid")  # type: ignore[arg-type]


class TestSourceBacked:
    def test_detect_reads_lookback(self):
        source = FakeWarmupSource([_session(1, 100, (50, 5)), _session(2, 100, (50, 5))])
        pattern = detect_warmup_pattern(source, "u1", "Squat", 140)
        assert source.calls == [("u1", "Squat", 10)]
        assert pattern.sets[0].weight == pytest.approx(70.0)

    def test_plan_falls_back_to_default(self):
        pattern = plan_warmup(FakeWarmupSource([]), "u1", "Squat", 100, 5)
        assert pattern.source == "default"
        assert pattern.confidence == "low"
        assert [s.weight for s in pattern.sets] == [40.0, 60.0, 80.0]

    def test_plan_prefers_history(self):
        source = FakeWarmupSource([_session(1, 100, (50, 5)), _session(2, 100, (50, 5))])
        pattern = plan_warmup(source, "u1", "Squat", 100, 5)
        assert pattern.source == "history"


class TestVolumeBreakdown:
    def test_split_by_type(self):
        sets = [
            SetRecord(60, 5, set_type="warmup"),
            SetRecord(100, 5),
            SetRecord(80, 8, set_type="backoff"),
        ]
        breakdown = volume_breakdown(sets)
        assert breakdown["total"] == pytest.approx(1440)
        assert breakdown["warmup"] == pytest.approx(300)
        assert breakdown["working"] == pytest.approx(500)
        assert breakdown["backoff"] == pytest.approx(640)
        assert breakdown["drop"] == 0.0
