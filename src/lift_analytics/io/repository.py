"""
Data-access contracts consumed by the engine.

The engine never queries storage row by row: each protocol method is one
bulk read (or one write) that a persistence adapter answers in a single
query.  TrainingStore implements all of them over a data directory.
"""

from datetime import datetime
from typing import Protocol, Sequence

from ..core.models import (
    ExerciseHistory,
    Milestone,
    MilestoneAchievement,
    Performance,
    Plateau,
    PRForecast,
    WarmupSessionRecord,
)


class MilestoneSource(Protocol):
    """Bulk reads and the append-only write used by milestone evaluation."""

    def load_milestones(
        self, user_id: str, master_exercise_ids: Sequence[int]
    ) -> list[Milestone]:
        """All active milestones of the user across the given exercises."""
        ...

    def load_performances(
        self, user_id: str, master_exercise_ids: Sequence[int], since: datetime
    ) -> list[Performance]:
        """Performances on or after since, joined through exercise links, newest first."""
        ...

    def load_achievements(
        self, user_id: str, milestone_ids: Sequence[int], since: datetime
    ) -> list[MilestoneAchievement]:
        """Achievements for the milestones recorded on or after since."""
        ...

    def record_achievement(self, achievement: MilestoneAchievement) -> None:
        """Append one achievement row."""
        ...


class ForecastSource(Protocol):
    """Reads and the replace-on-write sink used by PR forecasting."""

    def load_forecast_history(
        self, user_id: str, master_exercise_id: int, limit: int
    ) -> list[Performance]:
        """Up to limit most recent performances, newest first."""
        ...

    def replace_forecast(self, forecast: PRForecast) -> None:
        """Delete any stored forecast for (user, exercise) and insert this one."""
        ...


class WarmupSource(Protocol):
    """Reads used by warm-up pattern detection."""

    def load_warmup_sessions(
        self, user_id: str, exercise_name: str, limit: int
    ) -> list[WarmupSessionRecord]:
        """Up to limit most recent sessions of the exercise, newest first."""
        ...


class HistorySource(Protocol):
    """Reads used by the progression suggester."""

    def load_exercise_histories(
        self, user_id: str, exercise_names: Sequence[str], sessions: int
    ) -> list[ExerciseHistory]:
        """Last sessions per exercise name, in the order the names were given."""
        ...


class PlateauSource(Protocol):
    """Bulk reads and writes used by plateau detection."""

    def load_recent_performances(
        self, user_id: str, master_exercise_ids: Sequence[int], per_exercise: int
    ) -> list[Performance]:
        """Up to per_exercise most recent performances of each exercise, newest first."""
        ...

    def load_plateaus(self, user_id: str, status: str | None = None) -> list[Plateau]:
        """Stored plateaus of the user, optionally filtered by status."""
        ...

    def record_plateau(self, plateau: Plateau) -> Plateau:
        """Store a new plateau and return it with its assigned id."""
        ...
