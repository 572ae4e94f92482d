"""
Directory-based storage for workouts, milestones, achievements, forecasts
and plateaus.

Layout of a data directory:
- workouts.jsonl      one line per exercise logged in a workout
- milestones.json     list of milestone records
- achievements.jsonl  append-only milestone achievements
- forecasts.json      one live PR forecast per (user, exercise)
- plateaus.json       detected plateaus, at most one active per (user, exercise)

TrainingStore answers every engine read with a single pass over the
relevant file, so each protocol call maps to one bulk query.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from ..core.metrics import estimate_one_rm, heaviest_set
from ..core.models import (
    ExerciseHistory,
    ExerciseSessionRecord,
    Milestone,
    MilestoneAchievement,
    Performance,
    Plateau,
    PRForecast,
    WarmupSessionRecord,
    WorkoutEntry,
)
from .serializers import (
    ValidationError,
    achievement_to_dict,
    dict_to_achievement,
    dict_to_milestone,
    dict_to_plateau,
    dict_to_pr_forecast,
    entry_to_json_line,
    json_line_to_entry,
    milestone_to_dict,
    plateau_to_dict,
    pr_forecast_to_dict,
)

LOGGER = logging.getLogger(__name__)

WORKOUTS_FILE = "workouts.jsonl"
MILESTONES_FILE = "milestones.json"
ACHIEVEMENTS_FILE = "achievements.jsonl"
FORECASTS_FILE = "forecasts.json"
PLATEAUS_FILE = "plateaus.json"


def entry_to_performance(entry: WorkoutEntry) -> Performance | None:
    """
    Aggregate a linked workout entry into one performance row.

    weight/reps come from the heaviest working set, sets counts working
    sets and one_rm_estimate is the best estimate across working sets.
    Returns None for unlinked entries or entries without working sets.
    """
    if entry.master_exercise_id is None:
        return None

    working = entry.working_sets
    top = heaviest_set(working)
    if top is None:
        return None

    estimates = [estimate_one_rm(s.weight, s.reps) for s in working if s.weight > 0 and s.reps > 0]
    return Performance(
        master_exercise_id=entry.master_exercise_id,
        session_id=entry.session_id,
        workout_date=entry.workout_date,
        weight=top.weight,
        reps=top.reps,
        sets=len(working),
        one_rm_estimate=max(estimates) if estimates else None,
    )


class TrainingStore:
    """
    Manages training data stored in a directory of JSON / JSONL files.

    Implements MilestoneSource, ForecastSource, WarmupSource,
    HistorySource and PlateauSource.
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the data files
        """
        self.data_dir = Path(data_dir)
        self.workouts_path = self.data_dir / WORKOUTS_FILE
        self.milestones_path = self.data_dir / MILESTONES_FILE
        self.achievements_path = self.data_dir / ACHIEVEMENTS_FILE
        self.forecasts_path = self.data_dir / FORECASTS_FILE
        self.plateaus_path = self.data_dir / PLATEAUS_FILE

    def exists(self) -> bool:
        """Check if the workouts file exists."""
        return self.workouts_path.exists()

    def init(self) -> None:
        """
        Create the data directory and empty data files if missing.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        for path in (self.workouts_path, self.achievements_path):
            if not path.exists():
                path.touch()
        for path in (self.milestones_path, self.forecasts_path, self.plateaus_path):
            if not path.exists():
                path.write_text("[]\n")

    def _require(self) -> None:
        if not self.exists():
            raise FileNotFoundError(
                f"Workouts file not found: {self.workouts_path}. Run 'init' first."
            )

    # -------------------------------------------------------------------------
    # Workouts
    # -------------------------------------------------------------------------

    def load_workouts(self) -> list[WorkoutEntry]:
        """
        Load all workout entries, oldest first.

        Raises:
            FileNotFoundError: If the workouts file doesn't exist
            ValidationError: If a line cannot be parsed
        """
        self._require()

        entries: list[WorkoutEntry] = []
        with open(self.workouts_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json_line_to_entry(line))
                except ValidationError as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.workouts_path}: {e}"
                    ) from e

        entries.sort(key=lambda e: (e.workout_date, e.session_id))
        return entries

    def append_workout(self, entry: WorkoutEntry) -> None:
        """Append one workout entry."""
        self._require()
        with open(self.workouts_path, "a", encoding="utf-8") as f:
            f.write(entry_to_json_line(entry) + "\n")

    def next_session_id(self) -> int:
        """One past the highest session id on file (1 for an empty log)."""
        return max((e.session_id for e in self.load_workouts()), default=0) + 1

    def _user_entries_newest_first(self, user_id: str) -> list[WorkoutEntry]:
        entries = [e for e in self.load_workouts() if e.user_id == user_id]
        entries.reverse()
        return entries

    def exercise_names(self, user_id: str) -> dict[int, str]:
        """Display name per linked master exercise id (latest name wins)."""
        names: dict[int, str] = {}
        for e in self.load_workouts():
            if e.user_id == user_id and e.master_exercise_id is not None:
                names[e.master_exercise_id] = e.exercise_name
        return names

    def session_exercise_ids(self, user_id: str, session_id: int) -> list[int]:
        """Distinct master exercise ids logged in one workout."""
        ids = [
            e.master_exercise_id
            for e in self.load_workouts()
            if e.user_id == user_id and e.session_id == session_id and e.master_exercise_id is not None
        ]
        return list(dict.fromkeys(ids))

    def load_exercise_histories(
        self, user_id: str, exercise_names: Sequence[str], sessions: int
    ) -> list[ExerciseHistory]:
        """Last sessions per exercise name, in the order the names were given."""
        by_name: dict[str, list[ExerciseSessionRecord]] = {n: [] for n in exercise_names}
        for e in self._user_entries_newest_first(user_id):
            bucket = by_name.get(e.exercise_name)
            if bucket is not None and len(bucket) < sessions:
                bucket.append(
                    ExerciseSessionRecord(
                        workout_date=e.workout_date, session_id=e.session_id, sets=e.sets
                    )
                )
        return [ExerciseHistory(exercise_name=n, sessions=by_name[n]) for n in exercise_names]

    def load_performances(
        self, user_id: str, master_exercise_ids: Sequence[int], since: datetime
    ) -> list[Performance]:
        """Performances on or after since for the given exercises, newest first."""
        wanted = set(master_exercise_ids)
        performances: list[Performance] = []
        for e in self._user_entries_newest_first(user_id):
            if e.master_exercise_id not in wanted or e.workout_date < since:
                continue
            p = entry_to_performance(e)
            if p is not None:
                performances.append(p)
        return performances

    def load_forecast_history(
        self, user_id: str, master_exercise_id: int, limit: int
    ) -> list[Performance]:
        """Up to limit most recent performances of one exercise, newest first."""
        performances: list[Performance] = []
        for e in self._user_entries_newest_first(user_id):
            if len(performances) >= limit:
                break
            if e.master_exercise_id != master_exercise_id:
                continue
            p = entry_to_performance(e)
            if p is not None:
                performances.append(p)
        return performances

    def load_recent_performances(
        self, user_id: str, master_exercise_ids: Sequence[int], per_exercise: int
    ) -> list[Performance]:
        """Up to per_exercise most recent performances of each exercise, newest first."""
        counts = {exercise_id: 0 for exercise_id in master_exercise_ids}
        performances: list[Performance] = []
        for e in self._user_entries_newest_first(user_id):
            if e.master_exercise_id not in counts or counts[e.master_exercise_id] >= per_exercise:
                continue
            p = entry_to_performance(e)
            if p is not None:
                performances.append(p)
                counts[e.master_exercise_id] += 1
        return performances

    def load_warmup_sessions(
        self, user_id: str, exercise_name: str, limit: int
    ) -> list[WarmupSessionRecord]:
        """Up to limit most recent sessions of the exercise, newest first."""
        records: list[WarmupSessionRecord] = []
        for e in self._user_entries_newest_first(user_id):
            if len(records) >= limit:
                break
            if e.exercise_name != exercise_name:
                continue
            top = heaviest_set(e.working_sets)
            records.append(
                WarmupSessionRecord(
                    session_exercise_id=e.session_id,
                    workout_date=e.workout_date,
                    top_set_weight=top.weight if top is not None else None,
                    warmup_sets=[s for s in e.sets if s.set_type == "warmup"],
                )
            )
        return records

    # -------------------------------------------------------------------------
    # Milestones
    # -------------------------------------------------------------------------

    def _read_json_list(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, list):
            raise ValidationError(f"Expected a list in {path}")
        return data

    def _write_json_list(self, path: Path, rows: list[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2)

    def load_all_milestones(self) -> list[Milestone]:
        """Every stored milestone."""
        return [dict_to_milestone(row) for row in self._read_json_list(self.milestones_path)]

    def load_milestones(
        self, user_id: str, master_exercise_ids: Sequence[int]
    ) -> list[Milestone]:
        """All milestones of the user across the given exercises."""
        wanted = set(master_exercise_ids)
        return [
            m
            for m in self.load_all_milestones()
            if m.user_id == user_id and m.master_exercise_id in wanted
        ]

    def save_milestones(self, milestones: Sequence[Milestone]) -> None:
        """Append milestones, replacing stored rows with the same id."""
        by_id = {m.id: m for m in self.load_all_milestones()}
        for m in milestones:
            by_id[m.id] = m
        rows = [milestone_to_dict(m) for m in sorted(by_id.values(), key=lambda m: m.id)]
        self._write_json_list(self.milestones_path, rows)

    def next_milestone_id(self) -> int:
        """One past the highest stored milestone id."""
        return max((m.id for m in self.load_all_milestones()), default=0) + 1

    def load_all_achievements(self) -> list[MilestoneAchievement]:
        """
        Every recorded achievement, in the order written.

        Raises:
            ValidationError: If a line cannot be parsed
        """
        if not self.achievements_path.exists():
            return []

        achievements: list[MilestoneAchievement] = []
        with open(self.achievements_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    achievements.append(dict_to_achievement(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.achievements_path}: {e}"
                    ) from e
        return achievements

    def load_achievements(
        self, user_id: str, milestone_ids: Sequence[int], since: datetime
    ) -> list[MilestoneAchievement]:
        """Achievements for the milestones recorded on or after since, newest first."""
        wanted = set(milestone_ids)
        rows = [
            a
            for a in self.load_all_achievements()
            if a.user_id == user_id and a.milestone_id in wanted and a.achieved_at >= since
        ]
        rows.sort(key=lambda a: a.achieved_at, reverse=True)
        return rows

    def record_achievement(self, achievement: MilestoneAchievement) -> None:
        """Append one achievement row."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.achievements_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(achievement_to_dict(achievement), separators=(",", ":")) + "\n")

    # -------------------------------------------------------------------------
    # Forecasts
    # -------------------------------------------------------------------------

    def load_forecasts(self, user_id: str | None = None) -> list[PRForecast]:
        """Stored forecasts, optionally for one user."""
        forecasts = [dict_to_pr_forecast(row) for row in self._read_json_list(self.forecasts_path)]
        if user_id is None:
            return forecasts
        return [f for f in forecasts if f.user_id == user_id]

    def replace_forecast(self, forecast: PRForecast) -> None:
        """Delete any stored forecast for (user, exercise) and insert this one."""
        kept = [
            f
            for f in self.load_forecasts()
            if (f.user_id, f.master_exercise_id) != (forecast.user_id, forecast.master_exercise_id)
        ]
        kept.append(forecast)
        self._write_json_list(self.forecasts_path, [pr_forecast_to_dict(f) for f in kept])
        LOGGER.debug(
            "forecast.replaced user_id=%s master_exercise_id=%s",
            forecast.user_id,
            forecast.master_exercise_id,
        )

    # -------------------------------------------------------------------------
    # Plateaus
    # -------------------------------------------------------------------------

    def load_all_plateaus(self) -> list[Plateau]:
        """Every stored plateau."""
        return [dict_to_plateau(row) for row in self._read_json_list(self.plateaus_path)]

    def load_plateaus(self, user_id: str, status: str | None = None) -> list[Plateau]:
        """Plateaus of the user, optionally by status, most recently detected first."""
        rows = [
            p
            for p in self.load_all_plateaus()
            if p.user_id == user_id and (status is None or p.status == status)
        ]
        rows.sort(key=lambda p: p.detected_at, reverse=True)
        return rows

    def _save_plateaus(self, plateaus: Sequence[Plateau]) -> None:
        self._write_json_list(self.plateaus_path, [plateau_to_dict(p) for p in plateaus])

    def record_plateau(self, plateau: Plateau) -> Plateau:
        """Store a new plateau under the next free id and return it."""
        plateaus = self.load_all_plateaus()
        plateau.id = max((p.id for p in plateaus), default=0) + 1
        plateaus.append(plateau)
        self._save_plateaus(plateaus)
        return plateau

    def resolve_plateau(
        self, user_id: str, plateau_id: int, resolved_at: datetime | None = None
    ) -> Plateau | None:
        """
        Mark an active plateau resolved.

        Returns:
            The updated plateau, or None if the user has no active plateau
            with that id
        """
        plateaus = self.load_all_plateaus()
        for p in plateaus:
            if p.id == plateau_id and p.user_id == user_id and p.status == "active":
                p.status = "resolved"
                p.resolved_at = resolved_at or datetime.now()
                self._save_plateaus(plateaus)
                LOGGER.debug("plateau.resolved user_id=%s plateau_id=%s", user_id, plateau_id)
                return p
        return None


def get_default_data_dir() -> Path:
    """Default data directory: ~/.lift-analytics."""
    return Path.home() / ".lift-analytics"
