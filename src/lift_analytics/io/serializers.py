"""
JSON serialization for training data models.

Handles conversion between dataclasses and JSON-compatible dicts.
"""

import json
import re
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from ..core.models import (
    EXPERIENCE_LEVELS,
    SET_TYPES,
    BiometricSnapshot,
    ManualWellness,
    Milestone,
    MilestoneAchievement,
    Plateau,
    PRForecast,
    SetRecord,
    WorkoutEntry,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_datetime(raw: Any) -> datetime:
    """
    Parse an ISO date or timestamp.

    Accepts YYYY-MM-DD (midnight) or a full ISO 8601 timestamp.  Timestamps
    with a UTC offset are converted to naive local time so they compare
    with the rest of the log.

    Args:
        raw: String to parse

    Returns:
        Parsed datetime

    Raises:
        ValidationError: If the value is not an ISO date or timestamp
    """
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid date: {raw!r}. Expected an ISO string")

    if re.match(r"^\d{4}-\d{2}-\d{2}$", raw):
        try:
            return datetime.strptime(raw, "%Y-%m-%d")
        except ValueError as e:
            raise ValidationError(f"Invalid date: {raw}") from e

    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {raw}. Expected ISO 8601") from e

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Args:
        value: Value to validate
        name: Name for error message

    Returns:
        The value if valid

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_positive(value: int | float, name: str) -> int | float:
    """
    Validate that a value is positive.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def validate_set_type(set_type: str) -> str:
    """Validate set type against warmup / working / backoff / drop."""
    if set_type not in SET_TYPES:
        raise ValidationError(f"Invalid set_type: {set_type}. Must be one of {SET_TYPES}")
    return set_type


def validate_experience_level(level: str) -> str:
    """Validate experience level against beginner / intermediate / advanced."""
    if level not in EXPERIENCE_LEVELS:
        raise ValidationError(
            f"Invalid experience_level: {level}. Must be one of {EXPERIENCE_LEVELS}"
        )
    return level


def _optional_float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    return float(value) if value is not None else None


# =============================================================================
# SETS AND WORKOUT ENTRIES
# =============================================================================


def set_record_to_dict(s: SetRecord) -> dict[str, Any]:
    """
    Convert SetRecord to JSON-compatible dict.

    Volume is omitted when it equals weight * reps.
    """
    d: dict[str, Any] = {"weight": s.weight, "reps": s.reps, "set_type": s.set_type}
    if s.volume is not None and s.volume != s.weight * s.reps:
        d["volume"] = s.volume
    return d


def dict_to_set_record(data: dict[str, Any]) -> SetRecord:
    """
    Convert dict to SetRecord.

    Args:
        data: Dict representation

    Returns:
        SetRecord instance

    Raises:
        ValidationError: If data is invalid
    """
    weight = validate_non_negative(data.get("weight", 0), "weight")
    reps = validate_non_negative(data.get("reps", 0), "reps")
    set_type = validate_set_type(data.get("set_type", "working"))

    return SetRecord(
        weight=float(weight),
        reps=int(reps),
        volume=_optional_float(data, "volume"),
        set_type=set_type,  # type: ignore[arg-type]
    )


def workout_entry_to_dict(entry: WorkoutEntry) -> dict[str, Any]:
    """Convert WorkoutEntry to JSON-compatible dict."""
    d: dict[str, Any] = {
        "session_id": entry.session_id,
        "user_id": entry.user_id,
        "workout_date": entry.workout_date.isoformat(),
        "exercise_name": entry.exercise_name,
        "sets": [set_record_to_dict(s) for s in entry.sets],
    }
    if entry.master_exercise_id is not None:
        d["master_exercise_id"] = entry.master_exercise_id
    return d


def dict_to_workout_entry(data: dict[str, Any]) -> WorkoutEntry:
    """
    Convert dict to WorkoutEntry.

    Raises:
        ValidationError: If data is invalid
    """
    if not data.get("exercise_name"):
        raise ValidationError("exercise_name is required")
    if "session_id" not in data:
        raise ValidationError("session_id is required")

    master_id = data.get("master_exercise_id")
    return WorkoutEntry(
        session_id=int(data["session_id"]),
        workout_date=validate_datetime(data.get("workout_date")),
        exercise_name=str(data["exercise_name"]),
        sets=[dict_to_set_record(s) for s in data.get("sets", [])],
        master_exercise_id=int(master_id) if master_id is not None else None,
        user_id=str(data.get("user_id", "local")),
    )


def entry_to_json_line(entry: WorkoutEntry) -> str:
    """
    Serialize a workout entry to a single JSON line.

    Returns:
        JSON string (single line, no trailing newline)
    """
    return json.dumps(workout_entry_to_dict(entry), separators=(",", ":"))


def json_line_to_entry(line: str) -> WorkoutEntry:
    """
    Deserialize a JSON line to a WorkoutEntry.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_workout_entry(data)


# =============================================================================
# MILESTONES
# =============================================================================


def milestone_to_dict(m: Milestone) -> dict[str, Any]:
    """Convert Milestone to JSON-compatible dict."""
    return {
        "id": m.id,
        "user_id": m.user_id,
        "master_exercise_id": m.master_exercise_id,
        "type": m.type,
        "target_value": m.target_value,
        "target_multiplier": m.target_multiplier,
        "experience_level": m.experience_level,
        "is_system_default": m.is_system_default,
    }


def dict_to_milestone(data: dict[str, Any]) -> Milestone:
    """
    Convert dict to Milestone.

    The type is not checked here: rows with an unknown type still load
    and are reported by the evaluator.

    Raises:
        ValidationError: If data is invalid
    """
    for key in ("id", "master_exercise_id", "type", "target_value"):
        if key not in data:
            raise ValidationError(f"Milestone is missing {key}")

    validate_non_negative(data["target_value"], "target_value")
    level = validate_experience_level(data.get("experience_level", "intermediate"))

    return Milestone(
        id=int(data["id"]),
        user_id=str(data.get("user_id", "local")),
        master_exercise_id=int(data["master_exercise_id"]),
        type=str(data["type"]),
        target_value=float(data["target_value"]),
        target_multiplier=_optional_float(data, "target_multiplier"),
        experience_level=level,  # type: ignore[arg-type]
        is_system_default=bool(data.get("is_system_default", True)),
    )


def achievement_to_dict(a: MilestoneAchievement) -> dict[str, Any]:
    """Convert MilestoneAchievement to JSON-compatible dict."""
    return {
        "milestone_id": a.milestone_id,
        "workout_id": a.workout_id,
        "user_id": a.user_id,
        "achieved_at": a.achieved_at.isoformat(),
        "achieved_value": a.achieved_value,
    }


def dict_to_achievement(data: dict[str, Any]) -> MilestoneAchievement:
    """
    Convert dict to MilestoneAchievement.

    Raises:
        ValidationError: If data is invalid
    """
    if "milestone_id" not in data:
        raise ValidationError("Achievement is missing milestone_id")

    return MilestoneAchievement(
        milestone_id=int(data["milestone_id"]),
        workout_id=int(data.get("workout_id", 0)),
        achieved_at=validate_datetime(data.get("achieved_at")),
        achieved_value=float(data.get("achieved_value", 0.0)),
        user_id=str(data.get("user_id", "local")),
    )


# =============================================================================
# FORECASTS
# =============================================================================


def pr_forecast_to_dict(f: PRForecast) -> dict[str, Any]:
    """Convert PRForecast to JSON-compatible dict."""
    return {
        "user_id": f.user_id,
        "master_exercise_id": f.master_exercise_id,
        "current_weight": f.current_weight,
        "forecasted_weight": f.forecasted_weight,
        "estimated_weeks_low": f.estimated_weeks_low,
        "estimated_weeks_high": f.estimated_weeks_high,
        "confidence_percent": f.confidence_percent,
        "calculated_at": f.calculated_at.isoformat(),
        "trajectory": f.trajectory,
    }


def dict_to_pr_forecast(data: dict[str, Any]) -> PRForecast:
    """
    Convert dict to PRForecast.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        return PRForecast(
            user_id=str(data["user_id"]),
            master_exercise_id=int(data["master_exercise_id"]),
            forecasted_weight=float(data["forecasted_weight"]),
            estimated_weeks_low=int(data["estimated_weeks_low"]),
            estimated_weeks_high=int(data["estimated_weeks_high"]),
            confidence_percent=int(data["confidence_percent"]),
            calculated_at=validate_datetime(data.get("calculated_at")),
            trajectory=data.get("trajectory", "stable"),
            current_weight=float(data.get("current_weight", 0.0)),
        )
    except KeyError as e:
        raise ValidationError(f"Forecast is missing {e.args[0]}") from e


# =============================================================================
# PLATEAUS
# =============================================================================


def plateau_to_dict(p: Plateau) -> dict[str, Any]:
    """Convert Plateau to JSON-compatible dict."""
    return {
        "id": p.id,
        "user_id": p.user_id,
        "master_exercise_id": p.master_exercise_id,
        "stalled_weight": p.stalled_weight,
        "stalled_reps": p.stalled_reps,
        "session_count": p.session_count,
        "confidence": p.confidence,
        "duration_weeks": p.duration_weeks,
        "detected_at": p.detected_at.isoformat(),
        "status": p.status,
        "resolved_at": p.resolved_at.isoformat() if p.resolved_at else None,
    }


def dict_to_plateau(data: dict[str, Any]) -> Plateau:
    """
    Convert dict to Plateau.

    Raises:
        ValidationError: If data is invalid
    """
    resolved_at = data.get("resolved_at")
    try:
        return Plateau(
            id=int(data["id"]),
            user_id=str(data.get("user_id", "local")),
            master_exercise_id=int(data["master_exercise_id"]),
            stalled_weight=float(data["stalled_weight"]),
            stalled_reps=int(data["stalled_reps"]),
            session_count=int(data.get("session_count", 3)),
            confidence=data.get("confidence", "low"),
            detected_at=validate_datetime(data.get("detected_at")),
            duration_weeks=int(data.get("duration_weeks", 1)),
            status=data.get("status", "active"),
            resolved_at=validate_datetime(resolved_at) if resolved_at is not None else None,
        )
    except KeyError as e:
        raise ValidationError(f"Plateau is missing {e.args[0]}") from e
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# READINESS INPUTS
# =============================================================================

_BIOMETRIC_FIELDS = (
    "recovery_score",
    "sleep_performance",
    "hrv_now_ms",
    "hrv_baseline_ms",
    "rhr_now_bpm",
    "rhr_baseline_bpm",
    "yesterday_strain",
)


def dict_to_biometric_snapshot(data: dict[str, Any]) -> BiometricSnapshot:
    """
    Convert dict to BiometricSnapshot; absent or null fields stay None.

    Raises:
        ValidationError: If a present field is not numeric
    """
    values: dict[str, float | None] = {}
    for key in _BIOMETRIC_FIELDS:
        try:
            values[key] = _optional_float(data, key)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{key} must be numeric, got {data.get(key)!r}") from e
    return BiometricSnapshot(**values)


def dict_to_manual_wellness(data: dict[str, Any]) -> ManualWellness:
    """
    Convert dict to ManualWellness.

    Raises:
        ValidationError: If the check-in is incomplete or out of range
    """
    try:
        return ManualWellness(
            energy_level=int(data["energy_level"]),
            sleep_quality=int(data["sleep_quality"]),
            notes=data.get("notes"),
        )
    except KeyError as e:
        raise ValidationError(f"Wellness check-in is missing {e.args[0]}") from e
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# GENERIC OUTPUT
# =============================================================================


def to_jsonable(obj: Any) -> Any:
    """
    Convert result dataclasses to plain JSON-compatible structures.

    Datetimes become ISO strings.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


# =============================================================================
# CLI SET STRINGS
# =============================================================================

_SET_TYPE_SUFFIXES = {"": "working", "w": "warmup", "b": "backoff", "d": "drop"}


def parse_sets_string(sets_str: str) -> list[SetRecord]:
    """
    Parse a comma-separated sets string.

    Each group is WEIGHTxREPS[xSETS][suffix]:
        100x5       one working set of 5 at 100
        100x5x3     three working sets of 5 at 100
        60x5w       warm-up set (w), backoff (b) or drop set (d)

    Examples:
        "40x5w, 60x3w, 100x5x3"  → 2 warm-ups then 3 working sets

    Args:
        sets_str: Sets string to parse

    Returns:
        SetRecords in the order written

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    sets: list[SetRecord] = []
    for part in (p.strip() for p in sets_str.split(",")):
        if not part:
            continue
        m = re.fullmatch(
            r"(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+)(?:\s*[xX×]\s*(\d+))?\s*([wbdWBD]?)", part
        )
        if m is None:
            raise ValidationError(
                f"Invalid set format: '{part}'.\n"
                f"Use: weight x reps [x sets][w|b|d] (e.g. 100x5, 100x5x3, 60x5w)."
            )
        weight = float(m.group(1))
        reps = int(m.group(2))
        count = int(validate_positive(int(m.group(3)) if m.group(3) else 1, "Set count"))
        set_type = _SET_TYPE_SUFFIXES[m.group(4).lower()]
        sets.extend(
            SetRecord(weight=weight, reps=reps, set_type=set_type)  # type: ignore[arg-type]
            for _ in range(count)
        )

    if not sets:
        raise ValidationError("No valid sets found in sets string")
    return sets
