"""Training commands: init, log, readiness, overload, suggest, advice."""

import json
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.advice import build_session_advice
from ...core.milestones import check_and_record_milestones
from ...core.models import BiometricSnapshot, ManualWellness, ProgressionPreferences, ReadinessResult, WorkoutEntry
from ...core.overload import apply_overload, overload_multiplier
from ...core.plateaus import check_and_record_plateaus
from ...core.progression import suggest_progressions
from ...core.readiness import calculate_readiness
from ...io.serializers import ValidationError, parse_sets_string, to_jsonable, validate_datetime
from .. import views
from ..app import (
    ConfigOption,
    DataDirOption,
    JsonOption,
    LevelOption,
    UserOption,
    app,
    check_level,
    get_settings,
    get_store,
    require_store,
)

# Readiness inputs shared by readiness and advice
RecoveryOption = Annotated[Optional[float], typer.Option("--recovery", help="Recovery score 0-100")]
SleepOption = Annotated[Optional[float], typer.Option("--sleep", help="Sleep performance 0-100")]
HrvOption = Annotated[Optional[float], typer.Option("--hrv", help="Today's HRV (ms)")]
HrvBaselineOption = Annotated[Optional[float], typer.Option("--hrv-baseline", help="Baseline HRV (ms)")]
RhrOption = Annotated[Optional[float], typer.Option("--rhr", help="Today's resting HR (bpm)")]
RhrBaselineOption = Annotated[Optional[float], typer.Option("--rhr-baseline", help="Baseline resting HR (bpm)")]
StrainOption = Annotated[Optional[float], typer.Option("--strain", help="Yesterday's strain")]
EnergyOption = Annotated[Optional[int], typer.Option("--energy", help="Self-reported energy 1-10")]
SleepQualityOption = Annotated[Optional[int], typer.Option("--sleep-quality", help="Self-reported sleep 1-10")]
NotesOption = Annotated[Optional[str], typer.Option("--notes", help="Wellness notes (max 500 chars)")]


def _readiness_from_options(
    recovery: float | None,
    sleep: float | None,
    hrv: float | None,
    hrv_baseline: float | None,
    rhr: float | None,
    rhr_baseline: float | None,
    strain: float | None,
    energy: int | None,
    sleep_quality: int | None,
    notes: str | None,
) -> ReadinessResult:
    """Build inputs from CLI options and score them; exits on invalid wellness."""
    snapshot = BiometricSnapshot(
        recovery_score=recovery,
        sleep_performance=sleep,
        hrv_now_ms=hrv,
        hrv_baseline_ms=hrv_baseline,
        rhr_now_bpm=rhr,
        rhr_baseline_bpm=rhr_baseline,
        yesterday_strain=strain,
    )

    wellness = None
    if energy is not None or sleep_quality is not None:
        if energy is None or sleep_quality is None:
            views.print_error("--energy and --sleep-quality must be given together.")
            raise typer.Exit(1)
        try:
            wellness = ManualWellness(energy_level=energy, sleep_quality=sleep_quality, notes=notes)
        except ValueError as e:
            views.print_error(str(e))
            raise typer.Exit(1)

    return calculate_readiness(snapshot, wellness)


@app.command()
def init(data_dir: DataDirOption = None) -> None:
    """
    Create the data directory with empty workout, milestone, forecast and
    plateau files.
    """
    store = get_store(data_dir)
    store.init()
    views.print_success(f"Data directory ready: {store.data_dir}")


@app.command()
def log(
    exercise: Annotated[str, typer.Argument(help="Exercise name, e.g. 'Squat'")],
    sets: Annotated[
        str,
        typer.Option("--sets", "-s", help="Sets: weight x reps [x sets][w|b|d], e.g. '60x5w, 100x5x3'"),
    ],
    master_id: Annotated[
        Optional[int],
        typer.Option("--master-id", "-m", help="Canonical exercise id for milestones and forecasts"),
    ] = None,
    date: Annotated[
        Optional[str],
        typer.Option("--date", help="Workout date, YYYY-MM-DD or ISO timestamp (default: now)"),
    ] = None,
    session_id: Annotated[
        Optional[int],
        typer.Option("--session-id", help="Add to an existing workout (default: new workout)"),
    ] = None,
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    Log an exercise to a workout, then check milestones and plateaus for
    that workout.
    """
    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        parsed_sets = parse_sets_string(sets)
        workout_date = validate_datetime(date) if date else datetime.now().replace(microsecond=0)
        sid = session_id if session_id is not None else store.next_session_id()
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    store.append_workout(
        WorkoutEntry(
            session_id=sid,
            workout_date=workout_date,
            exercise_name=exercise,
            sets=parsed_sets,
            master_exercise_id=master_id,
            user_id=user,
        )
    )

    try:
        exercise_ids = store.session_exercise_ids(user, sid)
        names = store.exercise_names(user)
        notifications = check_and_record_milestones(
            store, user, sid, exercise_ids, names, settings=settings
        )
        plateaus = check_and_record_plateaus(store, user, exercise_ids, names, settings=settings)
    except ValidationError as e:
        views.print_error(f"Workout logged, but milestones and plateaus could not be checked: {e}")
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "session_id": sid,
            "sets_logged": len(parsed_sets),
            "milestones": to_jsonable(notifications),
            "plateaus": to_jsonable(plateaus),
        }, indent=2))
        return

    views.print_success(f"Logged {len(parsed_sets)} set(s) of {exercise} to workout #{sid}.")
    views.print_milestone_notifications(notifications)
    views.print_plateau_notifications(plateaus)


@app.command()
def readiness(
    recovery: RecoveryOption = None,
    sleep: SleepOption = None,
    hrv: HrvOption = None,
    hrv_baseline: HrvBaselineOption = None,
    rhr: RhrOption = None,
    rhr_baseline: RhrBaselineOption = None,
    strain: StrainOption = None,
    energy: EnergyOption = None,
    sleep_quality: SleepQualityOption = None,
    notes: NotesOption = None,
    level: LevelOption = "intermediate",
    json_out: JsonOption = False,
) -> None:
    """
    Score today's readiness from wearable metrics or a wellness check-in.
    """
    check_level(level)
    result = _readiness_from_options(
        recovery, sleep, hrv, hrv_baseline, rhr, rhr_baseline, strain, energy, sleep_quality, notes
    )
    multiplier = overload_multiplier(result.rho, level)

    if json_out:
        print(json.dumps({
            "rho": round(result.rho, 4),
            "flags": result.flags,
            "overload_multiplier": round(multiplier, 4),
        }, indent=2))
        return

    views.console.print()
    views.console.print(views.format_readiness_display(result, multiplier))
    views.console.print()


@app.command()
def overload(
    rho: Annotated[float, typer.Argument(help="Readiness score in [0, 1]")],
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", help="Working weight to scale"),
    ] = None,
    level: LevelOption = "intermediate",
    config_path: ConfigOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Overload multiplier for a readiness score, optionally applied to a weight.
    """
    check_level(level)
    if not 0 <= rho <= 1:
        views.print_error(f"Readiness must be between 0 and 1, got {rho}")
        raise typer.Exit(1)

    settings = get_settings(config_path)
    multiplier = overload_multiplier(rho, level)
    adjusted = (
        apply_overload(weight, rho, level, settings.weight_increment) if weight is not None else None
    )

    if json_out:
        print(json.dumps({
            "rho": rho,
            "overload_multiplier": round(multiplier, 4),
            "weight": weight,
            "adjusted_weight": adjusted,
        }, indent=2))
        return

    views.console.print(f"Overload multiplier: [bold]{multiplier:.3f}[/bold]")
    if adjusted is not None:
        views.console.print(f"Working weight: {weight:g} → [bold]{adjusted:g}[/bold]")


@app.command()
def suggest(
    exercises: Annotated[list[str], typer.Argument(help="Exercise names to suggest for")],
    rho: Annotated[float, typer.Option("--rho", "-r", help="Readiness score in [0, 1]")] = 0.5,
    strategy: Annotated[
        str,
        typer.Option("--strategy", help="linear, percentage or adaptive"),
    ] = "adaptive",
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Force adaptive progression by 'reps' or 'weight'"),
    ] = None,
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    Suggest next weight or rep targets from the last logged sessions.
    """
    if not 0 <= rho <= 1:
        views.print_error(f"Readiness must be between 0 and 1, got {rho}")
        raise typer.Exit(1)
    if model not in (None, "reps", "weight"):
        views.print_error(f"Invalid model: {model}. Use reps or weight.")
        raise typer.Exit(1)

    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        histories = store.load_exercise_histories(user, exercises, settings.progression_sessions)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    progressions = suggest_progressions(
        histories,
        rho,
        strategy,
        ProgressionPreferences(progression_model=model),  # type: ignore[arg-type]
        increment=settings.weight_increment,
        plateau_threshold=settings.plateau_threshold,
        starting_weight=settings.starting_weight,
    )

    if json_out:
        print(json.dumps({"progressions": to_jsonable(progressions)}, indent=2))
        return

    views.console.print(views.format_progression_table(progressions))


@app.command()
def advice(
    exercises: Annotated[list[str], typer.Argument(help="Exercises planned for the session")],
    recovery: RecoveryOption = None,
    sleep: SleepOption = None,
    hrv: HrvOption = None,
    hrv_baseline: HrvBaselineOption = None,
    rhr: RhrOption = None,
    rhr_baseline: RhrBaselineOption = None,
    strain: StrainOption = None,
    energy: EnergyOption = None,
    sleep_quality: SleepQualityOption = None,
    notes: NotesOption = None,
    sets_per_exercise: Annotated[
        int,
        typer.Option("--sets", min=1, help="Working sets per exercise"),
    ] = 3,
    level: LevelOption = "intermediate",
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    Plan today's loads from readiness and recent history.
    """
    check_level(level)
    store = require_store(data_dir)
    settings = get_settings(config_path)

    result = _readiness_from_options(
        recovery, sleep, hrv, hrv_baseline, rhr, rhr_baseline, strain, energy, sleep_quality, notes
    )

    try:
        histories = store.load_exercise_histories(user, exercises, settings.progression_sessions)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    progressions = suggest_progressions(
        histories,
        result.rho,
        increment=settings.weight_increment,
        plateau_threshold=settings.plateau_threshold,
        starting_weight=settings.starting_weight,
    )
    plan = build_session_advice(
        result, level, histories, progressions, sets_per_exercise, settings.weight_increment
    )

    if json_out:
        print(json.dumps(to_jsonable(plan), indent=2))
        return

    views.console.print()
    views.print_session_advice(plan)
