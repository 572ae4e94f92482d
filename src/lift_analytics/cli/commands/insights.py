"""Insight commands: forecast, milestones, plateaus, warmup."""

import json
from typing import Annotated, Optional

import typer

from ...core.forecast import generate_pr_forecast, store_pr_forecast
from ...core.milestones import (
    DEFAULT_LIFTS,
    check_and_record_milestones,
    generate_default_milestones,
)
from ...core.models import ForecastData, ForecastResult, WarmupProtocolConfig
from ...core.plateaus import generate_plateau_recommendations
from ...core.warmup import plan_warmup
from ...io.serializers import ValidationError, to_jsonable
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
    require_store,
)


@app.command()
def forecast(
    master_ids: Annotated[
        Optional[list[int]],
        typer.Argument(help="Master exercise ids (default: every linked exercise)"),
    ] = None,
    level: LevelOption = "intermediate",
    save: Annotated[
        bool,
        typer.Option("--save", help="Replace the stored forecast for each exercise"),
    ] = False,
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    Forecast the next PR for each exercise from recent 1RM estimates.
    """
    check_level(level)
    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        names = store.exercise_names(user)
        forecasts: list[ForecastData] = []
        for master_id in master_ids or sorted(names):
            result = generate_pr_forecast(
                store,
                user,
                master_id,
                level,
                exercise_name=names.get(master_id, ""),
                settings=settings,
            )
            forecasts.extend(result.forecasts)
            if save:
                for f in result.forecasts:
                    store_pr_forecast(store, user, f)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    average = (
        round(sum(f.confidence_percent for f in forecasts) / len(forecasts) / 100, 2)
        if forecasts
        else 0.0
    )

    if json_out:
        print(json.dumps({
            "forecasts": to_jsonable(forecasts),
            "total_count": len(forecasts),
            "average_confidence": average,
        }, indent=2))
        return

    if not forecasts:
        views.print_info("Not enough upward-trending history to forecast a PR yet.")
        return

    views.console.print(
        views.format_forecast_table(
            ForecastResult(forecasts=forecasts, total_count=len(forecasts), average_confidence=average)
        )
    )
    if save:
        views.print_success(f"Stored {len(forecasts)} forecast(s).")


@app.command()
def milestones(
    seed: Annotated[
        bool,
        typer.Option("--seed", help="Create the default milestones for the major lifts"),
    ] = False,
    bodyweight: Annotated[
        Optional[float],
        typer.Option("--bodyweight", "-b", help="Bodyweight for multiplier targets (with --seed)"),
    ] = None,
    check: Annotated[
        Optional[int],
        typer.Option("--check", help="Re-check milestones for a logged workout id"),
    ] = None,
    level: LevelOption = "intermediate",
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    List milestones, seed the defaults, or check a workout against them.
    """
    check_level(level)
    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        if seed:
            created = generate_default_milestones(
                user, level, bodyweight, first_id=store.next_milestone_id()
            )
            store.save_milestones(created)
            if json_out:
                print(json.dumps({"created": to_jsonable(created)}, indent=2))
                return
            views.print_success(f"Created {len(created)} default milestone(s).")
            return

        if check is not None:
            notifications = check_and_record_milestones(
                store,
                user,
                check,
                store.session_exercise_ids(user, check),
                store.exercise_names(user),
                settings=settings,
            )
            if json_out:
                print(json.dumps({"milestones": to_jsonable(notifications)}, indent=2))
                return
            views.print_milestone_notifications(notifications)
            return

        stored = [m for m in store.load_all_milestones() if m.user_id == user]
        names = {v: k for k, v in DEFAULT_LIFTS.items()}
        names.update(store.exercise_names(user))
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({"milestones": to_jsonable(stored)}, indent=2))
        return

    if not stored:
        views.print_info("No milestones yet. Run 'milestones --seed' to create the defaults.")
        return
    views.console.print(views.format_milestone_table(stored, names))


@app.command()
def plateaus(
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Include resolved plateaus"),
    ] = False,
    resolve: Annotated[
        Optional[int],
        typer.Option("--resolve", help="Mark the active plateau with this id resolved"),
    ] = None,
    level: LevelOption = "intermediate",
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    List detected plateaus with ideas for breaking them, or resolve one.
    """
    check_level(level)
    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        if resolve is not None:
            resolved = store.resolve_plateau(user, resolve)
            if resolved is None:
                views.print_error(f"No active plateau with id {resolve}.")
                raise typer.Exit(1)
            if json_out:
                print(json.dumps({"resolved": to_jsonable(resolved)}, indent=2))
                return
            views.print_success(f"Plateau #{resolve} marked resolved.")
            return

        stored = store.load_plateaus(user, None if show_all else "active")
        names = store.exercise_names(user)
        recommendations = {
            p.id: generate_plateau_recommendations(
                store.load_recent_performances(
                    user, [p.master_exercise_id], settings.plateau_context_sessions
                ),
                level,
            )
            for p in stored
            if p.status == "active"
        }
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "plateaus": [
                {
                    **to_jsonable(p),
                    "exercise_name": names.get(p.master_exercise_id, ""),
                    "recommendations": to_jsonable(recommendations.get(p.id, [])),
                }
                for p in stored
            ]
        }, indent=2))
        return

    if not stored:
        views.print_info("No plateaus detected.")
        return
    views.console.print(views.format_plateau_table(stored, names))
    for p in stored:
        if recommendations.get(p.id):
            views.print_plateau_recommendations(
                names.get(p.master_exercise_id, str(p.master_exercise_id)), recommendations[p.id]
            )


@app.command()
def warmup(
    exercise: Annotated[str, typer.Argument(help="Exercise name")],
    weight: Annotated[float, typer.Option("--weight", "-w", help="Today's working weight")],
    reps: Annotated[int, typer.Option("--reps", "-r", help="Today's working reps")] = 5,
    reps_strategy: Annotated[
        str,
        typer.Option("--reps-strategy", help="Default ladder reps: match_working, descending, fixed"),
    ] = "match_working",
    data_dir: DataDirOption = None,
    config_path: ConfigOption = None,
    user: UserOption = "local",
    json_out: JsonOption = False,
) -> None:
    """
    Warm-up sets scaled from your own history, or a default ladder.
    """
    store = require_store(data_dir)
    settings = get_settings(config_path)

    try:
        protocol = WarmupProtocolConfig(reps_strategy=reps_strategy)  # type: ignore[arg-type]
        pattern = plan_warmup(
            store, user, exercise, weight, reps, protocol, increment=settings.weight_increment
        )
    except (ValueError, FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(to_jsonable(pattern), indent=2))
        return

    views.console.print(views.format_warmup_table(pattern))
