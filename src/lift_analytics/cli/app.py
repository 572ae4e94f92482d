"""Shared Typer app object, shared option types, and store/settings utilities."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.config import EngineSettings
from ..core.engine.config_loader import load_settings
from ..io.training_store import TrainingStore, get_default_data_dir
from . import views

# Shared options used across commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Data directory (default: ~/.lift-analytics)"),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Extra engine.yaml merged over the defaults"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id the records belong to"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]
LevelOption = Annotated[
    str,
    typer.Option("--level", "-l", help="Experience level: beginner, intermediate, advanced"),
]

app = typer.Typer(
    name="lift-analytics",
    help="Training readiness, progressive overload and PR forecasting for lifters.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log engine events to stderr"),
    ] = False,
) -> None:
    """
    Readiness, progression, PR forecasts, milestones and warm-ups.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def get_store(data_dir: Path | None) -> TrainingStore:
    """Get a training store from path or the default location."""
    return TrainingStore(data_dir if data_dir is not None else get_default_data_dir())


def require_store(data_dir: Path | None) -> TrainingStore:
    """Store that must already be initialized; exits with an error otherwise."""
    store = get_store(data_dir)
    if not store.exists():
        views.print_error(f"Workouts file not found: {store.workouts_path}")
        views.print_info("Run 'init' first to create the data directory.")
        raise typer.Exit(1)
    return store


def get_settings(config_path: Path | None) -> EngineSettings:
    """Engine settings from the YAML sources; exits on invalid values."""
    try:
        return load_settings(config_path)
    except ValueError as e:
        views.print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def check_level(level: str) -> str:
    """Validate an experience level option."""
    if level not in ("beginner", "intermediate", "advanced"):
        views.print_error(f"Invalid level: {level}. Use beginner, intermediate or advanced.")
        raise typer.Exit(1)
    return level
