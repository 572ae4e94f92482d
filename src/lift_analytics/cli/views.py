"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of engine results.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import (
    ExerciseProgression,
    ForecastResult,
    Milestone,
    MilestoneNotification,
    Plateau,
    PlateauNotification,
    PlateauRecommendation,
    ReadinessResult,
    SessionAdvice,
    WarmupPattern,
)

console = Console()


def format_readiness_display(result: ReadinessResult, multiplier: float | None = None) -> str:
    """
    Format a readiness result as a text block.

    Args:
        result: Readiness score and flags
        multiplier: Overload multiplier for this readiness, if computed

    Returns:
        Formatted string
    """
    lines = ["Readiness", f"- Score: {result.rho:.2f} ({result.rho * 100:.0f}%)"]
    if multiplier is not None:
        lines.append(f"- Overload multiplier: {multiplier:.3f}")
    lines.append(f"- Flags: {', '.join(result.flags) if result.flags else '-'}")
    return "\n".join(lines)


def format_progression_table(progressions: list[ExerciseProgression]) -> Table:
    """
    Create a Rich table of progression suggestions.

    Args:
        progressions: Suggestions per exercise

    Returns:
        Rich Table object
    """
    table = Table(title="Progression Suggestions")

    table.add_column("Exercise", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Current", justify="right")
    table.add_column("Suggested", justify="right", style="bold")
    table.add_column("Plateau", justify="center")
    table.add_column("Rationale")

    for p in progressions:
        if not p.suggestions:
            table.add_row(p.exercise_name, "-", "-", "-", "yes" if p.plateau_detected else "no", "No usable sets")
            continue
        for s in p.suggestions:
            table.add_row(
                p.exercise_name,
                s.type,
                f"{s.current:g}",
                f"{s.suggested:g}",
                "[yellow]yes[/yellow]" if s.plateau_detected else "no",
                s.rationale,
            )

    return table


def format_forecast_table(result: ForecastResult) -> Table:
    """Create a Rich table of PR forecasts."""
    table = Table(title="PR Forecast")

    table.add_column("Exercise", style="cyan")
    table.add_column("Current 1RM", justify="right")
    table.add_column("Next PR", justify="right", style="bold")
    table.add_column("Weeks", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Trajectory", style="green")

    for f in result.forecasts:
        table.add_row(
            f.exercise_name or str(f.master_exercise_id),
            f"{f.current_weight:g}",
            f"{f.forecasted_weight:g}",
            f"{f.estimated_weeks_low}-{f.estimated_weeks_high}",
            f"{f.confidence_percent}%",
            f.trajectory,
        )

    return table


def format_milestone_table(milestones: list[Milestone], names: dict[int, str]) -> Table:
    """Create a Rich table of stored milestones."""
    table = Table(title="Milestones")

    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Exercise", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Target", justify="right", style="bold")
    table.add_column("Level")

    for m in milestones:
        target = f"{m.target_value:g}"
        if m.target_multiplier is not None:
            target += f" ({m.target_multiplier:g}x BW)"
        table.add_row(
            str(m.id),
            names.get(m.master_exercise_id, str(m.master_exercise_id)),
            m.type,
            target,
            m.experience_level,
        )

    return table


def print_milestone_notifications(notifications: list[MilestoneNotification]) -> None:
    """
    Print newly achieved milestones.

    Args:
        notifications: Notifications returned by the milestone check
    """
    if not notifications:
        console.print("[dim]No new milestones.[/dim]")
        return

    for n in notifications:
        console.print(
            f"[bold green]Milestone achieved![/bold green] {n.exercise_name}: "
            f"{n.milestone_type} {n.achieved_value:g} (target {n.target_value:g})"
        )


def print_plateau_notifications(notifications: list[PlateauNotification]) -> None:
    """Print plateaus found for the logged workout; silent when there are none."""
    for n in notifications:
        console.print(
            f"[bold yellow]Plateau detected:[/bold yellow] {n.exercise_name} stuck at "
            f"{n.stalled_weight:g} x {n.stalled_reps} ({n.confidence} confidence, "
            f"~{n.duration_weeks} week(s)). Run 'plateaus' for ideas."
        )


def format_plateau_table(plateaus: list[Plateau], names: dict[int, str]) -> Table:
    """Create a Rich table of stored plateaus."""
    table = Table(title="Plateaus")

    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Exercise", style="cyan")
    table.add_column("Stalled at", justify="right", style="bold")
    table.add_column("Confidence")
    table.add_column("Weeks", justify="right")
    table.add_column("Detected")
    table.add_column("Status", style="magenta")

    for p in plateaus:
        table.add_row(
            str(p.id),
            names.get(p.master_exercise_id, str(p.master_exercise_id)),
            f"{p.stalled_weight:g} x {p.stalled_reps}",
            p.confidence,
            str(p.duration_weeks),
            p.detected_at.strftime("%Y-%m-%d"),
            p.status,
        )

    return table


def print_plateau_recommendations(exercise_name: str, recommendations: list[PlateauRecommendation]) -> None:
    """Print recommendations for one plateaued exercise, highest priority first."""
    console.print(f"\n[bold cyan]{exercise_name}[/bold cyan]")
    for r in recommendations:
        colour = {"high": "red", "medium": "yellow"}.get(r.priority, "dim")
        console.print(f"  [{colour}]{r.priority:>6}[/{colour}] {r.description}")
        console.print(f"         {r.action}")


def format_warmup_table(pattern: WarmupPattern) -> Table:
    """Create a Rich table of warm-up sets."""
    title = f"Warm-up ({pattern.source}, {pattern.confidence} confidence)"
    table = Table(title=title)

    table.add_column("Set", justify="right", style="dim")
    table.add_column("Weight", justify="right", style="bold")
    table.add_column("Reps", justify="right")
    table.add_column("% of top", justify="right")

    for s in pattern.sets:
        table.add_row(
            str(s.set_number),
            f"{s.weight:g}",
            str(s.reps),
            f"{s.percentage_of_top * 100:.0f}%",
        )

    return table


def print_session_advice(advice: SessionAdvice) -> None:
    """
    Print a session load plan: summary, warnings and per-exercise sets.

    Args:
        advice: Plan built by build_session_advice()
    """
    console.print(format_readiness_display(advice.readiness, advice.overload_multiplier))
    console.print()
    console.print(advice.summary)

    for warning in advice.warnings:
        print_warning(warning)

    for exercise in advice.per_exercise:
        table = Table(
            title=f"{exercise.exercise_name} "
            f"(chance to beat best: {exercise.predicted_chance_to_beat_best * 100:.0f}%)"
        )
        table.add_column("Set", style="dim")
        table.add_column("Weight", justify="right", style="bold")
        table.add_column("Reps", justify="right")
        table.add_column("Rest(s)", justify="right")
        table.add_column("Rationale")

        for s in exercise.sets:
            table.add_row(
                s.set_id,
                f"{s.suggested_weight:g}",
                str(s.suggested_reps),
                str(s.suggested_rest_seconds),
                s.rationale,
            )
        console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
