"""
CLI entry point using Typer.

Provides commands for the analytics engine:
- init: Create the data directory
- log: Log an exercise to a workout and check milestones and plateaus
- readiness: Score today's readiness
- overload: Overload multiplier for a readiness score
- suggest: Progression suggestions from recent sessions
- advice: Readiness-driven load plan for a session
- forecast: Next-PR forecasts
- milestones: List, seed or check milestones
- plateaus: List or resolve plateaus, with recommendations
- warmup: Warm-up sets from history or the default ladder
"""

from .app import app
from .commands import insights, training  # noqa: F401  (registers commands)

if __name__ == "__main__":
    app()
