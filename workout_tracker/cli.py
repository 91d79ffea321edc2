"""Command-line interface for the Workout Tracker engine."""

import json
import logging
import time
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .config import config
from .sets import SetData

console = Console()


def parse_date(value):
    if not value:
        return datetime.now()
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, got {value}")


def get_repository():
    from .db.repository import get_repository as _get_repository
    return _get_repository()


def get_resolver():
    from .tracking.rest_time_resolver import get_rest_time_resolver
    return get_rest_time_resolver()


def require_exercise(repository, name):
    exercise = repository.get_exercise(name)
    if exercise is None:
        console.print(f"[red]❌ Unknown exercise: {name}. Add it with 'workout-tracker exercise add'.[/red]")
    return exercise


@click.group()
def cli():
    """Workout Tracker: rest timing, progression and performance prediction."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command("init-db")
def init_db():
    """Create or migrate the database schema."""
    console.print(Panel.fit("🗄️  Database Setup", style="bold blue"))

    try:
        config.validate()
    except ValueError as e:
        console.print(f"[red]❌ Configuration Error: {e}[/red]")
        return

    from .db import get_db
    db = get_db()
    db.create_tables()
    added = db.migrate_schema()

    console.print(f"[green]✅ Database ready at {config.DATABASE_URL}[/green]")
    for column in added:
        console.print(f"  • Added column {column}")


@cli.group()
def exercise():
    """Manage the exercise catalog."""
    pass


@exercise.command("add")
@click.argument("name")
@click.option("--muscle", default=None, help="Primary muscle group (e.g. chest, quadriceps, biceps)")
@click.option("--equipment", default=None, help="Equipment (e.g. barbell, dumbbell, bodyweight)")
def exercise_add(name, muscle, equipment):
    """Add an exercise to the catalog."""
    row = get_repository().add_exercise(name, primary_muscle_group=muscle, equipment=equipment)
    console.print(f"[green]✅ {row.name} ({row.primary_muscle_group or 'unspecified'})[/green]")


@exercise.command("list")
def exercise_list():
    """List known exercises."""
    exercises = get_repository().list_exercises()
    if not exercises:
        console.print("[yellow]No exercises yet.[/yellow]")
        return

    table = Table(title="Exercises", box=box.ROUNDED)
    table.add_column("Name", style="bold")
    table.add_column("Muscle Group", style="cyan")
    table.add_column("Equipment", style="magenta")

    for row in exercises:
        table.add_row(row.name, row.primary_muscle_group or "-", row.equipment or "-")

    console.print(table)


@cli.command()
@click.argument("name")
@click.option("--date", "date_str", help="Session date (YYYY-MM-DD), defaults to today")
@click.option("--sets", "set_count", default=3, help="Number of sets")
@click.option("--reps", default=10, help="Target reps per set")
@click.option("--weight", default=0.0, help="Target weight")
@click.option("--actual-reps", default=None, type=int, help="Reps performed per set (defaults to target)")
def log(name, date_str, set_count, reps, weight, actual_reps):
    """Record a completed exercise for a session."""
    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    when = parse_date(date_str)
    sets = []
    for n in range(1, set_count + 1):
        set_data = SetData.new(n, reps, weight)
        set_data.update_actuals(actual_reps if actual_reps is not None else reps, weight)
        set_data.mark_completed(when)
        sets.append(set_data)

    workout = repository.create_session(when)
    repository.add_exercise_to_session(workout.id, row, sets=sets)
    console.print(f"[green]✅ Logged {row.name}: {set_count}x{reps} @ {weight:g} on {when:%Y-%m-%d}[/green]")


@cli.group()
def rest():
    """Rest time configuration."""
    pass


@rest.command("show")
def rest_show():
    """Show global and per-exercise rest times."""
    from .tracking.rest_time_resolver import format_rest_time

    settings = get_resolver().export_settings()

    table = Table(title="Rest Times", box=box.ROUNDED)
    table.add_column("Scope", style="bold")
    table.add_column("Rest", style="green")

    table.add_row("Global default", format_rest_time(settings["globalDefaultRestTime"]))
    for key, seconds in sorted(settings["exerciseRestTimes"].items()):
        table.add_row(key, format_rest_time(seconds))

    console.print(table)


@rest.command("set-global")
@click.argument("seconds", type=int)
def rest_set_global(seconds):
    """Set the global default rest time."""
    try:
        get_resolver().set_global_default(seconds)
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        return
    console.print(f"[green]✅ Global rest time set to {seconds}s[/green]")


@rest.command("set-exercise")
@click.argument("name")
@click.argument("seconds", type=int)
def rest_set_exercise(name, seconds):
    """Set an exercise's rest time (0 clears it)."""
    repository = get_repository()
    if require_exercise(repository, name) is None:
        return

    try:
        get_resolver().set_exercise_rest_time(name, seconds)
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        return

    if seconds:
        console.print(f"[green]✅ {name}: {seconds}s[/green]")
    else:
        console.print(f"[green]✅ {name}: using global default[/green]")


@rest.command("export")
@click.option("--file", "path", default=None, help="Write to a file instead of stdout")
def rest_export(path):
    """Export rest time settings as JSON."""
    data = json.dumps(get_resolver().export_settings(), indent=2, sort_keys=True)
    if path:
        Path(path).write_text(data)
        console.print(f"[green]✅ Exported to {path}[/green]")
    else:
        click.echo(data)


@rest.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def rest_import(path):
    """Import rest time settings from JSON."""
    try:
        data = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]❌ Invalid JSON: {e}[/red]")
        return

    if not isinstance(data, dict):
        console.print("[red]❌ Expected a JSON object[/red]")
        return

    if get_resolver().import_settings(data):
        console.print("[green]✅ Rest time settings imported[/green]")
    else:
        console.print("[yellow]⚠️  Global default imported, no exercise settings found[/yellow]")


@cli.command()
@click.argument("seconds", type=int, required=False)
@click.option("--exercise", "name", default=None, help="Resolve the duration from this exercise's settings")
def timer(seconds, name):
    """Run a rest timer in the terminal (Ctrl-C skips)."""
    from .tracking.rest_timer import RestTimerService

    source = None
    if seconds is None:
        resolver = get_resolver()
        placeholder = SetData.new(1)
        seconds = resolver.resolve(placeholder, name)
        source = resolver.source(placeholder, name)

    rest_timer = RestTimerService()
    rest_timer.subscribe("completed", lambda topic, payload: console.print("\n[bold green]⏰ Rest complete! Time for your next set.[/bold green]"))

    label = f" ({source.description})" if source else ""
    console.print(Panel.fit(f"⏱️  Rest {seconds}s{label}", style="bold blue"))

    rest_timer.start(seconds, source=source)
    try:
        with console.status("") as status:
            while rest_timer.is_active:
                status.update(f"[bold]{rest_timer.formatted_remaining}[/bold]  {rest_timer.completion_percent:.0f}%")
                time.sleep(1)
                rest_timer.tick()
    except KeyboardInterrupt:
        rest_timer.skip()
        skipped = rest_timer.adjustment_history[-1]
        console.print(f"\n[yellow]Skipped after {skipped.adjusted_remaining:.0f}s of {skipped.original_remaining:.0f}s[/yellow]")


@cli.command()
@click.argument("name")
def recommend(name):
    """Recommend next-session sets from the last session."""
    from .analysis.progressive_overload import ProgressiveOverloadEngine

    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    instances = repository.get_exercise_instances(row, limit=1, newest_first=True)
    last_sets = instances[0].sets if instances else None

    engine = ProgressiveOverloadEngine()
    sets = engine.recommend_next_sets(row, last_sets)

    title = f"Next Session: {row.name}" if last_sets else f"Starting Point: {row.name}"
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Set", style="bold")
    table.add_column("Reps", style="cyan")
    table.add_column("Weight", style="green")
    if last_sets:
        table.add_column("Last", style="dim")

    for i, set_data in enumerate(sets):
        cells = [str(set_data.set_number), str(set_data.target_reps), f"{set_data.target_weight:g}"]
        if last_sets:
            last = last_sets[i]
            cells.append(f"{last.actual_reps}/{last.target_reps} @ {last.actual_weight:g}")
        table.add_row(*cells)

    console.print(table)

    suggestion = engine.suggest_progression(row, last_sets)
    if suggestion:
        console.print(f"\n[bold]💡 {suggestion.reasoning}[/bold] (confidence {suggestion.confidence:.0%})")


@cli.command()
@click.argument("name")
@click.option("--weight", required=True, type=float, help="Target weight")
@click.option("--reps", required=True, type=int, help="Target reps")
def predict(name, weight, reps):
    """Predict success at a target weight and reps."""
    from .analysis.performance_predictor import PerformancePredictor

    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    prediction = PerformancePredictor(repository=repository).predict_next_performance(row, weight, reps)
    if prediction is None:
        console.print("[yellow]Not enough history to predict. Log at least two sessions.[/yellow]")
        return

    color = "green" if prediction.success_probability > 0.8 else "yellow" if prediction.success_probability >= 0.5 else "red"
    console.print(Panel(
        f"""
[bold]Target:[/bold] {reps} reps @ {weight:g}
[bold]Success probability:[/bold] [{color}]{prediction.success_probability:.0%}[/{color}]
[bold]Predicted reps:[/bold] {prediction.predicted_reps}
[bold]Confidence:[/bold] {prediction.confidence:.0%}

{prediction.reasoning}
        """,
        title=f"🔮 {row.name}",
        box=box.ROUNDED,
    ))


@cli.command()
@click.argument("name")
@click.option("--target", required=True, type=float, help="Goal weight")
@click.option("--current", default=None, type=float, help="Current working weight (defaults to last session's max)")
def timeline(name, target, current):
    """Estimate weeks until a goal weight."""
    from .analysis.performance_predictor import PerformancePredictor

    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    history = repository.get_history(row)
    if current is None:
        current = history[-1].max_weight if history else 0.0

    result = PerformancePredictor(repository=repository).predict_progression_timeline(
        row, target, current, history=history
    )
    if result is None:
        console.print("[yellow]Not enough history to estimate a timeline.[/yellow]")
        return

    if result.estimated_weeks is None:
        console.print(f"[yellow]{result.recommendation}[/yellow]")
        return

    console.print(Panel.fit(
        f"{current:g} → {target:g}: about {result.estimated_weeks} weeks (confidence {result.confidence:.0%})",
        style="bold blue",
    ))

    if result.milestones:
        table = Table(title="Milestones", box=box.ROUNDED)
        table.add_column("Week", style="bold")
        table.add_column("Weight", style="green")
        table.add_column("Confidence", style="cyan")
        for milestone in result.milestones[:12]:
            table.add_row(str(milestone.estimated_week), f"{milestone.weight:.1f}", f"{milestone.confidence:.0%}")
        console.print(table)

    console.print(f"\n{result.recommendation}")


@cli.command()
@click.argument("name")
def deload(name):
    """Check whether a deload is recommended."""
    from .analysis.progressive_overload import ProgressiveOverloadEngine

    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    recommendation = ProgressiveOverloadEngine().suggest_deload(row, repository.get_history(row))
    if recommendation is None:
        console.print("[green]✅ No deload needed.[/green]")
        return

    console.print(Panel.fit(
        f"Volume trend {recommendation.volume_trend:+.0%}. "
        f"Reduce volume by {recommendation.recommended_reduction:.0%} "
        f"for {recommendation.duration_weeks} week(s).",
        title="⚠️  Deload Recommended",
        style="bold yellow",
    ))


@cli.command()
@click.argument("name")
@click.option("--days", default=30, help="Period for the progress trend")
def records(name, days):
    """Show personal records and recent progress."""
    from .analysis.history import personal_records, progress_trend

    repository = get_repository()
    row = require_exercise(repository, name)
    if row is None:
        return

    instances = repository.get_exercise_instances(row)
    prs = personal_records(instances)
    trend = progress_trend(instances, period_days=days)

    def when(record_date):
        return f"{record_date:%Y-%m-%d}" if record_date else "-"

    table = Table(title=f"Personal Records: {row.name}", box=box.ROUNDED)
    table.add_column("Record", style="bold")
    table.add_column("Value", style="green")
    table.add_column("Date", style="cyan")

    if prs.max_weight:
        table.add_row("Max weight", f"{prs.max_weight.value:g}", when(prs.max_weight.date))
    if prs.max_volume:
        table.add_row("Max volume", f"{prs.max_volume.value:g}", when(prs.max_volume.date))
    if prs.max_reps:
        table.add_row("Max reps", f"{prs.max_reps.value:g}", when(prs.max_reps.date))
    if prs.best_set:
        table.add_row("Best set", f"{prs.best_set.actual_reps} @ {prs.best_set.actual_weight:g}", when(prs.best_set_date))

    console.print(table)
    console.print(
        f"\n[bold]Last {days} days:[/bold] {trend.workout_count} workouts, "
        f"volume {trend.volume_change_formatted}, strength {trend.strength_change_formatted}, "
        f"consistency {trend.consistency_formatted}"
    )


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")


if __name__ == "__main__":
    main()
