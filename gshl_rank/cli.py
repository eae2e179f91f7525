"""CLI entrypoint using Typer.

This module defines the command-line interface for the ranking engine.
Commands are organized into subcommand groups for training, ranking,
model management, and stat aggregation.

Example:
    $ gshl-rank --help
    $ gshl-rank train run history.csv
    $ gshl-rank rank file lines.json --model latest
    $ gshl-rank aggregate week 12
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from gshl_rank import __version__
from gshl_rank.config import get_settings
from gshl_rank.logging import setup_logging

if TYPE_CHECKING:
    from gshl_rank.aggregation.pipeline import RollupResult
    from gshl_rank.data.store import SqlRowStore

# Initialize console for rich output
console = Console()

# Create main app
app = typer.Typer(
    name="gshl-rank",
    help="GSHL Performance Ranking & Stats Rollup CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Create subcommand groups
train_app = typer.Typer(
    name="train",
    help="Model training commands",
    no_args_is_help=True,
)
rank_app = typer.Typer(
    name="rank",
    help="Stat line scoring commands",
    no_args_is_help=True,
)
model_app = typer.Typer(
    name="model",
    help="Model registry commands",
    no_args_is_help=True,
)
aggregate_app = typer.Typer(
    name="aggregate",
    help="Stat rollup and matchup scoring commands",
    no_args_is_help=True,
)

# Register subcommand groups
app.add_typer(train_app, name="train")
app.add_typer(rank_app, name="rank")
app.add_typer(model_app, name="model")
app.add_typer(aggregate_app, name="aggregate")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]gshl-rank[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    """GSHL Performance Ranking & Stats Rollup CLI.

    Trains position- and era-specific ranking models, scores stat lines on a
    0-100 percentile scale, and rolls daily stats up to weeks and seasons.
    """
    settings = get_settings()
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, log_dir=settings.log_dir_obj)


# =============================================================================
# Input Helpers
# =============================================================================


def load_records(path: Path) -> list[dict[str, Any]]:
    """Read stat lines from a CSV or JSON file.

    Values are kept as read; missing cells become None. JSON files hold an
    array of objects.

    Raises:
        typer.BadParameter: If the file type is not supported.
    """
    import pandas as pd

    suffix = path.suffix.lower()
    if suffix == ".csv":
        frame = pd.read_csv(path, dtype=str, keep_default_na=True)
    elif suffix == ".json":
        # Object dtype keeps integer ids in sparse columns as ints
        frame = pd.DataFrame(json.loads(path.read_text()), dtype=object)
    else:
        raise typer.BadParameter(f"Unsupported file type: {path.suffix} (use .csv or .json)")

    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")


def _open_store() -> SqlRowStore:
    from gshl_rank.data.store import SqlRowStore

    settings = get_settings()
    settings.ensure_directories()
    return SqlRowStore()


def _load_ranking_model(version: str | None) -> Any:
    if version is None:
        return None
    from gshl_rank.ranking.registry import ModelRegistry
    from gshl_rank.types import ModelNotFoundError

    try:
        return ModelRegistry().load_model(version)
    except ModelNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


# =============================================================================
# Train Commands
# =============================================================================


@train_app.command("run")
def train_run(
    input_path: Annotated[
        Path,
        typer.Argument(help="CSV or JSON file of historical stat lines", exists=True),
    ],
    version: Annotated[
        str | None,
        typer.Option("--version", help="Version to save as (default: next patch)"),
    ] = None,
    min_sample_size: Annotated[
        int | None,
        typer.Option("--min-sample-size", help="Minimum lines per model key"),
    ] = None,
    adaptive: Annotated[
        bool,
        typer.Option("--adaptive", help="Scale weights by outcome correlation"),
    ] = False,
) -> None:
    """Train a ranking model and save it to the registry."""
    from gshl_rank.ranking.registry import ModelRegistry
    from gshl_rank.ranking.trainer import TrainingConfig, train_with_report

    settings = get_settings()
    settings.ensure_directories()

    lines = load_records(input_path)
    config = TrainingConfig.from_settings()
    if min_sample_size is not None:
        config.min_sample_size = min_sample_size
    if adaptive:
        config.use_adaptive_weights = True

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Training on {len(lines)} lines...", total=None)
        model, report = train_with_report(lines, config)

    if not model.models:
        console.print("[yellow]No model key reached the minimum sample size; nothing saved.[/yellow]")
        raise typer.Exit(1)

    registry = ModelRegistry()
    parent = registry.get_latest_version()
    version = version or registry.next_version()
    path = registry.save_model(
        model,
        version,
        config={
            "min_sample_size": config.min_sample_size,
            "outlier_threshold": config.outlier_threshold,
            "smoothing_factor": config.smoothing_factor,
            "use_adaptive_weights": config.use_adaptive_weights,
            "source": str(input_path),
        },
        parent_version=parent,
    )

    console.print(
        Panel(
            f"[bold]Version:[/bold] {version}\n"
            f"[bold]Path:[/bold] {path}\n"
            f"[bold]Lines:[/bold] {report.lines_seen} "
            f"({report.lines_unclassified} unclassified)\n"
            f"[bold]Keys trained:[/bold] {len(report.keys_trained)} of {report.groups_found}\n"
            f"[bold]Samples:[/bold] {model.total_samples}",
            title="Training Complete",
        )
    )


# =============================================================================
# Rank Commands
# =============================================================================


@rank_app.command("file")
def rank_file(
    input_path: Annotated[
        Path,
        typer.Argument(help="CSV or JSON file of stat lines to score", exists=True),
    ],
    model_version: Annotated[
        str,
        typer.Option("--model", "-m", help="Model version to score with"),
    ] = "latest",
    global_fallback: Annotated[
        bool,
        typer.Option("--global-fallback", help="Use global weights when no model matches"),
    ] = False,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum rows to display"),
    ] = 50,
) -> None:
    """Score every line in a file and show the results."""
    from gshl_rank.ranking.engine import grade, rank_many

    model = _load_ranking_model(model_version)
    lines = load_records(input_path)
    results = rank_many(
        lines, model, use_global_fallback=global_fallback, skip_failures=True
    )

    table = Table(title=f"Rankings ({input_path.name})")
    table.add_column("#", justify="right")
    table.add_column("Id", style="cyan")
    table.add_column("Model Key")
    table.add_column("Score", justify="right")
    table.add_column("Grade", style="green")

    for index, (line, result) in enumerate(zip(lines, results), start=1):
        if index > limit:
            break
        label = str(line.get("playerId") or line.get("gshlTeamId") or line.get("id") or "")
        if result is None:
            table.add_row(str(index), label, "[red]unscorable[/red]", "-", "-")
        else:
            table.add_row(
                str(index), label, result.model_key, f"{result.score:.1f}", grade(result.score)
            )

    console.print(table)
    scored = sum(result is not None for result in results)
    console.print(f"Scored {scored} of {len(lines)} lines")


# =============================================================================
# Model Commands
# =============================================================================


@model_app.command("list")
def model_list() -> None:
    """List saved model versions."""
    from gshl_rank.ranking.registry import ModelRegistry

    versions = ModelRegistry().list_versions()
    if not versions:
        console.print(
            Panel(
                f"[bold]Model Directory:[/bold] {get_settings().model_dir}\n"
                "[yellow]No models found. Run 'train run' first.[/yellow]",
                title="Model Versions",
            )
        )
        return

    table = Table(title="Model Versions")
    table.add_column("Version", style="cyan")
    table.add_column("Trained At")
    table.add_column("Keys", justify="right")
    table.add_column("Samples", justify="right")
    table.add_column("Latest", style="green")

    for info in versions:
        meta = info.metadata
        table.add_row(
            info.version,
            meta.trained_at if meta else "N/A",
            str(meta.model_count) if meta else "N/A",
            str(meta.total_samples) if meta else "N/A",
            "*" if info.is_latest else "",
        )
    console.print(table)


@model_app.command("show")
def model_show(
    version: Annotated[
        str,
        typer.Argument(help="Model version to show"),
    ] = "latest",
) -> None:
    """Show the trained keys and weights of a model version."""
    from gshl_rank.ranking.categories import get_relevant_stats

    model = _load_ranking_model(version)

    console.print(
        Panel(
            f"[bold]Version:[/bold] {model.version}\n"
            f"[bold]Trained At:[/bold] {model.to_dict()['trainedAt']}\n"
            f"[bold]Seasons:[/bold] {model.season_range.earliest} to {model.season_range.latest}\n"
            f"[bold]Samples:[/bold] {model.total_samples}",
            title=f"Model {version}",
        )
    )

    table = Table(title="Trained Keys")
    table.add_column("Key", style="cyan")
    table.add_column("Samples", justify="right")
    table.add_column("Top Weights")

    for key in sorted(model.models):
        entry = model.models[key]
        relevant = get_relevant_stats(entry.pos_group)
        top = sorted(relevant, key=lambda stat: entry.weights.get(stat, 0.0), reverse=True)[:3]
        table.add_row(
            key,
            str(entry.sample_size),
            ", ".join(f"{stat}={entry.weights.get(stat, 0.0):.2f}" for stat in top),
        )
    console.print(table)


# =============================================================================
# Aggregate Commands
# =============================================================================


@aggregate_app.command("load")
def aggregate_load(
    model: Annotated[
        str,
        typer.Argument(help="Record kind (PlayerDay, Week, Team, Matchup, ...)"),
    ],
    input_path: Annotated[
        Path,
        typer.Argument(help="CSV or JSON file of records", exists=True),
    ],
) -> None:
    """Import records into the row store."""
    from gshl_rank.data.store import NATURAL_KEY_FIELDS, build_natural_key

    store = _open_store()
    created = updated = 0
    for index, record in enumerate(load_records(input_path)):
        if model in NATURAL_KEY_FIELDS:
            key = build_natural_key(model, record)
        else:
            key = str(record.get("id", index))
        if store.upsert(model, key, record):
            created += 1
        else:
            updated += 1
    console.print(f"[green]{model}:[/green] created {created}, updated {updated}")


@aggregate_app.command("week")
def aggregate_week(
    week_id: Annotated[str, typer.Argument(help="Week to roll up")],
    model_version: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model version used to rate records"),
    ] = None,
) -> None:
    """Roll a week's player days up to player weeks and team weeks."""
    from gshl_rank.aggregation.pipeline import AggregationPipeline

    pipeline = AggregationPipeline(_open_store(), _load_ranking_model(model_version))
    _display_rollup_result(pipeline.rollup_week(week_id))


@aggregate_app.command("season")
def aggregate_season(
    season_id: Annotated[str, typer.Argument(help="Season to roll up")],
    model_version: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model version used to rate records"),
    ] = None,
) -> None:
    """Roll a season's weeks up to splits, totals, and team seasons."""
    from gshl_rank.aggregation.pipeline import AggregationPipeline

    pipeline = AggregationPipeline(_open_store(), _load_ranking_model(model_version))
    _display_rollup_result(pipeline.rollup_season(season_id))


@aggregate_app.command("matchups")
def aggregate_matchups(
    season_id: Annotated[str, typer.Argument(help="Season whose matchups to score")],
) -> None:
    """Score a season's matchups from team weeks."""
    from gshl_rank.aggregation.pipeline import AggregationPipeline

    pipeline = AggregationPipeline(_open_store())
    _display_rollup_result(pipeline.score_matchups(season_id))


@aggregate_app.command("rebuild")
def aggregate_rebuild(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD) whose week and season to rebuild")],
    model_version: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model version used to rate records"),
    ] = None,
) -> None:
    """Rebuild the week and season containing a date."""
    from gshl_rank.aggregation.pipeline import AggregationPipeline

    pipeline = AggregationPipeline(_open_store(), _load_ranking_model(model_version))
    _display_rollup_result(pipeline.rebuild_for_date(day))


def _display_rollup_result(result: RollupResult) -> None:
    """Display rollup result to console."""
    from gshl_rank.aggregation.pipeline import PipelineStatus

    status_color = {
        PipelineStatus.COMPLETED: "green",
        PipelineStatus.FAILED: "red",
        PipelineStatus.PENDING: "white",
    }.get(result.status, "white")

    console.print(f"\n[{status_color}]Status: {result.status.value}[/{status_color}]")

    if result.created or result.updated:
        table = Table(title="Records Written")
        table.add_column("Kind", style="cyan")
        table.add_column("Created", justify="right")
        table.add_column("Updated", justify="right")
        for model in sorted(result.created.keys() | result.updated.keys()):
            table.add_row(
                model, str(result.created.get(model, 0)), str(result.updated.get(model, 0))
            )
        console.print(table)

    if result.skipped_days:
        console.print(f"Inactive days skipped: {result.skipped_days}")
    console.print(f"Duration: {result.duration_seconds:.1f}s")

    if result.errors:
        console.print(f"\n[red]Errors ({len(result.errors)}):[/red]")
        for error in result.errors[:10]:
            console.print(f"  - {error}")
        if len(result.errors) > 10:
            console.print(f"  ... and {len(result.errors) - 10} more")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
