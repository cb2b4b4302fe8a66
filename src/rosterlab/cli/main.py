from __future__ import annotations

import json
from pathlib import Path

import click
import typer
from rich.console import Console
from rich.table import Table

from rosterlab.cli._utils import configure_logging, parse_algorithms, parse_role_weights
from rosterlab.core.errors import AllAlgorithmsFailedError, RosterValidationError
from rosterlab.evaluation.organizer import group_statistics
from rosterlab.optimization.heuristics.config import EnsembleSettings
from rosterlab.optimization.service import OptimizationResult, optimize_request
from rosterlab.roster.contract.models import RosterRequest
from rosterlab.roster.io.loaders import load_roster
from rosterlab.roster.validation import ValidationReport, validate_request

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()
PRESET = click.Choice(["quick", "default"], case_sensitive=False)


def _load(roster: Path, groups: int | None, activity: str | None) -> RosterRequest:
    try:
        request = load_roster(roster, activity=activity)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    if groups is not None:
        request.group_count = groups
    return request


def _settings(
    request: RosterRequest,
    preset: str | None,
    algorithms: list[str] | None,
    time_limit: float | None,
) -> EnsembleSettings:
    if preset is not None:
        settings = EnsembleSettings.preset(preset)
    elif request.settings:
        settings = EnsembleSettings.model_validate(request.settings)
    else:
        settings = EnsembleSettings()
    overrides: dict[str, object] = {}
    if algorithms:
        overrides["enabled"] = algorithms
    if time_limit is not None:
        overrides["time_limit"] = time_limit
    if overrides:
        settings = EnsembleSettings.model_validate({**settings.model_dump(), **overrides})
    return settings


def _print_report(report: ValidationReport) -> None:
    for issue in report.errors:
        console.print(f"[red]error[/]: {issue.message}")
    for issue in report.warnings:
        console.print(f"[yellow]warning[/]: {issue.message}")


def _print_groups(result: OptimizationResult, request: RosterRequest) -> None:
    activity = request.activity
    stats = group_statistics(result.groups, activity.role_weights)
    for group, group_stats in zip(result.groups, stats):
        table = Table(title=f"Group {group_stats.group_number} (strength {group_stats.strength:.1f})")
        table.add_column("Role")
        table.add_column("Candidate")
        table.add_column("Rating", justify="right")
        for slot in group:
            table.add_row(
                activity.display_name(slot.role),
                slot.candidate.name or str(slot.candidate_id),
                f"{slot.rating:.0f}",
            )
        console.print(table)

    summary = Table(title="Balance")
    summary.add_column("Metric")
    summary.add_column("Value", justify="right")
    summary.add_row("Algorithm", result.algorithm_used)
    summary.add_row("Score", f"{result.score:.3f}")
    summary.add_row("Spread", f"{result.balance.spread:.2f}")
    summary.add_row("Std dev", f"{result.balance.std_dev:.2f}")
    summary.add_row("Average", f"{result.balance.average:.2f}")
    if result.balance.fairness is not None:
        summary.add_row("Fairness", f"{result.balance.fairness.score:.3f}")
    if result.balance.consistency is not None:
        summary.add_row("Consistency", f"{result.balance.consistency.score:.3f}")
    summary.add_row("Unassigned", str(len(result.unassigned_candidates)))
    summary.add_row("Seed", str(result.seed))
    console.print(summary)
    for name, error in result.failures.items():
        console.print(f"[yellow]{name} failed[/]: {error}")
    for error in result.composition_errors:
        console.print(f"[red]invalid roster[/]: {error}")


@app.command()
def validate(
    roster: Path,
    groups: int | None = typer.Option(None, "--groups", "-g", help="Override the group count."),
    activity: str | None = typer.Option(
        None, "--activity", help="Built-in activity (e.g. volleyball) for CSV rosters."
    ),
):
    """Check that a roster can fill the requested groups."""
    request = _load(roster, groups, activity)
    report = validate_request(
        request.composition, request.group_count, request.candidates, request.activity
    )
    table = Table(title=f"Roster: {request.activity.name}")
    table.add_column("Role")
    table.add_column("Per group", justify="right")
    for role, count in request.composition.items():
        table.add_row(request.activity.display_name(role), str(count))
    table.add_row("Groups", str(request.group_count))
    table.add_row("Candidates", str(len(request.candidates)))
    table.add_row("Surplus", str(report.surplus))
    console.print(table)
    _print_report(report)
    if not report.is_valid:
        raise typer.Exit(code=1)
    console.print("[green]Roster is valid.[/]")


@app.command()
def optimize(
    roster: Path,
    groups: int | None = typer.Option(None, "--groups", "-g", help="Override the group count."),
    seed: int | None = typer.Option(None, "--seed", help="Master RNG seed (random when omitted)."),
    preset: str | None = typer.Option(
        None,
        "--preset",
        help="Budget preset (quick|default). Defaults to the roster's settings section.",
        show_choices=True,
        click_type=PRESET,
    ),
    algorithm: list[str] | None = typer.Option(
        None,
        "--algorithm",
        "-a",
        help="Enable specific ensemble members (repeatable or comma-separated).",
    ),
    role_weight: list[str] | None = typer.Option(
        None,
        "--role-weight",
        "-w",
        help="Override a role weight as ROLE=value (e.g. --role-weight S=1.3). Repeatable.",
    ),
    time_limit: float | None = typer.Option(
        None, "--time-limit", help="Soft wall-clock limit in seconds.", min=0.001
    ),
    activity: str | None = typer.Option(
        None, "--activity", help="Built-in activity (e.g. volleyball) for CSV rosters."
    ),
    out: Path | None = typer.Option(
        None, "--out", help="Write groups to a CSV or JSON file (by extension)."
    ),
    telemetry_log: Path | None = typer.Option(
        None,
        "--telemetry-log",
        help="Append run telemetry to a JSONL file; step logs land in a steps/ directory beside it.",
        writable=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    """Split a roster into balanced groups with the metaheuristic ensemble."""
    configure_logging(verbose)
    request = _load(roster, groups, activity)
    request.activity.role_weights.update(parse_role_weights(role_weight))
    try:
        settings = _settings(request, preset, parse_algorithms(algorithm), time_limit)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        result = optimize_request(
            request,
            settings=settings,
            seed=seed,
            telemetry_log=telemetry_log,
            telemetry_context={"roster_path": str(roster)},
        )
    except RosterValidationError as exc:
        _print_report(exc.report)
        raise typer.Exit(code=1) from exc
    except AllAlgorithmsFailedError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=2) from exc

    _print_groups(result, request)
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        if out.suffix.lower() == ".json":
            out.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        else:
            result.to_dataframe().to_csv(str(out), index=False)
        console.print(f"Groups written to {out}")
    if telemetry_log:
        console.print(f"[dim]Telemetry appended to {telemetry_log}.[/]")


if __name__ == "__main__":
    app()
