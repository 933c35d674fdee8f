"""CLI entry point for imagetofit.

Usage:
    imagetofit validate workout.json          # Check a workout against the schema
    imagetofit export workout.json            # Write <slug>.zwo
    imagetofit export workout.json --stdout   # Print the XML instead
    imagetofit repair oracle-reply.json       # Reconcile an image-parse reply
    imagetofit metrics workout.json --ftp 280
    imagetofit slug "Sweet Spot 45!"
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from imagetofit.config import Settings, get_settings
from imagetofit.metrics import calculate_metrics, format_duration, tss_category
from imagetofit.oracle import OracleResponseError, decode_oracle_text, reconcile
from imagetofit.repair import UnrepairableWorkoutError
from imagetofit.validation import ValidationIssue, WorkoutValidationError, validate
from imagetofit.zwo.encoder import encode, export_workout, slugify

app = typer.Typer(
    name="imagetofit",
    help="Validate, repair and export structured cycling workouts as Zwift .zwo files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_settings() -> Settings:
    try:
        return get_settings()
    except Exception as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        err_console.print(
            "Check the [bold]IMAGETOFIT_*[/bold] variables in your environment or .env."
        )
        raise typer.Exit(1) from None


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        err_console.print(
            f"[red]Cannot read {escape(str(path))}:[/red] {escape(str(exc))}"
        )
        raise typer.Exit(1) from None


def _load_json(path: Path) -> object:
    try:
        return json.loads(_read_text(path))
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON in {escape(str(path))}:[/red] {exc}")
        raise typer.Exit(1) from None


def _print_issues(issues: list[ValidationIssue]) -> None:
    table = Table(title=f"{len(issues)} validation issue(s)", title_style="red")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Problem")
    for issue in issues:
        table.add_row(escape(issue.path or "(workout)"), escape(issue.message))
    err_console.print(table)


def _write_export(xml: str, filename: str, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / filename
    target.write_text(xml, encoding="utf-8")
    return target


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log validation and repair details."),
    ] = False,
) -> None:
    """Validate, repair and export structured cycling workouts."""
    level = "DEBUG" if verbose else _get_settings().log_level
    _configure_logging(level)


@app.command(name="validate")
def validate_cmd(
    path: Annotated[Path, typer.Argument(help="Workout JSON file.")],
) -> None:
    """Check a workout JSON file against the workout schema."""
    result = validate(_load_json(path))
    if result.workout is None:
        _print_issues(result.issues)
        raise typer.Exit(1)
    console.print(
        f"[green]✓ {escape(result.workout.name)} is valid "
        f"({len(result.workout.steps)} step(s)).[/green]"
    )


@app.command()
def export(
    path: Annotated[
        Path,
        typer.Argument(help='Workout JSON file, bare or as {"workout": {...}}.'),
    ],
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            help="Directory to write the .zwo file to. Overrides IMAGETOFIT_OUTPUT_DIR.",
        ),
    ] = None,
    stdout: Annotated[
        bool,
        typer.Option("--stdout", help="Print the XML instead of writing a file."),
    ] = False,
) -> None:
    """Export a workout as a Zwift [cyan].zwo[/cyan] file.

    The workout is always re-validated first; nothing is written when it is
    invalid. The filename is derived from the workout name.
    """
    try:
        exported = export_workout(_load_json(path))
    except WorkoutValidationError as exc:
        _print_issues(exc.issues)
        raise typer.Exit(1) from None

    if stdout:
        typer.echo(exported.xml)
        return

    target_dir = output_dir if output_dir is not None else _get_settings().output_dir
    target = _write_export(exported.xml, exported.filename, target_dir)
    console.print(f"[green]✓ Wrote {escape(str(target))}[/green]")


@app.command()
def repair(
    path: Annotated[
        Path,
        typer.Argument(help="Oracle reply: JSON, optionally inside a ``` fence."),
    ],
    do_export: Annotated[
        bool,
        typer.Option("--export", help="Write the reconciled workout as a .zwo file."),
    ] = False,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Directory for --export."),
    ] = None,
) -> None:
    """Reconcile an image-parse reply into a valid workout.

    Out-of-range values are clamped and missing ones defaulted. When anything
    had to be repaired the confidence is capped at 0.6 and a warning added.
    """
    try:
        raw = decode_oracle_text(_read_text(path))
        result = reconcile(raw)
    except (OracleResponseError, UnrepairableWorkoutError) as exc:
        err_console.print(
            f"[red]Cannot reconcile {escape(str(path))}:[/red] {escape(str(exc))}"
        )
        raise typer.Exit(1) from None

    style = "yellow" if result.needs_review else "green"
    err_console.print(f"[{style}]Confidence: {result.confidence:.2f}[/{style}]")
    for warning in result.warnings:
        err_console.print(f"[yellow]⚠ {escape(warning)}[/yellow]")

    if not do_export:
        typer.echo(
            json.dumps(
                result.workout.model_dump(exclude_none=True),
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    target_dir = output_dir if output_dir is not None else _get_settings().output_dir
    target = _write_export(
        encode(result.workout), slugify(result.workout.name), target_dir
    )
    console.print(f"[green]✓ Wrote {escape(str(target))}[/green]")


@app.command()
def metrics(
    path: Annotated[Path, typer.Argument(help="Workout JSON file.")],
    ftp: Annotated[
        int | None,
        typer.Option("--ftp", help="FTP in watts. Overrides IMAGETOFIT_FTP_WATTS."),
    ] = None,
) -> None:
    """Estimate duration, power and training stress for a workout."""
    result = validate(_load_json(path))
    if result.workout is None:
        _print_issues(result.issues)
        raise typer.Exit(1)

    ftp_watts = ftp if ftp is not None else _get_settings().ftp_watts
    m = calculate_metrics(result.workout, ftp_watts)

    table = Table(title=f"{escape(result.workout.name)} @ {ftp_watts}W FTP")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("Duration", format_duration(m.total_duration_s))
    table.add_row("Average power", f"{m.average_power}W")
    table.add_row("Normalized power", f"{m.normalized_power}W")
    table.add_row("Intensity factor", f"{m.intensity_factor:.2f}")
    table.add_row("TSS", f"{m.tss} ({tss_category(m.tss)})")
    console.print(table)

    if result.workout.description:
        console.print(Panel(escape(result.workout.description), border_style="dim"))


@app.command()
def slug(
    name: Annotated[str, typer.Argument(help="Workout name.")],
) -> None:
    """Print the .zwo filename derived from a workout name."""
    typer.echo(slugify(name))


if __name__ == "__main__":
    app()
