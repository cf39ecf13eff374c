"""Thin CLI wrapper for idf_example_ci.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from idf_example_ci import __version__
from idf_example_ci.config import get_settings, print_settings_json
from idf_example_ci.errors import CIBuildError
from idf_example_ci.types import BuildOutcome, VariantResult

app = typer.Typer(
    name="idf-example-ci",
    help="IDF example CI builds - partitioned, incremental example builds",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: str) -> None:
    """Route log records through Rich at the given level."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"idf-example-ci version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """IDF example CI builds - partitioned, incremental example builds."""
    level = (log_level or get_settings().log_level).upper()
    if level not in LOG_LEVELS:
        err_console.print(f"[red]Invalid log level: {log_level}[/red]")
        raise typer.Exit(code=1)
    configure_logging(level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
        return

    def show(value: object) -> str:
        return "(not set)" if value is None else str(value)

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  IDF path:            {show(settings.idf_path)}")
    console.print(f"  Log path:            {show(settings.log_path)}")
    console.print(f"  Examples directory:  {show(settings.resolved_examples_dir)}")
    console.print(f"  CI configuration:    {show(settings.resolved_ci_config)}")
    console.print(f"  Builds directory:    {settings.builds_dir}")
    console.print()
    console.print("[bold]Build:[/bold]")
    console.print(f"  Build command:       {settings.build_command}")
    console.print(f"  Extra CFLAGS:        {settings.extra_cflags}")
    console.print(f"  Build timeout:       {show(settings.build_timeout)}")
    console.print()
    console.print("[bold]Verdict:[/bold]")
    console.print(f"  Minimum examples:    {settings.min_examples}")
    console.print(f"  Issues exit code:    {settings.issues_exit_code}")
    console.print()
    console.print("[bold]Output:[/bold]")
    console.print(f"  Echo logs:           {settings.echo_logs}")
    console.print(f"  Log level:           {settings.log_level}")


@app.command()
def plan(
    job_name: Annotated[
        str | None,
        typer.Argument(help="Job name <label>_<index>; omit to plan all examples"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show which examples a job instance would build."""
    from idf_example_ci.builds.service import plan_run, selected_examples

    settings = get_settings()
    try:
        examples, range_ = plan_run(job_name, settings)
    except CIBuildError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    selected = selected_examples(examples, range_)

    if json_output:
        output = {
            "job_name": job_name,
            "total_examples": len(examples),
            "start": range_.start,
            "end": range_.end,
            "examples": [{"index": i, "name": name} for i, name in selected],
        }
        console.print(json.dumps(output, indent=2), soft_wrap=True)
        return

    end = "end" if range_.end is None else str(range_.end)
    console.print(
        f"[bold]Job {job_name or '(all)'}: examples [{range_.start}; {end}) "
        f"of {len(examples)}[/bold]"
    )
    if not selected:
        console.print("[yellow]No examples in range[/yellow]")
    for index, name in selected:
        console.print(f"  [ {index} ] {name}")


@app.command()
def build(
    job_name: Annotated[
        str | None,
        typer.Argument(help="Job name <label>_<index>; omit to build all examples"),
    ] = None,
) -> None:
    """Build the examples owned by a job instance.

    Exits with 0 on success, the build tool's exit code if a build failed,
    or the issues exit code if logs contain warnings or errors.
    """
    from idf_example_ci.builds.service import run_ci_build

    settings = get_settings()

    def report(result: VariantResult) -> None:
        name = result.variant.name
        if result.outcome == BuildOutcome.SKIPPED:
            console.print(f"[blue]- {name} (already built)[/blue]")
            return
        if settings.echo_logs and result.log_path is not None:
            console.out(
                result.log_path.read_text(encoding="utf-8", errors="replace"),
                highlight=False,
            )
        if result.outcome == BuildOutcome.SUCCEEDED:
            console.print(f"[green]✓ {name}[/green]")
        else:
            console.print(f"[red]✗ {name}: {escape(result.error_message or '')}[/red]")

    try:
        result = run_ci_build(job_name, settings, progress=report)
    except CIBuildError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    console.print()
    console.print("[bold]Found issues:[/bold]")
    if result.issues:
        for line in result.issues:
            console.print(line, markup=False, highlight=False)
    else:
        console.print("\tNone")

    console.print()
    console.print(
        f"Built: {result.count(BuildOutcome.SUCCEEDED)}  "
        f"Skipped: {result.count(BuildOutcome.SKIPPED)}  "
        f"Failed: {result.count(BuildOutcome.FAILED)}"
    )
    if result.failed_examples:
        console.print(
            "[red]There are errors in the next examples: "
            f"{' '.join(result.failed_examples)}[/red]"
        )
    if result.result_code != 0:
        console.print("[red]Fix all warnings and errors above to pass the test![/red]")

    console.print(f"Return code = {result.result_code}")
    raise typer.Exit(code=result.result_code)


__all__ = ["app"]
