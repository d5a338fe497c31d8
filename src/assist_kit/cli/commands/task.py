"""``assist-kit task``: run individual tasks in an initialized project."""

from __future__ import annotations

from typing import List

import typer

from assist_kit.cli.helpers import EventRenderer, StepTracker, build_provisioner, configure_logging, console, run_or_exit
from assist_kit.provision import SetupOptions, SetupReport


def task(
    task_ids: List[str] = typer.Argument(..., help="Task ids to run"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Run specific tasks using the stored tool and project type."""
    configure_logging(verbose)
    tracker = StepTracker("Tasks")
    renderer = EventRenderer(tracker, verbose)
    options = SetupOptions(dry_run=dry_run, verbose=verbose)

    report: SetupReport = run_or_exit(lambda: build_provisioner(renderer).task_setup(task_ids, options))

    if report.dry_run:
        for line in report.plan:
            console.print(f"• {line}")
        return
    console.print(tracker.render())
    for warning in renderer.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if report.failed:
        raise typer.Exit(1)
