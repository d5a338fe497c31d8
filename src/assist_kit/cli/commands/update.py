"""``assist-kit update``: re-run enabled tasks with the current catalog."""

from __future__ import annotations

from typing import Optional

import typer

from assist_kit.cli.helpers import (
    EventRenderer,
    StepTracker,
    build_provisioner,
    configure_logging,
    console,
    run_or_exit,
    split_csv,
)
from assist_kit.provision import CANCELLED, DRY_RUN, UP_TO_DATE, SetupOptions, UpdateReport


def update(
    tool: Optional[str] = typer.Option(None, "--tool", "-t", help="Override the stored tool"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Override the stored project type, or 'none'"),
    tasks: Optional[str] = typer.Option(None, "--tasks", help="Only run these tasks (comma-separated)"),
    skip_tasks: Optional[str] = typer.Option(None, "--skip-tasks", help="Skip these tasks (comma-separated)"),
    all_tasks: bool = typer.Option(False, "--all-tasks", help="Run every available task"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be updated without changing anything"),
    force: bool = typer.Option(False, "--force", "-F", help="Update even when up to date; overwrite modified files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Refresh installed files to match the current version."""
    configure_logging(verbose)
    tracker = StepTracker("Update tasks")
    renderer = EventRenderer(tracker, verbose)
    options = SetupOptions(
        tool=tool,
        project=project,
        tasks=split_csv(tasks),
        skip_tasks=split_csv(skip_tasks) or (),
        all_tasks=all_tasks,
        dry_run=dry_run,
        verbose=verbose,
        force=force,
    )

    report: UpdateReport = run_or_exit(lambda: build_provisioner(renderer).update_setup(options))

    if report.status == UP_TO_DATE:
        console.print("[green]Your setup is already up to date![/green]")
        return
    if report.changes:
        console.print(f"[yellow]{len(report.changes)} installed file(s) differ from what was installed:[/yellow]")
        for change in report.changes:
            state = "missing" if change.missing else "modified"
            console.print(f"  - {change.path} ({state})")
    if report.status == DRY_RUN:
        console.print("[blue]DRY RUN:[/blue] all enabled tasks would be re-run and the configuration rewritten.")
        console.print(f"• Stored version: [cyan]{report.stored_version}[/cyan] -> [cyan]{report.current_version}[/cyan]")
        return
    if report.status == CANCELLED:
        console.print("[blue]Update cancelled.[/blue]")
        return

    console.print(tracker.render())
    if report.failed:
        console.print(f"[yellow]Update finished with {len(report.failed)} failed task(s).[/yellow]")
        raise typer.Exit(1)
    console.print("[green]Update completed successfully![/green]")
