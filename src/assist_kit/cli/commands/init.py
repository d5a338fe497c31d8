"""``assist-kit init``: provision a project from the task catalog."""

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
from assist_kit.provision import SetupOptions, SetupReport


def render_setup_report(report: SetupReport, tracker: StepTracker, renderer: EventRenderer) -> None:
    selections = report.selections
    if report.dry_run:
        console.print("[blue]DRY RUN - what would be done:[/blue]")
        console.print(f"• Tool: [cyan]{selections.tool}[/cyan]")
        console.print(f"• Project Type: [cyan]{selections.project_type or 'None'}[/cyan]")
        for line in report.plan:
            console.print(f"• {line}")
        console.print("[yellow]This was a dry run - no changes were made.[/yellow]")
        return

    if tracker.steps:
        console.print(tracker.render())
    for warning in [*report.warnings, *renderer.warnings]:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    files = len(report.manifest.files) if report.manifest else 0
    if report.failed:
        console.print(f"[yellow]Setup finished with {len(report.failed)} failed task(s).[/yellow]")
    else:
        console.print("[green]Setup completed successfully![/green]")
    console.print(f"• Tool: [cyan]{selections.tool}[/cyan]")
    console.print(f"• Project Type: [cyan]{selections.project_type or 'None (project-specific tasks disabled)'}[/cyan]")
    console.print(f"• Tracked files: {files}")


def init(
    tool: Optional[str] = typer.Option(None, "--tool", "-t", help="AI tool to provision for"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project type, or 'none'"),
    tasks: Optional[str] = typer.Option(None, "--tasks", help="Only run these tasks (comma-separated)"),
    skip_tasks: Optional[str] = typer.Option(None, "--skip-tasks", help="Skip these tasks (comma-separated)"),
    all_tasks: bool = typer.Option(False, "--all-tasks", help="Run every available task without prompting"),
    skip_validation: bool = typer.Option(False, "--skip-validation", help="Skip project type validation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without changing anything"),
    force: bool = typer.Option(False, "--force", "-f", help="Re-initialize an already initialized project"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    no_input: bool = typer.Option(False, "--no-input", help="Never prompt; use defaults for anything not given"),
) -> None:
    """Set up AI assistant files for this project."""
    configure_logging(verbose)
    tracker = StepTracker("Provision tasks")
    renderer = EventRenderer(tracker, verbose)
    options = SetupOptions(
        tool=tool,
        project=project,
        tasks=split_csv(tasks),
        skip_tasks=split_csv(skip_tasks) or (),
        all_tasks=all_tasks,
        skip_validation=skip_validation,
        dry_run=dry_run,
        verbose=verbose,
        force=force,
    )

    def _run() -> SetupReport:
        provisioner = build_provisioner(renderer, interactive=not no_input)
        return provisioner.init_setup(options)

    report = run_or_exit(_run)
    render_setup_report(report, tracker, renderer)
    if report.failed:
        raise typer.Exit(1)
