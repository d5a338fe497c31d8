"""``assist-kit remove``: delete installed files and the manifest."""

from __future__ import annotations

import typer

from assist_kit.cli.helpers import EventRenderer, StepTracker, build_provisioner, configure_logging, console, run_or_exit
from assist_kit.provision import RemovalReport, SetupOptions
from assist_kit.settings import MANIFEST_FILENAME


def remove(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed without removing"),
    force: bool = typer.Option(False, "--force", "-f", help="Remove without confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Remove every file and the configuration created by assist-kit."""
    configure_logging(verbose)
    renderer = EventRenderer(StepTracker("Remove"), verbose)
    options = SetupOptions(dry_run=dry_run, force=force, verbose=verbose)

    report: RemovalReport = run_or_exit(lambda: build_provisioner(renderer).remove_setup(options))

    if not report.initialized:
        console.print("[yellow]No configuration found. Nothing to remove.[/yellow]")
        return
    if report.cancelled:
        console.print("[blue]Removal cancelled.[/blue]")
        return

    verb = "would be" if report.dry_run else "were"
    if report.dry_run:
        console.print(f"[blue]DRY RUN - configuration file {MANIFEST_FILENAME} would be removed.[/blue]")
    for title, paths in (("removed", report.removed), ("reverted", report.reverted)):
        if paths:
            console.print(f"[green]Files {verb} {title}:[/green]")
            for path in paths:
                console.print(f"  • {path}")
    for path in report.skipped:
        console.print(f"[yellow]Skipped (unsafe path): {path}[/yellow]")
    if verbose:
        for path in report.missing:
            console.print(f"[bright_black]Not found: {path}[/bright_black]")
    if not report.removed and not report.reverted:
        console.print(f"[yellow]No files {verb} found to remove or revert.[/yellow]")
