"""``assist-kit config``: show the stored configuration and file status."""

from __future__ import annotations

import json

import typer
from rich.table import Table

from assist_kit.cli.helpers import EventRenderer, StepTracker, build_provisioner, configure_logging, console, run_or_exit
from assist_kit.provision import ConfigReport


def _print_json(report: ConfigReport) -> None:
    payload = report.manifest.to_dict()
    payload["changes"] = [change.model_dump(by_alias=True, exclude_none=True) for change in report.changes]
    if report.update_available is not None:
        payload["updateAvailable"] = report.update_available
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))


def config(
    as_json: bool = typer.Option(False, "--json", help="Output in JSON format"),
    check_updates: bool = typer.Option(False, "--check-updates", help="Check whether an update is available"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every tracked file"),
) -> None:
    """Display the current configuration."""
    configure_logging(verbose)
    renderer = EventRenderer(StepTracker("Config"), verbose)
    report: ConfigReport = run_or_exit(
        lambda: build_provisioner(renderer, interactive=False).show_config(check_updates)
    )

    if as_json:
        _print_json(report)
        return

    manifest = report.manifest
    console.print("[blue]Current Configuration:[/blue]")
    console.print(f"• Tool: [cyan]{manifest.project.tool}[/cyan]")
    console.print(f"• Project Type: [cyan]{manifest.project.type or 'None (project-specific tasks disabled)'}[/cyan]")
    console.print(f"• Tool Version: [cyan]{manifest.installation.tool_version}[/cyan]")
    enabled = ", ".join(report.task_names.values()) or "None"
    console.print(f"• Enabled Tasks: {enabled}")
    console.print(f"• Created Files: {len(manifest.files)}")
    console.print(f"• Installed Packages: {len(manifest.packages)}")

    changed = {change.path: change for change in report.changes}
    if verbose and manifest.files:
        table = Table(title="Tracked files")
        table.add_column("Path", style="bold")
        table.add_column("Status")
        for record in manifest.files:
            change = changed.get(record.path)
            if change is None:
                status = "[green]unchanged[/green]"
            elif change.missing:
                status = f"[red]missing[/red] [bright_black]{change.error or ''}[/bright_black]"
            else:
                status = "[yellow]modified[/yellow]"
            table.add_row(record.path, status)
        console.print(table)
        for name, info in manifest.packages.items():
            console.print(f"  - {name}@{info.version}")
    elif report.changes:
        console.print(f"[yellow]{len(report.changes)} tracked file(s) modified or missing.[/yellow]")

    if report.update_available is True:
        console.print(
            f"[yellow]Update available: {manifest.installation.tool_version} -> {report.current_version}[/yellow]"
        )
        console.print("[blue]Run 'assist-kit update' to apply updates.[/blue]")
    elif report.update_available is False:
        console.print("[green]You have the latest version![/green]")
