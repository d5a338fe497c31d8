"""assist-kit command line interface."""

from __future__ import annotations

import typer

from assist_kit import __version__
from assist_kit.cli.commands import config, init, remove, task, update
from assist_kit.cli.helpers import console

app = typer.Typer(
    name="assist-kit",
    help="Provision AI assistant rules, memory banks and tooling for a project",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(init)
app.command()(update)
app.command()(remove)
app.command()(task)
app.command("config")(config)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"assist-kit {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Provision AI assistant tooling files for a project."""


def main():
    app()


__all__ = ["app", "main"]
