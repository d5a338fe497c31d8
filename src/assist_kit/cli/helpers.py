"""Shared CLI plumbing: console, progress tree, prompts, error mapping."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.tree import Tree

from assist_kit.catalog.loader import load_catalog
from assist_kit.errors import AssistKitError
from assist_kit.events import (
    STEP_FAILED,
    STEP_STARTED,
    STEP_SUCCEEDED,
    TASK_FAILED,
    TASK_STARTED,
    TASK_SUCCEEDED,
    WARNING,
    CallbackSink,
    ProgressEvent,
)
from assist_kit.provision import Provisioner
from assist_kit.settings import Settings
from assist_kit.tasks.base import TaskDependencies

console = Console()

T = TypeVar("T")


class StepTracker:
    """Track and render hierarchical steps with Rich trees."""

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, status="error", detail=detail)

    def status_of(self, key: str) -> Optional[str]:
        for s in self.steps:
            if s["key"] == key:
                return s["status"]
        return None

    def _update(self, key: str, status: str, detail: str):
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        symbols = {
            "done": "[green]●[/green]",
            "pending": "[green dim]○[/green dim]",
            "running": "[cyan]○[/cyan]",
            "error": "[red]●[/red]",
        }
        for step in self.steps:
            label = step["label"]
            detail_text = step["detail"].strip() if step["detail"] else ""
            symbol = symbols.get(step["status"], " ")

            if step["status"] == "pending":
                text = f"{label} ({detail_text})" if detail_text else label
                line = f"{symbol} [bright_black]{text}[/bright_black]"
            elif detail_text:
                line = f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
            else:
                line = f"{symbol} [white]{label}[/white]"
            tree.add(line)
        return tree


class EventRenderer:
    """Feed progress events into a StepTracker.

    Multi-step steps appear under their own keys (``task/step``) so a failing
    step is visible next to the task that owns it.
    """

    def __init__(self, tracker: StepTracker, verbose: bool = False):
        self.tracker = tracker
        self.verbose = verbose
        self.warnings: List[str] = []

    def __call__(self, event: ProgressEvent) -> None:
        if event.kind == TASK_STARTED:
            self.tracker.add(event.subject, event.detail or event.subject)
            self.tracker.start(event.subject)
        elif event.kind == TASK_SUCCEEDED:
            self.tracker.complete(event.subject, event.detail if self.verbose else "")
        elif event.kind == TASK_FAILED:
            self.tracker.error(event.subject, event.detail)
        elif event.kind in (STEP_STARTED, STEP_SUCCEEDED, STEP_FAILED) and self.verbose:
            key = f"{event.data.get('task', '')}/{event.subject}"
            label = f"  step {event.data.get('index')}/{event.data.get('total')}: {event.subject}"
            self.tracker.add(key, label)
            if event.kind == STEP_STARTED:
                self.tracker.start(key)
            elif event.kind == STEP_SUCCEEDED:
                self.tracker.complete(key)
            else:
                self.tracker.error(key, event.detail)
        elif event.kind == WARNING:
            self.warnings.append(event.detail or event.subject)


class TyperPrompt:
    """Prompt collaborator backed by ``typer.confirm`` / ``typer.prompt``."""

    def confirm(self, message: str, default: bool = False) -> bool:
        return typer.confirm(message, default=default)

    def select(
        self,
        message: str,
        choices: Sequence[Tuple[Optional[str], str]],
        default: Optional[str] = None,
    ) -> Optional[str]:
        console.print(f"[cyan]{message}[/cyan]")
        default_index = 1
        for index, (value, label) in enumerate(choices, start=1):
            console.print(f"  {index}. {label}")
            if value == default:
                default_index = index
        while True:
            picked = typer.prompt("Enter a number", default=default_index, type=int)
            if 1 <= picked <= len(choices):
                return choices[picked - 1][0]
            console.print(f"[red]Choose a number between 1 and {len(choices)}[/red]")


def configure_logging(verbose: bool) -> None:
    """Route ``assist_kit`` logs through Rich; debug level when verbose."""
    logger = logging.getLogger("assist_kit")
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, markup=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def build_provisioner(
    events: Callable[[ProgressEvent], None],
    project_root: Optional[Path] = None,
    interactive: bool = True,
) -> Provisioner:
    settings = Settings.from_env()
    catalog = load_catalog(settings=settings)
    deps = TaskDependencies(
        project_root=project_root or Path(os.getcwd()),
        settings=settings,
        events=CallbackSink(events),
    )
    return Provisioner(catalog, deps, prompt=TyperPrompt() if interactive else None)


def run_or_exit(fn: Callable[[], T]) -> T:
    """Run ``fn``; report assist-kit errors in red and exit with status 1."""
    try:
        return fn()
    except AssistKitError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
