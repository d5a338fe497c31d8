"""Shared types for task handlers: task types, results, dependency bag."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from assist_kit import __version__
from assist_kit.errors import TaskExecutionError, UnknownTaskType
from assist_kit.events import EventSink, NullSink
from assist_kit.fetch import CloneCache, Fetcher, GitFetcher
from assist_kit.integrity.tracker import PathLocks, absolute_path, track_installed_file
from assist_kit.manifest import PackageInfo, TrackedFileRecord
from assist_kit.packages import run_install_command, run_version_command
from assist_kit.settings import Settings


class TaskType(str, Enum):
    """Every task type the dispatcher knows. The set is closed."""

    COPY_FILES = "copy-files"
    PACKAGE_INSTALL = "package-install"
    REMOTE_COPY_FILES = "remote-copy-files"
    AGENTS_MD = "agents-md"
    MULTI_STEP = "multi-step"

    @classmethod
    def parse(cls, value: object) -> "TaskType":
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownTaskType(value) from e


@dataclass
class TaskResult:
    """Outcome of one task.

    Attributes:
        output: Human-readable summary
        files: Files written and tracked by the task
        package_info: Version info (package-install only)
        step_results: Ordered per-step results (multi-step only)
    """

    output: str = ""
    files: List[TrackedFileRecord] = field(default_factory=list)
    package_info: Optional[PackageInfo] = None
    step_results: List["StepResult"] = field(default_factory=list)


@dataclass(frozen=True)
class StepResult:
    step: str
    result: TaskResult


@dataclass
class TaskDependencies:
    """Collaborators and run state injected into every task handler.

    ``tracked_files`` holds the files recorded so far in the current run; the
    agents-md task reads it to build its file references.
    """

    project_root: Path
    settings: Settings = field(default_factory=Settings.from_env)
    shared_tasks: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    tracked_files: List[TrackedFileRecord] = field(default_factory=list)
    clone_cache: CloneCache = field(default_factory=CloneCache)
    fetcher: Optional[Fetcher] = None
    version_runner: Callable[..., PackageInfo] = run_version_command
    install_runner: Callable[..., str] = run_install_command
    track_file: Callable[[Union[str, Path], "TaskDependencies"], TrackedFileRecord] = track_installed_file
    path_locks: PathLocks = field(default_factory=PathLocks)
    events: EventSink = field(default_factory=NullSink)
    tool_version: str = __version__

    def __post_init__(self) -> None:
        if self.fetcher is None:
            self.fetcher = GitFetcher(self.clone_cache)

    def resolve(self, path: Union[str, Path]) -> Path:
        return absolute_path(path, self.project_root)

    def with_tracked_files(self, files: List[TrackedFileRecord]) -> "TaskDependencies":
        """Copy of the bag whose ``tracked_files`` also include ``files``."""
        return dataclasses.replace(self, tracked_files=[*self.tracked_files, *files])

    def track(self, paths: List[Path]) -> List[TrackedFileRecord]:
        return [self.track_file(path, self) for path in paths]


def require(task: Mapping[str, Any], key: str) -> Any:
    """Return ``task[key]`` or fail naming the task type and missing field."""
    value = task.get(key)
    if value is None or value == "":
        raise TaskExecutionError(f"{task.get('type', 'task')} task is missing required field '{key}'")
    return value
