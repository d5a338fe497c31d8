"""Provisioning service: init, update, remove, task and config operations.

``Provisioner`` ties the catalog, the task dispatcher, the integrity tracker
and the manifest together. It never prints: progress goes to the event sink
on the dependency bag and every operation returns a report the CLI renders.
User interaction goes through the ``Prompt`` collaborator.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from assist_kit.catalog.models import TaskCatalog
from assist_kit.catalog.resolver import get_available_project_types, get_tasks
from assist_kit.catalog.validation import validate_project
from assist_kit.errors import (
    AggregateStepFailure,
    AssistKitError,
    CatalogError,
    ProjectAlreadyInitialized,
    ProjectNotFound,
    ProjectNotInitialized,
    StepFailure,
    ToolNotFound,
)
from assist_kit.events import TASK_FAILED, TASK_STARTED, TASK_SUCCEEDED, WARNING, emit
from assist_kit.fetch import CloneCache, Fetcher, GitFetcher
from assist_kit.integrity.tracker import check_file_changes, is_project_initialized
from assist_kit.manifest import (
    ChangedFileRecord,
    InstallationManifest,
    PackageInfo,
    TrackedFileRecord,
    read_manifest,
    remove_manifest,
    utc_now,
    write_manifest,
)
from assist_kit.tasks.agents_md import AGENTS_MD, strip_section
from assist_kit.tasks.base import TaskDependencies, TaskResult, TaskType
from assist_kit.tasks.dispatcher import execute_task

logger = logging.getLogger(__name__)

NO_PROJECT = "none"
MAX_PATH_SEPARATORS = 10

UP_TO_DATE = "up-to-date"
UPDATED = "updated"
CANCELLED = "cancelled"
DRY_RUN = "dry-run"


# ---------------------------------------------------------------------------
# Options, selections and the prompt collaborator
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SetupOptions:
    """Command options shared by init, update, remove and task.

    ``project`` accepts ``"none"`` to select no project profile. ``tasks``,
    ``skip_tasks`` and ``all_tasks`` replace the interactive task prompts.
    """

    tool: Optional[str] = None
    project: Optional[str] = None
    tasks: Optional[Sequence[str]] = None
    skip_tasks: Sequence[str] = ()
    all_tasks: bool = False
    skip_validation: bool = False
    dry_run: bool = False
    verbose: bool = False
    force: bool = False


@dataclass(frozen=True)
class Selections:
    tool: str
    project_type: Optional[str]
    task_preferences: Dict[str, bool]

    def enabled(self) -> List[str]:
        return [task_id for task_id, enabled in self.task_preferences.items() if enabled]


class Prompt(Protocol):
    def confirm(self, message: str, default: bool = False) -> bool: ...

    def select(
        self,
        message: str,
        choices: Sequence[Tuple[Optional[str], str]],
        default: Optional[str] = None,
    ) -> Optional[str]: ...


def _task_preferences(
    options: SetupOptions,
    tasks: Mapping[str, Mapping[str, Any]],
    prompt: Optional[Prompt],
    current: Optional[Mapping[str, bool]] = None,
) -> Dict[str, bool]:
    if options.all_tasks:
        return {task_id: True for task_id in tasks}
    if options.tasks:
        wanted = {task_id.strip() for task_id in options.tasks}
        return {task_id: task_id in wanted for task_id in tasks}

    skip = {task_id.strip() for task_id in options.skip_tasks}
    preferences: Dict[str, bool] = {}
    for task_id, task in tasks.items():
        if task.get("required"):
            preferences[task_id] = True
        elif task_id in skip:
            preferences[task_id] = False
        elif current is not None:
            preferences[task_id] = bool(current.get(task_id, False))
        elif prompt is None:
            preferences[task_id] = True
        else:
            message = task.get("prompt") or f"Would you like to run: {task.get('name') or task_id}?"
            preferences[task_id] = prompt.confirm(message, True)
    return preferences


def prompt_user(options: SetupOptions, catalog: TaskCatalog, prompt: Optional[Prompt]) -> Selections:
    """Choose tool, project type and tasks from options, asking for whatever is missing.

    Raises:
        ToolNotFound / ProjectNotFound: An option names an unknown identifier
        CatalogError: Something must be asked but no prompt is available
    """
    if options.tool:
        catalog.tool(options.tool)
        tool = options.tool
    else:
        if prompt is None:
            raise CatalogError("No tool selected. Pass --tool with one of: " + ", ".join(catalog.tools))
        choices = [(tool_id, profile.name or tool_id) for tool_id, profile in catalog.tools.items()]
        tool = prompt.select("Which tool are you using?", choices, choices[0][0] if choices else None)
        catalog.tool(tool)

    if options.project:
        project_type = None if options.project == NO_PROJECT else options.project
        if project_type is not None:
            catalog.project(project_type)
    elif prompt is None:
        project_type = None
    else:
        choices = [(None, "None (skip project-specific tasks)")]
        for project_id in get_available_project_types(tool, catalog):
            profile = catalog.projects.get(project_id)
            if profile is not None:
                choices.append((project_id, profile.name or project_id))
        project_type = prompt.select("What type of project is this?", choices, None)

    tasks = get_tasks(catalog, tool, project_type)
    return Selections(tool, project_type, _task_preferences(options, tasks, prompt))


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@dataclass
class TaskOutcome:
    task_id: str
    name: str
    task_type: str
    result: Optional[TaskResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class SetupReport:
    selections: Selections
    outcomes: List[TaskOutcome] = field(default_factory=list)
    manifest: Optional[InstallationManifest] = None
    plan: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


@dataclass
class UpdateReport:
    status: str
    stored_version: str
    current_version: str
    changes: List[ChangedFileRecord] = field(default_factory=list)
    outcomes: List[TaskOutcome] = field(default_factory=list)
    manifest: Optional[InstallationManifest] = None

    @property
    def failed(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


@dataclass
class RemovalReport:
    removed: List[str] = field(default_factory=list)
    reverted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    manifest_removed: bool = False
    cancelled: bool = False
    dry_run: bool = False
    initialized: bool = True


@dataclass
class ConfigReport:
    manifest: InstallationManifest
    changes: List[ChangedFileRecord]
    task_names: Dict[str, str]
    current_version: str
    update_available: Optional[bool] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_path_safe(file_path: str, project_root: Path) -> bool:
    """True when ``file_path`` stays inside ``project_root``.

    Rejects empty paths, any ``..`` component (plain or URL-encoded),
    excessive nesting and anything resolving outside the root.
    """
    if not file_path or not file_path.strip():
        return False
    lowered = file_path.lower()
    if ".." in file_path or "%2e%2e" in lowered:
        return False
    if sum(file_path.count(sep) for sep in ("/", "\\")) > MAX_PATH_SEPARATORS:
        return False

    root = project_root.resolve()
    resolved = (root / file_path).resolve()
    return resolved == root or root in resolved.parents


def update_needed(stored_version: Optional[str], current_version: str) -> bool:
    if not stored_version:
        return True
    try:
        return Version(str(stored_version)) != Version(current_version)
    except InvalidVersion:
        return str(stored_version) != current_version


def describe_task(task: Mapping[str, Any]) -> str:
    task_type = task.get("type")
    if task_type == TaskType.PACKAGE_INSTALL.value:
        package = task.get("package") or {}
        return f"Install package: {package.get('name')} ({package.get('type', 'npx')})"
    if task_type == TaskType.COPY_FILES.value:
        return f"Copy files from: {task.get('source')} -> {task.get('target')}"
    if task_type == TaskType.REMOTE_COPY_FILES.value:
        return f"Copy files from {task.get('repository')}: {task.get('source')} -> {task.get('target')}"
    if task_type == TaskType.AGENTS_MD.value:
        return "Create or update AGENTS.md with references to .ai/ files"
    if task_type == TaskType.MULTI_STEP.value:
        names = [next(iter(step)) for step in task.get("steps") or [] if isinstance(step, Mapping) and step]
        return f"Run {len(names)} steps: {', '.join(names)}"
    return f"Run {task_type} task"


def carry_pre_existing(
    files: Sequence[TrackedFileRecord],
    previous: Optional[InstallationManifest],
) -> List[TrackedFileRecord]:
    """Keep the ``pre_existing`` flag a file had when it was first tracked.

    A file written by an earlier run exists when the next run starts, which
    must not make it look like user content.
    """
    if previous is None:
        return list(files)
    earlier = {record.path: record.pre_existing for record in previous.files}
    return [
        record.model_copy(update={"pre_existing": earlier[record.path]}) if record.path in earlier else record
        for record in files
    ]


def keep_untouched(
    files: Sequence[TrackedFileRecord],
    previous: InstallationManifest,
    project_root: Path,
) -> List[TrackedFileRecord]:
    """Append earlier records this run did not rewrite whose files are still on disk.

    A task that fails on update leaves its earlier files in place; they stay in
    the ledger so ``remove`` and change detection still see them.
    """
    written = {record.path for record in files}
    kept = [
        record
        for record in previous.files
        if record.path not in written
        and is_path_safe(record.path, project_root)
        and (project_root / record.path).is_file()
    ]
    return [*files, *kept]


def _collect_packages(result: TaskResult, packages: Dict[str, PackageInfo]) -> None:
    if result.package_info is not None:
        packages[result.package_info.name] = result.package_info
    for step in result.step_results:
        _collect_packages(step.result, packages)


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------

class Provisioner:
    """Runs provisioning operations against one project root.

    Args:
        catalog: The loaded task catalog
        deps: Base dependency bag (project root, settings, runners, event sink)
        prompt: Interactive collaborator; None for fully non-interactive runs
        fetcher: Fetch collaborator; defaults to a ``GitFetcher`` over the
            run's ``CloneCache``
        clone_cache_factory: Creates the per-run clone cache
    """

    def __init__(
        self,
        catalog: TaskCatalog,
        deps: TaskDependencies,
        prompt: Optional[Prompt] = None,
        fetcher: Optional[Fetcher] = None,
        clone_cache_factory: Callable[[], CloneCache] = CloneCache,
    ):
        self.catalog = catalog
        self.deps = deps
        self.prompt = prompt
        self._fetcher = fetcher
        self._clone_cache_factory = clone_cache_factory

    @property
    def project_root(self) -> Path:
        return self.deps.project_root

    @property
    def manifest_filename(self) -> str:
        return self.deps.settings.manifest_filename

    def _read_manifest(self) -> Optional[InstallationManifest]:
        return read_manifest(self.project_root, self.manifest_filename)

    def _require_manifest(self) -> InstallationManifest:
        manifest = self._read_manifest()
        if manifest is None:
            raise ProjectNotInitialized()
        return manifest

    def _run_deps(self, cache: CloneCache, tracked: Sequence[TrackedFileRecord] = ()) -> TaskDependencies:
        return dataclasses.replace(
            self.deps,
            shared_tasks=self.catalog.shared_tasks,
            tracked_files=list(tracked),
            clone_cache=cache,
            fetcher=self._fetcher or GitFetcher(cache),
        )

    def _execute_enabled(
        self,
        tasks: Mapping[str, Mapping[str, Any]],
        selections: Selections,
        verbose: bool,
        tracked: Sequence[TrackedFileRecord] = (),
    ) -> Tuple[List[TaskOutcome], List[TrackedFileRecord], Dict[str, PackageInfo]]:
        """Run enabled tasks in catalog order.

        Each task sees the files tracked by earlier tasks. A failing task is
        reported and does not stop the others.
        """
        outcomes: List[TaskOutcome] = []
        files: List[TrackedFileRecord] = []
        packages: Dict[str, PackageInfo] = {}
        events = self.deps.events

        with self._clone_cache_factory() as cache:
            base = self._run_deps(cache, tracked)
            for task_id, task in tasks.items():
                if not selections.task_preferences.get(task_id):
                    continue
                name = str(task.get("name") or task_id)
                outcome = TaskOutcome(task_id=task_id, name=name, task_type=str(task.get("type")))
                emit(events, TASK_STARTED, task_id, name)
                try:
                    result = execute_task(
                        task,
                        selections.tool,
                        selections.project_type,
                        verbose,
                        base.with_tracked_files(files),
                    )
                except (StepFailure, AggregateStepFailure) as e:
                    if e.partial_result is not None:
                        files.extend(e.partial_result.files)
                        _collect_packages(e.partial_result, packages)
                    outcome.result = e.partial_result
                    outcome.error = str(e)
                except Exception as e:
                    if not isinstance(e, (AssistKitError, OSError)):
                        logger.debug("Task %s raised %s", task_id, type(e).__name__, exc_info=True)
                    outcome.error = str(e)
                else:
                    outcome.result = result
                    files.extend(result.files)
                    _collect_packages(result, packages)

                if outcome.succeeded:
                    emit(events, TASK_SUCCEEDED, task_id, outcome.result.output if outcome.result else "")
                else:
                    logger.warning("Task %s failed: %s", task_id, outcome.error)
                    emit(events, TASK_FAILED, task_id, outcome.error or "")
                outcomes.append(outcome)
        return outcomes, files, packages

    # -- init -------------------------------------------------------------

    def init_setup(self, options: SetupOptions) -> SetupReport:
        """Provision the project from scratch and write the manifest.

        Raises:
            ProjectAlreadyInitialized: A manifest exists and ``force`` is off
            ProjectValidationError: The directory is not the selected project type
        """
        initialized = is_project_initialized(self.deps)
        if initialized and not options.force and not options.dry_run:
            raise ProjectAlreadyInitialized(str(self.deps.settings.manifest_path(self.project_root)))
        previous = self._read_manifest() if initialized and not options.dry_run else None

        selections = prompt_user(options, self.catalog, self.prompt)
        tasks = get_tasks(self.catalog, selections.tool, selections.project_type)

        if options.dry_run:
            plan: List[str] = []
            if not options.skip_validation:
                plan.append(
                    f"Validate project type: {selections.project_type}"
                    if selections.project_type
                    else "Skip project validation (no project selected)"
                )
            plan.extend(describe_task(tasks[task_id]) for task_id in selections.enabled())
            return SetupReport(selections=selections, plan=plan, dry_run=True)

        warnings: List[str] = []
        if not options.skip_validation and selections.project_type:
            warnings = validate_project(
                selections.project_type, selections.tool, self.catalog, self.project_root
            )
            for warning in warnings:
                emit(self.deps.events, WARNING, selections.project_type, warning)

        outcomes, files, packages = self._execute_enabled(tasks, selections, options.verbose)
        manifest = InstallationManifest.build(
            tool=selections.tool,
            project_type=selections.project_type,
            task_preferences=selections.task_preferences,
            files=carry_pre_existing(files, previous),
            packages=packages,
            tool_version=self.deps.tool_version,
        )
        write_manifest(manifest, self.project_root, self.manifest_filename)
        return SetupReport(selections=selections, outcomes=outcomes, manifest=manifest, warnings=warnings)

    # -- update -----------------------------------------------------------

    def update_setup(self, options: SetupOptions) -> UpdateReport:
        """Re-run the enabled tasks and rewrite the manifest.

        Skips when the stored tool version equals the running one, unless
        ``force``. Modified tracked files need confirmation unless ``force``.
        """
        current = self._require_manifest()
        stored_version = current.installation.tool_version
        report = UpdateReport(status=UP_TO_DATE, stored_version=stored_version, current_version=self.deps.tool_version)

        if not options.force and not update_needed(stored_version, self.deps.tool_version):
            return report

        report.changes = check_file_changes(current, self.deps)
        if options.dry_run:
            report.status = DRY_RUN
            return report

        if report.changes and not options.force:
            if self.prompt is None or not self.prompt.confirm(
                f"{len(report.changes)} installed file(s) were modified or removed. "
                "Overwrite them with fresh copies?",
                False,
            ):
                report.status = CANCELLED
                return report

        tool = options.tool or current.project.tool
        if options.project:
            project_type = None if options.project == NO_PROJECT else options.project
        else:
            project_type = current.project.type
        tasks = get_tasks(self.catalog, tool, project_type)
        preferences = _task_preferences(options, tasks, None, current.features.task_preferences)
        selections = Selections(tool, project_type, preferences)

        report.outcomes, files, packages = self._execute_enabled(tasks, selections, options.verbose)
        report.manifest = InstallationManifest.build(
            tool=tool,
            project_type=project_type,
            task_preferences=preferences,
            files=keep_untouched(carry_pre_existing(files, current), current, self.project_root),
            packages=packages,
            tool_version=self.deps.tool_version,
            previous=current,
        )
        write_manifest(report.manifest, self.project_root, self.manifest_filename)
        report.status = UPDATED
        return report

    # -- remove -----------------------------------------------------------

    def _revert_agents_md(self, path: Path) -> None:
        content = path.read_text(encoding="utf-8")
        cleaned = strip_section(content)
        if cleaned != content:
            path.write_text(cleaned, encoding="utf-8")

    def remove_setup(self, options: SetupOptions) -> RemovalReport:
        """Delete tracked files and the manifest.

        A pre-existing ``AGENTS.md`` is reverted (its assist-kit section is
        stripped) instead of deleted. Paths escaping the project root are
        skipped.
        """
        current = self._read_manifest()
        if current is None:
            return RemovalReport(initialized=False)

        report = RemovalReport(dry_run=options.dry_run)
        if not options.force and not options.dry_run:
            if self.prompt is None or not self.prompt.confirm(
                "Are you sure you want to remove all files and configuration created by assist-kit?",
                False,
            ):
                report.cancelled = True
                return report

        for record in current.files:
            if not is_path_safe(record.path, self.project_root):
                logger.warning("Skipped (unsafe path): %s", record.path)
                report.skipped.append(record.path)
                continue

            full_path = self.project_root / record.path
            if not full_path.exists():
                report.missing.append(record.path)
                continue

            if record.path == AGENTS_MD and record.pre_existing:
                if not options.dry_run:
                    self._revert_agents_md(full_path)
                report.reverted.append(record.path)
                continue

            if not options.dry_run:
                full_path.unlink()
            report.removed.append(record.path)

        if not options.dry_run:
            report.manifest_removed = remove_manifest(self.project_root, self.manifest_filename)
        return report

    # -- task -------------------------------------------------------------

    def task_setup(self, task_ids: Sequence[str], options: SetupOptions) -> SetupReport:
        """Run named tasks for the stored tool/project and merge their files into the manifest.

        Raises:
            ProjectNotInitialized: No manifest
            CatalogError: A task id is not available for the stored tool/project
        """
        current = self._require_manifest()
        tool = current.project.tool
        project_type = current.project.type
        tasks = get_tasks(self.catalog, tool, project_type)

        unknown = [task_id for task_id in task_ids if task_id not in tasks]
        if unknown:
            raise CatalogError(
                f"Unknown task(s): {', '.join(unknown)}. Available tasks: {', '.join(tasks)}"
            )

        selections = Selections(tool, project_type, {task_id: True for task_id in task_ids})
        if options.dry_run:
            return SetupReport(
                selections=selections,
                plan=[describe_task(tasks[task_id]) for task_id in task_ids],
                dry_run=True,
            )

        outcomes, files, packages = self._execute_enabled(tasks, selections, options.verbose, current.files)
        current.merge_files(carry_pre_existing(files, current))
        current.packages.update(packages)
        for task_id in task_ids:
            current.features.task_preferences[task_id] = True
        current.installation.updated = utc_now()
        write_manifest(current, self.project_root, self.manifest_filename)
        return SetupReport(selections=selections, outcomes=outcomes, manifest=current)

    # -- config -----------------------------------------------------------

    def show_config(self, check_updates: bool = False) -> ConfigReport:
        current = self._require_manifest()
        try:
            tasks = get_tasks(self.catalog, current.project.tool, current.project.type)
        except (ToolNotFound, ProjectNotFound) as e:
            logger.warning("Stored configuration no longer matches the catalog: %s", e)
            tasks = {}
        task_names = {
            task_id: str((tasks.get(task_id) or {}).get("name") or task_id)
            for task_id in current.features.enabled()
        }
        report = ConfigReport(
            manifest=current,
            changes=check_file_changes(current, self.deps),
            task_names=task_names,
            current_version=self.deps.tool_version,
        )
        if check_updates:
            report.update_available = update_needed(current.installation.tool_version, self.deps.tool_version)
        return report
