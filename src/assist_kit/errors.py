"""Exception hierarchy for catalog resolution, task execution and provisioning.

Integrity problems (missing or unreadable tracked files) are not
part of this hierarchy: they are reported as data on ``ChangedFileRecord``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Tuple

if TYPE_CHECKING:
    from assist_kit.tasks.base import TaskResult


class AssistKitError(RuntimeError):
    """Base exception for assist-kit errors."""
    pass


# ---------------------------------------------------------------------------
# Resolution errors
# ---------------------------------------------------------------------------

class ResolutionError(AssistKitError):
    """A task definition is structurally invalid and cannot be resolved."""


class ReferenceNotFound(ResolutionError):
    """A ``@shared_tasks.<name>`` reference points at a missing pool entry."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Shared task not found: {reference}")


class InvalidReferenceSyntax(ResolutionError):
    """A task-list string is not a well-formed shared task reference."""

    def __init__(self, value: str, context: str | None = None):
        self.value = value
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"Invalid shared task reference{where}: {value!r}")


class UnresolvedPlaceholder(ResolutionError):
    """``{tool}`` appears in a task but no tool context was supplied."""

    def __init__(self, placeholder: str = "tool"):
        self.placeholder = placeholder
        super().__init__(
            f"Task contains {{{placeholder}}} variables but no {placeholder} context is available"
        )


class UnsupportedVariable(ResolutionError):
    """One or more placeholder tokens are outside the supported set."""

    def __init__(self, variables: Iterable[str], supported: Iterable[str]):
        self.variables = list(variables)
        self.supported = list(supported)
        super().__init__(
            f"Unsupported variables found in task: {', '.join(self.variables)}. "
            f"Supported variables: {', '.join(self.supported)}"
        )


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------

class UnknownTaskType(AssistKitError):
    """The dispatcher has no handler for a task ``type``."""

    def __init__(self, task_type: object):
        self.task_type = task_type
        super().__init__(f"Unknown task type: {task_type}")


class TaskExecutionError(AssistKitError):
    """A task handler failed while doing its work."""


class StepFailure(TaskExecutionError):
    """A single multi-step step failed under the fail-fast policy.

    ``partial_result`` carries what the steps before it produced.
    """

    def __init__(
        self,
        step_index: int,
        step_name: str,
        cause: BaseException,
        partial_result: "TaskResult | None" = None,
    ):
        self.step_index = step_index
        self.step_name = step_name
        self.cause = cause
        self.partial_result = partial_result
        super().__init__(f"Failed at step {step_index} ({step_name}): {cause}")


class AggregateStepFailure(TaskExecutionError):
    """One or more steps failed in a continue-on-error multi-step task.

    ``partial_result`` carries the files and step results of the steps that
    did succeed, so callers can still record their effects.
    """

    def __init__(
        self,
        failures: List[Tuple[str, str]],
        partial_result: "TaskResult | None" = None,
    ):
        self.failures = failures
        self.partial_result = partial_result
        summary = "; ".join(f"Step {name}: {message}" for name, message in failures)
        super().__init__(f"Multi-step task completed with errors: {summary}")


# ---------------------------------------------------------------------------
# Catalog / project errors
# ---------------------------------------------------------------------------

class CatalogError(AssistKitError):
    """The task catalog could not be loaded or failed validation."""


class ToolNotFound(CatalogError):
    def __init__(self, tool: str | None):
        self.tool = tool
        super().__init__(f"Tool configuration not found for: {tool}")


class ProjectNotFound(CatalogError):
    def __init__(self, project_type: str):
        self.project_type = project_type
        super().__init__(f"Project configuration not found for: {project_type}")


class ProjectValidationError(AssistKitError):
    """The working directory does not look like the selected project type."""

    def __init__(self, project_type: str, issues: List[str]):
        self.project_type = project_type
        self.issues = issues
        super().__init__(
            f"Project validation failed. This doesn't appear to be a valid {project_type} project: "
            + "; ".join(issues)
        )


class ManifestError(AssistKitError):
    """The installation manifest is unreadable or malformed."""


class ProjectAlreadyInitialized(AssistKitError):
    def __init__(self, manifest_path: str):
        self.manifest_path = manifest_path
        super().__init__(
            f"Project is already initialized ({manifest_path}). Use --force to re-initialize "
            "or run 'assist-kit update'."
        )


class ProjectNotInitialized(AssistKitError):
    def __init__(self) -> None:
        super().__init__('No existing configuration found. Run "assist-kit init" first.')


class FetchError(TaskExecutionError):
    """The fetch collaborator could not retrieve a remote file tree."""


class SourceNotFound(FetchError):
    """The requested path does not exist in the fetched repository."""

    def __init__(self, source: str, repository: str):
        self.source = source
        self.repository = repository
        super().__init__(f"Source path {source} not found in repository {repository}")
