"""multi-step: run an ordered list of sub-tasks as one task.

Each step is a single-key mapping ``{step_name: definition}`` where the
definition may be a shared task reference, an ``extends`` directive or an
inline task. Steps are resolved right before they run and executed strictly
in order. Files recorded by earlier steps are visible to later ones through
``deps.tracked_files``.

With ``fail-fast`` (the default) the first failing step aborts the task with
``StepFailure``. Otherwise every step runs and the failures are raised
together as ``AggregateStepFailure``, which carries the partial result.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from assist_kit.catalog.resolver import resolve_task_config
from assist_kit.catalog.validation import validate_task_config
from assist_kit.errors import (
    AggregateStepFailure,
    AssistKitError,
    StepFailure,
    TaskExecutionError,
)
from assist_kit.events import (
    MULTI_STEP_FINISHED,
    STATE_ABORTED,
    STATE_COMPLETED,
    STATE_COMPLETED_WITH_ERRORS,
    STEP_FAILED,
    STEP_STARTED,
    STEP_SUCCEEDED,
    emit,
)
from assist_kit.manifest import TrackedFileRecord
from assist_kit.tasks.base import StepResult, TaskDependencies, TaskResult, TaskType

logger = logging.getLogger(__name__)

SUCCESS_OUTPUT = "Multi-step task completed successfully"
EMPTY_OUTPUT = "No steps to execute"


def split_step(step: Any, index: int) -> Tuple[str, Any]:
    if not isinstance(step, Mapping) or len(step) != 1:
        raise TaskExecutionError(f"Step {index} must be a mapping with exactly one step name")
    name, definition = next(iter(step.items()))
    return str(name), definition


def resolve_step(
    definition: Any,
    step_name: str,
    pool: Optional[Mapping[str, Any]],
    tool: Optional[str],
    project_type: Optional[str],
) -> Dict[str, Any]:
    resolved = resolve_task_config(definition, pool, tool, project_type)
    if not isinstance(resolved, dict):
        raise TaskExecutionError(f"Step {step_name} must be a task definition or shared task reference")
    return {"name": step_name, **resolved}


def validate_step(config: Mapping[str, Any]) -> None:
    if not config.get("type"):
        raise TaskExecutionError("Step must have a type")
    TaskType.parse(config["type"])
    validate_task_config(config)


def execute(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    from assist_kit.tasks.dispatcher import execute_task

    steps = task.get("steps") or []
    fail_fast = task.get("fail-fast", True) is not False
    task_name = str(task.get("name") or task.get("id") or "multi-step")

    if not steps:
        return TaskResult(output=EMPTY_OUTPUT)

    files: List[TrackedFileRecord] = []
    step_results: List[StepResult] = []
    failures: List[Tuple[str, str]] = []
    total = len(steps)

    def partial_result() -> TaskResult:
        return TaskResult(
            output=f"{len(step_results)} of {total} steps completed",
            files=list(files),
            step_results=list(step_results),
        )

    for index, step in enumerate(steps, start=1):
        step_name = f"step-{index}"
        try:
            step_name, definition = split_step(step, index)
            emit(deps.events, STEP_STARTED, step_name, task=task_name, index=index, total=total)
            config = resolve_step(definition, step_name, deps.shared_tasks, tool, project_type)
            validate_step(config)
            result = execute_task(config, tool, project_type, verbose, deps.with_tracked_files(files))
        except Exception as e:
            if isinstance(e, (StepFailure, AggregateStepFailure)) and e.partial_result is not None:
                files.extend(e.partial_result.files)
            if not isinstance(e, AssistKitError):
                logger.debug("Step %s raised %s", step_name, type(e).__name__, exc_info=True)
            emit(deps.events, STEP_FAILED, step_name, str(e), task=task_name, index=index, total=total)
            if fail_fast:
                emit(deps.events, MULTI_STEP_FINISHED, task_name, state=STATE_ABORTED)
                raise StepFailure(index, step_name, e, partial_result=partial_result()) from e
            failures.append((step_name, str(e)))
            continue

        files.extend(result.files)
        step_results.append(StepResult(step=step_name, result=result))
        emit(
            deps.events,
            STEP_SUCCEEDED,
            step_name,
            result.output or "Step completed successfully",
            task=task_name,
            index=index,
            total=total,
        )

    if failures:
        emit(deps.events, MULTI_STEP_FINISHED, task_name, state=STATE_COMPLETED_WITH_ERRORS)
        raise AggregateStepFailure(failures, partial_result=partial_result())

    emit(deps.events, MULTI_STEP_FINISHED, task_name, state=STATE_COMPLETED)
    output = "\n".join(r.result.output for r in step_results) if verbose else SUCCESS_OUTPUT
    return TaskResult(output=output, files=files, step_results=step_results)
