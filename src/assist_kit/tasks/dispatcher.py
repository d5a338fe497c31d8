"""Route a resolved task to the handler for its ``type``."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from assist_kit.errors import UnknownTaskType
from assist_kit.tasks import agents_md, copy_files, multi_step, package_install, remote_copy_files
from assist_kit.tasks.base import TaskDependencies, TaskResult, TaskType

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any], Optional[str], Optional[str], bool, TaskDependencies], TaskResult]

HANDLERS: Dict[TaskType, Handler] = {
    TaskType.COPY_FILES: copy_files.execute,
    TaskType.PACKAGE_INSTALL: package_install.execute,
    TaskType.REMOTE_COPY_FILES: remote_copy_files.execute,
    TaskType.AGENTS_MD: agents_md.execute,
    TaskType.MULTI_STEP: multi_step.execute,
}


def get_handler(task_type: object) -> Handler:
    """Raises UnknownTaskType for anything outside ``TaskType``."""
    return HANDLERS[TaskType.parse(task_type)]


def is_task_type_supported(task_type: object) -> bool:
    try:
        TaskType.parse(task_type)
    except UnknownTaskType:
        return False
    return True


def execute_task(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    """Execute one resolved task.

    Raises:
        UnknownTaskType: ``task["type"]`` names no known task type
        AssistKitError: Whatever the handler raises
    """
    handler = get_handler(task.get("type"))
    logger.debug("Executing %s task %s", task.get("type"), task.get("id") or task.get("name") or "")
    return handler(task, tool, project_type, verbose, deps)
