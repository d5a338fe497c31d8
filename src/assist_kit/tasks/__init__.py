"""Task types, the dispatcher and the handler for each task type."""

from .base import StepResult, TaskDependencies, TaskResult, TaskType
from .dispatcher import HANDLERS, execute_task, get_handler, is_task_type_supported

__all__ = [
    "HANDLERS",
    "StepResult",
    "TaskDependencies",
    "TaskResult",
    "TaskType",
    "execute_task",
    "get_handler",
    "is_task_type_supported",
]
