"""Task catalog: tools, projects, shared tasks and their resolution."""

from .loader import catalog_from_dict, load_catalog
from .models import (
    ExtendsEntry,
    LiteralEntry,
    ProjectProfile,
    ProjectValidation,
    ReferenceEntry,
    TaskCatalog,
    TaskEntry,
    ToolProfile,
    is_reference,
    parse_task_entry,
)
from .resolver import (
    get_available_project_types,
    get_available_tools,
    get_tasks,
    resolve_extends,
    resolve_reference,
    resolve_task_config,
)
from .substitution import (
    contains_variables,
    get_variables_in_string,
    substitute_variables,
    validate_task_variables,
)
from .validation import validate_catalog, validate_project, validate_task_config

__all__ = [
    "ExtendsEntry",
    "LiteralEntry",
    "ProjectProfile",
    "ProjectValidation",
    "ReferenceEntry",
    "TaskCatalog",
    "TaskEntry",
    "ToolProfile",
    "catalog_from_dict",
    "contains_variables",
    "get_available_project_types",
    "get_available_tools",
    "get_tasks",
    "get_variables_in_string",
    "is_reference",
    "load_catalog",
    "parse_task_entry",
    "resolve_extends",
    "resolve_reference",
    "resolve_task_config",
    "substitute_variables",
    "validate_catalog",
    "validate_project",
    "validate_task_config",
]
