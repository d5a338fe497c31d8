"""Shared task reference and ``extends`` resolution.

Resolution order for one task-list slot:
1. ``"@shared_tasks.<name>"``            -- copy of the pool entry
2. ``{extends: "@shared_tasks.<name>"}`` -- pool entry shallow-merged with overrides
3. anything else                         -- the literal definition

The result is then passed through placeholder substitution. Every call
returns fresh structures; the catalog itself is never mutated.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from assist_kit.catalog.models import (
    REFERENCE_PREFIX,
    ExtendsEntry,
    LiteralEntry,
    ReferenceEntry,
    TaskCatalog,
    TaskEntry,
    parse_reference,
)
from assist_kit.catalog.substitution import substitute_variables, validate_task_variables
from assist_kit.errors import ReferenceNotFound

logger = logging.getLogger(__name__)

TASK_SOURCE_TOOL = "tool"
TASK_SOURCE_PROJECT = "project"


def _lookup(reference: str, name: str, pool: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not pool or name not in pool:
        raise ReferenceNotFound(reference)
    return copy.deepcopy(dict(pool[name]))


def resolve_reference(ref: Any, pool: Optional[Mapping[str, Any]]) -> Any:
    """Resolve a shared task reference against the pool.

    Non-reference input is returned unchanged. No fuzzy matching and no
    default fallback.

    Raises:
        ReferenceNotFound: If the referenced name is absent from the pool.
        InvalidReferenceSyntax: If a ``@shared_tasks.`` string is malformed.
    """
    if isinstance(ref, ReferenceEntry):
        return _lookup(ref.reference, ref.name, pool)
    if isinstance(ref, str) and ref.startswith(REFERENCE_PREFIX):
        return _lookup(ref, parse_reference(ref), pool)
    return ref


def resolve_extends(defn: Any, pool: Optional[Mapping[str, Any]]) -> Any:
    """Merge an ``extends`` directive with its base shared task.

    The merge is shallow: an override key replaces the base value entirely,
    including nested mappings such as ``package``. Keys the override does not
    set keep the base value.
    """
    if isinstance(defn, ExtendsEntry):
        base = _lookup(defn.reference, defn.name, pool)
        base.update(copy.deepcopy(defn.overrides))
        return base
    if not isinstance(defn, Mapping) or "extends" not in defn:
        return defn
    reference = defn["extends"]
    base = _lookup(str(reference), parse_reference(reference), pool)
    overrides = {key: copy.deepcopy(value) for key, value in defn.items() if key != "extends"}
    return {**base, **overrides}


def resolve_task_config(
    defn: Any,
    pool: Optional[Mapping[str, Any]],
    tool: Optional[str],
    project_type: Optional[str],
) -> Any:
    """Single entry point: reference/extends resolution, then substitution.

    Idempotent: feeding the output back in returns an equal structure.

    Raises:
        ReferenceNotFound: Referenced shared task is missing.
        InvalidReferenceSyntax: A string slot is not a well-formed reference.
        UnsupportedVariable: The definition uses unknown placeholders.
        UnresolvedPlaceholder: ``{tool}`` is used and ``tool`` is None.
    """
    if isinstance(defn, ReferenceEntry):
        resolved = resolve_reference(defn, pool)
    elif isinstance(defn, str):
        # A string in a task slot is only ever a reference.
        resolved = _lookup(defn, parse_reference(defn), pool)
    elif isinstance(defn, ExtendsEntry) or (isinstance(defn, Mapping) and "extends" in defn):
        resolved = resolve_extends(defn, pool)
    elif isinstance(defn, LiteralEntry):
        resolved = copy.deepcopy(defn.definition)
    elif isinstance(defn, Mapping):
        resolved = copy.deepcopy(dict(defn))
    else:
        return defn

    validate_task_variables(resolved)
    return substitute_variables(resolved, tool, project_type)


def _resolve_entries(
    entries: Dict[str, TaskEntry],
    catalog: TaskCatalog,
    tool: str,
    project_type: Optional[str],
    source: str,
) -> Dict[str, Dict[str, Any]]:
    resolved: Dict[str, Dict[str, Any]] = {}
    for task_id, entry in entries.items():
        task = resolve_task_config(entry, catalog.shared_tasks, tool, project_type)
        if source == TASK_SOURCE_TOOL and task.get("requires-project") and not project_type:
            logger.debug("Skipping task %s: requires a project type", task_id)
            continue
        resolved[task_id] = {**task, "id": task_id, "taskSource": source}
    return resolved


def get_tasks(
    catalog: TaskCatalog,
    tool: str,
    project_type: Optional[str],
) -> Dict[str, Dict[str, Any]]:
    """Return every resolved task available for a tool / project combination.

    Tool tasks come first; project tasks (only when a project type is
    selected) follow and replace tool tasks with the same id.

    Raises:
        ToolNotFound: If ``tool`` is not in the catalog.
        ProjectNotFound: If ``project_type`` is set but unknown.
    """
    tool_profile = catalog.tool(tool)
    tasks = _resolve_entries(tool_profile.entries, catalog, tool, project_type, TASK_SOURCE_TOOL)
    if project_type:
        project_profile = catalog.project(project_type)
        tasks.update(
            _resolve_entries(project_profile.entries, catalog, tool, project_type, TASK_SOURCE_PROJECT)
        )
    return tasks


def get_available_tools(catalog: TaskCatalog) -> List[str]:
    return list(catalog.tools.keys())


def get_available_project_types(tool: str, catalog: TaskCatalog) -> List[str]:
    """Project types a tool supports.

    A tool that lists no ``project-validation`` supports every catalog project.
    """
    profile = catalog.tool(tool)
    if profile.project_validation:
        return list(profile.project_validation.keys())
    return list(catalog.projects.keys())
