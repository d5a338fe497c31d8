"""Placeholder substitution for task definitions.

Supported placeholders are ``{tool}`` and ``{project-type}``. Substitution
walks strings, lists/tuples and mappings (values only, never keys) and always
returns a new tree.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, List, Optional

from assist_kit.errors import UnresolvedPlaceholder, UnsupportedVariable

TOOL_PLACEHOLDER = "{tool}"
PROJECT_TYPE_PLACEHOLDER = "{project-type}"
SUPPORTED_VARIABLES = ("tool", "project-type")

_VARIABLE_PATTERN = re.compile(r"\{([a-zA-Z][a-zA-Z0-9_-]*)\}")


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


def substitute_string(value: str, tool: Optional[str], project_type: Optional[str]) -> str:
    if not isinstance(value, str):
        return value
    return value.replace(TOOL_PLACEHOLDER, tool or "").replace(
        PROJECT_TYPE_PLACEHOLDER, project_type or ""
    )


def _substitute(value: Any, tool: Optional[str], project_type: Optional[str]) -> Any:
    if isinstance(value, str):
        return substitute_string(value, tool, project_type)
    if isinstance(value, dict):
        return {key: _substitute(item, tool, project_type) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute(item, tool, project_type) for item in value]
    if isinstance(value, tuple):
        return tuple(_substitute(item, tool, project_type) for item in value)
    return value


def substitute_variables(task: Any, tool: Optional[str], project_type: Optional[str]) -> Any:
    """Return a copy of ``task`` with ``{tool}`` and ``{project-type}`` replaced.

    ``{project-type}`` with no project type becomes an empty string, since a
    task can be valid without project context. ``{tool}`` with ``tool=None``
    is an error: a tool-specific path or command without an assistant name
    is never what the catalog author meant.

    Args:
        task: Task definition (or any tree of strings, lists and mappings)
        tool: Active tool identifier
        project_type: Active project type identifier, or None

    Returns:
        New tree with placeholders substituted; ``task`` is left untouched.

    Raises:
        UnresolvedPlaceholder: If ``{tool}`` appears and ``tool`` is None.
    """
    if tool is None and any(TOOL_PLACEHOLDER in text for text in _iter_strings(task)):
        raise UnresolvedPlaceholder("tool")
    return _substitute(task, tool, project_type)


def contains_variables(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return TOOL_PLACEHOLDER in value or PROJECT_TYPE_PLACEHOLDER in value


def get_variables_in_string(value: Any) -> List[str]:
    """Return every ``{name}`` token in ``value``, deduplicated, in order of appearance."""
    if not isinstance(value, str):
        return []
    found: List[str] = []
    for name in _VARIABLE_PATTERN.findall(value):
        if name not in found:
            found.append(name)
    return found


def validate_task_variables(task: Any) -> None:
    """Fail with every unsupported placeholder found anywhere in ``task``.

    Raises:
        UnsupportedVariable: Listing all unknown token names at once.
    """
    unsupported: List[str] = []
    for text in _iter_strings(task):
        for name in get_variables_in_string(text):
            if name not in SUPPORTED_VARIABLES and name not in unsupported:
                unsupported.append(name)
    if unsupported:
        raise UnsupportedVariable(unsupported, SUPPORTED_VARIABLES)
