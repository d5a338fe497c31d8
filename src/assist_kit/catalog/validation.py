"""Catalog and project validation.

Catalog validation collects every problem before failing so an author sees
the whole list in one run.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from assist_kit.catalog.models import (
    ExtendsEntry,
    LiteralEntry,
    ReferenceEntry,
    TaskCatalog,
    TaskEntry,
)
from assist_kit.catalog.substitution import validate_task_variables
from assist_kit.errors import (
    CatalogError,
    ProjectValidationError,
    UnsupportedVariable,
)
from assist_kit.content.filters import validate_filter_config
from assist_kit.content.patterns import validate_patterns

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^https?://.+")
_COPY_TYPES = ("copy-files", "remote-copy-files")


def validate_url(url: object) -> bool:
    return isinstance(url, str) and _URL_PATTERN.match(url) is not None


def task_config_errors(task: Mapping[str, Any]) -> List[str]:
    """Return structural problems in one (resolved or literal) task definition."""
    errors: List[str] = []
    task_type = task.get("type")

    if task_type in _COPY_TYPES and task.get("items") is not None:
        items = task["items"]
        if isinstance(items, list):
            try:
                validate_patterns(items)
            except ValueError as exc:
                errors.append(f"Invalid pattern in {task_type} task: {exc}")
        elif isinstance(items, dict):
            for key, value in items.items():
                if not isinstance(key, str) or not isinstance(value, str):
                    errors.append(
                        f"Invalid item in {task_type} task: keys and values must be strings for renaming"
                    )
                elif any(char in key for char in "*?[{") or key.startswith("/"):
                    errors.append(
                        f"Wildcard patterns not supported in object format (renaming) for {task_type} task. "
                        "Use array format for patterns."
                    )
        else:
            errors.append(f"Invalid items format in {task_type} task: must be array or object")

    if task_type in _COPY_TYPES and task.get("filters"):
        filters = task["filters"]
        if isinstance(filters, list):
            errors.extend(f"{task_type} task: {error}" for error in validate_filter_config(filters))
        else:
            errors.append(f"Invalid filters format in {task_type} task: must be a list")

    if "link" in task and not validate_url(task["link"]):
        errors.append(f"Invalid link URL in {task_type} task: must be a valid HTTP/HTTPS URL")

    try:
        validate_task_variables(task)
    except UnsupportedVariable as exc:
        errors.append(str(exc))
    return errors


def validate_task_config(task: Mapping[str, Any]) -> None:
    errors = task_config_errors(task)
    if errors:
        raise CatalogError("; ".join(errors))


def _entry_errors(
    entry: TaskEntry,
    pool: Dict[str, Dict[str, Any]],
    owner_kind: str,
    owner: str,
    task_id: str,
) -> List[str]:
    where = f"{owner_kind} '{owner}', task '{task_id}'"
    if isinstance(entry, ReferenceEntry):
        if entry.name not in pool:
            return [f"Shared task reference not found in {where}: {entry.reference}"]
        return []
    if isinstance(entry, ExtendsEntry):
        if entry.name not in pool:
            return [f"Extends reference not found in {where}: {entry.reference}"]
        merged = {**pool[entry.name], **entry.overrides}
        return [f"{where}: {error}" for error in task_config_errors(merged)]
    if isinstance(entry, LiteralEntry):
        return [f"{where}: {error}" for error in task_config_errors(entry.definition)]
    return []


def catalog_errors(catalog: TaskCatalog) -> List[str]:
    errors: List[str] = []
    for name, task in catalog.shared_tasks.items():
        errors.extend(f"shared task '{name}': {error}" for error in task_config_errors(task))
    for tool_id, profile in catalog.tools.items():
        for task_id, entry in profile.entries.items():
            errors.extend(_entry_errors(entry, catalog.shared_tasks, "tool", tool_id, task_id))
    for project_id, profile in catalog.projects.items():
        for task_id, entry in profile.entries.items():
            errors.extend(_entry_errors(entry, catalog.shared_tasks, "project", project_id, task_id))
    return errors


def validate_catalog(catalog: TaskCatalog) -> None:
    """Check every reference, extends target and task definition in the catalog.

    Raises:
        CatalogError: Listing every problem found.
    """
    errors = catalog_errors(catalog)
    if errors:
        raise CatalogError("Invalid task catalog:\n  - " + "\n  - ".join(errors))


def validate_project(
    project_type: Optional[str],
    tool: str,
    catalog: TaskCatalog,
    project_root: Path,
) -> List[str]:
    """Check that ``project_root`` looks like a ``project_type`` project.

    Returns:
        Warnings for missing optional files.

    Raises:
        ToolNotFound / ProjectNotFound: Unknown identifiers.
        ProjectValidationError: Listing every missing file or content issue.
    """
    if not project_type:
        logger.info("No project selected - skipping project validation")
        return []

    catalog.tool(tool)
    project = catalog.project(project_type)
    rules = project.validation
    if rules is None:
        raise CatalogError(f"Project validation not configured for {project_type}")

    issues: List[str] = []
    for name in rules.required_files:
        if not (project_root / name).exists():
            issues.append(f"Missing required file: {name}")

    for name, needle in rules.required_content.items():
        path = project_root / name
        if not path.exists():
            issues.append(f"Cannot check content in missing file: {name}")
            continue
        if needle not in path.read_text(encoding="utf-8", errors="replace"):
            issues.append(f"Required content not found in {name}: {needle}")

    warnings = [
        f"Optional file not found: {name}"
        for name in rules.optional_files
        if not (project_root / name).exists()
    ]
    for warning in warnings:
        logger.warning(warning)

    if issues:
        raise ProjectValidationError(project_type, issues)
    return warnings
