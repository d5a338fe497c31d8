"""copy-files: copy catalog assets or local files into the project."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from assist_kit.content.copying import copy_items
from assist_kit.events import WARNING, emit
from assist_kit.fetch import FetchOptions
from assist_kit.tasks.base import TaskDependencies, TaskResult, require

logger = logging.getLogger(__name__)

ASSETS_PREFIX = "assets/"


def execute(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    """Copy ``items`` from ``source`` to ``target`` and track every written file.

    Sources under ``assets/`` come from the upstream assist-kit repository at
    the tag matching the running version (falling back to the configured
    branch); any other source is a path relative to the project root.
    """
    source = str(require(task, "source"))
    target = str(require(task, "target"))
    items = task.get("items") or None
    filters = task.get("filters") or ()
    target_dir = deps.resolve(target)

    if source.startswith(ASSETS_PREFIX):
        result = deps.fetcher.fetch_tree(
            source,
            target_dir,
            FetchOptions(
                repository=deps.settings.repo_url,
                ref=deps.tool_version,
                fallback_ref=deps.settings.branch,
                items=items,
                filters=filters,
            ),
        )
        written, missing = result.files, result.missing
    else:
        missing = []
        written = copy_items(deps.resolve(source), target_dir, items, filters, on_missing=missing.append)

    for name in missing:
        emit(deps.events, WARNING, name, f"{name} not found in {source}")

    files = deps.track(written)
    if verbose:
        logger.info("Copied %d file(s) from %s to %s", len(files), source, target)
    return TaskResult(output=f"Copied {len(files)} files to {target}", files=files)
