"""remote-copy-files: copy files from an arbitrary git repository."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from assist_kit.catalog.substitution import substitute_string
from assist_kit.events import WARNING, emit
from assist_kit.fetch import FetchOptions
from assist_kit.tasks.base import TaskDependencies, TaskResult, require

logger = logging.getLogger(__name__)


def execute(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    repository = str(require(task, "repository"))
    source = substitute_string(str(task.get("source") or "."), tool, project_type)
    target = str(require(task, "target"))

    result = deps.fetcher.fetch_tree(
        source,
        deps.resolve(target),
        FetchOptions(
            repository=repository,
            ref=task.get("ref") or task.get("branch"),
            items=task.get("items") or None,
            filters=task.get("filters") or (),
        ),
    )
    for name in result.missing:
        emit(deps.events, WARNING, name, f"{name} not found in {repository}/{source}")

    files = deps.track(result.files)
    if verbose:
        logger.info("Copied %d file(s) from %s", len(files), repository)
    return TaskResult(output=f"Successfully copied {len(files)} files from remote repository", files=files)
