"""package-install: run an install command and record the installed version."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from assist_kit.errors import TaskExecutionError
from assist_kit.tasks.base import TaskDependencies, TaskResult, require

logger = logging.getLogger(__name__)


def execute(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    package = require(task, "package")
    if not isinstance(package, Mapping) or not package.get("name"):
        raise TaskExecutionError("package-install task needs a 'package' mapping with a 'name'")

    command = package.get("install-command")
    logger.debug("Installing package %s with %r", package["name"], command)
    output = deps.install_runner(command, cwd=deps.project_root)

    package_info = deps.version_runner(package, cwd=deps.project_root)
    if package_info.error:
        logger.warning("Could not determine version of %s: %s", package_info.name, package_info.error)
    if verbose:
        logger.info("Installed %s %s", package_info.name, package_info.version)
    return TaskResult(output=output or "Package installed successfully", package_info=package_info)
