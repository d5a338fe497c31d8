"""Process-invocation collaborator for package-install tasks."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from assist_kit.errors import TaskExecutionError
from assist_kit.manifest import PackageInfo, utc_now

logger = logging.getLogger(__name__)

VERSION_TIMEOUT_SECONDS = 10
INSTALL_TIMEOUT_SECONDS = 600

_TREE_VERSION = re.compile(r"└── [^@]+@(\S+)")
_LIST_TYPES = ("npm", "yarn", "pnpm")

Runner = Callable[..., subprocess.CompletedProcess]
PackageSpec = Union[str, Mapping[str, Any]]


def default_version_command(name: str, package_type: str) -> str:
    if package_type == "npx":
        return f"npx {name} --version"
    if package_type in _LIST_TYPES:
        return f"{package_type} list {name}"
    return f"{name} --version"


def parse_version_output(output: Optional[str], package_type: str) -> str:
    """Extract a version string from a version command's stdout.

    Package-manager ``list`` output is parsed for ``└── name@version``; any
    other type is expected to print just the version.
    """
    if not output:
        return "unknown"
    if package_type in _LIST_TYPES:
        match = _TREE_VERSION.search(output)
        return match.group(1) if match else "unknown"
    return output.strip()


def run_version_command(
    spec: PackageSpec,
    cwd: Optional[Path] = None,
    runner: Runner = subprocess.run,
    timeout: int = VERSION_TIMEOUT_SECONDS,
) -> PackageInfo:
    """Look up the installed version of a package.

    Never raises: any failure yields ``version="unknown"`` and ``error``.
    """
    if isinstance(spec, str):
        spec = {"name": spec, "type": "npx"}
    name = str(spec.get("name", ""))
    package_type = str(spec.get("type") or "npx")
    command = spec.get("version-command") or spec.get("versionCommand") or default_version_command(
        name, package_type
    )

    try:
        completed = runner(
            shlex.split(command),
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        logger.debug("Could not get version for %s: %s", name, e)
        return PackageInfo(name=name, version="unknown", last_updated=utc_now(), error=str(e))

    version = parse_version_output(completed.stdout, package_type)
    logger.debug("Found version %s for %s", version, name)
    return PackageInfo(name=name, version=version, last_updated=utc_now())


def run_install_command(
    command: str,
    cwd: Optional[Path] = None,
    runner: Runner = subprocess.run,
    timeout: int = INSTALL_TIMEOUT_SECONDS,
) -> str:
    """Run an install command and return its stdout.

    Raises:
        TaskExecutionError: Command missing, failed or timed out
    """
    if not command or not str(command).strip():
        raise TaskExecutionError("Package installation failed: no install-command configured")
    try:
        completed = runner(
            shlex.split(command),
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or e.stdout or "").strip() or f"exit code {e.returncode}"
        raise TaskExecutionError(f"Package installation failed: {detail}") from e
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        raise TaskExecutionError(f"Package installation failed: {e}") from e
    return completed.stdout or ""
