"""agents-md: maintain the assist-kit section of ``AGENTS.md``.

Only the region between the start and end markers belongs to assist-kit.
Everything outside it is user content and is preserved across runs.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Mapping, Optional

from assist_kit.errors import SourceNotFound
from assist_kit.fetch import FetchOptions
from assist_kit.integrity.tracker import write_tracked_file
from assist_kit.tasks.base import TaskDependencies, TaskResult

logger = logging.getLogger(__name__)

AGENTS_MD = "AGENTS.md"
SECTION_START = "<!-- Assist Kit Start -->"
SECTION_END = "<!-- Assist Kit End -->"
AI_DIR_PREFIX = ".ai/"

LINK_MARKDOWN = "markdown"
LINK_AT = "@"

_SECTION = re.compile(re.escape(SECTION_START) + r".*?" + re.escape(SECTION_END), re.DOTALL)


def render_section(ai_files: Iterable[str], link_type: str = LINK_MARKDOWN) -> str:
    files = list(ai_files)
    if not files:
        return f"{SECTION_START}\n\n{SECTION_END}"

    if link_type == LINK_AT:
        references = "\n".join(f"@{path}" for path in files)
    else:
        references = "\n".join(f"- [{path}]({path})" for path in files)

    return (
        f"{SECTION_START}\n"
        "## Project-Specific AI Development Files\n\n"
        "This project includes the following AI development files. "
        "**Please read and include these files in your context when providing assistance:**\n\n"
        f"{references}\n\n"
        "**Instructions for AI Agents:**\n"
        "- Read each of the above files to understand the project's specific requirements\n"
        "- Apply the guidelines, standards, and patterns defined in these files\n"
        "- Reference these files when making recommendations or suggestions\n"
        "- Ensure all code and suggestions align with the project's established patterns\n\n"
        f"{SECTION_END}"
    )


def strip_section(content: str) -> str:
    """Remove every assist-kit section and surrounding whitespace."""
    return _SECTION.sub("", content).strip()


def merge_section(existing: str, section: str) -> str:
    """Replace the assist-kit section of ``existing`` with ``section``.

    The new section is always appended after the user's content.
    """
    user_content = strip_section(existing)
    if user_content:
        return f"{user_content}\n\n{section}"
    return section


def ai_file_paths(tracked: Iterable[Any]) -> List[str]:
    paths: List[str] = []
    for record in tracked:
        path = getattr(record, "path", None)
        if path and path.startswith(AI_DIR_PREFIX) and path not in paths:
            paths.append(path)
    return paths


def _fetch_template(source: str, deps: TaskDependencies, target_dir) -> bool:
    try:
        result = deps.fetcher.fetch_tree(
            source,
            target_dir,
            FetchOptions(
                repository=deps.settings.repo_url,
                ref=deps.tool_version,
                fallback_ref=deps.settings.branch,
                items=[AGENTS_MD],
            ),
        )
    except SourceNotFound as e:
        logger.debug("No AGENTS.md template available: %s", e)
        return False
    return bool(result.files)


def execute(
    task: Mapping[str, Any],
    tool: Optional[str],
    project_type: Optional[str],
    verbose: bool,
    deps: TaskDependencies,
) -> TaskResult:
    """Create or update ``AGENTS.md`` with references to every tracked ``.ai/`` file.

    When the file does not exist yet, the template at ``source`` is fetched;
    if there is none, an empty file is started. A file that existed before
    the run is recorded with ``pre_existing=True`` so removal can revert it
    instead of deleting it.
    """
    target_dir = deps.resolve(str(task.get("target") or "."))
    agents_path = target_dir / AGENTS_MD
    pre_existing = agents_path.exists()

    if not pre_existing and task.get("source"):
        _fetch_template(str(task["source"]), deps, target_dir)

    existing = agents_path.read_text(encoding="utf-8") if agents_path.exists() else ""
    ai_files = ai_file_paths(deps.tracked_files)
    link_type = task.get("link-type") or LINK_MARKDOWN

    record = write_tracked_file(agents_path, merge_section(existing, render_section(ai_files, link_type)), deps)
    if pre_existing:
        record = record.model_copy(update={"pre_existing": True})

    if verbose:
        logger.info("AGENTS.md updated with %s references to %d file(s)", link_type, len(ai_files))
    return TaskResult(output=f"AGENTS.md updated with {len(ai_files)} file references", files=[record])
