"""Content filters applied to text files written by copy tasks."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from assist_kit.errors import TaskExecutionError
from assist_kit.content.patterns import compile_flags

logger = logging.getLogger(__name__)

FRONTMATTER_REMOVAL = "frontmatter-removal"
EXTRACT_CONTENT = "extract-content"
LINE_RANGE = "line-range"
REMOVE_LINES = "remove-lines"

FILTER_TYPES = (FRONTMATTER_REMOVAL, EXTRACT_CONTENT, LINE_RANGE, REMOVE_LINES)

TEXT_EXTENSIONS = frozenset(
    {
        ".md", ".txt", ".yml", ".yaml", ".json", ".js", ".ts", ".py", ".php",
        ".rb", ".go", ".rs", ".java", ".c", ".cpp", ".h", ".hpp",
    }
)

_FRONTMATTER = re.compile(r"^---\n.*?\n---\s*\n?", re.DOTALL)


def remove_frontmatter(content: str) -> str:
    return _FRONTMATTER.sub("", content, count=1)


def extract_content(content: str, pattern: str, flags: str = "", group: int = 0) -> str:
    """Return the trimmed match group, or the original content when nothing matches."""
    try:
        regex = re.compile(pattern, compile_flags(flags))
    except re.error as exc:
        raise TaskExecutionError(f"Invalid regex pattern: {pattern} - {exc}") from exc
    match = regex.search(content)
    if match is None:
        return content
    try:
        value = match.group(group)
    except IndexError:
        return content
    return value.strip() if value is not None else content


def extract_line_range(content: str, start: int, end: int) -> str:
    lines = content.split("\n")
    start_index = max(0, start - 1)
    end_index = min(len(lines), end)
    if start_index >= end_index:
        return ""
    return "\n".join(lines[start_index:end_index])


def remove_lines(content: str, pattern: str, flags: str = "") -> str:
    try:
        regex = re.compile(pattern, compile_flags(flags))
    except re.error as exc:
        raise TaskExecutionError(f"Invalid regex pattern: {pattern} - {exc}") from exc
    return "\n".join(line for line in content.split("\n") if not regex.search(line))


def validate_filter_config(filters: Sequence[Mapping[str, Any]]) -> List[str]:
    """Return every problem in a filter list (empty list when valid)."""
    errors: List[str] = []
    for index, spec in enumerate(filters, start=1):
        filter_type = spec.get("type")
        if filter_type not in FILTER_TYPES:
            errors.append(
                f"Filter {index}: Invalid filter type '{filter_type}'. "
                f"Supported types: {', '.join(FILTER_TYPES)}"
            )
        if filter_type in (EXTRACT_CONTENT, REMOVE_LINES) and not spec.get("pattern"):
            errors.append(
                f"Filter {index}: Missing required parameter 'pattern' for filter type '{filter_type}'"
            )
        if filter_type == LINE_RANGE:
            start, end = spec.get("start"), spec.get("end")
            if start is None or end is None:
                errors.append(
                    f"Filter {index}: Missing required parameters 'start' and 'end' for filter type 'line-range'"
                )
            elif start > end:
                errors.append(
                    f"Filter {index}: Line range start ({start}) must be less than or equal to end ({end})"
                )
        if spec.get("pattern"):
            try:
                re.compile(spec["pattern"], compile_flags(spec.get("flags")))
            except re.error as exc:
                errors.append(f"Filter {index}: Invalid regex pattern '{spec['pattern']}' - {exc}")
    return errors


def should_process_file(path: Path | str) -> bool:
    return Path(path).suffix.lower() in TEXT_EXTENSIONS


def apply_filters(content: str, filters: Sequence[Mapping[str, Any]]) -> str:
    """Run ``content`` through each filter in order."""
    processed = content
    for spec in filters:
        filter_type = spec.get("type")
        if filter_type == FRONTMATTER_REMOVAL:
            processed = remove_frontmatter(processed)
        elif filter_type == EXTRACT_CONTENT:
            processed = extract_content(
                processed, spec["pattern"], spec.get("flags", ""), int(spec.get("group", 0))
            )
        elif filter_type == LINE_RANGE:
            processed = extract_line_range(processed, int(spec["start"]), int(spec["end"]))
        elif filter_type == REMOVE_LINES:
            processed = remove_lines(processed, spec["pattern"], spec.get("flags", ""))
        else:
            raise TaskExecutionError(f"Unknown filter type: {filter_type}")
    return processed


def filter_file(path: Path, filters: Sequence[Mapping[str, Any]]) -> bool:
    """Apply filters to a file in place. Returns True when the file was rewritten."""
    if not filters or not should_process_file(path):
        return False
    try:
        original = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise TaskExecutionError(f"Cannot apply filters to {path.name}: not UTF-8 text ({e.reason})") from e
    processed = apply_filters(original, filters)
    if processed == original:
        return False
    path.write_text(processed, encoding="utf-8")
    logger.debug("Filtered %s through %d filter(s)", path, len(filters))
    return True

