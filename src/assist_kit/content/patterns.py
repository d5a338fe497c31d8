"""Item pattern expansion for copy tasks.

An ``items`` list may mix three kinds of entries:
- plain names          (``"rules.md"``, ``"docs/intro.md"``)
- glob patterns        (``"*.md"``, ``"**/*.mdc"``) expanded with ``Path.glob``
- regex patterns       (``"/^rules-.*\\.md$/i"``) matched against relative paths
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

_REGEX_LITERAL = re.compile(r"^/(.*)/([gimsuy]*)$", re.DOTALL)
_GLOB_CHARS = ("*", "?", "[")

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


def compile_flags(flags: str | None) -> int:
    """Translate JS-style regex flag letters into ``re`` flags (g, u, y are no-ops)."""
    value = 0
    for letter in flags or "":
        value |= _FLAG_MAP.get(letter, 0)
    return value


def is_regex_pattern(pattern: str) -> bool:
    return pattern.startswith("/") and len(pattern) > 1 and pattern.rfind("/") > 0


def is_glob_pattern(pattern: str) -> bool:
    return any(char in pattern for char in _GLOB_CHARS)


def parse_regex_pattern(pattern: str) -> re.Pattern[str]:
    match = _REGEX_LITERAL.match(pattern)
    if match is None:
        raise ValueError(f"Invalid regex pattern: {pattern}. Must be in format /pattern/flags")
    try:
        return re.compile(match.group(1), compile_flags(match.group(2)))
    except re.error as exc:
        raise ValueError(f"Invalid regex pattern: {pattern}. {exc}") from exc


def list_files(source_dir: Path, recursive: bool = True) -> List[str]:
    """Relative POSIX paths of every file under ``source_dir`` (sorted)."""
    if not source_dir.is_dir():
        return []
    iterator = source_dir.rglob("*") if recursive else source_dir.iterdir()
    return sorted(path.relative_to(source_dir).as_posix() for path in iterator if path.is_file())


def expand_patterns(patterns: Iterable[str], source_dir: Path, recursive: bool = True) -> List[str]:
    """Expand item patterns into matching relative paths, preserving first-seen order.

    Plain names are kept even when they name a directory, so a copy task can
    copy a whole subtree by name.
    """
    all_files = list_files(source_dir, recursive)
    matches: List[str] = []

    def _add(item: str) -> None:
        if item not in matches:
            matches.append(item)

    for pattern in patterns:
        if not isinstance(pattern, str):
            raise ValueError(f"Invalid pattern: {pattern!r}. Must be a string.")
        if is_regex_pattern(pattern):
            regex = parse_regex_pattern(pattern)
            for file in all_files:
                if regex.search(file):
                    _add(file)
        elif is_glob_pattern(pattern):
            for path in sorted(source_dir.glob(pattern)):
                if path.is_file():
                    _add(path.relative_to(source_dir).as_posix())
        elif (source_dir / pattern).exists():
            _add(pattern)
    return matches


def validate_patterns(patterns: Iterable[object]) -> None:
    """Raise ValueError for the first malformed pattern."""
    for pattern in patterns:
        if not isinstance(pattern, str):
            raise ValueError(f"Invalid pattern: {pattern!r}. Must be a string.")
        if is_regex_pattern(pattern):
            parse_regex_pattern(pattern)
