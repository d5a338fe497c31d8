"""Copy selected entries of a source tree into a target directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from assist_kit.content.filters import filter_file
from assist_kit.content.patterns import expand_patterns

logger = logging.getLogger(__name__)

Items = Union[Sequence[str], Mapping[str, str], None]


def _files_under(path: Path) -> List[Path]:
    if path.is_file():
        return [path]
    return sorted(p for p in path.rglob("*") if p.is_file())


def select_items(source_dir: Path, items: Items) -> tuple[List[str], Dict[str, str]]:
    """Return the names to copy and the rename map.

    - list:    names, globs and ``/regex/`` patterns, expanded recursively
    - mapping: ``{source_name: target_name}``; no pattern support
    - None:    every top-level entry of ``source_dir``
    """
    if isinstance(items, Mapping):
        return list(items.keys()), {str(k): str(v) for k, v in items.items()}
    if items:
        return expand_patterns(list(items), source_dir, recursive=True), {}
    return sorted(entry.name for entry in source_dir.iterdir()), {}


def copy_items(
    source: Path,
    target: Path,
    items: Items = None,
    filters: Optional[Sequence[Mapping[str, Any]]] = None,
    on_missing: Optional[Callable[[str], None]] = None,
) -> List[Path]:
    """Copy ``items`` from ``source`` into ``target``.

    A file ``source`` is copied into ``target`` (or onto it, when ``target``
    is not an existing directory). Directories are copied recursively and
    merged into existing ones.

    Returns:
        Every file written, as paths under ``target``
    """
    if source.is_file():
        destination = target / source.name if target.is_dir() else target
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        if filters:
            filter_file(destination, filters)
        return [destination]

    if not source.is_dir():
        raise FileNotFoundError(f"Source directory not found: {source}")

    target.mkdir(parents=True, exist_ok=True)
    names, renames = select_items(source, items)

    written: List[Path] = []
    for name in names:
        source_item = source / name
        if not source_item.exists():
            logger.warning("%s not found in source directory %s", name, source)
            if on_missing is not None:
                on_missing(name)
            continue

        target_item = target / renames.get(name, name)
        if source_item.is_dir():
            shutil.copytree(source_item, target_item, dirs_exist_ok=True)
            copied = [target_item / p.relative_to(source_item) for p in _files_under(source_item)]
        else:
            target_item.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_item, target_item)
            copied = [target_item]

        if filters:
            for path in copied:
                filter_file(path, filters)
        written.extend(copied)
    return written
