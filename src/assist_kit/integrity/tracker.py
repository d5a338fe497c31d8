"""Content-hash ledger for files written by tasks.

Every file a task writes is recorded with the SHA256 of its bytes right after
the write. Later runs compare the recorded hash with the file on disk to tell
"changed" from "unchanged"; there is no diffing or merging of user edits.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, List, Union

from assist_kit.errors import ManifestError
from assist_kit.events import FILE_TRACKED, emit
from assist_kit.integrity.hasher import hash_file
from assist_kit.manifest import ChangedFileRecord, InstallationManifest, TrackedFileRecord, read_manifest

if TYPE_CHECKING:
    from assist_kit.tasks.base import TaskDependencies

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PathLocks:
    """Registry handing out one lock per resolved path.

    Writes to the same path are serialized; writes to different paths never
    wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Path, threading.Lock] = {}

    def for_path(self, path: Path) -> threading.Lock:
        key = Path(os.path.abspath(path))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        with self.for_path(path):
            yield

    def __len__(self) -> int:
        return len(self._locks)


def absolute_path(path: PathLike, project_root: Path) -> Path:
    candidate = Path(path)
    return candidate if candidate.is_absolute() else project_root / candidate


def relative_path(path: PathLike, project_root: Path) -> str:
    """Manifest form of ``path``: POSIX, relative to the project root when inside it."""
    candidate = absolute_path(path, project_root)
    try:
        return Path(os.path.abspath(candidate)).relative_to(os.path.abspath(project_root)).as_posix()
    except ValueError:
        return candidate.as_posix()


def track_installed_file(path: PathLike, deps: "TaskDependencies") -> TrackedFileRecord:
    """Hash a file that a task has just written.

    Raises:
        FileNotFoundError / PermissionError / OSError: The file cannot be read
    """
    target = absolute_path(path, deps.project_root)
    with deps.path_locks.hold(target):
        digest = hash_file(target)
    record = TrackedFileRecord(path=relative_path(target, deps.project_root), original_hash=digest)
    emit(deps.events, FILE_TRACKED, record.path, hash=digest)
    return record


def write_tracked_file(path: PathLike, content: Union[str, bytes], deps: "TaskDependencies") -> TrackedFileRecord:
    """Write ``content`` and hash it while holding the path's lock."""
    target = absolute_path(path, deps.project_root)
    data = content.encode("utf-8") if isinstance(content, str) else content
    with deps.path_locks.hold(target):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        digest = hash_file(target)
    record = TrackedFileRecord(path=relative_path(target, deps.project_root), original_hash=digest)
    emit(deps.events, FILE_TRACKED, record.path, hash=digest)
    return record


def check_file_changes(manifest: InstallationManifest, deps: "TaskDependencies") -> List[ChangedFileRecord]:
    """Compare every tracked file with its recorded hash.

    Unchanged files are omitted. A file that cannot be read is reported with
    ``current_hash=None`` and the read error; this function never raises for
    an individual file.
    """
    changes: List[ChangedFileRecord] = []
    for record in manifest.files:
        target = absolute_path(record.path, deps.project_root)
        try:
            current = hash_file(target)
        except OSError as e:
            logger.debug("Could not hash %s: %s", target, e)
            changes.append(
                ChangedFileRecord(
                    path=record.path,
                    original_hash=record.original_hash,
                    current_hash=None,
                    error=str(e),
                )
            )
            continue
        if current != record.original_hash:
            changes.append(
                ChangedFileRecord(path=record.path, original_hash=record.original_hash, current_hash=current)
            )
    return changes


def is_project_initialized(deps: "TaskDependencies") -> bool:
    """True when the project root holds a readable installation manifest."""
    try:
        return read_manifest(deps.project_root, deps.settings.manifest_filename) is not None
    except ManifestError as e:
        logger.warning("Ignoring unreadable manifest: %s", e)
        return False
