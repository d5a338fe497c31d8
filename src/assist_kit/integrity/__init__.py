"""File integrity tracking for installed files."""

from .hasher import hash_file
from .tracker import (
    PathLocks,
    check_file_changes,
    is_project_initialized,
    track_installed_file,
    write_tracked_file,
)

__all__ = [
    "PathLocks",
    "check_file_changes",
    "hash_file",
    "is_project_initialized",
    "track_installed_file",
    "write_tracked_file",
]
