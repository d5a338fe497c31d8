"""Tests for file hashing and change detection."""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path

import pytest

from assist_kit.events import FILE_TRACKED
from assist_kit.integrity.hasher import hash_bytes, hash_file
from assist_kit.integrity.tracker import (
    PathLocks,
    check_file_changes,
    is_project_initialized,
    relative_path,
    track_installed_file,
    write_tracked_file,
)
from assist_kit.manifest import InstallationManifest, write_manifest
from tests.utils import write


def _manifest(*records) -> InstallationManifest:
    return InstallationManifest.build(
        tool="claude",
        project_type=None,
        task_preferences={},
        files=records,
        packages={},
        tool_version="1.0.0",
    )


class TestHasher:
    def test_hash_is_sha256_of_bytes(self, tmp_path: Path):
        path = write(tmp_path / "a.md", "hello\n")
        assert hash_file(path) == hashlib.sha256(b"hello\n").hexdigest()
        assert hash_bytes(b"hello\n") == hash_file(path)

    def test_hash_is_deterministic(self, tmp_path: Path):
        first = write(tmp_path / "a.md", "x" * 20000)
        second = write(tmp_path / "b.md", "x" * 20000)
        assert hash_file(first) == hash_file(second)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            hash_file(tmp_path / "absent.md")


class TestTracking:
    def test_track_installed_file(self, deps, project: Path, sink):
        write(project / ".ai" / "rules.md", "rules")
        record = track_installed_file(".ai/rules.md", deps)
        assert record.path == ".ai/rules.md"
        assert record.original_hash == hash_bytes(b"rules")
        event = sink.of_kind(FILE_TRACKED)[0]
        assert event.subject == ".ai/rules.md"
        assert event.data["hash"] == record.original_hash

    def test_identical_content_gives_identical_hashes(self, deps, project: Path):
        write(project / "one.md", "same bytes")
        write(project / "two.md", "same bytes")
        assert track_installed_file("one.md", deps).original_hash == track_installed_file("two.md", deps).original_hash

    def test_absolute_path_inside_root_is_stored_relative(self, deps, project: Path):
        path = write(project / "nested" / "x.md", "x")
        assert track_installed_file(path, deps).path == "nested/x.md"

    def test_relative_path_outside_root(self, tmp_path: Path, project: Path):
        outside = tmp_path / "elsewhere" / "x.md"
        assert relative_path(outside, project) == outside.as_posix()

    def test_write_tracked_file_creates_parents(self, deps, project: Path):
        record = write_tracked_file("deep/dir/AGENTS.md", "content", deps)
        assert (project / "deep/dir/AGENTS.md").read_text(encoding="utf-8") == "content"
        assert record.original_hash == hash_bytes(b"content")


class TestCheckFileChanges:
    def test_unchanged_files_are_omitted(self, deps, project: Path):
        write(project / "a.md", "a")
        manifest = _manifest(track_installed_file("a.md", deps))
        assert check_file_changes(manifest, deps) == []

    def test_modified_file(self, deps, project: Path):
        write(project / "a.md", "a")
        record = track_installed_file("a.md", deps)
        write(project / "a.md", "edited")

        [change] = check_file_changes(_manifest(record), deps)
        assert change.path == "a.md"
        assert change.original_hash == record.original_hash
        assert change.current_hash == hash_bytes(b"edited")
        assert not change.missing

    def test_missing_file_is_reported_not_raised(self, deps, project: Path):
        write(project / "a.md", "a")
        write(project / "b.md", "b")
        records = [track_installed_file("a.md", deps), track_installed_file("b.md", deps)]
        (project / "a.md").unlink()

        [change] = check_file_changes(_manifest(*records), deps)
        assert change.path == "a.md"
        assert change.missing
        assert change.current_hash is None
        assert change.error


class TestProjectInitialized:
    def test_no_manifest(self, deps):
        assert is_project_initialized(deps) is False

    def test_valid_manifest(self, deps, project: Path):
        write_manifest(_manifest(), project, deps.settings.manifest_filename)
        assert is_project_initialized(deps) is True

    def test_corrupt_manifest(self, deps, project: Path):
        write(project / deps.settings.manifest_filename, "project: [broken\n")
        assert is_project_initialized(deps) is False


class TestPathLocks:
    def test_same_path_shares_a_lock(self, tmp_path: Path):
        locks = PathLocks()
        assert locks.for_path(tmp_path / "a") is locks.for_path(tmp_path / "x" / ".." / "a")
        assert locks.for_path(tmp_path / "a") is not locks.for_path(tmp_path / "b")
        assert len(locks) == 2

    def test_concurrent_writes_to_distinct_paths(self, deps, project: Path):
        errors: list[BaseException] = []

        def worker(index: int) -> None:
            try:
                for _ in range(20):
                    write_tracked_file(f"files/{index}.md", f"content {index}", deps)
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(list((project / "files").iterdir())) == 8


def test_initialized_right_after_manifest_is_written(deps, project: Path):
    assert not is_project_initialized(deps)
    write_manifest(_manifest(), project)
    assert is_project_initialized(deps)
