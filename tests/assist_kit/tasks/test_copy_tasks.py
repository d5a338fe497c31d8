"""Tests for the copy-files and remote-copy-files handlers."""

from __future__ import annotations

from pathlib import Path

import pytest

from assist_kit.errors import SourceNotFound, TaskExecutionError
from assist_kit.events import FILE_TRACKED, WARNING
from assist_kit.integrity.hasher import hash_file
from assist_kit.tasks import copy_files, remote_copy_files
from tests.utils import REPO_URL, RULES_URL, write


class TestCopyFiles:
    def test_assets_come_from_upstream_at_tool_version(self, deps, fetcher, project: Path):
        task = {"type": "copy-files", "source": "assets/claude/memory-bank/", "target": ".claude/memory-bank"}
        result = copy_files.execute(task, "claude", None, False, deps)

        assert result.output == "Copied 2 files to .claude/memory-bank"
        assert sorted(record.path for record in result.files) == [
            ".claude/memory-bank/progress.md",
            ".claude/memory-bank/projectbrief.md",
        ]
        source, options = fetcher.calls[0]
        assert source == "assets/claude/memory-bank/"
        assert options.repository == REPO_URL
        assert options.ref == deps.tool_version
        assert options.fallback_ref == "main"

    def test_recorded_hash_matches_file(self, deps, project: Path):
        task = {"type": "copy-files", "source": "assets/claude/memory-bank/", "target": ".claude/memory-bank"}
        result = copy_files.execute(task, "claude", None, False, deps)
        for record in result.files:
            assert record.original_hash == hash_file(project / record.path)

    def test_local_source_relative_to_project(self, deps, fetcher, project: Path):
        write(project / "docs" / "guide.md", "guide")
        task = {"type": "copy-files", "source": "docs", "target": ".ai/docs"}
        result = copy_files.execute(task, "claude", None, False, deps)

        assert [record.path for record in result.files] == [".ai/docs/guide.md"]
        assert fetcher.calls == []

    def test_missing_items_emit_warnings(self, deps, sink):
        task = {
            "type": "copy-files",
            "source": "assets/claude/memory-bank/",
            "target": ".claude",
            "items": {"absent.md": "absent.md", "progress.md": "progress.md"},
        }
        result = copy_files.execute(task, "claude", None, False, deps)

        assert len(result.files) == 1
        warnings = sink.of_kind(WARNING)
        assert [event.subject for event in warnings] == ["absent.md"]
        assert len(sink.of_kind(FILE_TRACKED)) == 1

    def test_missing_source_field(self, deps):
        with pytest.raises(TaskExecutionError, match="missing required field 'source'"):
            copy_files.execute({"type": "copy-files", "target": "."}, "claude", None, False, deps)

    def test_missing_upstream_source(self, deps):
        task = {"type": "copy-files", "source": "assets/nothing/", "target": "."}
        with pytest.raises(SourceNotFound):
            copy_files.execute(task, "claude", None, False, deps)


class TestRemoteCopyFiles:
    def test_copies_with_filters_and_substituted_source(self, deps, fetcher, project: Path):
        task = {
            "type": "remote-copy-files",
            "repository": RULES_URL,
            "source": "{project-type}/rules/",
            "target": ".ai/rules",
            "filters": [{"type": "frontmatter-removal"}],
        }
        result = remote_copy_files.execute(task, "claude", "development", False, deps)

        assert result.output == "Successfully copied 2 files from remote repository"
        assert sorted(record.path for record in result.files) == [".ai/rules/coding.md", ".ai/rules/testing.md"]
        assert (project / ".ai/rules/coding.md").read_text(encoding="utf-8") == "# Coding rules\n"
        source, options = fetcher.calls[0]
        assert source == "development/rules/"
        assert options.ref is None

    def test_ref_is_forwarded(self, deps, fetcher):
        task = {
            "type": "remote-copy-files",
            "repository": RULES_URL,
            "source": "drupal/rules/",
            "target": ".ai/rules",
            "ref": "v2",
        }
        remote_copy_files.execute(task, "claude", "drupal", False, deps)
        assert fetcher.calls[0][1].ref == "v2"

    def test_requires_repository(self, deps):
        with pytest.raises(TaskExecutionError, match="'repository'"):
            remote_copy_files.execute({"type": "remote-copy-files", "target": "."}, "claude", None, False, deps)
