"""Tests for catalog validation and project directory validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from assist_kit.catalog.models import TaskCatalog
from assist_kit.catalog.validation import (
    catalog_errors,
    task_config_errors,
    validate_catalog,
    validate_project,
    validate_task_config,
    validate_url,
)
from assist_kit.errors import CatalogError, InvalidReferenceSyntax, ProjectValidationError
from tests.utils import catalog_data, write


class TestTaskConfigErrors:
    def test_valid_copy_task_has_no_errors(self):
        task = {
            "type": "copy-files",
            "source": "assets/",
            "target": ".ai",
            "items": ["*.md", "/^rules-.*\\.md$/i"],
            "filters": [{"type": "line-range", "start": 1, "end": 3}],
            "link": "https://example.com/docs",
        }
        assert task_config_errors(task) == []

    def test_bad_regex_item(self):
        errors = task_config_errors({"type": "copy-files", "items": ["/[/"]})
        assert len(errors) == 1
        assert errors[0].startswith("Invalid pattern in copy-files task")

    def test_wildcards_not_allowed_in_rename_mapping(self):
        errors = task_config_errors({"type": "remote-copy-files", "items": {"*.md": "docs.md"}})
        assert "Wildcard patterns not supported" in errors[0]

    def test_items_must_be_list_or_mapping(self):
        errors = task_config_errors({"type": "copy-files", "items": "rules.md"})
        assert errors == ["Invalid items format in copy-files task: must be array or object"]

    def test_bad_filters_are_listed(self):
        errors = task_config_errors(
            {"type": "copy-files", "filters": [{"type": "shout"}, {"type": "line-range", "start": 5, "end": 2}]}
        )
        assert any("Invalid filter type 'shout'" in error for error in errors)
        assert any("Line range start (5)" in error for error in errors)

    def test_invalid_link(self):
        assert not validate_url("ftp://example.com")
        errors = task_config_errors({"type": "agents-md", "link": "example.com"})
        assert errors == ["Invalid link URL in agents-md task: must be a valid HTTP/HTTPS URL"]

    def test_unsupported_variables(self):
        errors = task_config_errors({"type": "copy-files", "source": "{home}/x"})
        assert "Unsupported variables found in task: home" in errors[0]

    def test_validate_task_config_raises_with_every_error(self):
        with pytest.raises(CatalogError) as exc_info:
            validate_task_config({"type": "copy-files", "items": "x", "link": "nope"})
        message = str(exc_info.value)
        assert "Invalid items format" in message
        assert "Invalid link URL" in message


class TestCatalogValidation:
    def test_sample_catalog_is_valid(self):
        catalog = TaskCatalog.from_dict(catalog_data())
        assert catalog_errors(catalog) == []

    def test_every_dangling_reference_is_reported(self):
        data = catalog_data()
        data["tools"]["claude"]["tasks"]["ghost"] = "@shared_tasks.ghost"
        data["projects"]["drupal"]["tasks"]["phantom"] = {"extends": "@shared_tasks.phantom"}
        catalog = TaskCatalog.from_dict(data)

        with pytest.raises(CatalogError) as exc_info:
            validate_catalog(catalog)
        message = str(exc_info.value)
        assert "Shared task reference not found in tool 'claude', task 'ghost'" in message
        assert "Extends reference not found in project 'drupal', task 'phantom'" in message

    def test_extends_overrides_are_checked_after_merge(self):
        data = catalog_data()
        data["tools"]["cursor"]["tasks"]["agents-md"] = {
            "extends": "@shared_tasks.agents-md",
            "link": "not-a-url",
        }
        errors = catalog_errors(TaskCatalog.from_dict(data))
        assert errors == ["tool 'cursor', task 'agents-md': Invalid link URL in agents-md task: must be a valid HTTP/HTTPS URL"]

    def test_malformed_reference_fails_at_load(self):
        data = catalog_data()
        data["tools"]["claude"]["tasks"]["broken"] = "shared_tasks.rules"
        with pytest.raises(InvalidReferenceSyntax, match="tool 'claude', task 'broken'"):
            TaskCatalog.from_dict(data)

    def test_reference_as_pool_value_is_rejected(self):
        data = catalog_data()
        data["shared_tasks"]["alias"] = "@shared_tasks.rules"
        with pytest.raises(CatalogError, match="Shared task 'alias' must be a mapping"):
            TaskCatalog.from_dict(data)


class TestValidateProject:
    def test_no_project_skips_validation(self, catalog, tmp_path: Path):
        assert validate_project(None, "claude", catalog, tmp_path) == []

    def test_missing_required_file_and_content(self, catalog, tmp_path: Path):
        with pytest.raises(ProjectValidationError) as exc_info:
            validate_project("drupal", "claude", catalog, tmp_path)
        assert exc_info.value.issues == [
            "Missing required file: composer.json",
            "Cannot check content in missing file: composer.json",
        ]

    def test_required_content_mismatch(self, catalog, tmp_path: Path):
        write(tmp_path / "composer.json", '{"require": {"laravel/framework": "^11"}}')
        with pytest.raises(ProjectValidationError, match="Required content not found in composer.json"):
            validate_project("drupal", "claude", catalog, tmp_path)

    def test_valid_project_returns_optional_warnings(self, catalog, tmp_path: Path):
        write(tmp_path / "composer.json", '{"require": {"drupal/core": "^10"}}')
        assert validate_project("drupal", "claude", catalog, tmp_path) == [
            "Optional file not found: web/index.php"
        ]

    def test_project_without_validation_rules(self, tmp_path: Path):
        data = catalog_data()
        data["projects"]["bare"] = {"tasks": {}}
        catalog = TaskCatalog.from_dict(data)
        with pytest.raises(CatalogError, match="Project validation not configured for bare"):
            validate_project("bare", "claude", catalog, tmp_path)
