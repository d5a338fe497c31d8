from __future__ import annotations

from pathlib import Path

import pytest

from assist_kit.catalog.loader import load_catalog, read_catalog_data
from assist_kit.catalog.models import ExtendsEntry, LiteralEntry, ReferenceEntry
from assist_kit.catalog.resolver import get_tasks
from assist_kit.errors import CatalogError
from assist_kit.settings import CATALOG_ENV, Settings, default_catalog_path
from tests.utils import write

CATALOG_YAML = """\
shared_tasks:
  rules:
    type: copy-files
    source: "assets/{project-type}/rules/"
    target: .ai/rules
tools:
  claude:
    tasks:
      rules: "@shared_tasks.rules"
      agents-md:
        extends: "@shared_tasks.rules"
        target: .claude/rules
      local:
        type: agents-md
projects:
  development:
    validation:
      requiredFiles: []
"""


class TestLoadCatalog:
    def test_entries_are_parsed_into_variants(self, tmp_path: Path):
        path = write(tmp_path / "catalog.yaml", CATALOG_YAML)
        catalog = load_catalog(path)
        entries = catalog.tool("claude").entries
        assert isinstance(entries["rules"], ReferenceEntry)
        assert isinstance(entries["agents-md"], ExtendsEntry)
        assert entries["agents-md"].overrides == {"target": ".claude/rules"}
        assert isinstance(entries["local"], LiteralEntry)

    def test_path_defaults_to_environment_setting(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = write(tmp_path / "custom.yaml", CATALOG_YAML)
        monkeypatch.setenv(CATALOG_ENV, str(path))
        assert "claude" in load_catalog().tools

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(CatalogError, match="Task catalog not found"):
            load_catalog(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = write(tmp_path / "catalog.yaml", "tools: [unclosed\n")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            read_catalog_data(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path):
        path = write(tmp_path / "catalog.yaml", "- just\n- a list\n")
        with pytest.raises(CatalogError, match="must be a mapping"):
            read_catalog_data(path)

    def test_dangling_reference_fails_validation(self, tmp_path: Path):
        path = write(tmp_path / "catalog.yaml", CATALOG_YAML.replace('"@shared_tasks.rules"\n      agents', '"@shared_tasks.gone"\n      agents'))
        with pytest.raises(CatalogError, match="@shared_tasks.gone"):
            load_catalog(path)


class TestPackagedCatalog:
    """The catalog shipped with the package must load and resolve."""

    def test_packaged_catalog_loads(self):
        catalog = load_catalog(default_catalog_path())
        assert {"claude", "cursor", "gemini"} <= set(catalog.tools)
        assert {"development", "drupal"} <= set(catalog.projects)

    def test_packaged_catalog_resolves_for_every_tool(self):
        catalog = load_catalog(settings=Settings())
        for tool in catalog.tools:
            tasks = get_tasks(catalog, tool, "development")
            assert tasks["rules"]["source"] == "development/rules/"
            assert tasks["agents-md"]["type"] == "agents-md"

    def test_claude_agents_md_uses_at_links(self):
        catalog = load_catalog(default_catalog_path())
        assert get_tasks(catalog, "claude", None)["agents-md"]["link-type"] == "@"
        assert get_tasks(catalog, "gemini", None)["agents-md"]["link-type"] == "markdown"
