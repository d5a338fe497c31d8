"""Shared helpers for the assist-kit test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

from assist_kit.content.copying import copy_items
from assist_kit.errors import SourceNotFound
from assist_kit.fetch import FetchOptions, FetchResult

REPO_URL = "https://example.com/assist-kit.git"
RULES_URL = "https://example.com/prompt-library.git"


def write(path: Path, content: str = "placeholder") -> Path:
    """Create a file (and any missing parent dirs), return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class LocalFetcher:
    """Fetch collaborator that serves repositories from local directories."""

    def __init__(self, repositories: Dict[str, Path]):
        self.repositories = repositories
        self.calls: List[Tuple[str, FetchOptions]] = []

    def fetch_tree(self, source: str, target: Path, options: FetchOptions) -> FetchResult:
        self.calls.append((source, options))
        source_path = self.repositories[options.repository] / source
        if not source_path.exists():
            raise SourceNotFound(source, options.repository)
        result = FetchResult()
        result.files = copy_items(
            source_path, target, options.items, options.filters, on_missing=result.missing.append
        )
        return result


def catalog_data() -> dict:
    """A small catalog covering references, extends, multi-step and package installs."""
    return {
        "shared_tasks": {
            "rules": {
                "name": "Project Rules",
                "type": "remote-copy-files",
                "repository": RULES_URL,
                "source": "{project-type}/rules/",
                "target": ".ai/rules",
                "requires-project": True,
                "filters": [{"type": "frontmatter-removal"}],
            },
            "agents-md": {
                "name": "AGENTS.md",
                "type": "agents-md",
                "source": "assets/",
                "target": ".",
                "link-type": "markdown",
            },
            "memory-bank": {
                "name": "Memory Bank",
                "type": "copy-files",
                "source": "assets/{tool}/memory-bank/",
                "target": ".{tool}/memory-bank",
            },
        },
        "tools": {
            "claude": {
                "name": "Claude",
                "tasks": {
                    "memory-bank": "@shared_tasks.memory-bank",
                    "rules": "@shared_tasks.rules",
                    "agents-md": {"extends": "@shared_tasks.agents-md", "link-type": "@"},
                },
            },
            "cursor": {
                "name": "Cursor",
                "project-validation": {"development": {}},
                "tasks": {
                    "rules": "@shared_tasks.rules",
                    "agents-md": "@shared_tasks.agents-md",
                },
            },
        },
        "projects": {
            "development": {
                "name": "General development",
                "validation": {"requiredFiles": []},
                "tasks": {},
            },
            "drupal": {
                "name": "Drupal",
                "validation": {
                    "requiredFiles": ["composer.json"],
                    "optionalFiles": ["web/index.php"],
                    "requiredContent": {"composer.json": "drupal/core"},
                },
                "tasks": {
                    "drupal-guides": {
                        "name": "Drupal guides",
                        "type": "copy-files",
                        "source": "assets/{project-type}/guides/",
                        "target": ".ai/guides",
                        "required": True,
                    },
                },
            },
        },
    }


def build_upstream(root: Path) -> Dict[str, Path]:
    """Lay out the assist-kit and prompt library repositories under ``root``."""
    assets = root / "assist-kit"
    write(assets / "assets" / "AGENTS.md", "# Agents\n\nProject agent notes.\n")
    write(assets / "assets" / "claude" / "memory-bank" / "projectbrief.md", "# Brief\n")
    write(assets / "assets" / "claude" / "memory-bank" / "progress.md", "# Progress\n")
    write(assets / "assets" / "drupal" / "guides" / "theming.md", "# Theming\n")

    rules = root / "prompt-library"
    write(rules / "development" / "rules" / "coding.md", "---\ntitle: Coding\n---\n# Coding rules\n")
    write(rules / "development" / "rules" / "testing.md", "# Testing rules\n")
    write(rules / "drupal" / "rules" / "drupal.md", "# Drupal rules\n")
    return {REPO_URL: assets, RULES_URL: rules}
