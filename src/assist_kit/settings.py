"""Process-level settings for assist-kit.

Settings come from the environment so the CLI and tests can point the tool at
an alternative catalog or upstream repository without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from importlib.resources import files
from pathlib import Path

MANIFEST_FILENAME = ".assist-kit.yml"
DEFAULT_REPO_URL = "https://github.com/assist-kit/assist-kit"
DEFAULT_BRANCH = "main"

CATALOG_ENV = "ASSIST_KIT_CATALOG"
REPO_URL_ENV = "ASSIST_KIT_REPO_URL"
BRANCH_ENV = "ASSIST_KIT_BRANCH"


def default_catalog_path() -> Path:
    """Return the catalog shipped inside the package."""
    return Path(str(files("assist_kit").joinpath("config", "catalog.yaml")))


@dataclass(frozen=True)
class Settings:
    catalog_path: Path = field(default_factory=default_catalog_path)
    repo_url: str = DEFAULT_REPO_URL
    branch: str = DEFAULT_BRANCH
    manifest_filename: str = MANIFEST_FILENAME

    @classmethod
    def from_env(cls) -> "Settings":
        catalog = os.getenv(CATALOG_ENV, "").strip()
        repo_url = os.getenv(REPO_URL_ENV, "").strip()
        branch = os.getenv(BRANCH_ENV, "").strip()
        return cls(
            catalog_path=Path(catalog).expanduser() if catalog else default_catalog_path(),
            repo_url=repo_url or DEFAULT_REPO_URL,
            branch=branch or DEFAULT_BRANCH,
        )

    def manifest_path(self, project_root: Path) -> Path:
        return project_root / self.manifest_filename
