from __future__ import annotations

from pathlib import Path

import pytest

from assist_kit.catalog.loader import catalog_from_dict
from assist_kit.catalog.models import TaskCatalog
from assist_kit.events import RecordingSink
from assist_kit.settings import Settings
from assist_kit.tasks.base import TaskDependencies
from tests.utils import REPO_URL, LocalFetcher, build_upstream, catalog_data


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture()
def upstream(tmp_path: Path) -> dict[str, Path]:
    return build_upstream(tmp_path / "upstream")


@pytest.fixture()
def fetcher(upstream: dict[str, Path]) -> LocalFetcher:
    return LocalFetcher(upstream)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(catalog_path=tmp_path / "catalog.yaml", repo_url=REPO_URL, branch="main")


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def deps(project: Path, settings: Settings, fetcher: LocalFetcher, sink: RecordingSink) -> TaskDependencies:
    return TaskDependencies(project_root=project, settings=settings, fetcher=fetcher, events=sink)


@pytest.fixture()
def catalog() -> TaskCatalog:
    return catalog_from_dict(catalog_data())
