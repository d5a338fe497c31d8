"""Installation manifest (``.assist-kit.yml``) model and persistence.

The manifest records what one provisioning run produced:

- project:      selected tool and project type (``type`` is null without a project)
- features:     task ids the user enabled
- installation: created / updated timestamps and the tool version that wrote it
- files:        tracked files with their hash at install time
- packages:     version info for package-install tasks

Keys are stored with their camelCase names (``originalHash``,
``taskPreferences``, ...) through pydantic field aliases.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from assist_kit.errors import ManifestError
from assist_kit.settings import MANIFEST_FILENAME

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _timestamp_to_str(value: Any) -> Any:
    # YAML loaders turn unquoted ISO timestamps into datetime objects.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class _ManifestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TrackedFileRecord(_ManifestModel):
    """A file written by a task, with its SHA256 at install time."""

    path: str
    original_hash: str = Field(..., alias="originalHash")
    pre_existing: Optional[bool] = Field(default=None, alias="preExisting")


class ChangedFileRecord(_ManifestModel):
    """A tracked file whose current state differs from the recorded hash.

    ``current_hash`` is None when the file could not be read; ``error``
    then says why.
    """

    path: str
    original_hash: str = Field(..., alias="originalHash")
    current_hash: Optional[str] = Field(default=None, alias="currentHash")
    error: Optional[str] = None

    @property
    def missing(self) -> bool:
        return self.current_hash is None


class PackageInfo(_ManifestModel):
    name: str
    version: str = "unknown"
    last_updated: str = Field(default_factory=utc_now, alias="lastUpdated")
    error: Optional[str] = None

    @field_validator("last_updated", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Any:
        return _timestamp_to_str(value)


class ProjectSection(_ManifestModel):
    type: Optional[str] = None
    tool: str


class FeaturesSection(_ManifestModel):
    """Per-task enablement, keyed by task id."""

    task_preferences: Dict[str, bool] = Field(default_factory=dict, alias="taskPreferences")

    @field_validator("task_preferences", mode="before")
    @classmethod
    def _normalize_preferences(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, (list, tuple)):
            return {str(task_id): True for task_id in value}
        return value

    def enabled(self) -> List[str]:
        return [task_id for task_id, enabled in self.task_preferences.items() if enabled]


class InstallationSection(_ManifestModel):
    created: str = Field(default_factory=utc_now)
    updated: str = Field(default_factory=utc_now)
    tool_version: str = Field(..., alias="toolVersion")

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _normalize_timestamps(cls, value: Any) -> Any:
        return _timestamp_to_str(value)

    @field_validator("tool_version", mode="before")
    @classmethod
    def _version_as_string(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class InstallationManifest(_ManifestModel):
    project: ProjectSection
    features: FeaturesSection = Field(default_factory=FeaturesSection)
    installation: InstallationSection
    files: List[TrackedFileRecord] = Field(default_factory=list)
    packages: Dict[str, PackageInfo] = Field(default_factory=dict)

    @field_validator("files", "packages", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return [] if info.field_name == "files" else {}
        return value

    @classmethod
    def build(
        cls,
        tool: str,
        project_type: Optional[str],
        task_preferences: Mapping[str, bool],
        files: Iterable[TrackedFileRecord],
        packages: Dict[str, PackageInfo],
        tool_version: str,
        previous: Optional["InstallationManifest"] = None,
    ) -> "InstallationManifest":
        """Create a manifest for a finished run.

        ``installation.created`` is carried over from ``previous`` when given;
        ``installation.updated`` is always now.
        """
        now = utc_now()
        return cls(
            project=ProjectSection(type=project_type or None, tool=tool),
            features=FeaturesSection(task_preferences=dict(task_preferences)),
            installation=InstallationSection(
                created=previous.installation.created if previous else now,
                updated=now,
                tool_version=tool_version,
            ),
            files=list(files),
            packages=dict(packages),
        )

    def file_paths(self) -> List[str]:
        return [record.path for record in self.files]

    def merge_files(self, records: Iterable[TrackedFileRecord]) -> None:
        """Add ``records``, replacing any existing record for the same path."""
        by_path = {record.path: record for record in self.files}
        for record in records:
            by_path[record.path] = record
        self.files = list(by_path.values())

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        data["files"] = [
            {key: value for key, value in record.items() if value is not None}
            for record in data["files"]
        ]
        data["packages"] = {
            name: {key: value for key, value in info.items() if value is not None}
            for name, info in data["packages"].items()
        }
        return data


def manifest_path(project_root: Path, filename: str = MANIFEST_FILENAME) -> Path:
    return project_root / filename


def manifest_exists(project_root: Path, filename: str = MANIFEST_FILENAME) -> bool:
    return manifest_path(project_root, filename).is_file()


def read_manifest(project_root: Path, filename: str = MANIFEST_FILENAME) -> Optional[InstallationManifest]:
    """Read the manifest from ``project_root``.

    Returns:
        The parsed manifest, or None when no manifest file exists

    Raises:
        ManifestError: If the file exists but is not a valid manifest
    """
    path = manifest_path(project_root, filename)
    if not path.exists():
        return None

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except (OSError, YAMLError) as e:
        raise ManifestError(f"Failed to read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Configuration file {path} is not a mapping")

    try:
        return InstallationManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid configuration file {path}: {e}") from e


def write_manifest(
    manifest: InstallationManifest,
    project_root: Path,
    filename: str = MANIFEST_FILENAME,
) -> Path:
    path = manifest_path(project_root, filename)
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(manifest.to_dict(), f)

    logger.info("Saved installation manifest to %s", path)
    return path


def remove_manifest(project_root: Path, filename: str = MANIFEST_FILENAME) -> bool:
    path = manifest_path(project_root, filename)
    if not path.exists():
        return False
    path.unlink()
    logger.info("Removed installation manifest %s", path)
    return True
