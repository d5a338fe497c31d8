"""In-memory task catalog: tool profiles, project profiles, shared task pool.

The on-disk catalog keeps the string syntax (``"@shared_tasks.rules"`` and
``{extends: "@shared_tasks.rules", ...}``) for compatibility. At load time
every task-list slot is parsed once into a tagged ``TaskEntry`` variant:

- ReferenceEntry: a bare shared task reference
- ExtendsEntry:   a shared task plus field overrides
- LiteralEntry:   an inline task definition

Downstream code pattern-matches on the variant and never re-parses strings.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from assist_kit.errors import CatalogError, InvalidReferenceSyntax, ProjectNotFound, ToolNotFound

REFERENCE_PREFIX = "@shared_tasks."
REFERENCE_PATTERN = re.compile(r"^@shared_tasks\.([A-Za-z_][A-Za-z0-9_-]*)$")


def is_reference(value: object) -> bool:
    """Return True if ``value`` is a well-formed shared task reference."""
    return isinstance(value, str) and REFERENCE_PATTERN.match(value) is not None


def parse_reference(value: str, context: str | None = None) -> str:
    """Return the shared task name of a reference string.

    Raises:
        InvalidReferenceSyntax: If ``value`` is not ``@shared_tasks.<identifier>``.
    """
    match = REFERENCE_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidReferenceSyntax(str(value), context)
    return match.group(1)


@dataclass(frozen=True)
class ReferenceEntry:
    reference: str
    name: str


@dataclass(frozen=True)
class ExtendsEntry:
    reference: str
    name: str
    overrides: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LiteralEntry:
    definition: Dict[str, Any]


TaskEntry = Union[ReferenceEntry, ExtendsEntry, LiteralEntry]


def parse_task_entry(value: Any, context: str | None = None) -> TaskEntry:
    """Parse one task-list slot into its tagged variant.

    Any string that is not a well-formed reference is invalid syntax rather
    than a literal task.
    """
    if isinstance(value, (ReferenceEntry, ExtendsEntry, LiteralEntry)):
        return value
    if isinstance(value, str):
        return ReferenceEntry(reference=value, name=parse_reference(value, context))
    if isinstance(value, dict):
        if "extends" in value:
            reference = value["extends"]
            name = parse_reference(reference, context)
            overrides = {k: copy.deepcopy(v) for k, v in value.items() if k != "extends"}
            return ExtendsEntry(reference=reference, name=name, overrides=overrides)
        return LiteralEntry(definition=copy.deepcopy(dict(value)))
    where = f" ({context})" if context else ""
    raise CatalogError(f"Task entry must be a reference string or a mapping{where}: {value!r}")


class ProjectValidation(BaseModel):
    """Checks that the working directory is a project of a given type."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    required_files: List[str] = Field(default_factory=list, alias="requiredFiles")
    optional_files: List[str] = Field(default_factory=list, alias="optionalFiles")
    required_content: Dict[str, str] = Field(default_factory=dict, alias="requiredContent")


class _Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = None
    description: Optional[str] = None
    tasks: Dict[str, Any] = Field(default_factory=dict)

    profile_kind: ClassVar[str] = "profile"

    _entries: Dict[str, TaskEntry] = PrivateAttr(default_factory=dict)

    def parse_entries(self, owner: str) -> None:
        self._entries = {
            task_id: parse_task_entry(raw, f"{self.profile_kind} '{owner}', task '{task_id}'")
            for task_id, raw in self.tasks.items()
        }

    @property
    def entries(self) -> Dict[str, TaskEntry]:
        return dict(self._entries)


class ToolProfile(_Profile):
    """An AI assistant the catalog can provision for (claude, cursor, ...)."""

    project_validation: Dict[str, Any] = Field(default_factory=dict, alias="project-validation")

    profile_kind: ClassVar[str] = "tool"


class ProjectProfile(_Profile):
    """A project type with its own tasks and directory validation rules."""

    validation: Optional[ProjectValidation] = None

    profile_kind: ClassVar[str] = "project"


class TaskCatalog(BaseModel):
    """The whole task catalog.

    Shared task pool values are plain task definitions; a reference string as
    a pool value is rejected at load time.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    tools: Dict[str, ToolProfile] = Field(default_factory=dict)
    projects: Dict[str, ProjectProfile] = Field(default_factory=dict)
    shared_tasks: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for tool_id, profile in self.tools.items():
            profile.parse_entries(tool_id)
        for project_id, profile in self.projects.items():
            profile.parse_entries(project_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "TaskCatalog":
        data = dict(data or {})
        pool = data.get("shared_tasks") or {}
        if not isinstance(pool, dict):
            raise CatalogError("shared_tasks must be a mapping")
        for name, value in pool.items():
            if not isinstance(value, dict):
                raise CatalogError(f"Shared task '{name}' must be a mapping, not {type(value).__name__}")
        data["shared_tasks"] = pool
        data["tools"] = data.get("tools") or {}
        data["projects"] = data.get("projects") or {}
        try:
            return cls.model_validate(data)
        except ValueError as exc:
            raise CatalogError(f"Invalid task catalog: {exc}") from exc

    def tool(self, tool_id: str) -> ToolProfile:
        profile = self.tools.get(tool_id) if tool_id else None
        if profile is None:
            raise ToolNotFound(tool_id)
        return profile

    def project(self, project_type: str) -> ProjectProfile:
        profile = self.projects.get(project_type)
        if profile is None:
            raise ProjectNotFound(project_type)
        return profile
