"""Command result types.

`CommandResult` is a tagged union on `type`; UPDATE and ADD_NOTE results always wrap a
`PendingConfirmationAction` and never an applied mutation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import ConfigDict, Field

from src.nlu.schema import CreateData, HistoryMessage, ParsedFilters, ProjectStatus, UpdateData, WireModel


class ScopeSource(StrEnum):
    """Why a set of projects was chosen for an update."""

    ExplicitFilter = "ExplicitFilter"
    LastListedIds = "LastListedIds"
    AllProjects = "AllProjects"


class CommandType(StrEnum):
    LIST = "LIST"
    COUNT = "COUNT"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ADD_NOTE = "ADD_NOTE"
    GENERAL = "GENERAL"


class Project(WireModel):
    """A project record as seen by the router (unknown keys from seeds are ignored)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    status: ProjectStatus = ProjectStatus.EN_COURS
    progress: int | None = Field(default=None, ge=0, le=100)
    deadline: date | None = None
    collab: str | None = None
    style: str | None = None
    label: str | None = None
    label_final: str | None = None
    release_date: date | None = None
    notes: list[str] = Field(default_factory=list)


class FieldChange(WireModel):
    field: str
    old: Any = None
    new: Any = None


class ProjectPreviewDiff(WireModel):
    """Before/after values of one affected project."""

    project_id: str
    project_name: str
    changes: list[FieldChange] = Field(default_factory=list)


PendingActionType = Literal[CommandType.UPDATE, CommandType.ADD_NOTE]


class PendingConfirmationAction(WireModel):
    """A proposed mutation and its target set, awaiting explicit human confirmation."""

    action_id: str
    type: PendingActionType
    filters: ParsedFilters = Field(default_factory=ParsedFilters)
    mutation: UpdateData
    affected_projects: list[Project]
    affected_project_ids: list[str]
    scope_source: ScopeSource
    fields_to_show: list[str] = Field(default_factory=list)
    description: str
    skipped_count: int = 0
    preview_diff: list[ProjectPreviewDiff] = Field(default_factory=list)


class ListResult(WireModel):
    type: Literal[CommandType.LIST] = CommandType.LIST
    projects: list[Project]
    count: int
    fields_to_show: list[str] = Field(default_factory=list)
    message: str
    applied_filter: ParsedFilters = Field(default_factory=ParsedFilters)
    listed_project_ids: list[str] = Field(default_factory=list)
    scope_source: ScopeSource = ScopeSource.ExplicitFilter


class CountResult(WireModel):
    type: Literal[CommandType.COUNT] = CommandType.COUNT
    projects: list[Project]
    count: int
    message: str
    applied_filter: ParsedFilters = Field(default_factory=ParsedFilters)
    listed_project_ids: list[str] = Field(default_factory=list)


class CreateResult(WireModel):
    type: Literal[CommandType.CREATE] = CommandType.CREATE
    create_data: CreateData
    message: str


class UpdateResult(WireModel):
    type: Literal[CommandType.UPDATE] = CommandType.UPDATE
    pending_action: PendingConfirmationAction
    message: str


class AddNoteResult(WireModel):
    type: Literal[CommandType.ADD_NOTE] = CommandType.ADD_NOTE
    pending_action: PendingConfirmationAction
    message: str


class GeneralResult(WireModel):
    type: Literal[CommandType.GENERAL] = CommandType.GENERAL
    response: str


CommandResult = Annotated[
    ListResult | CountResult | CreateResult | UpdateResult | AddNoteResult | GeneralResult,
    Field(discriminator="type"),
]


@dataclass(frozen=True)
class RouterContext:
    """Everything the router needs besides the query text.

    `last_listed_project_ids` / `last_applied_filter` are the caller-held working set; when
    absent, the router falls back to conversation memory (if one is given).
    """

    projects: Sequence[Project]
    available_collabs: Sequence[str] = ()
    available_styles: Sequence[str] = ()
    last_listed_project_ids: Sequence[str] | None = None
    last_applied_filter: Mapping[str, Any] | None = None
    conversation_history: Sequence[HistoryMessage | Mapping[str, Any]] | None = None
    user_id: str | None = None
    today: date | None = None

    @property
    def project_count(self) -> int:
        return len(self.projects)
