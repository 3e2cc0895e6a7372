"""Parse result schema (Pydantic models).

This schema is the contract between the parser and the command router. Field names are snake_case
in Python and camelCase on the wire (`min_progress` <-> `minProgress`).

"Present" means a non-null, non-empty value: a filter object that only carries `None` or empty
strings is semantically empty.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ProjectStatus(StrEnum):
    """Canonical project statuses."""

    EN_COURS = "EN_COURS"
    TERMINE = "TERMINE"
    ANNULE = "ANNULE"
    A_REWORK = "A_REWORK"
    GHOST_PRODUCTION = "GHOST_PRODUCTION"
    ARCHIVE = "ARCHIVE"


STATUS_LABELS: dict[ProjectStatus, str] = {
    ProjectStatus.EN_COURS: "en cours",
    ProjectStatus.TERMINE: "terminé",
    ProjectStatus.ANNULE: "annulé",
    ProjectStatus.A_REWORK: "à rework",
    ProjectStatus.GHOST_PRODUCTION: "ghost production",
    ProjectStatus.ARCHIVE: "archivé",
}


class QueryType(StrEnum):
    """Command categories produced by the classifier."""

    list = "list"
    count = "count"
    update = "update"
    create = "create"
    search = "search"


Language = Literal["fr", "en"]

DISPLAY_FIELDS: tuple[str, ...] = ("release_date", "deadline", "progress", "status", "collab", "style")


class WireModel(BaseModel):
    """Base model: strict fields, camelCase aliases, construction by field name allowed."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


class ParsedFilters(WireModel):
    """Filters that narrow which projects a command considers."""

    status: ProjectStatus | None = None
    min_progress: int | None = Field(default=None, ge=0, le=100)
    max_progress: int | None = Field(default=None, ge=0, le=100)
    collab: str | None = None
    style: str | None = None
    label: str | None = None
    label_final: str | None = None
    has_deadline: bool | None = None
    deadline_date: date | None = None
    no_progress: bool | None = None

    def present_fields(self) -> dict[str, Any]:
        """Return only the fields carrying a meaningful value."""

        return {
            name: getattr(self, name)
            for name in ParsedFilters.model_fields
            if _is_present(getattr(self, name))
        }

    def is_empty(self) -> bool:
        return not self.present_fields()


class DeadlineDelta(WireModel):
    """A relative deadline shift; negative amounts move the deadline earlier."""

    days: int | None = None
    weeks: int | None = None
    months: int | None = None
    years: int | None = None

    def is_zero(self) -> bool:
        return not any((self.days, self.weeks, self.months, self.years))


_MUTATION_FIELDS: tuple[str, ...] = (
    "new_status",
    "new_progress",
    "new_deadline",
    "push_deadline_by",
    "new_collab",
    "new_style",
    "new_label",
    "new_label_final",
    "new_note",
)


class UpdateData(ParsedFilters):
    """Filter qualifiers copied from the query plus the requested new values.

    `new_deadline=None` set explicitly means "delete the deadline"; it is distinguished from an
    absent `new_deadline` through `model_fields_set`.
    """

    new_status: ProjectStatus | None = None
    new_progress: int | None = Field(default=None, ge=0, le=100)
    new_deadline: date | None = None
    push_deadline_by: DeadlineDelta | None = None
    new_collab: str | None = None
    new_style: str | None = None
    new_label: str | None = None
    new_label_final: str | None = None
    new_note: str | None = None
    project_name: str | None = None

    @property
    def removes_deadline(self) -> bool:
        return "new_deadline" in self.model_fields_set and self.new_deadline is None

    @property
    def is_deadline_mutation(self) -> bool:
        return self.push_deadline_by is not None or "new_deadline" in self.model_fields_set

    @property
    def is_note_only(self) -> bool:
        return bool(self.new_note) and self.mutation_fields().keys() == {"new_note"}

    def mutation_fields(self) -> dict[str, Any]:
        """Return the requested new values (an explicit deadline removal included)."""

        fields: dict[str, Any] = {}
        for name in _MUTATION_FIELDS:
            value = getattr(self, name)
            if _is_present(value) or (name == "new_deadline" and self.removes_deadline):
                fields[name] = value
        return fields

    def has_mutation(self) -> bool:
        return bool(self.mutation_fields())

    def qualifier_filters(self) -> ParsedFilters:
        """Return the filter part of the update data (which records to touch)."""

        return ParsedFilters.model_validate(self.model_dump(include=set(ParsedFilters.model_fields)))


class CreateData(WireModel):
    """A project creation request."""

    name: str = Field(min_length=1)
    collab: str | None = None
    style: str | None = None
    status: ProjectStatus = ProjectStatus.EN_COURS
    progress: int | None = Field(default=None, ge=0, le=100)
    deadline: date | None = None


class HistoryMessage(WireModel):
    """One conversation turn as supplied by the caller."""

    role: Literal["user", "assistant"]
    content: str = Field(min_length=1)


class ParseQueryResult(WireModel):
    """Structured interpretation of a single query.

    Exactly one of `create_data` / `update_data` is populated for create/update queries; neither is
    populated for read or search queries.
    """

    filters: ParsedFilters = Field(default_factory=ParsedFilters)
    type: QueryType = QueryType.search
    understood: bool = False
    clarification: str | None = None
    lang: Language = "fr"
    is_conversational: bool = False
    is_meta_question: bool = False
    fields_to_show: list[str] = Field(default_factory=list)
    create_data: CreateData | None = None
    update_data: UpdateData | None = None

    @model_validator(mode="after")
    def validate_payload_matches_type(self) -> ParseQueryResult:
        """Validate that the populated payload is consistent with `type`."""

        if self.type == QueryType.update:
            if self.update_data is None or self.create_data is not None:
                raise ValueError("update results carry update_data only")
        elif self.type == QueryType.create:
            if self.create_data is None or self.update_data is not None:
                raise ValueError("create results carry create_data only")
        elif self.create_data is not None or self.update_data is not None:
            raise ValueError(f"{self.type} results carry no create/update payload")
        return self
