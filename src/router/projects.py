"""In-memory project data store and the filter predicate the router relies on."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any
from uuid import uuid4

from src.nlu.normalize import fold_text
from src.nlu.schema import CreateData, ParsedFilters, UpdateData
from src.router.actions import apply_mutation
from src.router.schema import Project

logger = logging.getLogger(__name__)


def _contains(value: str | None, wanted: str) -> bool:
    return value is not None and fold_text(wanted).strip() in fold_text(value)


def matches_filters(project: Project, filters: ParsedFilters) -> bool:
    """True when `project` satisfies every present filter field.

    A missing progress counts as 0%; text fields match by case/accent-insensitive containment.
    """

    progress = project.progress or 0
    if filters.status is not None and project.status != filters.status:
        return False
    if filters.min_progress is not None and progress < filters.min_progress:
        return False
    if filters.max_progress is not None and progress > filters.max_progress:
        return False
    if filters.no_progress and progress != 0:
        return False
    if filters.collab and not _contains(project.collab, filters.collab):
        return False
    if filters.style and not _contains(project.style, filters.style):
        return False
    if filters.label and not _contains(project.label, filters.label):
        return False
    if filters.label_final and not _contains(project.label_final, filters.label_final):
        return False
    if filters.has_deadline is not None and (project.deadline is not None) != filters.has_deadline:
        return False
    if filters.deadline_date is not None and project.deadline != filters.deadline_date:
        return False
    return True


def filter_projects(projects: Iterable[Project], filters: ParsedFilters | Mapping[str, Any]) -> list[Project]:
    """Return the projects matching `filters`, preserving input order."""

    if not isinstance(filters, ParsedFilters):
        filters = ParsedFilters.model_validate(dict(filters))
    return [p for p in projects if matches_filters(p, filters)]


def find_projects_by_name(projects: Sequence[Project], name: str) -> list[Project]:
    """Exact case-insensitive name match, else containment."""

    wanted = fold_text(name).strip()
    exact = [p for p in projects if fold_text(p.name).strip() == wanted]
    if exact:
        return exact
    return [p for p in projects if wanted and wanted in fold_text(p.name)]


class InMemoryProjectStore:
    """Default data-store collaborator: holds project records in process memory."""

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self._projects: dict[str, Project] = {p.id: p for p in projects}

    @classmethod
    def from_json(cls, path: str | Path) -> InMemoryProjectStore:
        """Load a JSON list of project objects (camelCase or snake_case keys)."""

        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise ValueError("Unexpected projects file format: expected a JSON list of objects")
        store = cls(Project.model_validate(item) for item in payload)
        logger.info("projects loaded path=%s count=%d", path, len(store))
        return store

    def __len__(self) -> int:
        return len(self._projects)

    def projects(self) -> list[Project]:
        return list(self._projects.values())

    def get(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def available_collabs(self) -> list[str]:
        return sorted({p.collab for p in self._projects.values() if p.collab})

    def available_styles(self) -> list[str]:
        return sorted({p.style for p in self._projects.values() if p.style})

    def filter(self, filters: ParsedFilters | Mapping[str, Any]) -> list[Project]:
        return filter_projects(self._projects.values(), filters)

    def create(self, data: CreateData) -> Project:
        project = Project(
            id=uuid4().hex,
            name=data.name,
            status=data.status,
            progress=data.progress,
            deadline=data.deadline,
            collab=data.collab,
            style=data.style,
        )
        self._projects[project.id] = project
        logger.info("project created id=%s", project.id)
        return project

    def apply(self, project_ids: Sequence[str], mutation: UpdateData) -> int:
        """Apply `mutation` to the given ids; returns the number of updated records.

        Unknown ids are skipped. A deadline push or removal skips records without a deadline.
        """

        updated = 0
        for project_id in dict.fromkeys(project_ids):
            project = self._projects.get(project_id)
            if project is None:
                continue
            if (mutation.push_deadline_by is not None or mutation.removes_deadline) and project.deadline is None:
                continue
            self._projects[project_id] = apply_mutation(project, mutation)
            updated += 1
        logger.info("projects updated count=%d", updated)
        return updated

