"""Pending-action helpers: mutation application, preview diff, and human-readable description."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from src.nlu.dates import add_delta
from src.nlu.schema import STATUS_LABELS, DeadlineDelta, UpdateData
from src.router.schema import CommandType, FieldChange, Project, ProjectPreviewDiff, ScopeSource

PREVIEW_LIMIT = 3
CONFIRMATION_QUESTION = "Confirmez-vous cette action ?"

_SCOPE_NOTES: dict[ScopeSource, str] = {
    ScopeSource.ExplicitFilter: "",
    ScopeSource.LastListedIds: " (projets précédemment listés)",
    ScopeSource.AllProjects: " (tous vos projets)",
}
_PREVIEW_FIELDS: tuple[str, ...] = (
    "status", "progress", "deadline", "collab", "style", "label", "label_final", "notes",
)


def apply_mutation(project: Project, mutation: UpdateData) -> Project:
    """Return a copy of `project` with `mutation` applied; the input is not modified."""

    changes: dict[str, Any] = {}
    if mutation.new_status is not None:
        changes["status"] = mutation.new_status
    if mutation.new_progress is not None:
        changes["progress"] = mutation.new_progress
    if mutation.removes_deadline:
        changes["deadline"] = None
    elif mutation.push_deadline_by is not None:
        if project.deadline is not None:
            changes["deadline"] = add_delta(project.deadline, mutation.push_deadline_by)
    elif mutation.new_deadline is not None:
        changes["deadline"] = mutation.new_deadline
    if mutation.new_collab:
        changes["collab"] = mutation.new_collab
    if mutation.new_style:
        changes["style"] = mutation.new_style
    if mutation.new_label:
        changes["label"] = mutation.new_label
    if mutation.new_label_final:
        changes["label_final"] = mutation.new_label_final
    if mutation.new_note:
        changes["notes"] = [*project.notes, mutation.new_note]
    return project.model_copy(update=changes)


def preview_diff(projects: Sequence[Project], mutation: UpdateData, *, limit: int = PREVIEW_LIMIT) -> list[ProjectPreviewDiff]:
    """Before/after values for the first `limit` projects."""

    diffs: list[ProjectPreviewDiff] = []
    for project in projects[:limit]:
        after = apply_mutation(project, mutation)
        changes = [
            FieldChange(field=name, old=getattr(project, name), new=getattr(after, name))
            for name in _PREVIEW_FIELDS
            if getattr(project, name) != getattr(after, name)
        ]
        diffs.append(ProjectPreviewDiff(project_id=project.id, project_name=project.name, changes=changes))
    return diffs


def _plural(amount: int, singular: str, plural: str) -> str:
    return singular if abs(amount) == 1 else plural


def format_delta(delta: DeadlineDelta) -> str:
    """Render a deadline shift as "+1 mois", "-2 semaines", "+1 an, +3 jours"."""

    parts: list[str] = []
    for amount, singular, plural in (
            (delta.years, "an", "ans"),
            (delta.months, "mois", "mois"),
            (delta.weeks, "semaine", "semaines"),
            (delta.days, "jour", "jours"),
    ):
        if amount:
            parts.append(f"{amount:+d} {_plural(amount, singular, plural)}")
    return ", ".join(parts)


def _describe_changes(mutation: UpdateData) -> list[str]:
    changes: list[str] = []
    if mutation.new_status is not None:
        changes.append(f"statut → {STATUS_LABELS[mutation.new_status]}")
    if mutation.new_progress is not None:
        changes.append(f"progression → {mutation.new_progress}%")
    if mutation.removes_deadline:
        changes.append("deadline → supprimée")
    elif mutation.push_deadline_by is not None:
        changes.append(f"deadline → {format_delta(mutation.push_deadline_by)}")
    elif mutation.new_deadline is not None:
        changes.append(f"deadline → {mutation.new_deadline.strftime('%d/%m/%Y')}")
    if mutation.new_collab:
        changes.append(f"collab → {mutation.new_collab}")
    if mutation.new_style:
        changes.append(f"style → {mutation.new_style}")
    if mutation.new_label:
        changes.append(f"label → {mutation.new_label}")
    if mutation.new_label_final:
        changes.append(f"label final → {mutation.new_label_final}")
    if mutation.new_note:
        changes.append("note ajoutée")
    return changes


def describe_action(
        action_type: CommandType,
        mutation: UpdateData,
        affected_count: int,
        *,
        skipped_count: int = 0,
) -> str:
    """One-line description shown in the confirmation message."""

    if action_type == CommandType.ADD_NOTE:
        if mutation.project_name:
            return f'Ajouter une note au projet "{mutation.project_name}"'
        return f"Ajouter une note à {affected_count} projet(s)"

    description = f"Modifier {affected_count} projet(s)"
    changes = _describe_changes(mutation)
    if changes:
        description += " : " + ", ".join(changes)
    if skipped_count:
        description += f" ({skipped_count} projet(s) ignoré(s), pas de deadline)"
    return description


def confirmation_message(description: str, scope_source: ScopeSource, *, context_note: str | None = None) -> str:
    """Description, where the scope came from, and the confirmation question.

    `context_note` replaces the scope note when the set was recovered from conversation memory.
    """

    if context_note:
        return f"{context_note} {description}. {CONFIRMATION_QUESTION}"
    return f"{description}{_SCOPE_NOTES[scope_source]}. {CONFIRMATION_QUESTION}"
