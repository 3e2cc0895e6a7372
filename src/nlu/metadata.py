"""Collaborator / style / label rewrites.

Two shapes are supported for each field:
    - two-sided "filter-to-new-value" ("collab avec X à Y", "de style X à Y"),
    - single-sided "set to Y" ("passe la collab à Y", "change le style en techno").
When a single-sided value was also picked up as a filter by the filter detector, that filter is
dropped: the value is the target, not a scope.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from src.nlu.dictionaries import NAME, aliases_for, alternation, status_from_text
from src.nlu.filters import match_available
from src.nlu.normalize import QueryText, fold_text
from src.nlu.styles import find_style

_COLLAB_WORDS = alternation(aliases_for("collab"))
_STYLE_WORDS = alternation(aliases_for("style"))
_TO = r"(?:a|en|vers|to|par|by|:)"

_COLLAB_TWO_SIDED_RE = re.compile(
    rf"(?<!\w){_COLLAB_WORDS}\s+(?:(?:avec|with|de)\s+)?(?P<old>{NAME})\s+(?:a|en|vers|to|par|by)\s+(?P<new>{NAME})"
)
_COLLAB_SINGLE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w){_COLLAB_WORDS}\s+{_TO}\s+(?P<new>{NAME})"),
    re.compile(rf"(?<!\w)(?:en|avec)\s+(?:collab|collaboration|feat)\s+(?:(?:avec|with)\s+)?(?P<new>{NAME})"),
)
_STYLE_TWO_SIDED_RE = re.compile(
    rf"(?<!\w)(?:(?:de|du|from)\s+)?{_STYLE_WORDS}\s+(?P<old>{NAME})\s+(?:a|en|vers|to)\s+(?P<new>{NAME})"
)
_STYLE_SINGLE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w){_STYLE_WORDS}\s+{_TO}\s+(?P<new>{NAME})"),
    re.compile(rf"(?<!\w)(?:en|au)\s+style\s+(?P<new>{NAME})"),
)
_LABEL_RE = re.compile(rf"(?<!\w)label\s+(?!final\b){_TO}\s+(?P<new>{NAME})")
_LABEL_FINAL_RE = re.compile(rf"(?<!\w)label\s+final\s+{_TO}\s+(?P<new>{NAME})")

_VALUE_IGNORE: frozenset[str] = frozenset(
    {"cours", "attente", "termine", "tous", "tout", "jour", "projet", "projets", "demain", "moi", "eux", "rien"}
)


def _usable(value: str) -> bool:
    folded = fold_text(value).strip()
    if not folded or folded.split()[0] in _VALUE_IGNORE:
        return False
    return status_from_text(folded) is None


def _drop_same_filter(field: str, value: str, filters: dict[str, Any], updates: dict[str, Any]) -> None:
    current = filters.get(field)
    if isinstance(current, str) and fold_text(current) == fold_text(value):
        del filters[field]
        updates.pop(field, None)


def _extract_collab(query: QueryText, filters: dict[str, Any], updates: dict[str, Any], available: Sequence[str]) -> None:
    match = _COLLAB_TWO_SIDED_RE.search(query.folded)
    if match and _usable(query.group(match, "new")):
        old = query.group(match, "old")
        old = match_available(old, available) or old
        new = query.group(match, "new")
        filters["collab"] = updates["collab"] = old
        updates["new_collab"] = match_available(new, available) or new
        return

    for pattern in _COLLAB_SINGLE_RES:
        match = pattern.search(query.folded)
        if match and _usable(query.group(match, "new")):
            new = query.group(match, "new")
            updates["new_collab"] = match_available(new, available) or new
            _drop_same_filter("collab", updates["new_collab"], filters, updates)
            return


def _extract_style(query: QueryText, filters: dict[str, Any], updates: dict[str, Any], available: Sequence[str]) -> None:
    match = _STYLE_TWO_SIDED_RE.search(query.folded)
    if match and _usable(query.group(match, "new")):
        old = query.group(match, "old")
        new = query.group(match, "new")
        filters["style"] = updates["style"] = find_style(old, available) or old
        updates["new_style"] = find_style(new, available) or new
        return

    for pattern in _STYLE_SINGLE_RES:
        match = pattern.search(query.folded)
        if match and _usable(query.group(match, "new")):
            new = query.group(match, "new")
            updates["new_style"] = find_style(new, available) or new
            _drop_same_filter("style", updates["new_style"], filters, updates)
            return


def _extract_labels(query: QueryText, filters: dict[str, Any], updates: dict[str, Any]) -> None:
    match = _LABEL_FINAL_RE.search(query.folded)
    if match:
        updates["new_label_final"] = query.group(match, "new")
        _drop_same_filter("label_final", updates["new_label_final"], filters, updates)

    match = _LABEL_RE.search(query.folded)
    if match:
        updates["new_label"] = query.group(match, "new")
        _drop_same_filter("label", updates["new_label"], filters, updates)


def extract_metadata(
        query: QueryText,
        filters: dict[str, Any],
        updates: dict[str, Any],
        *,
        available_collabs: Sequence[str] = (),
        available_styles: Sequence[str] = (),
) -> None:
    """Fill `new_collab` / `new_style` / `new_label` / `new_label_final` in `updates`."""

    _extract_collab(query, filters, updates, available_collabs)
    _extract_style(query, filters, updates, available_styles)
    _extract_labels(query, filters, updates)
