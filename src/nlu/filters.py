"""Filter extraction: which projects does the query talk about.

Each recognized field is detected independently from the folded text; display values (names) are
sliced from the display text. The detector also reports which fields the user asked to see.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.nlu.dates import DATE_EXPRESSION, resolve_date_expression
from src.nlu.dictionaries import (
    DEADLINE_NOUN,
    NAME,
    PROGRESS_NOUN,
    UPDATE_VERB_RE,
    aliases_for,
    alternation,
)
from src.nlu.normalize import QueryText, fold_text
from src.nlu.schema import DISPLAY_FIELDS, ParsedFilters
from src.nlu.status_mentions import split_status_mentions
from src.nlu.styles import find_style

logger = logging.getLogger(__name__)

_PERCENT = r"\s*(?:%|pourcents?|percent)"
_NUMBER = r"(\d{1,3})"

_NO_PROGRESS_RE = re.compile(
    rf"(?<!\w)(?:sans|pas\s+d'|pas\s+de|aucun|aucune)\s*{PROGRESS_NOUN}(?!\w)"
    rf"|(?<!\w)0{_PERCENT}\s*d'\s*{PROGRESS_NOUN}|(?<!\w)no\s+progress(?!\w)|(?<!\w)not\s+started(?!\w)"
)
_BETWEEN_RE = re.compile(
    rf"(?<!\w)(?:entre|between)\s+{_NUMBER}(?:{_PERCENT})?\s+(?:et|and)\s+{_NUMBER}(?:{_PERCENT})?"
)
_MAX_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?<!\w)(?:sous|en\s+dessous\s+de|moins\s+de|inferieure?s?\s+a|under|below|less\s+than)"
        rf"\s+(?:les\s+)?{_NUMBER}(?P<pct>{_PERCENT})?"
    ),
    re.compile(rf"<\s*=?\s*{_NUMBER}(?P<pct>{_PERCENT})?"),
    re.compile(rf"(?<!\w){_NUMBER}(?P<pct>{_PERCENT})\s*max(?:imum)?(?!\w)"),
)
_MIN_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?<!\w)(?:plus\s+de|au[\s-]+dessus\s+de|superieure?s?\s+a|over|above|more\s+than|at\s+least|au\s+moins)"
        rf"\s+(?:les\s+)?{_NUMBER}(?P<pct>{_PERCENT})?"
    ),
    re.compile(rf">\s*=?\s*{_NUMBER}(?P<pct>{_PERCENT})?"),
    re.compile(rf"(?<!\w){_NUMBER}(?P<pct>{_PERCENT})\s*min(?:imum)?(?!\w)"),
)
# Exact "à N%" forms that are unambiguously filters even when an update verb is present.
_EXACT_FILTER_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w)(?:a|en)\s+{_NUMBER}{_PERCENT}\s*d'\s*{PROGRESS_NOUN}"),
    re.compile(rf"(?<!\w)projets?\s+(?:a|en|de)\s+{_NUMBER}{_PERCENT}"),
    re.compile(rf"(?<!\w)(?:a|en)\s+{_NUMBER}{_PERCENT}\s*(?:et|,)\s*(?:(?:les|leur|leurs)\s+)?{UPDATE_VERB_RE.pattern}"),
)
# Exact forms that are filters only when nothing is being updated.
_EXACT_READ_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w){PROGRESS_NOUN}\s+(?:de|a|=|:)?\s*{_NUMBER}{_PERCENT}"),
    re.compile(rf"(?<!\w)(?:a|en)\s+{_NUMBER}{_PERCENT}"),
)
_PERCENT_VALUE_RE = re.compile(rf"(?<![\w.])\d{{1,3}}{_PERCENT}")

_COLLAB_WORDS = alternation(aliases_for("collab") + ("ft",))
_COLLAB_RE = re.compile(
    rf"(?<!\w)(?:en\s+)?{_COLLAB_WORDS}\.?\s+(?:(?:avec|with|de|:)\s+)?(?P<name>{NAME})"
)
_AVEC_RE = re.compile(rf"(?<!\w)(?:avec|with)\s+(?P<name>{NAME})")
_COLLAB_IGNORE: frozenset[str] = frozenset(
    {
        "deadline", "deadlines", "statut", "style", "label", "le", "la", "les", "un", "une", "des",
        "projet", "projets", "tout", "tous", "moi", "toi", "lui", "eux", "avancement", "progression",
        "date", "note", "notes", "infos", "details",
    }
)
_STYLE_ALIAS_RE = re.compile(rf"(?<!\w){alternation(aliases_for('style'))}\s+(?:(?:de|du|:)\s+)?(?P<name>{NAME})")
_LABEL_RE = re.compile(rf"(?<!\w)label\s+(?!final\b)(?:(?:est|:|chez|de)\s+)?(?P<name>{NAME})")
_LABEL_FINAL_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w)label\s+final\s+(?:(?:est|:|chez|de)\s+)?(?P<name>{NAME})"),
    re.compile(rf"(?<!\w)signes?\s+chez\s+(?P<name>{NAME})"),
)

_HAS_DEADLINE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w)(?:avec|ayant)\s+(?:une\s+|des\s+|la\s+|leur\s+)?{DEADLINE_NOUN}(?!\w)"),
    re.compile(rf"(?<!\w)qui\s+ont\s+(?:une\s+|des\s+|la\s+)?{DEADLINE_NOUN}(?!\w)"),
    re.compile(rf"(?<!\w){DEADLINE_NOUN}\s+prevues?(?!\w)"),
    re.compile(rf"(?<!\w)(?:with|having)\s+(?:a\s+)?{DEADLINE_NOUN}(?!\w)"),
)
_NO_DEADLINE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w)sans\s+(?:de\s+|la\s+)?{DEADLINE_NOUN}(?!\w)"),
    re.compile(rf"(?<!\w)pas\s+de\s+{DEADLINE_NOUN}(?!\w)"),
    re.compile(rf"(?<!\w)(?:without\s+(?:a\s+)?|no\s+){DEADLINE_NOUN}(?!\w)"),
)
_DEADLINE_DATE_RE = re.compile(
    rf"(?<!\w){DEADLINE_NOUN}\s+(?:le|au|pour\s+le|pour|prevues?\s+(?:le|pour)|on|for)\s+(?P<date>{DATE_EXPRESSION})"
)

_SHOW_ALL_RE = re.compile(
    r"(?<!\w)(?:avec|with|et|affiche|montre|show|display)\s+(?:moi\s+)?"
    r"(?:tout|toutes?\s+les\s+infos?|toutes?\s+les\s+informations|les\s+details|details|infos?|all|everything)(?!\w)"
    r"|(?<!\w)en\s+details?(?!\w)"
)
_SHOW_PREFIX = r"(?<!\w)(?:avec|with|et|and|affiche|montre|show)\s+(?:(?:les|le|la|leur|leurs|l')\s*)?"


@dataclass(frozen=True)
class FilterDetection:
    """Raw detected filter values plus the fields the user asked to display."""

    values: dict[str, Any] = field(default_factory=dict)
    fields_to_show: list[str] = field(default_factory=list)

    @property
    def filters(self) -> ParsedFilters:
        return ParsedFilters.model_validate(self.values)


def match_available(name: str, available: Sequence[str]) -> str | None:
    """Case-insensitive exact match, then containment in either direction."""

    wanted = fold_text(name).strip()
    if not wanted:
        return None
    for candidate in available:
        if fold_text(candidate) == wanted:
            return candidate
    for candidate in available:
        folded = fold_text(candidate)
        if wanted in folded or folded in wanted:
            return candidate
    return None


def _progress_context(folded: str) -> bool:
    return "%" in folded or bool(re.search(rf"(?<!\w){PROGRESS_NOUN}(?!\w)", folded))


def _bounded(value: str) -> int | None:
    number = int(value)
    return number if 0 <= number <= 100 else None


def _detect_progress(folded: str, values: dict[str, Any]) -> None:
    if _NO_PROGRESS_RE.search(folded):
        values["no_progress"] = True
        return

    match = _BETWEEN_RE.search(folded)
    if match:
        low, high = _bounded(match.group(1)), _bounded(match.group(2))
        if low is not None and high is not None:
            values["min_progress"], values["max_progress"] = min(low, high), max(low, high)
            return

    context = _progress_context(folded)
    for pattern in _MAX_RES:
        match = pattern.search(folded)
        if match and (match.group("pct") or context):
            bound = _bounded(match.group(1))
            if bound is not None:
                values["max_progress"] = bound
                break
    for pattern in _MIN_RES:
        match = pattern.search(folded)
        if match and (match.group("pct") or context):
            bound = _bounded(match.group(1))
            if bound is not None:
                values["min_progress"] = bound
                break
    if "min_progress" in values or "max_progress" in values:
        return

    has_update = UPDATE_VERB_RE.search(folded) is not None
    exact_patterns = _EXACT_FILTER_RES if has_update else _EXACT_FILTER_RES + _EXACT_READ_RES
    for pattern in exact_patterns:
        match = pattern.search(folded)
        # With an update verb, a lone value is the new value; it is a filter only next to another
        # value ("à 80% les projets à 50%", "les projets à 50% à 80%").
        if match and (
                not has_update
                or re.search(r"\d", folded[match.end():])
                or _PERCENT_VALUE_RE.search(folded[: match.start()])
        ):
            bound = _bounded(match.group(1))
            if bound is not None:
                values["min_progress"] = values["max_progress"] = bound
                return


def _detect_collab(query: QueryText, available_collabs: Sequence[str], values: dict[str, Any]) -> None:
    folded = query.folded
    for match in _COLLAB_RE.finditer(folded):
        name = query.group(match, "name")
        if fold_text(name.split()[0]) in _COLLAB_IGNORE:
            continue
        values["collab"] = match_available(name, available_collabs) or name
        return

    # A bare "avec X" only counts when X is a known collaborator.
    for match in _AVEC_RE.finditer(folded):
        name = query.group(match, "name")
        if fold_text(name.split()[0]) in _COLLAB_IGNORE:
            continue
        resolved = match_available(name, available_collabs)
        if resolved:
            values["collab"] = resolved
            return


def _detect_style(query: QueryText, available_styles: Sequence[str], values: dict[str, Any]) -> None:
    match = _STYLE_ALIAS_RE.search(query.folded)
    if match:
        name = query.group(match, "name")
        values["style"] = find_style(name, available_styles) or name
        return

    style = find_style(query.folded, available_styles)
    if style:
        values["style"] = style


def _detect_labels(query: QueryText, values: dict[str, Any]) -> None:
    for pattern in _LABEL_FINAL_RES:
        match = pattern.search(query.folded)
        if match:
            values["label_final"] = query.group(match, "name")
            break

    match = _LABEL_RE.search(query.folded)
    if match:
        values["label"] = query.group(match, "name")


def _detect_deadline(folded: str, today: date, values: dict[str, Any]) -> None:
    if any(p.search(folded) for p in _NO_DEADLINE_RES):
        values["has_deadline"] = False
    elif any(p.search(folded) for p in _HAS_DEADLINE_RES):
        values["has_deadline"] = True

    if UPDATE_VERB_RE.search(folded) is None:
        match = _DEADLINE_DATE_RE.search(folded)
        if match:
            resolved = resolve_date_expression(match.group("date"), today=today)
            if resolved is not None:
                values["deadline_date"] = resolved


def detect_fields_to_show(folded: str) -> list[str]:
    """Return the display fields the user explicitly asked for."""

    if _SHOW_ALL_RE.search(folded):
        return list(DISPLAY_FIELDS)

    fields: list[str] = []
    for name in DISPLAY_FIELDS:
        if re.search(rf"{_SHOW_PREFIX}{alternation(aliases_for(name))}(?!\w)", folded):
            fields.append(name)
    return fields


def detect_filters(
        query: QueryText,
        *,
        available_collabs: Sequence[str] = (),
        available_styles: Sequence[str] = (),
        today: date,
) -> FilterDetection:
    """Detect filters in a query.

    Returns:
        A `FilterDetection` with only the detected keys set in `values`.
    """

    folded = query.folded
    values: dict[str, Any] = {}

    status_filter, _ = split_status_mentions(folded)
    if status_filter is not None:
        values["status"] = status_filter.status

    _detect_progress(folded, values)
    _detect_collab(query, available_collabs, values)
    _detect_style(query, available_styles, values)
    _detect_labels(query, values)
    _detect_deadline(folded, today, values)

    detection = FilterDetection(values=values, fields_to_show=detect_fields_to_show(folded))
    logger.debug("filters detected fields=%s", sorted(values))
    return detection
