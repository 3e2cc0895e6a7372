"""Deadline mutation extraction.

Three mutually exclusive outcomes, checked in order:
    1) removal ("supprime leur deadline")            -> new_deadline = None
    2) relative push ("pousse leur deadline d'un mois") -> push_deadline_by
    3) absolute set ("met leur deadline à demain")     -> new_deadline = <date>

For removal and push, `has_deadline=True` is recorded as a mutation qualifier in the update data
only; it never becomes a scoping filter here.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import date
from typing import Any

from src.nlu.dates import DATE_EXPRESSION, quantity_value, resolve_date_expression
from src.nlu.dictionaries import (
    DEADLINE_NOUN,
    PUSH_VERBS,
    QUANTITY_ARTICLES,
    REMOVE_VERBS,
    SUBTRACT_VERBS,
    TIME_UNIT,
    UPDATE_VERB_RE,
    alternation,
    time_unit_for,
    words_regex,
)
from src.nlu.normalize import QueryText, fold_text
from src.nlu.schema import DeadlineDelta

logger = logging.getLogger(__name__)

_ARTICLE = r"(?:(?:toutes\s+)?(?:les|la|le|leur|leurs|sa|ses|son|the|their)\s+)"
_REMOVE_VERB_RE = words_regex(REMOVE_VERBS)
_SHIFT_VERB_RE = words_regex(PUSH_VERBS + SUBTRACT_VERBS)
_SUBTRACT_WORDS: frozenset[str] = frozenset(fold_text(v) for v in SUBTRACT_VERBS)
_QUANTITY = rf"(?:\d+|{alternation(QUANTITY_ARTICLES)})"
_DURATION = rf"(?:{_QUANTITY}\s*)?{TIME_UNIT}(?!\w)"

_REMOVE_RE = re.compile(rf"{_REMOVE_VERB_RE.pattern}\s+{_ARTICLE}?{DEADLINE_NOUN}(?!\w)")
_PUSH_NOUN_FIRST_RE = re.compile(
    rf"(?P<verb>{_SHIFT_VERB_RE.pattern})\s+{_ARTICLE}?{DEADLINE_NOUN}\s+(?:des?\s+projets?\s+)?"
    rf"(?P<rest>(?:(?:de\s+(?:plus\s+)?|by\s+|of\s+)?){_DURATION}.*)"
)
_PUSH_DURATION_FIRST_RE = re.compile(
    rf"(?P<verb>{_SHIFT_VERB_RE.pattern})\s+(?P<rest>{_DURATION}(?:\s*(?:et|and|,)\s*{_DURATION})*)"
    rf"\s+(?:a|aux|au|to|from|de|des|du)\s+{_ARTICLE}?{DEADLINE_NOUN}"
)
_PUSH_PRONOUN_RE = re.compile(
    rf"(?P<verb>{_SHIFT_VERB_RE.pattern})\s*(?:-?\s*(?:les|leur|leurs|them)\s+)?(?:projets?\s+)?"
    rf"(?P<rest>(?:de\s+(?:plus\s+)?|d'|by\s+){_DURATION}.*)"
)
_LEADING_CONNECTOR_RE = re.compile(r"^\s*(?:de\s+(?:plus\s+)?|by\s+|of\s+)")
_DURATION_PART_RE = re.compile(
    rf"^\s*(?:(?:et|and|,|plus)\s*)?(?:(?P<qty>{_QUANTITY})\s*)?(?P<unit>{TIME_UNIT})(?!\w)"
)
_SET_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"{UPDATE_VERB_RE.pattern}\s+{_ARTICLE}?{DEADLINE_NOUN}\s+"
        rf"(?:(?:a|au|pour\s+le|pour|le|to|on|for)\s+)?(?P<date>{DATE_EXPRESSION})"
    ),
    re.compile(rf"(?<!\w){DEADLINE_NOUN}\s+(?:a|au|pour\s+le|pour|to|on|for)\s+(?P<date>{DATE_EXPRESSION})"),
    re.compile(
        rf"{_SHIFT_VERB_RE.pattern}\s*(?:-?\s*(?:les|leur|leurs)\s+)?(?:projets?\s+)?"
        rf"(?:a|au|pour\s+le|pour|to)\s+(?P<date>{DATE_EXPRESSION})"
    ),
)


def parse_duration(text: str) -> DeadlineDelta | None:
    """Parse "d'un mois", "2 semaines", "d'une semaine et 3 jours" into a delta (units accumulate)."""

    rest = _LEADING_CONNECTOR_RE.sub("", text, count=1)
    totals: dict[str, int] = defaultdict(int)
    while True:
        match = _DURATION_PART_RE.match(rest)
        if match is None:
            break
        unit = time_unit_for(match.group("unit"))
        if unit is None:
            break
        amount = quantity_value(match.group("qty")) if match.group("qty") else 1
        for key, value in unit.items():
            totals[key] += value * amount
        rest = rest[match.end():]

    if not totals:
        return None
    delta = DeadlineDelta(**totals)
    return None if delta.is_zero() else delta


def _negated(delta: DeadlineDelta) -> DeadlineDelta:
    return DeadlineDelta(**{k: -v for k, v in delta.model_dump(exclude_none=True).items()})


def _find_push(folded: str) -> DeadlineDelta | None:
    for pattern in (_PUSH_NOUN_FIRST_RE, _PUSH_DURATION_FIRST_RE, _PUSH_PRONOUN_RE):
        match = pattern.search(folded)
        if match is None:
            continue
        delta = parse_duration(match.group("rest"))
        if delta is None:
            continue
        verb = match.group("verb").strip()
        if verb in _SUBTRACT_WORDS:
            delta = _negated(delta)
        return delta
    return None


def extract_deadline(query: QueryText, updates: dict[str, Any], *, today: date) -> None:
    """Fill the deadline mutation in `updates` (removal, push, or absolute date)."""

    folded = query.folded

    if _REMOVE_RE.search(folded):
        updates["new_deadline"] = None
        updates["has_deadline"] = True
        return

    delta = _find_push(folded)
    if delta is not None:
        updates["push_deadline_by"] = delta
        updates["has_deadline"] = True
        return

    for pattern in _SET_RES:
        match = pattern.search(folded)
        if match is None:
            continue
        resolved = resolve_date_expression(query.group(match, "date"), today=today)
        if resolved is not None:
            updates["new_deadline"] = resolved
            return
        logger.debug("deadline date not resolved text=%r", match.group("date"))
