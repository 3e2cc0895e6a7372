"""Progress target extraction ("passe leur avancement à 10%").

Resolution order:
    1) "de X% à Y": range filter X and target Y.
    2) A bare integer (no "%") right after an update verb or closing the sentence.
    3) The last "N%" that is not a filter bound and not followed by a progress noun or a date.
    4) Named patterns ("met l'avancement à N").
"Sans avancement" / "no progress" sets the target to 0.
"""

from __future__ import annotations

import re
from typing import Any

from src.nlu.dates import DATE_EXPRESSION
from src.nlu.dictionaries import DEADLINE_NOUN, PROGRESS_NOUN, SCOPE_PRONOUNS, UPDATE_VERB_RE, alternation

_PRONOUN = alternation(SCOPE_PRONOUNS)
_PERCENT = r"\s*(?:%|pourcents?|percent)"

_FROM_TO_RE = re.compile(rf"(?<!\w)(?:de|from)\s+(\d{{1,3}}){_PERCENT}?\s+(?:a|to)\s+(\d{{1,3}})(?:{_PERCENT})?(?![\w%])")
_BARE_AFTER_VERB_RE = re.compile(
    rf"{UPDATE_VERB_RE.pattern}\s*(?:-?\s*(?:{_PRONOUN})\s*)?(?:projets?\s+)?(?:a|en|to)\s+(\d{{1,3}})(?!\s*(?:[%\d/.\-]|pourcent|percent))(?!\w)"
)
_BARE_TRAILING_RE = re.compile(rf"(?<!\w)(?:a|en|to)\s+(\d{{1,3}})\s*[.!]?$")
_PERCENT_RE = re.compile(rf"(?<![\w.])(\d{{1,3}}){_PERCENT}")
_FOLLOWED_BY_NOUN_RE = re.compile(rf"^\s*(?:d'|de\s+)\s*{PROGRESS_NOUN}")
_FOLLOWED_BY_DATE_RE = re.compile(rf"^\s*(?:(?:pour|avant|le|au|d'ici)\s+)?{DATE_EXPRESSION}")
_NAMED_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<!\w){PROGRESS_NOUN}\s+(?:a|en|de|to|at)\s+(\d{{1,3}})(?:{_PERCENT})?(?![\w%])"),
    re.compile(rf"(?<!\w)(?:a|en)\s+(\d{{1,3}})(?:{_PERCENT})?\s+d'\s*{PROGRESS_NOUN}"),
)
_ZERO_PROGRESS_RE = re.compile(
    rf"(?<!\w)(?:sans|pas\s+d'|aucun)\s*{PROGRESS_NOUN}(?!\w)|(?<!\w)no\s+progress(?!\w)"
)
_DEADLINE_BEFORE_RE = re.compile(rf"{DEADLINE_NOUN}\s*$")
_TRAILING_PREPOSITION_RE = re.compile(r"\s*(?<!\w)(?:a|au|en|to)\s*$")


def _bounded(value: str) -> int | None:
    number = int(value)
    return number if 0 <= number <= 100 else None


def _preceded_by_deadline(folded: str, index: int) -> bool:
    before = _TRAILING_PREPOSITION_RE.sub("", folded[:index])
    return bool(_DEADLINE_BEFORE_RE.search(before))


def _is_filter_bound(value: int, filters: dict[str, Any]) -> bool:
    return value in (filters.get("min_progress"), filters.get("max_progress"))


def extract_progress(folded: str, filters: dict[str, Any], updates: dict[str, Any]) -> None:
    """Set `new_progress` (and a range qualifier for "de X% à Y") in `updates`."""

    match = _FROM_TO_RE.search(folded)
    if match and ("%" in match.group(0) or re.search(PROGRESS_NOUN, folded)):
        low, target = _bounded(match.group(1)), _bounded(match.group(2))
        if low is not None and target is not None:
            filters["min_progress"] = filters["max_progress"] = low
            updates["min_progress"] = updates["max_progress"] = low
            updates["new_progress"] = target
            return

    if _ZERO_PROGRESS_RE.search(folded) and UPDATE_VERB_RE.search(folded):
        updates["new_progress"] = 0
        filters.pop("no_progress", None)
        updates.pop("no_progress", None)
        return

    for pattern in (_BARE_AFTER_VERB_RE, _BARE_TRAILING_RE):
        match = pattern.search(folded)
        if match is None or _preceded_by_deadline(folded, match.start(1)):
            continue
        value = _bounded(match.group(1))
        if value is not None:
            updates["new_progress"] = value
            return

    for match in reversed(list(_PERCENT_RE.finditer(folded))):
        value = _bounded(match.group(1))
        if value is None:
            continue
        after = folded[match.end():]
        if _FOLLOWED_BY_NOUN_RE.match(after) or _FOLLOWED_BY_DATE_RE.match(after):
            continue
        if _is_filter_bound(value, filters):
            continue
        updates["new_progress"] = value
        return

    for pattern in _NAMED_RES:
        match = pattern.search(folded)
        if match:
            value = _bounded(match.group(1))
            if value is not None and not _is_filter_bound(value, filters):
                updates["new_progress"] = value
                return
