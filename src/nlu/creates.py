"""Project creation extraction ("ajoute le projet Magnetize en collab avec Kygo")."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date
from typing import Any

from src.nlu.dates import DATE_EXPRESSION, resolve_date_expression
from src.nlu.dictionaries import CREATE_VERB_RE, DEADLINE_NOUN
from src.nlu.filters import match_available
from src.nlu.normalize import QueryText
from src.nlu.schema import CreateData
from src.nlu.status_mentions import find_status_mentions
from src.nlu.styles import find_style

_NAME_RE = re.compile(
    rf"(?:{CREATE_VERB_RE.pattern}(?:\s+(?:un|le|la|mon|a|the))?(?:\s+(?:nouveau|new))?(?:\s+(?:projet|project|track|morceau))?"
    r"|(?<!\w)(?:projet|project))"
    r"\s*:?\s+(?P<name>.+?)"
    r"(?=\s+(?:avec|with|en|a|pour|for|deadline|style|genre|statut|status|feat|featuring)\s|\s*,|\s*$)"
)
_COLLAB_RE = re.compile(r"(?<!\w)(?:avec|with|feat\.?|featuring|ft\.?)\s+(?P<name>[^,]+?)(?=\s+(?:en|a|pour|for|deadline|style|genre|et|and)\s|\s*,|\s*$)")
_PROGRESS_RE = re.compile(r"(?<!\w)(\d{1,3})\s*%")
_DEADLINE_RE = re.compile(
    rf"(?:{DEADLINE_NOUN}\s+(?:(?:le|au|pour\s+le|pour|a|for|on)\s+)?|(?<!\w)(?:pour|for)\s+)(?P<date>{DATE_EXPRESSION})"
)
_QUOTES = "\"'«»“”"
_SKIP_NAMES: frozenset[str] = frozenset({"note", "une note", "a note"})


def extract_create_data(
        query: QueryText,
        *,
        available_collabs: Sequence[str] = (),
        available_styles: Sequence[str] = (),
        today: date,
) -> CreateData | None:
    """Extract a project creation request; a create without a name is not a create."""

    folded = query.folded
    match = _NAME_RE.search(folded)
    if match is None:
        return None

    name = query.group(match, "name").strip().strip(_QUOTES).strip()
    if not name or name.lower() in _SKIP_NAMES:
        return None

    data: dict[str, Any] = {"name": name}
    tail_start = match.end("name")
    tail = QueryText(display=query.display[tail_start:], folded=folded[tail_start:])

    collab_match = _COLLAB_RE.search(tail.folded)
    if collab_match:
        collab = tail.group(collab_match, "name")
        data["collab"] = match_available(collab, available_collabs) or collab

    style = find_style(tail.folded, available_styles)
    if style:
        data["style"] = style

    progress_match = _PROGRESS_RE.search(tail.folded)
    if progress_match and int(progress_match.group(1)) <= 100:
        data["progress"] = int(progress_match.group(1))

    deadline_match = _DEADLINE_RE.search(tail.folded)
    if deadline_match:
        resolved = resolve_date_expression(tail.group(deadline_match, "date"), today=today)
        if resolved is not None:
            data["deadline"] = resolved

    mentions = find_status_mentions(tail.folded)
    if mentions:
        data["status"] = mentions[0].status

    return CreateData.model_validate(data)
