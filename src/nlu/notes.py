"""Note extraction for a single named project ("note pour Magnetize : refaire le mix")."""

from __future__ import annotations

import re
from typing import Any

from src.nlu.normalize import QueryText

_PROJECT_PREFIX = r"(?:(?:le\s+)?(?:projet|project|track|morceau)\s+)?"

_NOTE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"^\s*note\s+(?:pour|sur|a|au|de|for|on)\s+{_PROJECT_PREFIX}(?P<name>.+?)\s*:\s*(?P<content>.+)$"
    ),
    re.compile(
        rf"(?<!\w)(?:ajoute|ajouter|rajoute|add)\s+(?:une\s+|la\s+|a\s+)?note\s+(?:a|au|pour|sur|to|for|on)\s+"
        rf"{_PROJECT_PREFIX}(?P<name>.+?)\s*(?::|,|disant|qui\s+dit|saying)\s*(?P<content>.+)$"
    ),
)
_SESSION_RE = re.compile(r"^\s*session\s+(?:de\s+|d'|sur\s+)?(?P<name>.+?)\s+du\s+jour\s*[,:]\s*(?P<content>.+)$")
_QUOTES = "\"'«»“”"


def _clean_name(value: str) -> str:
    return value.strip().strip(_QUOTES).strip()


def extract_note(query: QueryText) -> dict[str, Any] | None:
    """Return `{project_name, new_note}` if the query adds a note to a named project."""

    folded = query.folded
    for pattern in _NOTE_RES:
        match = pattern.search(folded)
        if match:
            name = _clean_name(query.group(match, "name"))
            content = query.group(match, "content")
            if name and content:
                return {"project_name": name, "new_note": content}

    match = _SESSION_RE.search(folded)
    if match:
        name = _clean_name(query.group(match, "name"))
        content = query.group(match, "content")
        if name and content:
            return {"project_name": name, "new_note": f"Session du jour : {content}"}

    return None
