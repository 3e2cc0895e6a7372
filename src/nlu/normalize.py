"""Text normalization for deterministic matching.

Two views of the same query are kept side by side:
    - the display text (accents and case preserved) used to extract user-facing values,
    - the folded text (accents stripped, lowercased, ASCII apostrophes) used for matching.

Folding is done character by character so that both views have the same length and a regex span
found on the folded text slices the matching display value.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

_APOSTROPHES: dict[str, str] = {
    "’": "'",
    "‘": "'",
    "ʼ": "'",
    "`": "'",
    "´": "'",
}
_MULTISPACE_RE = re.compile(r"\s+")


def fold_char(char: str) -> str:
    """Fold a single character; the result is always exactly one character."""

    if char in _APOSTROPHES:
        return _APOSTROPHES[char]

    base = "".join(c for c in unicodedata.normalize("NFD", char) if not unicodedata.combining(c))
    if len(base) != 1:
        base = char

    lowered = base.lower()
    return lowered if len(lowered) == 1 else base


def fold_text(text: str) -> str:
    """Fold diacritics, case and typographic apostrophes while preserving string length."""

    return "".join(fold_char(c) for c in text or "")


def collapse_whitespace(text: str) -> str:
    return _MULTISPACE_RE.sub(" ", text or "").strip()


def normalize_text(text: str) -> str:
    """Normalize user text for matching (idempotent).

    Normalization is intentionally conservative:
        - Fold diacritics (é -> e, à -> a).
        - Lowercase.
        - Replace typographic apostrophes with `'`.
        - Collapse whitespace.
    """

    return collapse_whitespace(fold_text(text))


def strip_outer_quotes(text: str) -> str:
    """Strip one leading and one trailing quote, double then single, each side independently."""

    value = text
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    if value.startswith("'"):
        value = value[1:]
    if value.endswith("'"):
        value = value[:-1]
    return value


@dataclass(frozen=True)
class QueryText:
    """A cleaned query with its aligned folded view."""

    display: str
    folded: str

    @classmethod
    def from_display(cls, display: str) -> QueryText:
        return cls(display=display, folded=fold_text(display))

    def slice(self, start: int, end: int) -> str:
        """Return the display text for a span found on the folded text."""

        return self.display[start:end].strip()

    def group(self, match: re.Match[str], name: str | int) -> str:
        start, end = match.span(name)
        return self.slice(start, end)
