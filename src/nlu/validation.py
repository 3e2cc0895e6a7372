"""Input validation and sanitization for `parse_query`.

Validation errors are raised as `InputValidationError` and converted into a safe "not understood"
result at the parser boundary; they never reach the router or the caller.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings
from src.nlu.normalize import collapse_whitespace, strip_outer_quotes
from src.nlu.schema import HistoryMessage


class InputValidationError(ValueError):
    """Raised when a parser input has the wrong shape or size."""


@dataclass(frozen=True)
class Limits:
    """Size ceilings applied to parser inputs."""

    max_query_length: int = 10_000
    max_available_values: int = 1_000
    max_history_messages: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> Limits:
        return cls(
            max_query_length=settings.max_query_length,
            max_available_values=settings.max_available_values,
            max_history_messages=settings.max_history_messages,
        )


DEFAULT_LIMITS = Limits()

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_query(query: Any, *, limits: Limits = DEFAULT_LIMITS) -> str:
    """Validate and clean a raw query into display text.

    Raises:
        InputValidationError: If the query is not a string, too long, or empty once cleaned.
    """

    if not isinstance(query, str):
        raise InputValidationError("La requête doit être une chaîne de caractères")
    if len(query) > limits.max_query_length:
        raise InputValidationError(
            f"La requête est trop longue (maximum {limits.max_query_length} caractères)"
        )

    value = strip_outer_quotes(query.strip()).strip()
    value = _CONTROL_CHARS_RE.sub("", value)
    value = unicodedata.normalize("NFC", collapse_whitespace(value))
    if not value:
        raise InputValidationError("La requête ne peut pas être vide")
    return value


def validate_available_values(values: Any, *, name: str, limits: Limits = DEFAULT_LIMITS) -> list[str]:
    """Validate a caller-supplied list of collaborators or styles.

    Non-string and blank items are dropped; the rest are trimmed.
    """

    if values is None:
        return []
    if not isinstance(values, list | tuple):
        raise InputValidationError(f"{name} doit être une liste")
    if len(values) > limits.max_available_values:
        raise InputValidationError(f"{name} est trop long (maximum {limits.max_available_values} éléments)")
    return [item.strip() for item in values if isinstance(item, str) and item.strip()]


def validate_history(history: Any, *, limits: Limits = DEFAULT_LIMITS) -> list[HistoryMessage]:
    """Keep the last valid conversation turns.

    Only the last `max_history_messages` entries are considered; entries with an unknown role or
    blank/oversized content are dropped.
    """

    if history is None:
        return []
    if not isinstance(history, list | tuple):
        raise InputValidationError("L'historique de conversation doit être une liste")

    messages: list[HistoryMessage] = []
    for item in list(history)[-limits.max_history_messages:]:
        if isinstance(item, HistoryMessage):
            messages.append(item)
            continue
        if not isinstance(item, Mapping):
            continue
        role = item.get("role")
        content = item.get("content")
        if role not in ("user", "assistant") or not isinstance(content, str):
            continue
        content = content.strip()
        if not content or len(content) > limits.max_query_length:
            continue
        messages.append(HistoryMessage(role=role, content=content))
    return messages


def _is_filter_value(value: Any) -> bool:
    if value is None or isinstance(value, str | int | float | bool):
        return True
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def validate_last_filters(last_filters: Any) -> dict[str, Any]:
    """Keep only scalar (or list-of-string) entries of a previous filter object."""

    if last_filters is None:
        return {}
    if not isinstance(last_filters, Mapping):
        raise InputValidationError("Les derniers filtres doivent être un objet")
    return {str(k): v for k, v in last_filters.items() if _is_filter_value(v)}
