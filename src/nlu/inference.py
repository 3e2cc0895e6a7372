"""Status inference for follow-up updates ("passe-les en terminé" after "liste les projets en cours")."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from src.nlu.dictionaries import ANY_STATUS_RE, SCOPE_PRONOUNS, UPDATE_VERB_RE, alternation
from src.nlu.normalize import fold_text
from src.nlu.schema import HistoryMessage, ProjectStatus
from src.nlu.status_mentions import detect_status, split_status_mentions

logger = logging.getLogger(__name__)

_RECENT_USER_MESSAGES = 3

_FOLLOW_UP_RE = re.compile(
    rf"{UPDATE_VERB_RE.pattern}\s*-?\s*(?:{alternation(SCOPE_PRONOUNS)})\s*"
    rf"(?:(?:a|en|comme|as|to)\s+)?{ANY_STATUS_RE.pattern}"
)


def is_follow_up_update(folded: str) -> bool:
    """True for "verb + pronoun + à/en/comme + status" sentences."""

    return _FOLLOW_UP_RE.search(folded) is not None


def _status_from_filters(last_filters: Mapping[str, Any]) -> ProjectStatus | None:
    value = last_filters.get("status")
    if not isinstance(value, str):
        return None
    try:
        return ProjectStatus(value)
    except ValueError:
        return detect_status(fold_text(value))


def infer_status_filter(
        folded: str,
        *,
        has_status_filter: bool,
        new_status: ProjectStatus | None,
        last_filters: Mapping[str, Any],
        history: Sequence[HistoryMessage],
) -> ProjectStatus | None:
    """Infer the missing status filter of a follow-up update.

    The previous turn's filters win; otherwise the last three user messages are scanned, most
    recent first. Returns None when the query is not a follow-up or nothing is found.
    """

    if has_status_filter or new_status is None or not is_follow_up_update(folded):
        return None

    status = _status_from_filters(last_filters)
    if status is not None:
        logger.debug("status inferred source=last_filters status=%s", status)
        return status

    user_messages = [m.content for m in history if m.role == "user"][-_RECENT_USER_MESSAGES:]
    for content in reversed(user_messages):
        # Only a status the message filtered on counts; a new value ("en terminé") is skipped.
        mention, _ = split_status_mentions(fold_text(content))
        if mention is not None:
            status = mention.status
            logger.debug("status inferred source=history status=%s", status)
            return status
    return None
