"""Status mentions in folded text and their role (filter vs. new value)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.nlu.dictionaries import ANY_STATUS_RE, UPDATE_VERB_RE, status_from_text
from src.nlu.schema import ProjectStatus

_TARGET_PREFIX_RE = re.compile(r"(?<!\w)(?:a|en|comme|as|to|into|au)\s+(?:(?:le\s+)?statut\s+)?$")
_EMBEDDED_PREPOSITION_RE = re.compile(r"^(?:en|a|in|to)\s")
_SENTENCE_END_RE = re.compile(r"^[\s.!?]*$")


@dataclass(frozen=True)
class StatusMention:
    """A status synonym found in the folded text."""

    status: ProjectStatus
    start: int
    end: int
    text: str


def find_status_mentions(folded: str) -> list[StatusMention]:
    mentions: list[StatusMention] = []
    for match in ANY_STATUS_RE.finditer(folded):
        status = status_from_text(match.group(0))
        if status is not None:
            mentions.append(StatusMention(status=status, start=match.start(), end=match.end(), text=match.group(0)))
    return mentions


def detect_status(folded: str) -> ProjectStatus | None:
    """Return the first status mentioned in the text, if any."""

    mentions = find_status_mentions(folded)
    return mentions[0].status if mentions else None


def _is_target_position(folded: str, mention: StatusMention) -> bool:
    if _TARGET_PREFIX_RE.search(folded[: mention.start]):
        return True
    # "passe les en cours": the status phrase carries its own preposition and ends the sentence.
    return bool(_EMBEDDED_PREPOSITION_RE.match(mention.text)) and bool(
        _SENTENCE_END_RE.match(folded[mention.end:])
    )


def split_status_mentions(folded: str) -> tuple[StatusMention | None, StatusMention | None]:
    """Split status mentions into `(filter, target)`.

    The target is the last mention in target position after an update verb; the filter is the first
    remaining mention.
    """

    mentions = find_status_mentions(folded)
    if not mentions:
        return None, None

    target: StatusMention | None = None
    verb = UPDATE_VERB_RE.search(folded)
    if verb is not None:
        for mention in reversed(mentions):
            if mention.start < verb.end():
                break
            if _is_target_position(folded, mention):
                target = mention
                break

    filter_mention = next((m for m in mentions if m is not target), None)
    return filter_mention, target
