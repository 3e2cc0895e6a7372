"""Conversation memory: TTL-bound per-user context and reference resolution.

A context older than the TTL (5 minutes by default) is treated as absent on every read; it is
deleted when a reference to it is resolved or by `cleanup_expired`.

Reference detection decides whether a query points back at the previous result
("met les à 80%", "ceux-là", "et passe en terminé"); resolution turns that reference into the
stored working set or into a message asking the user to be explicit.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import Field

from src.memory.store import ContextStore, InMemoryContextStore
from src.nlu.dictionaries import UPDATE_VERB_RE
from src.nlu.normalize import fold_text
from src.nlu.schema import ProjectStatus, QueryType, WireModel

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300

NO_CONTEXT_MESSAGE = (
    "Je n'ai pas de contexte précédent. Pouvez-vous préciser quels projets vous souhaitez modifier ?"
)
EXPIRED_CONTEXT_MESSAGE = "Le contexte a expiré. Pouvez-vous reformuler votre demande ?"


class ReferenceType(StrEnum):
    pronoun = "pronoun"
    demonstrative = "demonstrative"
    implicit = "implicit"


class ConversationContext(WireModel):
    """What the assistant remembers about a user's previous action."""

    last_project_ids: list[str] = Field(default_factory=list)
    last_project_names: list[str] = Field(default_factory=list)
    last_project_count: int = 0
    last_filters: dict[str, Any] = Field(default_factory=dict)
    last_action_type: QueryType | None = None
    last_action_timestamp: float = 0.0
    last_status_filter: ProjectStatus | None = None


_VERB = UPDATE_VERB_RE.pattern
_REFERENCE_RES: tuple[tuple[ReferenceType, tuple[re.Pattern[str], ...]], ...] = (
    (
        ReferenceType.pronoun,
        (
            re.compile(rf"{_VERB}\s*-\s*(?:les|leur|leurs|la|le|them)(?!\w)"),
            re.compile(rf"{_VERB}\s+(?:les|la|le)\s+(?:a|en|comme|au|sur|to)\s"),
            re.compile(r"(?<!\w)(?:les|la|le)\s+(?:mettre|passer|modifier|changer|marquer|pousser|decaler)(?!\w)"),
            re.compile(rf"{_VERB}\s+(?:leur|leurs)(?!\w)"),
            re.compile(r"(?<!\w)(?:them|their)(?!\w)"),
        ),
    ),
    (
        ReferenceType.demonstrative,
        (
            re.compile(r"(?<!\w)(?:ceux|celles|celui|celle)[\s-]*(?:la|ci)(?!\w)"),
            re.compile(r"(?<!\w)ces\s+(?:projets?|derniers|dernieres|tracks?|morceaux)(?!\w)"),
            re.compile(r"(?<!\w)(?:those|these)(?:\s+projects?)?(?!\w)"),
        ),
    ),
    (
        ReferenceType.implicit,
        (
            re.compile(rf"^(?:maintenant|et|puis|ensuite|apres|now|then|and)(?:\s*,)?\s+(?:.*\s)?{_VERB}"),
        ),
    ),
)


def detect_context_reference(query: str) -> ReferenceType | None:
    """Classify a query's reference to the previous result; None means "not a follow-up"."""

    folded = fold_text(query).strip()
    for reference, patterns in _REFERENCE_RES:
        if any(p.search(folded) for p in patterns):
            return reference
    return None


@dataclass(frozen=True)
class ContextResolution:
    """Outcome of resolving a contextual reference against stored memory."""

    reference: ReferenceType | None
    resolved: bool
    project_ids: list[str] = field(default_factory=list)
    filters: dict[str, Any] = field(default_factory=dict)
    message: str | None = None


class ConversationMemory:
    """Per-user context with lazy TTL expiry.

    Args:
        store: Backing key/value store; defaults to an in-process dict.
        ttl_seconds: Age after which a context is treated as absent.
        clock: Returns the current time in seconds (injectable for tests).
    """

    def __init__(
            self,
            store: ContextStore | None = None,
            *,
            ttl_seconds: float = DEFAULT_TTL_SECONDS,
            clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._store: ContextStore = store if store is not None else InMemoryContextStore()
        self._ttl = ttl_seconds
        self._clock = clock

    def _is_expired(self, context: ConversationContext) -> bool:
        return self._clock() - context.last_action_timestamp > self._ttl

    def get(self, user_id: str) -> ConversationContext | None:
        context = self._store.get(user_id)
        if context is None:
            return None
        if self._is_expired(context):
            logger.debug("context expired user_id=%s", user_id)
            return None
        return context

    def update(self, user_id: str, **fields: Any) -> ConversationContext:
        """Merge `fields` into the user's context and refresh its timestamp."""

        current = self.get(user_id)
        base = current.model_dump() if current is not None else {}
        context = ConversationContext.model_validate(
            {**base, **fields, "last_action_timestamp": self._clock()}
        )
        self._store.set(user_id, context)
        return context

    def clear(self, user_id: str) -> None:
        self._store.delete(user_id)

    def cleanup_expired(self) -> int:
        """Delete every expired context; returns how many were removed."""

        removed = 0
        for key in self._store.keys():
            context = self._store.get(key)
            if context is not None and self._is_expired(context):
                self._store.delete(key)
                removed += 1
        if removed:
            logger.info("contexts cleaned removed=%s", removed)
        return removed

    def resolve_reference(self, user_id: str, query: str) -> ContextResolution:
        """Resolve a contextual reference in `query` against the user's stored context.

        A query without a reference resolves to nothing (`reference=None`, no message). A reference
        with no usable context fails with a clarification message instead of guessing a scope.
        """

        reference = detect_context_reference(query)
        if reference is None:
            return ContextResolution(reference=None, resolved=False)

        stored = self._store.get(user_id)
        if stored is None:
            return ContextResolution(reference=reference, resolved=False, message=NO_CONTEXT_MESSAGE)
        if self._is_expired(stored):
            self._store.delete(user_id)
            return ContextResolution(reference=reference, resolved=False, message=EXPIRED_CONTEXT_MESSAGE)

        if stored.last_project_ids:
            count = len(stored.last_project_ids)
            return ContextResolution(
                reference=reference,
                resolved=True,
                project_ids=list(stored.last_project_ids),
                filters=dict(stored.last_filters),
                message=f"Appliquer aux {count} projet(s) précédemment listés.",
            )
        if stored.last_filters:
            return ContextResolution(
                reference=reference,
                resolved=True,
                filters=dict(stored.last_filters),
                message="Appliquer aux projets correspondant aux derniers filtres.",
            )
        return ContextResolution(reference=reference, resolved=False, message=NO_CONTEXT_MESSAGE)
