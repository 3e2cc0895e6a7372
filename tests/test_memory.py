"""Tests for conversation memory and contextual reference resolution."""

from __future__ import annotations

import pytest

from src.memory.conversation import (
    EXPIRED_CONTEXT_MESSAGE,
    NO_CONTEXT_MESSAGE,
    ConversationMemory,
    ReferenceType,
    detect_context_reference,
)
from src.memory.store import InMemoryContextStore
from src.nlu.schema import QueryType


class _Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _memory(clock: _Clock, store: InMemoryContextStore | None = None) -> ConversationMemory:
    return ConversationMemory(store, ttl_seconds=300, clock=clock)


def test_context_expires_after_ttl() -> None:
    clock = _Clock()
    memory = _memory(clock)
    memory.update("u1", last_project_ids=["1", "2"], last_project_count=2)

    clock.now += 299
    context = memory.get("u1")
    assert context is not None
    assert context.last_project_ids == ["1", "2"]

    clock.now += 2
    assert memory.get("u1") is None


def test_update_merges_and_refreshes_timestamp() -> None:
    clock = _Clock()
    memory = _memory(clock)
    memory.update("u1", last_project_ids=["1"])

    clock.now += 10
    context = memory.update("u1", last_action_type=QueryType.update)

    assert context.last_project_ids == ["1"]
    assert context.last_action_type == QueryType.update
    assert context.last_action_timestamp == clock.now


def test_update_after_expiry_starts_fresh() -> None:
    clock = _Clock()
    memory = _memory(clock)
    memory.update("u1", last_project_ids=["1"])

    clock.now += 301
    context = memory.update("u1", last_project_count=0)
    assert context.last_project_ids == []


def test_cleanup_expired_removes_only_stale_contexts() -> None:
    clock = _Clock()
    store = InMemoryContextStore()
    memory = _memory(clock, store)
    memory.update("old", last_project_ids=["1"])
    clock.now += 200
    memory.update("fresh", last_project_ids=["2"])
    clock.now += 150

    assert memory.cleanup_expired() == 1
    assert store.keys() == ["fresh"]


def test_clear() -> None:
    memory = _memory(_Clock())
    memory.update("u1", last_project_ids=["1"])
    memory.clear("u1")
    assert memory.get("u1") is None


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ConversationMemory(ttl_seconds=0)


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("met les à 80%", ReferenceType.pronoun),
        ("passe-les en terminé", ReferenceType.pronoun),
        ("pousse leur deadline d'un mois", ReferenceType.pronoun),
        ("modifie ceux-là", ReferenceType.demonstrative),
        ("passe ces projets à 50%", ReferenceType.demonstrative),
        ("maintenant passe tout en terminé", ReferenceType.implicit),
        ("liste les projets terminés", None),
        ("passe tous les projets à 80%", None),
    ],
)
def test_detect_context_reference(query: str, expected: ReferenceType | None) -> None:
    assert detect_context_reference(query) == expected


def test_resolve_reference_without_reference() -> None:
    resolution = _memory(_Clock()).resolve_reference("u1", "liste les projets")
    assert resolution.reference is None
    assert not resolution.resolved
    assert resolution.message is None


def test_resolve_reference_without_context() -> None:
    resolution = _memory(_Clock()).resolve_reference("u1", "met les à 80%")
    assert not resolution.resolved
    assert resolution.message == NO_CONTEXT_MESSAGE


def test_resolve_reference_with_expired_context() -> None:
    clock = _Clock()
    store = InMemoryContextStore()
    memory = _memory(clock, store)
    memory.update("u1", last_project_ids=["1"])
    clock.now += 301

    resolution = memory.resolve_reference("u1", "met les à 80%")
    assert not resolution.resolved
    assert resolution.message == EXPIRED_CONTEXT_MESSAGE
    assert len(store) == 0


def test_resolve_reference_to_listed_ids() -> None:
    memory = _memory(_Clock())
    memory.update("u1", last_project_ids=["1", "2"], last_filters={"status": "TERMINE"})

    resolution = memory.resolve_reference("u1", "modifie ceux-là")
    assert resolution.resolved
    assert resolution.reference == ReferenceType.demonstrative
    assert resolution.project_ids == ["1", "2"]
    assert resolution.message == "Appliquer aux 2 projet(s) précédemment listés."


def test_resolve_reference_to_last_filters() -> None:
    memory = _memory(_Clock())
    memory.update("u1", last_filters={"status": "TERMINE"})

    resolution = memory.resolve_reference("u1", "met les à 80%")
    assert resolution.resolved
    assert resolution.project_ids == []
    assert resolution.filters == {"status": "TERMINE"}
