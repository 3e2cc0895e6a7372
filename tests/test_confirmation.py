"""Tests for the confirmation-pending action registry."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from src.nlu.schema import UpdateData
from src.router.confirmation import PendingActionError, PendingActionRegistry
from src.router.schema import CommandType, PendingConfirmationAction, Project, ScopeSource


def _action(action_id: str = "action_1") -> PendingConfirmationAction:
    return PendingConfirmationAction(
        action_id=action_id,
        type=CommandType.UPDATE,
        mutation=UpdateData(new_progress=80),
        affected_projects=[Project(id="1", name="Magnetize")],
        affected_project_ids=["1"],
        scope_source=ScopeSource.ExplicitFilter,
        description="Modifier 1 projet(s) : progression → 80%",
    )


def test_confirm_runs_executor_once() -> None:
    registry = PendingActionRegistry()
    calls: list[tuple[list[str], UpdateData]] = []

    def _executor(ids: Sequence[str], mutation: UpdateData) -> int:
        calls.append((list(ids), mutation))
        return len(ids)

    action_id = registry.register("u1", _action())
    assert registry.confirm("u1", action_id, _executor) == 1
    assert calls[0][0] == ["1"]
    assert calls[0][1].new_progress == 80

    with pytest.raises(PendingActionError):
        registry.confirm("u1", action_id, _executor)
    assert len(calls) == 1


def test_actions_are_private_to_their_user() -> None:
    registry = PendingActionRegistry()
    action_id = registry.register("u1", _action())

    with pytest.raises(PendingActionError):
        registry.get("u2", action_id)
    assert registry.pending("u2") == []
    assert [a.action_id for a in registry.pending("u1")] == [action_id]


def test_cancel_consumes_the_action() -> None:
    registry = PendingActionRegistry()
    action_id = registry.register("u1", _action())

    cancelled = registry.cancel("u1", action_id)
    assert cancelled.action_id == action_id
    assert registry.pending("u1") == []
    with pytest.raises(PendingActionError):
        registry.cancel("u1", action_id)


def test_pending_action_requires_scope_source() -> None:
    payload = _action().model_dump()
    del payload["scope_source"]

    with pytest.raises(ValueError):
        PendingConfirmationAction.model_validate(payload)


class _Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_unconfirmed_actions_expire() -> None:
    clock = _Clock()
    registry = PendingActionRegistry(ttl_seconds=300, clock=clock)
    for index in range(50):
        registry.register("u1", _action(f"action_{index}"))
    assert len(registry) == 50

    clock.now += 301
    registry.register("u1", _action("fresh"))

    assert len(registry) == 1
    assert [a.action_id for a in registry.pending("u1")] == ["fresh"]
    with pytest.raises(PendingActionError):
        registry.confirm("u1", "action_0", lambda ids, mutation: len(ids))


def test_action_is_confirmable_within_ttl() -> None:
    clock = _Clock()
    registry = PendingActionRegistry(ttl_seconds=300, clock=clock)
    action_id = registry.register("u1", _action())

    clock.now += 299
    assert registry.confirm("u1", action_id, lambda ids, mutation: len(ids)) == 1


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PendingActionRegistry(ttl_seconds=0)
