"""Tests for `route_project_command` scope resolution and result shapes."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from src.conversational.responder import fallback_response
from src.memory.conversation import EXPIRED_CONTEXT_MESSAGE, NO_CONTEXT_MESSAGE, ConversationMemory
from src.nlu.parser import UPDATE_CLARIFICATIONS
from src.nlu.schema import DISPLAY_FIELDS, ProjectStatus
from src.router import router as router_module
from src.router.confirmation import PendingActionRegistry
from src.router.router import CAPABILITIES_TEXT, EMPTY_SCOPE_MESSAGE, GENERIC_ERROR_MESSAGE, route_project_command
from src.router.schema import (
    AddNoteResult,
    CountResult,
    CreateResult,
    GeneralResult,
    ListResult,
    Project,
    RouterContext,
    ScopeSource,
    UpdateResult,
)

TODAY = date(2026, 1, 15)


class _Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeResponder:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def respond(self, prompt: str, *, project_count: int) -> str:
        self.prompts.append(prompt)
        return f"Salut ({project_count})"


def _projects() -> list[Project]:
    return [
        Project(
            id="1",
            name="Magnetize",
            status=ProjectStatus.EN_COURS,
            progress=40,
            deadline=date(2026, 2, 1),
            collab="Kygo",
        ),
        Project(id="2", name="Sunrise", status=ProjectStatus.TERMINE, progress=100, deadline=date(2026, 2, 1)),
        Project(id="3", name="Nightfall", status=ProjectStatus.TERMINE, progress=90),
    ]


def _context(**kwargs: Any) -> RouterContext:
    kwargs.setdefault("projects", _projects())
    kwargs.setdefault("available_collabs", ["Kygo"])
    kwargs.setdefault("today", TODAY)
    return RouterContext(**kwargs)


@pytest.mark.asyncio
async def test_update_uses_last_listed_ids_without_filter() -> None:
    result = await route_project_command("passe leur avancement à 10%", _context(last_listed_project_ids=["1"]))

    assert isinstance(result, UpdateResult)
    action = result.pending_action
    assert action.scope_source == ScopeSource.LastListedIds
    assert action.affected_project_ids == ["1"]
    assert action.mutation.new_progress == 10
    assert result.message == (
        "Modifier 1 projet(s) : progression → 10% (projets précédemment listés). Confirmez-vous cette action ?"
    )


@pytest.mark.asyncio
async def test_explicit_filter_wins_over_working_set() -> None:
    result = await route_project_command("passe les projets terminés à 80%", _context(last_listed_project_ids=["1"]))

    assert isinstance(result, UpdateResult)
    assert result.pending_action.scope_source == ScopeSource.ExplicitFilter
    assert result.pending_action.affected_project_ids == ["2", "3"]
    assert result.message == "Modifier 2 projet(s) : progression → 80%. Confirmez-vous cette action ?"


@pytest.mark.asyncio
async def test_all_projects_scope_is_announced() -> None:
    result = await route_project_command("passe tous les projets à 80%", _context())

    assert isinstance(result, UpdateResult)
    assert result.pending_action.scope_source == ScopeSource.AllProjects
    assert result.pending_action.affected_project_ids == ["1", "2", "3"]
    assert result.message.endswith("(tous vos projets). Confirmez-vous cette action ?")


@pytest.mark.asyncio
async def test_status_transition_scope() -> None:
    result = await route_project_command("passe les projets en cours en annulé", _context())

    assert isinstance(result, UpdateResult)
    assert result.pending_action.affected_project_ids == ["1"]
    assert result.pending_action.mutation.new_status == ProjectStatus.ANNULE
    assert result.pending_action.preview_diff[0].changes[0].field == "status"


@pytest.mark.asyncio
async def test_reference_without_context_asks_for_clarification() -> None:
    result = await route_project_command("met les à 80%", _context())

    assert isinstance(result, GeneralResult)
    assert result.response == NO_CONTEXT_MESSAGE


@pytest.mark.asyncio
async def test_memory_working_set_is_reused() -> None:
    memory = ConversationMemory(clock=_Clock())
    context = _context(user_id="u1")

    listed = await route_project_command("liste les projets terminés", context, memory=memory)
    assert isinstance(listed, ListResult)
    assert listed.listed_project_ids == ["2", "3"]

    result = await route_project_command("met les à 80%", context, memory=memory)
    assert isinstance(result, UpdateResult)
    assert result.pending_action.scope_source == ScopeSource.LastListedIds
    assert result.pending_action.affected_project_ids == ["2", "3"]


@pytest.mark.asyncio
async def test_expired_memory_is_reported() -> None:
    clock = _Clock()
    memory = ConversationMemory(clock=clock)
    context = _context(user_id="u1")

    await route_project_command("liste les projets terminés", context, memory=memory)
    clock.now += 301

    result = await route_project_command("met les à 80%", context, memory=memory)
    assert isinstance(result, GeneralResult)
    assert result.response == EXPIRED_CONTEXT_MESSAGE


@pytest.mark.asyncio
async def test_deadline_push_skips_projects_without_deadline() -> None:
    result = await route_project_command("pousse la deadline d'un mois", _context(last_listed_project_ids=["2", "3"]))

    assert isinstance(result, UpdateResult)
    action = result.pending_action
    assert action.affected_project_ids == ["2"]
    assert action.skipped_count == 1
    assert result.message == (
        "Modifier 1 projet(s) : deadline → +1 mois (1 projet(s) ignoré(s), pas de deadline)"
        " (projets précédemment listés). Confirmez-vous cette action ?"
    )
    change = action.preview_diff[0].changes[0]
    assert change.field == "deadline"
    assert change.old == date(2026, 2, 1)
    assert change.new == date(2026, 3, 1)


@pytest.mark.asyncio
async def test_empty_scope() -> None:
    result = await route_project_command("passe les projets archivés à 80%", _context())

    assert isinstance(result, GeneralResult)
    assert result.response == EMPTY_SCOPE_MESSAGE


@pytest.mark.asyncio
async def test_list_and_count() -> None:
    listed = await route_project_command("liste les projets terminés", _context())
    assert isinstance(listed, ListResult)
    assert listed.count == 2
    assert listed.message == "J'ai trouvé 2 projet(s)."
    assert listed.fields_to_show == ["progress", "status", "deadline"]
    assert listed.scope_source == ScopeSource.ExplicitFilter

    counted = await route_project_command("combien de projets terminés ?", _context())
    assert isinstance(counted, CountResult)
    assert counted.count == 2
    assert counted.message == "Vous avez 2 projet(s)."


@pytest.mark.asyncio
async def test_detail_request_relists_working_set() -> None:
    result = await route_project_command("en détails", _context(last_listed_project_ids=["3", "2"]))

    assert isinstance(result, ListResult)
    assert [p.id for p in result.projects] == ["3", "2"]
    assert result.fields_to_show == list(DISPLAY_FIELDS)
    assert result.scope_source == ScopeSource.LastListedIds


@pytest.mark.asyncio
async def test_capabilities_question() -> None:
    result = await route_project_command("Que peux-tu faire ?", _context())

    assert isinstance(result, GeneralResult)
    assert result.response == CAPABILITIES_TEXT


@pytest.mark.asyncio
async def test_create() -> None:
    result = await route_project_command("ajoute le projet Aurora avec Kygo", _context())

    assert isinstance(result, CreateResult)
    assert result.create_data.name == "Aurora"
    assert result.create_data.collab == "Kygo"
    assert result.message == 'Création du projet "Aurora" en cours...'


@pytest.mark.asyncio
async def test_note_targets_named_project() -> None:
    registry = PendingActionRegistry()
    result = await route_project_command(
        "note pour Magnetize : refaire le mix",
        _context(user_id="u1"),
        registry=registry,
    )

    assert isinstance(result, AddNoteResult)
    assert result.pending_action.affected_project_ids == ["1"]
    assert result.message == 'Ajouter une note au projet "Magnetize". Confirmez-vous cette action ?'
    assert [a.action_id for a in registry.pending("u1")] == [result.pending_action.action_id]


@pytest.mark.asyncio
async def test_note_for_unknown_project() -> None:
    result = await route_project_command("note pour Inconnu : test", _context())

    assert isinstance(result, GeneralResult)
    assert result.response == 'Je n\'ai trouvé aucun projet nommé "Inconnu".'


@pytest.mark.asyncio
async def test_conversational_query_uses_responder() -> None:
    responder = _FakeResponder()
    result = await route_project_command("t'en penses quoi ?", _context(), responder=responder)  # type: ignore[arg-type]

    assert isinstance(result, GeneralResult)
    assert result.response == "Salut (3)"
    assert responder.prompts == ["t'en penses quoi ?"]

    fallback = await route_project_command("t'en penses quoi ?", _context())
    assert isinstance(fallback, GeneralResult)
    assert fallback.response == fallback_response(3)


@pytest.mark.asyncio
async def test_router_never_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(router_module, "parse_query", _boom)

    result = await route_project_command("liste les projets", _context())
    assert isinstance(result, GeneralResult)
    assert result.response == GENERIC_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_new_value_first_keeps_the_progress_filter() -> None:
    projects = [
        Project(id="1", name="Magnetize", progress=50),
        Project(id="2", name="Sunrise", progress=10),
    ]
    result = await route_project_command(
        "met à 80% les projets à 50%", _context(projects=projects, last_listed_project_ids=["1", "2"])
    )

    assert isinstance(result, UpdateResult)
    action = result.pending_action
    assert action.scope_source == ScopeSource.ExplicitFilter
    assert action.affected_project_ids == ["1"]
    assert action.mutation.new_progress == 80


@pytest.mark.asyncio
async def test_reference_to_previous_update_reuses_its_set() -> None:
    memory = ConversationMemory(clock=_Clock())
    context = _context(user_id="u1")

    first = await route_project_command("passe les projets terminés à 60%", context, memory=memory)
    assert isinstance(first, UpdateResult)

    result = await route_project_command("met les à 80%", context, memory=memory)
    assert isinstance(result, UpdateResult)
    action = result.pending_action
    assert action.scope_source == ScopeSource.LastListedIds
    assert action.affected_project_ids == ["2", "3"]
    assert result.message == (
        "Appliquer aux projets correspondant aux derniers filtres. "
        "Modifier 2 projet(s) : progression → 80%. Confirmez-vous cette action ?"
    )


@pytest.mark.asyncio
async def test_update_without_new_value_is_not_listed() -> None:
    result = await route_project_command(
        "pousse la deadline des projets avec une deadline d'une semaine", _context()
    )

    assert isinstance(result, GeneralResult)
    assert result.response == UPDATE_CLARIFICATIONS["fr"]
