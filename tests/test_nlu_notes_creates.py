"""Tests for note and project-creation extraction."""

from __future__ import annotations

from datetime import date

from src.nlu.creates import extract_create_data
from src.nlu.normalize import QueryText
from src.nlu.notes import extract_note
from src.nlu.schema import ProjectStatus

TODAY = date(2026, 1, 15)


def test_note_for_named_project() -> None:
    note = extract_note(QueryText.from_display("note pour Magnetize : refaire le mix"))
    assert note == {"project_name": "Magnetize", "new_note": "refaire le mix"}


def test_add_note_phrasing_strips_quotes() -> None:
    note = extract_note(QueryText.from_display('ajoute une note au projet "Sunrise" : caler le drop'))
    assert note == {"project_name": "Sunrise", "new_note": "caler le drop"}


def test_session_note() -> None:
    note = extract_note(QueryText.from_display("session Magnetize du jour, on a refait le mix"))
    assert note == {"project_name": "Magnetize", "new_note": "Session du jour : on a refait le mix"}


def test_no_note() -> None:
    assert extract_note(QueryText.from_display("liste les projets terminés")) is None


def test_create_with_collab() -> None:
    data = extract_create_data(
        QueryText.from_display("ajoute le projet Magnetize avec Kygo"),
        available_collabs=["Kygo"],
        today=TODAY,
    )
    assert data is not None
    assert data.name == "Magnetize"
    assert data.collab == "Kygo"
    assert data.status == ProjectStatus.EN_COURS
    assert data.progress is None


def test_create_with_progress_and_deadline() -> None:
    data = extract_create_data(QueryText.from_display('crée le projet "Sunrise" à 40%'), today=TODAY)
    assert data is not None
    assert data.name == "Sunrise"
    assert data.progress == 40

    data = extract_create_data(QueryText.from_display("crée le projet Sunrise pour demain"), today=TODAY)
    assert data is not None
    assert data.deadline == date(2026, 1, 16)


def test_create_without_name_is_not_a_create() -> None:
    assert extract_create_data(QueryText.from_display("ajoute une note"), today=TODAY) is None
