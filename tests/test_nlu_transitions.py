"""Tests for status-transition extraction."""

from __future__ import annotations

from typing import Any

import pytest

from src.nlu.normalize import fold_text
from src.nlu.schema import ProjectStatus
from src.nlu.transitions import extract_status_change, find_status_transition, transition_rules

_SAMPLES: dict[ProjectStatus, str] = {
    ProjectStatus.EN_COURS: "en cours",
    ProjectStatus.TERMINE: "terminé",
    ProjectStatus.ANNULE: "annulé",
    ProjectStatus.A_REWORK: "à rework",
    ProjectStatus.GHOST_PRODUCTION: "ghost prod",
    ProjectStatus.ARCHIVE: "archivé",
}
_PAIRS = [(s, t) for s in ProjectStatus for t in ProjectStatus if s != t]


def test_one_rule_per_pair_and_phrasing() -> None:
    assert len(transition_rules()) == len(_PAIRS) * 2


@pytest.mark.parametrize(("source", "target"), _PAIRS)
def test_transition_between_every_pair(source: ProjectStatus, target: ProjectStatus) -> None:
    folded = fold_text(f"passe les projets en {_SAMPLES[source]} en {_SAMPLES[target]}")
    filters: dict[str, Any] = {"status": source}
    updates: dict[str, Any] = {}

    extract_status_change(folded, filters, updates)

    assert updates == {"status": source, "new_status": target}
    assert "status" not in filters


def test_de_a_phrasing() -> None:
    match = find_status_transition(fold_text("passe les projets de terminé à annulé"))
    assert match is not None
    assert match.rule.source == ProjectStatus.TERMINE
    assert match.rule.target == ProjectStatus.ANNULE
    assert match.rule.form == "de_a"


def test_longest_match_keeps_full_status_phrase() -> None:
    match = find_status_transition(fold_text("passe les projets en cours en ghost production"))
    assert match is not None
    assert match.source_text == "en cours"
    assert match.target_text == "ghost production"
    assert "projet" not in match.source_text


def test_single_target_without_source() -> None:
    updates: dict[str, Any] = {}
    extract_status_change(fold_text("passe-les en terminé"), {}, updates)
    assert updates == {"new_status": ProjectStatus.TERMINE}


def test_no_status_means_no_change() -> None:
    updates: dict[str, Any] = {}
    extract_status_change(fold_text("passe leur avancement à 10%"), {}, updates)
    assert updates == {}
