"""Tests for progress target extraction."""

from __future__ import annotations

from typing import Any

from src.nlu.normalize import fold_text
from src.nlu.progress import extract_progress


def _extract(text: str, filters: dict[str, Any] | None = None) -> tuple[dict[str, Any], dict[str, Any]]:
    qualifiers = dict(filters or {})
    updates: dict[str, Any] = {}
    extract_progress(fold_text(text), qualifiers, updates)
    return qualifiers, updates


def test_percent_target() -> None:
    assert _extract("passe leur avancement à 10%")[1] == {"new_progress": 10}


def test_bare_number_after_verb() -> None:
    assert _extract("mets les à 50")[1] == {"new_progress": 50}


def test_from_to_range_sets_filter_and_target() -> None:
    qualifiers, updates = _extract("passe les projets de 20% à 60%")
    assert qualifiers == {"min_progress": 20, "max_progress": 20}
    assert updates == {"min_progress": 20, "max_progress": 20, "new_progress": 60}


def test_filter_bound_is_not_the_target() -> None:
    _, updates = _extract("passe les projets sous 70% à 80%", {"max_progress": 70})
    assert updates == {"new_progress": 80}


def test_no_progress_means_zero() -> None:
    qualifiers, updates = _extract("passe les projets sans avancement", {"no_progress": True})
    assert updates == {"new_progress": 0}
    assert qualifiers == {}


def test_out_of_range_value_is_ignored() -> None:
    assert _extract("passe les projets à 150%")[1] == {}
