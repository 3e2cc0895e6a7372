"""Tests for filter detection."""

from __future__ import annotations

from datetime import date
from typing import Any

from src.nlu.filters import FilterDetection, detect_fields_to_show, detect_filters, match_available
from src.nlu.normalize import QueryText, fold_text
from src.nlu.schema import DISPLAY_FIELDS, ProjectStatus

TODAY = date(2026, 1, 15)


def _detect(text: str, **kwargs: Any) -> FilterDetection:
    return detect_filters(QueryText.from_display(text), today=TODAY, **kwargs)


def test_status_filter() -> None:
    assert _detect("liste les projets terminés").values == {"status": ProjectStatus.TERMINE}
    assert _detect("liste mes ghost prod").values == {"status": ProjectStatus.GHOST_PRODUCTION}


def test_progress_bounds() -> None:
    assert _detect("combien de projets sous les 70%").values == {"max_progress": 70}
    assert _detect("projets à plus de 50%").values == {"min_progress": 50}
    assert _detect("liste les projets entre 20 et 50%").values == {"min_progress": 20, "max_progress": 50}
    assert _detect("liste les projets sans avancement").values == {"no_progress": True}


def test_exact_progress_is_a_filter_only_without_update_verb() -> None:
    assert _detect("liste les projets à 50%").values == {"min_progress": 50, "max_progress": 50}
    assert "min_progress" not in _detect("passe les projets à 50%").values


def test_exact_progress_after_the_new_value_is_a_filter() -> None:
    values = _detect("met à 80% les projets à 50%").values
    assert values == {"min_progress": 50, "max_progress": 50}


def test_collab_is_matched_against_available_names() -> None:
    detection = _detect("liste les projets en collab avec kygo", available_collabs=["Kygo"])
    assert detection.values == {"collab": "Kygo"}

    detection = _detect("liste les projets avec Avicii", available_collabs=["Kygo"])
    assert "collab" not in detection.values


def test_style_and_labels() -> None:
    assert _detect("liste les projets de style techno").values == {"style": "Techno"}
    assert _detect("liste les projets dnb").values == {"style": "Drum and Bass"}
    assert _detect("liste les projets signés chez Spinnin").values == {"label_final": "Spinnin"}


def test_deadline_presence_and_date() -> None:
    assert _detect("liste les projets avec une deadline").values == {"has_deadline": True}
    assert _detect("liste les projets sans deadline").values == {"has_deadline": False}

    detection = _detect("liste les projets avec deadline le 15/03")
    assert detection.values == {"has_deadline": True, "deadline_date": date(2026, 3, 15)}


def test_filters_model_is_built_from_detected_values() -> None:
    filters = _detect("combien de projets terminés sous les 70%").filters
    assert filters.present_fields() == {"status": ProjectStatus.TERMINE, "max_progress": 70}


def test_fields_to_show() -> None:
    assert detect_fields_to_show(fold_text("liste les projets terminés avec tout")) == list(DISPLAY_FIELDS)
    assert detect_fields_to_show(fold_text("liste les projets avec la deadline et le style")) == ["deadline", "style"]
    assert detect_fields_to_show(fold_text("liste les projets")) == []


def test_match_available() -> None:
    assert match_available("kygo", ["Avicii", "Kygo"]) == "Kygo"
    assert match_available("Martin", ["Martin Garrix"]) == "Martin Garrix"
    assert match_available("Zedd", ["Kygo"]) is None
