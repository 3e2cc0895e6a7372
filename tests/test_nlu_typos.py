"""Tests for the typo-tolerance pre-pass."""

from __future__ import annotations

from src.nlu.typos import correct_typos


def test_misspelled_status_is_corrected() -> None:
    assert correct_typos("passe Magnetize en termnié") == "passe Magnetize en termine"


def test_known_and_short_words_are_kept() -> None:
    assert correct_typos("liste les projets terminés") == "liste les projets terminés"
    assert correct_typos("met à 80") == "met à 80"


def test_unrelated_names_are_kept() -> None:
    assert correct_typos("note pour Nightfall") == "note pour Nightfall"
