"""Tests for deadline date resolution."""

from __future__ import annotations

from datetime import date

import pytest

from src.nlu.dates import add_delta, resolve_date_expression
from src.nlu.schema import DeadlineDelta

TODAY = date(2026, 1, 15)


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("aujourd'hui", date(2026, 1, 15)),
        ("demain", date(2026, 1, 16)),
        ("après-demain", date(2026, 1, 17)),
        ("la semaine prochaine", date(2026, 1, 22)),
        ("le mois prochain", date(2026, 2, 15)),
        ("dans 2 mois", date(2026, 3, 15)),
        ("dans une semaine", date(2026, 1, 22)),
        ("in 3 days", date(2026, 1, 18)),
        ("2026-03-01", date(2026, 3, 1)),
        ("15/03", date(2026, 3, 15)),
        ("15/03/27", date(2027, 3, 15)),
    ],
)
def test_resolve_relative_and_numeric_dates(expression: str, expected: date) -> None:
    assert resolve_date_expression(expression, today=TODAY) == expected


def test_day_month_in_the_past_rolls_to_next_year() -> None:
    assert resolve_date_expression("10/01", today=TODAY) == date(2027, 1, 10)


def test_invalid_calendar_day_is_not_a_date() -> None:
    assert resolve_date_expression("31/02", today=TODAY) is None
    assert resolve_date_expression("   ", today=TODAY) is None


def test_month_name_goes_through_dateparser() -> None:
    assert resolve_date_expression("15 mars 2026", today=TODAY) == date(2026, 3, 15)


def test_add_delta_clamps_to_month_end() -> None:
    assert add_delta(date(2026, 1, 31), DeadlineDelta(months=1)) == date(2026, 2, 28)
    assert add_delta(date(2026, 2, 1), DeadlineDelta(weeks=-1, days=2)) == date(2026, 1, 27)
