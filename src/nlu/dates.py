"""Deadline date resolution (calendar days, no time of day).

Relative phrases ("demain", "dans 2 mois", "next week") are resolved against an explicit `today`
so results are deterministic. Absolute day/month phrases ("15 mars 2026") go through dateparser.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta

import dateparser
from dateutil.relativedelta import relativedelta

from src.nlu.dictionaries import QUANTITY_ARTICLES, TIME_UNIT, alternation, time_unit_for
from src.nlu.normalize import fold_text
from src.nlu.schema import DeadlineDelta

logger = logging.getLogger(__name__)

_MONTH_NAMES: tuple[str, ...] = (
    "janvier", "février", "mars", "avril", "mai", "juin", "juillet", "août", "septembre",
    "octobre", "novembre", "décembre",
    "january", "february", "march", "april", "may", "june", "july", "august", "september",
    "october", "november", "december",
)
_MONTH = alternation(_MONTH_NAMES)
_QUANTITY = rf"(?:\d+|{alternation(QUANTITY_ARTICLES)})"

_TODAY_RE = re.compile(r"^(?:aujourd'?hui|today)$")
_DAY_AFTER_TOMORROW_RE = re.compile(r"^(?:apres[\s-]*demain|the\s+day\s+after\s+tomorrow|day\s+after\s+tomorrow)$")
_TOMORROW_RE = re.compile(r"^(?:demain|tomorrow)$")
_NEXT_WEEK_RE = re.compile(r"^(?:(?:la\s+)?semaine\s+pro(?:chaine)?|next\s+week)$")
_NEXT_MONTH_RE = re.compile(r"^(?:(?:le\s+|au\s+)?mois\s+prochain|next\s+month)$")
_IN_N_UNITS_RE = re.compile(rf"^(?:dans|in)\s+(?P<qty>{_QUANTITY})\s+(?P<unit>{TIME_UNIT})$")
_ISO_RE = re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})$")
_NUMERIC_RE = re.compile(r"^(?P<d>\d{1,2})[/.](?P<m>\d{1,2})(?:[/.](?P<y>\d{2}|\d{4}))?$")

# Searchable on folded text; the matched span is then handed to `resolve_date_expression`.
DATE_EXPRESSION = (
    r"(?:apres[\s-]*demain|(?:the\s+)?day\s+after\s+tomorrow|aujourd'?hui|today|demain|tomorrow"
    r"|(?:la\s+)?semaine\s+pro(?:chaine)?\b|next\s+week|(?:le\s+|au\s+)?mois\s+prochain|next\s+month"
    rf"|(?:dans|in)\s+{_QUANTITY}\s+{TIME_UNIT}\b"
    r"|\d{4}-\d{1,2}-\d{1,2}|\d{1,2}[/.]\d{1,2}(?:[/.](?:\d{4}|\d{2}))?"
    rf"|(?:le\s+)?\d{{1,2}}(?:er)?\s+{_MONTH}(?:\s+\d{{4}})?"
    rf"|{_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?)"
)
DATE_EXPRESSION_RE = re.compile(rf"(?<!\w){DATE_EXPRESSION}")


def quantity_value(token: str) -> int:
    """Parse a quantity token: digits, or an article form meaning one."""

    value = fold_text(token).strip()
    if value.isdigit():
        return int(value)
    return 1


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_with_dateparser(expression: str, today: date) -> date | None:
    value = re.sub(r"^(?:le|the)\s+", "", expression.strip(), flags=re.IGNORECASE)
    parsed = dateparser.parse(
        value,
        languages=["fr", "en"],
        settings={
            "DATE_ORDER": "DMY",
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": datetime.combine(today, time.min),
        },
    )
    if parsed is None:
        logger.debug("date not understood expression=%r", expression)
        return None
    return parsed.date()


def resolve_date_expression(expression: str, *, today: date) -> date | None:
    """Resolve a date phrase to a calendar day; returns `None` if the phrase is not a date."""

    folded = re.sub(r"\s+", " ", fold_text(expression)).strip()
    if not folded:
        return None

    if _TODAY_RE.match(folded):
        return today
    if _DAY_AFTER_TOMORROW_RE.match(folded):
        return today + timedelta(days=2)
    if _TOMORROW_RE.match(folded):
        return today + timedelta(days=1)
    if _NEXT_WEEK_RE.match(folded):
        return today + timedelta(days=7)
    if _NEXT_MONTH_RE.match(folded):
        return today + relativedelta(months=1)

    match = _IN_N_UNITS_RE.match(folded)
    if match:
        unit = time_unit_for(match.group("unit")) or {}
        amount = quantity_value(match.group("qty"))
        return add_delta(today, DeadlineDelta(**{k: v * amount for k, v in unit.items()}))

    match = _ISO_RE.match(folded)
    if match:
        return _safe_date(int(match.group("y")), int(match.group("m")), int(match.group("d")))

    match = _NUMERIC_RE.match(folded)
    if match:
        year_text = match.group("y")
        if year_text is None:
            resolved = _safe_date(today.year, int(match.group("m")), int(match.group("d")))
            if resolved is not None and resolved < today:
                resolved = _safe_date(today.year + 1, resolved.month, resolved.day)
            return resolved
        year = int(year_text)
        if year < 100:
            year += 2000
        return _safe_date(year, int(match.group("m")), int(match.group("d")))

    return _parse_with_dateparser(expression, today)


def add_delta(value: date, delta: DeadlineDelta) -> date:
    """Shift a date by a delta; month/year arithmetic clamps to the end of month."""

    return value + relativedelta(
        days=delta.days or 0,
        weeks=delta.weeks or 0,
        months=delta.months or 0,
        years=delta.years or 0,
    )
