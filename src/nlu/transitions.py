"""Status-transition extraction ("passe les projets en cours en annulé").

Transitions are modelled as an explicit, ordered rule list: one rule per ordered pair of distinct
statuses and per phrasing ("A en B", "de A à B"). Every rule is evaluated, candidates are
validated, and the longest accepted match wins; ties keep the earliest rule in list order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal

from src.nlu.dictionaries import STATUS_VERB_RE, status_alternation, status_pattern
from src.nlu.schema import ProjectStatus
from src.nlu.status_mentions import split_status_mentions

logger = logging.getLogger(__name__)

TransitionForm = Literal["en", "de_a"]

# Hand-written because "ghost"/"gost" are short and collide with unrelated words.
_GHOST_PATTERN = r"(?:(?:ghost|gost)[\s-]*prod(?:uction)?s?|ghosts?|gosts?)"
_PROJECT_WORD_RE = re.compile(r"(?<!\w)projets?(?!\w)")
_GHOST_WORD_RE = re.compile(r"ghost|gost")
_PREFIX = (
    rf"{STATUS_VERB_RE.pattern}\s+"
    r"(?:(?:les|leurs?|ces|mes|nos|tous\s+les|toutes\s+les)\s+)?(?:projets?\s+)?"
)


@dataclass(frozen=True)
class TransitionRule:
    """One candidate phrasing for a `source -> target` status rewrite."""

    source: ProjectStatus
    target: ProjectStatus
    form: TransitionForm
    pattern: re.Pattern[str]

    @property
    def name(self) -> str:
        return f"{self.form}:{self.source}->{self.target}"


@dataclass(frozen=True)
class TransitionMatch:
    rule: TransitionRule
    text: str
    source_text: str
    target_text: str

    @property
    def length(self) -> int:
        return len(self.text)


def _status_part(status: ProjectStatus) -> str:
    if status == ProjectStatus.GHOST_PRODUCTION:
        return _GHOST_PATTERN
    return status_alternation(status)


def _build_pattern(source: ProjectStatus, target: ProjectStatus, form: TransitionForm) -> re.Pattern[str]:
    src = _status_part(source)
    dst = _status_part(target)
    if form == "en":
        body = rf"(?:en\s+)?(?P<source>{src})\s+(?:en|to|into)\s+(?P<target>{dst})"
    else:
        body = rf"(?:de|from)\s+(?P<source>{src})\s+(?:a|to)\s+(?P<target>{dst})"
    return re.compile(rf"{_PREFIX}{body}(?!\w)")


@lru_cache(maxsize=1)
def transition_rules() -> tuple[TransitionRule, ...]:
    """All transition rules in priority order (status declaration order, "en" before "de_a")."""

    rules: list[TransitionRule] = []
    for source in ProjectStatus:
        for target in ProjectStatus:
            if source == target:
                continue
            for form in ("en", "de_a"):
                rules.append(
                    TransitionRule(source=source, target=target, form=form, pattern=_build_pattern(source, target, form))
                )
    return tuple(rules)


def _is_valid(rule: TransitionRule, source_text: str, target_text: str) -> bool:
    if _PROJECT_WORD_RE.search(source_text) or _PROJECT_WORD_RE.search(target_text):
        return False
    if not status_pattern(rule.source).fullmatch(source_text):
        return False
    if not status_pattern(rule.target).fullmatch(target_text):
        return False
    if rule.source == ProjectStatus.GHOST_PRODUCTION and not _GHOST_WORD_RE.search(source_text):
        return False
    if rule.target == ProjectStatus.GHOST_PRODUCTION and not _GHOST_WORD_RE.search(target_text):
        return False
    return True


def find_status_transition(folded: str) -> TransitionMatch | None:
    """Return the longest validated transition in the folded text, if any."""

    best: TransitionMatch | None = None
    for rule in transition_rules():
        match = rule.pattern.search(folded)
        if match is None:
            continue
        candidate = TransitionMatch(
            rule=rule,
            text=match.group(0),
            source_text=match.group("source"),
            target_text=match.group("target"),
        )
        if not _is_valid(rule, candidate.source_text, candidate.target_text):
            logger.debug("transition rejected rule=%s text=%r", rule.name, candidate.text)
            continue
        if best is None or candidate.length > best.length:
            best = candidate
    return best


def extract_status_change(folded: str, filters: dict[str, Any], updates: dict[str, Any]) -> None:
    """Fill `status` / `new_status` in `updates` from a transition or a single target status."""

    transition = find_status_transition(folded)
    if transition is not None:
        updates["status"] = transition.rule.source
        updates["new_status"] = transition.rule.target
        if filters.get("status") == transition.rule.source:
            del filters["status"]
        logger.debug("transition matched rule=%s", transition.rule.name)
        return

    _, target = split_status_mentions(folded)
    if target is not None:
        updates["new_status"] = target.status
