"""Query classification (list / count / update / create / search, plus conversational flags).

Patterns run on folded text (no accents, lowercase). Verb tables come from the lexical
dictionary; the conversational heuristics are kept here because they describe sentence shapes
rather than vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.nlu.dictionaries import (
    COUNT_WORD_RE,
    CREATE_VERB_RE,
    LIST_VERB_RE,
    PUSH_VERBS,
    QUANTITY_ARTICLES,
    TIME_UNIT,
    UPDATE_VERB_RE,
    alternation,
)
from src.nlu.schema import Language, QueryType

_META_RE = re.compile(
    r"tu sais faire|tes capacit|tes possibilit|tes fonctionnalit|que peux[\s-]?tu|que sais[\s-]?tu faire"
    r"|what can you|qui es[\s-]?tu|tu t'?appelles|who are you|aide[\s-]?moi|help me"
    r"|comment (?:ca|ça) marche|how does it work"
)
_EXTRA_UPDATE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:met|mettre)\s+a\s+jour"),
    re.compile(r"^(?:deadline|date limite)\s+(?:a|pour)\s"),
    re.compile(r"(?:en\s+)?(?:collab|collaborateur)\s+avec\s+[\w\s]+\s+a\s"),
    re.compile(rf"(?<!\w){alternation(PUSH_VERBS)}\s+(?:\d+|{alternation(QUANTITY_ARTICLES)})\s*{TIME_UNIT}(?!\w)"),
)
_QUESTION_LIST_RE = re.compile(
    r"(?<!\w)(?:quels?|quelles?|lesquels|which|what)\s+(?:sont|are|projets?|projects?|mes|nos|tes|vos)(?!\w)"
)
_ENGLISH_RE = re.compile(
    r"(?<!\w)(?:how|many|project|projects|under|list|show|which|what|with|no\s*progress|in\s*the\s*works"
    r"|finished|completed|cancelled|my|the|set|push|all)(?!\w)"
)
_PROJECT_RE = re.compile(r"(?<!\w)(?:projets?|projects?)(?!\w)")
_NON_MUSICAL_WORDS = (
    r"politique|loi|reforme|societe|economique|social|educatif|culturel|scientifique|recherche|"
    r"construction|batiment|immobilier|developpement|numerique|informatique|web|site|application|"
    r"logiciel|software"
)
_NON_MUSICAL_RES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"projet\s+(?:de\s+(?:loi|societe|recherche|construction)|{_NON_MUSICAL_WORDS})(?!\w)"),
    re.compile(rf"(?<!\w)(?:{_NON_MUSICAL_WORDS})\s+(?:de\s+)?(?:projet|project)"),
)
_ASSISTANT_VERBS = r"(?:as|a|geres?|fais|fait|manage|manages|have|has)"
_ASSISTANT_PROJECTS_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?<!\w)(?:tes|vos|ton|votre|your)\s+(?:projets?|projects?)"),
    re.compile(r"(?:projets?|projects?)\s+(?:de\s+)?(?:toi|vous|you)(?!\w)"),
    re.compile(rf"(?<!\w)(?:tu|vous|you)\s+{_ASSISTANT_VERBS}\s+(?:des?\s+)?(?:projets?|projects?)"),
    re.compile(rf"(?:projets?|projects?)[^?]*\s(?:tu|vous|you)\s+{_ASSISTANT_VERBS}(?!\w)"),
    re.compile(rf"(?:quels?|which|what)\s+(?:projets?|projects?)\s+(?:tu|vous|you)\s+{_ASSISTANT_VERBS}"),
)
_CONVERSATIONAL_OPENER_RE = re.compile(
    r"^(?:ok|alors|et|ouais|oui|bah|ben|eh|ah|oh|hein|dis|ecoute|regarde|tiens|voila|voici|bon|bien"
    r"|d'accord|daccord|okay|oke|okey)(?!\w)"
)
_CONVERSATIONAL_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:^|\s)(?:et|alors|ok|ouais|oui|bah|ben|hein|dis|ecoute|regarde|tiens|voila|bon|bien|d'accord|okay)"
        r"\s+(?:concernant|pour|sur|a\s+propos\s+de|nos|mes|les|des)\s+(?:projets?|projects?)"
    ),
    re.compile(r"(?:concernant|pour|sur|a\s+propos\s+de)\s+(?:nos|mes|les|des)\s+(?:projets?|projects?)\s*\??$"),
    re.compile(r"(?:t'en|tu\s+en|vous\s+en)\s+penses?\s+quoi|qu'?est[\s-]?ce\s+que\s+tu\s+en\s+penses?"),
    re.compile(r"what\s+do\s+you\s+think|tu\s+penses?\s+quoi"),
    re.compile(r"^(?:ca\s+fait|c'est|that'?s|it'?s)\s"),
    re.compile(r"(?:non|hein|tu\s+trouves?\s+pas|n'?est[\s-]?ce\s+pas)\s*\??$"),
)
_OPEN_QUESTION_RE = re.compile(r"^(?:qu'?est[\s-]?ce|que|quoi|comment|pourquoi|ou|quand|qui)(?!\w)")


@dataclass(frozen=True)
class QueryClassification:
    """Flags describing what kind of sentence the user typed."""

    is_meta_question: bool
    is_update: bool
    is_create: bool
    is_count: bool
    is_list: bool
    lang: Language
    has_action_verb: bool
    has_project_mention: bool
    is_question_about_assistant_projects: bool
    is_conversational_question: bool
    understood: bool

    @property
    def is_question(self) -> bool:
        """A read request (list/count) that does not also ask for a change."""

        return (self.is_list or self.is_count) and not self.is_update

    @property
    def query_type(self) -> QueryType:
        """Type by priority: update > create > count > list > search."""

        if self.is_update:
            return QueryType.update
        if self.is_create:
            return QueryType.create
        if self.is_count:
            return QueryType.count
        if self.is_list:
            return QueryType.list
        return QueryType.search


def detect_language(folded: str) -> Language:
    return "en" if _ENGLISH_RE.search(folded) else "fr"


def _is_conversational(folded: str, *, has_action_verb: bool, is_count: bool, is_list: bool, has_filters: bool) -> bool:
    text = folded.strip()
    if _CONVERSATIONAL_OPENER_RE.search(text):
        return True
    if any(p.search(text) for p in _CONVERSATIONAL_RES):
        return True
    return bool(_OPEN_QUESTION_RE.search(text)) and not is_count and not is_list and not has_filters


def classify_query(folded: str, *, has_filters: bool) -> QueryClassification:
    """Classify a folded query.

    Args:
        folded: Query text after folding (see `src.nlu.normalize`).
        has_filters: Whether the filter detector found at least one filter.
    """

    is_meta_question = bool(_META_RE.search(folded))
    is_update = bool(UPDATE_VERB_RE.search(folded)) or any(p.search(folded) for p in _EXTRA_UPDATE_RES)
    is_create = bool(CREATE_VERB_RE.search(folded))
    is_count = bool(COUNT_WORD_RE.search(folded)) or bool(re.search(r"(?<!\w)cb(?!\w)", folded))
    is_list = bool(LIST_VERB_RE.search(folded)) or bool(_QUESTION_LIST_RE.search(folded))

    has_action_verb = is_list or is_count or is_create or is_update
    has_project_mention = bool(_PROJECT_RE.search(folded)) and not any(p.search(folded) for p in _NON_MUSICAL_RES)
    is_about_assistant = any(p.search(folded) for p in _ASSISTANT_PROJECTS_RES)
    related = has_filters or has_project_mention

    is_conversational = (
            is_about_assistant
            or (has_action_verb and not related)
            or (
                    not has_action_verb
                    and _is_conversational(
                        folded, has_action_verb=has_action_verb, is_count=is_count, is_list=is_list, has_filters=has_filters
                    )
            )
    )

    understood = (
            (not is_about_assistant and has_filters)
            or (has_action_verb and not is_conversational)
            or (has_project_mention and not is_conversational)
    )

    return QueryClassification(
        is_meta_question=is_meta_question,
        is_update=is_update,
        is_create=is_create,
        is_count=is_count,
        is_list=is_list,
        lang=detect_language(folded),
        has_action_verb=has_action_verb,
        has_project_mention=has_project_mention,
        is_question_about_assistant_projects=is_about_assistant,
        is_conversational_question=is_conversational,
        understood=understood,
    )
