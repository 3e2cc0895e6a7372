"""French/English lexical tables for project-management commands.

Every extractor builds its patterns from these tables, so adding a synonym never requires touching
extraction logic. Entries are written in natural spelling (accents included); the regex builders
fold them the same way the query text is folded.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from src.nlu.normalize import fold_text
from src.nlu.schema import ProjectStatus

UPDATE_VERBS: tuple[str, ...] = (
    "passe", "passer", "passes", "mets", "met", "mettre", "marque", "marquer",
    "change", "changer", "modifie", "modifier", "bascule", "basculer",
    "retarde", "retarder", "pousse", "pousser", "déplace", "déplacer", "décale", "décaler",
    "repousse", "repousser", "reporte", "reporter", "avance", "avancer", "prévoit", "prolonge",
    "recule", "reculer", "enlève", "enlever", "retire", "retirer", "supprime", "supprimer",
    "définis", "fixe", "rajoute",
    "update", "set", "mark", "move", "push", "delay", "postpone", "remove", "delete",
)

STATUS_VERBS: tuple[str, ...] = (
    "passe", "passer", "mets", "met", "mettre", "marque", "marquer", "change", "changer",
    "modifie", "modifier", "bascule", "basculer",
    "set", "mark", "move", "change", "switch",
)

LIST_VERBS: tuple[str, ...] = (
    "affiche", "afficher", "montre", "montrer", "liste", "lister", "donne", "donner", "voir",
    "show", "list", "display", "get", "see",
)

COUNT_WORDS: tuple[str, ...] = (
    "combien", "nombre", "compte", "compter", "how many", "count", "total",
)

CREATE_VERBS: tuple[str, ...] = (
    "ajoute", "ajouter", "crée", "créer", "nouveau projet", "add", "create", "new project",
)

REMOVE_VERBS: tuple[str, ...] = (
    "supprime", "supprimer", "retire", "retirer", "enlève", "enlever", "efface", "effacer",
    "remove", "delete", "clear",
)

PUSH_VERBS: tuple[str, ...] = (
    "pousse", "pousser", "repousse", "repousser", "décale", "décaler", "déplace", "déplacer",
    "retarde", "retarder", "reporte", "reporter", "prolonge", "prolonger", "avance", "avancer",
    "prévoit", "ajoute", "ajouter", "rajoute",
    "push", "delay", "postpone", "extend", "move", "add",
)

SUBTRACT_VERBS: tuple[str, ...] = (
    "enlève", "enlever", "retire", "retirer", "recule", "reculer", "raccourcis",
    "remove", "subtract",
)

SCOPE_PRONOUNS: tuple[str, ...] = (
    "leur", "leurs", "les", "le", "la", "l'", "son", "sa", "ses", "mes", "mon", "ma", "nos",
    "notre", "vos", "votre", "ces", "ceux", "ceux-ci", "celles", "celles-ci", "them", "their",
)

ALL_PROJECTS_PHRASES: tuple[str, ...] = (
    "tous les projets", "tous mes projets", "toutes les projets", "l'ensemble des projets",
    "all projects", "all my projects", "every project", "tous", "toutes",
)

STATUS_SYNONYMS: dict[str, ProjectStatus] = {
    "en cours": ProjectStatus.EN_COURS,
    "encours": ProjectStatus.EN_COURS,
    "in progress": ProjectStatus.EN_COURS,
    "wip": ProjectStatus.EN_COURS,
    "actif": ProjectStatus.EN_COURS,
    "actifs": ProjectStatus.EN_COURS,
    "active": ProjectStatus.EN_COURS,
    "ongoing": ProjectStatus.EN_COURS,
    "terminé": ProjectStatus.TERMINE,
    "terminés": ProjectStatus.TERMINE,
    "terminée": ProjectStatus.TERMINE,
    "terminées": ProjectStatus.TERMINE,
    "fini": ProjectStatus.TERMINE,
    "finis": ProjectStatus.TERMINE,
    "finie": ProjectStatus.TERMINE,
    "finies": ProjectStatus.TERMINE,
    "complété": ProjectStatus.TERMINE,
    "complétés": ProjectStatus.TERMINE,
    "achevé": ProjectStatus.TERMINE,
    "achevés": ProjectStatus.TERMINE,
    "done": ProjectStatus.TERMINE,
    "finished": ProjectStatus.TERMINE,
    "completed": ProjectStatus.TERMINE,
    "annulé": ProjectStatus.ANNULE,
    "annulés": ProjectStatus.ANNULE,
    "annulée": ProjectStatus.ANNULE,
    "annulées": ProjectStatus.ANNULE,
    "abandonné": ProjectStatus.ANNULE,
    "abandonnés": ProjectStatus.ANNULE,
    "cancelled": ProjectStatus.ANNULE,
    "canceled": ProjectStatus.ANNULE,
    "à rework": ProjectStatus.A_REWORK,
    "rework": ProjectStatus.A_REWORK,
    "à retravailler": ProjectStatus.A_REWORK,
    "à refaire": ProjectStatus.A_REWORK,
    "to rework": ProjectStatus.A_REWORK,
    "needs rework": ProjectStatus.A_REWORK,
    "ghost production": ProjectStatus.GHOST_PRODUCTION,
    "ghost prod": ProjectStatus.GHOST_PRODUCTION,
    "ghostprod": ProjectStatus.GHOST_PRODUCTION,
    "gost prod": ProjectStatus.GHOST_PRODUCTION,
    "ghost": ProjectStatus.GHOST_PRODUCTION,
    "ghosts": ProjectStatus.GHOST_PRODUCTION,
    "gost": ProjectStatus.GHOST_PRODUCTION,
    "archivé": ProjectStatus.ARCHIVE,
    "archivés": ProjectStatus.ARCHIVE,
    "archivée": ProjectStatus.ARCHIVE,
    "archivées": ProjectStatus.ARCHIVE,
    "archive": ProjectStatus.ARCHIVE,
    "archives": ProjectStatus.ARCHIVE,
    "archived": ProjectStatus.ARCHIVE,
}

FIELD_ALIASES: dict[str, str] = {
    "avancement": "progress",
    "progression": "progress",
    "progress": "progress",
    "pourcentage": "progress",
    "deadline": "deadline",
    "deadlines": "deadline",
    "date limite": "deadline",
    "dates limites": "deadline",
    "échéance": "deadline",
    "due date": "deadline",
    "statut": "status",
    "statuts": "status",
    "status": "status",
    "état": "status",
    "collab": "collab",
    "collabs": "collab",
    "collaboration": "collab",
    "collaborateur": "collab",
    "collaborateurs": "collab",
    "feat": "collab",
    "featuring": "collab",
    "style": "style",
    "styles": "style",
    "genre": "style",
    "label": "label",
    "label final": "label_final",
    "date de sortie": "release_date",
    "sortie": "release_date",
    "release date": "release_date",
    "note": "note",
    "notes": "note",
}

TIME_UNIT_SYNONYMS: dict[str, dict[str, int]] = {
    "jour": {"days": 1},
    "jours": {"days": 1},
    "day": {"days": 1},
    "days": {"days": 1},
    "semaine": {"weeks": 1},
    "semaines": {"weeks": 1},
    "sem": {"weeks": 1},
    "week": {"weeks": 1},
    "weeks": {"weeks": 1},
    "mois": {"months": 1},
    "month": {"months": 1},
    "months": {"months": 1},
    "an": {"years": 1},
    "ans": {"years": 1},
    "année": {"years": 1},
    "années": {"years": 1},
    "year": {"years": 1},
    "years": {"years": 1},
}

QUANTITY_ARTICLES: tuple[str, ...] = ("un", "une", "d'un", "d'une", "a", "an", "one")

# Words that end a free-text name (collaborator, label, project) in the folded text.
NAME_STOPWORDS: tuple[str, ...] = (
    "et", "a", "au", "aux", "en", "avec", "pour", "de", "du", "des", "les", "la", "le", "sans",
    "qui", "dont", "sur", "dans", "comme", "mais", "ou", "par", "deadline", "statut", "style",
    "label", "avancement", "progression", "and", "with", "to", "in", "for", "on", "from",
)


def build_alternation_regex_part(words: Iterable[str]) -> str:
    """Join regex fragments into a non-capturing alternation.

    Returns an empty string for no words and the word itself for a single one.
    """

    items = list(words)
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return "(?:" + "|".join(items) + ")"


def phrase_to_regex(phrase: str) -> str:
    """Fold and escape a phrase; inner spaces and hyphens match any run of spaces or hyphens."""

    parts = re.split(r"[\s-]+", fold_text(phrase).strip())
    return r"[\s-]+".join(re.escape(part) for part in parts if part)


def alternation(phrases: Iterable[str]) -> str:
    """Build a folded alternation, longest phrases first so the regex prefers the longest match."""

    folded = {fold_text(p).strip() for p in phrases if p and p.strip()}
    ordered = sorted(folded, key=lambda p: (-len(p), p))
    return build_alternation_regex_part(phrase_to_regex(p) for p in ordered)


def words_regex(phrases: Iterable[str]) -> re.Pattern[str]:
    """Compile a word-bounded alternation of the phrases."""

    return re.compile(rf"(?<!\w)(?:{alternation(phrases)})(?![\w])")


def synonym_key(text: str) -> str:
    return re.sub(r"[\s_-]+", " ", fold_text(text)).strip()


STATUS_BY_KEY: dict[str, ProjectStatus] = {synonym_key(k): v for k, v in STATUS_SYNONYMS.items()}


def synonyms_for(status: ProjectStatus) -> tuple[str, ...]:
    return tuple(term for term, value in STATUS_SYNONYMS.items() if value == status)


def aliases_for(field: str) -> tuple[str, ...]:
    return tuple(alias for alias, value in FIELD_ALIASES.items() if value == field)


_FOLDED_TIME_UNITS: dict[str, dict[str, int]] = {fold_text(k): v for k, v in TIME_UNIT_SYNONYMS.items()}


def time_unit_for(word: str) -> dict[str, int] | None:
    return _FOLDED_TIME_UNITS.get(fold_text(word).strip())


@lru_cache(maxsize=None)
def status_alternation(status: ProjectStatus) -> str:
    return alternation(synonyms_for(status))


@lru_cache(maxsize=None)
def status_pattern(status: ProjectStatus) -> re.Pattern[str]:
    """Word-bounded pattern matching any synonym of one status."""

    return re.compile(rf"(?<!\w)(?:{status_alternation(status)})(?![\w])")


ANY_STATUS_RE = words_regex(STATUS_SYNONYMS)
UPDATE_VERB_RE = words_regex(UPDATE_VERBS)
STATUS_VERB_RE = words_regex(STATUS_VERBS)
LIST_VERB_RE = words_regex(LIST_VERBS)
COUNT_WORD_RE = words_regex(COUNT_WORDS)
CREATE_VERB_RE = words_regex(CREATE_VERBS)
ALL_PROJECTS_RE = words_regex(ALL_PROJECTS_PHRASES)

DEADLINE_NOUN = alternation(aliases_for("deadline"))
PROGRESS_NOUN = alternation(aliases_for("progress"))
TIME_UNIT = alternation(TIME_UNIT_SYNONYMS)
NAME_STOP = alternation(NAME_STOPWORDS)
# A free-text name: up to four tokens, never starting with or containing a stop word.
NAME = rf"(?!{NAME_STOP}\b)[\w&.+-]+(?:\s+(?!{NAME_STOP}\b)[\w&.+-]+){{0,3}}"


def status_from_text(text: str) -> ProjectStatus | None:
    """Map a matched synonym (any spelling) to its canonical status."""

    return STATUS_BY_KEY.get(synonym_key(text))


def typo_vocabulary() -> tuple[str, ...]:
    """Single-word vocabulary eligible for typo correction (folded, 5+ letters)."""

    words: set[str] = set()
    for source in (STATUS_SYNONYMS, FIELD_ALIASES, UPDATE_VERBS, LIST_VERBS, CREATE_VERBS, PUSH_VERBS):
        for term in source:
            folded = fold_text(term)
            if " " not in folded and "'" not in folded and len(folded) >= 5:
                words.add(folded)
    return tuple(sorted(words))
