"""Optional typo-tolerance pre-pass (feature-flagged).

Misspelled vocabulary words ("termnié", "avancemnt") are replaced by their closest known spelling
before any extractor runs. Names and unknown words are left alone unless they are very close to a
vocabulary word.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from rapidfuzz import fuzz, process

from src.nlu.dictionaries import typo_vocabulary
from src.nlu.normalize import fold_text

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[^\W\d_]{5,}")
_SCORE_CUTOFF = 80


@lru_cache(maxsize=1)
def _vocabulary() -> tuple[frozenset[str], tuple[str, ...]]:
    words = typo_vocabulary()
    return frozenset(words), words


def correct_typos(text: str) -> str:
    """Replace near-miss vocabulary words in display text with the canonical (folded) spelling."""

    known, words = _vocabulary()

    def _replace(match: re.Match[str]) -> str:
        word = match.group(0)
        folded = fold_text(word)
        if folded in known:
            return word
        best = process.extractOne(folded, words, scorer=fuzz.ratio, score_cutoff=_SCORE_CUTOFF)
        if best is None:
            return word
        replacement, score, _ = best
        logger.debug("typo corrected word=%r replacement=%r score=%.0f", word, replacement, score)
        return replacement

    return _WORD_RE.sub(_replace, text)
