"""Canonical music-style matching.

Style names are free text in the project data, so matching goes from a table of well-known
variations to whatever spelling the caller's project set actually uses.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache

from src.nlu.dictionaries import phrase_to_regex
from src.nlu.normalize import fold_text

STYLE_VARIATIONS: dict[str, tuple[str, ...]] = {
    "Drum and Bass": (
        "dnb", "drum and bass", "drum&bass", "drum n bass", "jungle", "liquid", "neurofunk",
        "neuro", "techstep",
    ),
    "Happy Hardcore": ("happy hardcore", "happycore", "uk hardcore", "hcore"),
    "Hardstyle": ("hardstyle", "rawstyle", "raw hardstyle", "euphoric hardstyle"),
    "Hardcore": ("hardcore", "frenchcore", "uptempo", "terror", "speedcore", "extratone"),
    "House": ("house", "deep house", "tech house", "progressive house", "bass house"),
    "Techno": ("techno", "minimal techno", "acid techno", "industrial techno", "melodic techno"),
    "Trance": ("trance", "uplifting trance", "progressive trance", "vocal trance"),
    "Dubstep": ("dubstep", "brostep", "riddim", "melodic dubstep"),
    "Trap": ("trap", "hybrid trap"),
    "Future Bass": ("future bass",),
    "Bass": ("bass", "bass music", "bassline"),
    "Electronic": ("electronic", "edm", "electronica"),
    "Progressive": ("progressive", "prog"),
    "Ambient": ("ambient", "chillout", "downtempo"),
    "Breaks": ("breaks", "breakbeat", "big beat"),
    "Garage": ("garage", "uk garage", "2-step", "speed garage"),
    "Dance": ("dance", "eurodance", "hands up"),
    "Hard Dance": ("hard dance", "harddance"),
    "Psytrance": ("psytrance", "psy", "goa", "full on"),
    "Big Room": ("big room", "festival house"),
    "Future House": ("future house", "bounce"),
    "Moombahton": ("moombahton", "moombah"),
    "Electro": ("electro", "electro house"),
    "Synthwave": ("synthwave", "retrowave", "outrun"),
    "Lo-Fi": ("lo-fi", "lofi", "lo fi"),
    "Chill": ("chill", "chillstep"),
    "Hip-Hop": ("hip-hop", "hip hop", "rap", "boom bap"),
}


@lru_cache(maxsize=None)
def _variation_pattern(variation: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){phrase_to_regex(variation)}(?!\w)")


def _variations_longest_first() -> list[tuple[str, str]]:
    pairs = [(canonical, v) for canonical, variations in STYLE_VARIATIONS.items() for v in variations]
    # Longest variation wins globally so "progressive house" beats "progressive".
    return sorted(pairs, key=lambda pair: -len(pair[1]))


_ORDERED_VARIATIONS: list[tuple[str, str]] = _variations_longest_first()


def _resolve_canonical(canonical: str, available_styles: Sequence[str]) -> str:
    wanted = canonical.lower()
    for style in available_styles:
        if style.lower() == wanted:
            return style
    for style in available_styles:
        candidate = style.lower()
        if candidate in wanted or wanted in candidate:
            return style
    return canonical


def find_style(text: str, available_styles: Sequence[str] = ()) -> str | None:
    """Find a style mentioned in `text`.

    Strategy:
        1) Known variations (longest first) mapped to an available style spelling, else canonical.
        2) A direct, word-bounded mention of one of the available styles.
    """

    folded = fold_text(text)
    for canonical, variation in _ORDERED_VARIATIONS:
        if _variation_pattern(variation).search(folded):
            return _resolve_canonical(canonical, available_styles)

    for style in sorted(available_styles, key=len, reverse=True):
        if re.search(rf"(?<!\w){phrase_to_regex(style)}(?!\w)", folded):
            return style

    return None
