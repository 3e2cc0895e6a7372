"""Update extraction: combine the mutation extractors into one `UpdateData`.

Extractors work on a copy of the detected filters. Each one may move a value from the filter side
to the mutation side ("passe les projets en cours en terminé" scopes on EN_COURS and sets TERMINE);
the remaining filter copy becomes the qualifier part of the update data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from src.nlu.deadlines import extract_deadline
from src.nlu.metadata import extract_metadata
from src.nlu.normalize import QueryText
from src.nlu.progress import extract_progress
from src.nlu.schema import UpdateData
from src.nlu.transitions import extract_status_change

logger = logging.getLogger(__name__)


def extract_update_data(
        query: QueryText,
        filters: Mapping[str, Any],
        *,
        available_collabs: Sequence[str] = (),
        available_styles: Sequence[str] = (),
        today: date,
) -> UpdateData | None:
    """Extract the requested mutation from an update query.

    Args:
        query: Display and folded text of the query.
        filters: Raw filter values detected for the same query; not modified.
        available_collabs: Known collaborator names, used to canonicalize new collaborators.
        available_styles: Known style names, used to canonicalize new styles.
        today: Reference date for relative deadlines.

    Returns:
        `UpdateData` when at least one new value was found, otherwise None.
    """

    qualifiers = dict(filters)
    updates: dict[str, Any] = {}

    extract_progress(query.folded, qualifiers, updates)
    extract_status_change(query.folded, qualifiers, updates)
    extract_deadline(query, updates, today=today)
    extract_metadata(
        query,
        qualifiers,
        updates,
        available_collabs=available_collabs,
        available_styles=available_styles,
    )

    data = UpdateData.model_validate({**qualifiers, **updates})
    if not data.has_mutation():
        logger.debug("update verb without mutation")
        return None
    return data
