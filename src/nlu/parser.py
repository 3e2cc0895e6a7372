"""`parse_query`: free text -> `ParseQueryResult`.

Pipeline: validation -> (optional typo pre-pass) -> filter detection -> classification ->
note / update / create extraction -> status inference for follow-ups.

`parse_query` never raises: validation failures and unexpected errors become a "not understood"
search result carrying a clarification message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from src.nlu.classifier import QueryClassification, classify_query, detect_language
from src.nlu.creates import extract_create_data
from src.nlu.filters import FilterDetection, detect_filters
from src.nlu.inference import infer_status_filter
from src.nlu.normalize import QueryText, fold_text
from src.nlu.notes import extract_note
from src.nlu.schema import HistoryMessage, Language, ParsedFilters, ParseQueryResult, QueryType, UpdateData
from src.nlu.typos import correct_typos
from src.nlu.updates import extract_update_data
from src.nlu.validation import (
    DEFAULT_LIMITS,
    InputValidationError,
    Limits,
    validate_available_values,
    validate_history,
    validate_last_filters,
    validate_query,
)

logger = logging.getLogger(__name__)

CLARIFICATIONS: dict[Language, str] = {
    "fr": "Je n'ai pas compris. Essaie: 'combien de projets sous les 70%' ou 'liste mes ghost prod'",
    "en": "I didn't understand. Try: 'how many projects under 70%' or 'list my ghost prod'",
}
UPDATE_CLARIFICATIONS: dict[Language, str] = {
    "fr": "Je n'ai pas pu comprendre quelle modification effectuer. Essaie: 'passe les projets en cours à 80%' "
          "ou 'pousse leur deadline d'un mois'",
    "en": "I couldn't tell what to change. Try: 'set the finished projects to 80%' or 'push their deadline by a month'",
}
INTERNAL_ERROR_MESSAGES: dict[Language, str] = {
    "fr": "Une erreur est survenue pendant l'analyse de la requête. Peux-tu reformuler ?",
    "en": "Something went wrong while reading your request. Could you rephrase it?",
}


def _not_understood(lang: Language, clarification: str) -> ParseQueryResult:
    return ParseQueryResult(type=QueryType.search, understood=False, clarification=clarification, lang=lang)


def _scope_filters(update: UpdateData, detection: FilterDetection) -> ParsedFilters:
    """Filters that decide which records an update touches.

    `has_deadline` stays a mutation qualifier unless the user also wrote a deadline-possession
    phrase ("avec une deadline"), which the filter detector reports on its own.
    """

    values = update.qualifier_filters().present_fields()
    if "has_deadline" in detection.values:
        values["has_deadline"] = detection.values["has_deadline"]
    else:
        values.pop("has_deadline", None)
    return ParsedFilters.model_validate(values)


def _with_inferred_status(
        update: UpdateData,
        folded: str,
        *,
        last_filters: Mapping[str, Any],
        history: Sequence[HistoryMessage],
) -> UpdateData:
    inferred = infer_status_filter(
        folded,
        has_status_filter=update.status is not None,
        new_status=update.new_status,
        last_filters=last_filters,
        history=history,
    )
    if inferred is None or inferred == update.new_status:
        return update
    return UpdateData.model_validate({**update.model_dump(exclude_unset=True), "status": inferred})


def _read_type(classification: QueryClassification) -> QueryType:
    if classification.is_count:
        return QueryType.count
    if classification.is_list:
        return QueryType.list
    return QueryType.search


def _parse(
        display: str,
        *,
        collabs: list[str],
        styles: list[str],
        history: list[HistoryMessage],
        last_filters: dict[str, Any],
        today: date,
        typo_tolerance: bool,
) -> ParseQueryResult:
    if typo_tolerance:
        display = correct_typos(display)
    query = QueryText.from_display(display)
    folded = query.folded

    detection = detect_filters(query, available_collabs=collabs, available_styles=styles, today=today)
    filters = detection.filters
    classification = classify_query(folded, has_filters=not filters.is_empty())
    lang = classification.lang

    # Filters found in a question about the assistant itself are false positives.
    if classification.is_meta_question:
        return ParseQueryResult(
            type=QueryType.search,
            understood=False,
            lang=lang,
            is_conversational=True,
            is_meta_question=True,
        )

    note = extract_note(query)
    if note is not None:
        return ParseQueryResult(
            type=QueryType.update,
            understood=True,
            lang=lang,
            fields_to_show=detection.fields_to_show,
            update_data=UpdateData.model_validate(note),
        )

    if classification.is_update:
        update = extract_update_data(
            query,
            detection.values,
            available_collabs=collabs,
            available_styles=styles,
            today=today,
        )
        if update is not None:
            update = _with_inferred_status(update, folded, last_filters=last_filters, history=history)
            return ParseQueryResult(
                filters=_scope_filters(update, detection),
                type=QueryType.update,
                understood=True,
                lang=lang,
                fields_to_show=detection.fields_to_show,
                update_data=update,
            )
        # An update verb with no recognizable new value must not be served as a listing.
        if not classification.is_create and not classification.is_conversational_question:
            logger.info("update not understood lang=%s", lang)
            return _not_understood(lang, UPDATE_CLARIFICATIONS[lang])

    if classification.is_create:
        create = extract_create_data(query, available_collabs=collabs, available_styles=styles, today=today)
        if create is not None:
            return ParseQueryResult(type=QueryType.create, understood=True, lang=lang, create_data=create)

    understood = classification.understood
    conversational = classification.is_conversational_question
    return ParseQueryResult(
        filters=filters,
        type=_read_type(classification),
        understood=understood,
        clarification=None if understood or conversational else CLARIFICATIONS[lang],
        lang=lang,
        is_conversational=conversational,
        fields_to_show=detection.fields_to_show,
    )


def parse_query(
        query: Any,
        available_collabs: Any = None,
        available_styles: Any = None,
        conversation_history: Any = None,
        last_filters: Any = None,
        *,
        today: date | None = None,
        limits: Limits = DEFAULT_LIMITS,
        typo_tolerance: bool = False,
) -> ParseQueryResult:
    """Parse one user query into a structured result.

    Args:
        query: Raw user text.
        available_collabs: Known collaborator names (fuzzy-matched against the text).
        available_styles: Known style names.
        conversation_history: Previous `{role, content}` turns, oldest first.
        last_filters: Filters of the previous turn, used by status inference.
        today: Reference date for relative dates; defaults to the current date.
        limits: Input size ceilings.
        typo_tolerance: Enable the typo-correction pre-pass.

    Returns:
        A `ParseQueryResult`; never raises.
    """

    lang: Language = "fr"
    try:
        display = validate_query(query, limits=limits)
        lang = detect_language(fold_text(display))
        collabs = validate_available_values(available_collabs, name="availableCollabs", limits=limits)
        styles = validate_available_values(available_styles, name="availableStyles", limits=limits)
        history = validate_history(conversation_history, limits=limits)
        previous_filters = validate_last_filters(last_filters)
    except InputValidationError as exc:
        logger.info("query rejected reason=%s", exc)
        return _not_understood(lang, f"{CLARIFICATIONS[lang]} ({exc})")

    try:
        result = _parse(
            display,
            collabs=collabs,
            styles=styles,
            history=history,
            last_filters=previous_filters,
            today=today or date.today(),
            typo_tolerance=typo_tolerance,
        )
    except Exception:
        logger.exception("parse_query failed")
        return _not_understood(lang, INTERNAL_ERROR_MESSAGES[lang])

    logger.info("parsed type=%s understood=%s lang=%s", result.type, result.understood, result.lang)
    return result
