"""`route_project_command`: one query in, one `CommandResult` out.

Update scope resolution, in priority order:
    1) ExplicitFilter: the query carries at least one scoping filter.
    2) LastListedIds: the caller's working set, else the user's working set in memory.
    3) AllProjects: nothing else applies; the confirmation message says so.
A contextual reference ("met les à 80%", "ceux-là") never falls through to AllProjects: without a
working set the router asks the user to be explicit.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from src.conversational.responder import ConversationalResponder, fallback_response
from src.memory.conversation import NO_CONTEXT_MESSAGE, ConversationContext, ConversationMemory, detect_context_reference
from src.nlu.normalize import fold_text
from src.nlu.parser import parse_query
from src.nlu.schema import DISPLAY_FIELDS, ParsedFilters, ParseQueryResult, QueryType, UpdateData
from src.nlu.validation import DEFAULT_LIMITS, Limits
from src.router.actions import confirmation_message, describe_action, preview_diff
from src.router.confirmation import PendingActionRegistry
from src.router.projects import filter_projects, find_projects_by_name
from src.router.schema import (
    AddNoteResult,
    CommandResult,
    CommandType,
    CountResult,
    CreateResult,
    GeneralResult,
    ListResult,
    PendingConfirmationAction,
    Project,
    RouterContext,
    ScopeSource,
    UpdateResult,
)

logger = logging.getLogger(__name__)

DEFAULT_FIELDS_TO_SHOW: list[str] = ["progress", "status", "deadline"]
EMPTY_SCOPE_MESSAGE = "Aucun projet ne correspond aux critères spécifiés."
GENERIC_ERROR_MESSAGE = "Désolé, une erreur est survenue. Peux-tu reformuler ta demande ?"
CAPABILITIES_TEXT = "\n".join(
    [
        "Je suis ton assistant de gestion de projets musicaux.",
        "",
        "Fonctionnalités disponibles :",
        "• Lister, filtrer et compter les projets (statut, avancement, collab, style, label, deadline)",
        "• Créer un projet",
        "• Modifier plusieurs projets à la fois, avec confirmation obligatoire :",
        "  progression, statut, deadline, collab, style, labels",
        "• Ajouter une note à un projet, avec confirmation",
        "",
        "Limitations :",
        "• Je ne pilote aucun logiciel externe (DAW, plateformes de streaming, outils de gestion)",
        "• Je gère uniquement les projets de cette application",
    ]
)

_CAPABILITIES_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^(?:quelles?\s+sont\s+(?:tes|vos)\s+(?:fonctionnalit|capacit)|que\s+(?:peux|sais)[\s-]*tu\s+faire"
        r"|tu\s+peux\s+faire\s+quoi|dis[\s-]*moi\s+(?:ce\s+que|quelles)\s+(?:tu\s+peux|tes)"
        r"|(?:liste|decris)\s+(?:tes|vos)\s+(?:fonctionnalit|capacit)|what\s+can\s+you\s+do)"
    ),
    re.compile(r"^(?:fonctionnalit|capacit)\w*\s*\??$"),
)
_MUTATION_SIGNALS_RE = re.compile(
    r"\d+\s*%|pourcent|progression|avancement|deadline|date\s*limite|echeance|statut|status|note|label"
    r"|collab|style|termine|annule|en\s*cours"
)
_DETAIL_RE = re.compile(
    r"^(?:en\s+details?|details?|plus\s+de\s+details?|affiche\s+(?:en\s+)?details?|affiche\s+le\s+detail"
    r"|show\s+(?:the\s+)?details)\s*\??$"
)


def is_capabilities_question(folded: str) -> bool:
    if _MUTATION_SIGNALS_RE.search(folded):
        return False
    return any(p.search(folded) for p in _CAPABILITIES_RES)


def _new_action_id() -> str:
    return f"action_{uuid4().hex[:12]}"


def _projects_by_ids(projects: Sequence[Project], ids: Sequence[str]) -> list[Project]:
    """Projects in working-set order; ids no longer present are dropped."""

    by_id = {p.id: p for p in projects}
    return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]


def _filters_payload(filters: ParsedFilters) -> dict[str, Any]:
    return filters.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class _Scope:
    """Projects an update targets and why they were chosen."""

    source: ScopeSource
    projects: list[Project]
    filters: ParsedFilters
    note: str | None = None


class _Router:
    """One routing pass; holds the per-call collaborators."""

    def __init__(
            self,
            query: str,
            context: RouterContext,
            *,
            memory: ConversationMemory | None,
            registry: PendingActionRegistry | None,
            responder: ConversationalResponder | None,
    ) -> None:
        self.query = query
        self.context = context
        self.memory = memory
        self.registry = registry
        self.responder = responder
        self.user_id = context.user_id
        self.stored: ConversationContext | None = (
            memory.get(self.user_id) if memory is not None and self.user_id else None
        )

    def working_set(self) -> list[str]:
        if self.context.last_listed_project_ids:
            return list(self.context.last_listed_project_ids)
        if self.stored is not None:
            return list(self.stored.last_project_ids)
        return []

    def remember(self, **fields: Any) -> None:
        if self.memory is not None and self.user_id:
            self.memory.update(self.user_id, **fields)

    async def general(self, parsed: ParseQueryResult | None = None) -> GeneralResult:
        if parsed is not None and parsed.clarification and not (parsed.is_conversational or parsed.is_meta_question):
            return GeneralResult(response=parsed.clarification)
        if self.responder is None:
            return GeneralResult(response=fallback_response(self.context.project_count))
        text = await self.responder.respond(self.query, project_count=self.context.project_count)
        return GeneralResult(response=text)

    def read(
            self,
            projects: list[Project],
            *,
            query_type: QueryType,
            filters: ParsedFilters,
            fields_to_show: list[str],
            scope_source: ScopeSource = ScopeSource.ExplicitFilter,
    ) -> ListResult | CountResult:
        count = len(projects)
        ids = [p.id for p in projects]
        self.remember(
            last_project_ids=ids,
            last_project_names=[p.name for p in projects],
            last_project_count=count,
            last_filters=_filters_payload(filters),
            last_action_type=query_type,
            last_status_filter=filters.status,
        )
        if query_type == QueryType.count:
            return CountResult(
                projects=projects,
                count=count,
                message=f"Vous avez {count} projet(s).",
                applied_filter=filters,
                listed_project_ids=ids,
            )
        message = "Je n'ai trouvé aucun projet correspondant." if count == 0 else f"J'ai trouvé {count} projet(s)."
        return ListResult(
            projects=projects,
            count=count,
            fields_to_show=fields_to_show or list(DEFAULT_FIELDS_TO_SHOW),
            message=message,
            applied_filter=filters,
            listed_project_ids=ids,
            scope_source=scope_source,
        )

    def resolve_scope(self, filters: ParsedFilters) -> _Scope | GeneralResult:
        projects = list(self.context.projects)
        if not filters.is_empty():
            return _Scope(ScopeSource.ExplicitFilter, filter_projects(projects, filters), filters)

        working_set = self.working_set()
        if working_set:
            return _Scope(ScopeSource.LastListedIds, _projects_by_ids(projects, working_set), ParsedFilters())

        if detect_context_reference(self.query) is not None:
            if self.memory is None or not self.user_id:
                return GeneralResult(response=NO_CONTEXT_MESSAGE)
            resolution = self.memory.resolve_reference(self.user_id, self.query)
            if not resolution.resolved:
                return GeneralResult(response=resolution.message or NO_CONTEXT_MESSAGE)
            # The previous turn's set, re-selected with the filters it was chosen by.
            previous = ParsedFilters.model_validate(resolution.filters)
            return _Scope(
                ScopeSource.LastListedIds,
                filter_projects(projects, previous),
                previous,
                note=resolution.message,
            )

        return _Scope(ScopeSource.AllProjects, projects, ParsedFilters())

    def update(self, parsed: ParseQueryResult, update: UpdateData) -> UpdateResult | AddNoteResult | GeneralResult:
        if update.is_note_only and update.project_name:
            matches = find_projects_by_name(self.context.projects, update.project_name)
            if not matches:
                return GeneralResult(response=f'Je n\'ai trouvé aucun projet nommé "{update.project_name}".')
            scope = _Scope(ScopeSource.ExplicitFilter, matches[:1], ParsedFilters())
        else:
            resolved = self.resolve_scope(parsed.filters)
            if isinstance(resolved, GeneralResult):
                return resolved
            scope = resolved
        scope_source, affected = scope.source, scope.projects

        skipped = 0
        if update.push_deadline_by is not None or update.removes_deadline:
            with_deadline = [p for p in affected if p.deadline is not None]
            skipped = len(affected) - len(with_deadline)
            affected = with_deadline

        if not affected:
            logger.info("update scope empty scope_source=%s skipped=%d", scope_source, skipped)
            return GeneralResult(response=EMPTY_SCOPE_MESSAGE)

        return self.pending(parsed, update, scope, affected, skipped)

    def pending(
            self,
            parsed: ParseQueryResult,
            update: UpdateData,
            scope: _Scope,
            affected: list[Project],
            skipped: int,
    ) -> UpdateResult | AddNoteResult:
        scope_source, filters = scope.source, scope.filters
        action_type = CommandType.ADD_NOTE if update.new_note else CommandType.UPDATE
        description = describe_action(action_type, update, len(affected), skipped_count=skipped)
        action = PendingConfirmationAction(
            action_id=_new_action_id(),
            type=action_type,
            filters=filters,
            mutation=update,
            affected_projects=affected,
            affected_project_ids=list(dict.fromkeys(p.id for p in affected)),
            scope_source=scope_source,
            fields_to_show=parsed.fields_to_show or list(DEFAULT_FIELDS_TO_SHOW),
            description=description,
            skipped_count=skipped,
            preview_diff=preview_diff(affected, update),
        )
        if self.registry is not None and self.user_id:
            self.registry.register(self.user_id, action)
        self.remember(last_action_type=QueryType.update, last_filters=_filters_payload(filters))

        logger.info(
            "update proposed type=%s scope_source=%s affected=%d skipped=%d",
            action_type,
            scope_source,
            len(affected),
            skipped,
        )
        message = confirmation_message(description, scope_source, context_note=scope.note)
        if action_type == CommandType.ADD_NOTE:
            return AddNoteResult(pending_action=action, message=message)
        return UpdateResult(pending_action=action, message=message)

    async def route(self, *, limits: Limits, typo_tolerance: bool) -> CommandResult:
        folded = fold_text(self.query).strip()

        if is_capabilities_question(folded):
            return GeneralResult(response=CAPABILITIES_TEXT)

        working_set = self.working_set()
        if _DETAIL_RE.match(folded) and working_set:
            projects = _projects_by_ids(self.context.projects, working_set)
            return self.read(
                projects,
                query_type=QueryType.list,
                filters=ParsedFilters(),
                fields_to_show=list(DISPLAY_FIELDS),
                scope_source=ScopeSource.LastListedIds,
            )

        last_filters = self.context.last_applied_filter
        if last_filters is None and self.stored is not None:
            last_filters = self.stored.last_filters

        parsed = parse_query(
            self.query,
            list(self.context.available_collabs),
            list(self.context.available_styles),
            list(self.context.conversation_history or []),
            last_filters,
            today=self.context.today,
            limits=limits,
            typo_tolerance=typo_tolerance,
        )

        if parsed.type == QueryType.update and parsed.update_data is not None:
            return self.update(parsed, parsed.update_data)

        if parsed.type == QueryType.create and parsed.create_data is not None:
            self.remember(last_action_type=QueryType.create)
            return CreateResult(
                create_data=parsed.create_data,
                message=f'Création du projet "{parsed.create_data.name}" en cours...',
            )

        is_read = parsed.type in (QueryType.list, QueryType.count)
        if is_read or (parsed.understood and not parsed.filters.is_empty()):
            projects = filter_projects(self.context.projects, parsed.filters)
            return self.read(
                projects,
                query_type=parsed.type if is_read else QueryType.list,
                filters=parsed.filters,
                fields_to_show=parsed.fields_to_show,
            )

        return await self.general(parsed)


async def route_project_command(
        query: str,
        context: RouterContext,
        *,
        memory: ConversationMemory | None = None,
        registry: PendingActionRegistry | None = None,
        responder: ConversationalResponder | None = None,
        limits: Limits = DEFAULT_LIMITS,
        typo_tolerance: bool = False,
) -> CommandResult:
    """Route one user query.

    Args:
        query: Raw user text.
        context: Live projects, known collaborators/styles, and the optional working set.
        memory: Conversation memory; read for the working set and written after each action.
        registry: Where confirmation-pending actions are registered (requires `context.user_id`).
        responder: Conversational fallback for GENERAL results; a static greeting when omitted.
        limits: Input size ceilings for the parser.
        typo_tolerance: Enable the parser's typo pre-pass.

    Returns:
        A `CommandResult`; never raises.
    """

    # noinspection PyBroadException
    try:
        router = _Router(query, context, memory=memory, registry=registry, responder=responder)
        result = await router.route(limits=limits, typo_tolerance=typo_tolerance)
    except Exception:
        logger.exception("route_project_command failed")
        return GeneralResult(response=GENERIC_ERROR_MESSAGE)

    logger.info("routed type=%s", result.type)
    return result
