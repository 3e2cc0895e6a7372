"""Application composition root.

This module wires together configuration, the project store, conversation memory, the
confirmation registry, and the conversational responder for the bot runtime.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.config.settings import Settings
from src.conversational.responder import ConversationalResponder
from src.memory.conversation import ConversationMemory
from src.nlu.validation import Limits
from src.router.confirmation import PendingActionRegistry
from src.router.projects import InMemoryProjectStore


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    store: InMemoryProjectStore
    memory: ConversationMemory
    registry: PendingActionRegistry
    responder: ConversationalResponder
    limits: Limits


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        Projects are seeded from `PROJECTS_JSON_PATH` when set; otherwise the store starts empty.
    """

    if settings.projects_json_path:
        store = InMemoryProjectStore.from_json(settings.projects_json_path)
    else:
        store = InMemoryProjectStore()

    return App(
        settings=settings,
        store=store,
        memory=ConversationMemory(ttl_seconds=settings.context_ttl_seconds),
        registry=PendingActionRegistry(ttl_seconds=settings.context_ttl_seconds),
        responder=ConversationalResponder.from_settings(settings),
        limits=Limits.from_settings(settings),
    )
