"""aiogram message handlers.

Hard contract: every incoming message produces exactly one reply. On any internal error, reply
with a generic apology and log internally.
"""

from __future__ import annotations

import logging
from time import monotonic

from aiogram.types import Message

from src.app import App
from src.router.confirmation import PendingActionError
from src.router.router import CAPABILITIES_TEXT, GENERIC_ERROR_MESSAGE, route_project_command
from src.router.schema import (
    AddNoteResult,
    CountResult,
    CreateResult,
    GeneralResult,
    ListResult,
    RouterContext,
    UpdateResult,
)

logger = logging.getLogger(__name__)

_LIST_PREVIEW = 10


def _user_id(message: Message) -> str:
    user = getattr(message, "from_user", None)
    if user is not None:
        return str(user.id)
    chat = getattr(message, "chat", None)
    return str(chat.id) if chat is not None else "anonymous"


def _format_list(result: ListResult | CountResult) -> str:
    lines = [result.message]
    if isinstance(result, ListResult):
        for project in result.projects[:_LIST_PREVIEW]:
            progress = f"{project.progress}%" if project.progress is not None else "-"
            lines.append(f"• {project.name} ({project.status}, {progress})")
        if result.count > _LIST_PREVIEW:
            lines.append(f"… et {result.count - _LIST_PREVIEW} autre(s)")
    return "\n".join(lines)


def _handle_command(text: str, user_id: str, app: App) -> str:
    command, _, argument = text.strip().partition(" ")
    command = command.split("@", 1)[0].lower()
    action_id = argument.strip()

    if command in ("/start", "/help"):
        return CAPABILITIES_TEXT
    if command == "/confirm" and action_id:
        updated = app.registry.confirm(user_id, action_id, app.store.apply)
        return f"C'est fait : {updated} projet(s) mis à jour."
    if command == "/cancel" and action_id:
        app.registry.cancel(user_id, action_id)
        return "Action annulée."
    return "Commandes disponibles : /confirm <id>, /cancel <id>, /start"


async def _handle_query(text: str, user_id: str, app: App) -> str:
    context = RouterContext(
        projects=app.store.projects(),
        available_collabs=app.store.available_collabs(),
        available_styles=app.store.available_styles(),
        user_id=user_id,
    )
    result = await route_project_command(
        text,
        context,
        memory=app.memory,
        registry=app.registry,
        responder=app.responder,
        limits=app.limits,
        typo_tolerance=app.settings.typo_tolerance_enabled,
    )

    if isinstance(result, ListResult | CountResult):
        return _format_list(result)
    if isinstance(result, UpdateResult | AddNoteResult):
        return f"{result.message}\n/confirm {result.pending_action.action_id}"
    if isinstance(result, CreateResult):
        project = app.store.create(result.create_data)
        return f'Projet "{project.name}" créé.'
    if isinstance(result, GeneralResult):
        return result.response
    raise TypeError(f"Unexpected router result: {type(result).__name__}")


async def handle_message(message: Message, app: App) -> None:
    """Handle any incoming Telegram message and reply exactly once."""

    started = monotonic()
    reply = GENERIC_ERROR_MESSAGE
    user_id = _user_id(message)

    # noinspection PyBroadException
    try:
        raw_text = (message.text or message.caption or "").strip()
        if not raw_text:
            reply = CAPABILITIES_TEXT
        elif raw_text.startswith("/"):
            reply = _handle_command(raw_text, user_id, app)
        else:
            reply = await _handle_query(raw_text, user_id, app)

        latency_ms = int((monotonic() - started) * 1000)
        logger.info("handled user_id=%s latency_ms=%d", user_id, latency_ms)
    except PendingActionError as exc:
        logger.info("action rejected reason=%s", exc)
        reply = "Cette action n'existe pas ou a déjà été traitée."
    except Exception:
        # Handler boundary: internal errors never leak details to the chat.
        logger.exception("handler failed")

    await message.answer(reply)
