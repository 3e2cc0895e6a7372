"""Registry of confirmation-pending actions.

The router only proposes mutations; nothing touches the data store until the same user confirms
the action id. A confirmed or cancelled action is consumed and cannot be replayed. An action that
is neither confirmed nor cancelled within the TTL is dropped, so a stale preview cannot be applied
later.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from src.nlu.schema import UpdateData
from src.router.schema import PendingConfirmationAction

logger = logging.getLogger(__name__)

Executor = Callable[[Sequence[str], UpdateData], int]

DEFAULT_ACTION_TTL_SECONDS = 300.0


class PendingActionError(ValueError):
    """Raised when an action id is unknown, belongs to another user, expired, or was already consumed."""


class PendingActionRegistry:
    def __init__(
            self,
            *,
            ttl_seconds: float = DEFAULT_ACTION_TTL_SECONDS,
            clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = ttl_seconds
        self._clock = clock
        self._actions: dict[str, tuple[str, float, PendingConfirmationAction]] = {}

    def __len__(self) -> int:
        return len(self._actions)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (_, created, _) in self._actions.items() if now - created > self._ttl]
        for key in expired:
            del self._actions[key]
        if expired:
            logger.info("actions expired count=%d", len(expired))

    def register(self, user_id: str, action: PendingConfirmationAction) -> str:
        self._evict_expired()
        self._actions[action.action_id] = (user_id, self._clock(), action)
        logger.info(
            "action registered action_id=%s user_id=%s count=%d",
            action.action_id,
            user_id,
            len(action.affected_project_ids),
        )
        return action.action_id

    def get(self, user_id: str, action_id: str) -> PendingConfirmationAction:
        self._evict_expired()
        entry = self._actions.get(action_id)
        if entry is None or entry[0] != user_id:
            raise PendingActionError(f"Unknown action: {action_id}")
        return entry[2]

    def pending(self, user_id: str) -> list[PendingConfirmationAction]:
        self._evict_expired()
        return [action for owner, _, action in self._actions.values() if owner == user_id]

    def _pop(self, user_id: str, action_id: str) -> PendingConfirmationAction:
        action = self.get(user_id, action_id)
        del self._actions[action_id]
        return action

    def confirm(self, user_id: str, action_id: str, executor: Executor) -> int:
        """Execute a pending action; returns the number of records the executor updated."""

        action = self._pop(user_id, action_id)
        updated = executor(action.affected_project_ids, action.mutation)
        logger.info("action confirmed action_id=%s updated=%d", action_id, updated)
        return updated

    def cancel(self, user_id: str, action_id: str) -> PendingConfirmationAction:
        action = self._pop(user_id, action_id)
        logger.info("action cancelled action_id=%s", action_id)
        return action
