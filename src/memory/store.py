"""Context store interface and the default in-process implementation.

The memory engine only needs key/value access; expiry is decided by `ConversationMemory` from the
stored timestamp, so a store does not have to implement TTLs itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.memory.conversation import ConversationContext


class ContextStore(Protocol):
    """Key/value store for conversation contexts, keyed by user id."""

    def get(self, key: str) -> ConversationContext | None: ...

    def set(self, key: str, value: ConversationContext) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryContextStore:
    """Process-local dict store.

    No locking: concurrent writes for the same user are last-write-wins.
    """

    def __init__(self) -> None:
        self._data: dict[str, ConversationContext] = {}

    def get(self, key: str) -> ConversationContext | None:
        return self._data.get(key)

    def set(self, key: str, value: ConversationContext) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)
