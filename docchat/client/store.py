from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    content: str
    role: Role
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChatStore:
    """In-memory message list shared by everything inside one chat scope."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self.is_loading = False

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def add_message(self, content: str, role: Role) -> ChatMessage:
        message = ChatMessage(content=content, role=role)
        self._messages.append(message)
        return message

    def clear_messages(self) -> None:
        self._messages.clear()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading


_current_store: ContextVar[ChatStore | None] = ContextVar("chat_store", default=None)


@contextmanager
def chat_store_scope(store: ChatStore | None = None) -> Iterator[ChatStore]:
    """Provide a ChatStore to current_chat_store() for the duration of the block.

    A fresh store is created unless one is passed in; it is detached on exit.
    """
    store = store or ChatStore()
    token = _current_store.set(store)
    try:
        yield store
    finally:
        _current_store.reset(token)


def current_chat_store() -> ChatStore:
    store = _current_store.get()
    if store is None:
        raise RuntimeError("current_chat_store() must be used within chat_store_scope()")
    return store
