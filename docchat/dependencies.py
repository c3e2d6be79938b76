from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.core.providers.base import BaseDocumentParser, BaseSpeechProvider
from docchat.core.providers.playai_provider import PlayAISpeechProvider
from docchat.core.providers.reducto_provider import ReductoParser
from docchat.db.models import Chat
from docchat.db.session import AsyncSessionLocal
from docchat.processing.registry import ProcessingRegistry, registry


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async DB session per request."""
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache
def get_parser() -> BaseDocumentParser:
    """Shared parser client; one httpx connection pool for the process."""
    return ReductoParser()


@lru_cache
def get_speech_provider() -> BaseSpeechProvider:
    return PlayAISpeechProvider()


def get_registry() -> ProcessingRegistry:
    return registry


async def load_chat(session: AsyncSession, chat_id: str) -> Chat:
    """Return the chat or raise 404."""
    chat = await session.get(Chat, chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


async def get_chat(
    chat_id: str,
    session: AsyncSession = Depends(get_db),
) -> Chat:
    """Path dependency resolving /chats/{chat_id}."""
    return await load_chat(session, chat_id)
