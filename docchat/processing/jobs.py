from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from docchat.core.providers.base import BaseDocumentParser
from docchat.db.models import Chat, ParsedContent
from docchat.processing.pipeline import run_processing
from docchat.processing.registry import ProcessingRegistry

logger = logging.getLogger(__name__)


async def _discard_current(session: AsyncSession, chat: Chat) -> None:
    if chat.parsed_content_id is None:
        return
    previous = await session.get(ParsedContent, chat.parsed_content_id)
    if previous is not None:
        await session.delete(previous)
    chat.parsed_content_id = None


async def begin_processing(
    session: AsyncSession,
    chat: Chat,
    pdf_storage_url: str,
    registry: ProcessingRegistry,
    parser: BaseDocumentParser,
) -> uuid.UUID:
    """Supersede any previous result, mark the chat processing and schedule the job.

    Returns the id of the new ParsedContent record, which is the job id.
    """
    # Cancel first so the old task cannot write after the new record exists
    registry.cancel(chat.id)
    await _discard_current(session, chat)

    record = ParsedContent(id=uuid.uuid4(), chat_id=chat.id, status="processing")
    session.add(record)
    chat.pdf_storage_url = pdf_storage_url
    chat.parsed_content_id = record.id
    chat.processing_state = "processing"
    await session.commit()

    chat_id, record_id = chat.id, record.id
    registry.start(
        chat_id,
        lambda: run_processing(chat_id, record_id, pdf_storage_url, parser),
    )
    logger.info(
        "processing.started",
        extra={"chat_id": chat_id, "job_id": str(record_id)},
    )
    return record_id


async def cancel_processing(
    session: AsyncSession,
    chat: Chat,
    registry: ProcessingRegistry,
) -> bool:
    """Stop the chat's job and reset it to idle. Returns whether a task was running."""
    cancelled = registry.cancel(chat.id)
    if chat.processing_state == "processing":
        await _discard_current(session, chat)
        chat.processing_state = "idle"
        await session.commit()
    logger.info(
        "processing.cancel",
        extra={"chat_id": chat.id, "cancelled": cancelled},
    )
    return cancelled
