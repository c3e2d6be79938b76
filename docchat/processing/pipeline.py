from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any

from docchat.core import storage
from docchat.core.providers.base import BaseDocumentParser, ParserError
from docchat.db.models import Chat, ParsedContent
from docchat.db.session import AsyncSessionLocal
from docchat.processing.result_parser import parse_response, processing_time_ms

logger = logging.getLogger(__name__)


async def _parse_with_fallback(
    parser: BaseDocumentParser, pdf_storage_url: str
) -> dict[str, Any]:
    """Parse via the public object URL, retrying once through the API proxy."""
    direct_url = storage.access_url(pdf_storage_url)
    try:
        return await parser.parse(direct_url)
    except ParserError as direct_exc:
        fallback_url = storage.proxy_url(pdf_storage_url)
        if fallback_url == direct_url:
            raise
        logger.warning(
            "processing.direct_url_failed",
            extra={"url": direct_url, "error": str(direct_exc)},
        )
        return await parser.parse(fallback_url)


async def run_processing(
    chat_id: str,
    record_id: uuid.UUID,
    pdf_storage_url: str,
    parser: BaseDocumentParser,
) -> None:
    """Background-safe processing job; creates its own DB sessions.

    Writes are skipped when the chat no longer points at record_id, i.e. the
    job was superseded by a newer submission or cancelled.
    """
    start = time.monotonic()
    try:
        body = await _parse_with_fallback(parser, pdf_storage_url)
        document = parse_response(body)
        elapsed_ms = processing_time_ms(body, int((time.monotonic() - start) * 1000))

        async with AsyncSessionLocal() as session:
            chat = await session.get(Chat, chat_id)
            record = await session.get(ParsedContent, record_id)
            if chat is None or record is None or chat.parsed_content_id != record_id:
                logger.info("processing.superseded", extra={"chat_id": chat_id})
                return

            record.status = "completed"
            record.job_id = document.job_id
            record.result = document.model_dump(mode="json")
            record.page_count = document.page_count
            record.document_type = "pdf"
            record.processing_time_ms = elapsed_ms
            chat.processing_state = "completed"
            await session.commit()

        logger.info(
            "Processing completed: chat=%s pages=%d chunks=%d",
            chat_id,
            document.page_count,
            len(document.chunks),
        )

    except asyncio.CancelledError:
        logger.info("processing.cancelled", extra={"chat_id": chat_id})
        await _reset_to_idle(chat_id, record_id)
        raise

    except Exception as exc:
        logger.exception("Processing failed for chat %s", chat_id)
        await _record_failure(chat_id, record_id, str(exc))


async def _record_failure(chat_id: str, record_id: uuid.UUID, message: str) -> None:
    async with AsyncSessionLocal() as session:
        chat = await session.get(Chat, chat_id)
        record = await session.get(ParsedContent, record_id)
        if chat is None or record is None or chat.parsed_content_id != record_id:
            return
        record.status = "failed"
        record.error_message = message
        chat.processing_state = "failed"
        await session.commit()


async def _reset_to_idle(chat_id: str, record_id: uuid.UUID) -> None:
    """Interrupted jobs leave no record behind and return the chat to idle."""
    async with AsyncSessionLocal() as session:
        chat = await session.get(Chat, chat_id)
        if chat is None or chat.parsed_content_id != record_id:
            return
        record = await session.get(ParsedContent, record_id)
        if record is not None:
            await session.delete(record)
        chat.parsed_content_id = None
        chat.processing_state = "idle"
        await session.commit()
