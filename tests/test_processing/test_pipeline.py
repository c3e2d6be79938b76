from __future__ import annotations

import asyncio
import json
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from docchat.core import storage
from docchat.core.providers.base import ParserError
from docchat.core.providers.reducto_provider import ReductoParser
from docchat.db.models import Chat, ParsedContent
from docchat.processing.pipeline import run_processing

_BODY = {
    "job_id": "reducto-1",
    "duration": 1.5,
    "usage": {"num_pages": 3},
    "result": {"type": "full", "chunks": [{"content": "Hello", "blocks": []}]},
}


def _setup(make_session, record_id: uuid.UUID, current_id: uuid.UUID | None = None):
    chat = MagicMock()
    chat.id = "chat-1"
    chat.parsed_content_id = record_id if current_id is None else current_id
    chat.processing_state = "processing"
    record = MagicMock()
    record.id = record_id
    record.status = "processing"
    session = make_session({(Chat, "chat-1"): chat, (ParsedContent, record_id): record})
    return chat, record, session


async def test_success_stores_result(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    parser = MagicMock()
    parser.parse = AsyncMock(return_value=_BODY)

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        await run_processing("chat-1", record_id, "pdfs/a.pdf", parser)

    parser.parse.assert_awaited_once_with(storage.access_url("pdfs/a.pdf"))
    assert record.status == "completed"
    assert record.job_id == "reducto-1"
    assert record.page_count == 3
    assert record.document_type == "pdf"
    assert record.processing_time_ms == 1500
    assert record.result["chunks"][0]["content"] == "Hello"
    assert chat.processing_state == "completed"
    session.commit.assert_awaited_once()


async def test_falls_back_to_proxy_url(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    parser = MagicMock()
    parser.parse = AsyncMock(side_effect=[ParserError("Parser returned 400", status_code=400), _BODY])

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        await run_processing("chat-1", record_id, "pdfs/a.pdf", parser)

    urls = [c.args[0] for c in parser.parse.await_args_list]
    assert urls == [storage.access_url("pdfs/a.pdf"), storage.proxy_url("pdfs/a.pdf")]
    assert record.status == "completed"


async def test_failure_marks_chat_and_record_failed(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    parser = MagicMock()
    parser.parse = AsyncMock(side_effect=ParserError("Parser returned 500: boom", status_code=500))

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        await run_processing("chat-1", record_id, "pdfs/a.pdf", parser)

    assert parser.parse.await_count == 2
    assert record.status == "failed"
    assert record.error_message == "Parser returned 500: boom"
    assert chat.processing_state == "failed"


async def test_external_url_is_not_proxied(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    parser = MagicMock()
    parser.parse = AsyncMock(side_effect=ParserError("unreachable"))

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        await run_processing("chat-1", record_id, "https://example.org/doc.pdf", parser)

    parser.parse.assert_awaited_once_with("https://example.org/doc.pdf")
    assert record.status == "failed"


async def test_superseded_job_writes_nothing(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id, current_id=uuid.uuid4())
    parser = MagicMock()
    parser.parse = AsyncMock(return_value=_BODY)

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        await run_processing("chat-1", record_id, "pdfs/a.pdf", parser)

    assert record.status == "processing"
    assert chat.processing_state == "processing"
    session.commit.assert_not_awaited()


async def test_cancellation_resets_chat_to_idle(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    started = asyncio.Event()

    async def _slow_parse(url: str) -> dict:
        started.set()
        await asyncio.Event().wait()
        return _BODY

    parser = MagicMock()
    parser.parse = AsyncMock(side_effect=_slow_parse)

    with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
        task = asyncio.create_task(run_processing("chat-1", record_id, "pdfs/a.pdf", parser))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    session.delete.assert_awaited_once_with(record)
    assert chat.parsed_content_id is None
    assert chat.processing_state == "idle"


async def test_non_json_parser_reply_falls_back_to_proxy_url(make_session) -> None:
    record_id = uuid.uuid4()
    chat, record, session = _setup(make_session, record_id)
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        document_url = json.loads(request.content)["document_url"]
        seen.append(document_url)
        if document_url == storage.access_url("pdfs/a.pdf"):
            return httpx.Response(200, text="<html>Access denied</html>")
        return httpx.Response(200, json=_BODY)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with patch("docchat.processing.pipeline.AsyncSessionLocal", MagicMock(return_value=session)):
            await run_processing("chat-1", record_id, "pdfs/a.pdf", ReductoParser(client))

    assert seen == [storage.access_url("pdfs/a.pdf"), storage.proxy_url("pdfs/a.pdf")]
    assert record.status == "completed"
    assert chat.processing_state == "completed"
