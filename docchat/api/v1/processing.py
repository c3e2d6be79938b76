from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.core.providers.base import BaseDocumentParser
from docchat.db.models import ParsedContent
from docchat.dependencies import get_db, get_parser, get_registry, load_chat
from docchat.processing.jobs import begin_processing, cancel_processing
from docchat.processing.registry import ProcessingRegistry
from docchat.schemas.parsed_content import to_view
from docchat.schemas.processing import (
    CancelRequest,
    CancelResponse,
    ProcessingMetadata,
    ProcessRequest,
    ProcessResponse,
    StatusResponse,
)

router = APIRouter()


@router.post("", response_model=ProcessResponse, status_code=202)
async def submit_processing(
    body: ProcessRequest,
    session: AsyncSession = Depends(get_db),
    registry: ProcessingRegistry = Depends(get_registry),
    parser: BaseDocumentParser = Depends(get_parser),
) -> ProcessResponse:
    """Start parsing the chat's PDF. Returns immediately with a job_id; poll /status."""
    chat = await load_chat(session, body.chat_id)
    job_id = await begin_processing(session, chat, body.pdf_storage_url, registry, parser)
    return ProcessResponse(success=True, job_id=job_id)


@router.get("/status", response_model=StatusResponse)
async def get_status(
    chat_id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_db),
) -> StatusResponse:
    """Poll the processing state of a chat's document."""
    chat = await load_chat(session, chat_id)

    record = None
    if chat.parsed_content_id is not None:
        record = await session.get(ParsedContent, chat.parsed_content_id)

    if record is None:
        return StatusResponse(processing_state=chat.processing_state)  # type: ignore[arg-type]

    return StatusResponse(
        processing_state=chat.processing_state,  # type: ignore[arg-type]
        status=record.status,
        parsed_content=to_view(record.status, record.result, record.error_message),
        error_message=record.error_message,
        metadata=ProcessingMetadata(
            page_count=record.page_count,
            document_type=record.document_type,
            processing_time_ms=record.processing_time_ms,
        ),
    )


@router.post("/cancel", response_model=CancelResponse)
async def cancel(
    body: CancelRequest,
    session: AsyncSession = Depends(get_db),
    registry: ProcessingRegistry = Depends(get_registry),
) -> CancelResponse:
    """Best-effort stop of the chat's processing job."""
    chat = await load_chat(session, body.chat_id)
    if not body.cancel:
        return CancelResponse(success=True, cancelled=False)
    cancelled = await cancel_processing(session, chat, registry)
    return CancelResponse(success=True, cancelled=cancelled)
