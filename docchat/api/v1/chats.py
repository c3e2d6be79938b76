from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.core.providers.base import BaseDocumentParser
from docchat.db.models import Chat, ParsedContent
from docchat.dependencies import get_chat, get_db, get_parser, get_registry
from docchat.processing.jobs import begin_processing
from docchat.processing.registry import ProcessingRegistry
from docchat.schemas.chat import ChatCreate, ChatResponse, ChatUpdate
from docchat.schemas.parsed_content import ParsedContentResponse, to_view

router = APIRouter()
logger = logging.getLogger(__name__)


def _chat_to_response(chat: Chat) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        title=chat.title,
        pdf_storage_url=chat.pdf_storage_url,
        pdf_file_name=chat.pdf_file_name,
        parsed_content_id=chat.parsed_content_id,
        processing_state=chat.processing_state,  # type: ignore[arg-type]
        audio_info=chat.audio_info,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


@router.get("", response_model=list[ChatResponse])
async def list_chats(
    session: AsyncSession = Depends(get_db),
) -> list[ChatResponse]:
    """List all chats, most recently updated first."""
    result = await session.execute(select(Chat).order_by(Chat.updated_at.desc()))
    return [_chat_to_response(c) for c in result.scalars().all()]


@router.post("", response_model=ChatResponse, status_code=201)
async def create_chat(
    body: ChatCreate,
    session: AsyncSession = Depends(get_db),
    registry: ProcessingRegistry = Depends(get_registry),
    parser: BaseDocumentParser = Depends(get_parser),
) -> ChatResponse:
    """Create a chat. When it references a PDF, processing starts right away."""
    if await session.get(Chat, body.id) is not None:
        raise HTTPException(status_code=409, detail=f"Chat '{body.id}' already exists")

    chat = Chat(
        id=body.id,
        title=body.title,
        pdf_storage_url=body.pdf_storage_url,
        pdf_file_name=body.pdf_file_name,
        audio_info=body.audio_info,
        processing_state="idle",
    )
    session.add(chat)
    await session.commit()

    if body.pdf_storage_url:
        await begin_processing(session, chat, body.pdf_storage_url, registry, parser)

    await session.refresh(chat)
    logger.info("chats.create", extra={"chat_id": chat.id, "has_pdf": bool(body.pdf_storage_url)})
    return _chat_to_response(chat)


@router.get("/{chat_id}", response_model=ChatResponse)
async def read_chat(chat: Chat = Depends(get_chat)) -> ChatResponse:
    return _chat_to_response(chat)


@router.put("/{chat_id}", response_model=ChatResponse)
async def update_chat(
    body: ChatUpdate,
    chat: Chat = Depends(get_chat),
    session: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """Apply the non-null fields of the body (partial update)."""
    for field, value in body.model_dump(exclude_none=True).items():
        setattr(chat, field, value)

    await session.commit()
    await session.refresh(chat)
    logger.info("chats.update", extra={"chat_id": chat.id})
    return _chat_to_response(chat)


@router.delete("/{chat_id}", status_code=204, response_model=None)
async def delete_chat(
    chat: Chat = Depends(get_chat),
    session: AsyncSession = Depends(get_db),
    registry: ProcessingRegistry = Depends(get_registry),
) -> None:
    """Delete a chat; messages and parsed content cascade. Stops any running job."""
    registry.cancel(chat.id)
    chat_id = chat.id
    await session.delete(chat)
    await session.commit()
    logger.info("chats.deleted", extra={"chat_id": chat_id})


@router.get("/{chat_id}/parsed-content", response_model=ParsedContentResponse)
async def read_parsed_content(
    chat: Chat = Depends(get_chat),
    session: AsyncSession = Depends(get_db),
) -> ParsedContentResponse:
    """Return the chat's current parse result as a tagged union."""
    record = None
    if chat.parsed_content_id is not None:
        record = await session.get(ParsedContent, chat.parsed_content_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No parsed content found for this chat")

    return ParsedContentResponse(
        id=record.id,
        status=record.status,
        parsed_content=to_view(record.status, record.result, record.error_message),
        error_message=record.error_message,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
