from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.chat.responder import simulate_reply
from docchat.db.models import Chat, Message, ParsedContent
from docchat.dependencies import get_chat, get_db
from docchat.schemas.message import (
    MessageListResponse,
    MessageResponse,
    Pagination,
    SendMessageRequest,
    SendMessageResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{chat_id}/messages", response_model=MessageListResponse)
async def list_messages(
    chat_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_db),
) -> MessageListResponse:
    """Return the chat's messages in chronological order, paginated."""
    total = await session.scalar(
        select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
    ) or 0

    result = await session.execute(
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.timestamp.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    messages = [
        MessageResponse(
            id=m.id,
            chat_id=m.chat_id,
            content=m.content,
            role=m.role,  # type: ignore[arg-type]
            timestamp=m.timestamp,
        )
        for m in result.scalars().all()
    ]
    return MessageListResponse(
        messages=messages,
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )


@router.post("/{chat_id}/messages", response_model=SendMessageResponse)
async def send_message(
    body: SendMessageRequest,
    chat: Chat = Depends(get_chat),
    session: AsyncSession = Depends(get_db),
) -> SendMessageResponse:
    """Store the user's message together with the assistant reply."""
    parsed = None
    if chat.parsed_content_id is not None:
        parsed = await session.get(ParsedContent, chat.parsed_content_id)

    reply = simulate_reply(body.message, chat, parsed)

    now = datetime.now(timezone.utc)
    user_message = Message(
        id=str(uuid.uuid4()), chat_id=chat.id, content=body.message, role="user", timestamp=now
    )
    assistant_message = Message(
        id=str(uuid.uuid4()), chat_id=chat.id, content=reply, role="assistant",
        timestamp=now + timedelta(microseconds=1),
    )
    session.add_all([user_message, assistant_message])
    await session.commit()

    logger.info("messages.send", extra={"chat_id": chat.id})
    return SendMessageResponse(
        response=reply,
        user_message_id=user_message.id,
        assistant_message_id=assistant_message.id,
        chat_id=chat.id,
    )
