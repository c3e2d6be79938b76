from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    id: str
    chat_id: str
    content: str
    role: Literal["user", "assistant"]
    timestamp: datetime


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    pagination: Pagination


class SendMessageRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000)


class SendMessageResponse(BaseModel):
    response: str
    user_message_id: str
    assistant_message_id: str
    chat_id: str
