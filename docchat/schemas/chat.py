from __future__ import annotations

import uuid
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from docchat.schemas.processing import ProcessingState


class ChatCreate(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)
    title: str = Field(min_length=1, max_length=500)
    pdf_storage_url: str | None = None
    pdf_file_name: str | None = None
    audio_info: str | None = None


class ChatUpdate(BaseModel):
    # Only non-null fields are applied
    title: str | None = Field(default=None, min_length=1, max_length=500)
    pdf_storage_url: str | None = None
    pdf_file_name: str | None = None
    audio_info: str | None = None


class ChatResponse(BaseModel):
    id: str
    title: str
    pdf_storage_url: str | None
    pdf_file_name: str | None
    parsed_content_id: UUID | None
    processing_state: ProcessingState
    audio_info: str | None
    created_at: datetime
    updated_at: datetime
