from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from docchat.schemas.parsed_content import ParsedContentView, Unparsed

ProcessingState = Literal["idle", "processing", "completed", "failed"]

TERMINAL_STATES: frozenset[str] = frozenset({"completed", "failed"})


class ProcessRequest(BaseModel):
    chat_id: str = Field(min_length=1)
    pdf_storage_url: str = Field(min_length=1)


class ProcessResponse(BaseModel):
    success: bool
    job_id: UUID | None = None


class CancelRequest(BaseModel):
    chat_id: str = Field(min_length=1)
    cancel: bool = True


class CancelResponse(BaseModel):
    success: bool
    cancelled: bool


class ProcessingMetadata(BaseModel):
    page_count: int | None = None
    document_type: str | None = None
    processing_time_ms: int | None = None
    progress: float | None = None  # fraction, or a percentage when above 1


class StatusResponse(BaseModel):
    processing_state: ProcessingState = "idle"
    status: str = "not_started"
    parsed_content: ParsedContentView = Field(default_factory=Unparsed)
    error_message: str | None = None
    metadata: ProcessingMetadata | None = None

    # Explicit nulls mean the same as absent fields
    @field_validator("processing_state", mode="before")
    @classmethod
    def default_state(cls, v: str | None) -> str:
        return "idle" if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: str | None) -> str:
        return "not_started" if v is None else v

    @field_validator("parsed_content", mode="before")
    @classmethod
    def default_parsed_content(cls, v: object) -> object:
        return {"kind": "unparsed"} if v is None else v
