from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Block position on a page, as fractions of the page size."""

    left: float
    top: float
    width: float
    height: float
    page: int  # 1-indexed


class TextBlock(BaseModel):
    type: str = "Text"
    content: str
    bbox: BoundingBox | None = None


class ParsedChunk(BaseModel):
    content: str
    blocks: list[TextBlock] = Field(default_factory=list)


class ParsedDocument(BaseModel):
    job_id: str | None = None
    page_count: int = 0
    chunks: list[ParsedChunk] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(c.content for c in self.chunks if c.content)


class Unparsed(BaseModel):
    kind: Literal["unparsed"] = "unparsed"


class Parsed(BaseModel):
    kind: Literal["parsed"] = "parsed"
    document: ParsedDocument


class Failed(BaseModel):
    kind: Literal["failed"] = "failed"
    reason: str


ParsedContentView = Annotated[Unparsed | Parsed | Failed, Field(discriminator="kind")]


def to_view(status: str | None, result: dict | None, error_message: str | None) -> Unparsed | Parsed | Failed:
    """Project a stored ParsedContent row onto the tagged union."""
    if status == "completed" and result is not None:
        return Parsed(document=ParsedDocument.model_validate(result))
    if status == "failed":
        return Failed(reason=error_message or "Unknown error")
    return Unparsed()


class ParsedContentResponse(BaseModel):
    id: UUID
    status: str
    parsed_content: ParsedContentView
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
