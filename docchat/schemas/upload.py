from __future__ import annotations

from pydantic import BaseModel


class UploadResponse(BaseModel):
    key: str  # object key, e.g. "pdfs/<uuid>.pdf"
