from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from docchat.config import settings
from docchat.core import storage
from docchat.schemas.upload import UploadResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/uploads", response_model=UploadResponse, tags=["uploads"])
async def upload_pdf(file: UploadFile = File(...)) -> UploadResponse:
    """Store a PDF in object storage and return its key."""
    if file.content_type != "application/pdf":
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    pdf_bytes = await file.read()
    if not pdf_bytes:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(pdf_bytes) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"File size cannot exceed {limit_mb}MB")

    try:
        key = await storage.upload_pdf(pdf_bytes)
    except storage.StorageError as exc:
        logger.error("uploads.failed", extra={"filename": file.filename, "error": str(exc)})
        raise HTTPException(
            status_code=500, detail="S3 upload failed. Please check your S3 configuration."
        ) from exc

    return UploadResponse(key=key)


@router.get("/proxy/pdf", tags=["uploads"])
async def proxy_pdf(key: str = Query(..., min_length=1)) -> Response:
    """Serve a stored PDF from this origin so viewers avoid cross-origin fetches."""
    try:
        pdf_bytes = await storage.get_pdf(storage.object_key(key))
    except storage.StorageError as exc:
        logger.error("proxy.failed", extra={"key": key, "error": str(exc)})
        raise HTTPException(status_code=500, detail="Failed to fetch PDF") from exc

    filename = key.rsplit("/", 1)[-1]
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
            "Cache-Control": "public, max-age=86400",
        },
    )
