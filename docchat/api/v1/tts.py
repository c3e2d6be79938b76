from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from docchat.core.providers.base import BaseSpeechProvider, SpeechProviderError
from docchat.dependencies import get_speech_provider
from docchat.schemas.tts import TTSRequest

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_class=Response)
async def text_to_speech(
    body: TTSRequest,
    provider: BaseSpeechProvider = Depends(get_speech_provider),
) -> Response:
    """Synthesize body.text and return the raw audio."""
    if not provider.configured:
        raise HTTPException(status_code=500, detail="API key not configured")

    try:
        audio = await provider.synthesize(body)
    except SpeechProviderError as exc:
        logger.warning("tts.failed", extra={"status": exc.status_code, "error": exc.message})
        raise HTTPException(status_code=exc.status_code or 502, detail=exc.message) from exc

    return Response(content=audio, media_type=body.media_type)
