from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from docchat.config import settings
from docchat.core.providers.base import BaseSpeechProvider, SpeechProviderError
from docchat.schemas.tts import TTSRequest

logger = logging.getLogger(__name__)

# Request field -> Play.ai payload key, sent only when set
_OPTIONAL_FIELDS = {
    "quality": "quality",
    "speed": "speed",
    "sample_rate": "sampleRate",
    "seed": "seed",
    "temperature": "temperature",
    "voice_guidance": "voiceGuidance",
    "style_guidance": "styleGuidance",
    "text_guidance": "textGuidance",
}


class PlayAISpeechProvider(BaseSpeechProvider):
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(timeout=60.0)

    @property
    def configured(self) -> bool:
        return bool(settings.playai_api_key)

    def build_payload(self, request: TTSRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model or settings.playai_default_model,
            "text": request.text,
            "voice": request.voice or settings.playai_default_voice,
            "outputFormat": request.output_format,
            "language": request.language,
        }
        for field, key in _OPTIONAL_FIELDS.items():
            value = getattr(request, field)
            if value is not None:
                payload[key] = value
        return payload

    async def synthesize(self, request: TTSRequest) -> bytes:
        payload = self.build_payload(request)
        headers = {
            "AUTHORIZATION": settings.playai_api_key,
            "X-USER-ID": settings.playai_user_id,
            "Content-Type": "application/json",
        }

        start = time.monotonic()
        try:
            response = await self._client.post(settings.playai_tts_url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise SpeechProviderError(f"TTS request failed: {exc}") from exc

        if response.status_code >= 400:
            message = f"API Error: {response.status_code}"
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            if isinstance(error_body, dict) and error_body.get("error"):
                message = str(error_body["error"])
            logger.warning(
                "tts.upstream_error",
                extra={"status": response.status_code, "error": message},
            )
            raise SpeechProviderError(message, status_code=response.status_code)

        logger.info(
            "Play.ai synthesize",
            extra={
                "model": payload["model"],
                "chars": len(request.text),
                "bytes": len(response.content),
                "latency_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response.content
