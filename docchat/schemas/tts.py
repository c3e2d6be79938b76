from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

OutputFormat = Literal["mp3", "wav", "mulaw", "flac", "ogg", "raw"]


class TTSRequest(BaseModel):
    text: str = Field(min_length=1, max_length=20_000)
    model: str | None = None  # falls back to settings.playai_default_model
    voice: str | None = None  # falls back to settings.playai_default_voice
    quality: str | None = None
    output_format: OutputFormat = "mp3"
    speed: float | None = None
    sample_rate: int | None = None
    language: str = "english"
    seed: int | None = None
    temperature: float | None = None
    voice_guidance: float | None = None
    style_guidance: float | None = None
    text_guidance: float | None = None

    @property
    def media_type(self) -> str:
        return f"audio/{'basic' if self.output_format == 'mulaw' else self.output_format}"
