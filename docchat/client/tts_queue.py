from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from docchat.client.http import send

logger = logging.getLogger(__name__)

TTS_PATH = "/api/v1/tts"


@dataclass(frozen=True)
class SpeechQueueItem:
    text: str
    is_full_text: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])


class AudioPlayer(Protocol):
    async def play(self, audio: bytes, content_type: str) -> None:
        """Play audio to completion; raise on playback failure."""
        ...

    async def stop(self) -> None: ...


class SpeechQueue:
    """FIFO of texts to speak, played strictly one at a time.

    Each item is synthesized through the TTS endpoint and handed to the
    player. An item leaves the queue when it finishes playing or fails; a
    failure sets error and calls on_error but does not stop the queue.
    Failed items are not retried.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        player: AudioPlayer,
        *,
        on_error: Callable[[SpeechQueueItem, Exception], Any] | None = None,
    ) -> None:
        self._client = client
        self._player = player
        self._on_error = on_error
        self._items: deque[SpeechQueueItem] = deque()
        self._worker: asyncio.Task[None] | None = None
        self.is_loading = False
        self.is_playing = False
        self.error: str | None = None

    @property
    def queue(self) -> tuple[SpeechQueueItem, ...]:
        return tuple(self._items)

    def play_text(self, text: str, is_full_text: bool = False) -> SpeechQueueItem | None:
        """Queue text; playback starts immediately if nothing else is playing."""
        if not text:
            return None
        item = SpeechQueueItem(text=text, is_full_text=is_full_text)
        self._items.append(item)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain(), name="speech-queue")
        return item

    async def stop_playback(self) -> None:
        """Stop the current item and drop everything queued."""
        self._items.clear()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            await asyncio.wait([worker])
        await self._player.stop()
        self.is_playing = False
        self.is_loading = False

    async def join(self) -> None:
        """Wait until the queue has drained."""
        while self._worker is not None and not self._worker.done():
            await asyncio.wait([self._worker])

    async def _drain(self) -> None:
        while self._items:
            item = self._items[0]
            try:
                await self._play(item)
            except Exception as exc:
                logger.warning("tts.playback_failed", extra={"item": item.id, "error": str(exc)})
                self.error = str(exc) or "Failed to play audio"
                await self._notify(item, exc)
            finally:
                self.is_loading = False
                self.is_playing = False
                # stop_playback may have emptied the queue meanwhile
                if self._items and self._items[0] is item:
                    self._items.popleft()

    async def _play(self, item: SpeechQueueItem) -> None:
        self.is_loading = True
        self.error = None
        response = await send(
            self._client,
            "POST",
            TTS_PATH,
            json={"text": item.text},
            error_message="API Error",
        )
        self.is_loading = False
        self.is_playing = True
        content_type = response.headers.get("content-type", "audio/mpeg")
        await self._player.play(response.content, content_type)

    async def _notify(self, item: SpeechQueueItem, exc: Exception) -> None:
        if self._on_error is None:
            return
        result = self._on_error(item, exc)
        if inspect.isawaitable(result):
            await result
