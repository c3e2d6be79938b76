from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_JobFactory = Callable[[], Coroutine[Any, Any, None]]


class ProcessingRegistry:
    """Tracks the running processing task of each chat.

    At most one task runs per chat id; starting a new one cancels the old.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def start(self, chat_id: str, job: _JobFactory) -> asyncio.Task[None]:
        self.cancel(chat_id)
        task = asyncio.create_task(job(), name=f"process-pdf:{chat_id}")
        self._tasks[chat_id] = task
        task.add_done_callback(lambda t: self._discard(chat_id, t))
        logger.info("registry.start", extra={"chat_id": chat_id})
        return task

    def cancel(self, chat_id: str) -> bool:
        """Cancel the chat's running task. Returns False when nothing was running."""
        if not self.is_running(chat_id):
            self._tasks.pop(chat_id, None)
            return False
        self._tasks.pop(chat_id).cancel()
        logger.info("registry.cancel", extra={"chat_id": chat_id})
        return True

    def is_running(self, chat_id: str) -> bool:
        task = self._tasks.get(chat_id)
        return task is not None and not task.done()

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("registry.shutdown", extra={"cancelled": len(tasks)})

    def _discard(self, chat_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(chat_id) is task:
            del self._tasks[chat_id]


registry = ProcessingRegistry()
