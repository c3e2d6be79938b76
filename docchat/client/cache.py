from __future__ import annotations

from docchat.schemas.processing import StatusResponse


class StatusCache:
    """Last known processing status per chat id.

    Shared between trackers of the same chat so readers see one value;
    invalidation drops the entry so nothing stale is shown until the next fetch.
    """

    def __init__(self) -> None:
        self._entries: dict[str, StatusResponse] = {}

    def get(self, chat_id: str) -> StatusResponse | None:
        return self._entries.get(chat_id)

    def set(self, chat_id: str, status: StatusResponse) -> None:
        self._entries[chat_id] = status

    def invalidate(self, chat_id: str) -> None:
        self._entries.pop(chat_id, None)
