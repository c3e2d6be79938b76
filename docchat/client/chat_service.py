from __future__ import annotations

import uuid
from typing import Any

import httpx

from docchat.client.http import request_json
from docchat.schemas.chat import ChatResponse
from docchat.schemas.message import MessageListResponse, SendMessageResponse
from docchat.schemas.parsed_content import ParsedContentResponse
from docchat.schemas.upload import UploadResponse

_CHATS = "/api/v1/chats"


class ChatServiceClient:
    """Typed wrapper around the chat, message and upload endpoints."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_chats(self) -> list[ChatResponse]:
        body = await request_json(self._client, "GET", _CHATS, error_message="Failed to fetch chats")
        return [ChatResponse.model_validate(c) for c in body]

    async def fetch_chat(self, chat_id: str) -> ChatResponse:
        body = await request_json(
            self._client, "GET", f"{_CHATS}/{chat_id}", error_message="Failed to fetch chat"
        )
        return ChatResponse.model_validate(body)

    async def create_chat(
        self,
        title: str,
        *,
        pdf_storage_url: str | None = None,
        pdf_file_name: str | None = None,
        audio_info: str | None = None,
    ) -> ChatResponse:
        payload: dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "title": title,
            "pdf_storage_url": pdf_storage_url,
            "pdf_file_name": pdf_file_name,
            "audio_info": audio_info,
        }
        body = await request_json(
            self._client, "POST", _CHATS, json=payload, error_message="Failed to create chat"
        )
        return ChatResponse.model_validate(body)

    async def update_chat(self, chat_id: str, **fields: Any) -> ChatResponse:
        body = await request_json(
            self._client,
            "PUT",
            f"{_CHATS}/{chat_id}",
            json=fields,
            error_message="Failed to update chat",
        )
        return ChatResponse.model_validate(body)

    async def delete_chat(self, chat_id: str) -> None:
        await request_json(
            self._client, "DELETE", f"{_CHATS}/{chat_id}", error_message="Failed to delete chat"
        )

    async def send_message(self, chat_id: str, message: str) -> SendMessageResponse:
        body = await request_json(
            self._client,
            "POST",
            f"{_CHATS}/{chat_id}/messages",
            json={"message": message},
            error_message="Failed to send message",
        )
        return SendMessageResponse.model_validate(body)

    async def fetch_messages(
        self, chat_id: str, *, page: int = 1, limit: int = 50
    ) -> MessageListResponse:
        body = await request_json(
            self._client,
            "GET",
            f"{_CHATS}/{chat_id}/messages",
            params={"page": page, "limit": limit},
            error_message="Failed to fetch messages",
        )
        return MessageListResponse.model_validate(body)

    async def fetch_parsed_content(self, chat_id: str) -> ParsedContentResponse:
        body = await request_json(
            self._client,
            "GET",
            f"{_CHATS}/{chat_id}/parsed-content",
            error_message="Failed to fetch parsed content",
        )
        return ParsedContentResponse.model_validate(body)

    async def upload_pdf(self, filename: str, pdf_bytes: bytes) -> str:
        body = await request_json(
            self._client,
            "POST",
            "/api/v1/uploads",
            files={"file": (filename, pdf_bytes, "application/pdf")},
            error_message="Failed to upload file",
        )
        return UploadResponse.model_validate(body).key
