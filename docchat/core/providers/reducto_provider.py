from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from docchat.config import settings
from docchat.core.providers.base import BaseDocumentParser, ParserError

logger = logging.getLogger(__name__)

# Parse options used for every document: OCR text, one chunk per page,
# discarded/comment blocks filtered out.
_PARSE_OPTIONS: dict[str, Any] = {
    "options": {
        "extraction_mode": "ocr",
        "chunking": {"chunk_mode": "page"},
        "filter_blocks": ["Discard", "Comment"],
    },
    "advanced_options": {
        "ocr_system": "multilingual",
        "keep_line_breaks": True,
        "add_page_markers": True,
        "table_output_format": "dynamic",
        "continue_hierarchy": True,
        "remove_text_formatting": False,
        "merge_tables": True,
        "spreadsheet_table_clustering": "default",
    },
}


class ReductoParser(BaseDocumentParser):
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(timeout=settings.reducto_timeout_seconds)
        self._base_url = settings.reducto_base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {settings.reducto_api_key}",
            "Content-Type": "application/json",
        }

    async def parse(self, document_url: str) -> dict[str, Any]:
        if not settings.reducto_api_key:
            logger.warning("REDUCTO_API_KEY is not set. Parse calls will fail.")

        start = time.monotonic()
        try:
            response = await self._client.post(
                f"{self._base_url}/parse",
                headers=self._headers,
                json={"document_url": document_url, **_PARSE_OPTIONS},
            )
        except httpx.HTTPError as exc:
            raise ParserError(f"Parser request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ParserError(
                f"Parser returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            raise ParserError(f"Parser returned a non-JSON body: {exc}") from exc
        if not isinstance(body, dict):
            raise ParserError("Parser returned an unexpected body")
        result = body.get("result")

        # Large documents come back as a URL pointing at the full result
        if isinstance(result, dict) and result.get("type") == "url" and result.get("url"):
            body["result"] = await self._fetch_result(result["url"])

        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Reducto parse",
            extra={"job_id": body.get("job_id"), "latency_ms": latency_ms},
        )
        return body

    async def _fetch_result(self, url: str) -> dict[str, Any]:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ParserError(f"Failed to fetch parse result: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise ParserError(f"Parse result is not JSON: {exc}") from exc
