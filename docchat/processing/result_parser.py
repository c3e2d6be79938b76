from __future__ import annotations

from typing import Any

from docchat.schemas.parsed_content import BoundingBox, ParsedChunk, ParsedDocument, TextBlock


def _parse_bbox(raw: Any) -> BoundingBox | None:
    if not isinstance(raw, dict):
        return None
    try:
        return BoundingBox(
            left=float(raw["left"]),
            top=float(raw["top"]),
            width=float(raw["width"]),
            height=float(raw["height"]),
            page=int(raw.get("page", 1)),
        )
    except (KeyError, TypeError, ValueError):
        return None


def _parse_block(raw: Any) -> TextBlock | None:
    if not isinstance(raw, dict):
        return None
    return TextBlock(
        type=str(raw.get("type") or "Text"),
        content=str(raw.get("content") or ""),
        bbox=_parse_bbox(raw.get("bbox")),
    )


def _chunks_from_full(result: dict[str, Any]) -> list[ParsedChunk]:
    chunks: list[ParsedChunk] = []
    for raw in result.get("chunks") or []:
        if not isinstance(raw, dict):
            continue
        blocks = [b for b in (_parse_block(x) for x in raw.get("blocks") or []) if b is not None]
        content = raw.get("content") or "\n".join(b.content for b in blocks)
        chunks.append(ParsedChunk(content=str(content), blocks=blocks))
    return chunks


def _chunks_from_pages(pages: list[Any]) -> list[ParsedChunk]:
    """Older responses carry one entry per page: {page_num, content}."""
    chunks: list[ParsedChunk] = []
    for i, page in enumerate(pages, start=1):
        if not isinstance(page, dict):
            continue
        content = str(page.get("content") or "")
        page_num = int(page.get("page_num") or i)
        block = TextBlock(
            type="Page",
            content=content,
            bbox=BoundingBox(left=0.0, top=0.0, width=1.0, height=1.0, page=page_num),
        )
        chunks.append(ParsedChunk(content=content, blocks=[block]))
    return chunks


def _page_count(body: dict[str, Any], result: dict[str, Any], chunks: list[ParsedChunk]) -> int:
    usage = body.get("usage")
    if isinstance(usage, dict) and isinstance(usage.get("num_pages"), int):
        return usage["num_pages"]
    pages = result.get("pages")
    if isinstance(pages, list):
        return len(pages)
    bbox_pages = [b.bbox.page for c in chunks for b in c.blocks if b.bbox is not None]
    return max(bbox_pages, default=0)


def parse_response(body: dict[str, Any]) -> ParsedDocument:
    """Map a raw parser response onto the ParsedDocument schema.

    Only the fields the application consumes are kept: page count, chunk
    text and per-block bounding boxes.
    """
    result = body.get("result")
    if isinstance(result, list):
        # URL-resolved results may be a bare chunk list
        result = {"chunks": result}
    if not isinstance(result, dict):
        result = {}

    if isinstance(result.get("pages"), list):
        chunks = _chunks_from_pages(result["pages"])
    else:
        chunks = _chunks_from_full(result)

    job_id = body.get("job_id")
    return ParsedDocument(
        job_id=str(job_id) if job_id else None,
        page_count=_page_count(body, result, chunks),
        chunks=chunks,
    )


def processing_time_ms(body: dict[str, Any], fallback_ms: int) -> int:
    """Upstream reports `duration` in seconds; fall back to the measured time."""
    duration = body.get("duration")
    if isinstance(duration, (int, float)):
        return int(duration * 1000)
    return fallback_ms
