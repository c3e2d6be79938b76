from __future__ import annotations

"""process_pdf.py: Upload PDFs, open a chat for each and wait for parsing.

Usage:
    python scripts/process_pdf.py path/to/a.pdf [more.pdf ...]

Requires:
  - API running at API_BASE_URL (default http://localhost:8000)
"""

import asyncio
import os
import sys
from pathlib import Path

# Allow running from project root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from docchat.client.chat_service import ChatServiceClient
from docchat.client.http import ApiError
from docchat.client.tracker import ProcessingTracker
from docchat.schemas.parsed_content import Parsed

BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
POLL_INTERVAL = 2  # seconds between status polls
POLL_TIMEOUT = 300  # max seconds to wait per doc


async def process_file(client: httpx.AsyncClient, pdf_path: Path) -> str | None:
    """Upload a PDF and return the chat id once its content is parsed."""
    service = ChatServiceClient(client)
    print(f"\n→ Uploading {pdf_path.name} …")
    try:
        key = await service.upload_pdf(pdf_path.name, pdf_path.read_bytes())
        chat = await service.create_chat(pdf_path.stem, pdf_file_name=pdf_path.name)
    except ApiError as exc:
        print(f"  ✗ Upload failed ({exc.status_code}): {exc.message}")
        return None

    print(f"  chat_id: {chat.id}, processing …", end="", flush=True)

    async def on_progress_tick(delay: float) -> None:
        print(".", end="", flush=True)
        await asyncio.sleep(delay)

    tracker = ProcessingTracker(
        client,
        chat.id,
        pdf_storage_url=key,
        polling_interval=POLL_INTERVAL,
        sleep=on_progress_tick,
    )
    async with tracker:
        await tracker.start_processing()
        try:
            state = await asyncio.wait_for(tracker.wait(), timeout=POLL_TIMEOUT)
        except asyncio.TimeoutError:
            await tracker.cancel()
            print(f"\n  ✗ Timed out after {POLL_TIMEOUT}s")
            return None

    if state == "completed":
        pages = tracker.metadata.page_count if tracker.metadata else None
        print(f"\n  ✓ Completed: {pages} page(s)")
        content = tracker.parsed_content
        if isinstance(content, Parsed) and content.document.text:
            print(f"  {content.document.text[:200]}")
        return chat.id
    print(f"\n  ✗ Failed: {tracker.error_message}")
    return None


async def main() -> None:
    pdfs = [Path(p) for p in sys.argv[1:]]
    if not pdfs:
        print("Usage: python scripts/process_pdf.py file.pdf [file.pdf ...]")
        sys.exit(1)

    results: dict[str, str | None] = {}
    async with httpx.AsyncClient(base_url=BASE_URL, timeout=60) as client:
        for pdf_path in pdfs:
            results[pdf_path.name] = await process_file(client, pdf_path)

    print("\n" + "=" * 60)
    print("Processing summary:")
    for name, chat_id in results.items():
        status = f"chat_id={chat_id}" if chat_id else "FAILED"
        print(f"  {name}: {status}")
    print("=" * 60)

    failed = [n for n, c in results.items() if c is None]
    if failed:
        print(f"\n{len(failed)} document(s) failed to process.")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
