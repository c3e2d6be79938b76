from __future__ import annotations

from docchat.db.models import Chat, ParsedContent


def simulate_reply(message: str, chat: Chat, parsed: ParsedContent | None) -> str:
    """Placeholder assistant reply until a model is wired in.

    Mentions the parser job when a parsed document is available and flags a
    PDF that has not finished processing.
    """
    if parsed is not None and parsed.status == "completed":
        reply = f'This is a simulated response to: "{message}" with PDF data from Reducto API.'
        if parsed.job_id:
            reply += f" (Job ID: {parsed.job_id})"
        return reply

    reply = f'This is a simulated response to: "{message}"'
    if chat.pdf_storage_url:
        reply += " (PDF is still being processed by Reducto API)"
    return reply
