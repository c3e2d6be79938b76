from __future__ import annotations

from fastapi import APIRouter

from docchat.api.v1 import chats, messages, processing, tts, uploads

router = APIRouter()
router.include_router(chats.router, prefix="/chats", tags=["chats"])
router.include_router(messages.router, prefix="/chats", tags=["messages"])
router.include_router(processing.router, prefix="/process-pdf", tags=["processing"])
router.include_router(tts.router, prefix="/tts", tags=["tts"])
router.include_router(uploads.router)
