"""
Messages Router
===============
Shared live chat: history, posting and a Server-Sent Events feed.

Endpoints:
- GET  /api/v1/messages          - Oldest-first history
- POST /api/v1/messages          - Post a message (signed-in users)
- GET  /api/v1/messages/stream   - New messages as they are posted (SSE)
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse

from logging_config import get_logger
from routers.deps import get_current_user, get_live_chat_service
from schemas import AuthUser, LiveMessage, SendMessageRequest
from services.live_chat import LiveChatService, get_broadcaster

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=List[LiveMessage])
async def list_messages(
    limit: int = Query(50, ge=1, le=500),
    chat: LiveChatService = Depends(get_live_chat_service),
):
    return await chat.get_messages(limit)


@router.post("", response_model=LiveMessage, status_code=201)
async def send_message(
    request: SendMessageRequest,
    user: AuthUser = Depends(get_current_user),
    chat: LiveChatService = Depends(get_live_chat_service),
):
    username = user.username or (user.email or "").split("@")[0] or "anonymous"
    return await chat.send_message(user.id, username, request.content)


@router.get("/stream")
async def stream_messages(request: Request):
    """
    Stream newly posted messages.

    Each event is named ``message`` and carries the message as JSON.
    History is not replayed; fetch it with ``GET /messages`` first.
    """
    broadcaster = get_broadcaster()

    async def event_generator():
        async for message in broadcaster.subscribe():
            if await request.is_disconnected():
                logger.info("live_chat_client_disconnected")
                break
            yield {"event": "message", "id": message.id, "data": message.model_dump_json()}

    return EventSourceResponse(event_generator())
