"""
LinguaLens - Live Chat
======================
Persistent chat room backed by the ``messages`` table, with in-process
fan-out of new messages to streaming subscribers.
"""

import asyncio
from typing import AsyncIterator, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import MessageModel
from exceptions import ValidationError
from logging_config import get_logger
from schemas import LiveMessage

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50
SUBSCRIBER_QUEUE_SIZE = 100


class MessageBroadcaster:
    """
    Publish/subscribe hub for newly inserted chat messages.

    Each subscriber owns a bounded queue. A subscriber that falls behind
    loses its oldest pending message rather than blocking publishers.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, message: LiveMessage) -> int:
        """Deliver ``message`` to every subscriber; returns how many received it."""
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(message)
        return len(self._subscribers)

    async def subscribe(self) -> AsyncIterator[LiveMessage]:
        """
        Yield messages published after the call, until the consumer stops.

        Example:
            ```python
            async for message in broadcaster.subscribe():
                yield {"event": "message", "data": message.model_dump_json()}
            ```
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug("live_chat_subscribed", subscribers=len(self._subscribers))
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
            logger.debug("live_chat_unsubscribed", subscribers=len(self._subscribers))


_broadcaster: Optional[MessageBroadcaster] = None


def get_broadcaster() -> MessageBroadcaster:
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = MessageBroadcaster()
    return _broadcaster


def _to_live_message(row: MessageModel) -> LiveMessage:
    return LiveMessage(
        id=str(row.id),
        user_id=row.user_id,
        username=row.username,
        content=row.content,
        created_at=row.created_at,
    )


class LiveChatService:
    """Insert and read chat messages; new rows are published to the broadcaster."""

    def __init__(self, session: AsyncSession, broadcaster: Optional[MessageBroadcaster] = None):
        self._session = session
        self._broadcaster = broadcaster or get_broadcaster()

    async def send_message(self, user_id: str, username: str, content: str) -> LiveMessage:
        """
        Store a message and notify subscribers.

        The row is committed before anyone is told about it.

        Raises:
            ValidationError: Blank content
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message cannot be empty", field="content")

        row = MessageModel(user_id=user_id, username=username, content=content)
        self._session.add(row)
        await self._session.commit()

        message = _to_live_message(row)
        delivered = self._broadcaster.publish(message)
        logger.info("live_chat_message_sent", user_id=user_id, delivered=delivered)
        return message

    async def get_messages(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LiveMessage]:
        """Oldest-first chat history, at most ``limit`` rows."""
        stmt = select(MessageModel).order_by(MessageModel.created_at.asc()).limit(limit)
        result = await self._session.execute(stmt)
        return [_to_live_message(row) for row in result.scalars().all()]
