"""
Integration Tests - Live Chat
=============================
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from database.models import MessageModel
from exceptions import ValidationError
from schemas import LiveMessage
from services.live_chat import LiveChatService, MessageBroadcaster


def live_message(content: str) -> LiveMessage:
    return LiveMessage(
        id=content,
        user_id="user-1",
        username="ana",
        content=content,
        created_at=datetime.now(timezone.utc),
    )


@pytest.mark.integration
class TestMessageBroadcaster:

    async def test_subscriber_receives_published_messages(self):
        broadcaster = MessageBroadcaster()
        stream = broadcaster.subscribe()
        first = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)

        assert broadcaster.publish(live_message("hello")) == 1
        assert (await first).content == "hello"

        await stream.aclose()
        assert broadcaster.subscriber_count == 0

    async def test_publish_without_subscribers(self):
        assert MessageBroadcaster().publish(live_message("nobody")) == 0

    async def test_slow_subscriber_drops_oldest(self):
        broadcaster = MessageBroadcaster(queue_size=2)
        stream = broadcaster.subscribe()
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)

        for content in ("one", "two", "three", "four"):
            broadcaster.publish(live_message(content))

        received = [(await pending).content, (await stream.__anext__()).content]
        await stream.aclose()

        assert received == ["three", "four"]


@pytest.mark.integration
class TestLiveChatService:

    async def test_send_stores_and_publishes(self, db_session):
        broadcaster = MessageBroadcaster()
        stream = broadcaster.subscribe()
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        service = LiveChatService(db_session, broadcaster)

        message = await service.send_message("user-1", "ana", "  ¡Hola a todos!  ")

        assert message.content == "¡Hola a todos!"
        assert (await pending).id == message.id
        await stream.aclose()

        history = await service.get_messages()
        assert [m.id for m in history] == [message.id]

    async def test_failed_commit_is_not_broadcast(self, db_session):
        broadcaster = MessageBroadcaster()
        stream = broadcaster.subscribe()
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        service = LiveChatService(db_session, broadcaster)
        failure = OperationalError("INSERT INTO messages", {}, Exception("database is locked"))

        with patch.object(db_session, "commit", new=AsyncMock(side_effect=failure)):
            with pytest.raises(OperationalError):
                await service.send_message("user-1", "ana", "lost message")

        await asyncio.sleep(0)
        assert not pending.done()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
        assert broadcaster.subscriber_count == 0

    async def test_blank_message_is_rejected(self, db_session):
        service = LiveChatService(db_session, MessageBroadcaster())

        with pytest.raises(ValidationError) as exc_info:
            await service.send_message("user-1", "ana", "   ")

        assert exc_info.value.message == "Message cannot be empty"

    async def test_history_is_oldest_first_and_limited(self, db_session):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            db_session.add(MessageModel(
                user_id="user-1",
                username="ana",
                content=f"message {i}",
                created_at=start + timedelta(seconds=i),
            ))
        await db_session.flush()

        history = await LiveChatService(db_session, MessageBroadcaster()).get_messages(limit=3)

        assert [m.content for m in history] == ["message 0", "message 1", "message 2"]
