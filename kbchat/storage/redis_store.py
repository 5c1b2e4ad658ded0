"""Redis-backed conversation message log."""

import json
from datetime import datetime

import redis.asyncio as redis

from kbchat.chat.models import Message, Role
from kbchat.core.logging import get_logger

logger = get_logger(__name__)


class RedisMessageStore:
    """Conversation messages in Redis lists with TTL support.

    Only messages live here; bots, sources, chunks and leads stay in the
    primary store.
    """

    def __init__(self, url: str, ttl: int = 3600):
        self.url = url
        self.ttl = ttl
        self._client: redis.Redis | None = None

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=True)
            logger.info("redis_client_created", url=self.url)
        return self._client

    async def add_message(self, message: Message) -> None:
        """Append a message to the session log and refresh its expiry."""
        client = await self._get_client()
        key = self._get_key(message.bot_id, message.session_id)
        await client.rpush(key, json.dumps(message.to_dict(), ensure_ascii=False))
        await client.expire(key, self.ttl)
        logger.debug(
            "message_added",
            bot_id=message.bot_id,
            session_id=message.session_id,
            role=str(message.role),
        )

    async def get_messages(self, bot_id: str, session_id: str) -> list[Message]:
        client = await self._get_client()
        data = await client.lrange(self._get_key(bot_id, session_id), 0, -1)
        messages = []
        for item in data:
            raw = json.loads(item)
            messages.append(
                Message(
                    id=raw["id"],
                    bot_id=raw["bot_id"],
                    session_id=raw["session_id"],
                    role=Role(raw["role"]),
                    content=raw["content"],
                    created_at=datetime.fromisoformat(raw["created_at"]),
                )
            )
        return messages

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_client_closed")

    def _get_key(self, bot_id: str, session_id: str) -> str:
        return f"kbchat:messages:{bot_id}:{session_id}"
