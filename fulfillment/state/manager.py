"""Redis-based state manager shared by the order and menu repositories."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import redis.asyncio as redis
from redis.asyncio.lock import Lock

from fulfillment.config import get_settings
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class StateManager:
    """Centralized state access using Redis."""

    def __init__(self, redis_url: str | None = None) -> None:
        settings = get_settings()
        self.redis_client: redis.Redis | None = None
        self.redis_url = redis_url or settings.redis_url

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def ping(self) -> bool:
        if not self.redis_client:
            await self.connect()

        return bool(await self.redis_client.ping())

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value in Redis with optional TTL."""
        if not self.redis_client:
            await self.connect()

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        await self.redis_client.set(key, value, ex=ttl)
        logger.debug("state_set", key=key, ttl=ttl)

    async def get(self, key: str) -> Any:
        """Get a value from Redis."""
        if not self.redis_client:
            await self.connect()

        value = await self.redis_client.get(key)

        if value:
            try:
                return json.loads(value)
            except (json.JSONDecodeError, TypeError):
                return value

        return None

    async def delete(self, *keys: str) -> None:
        """Delete keys from Redis."""
        if not self.redis_client:
            await self.connect()

        if keys:
            await self.redis_client.delete(*keys)
            logger.debug("state_deleted", keys=list(keys))

    async def members(self, key: str) -> set[str]:
        """Get all members of a set."""
        if not self.redis_client:
            await self.connect()

        return set(await self.redis_client.smembers(key))

    async def get_many(self, keys: list[str]) -> list[Any]:
        """Get several JSON values at once, None for missing keys."""
        if not self.redis_client:
            await self.connect()

        if not keys:
            return []

        values = await self.redis_client.mget(keys)
        return [json.loads(value) if value else None for value in values]

    async def save_indexed(
        self,
        key: str,
        value: dict[str, Any],
        member: str,
        add_to: Sequence[str] = (),
        remove_from: Sequence[str] = (),
    ) -> None:
        """
        Write a JSON document and its set-index memberships in one transaction.

        Args:
            key: Document key
            value: Document body
            member: Index member for this document
            add_to: Sets the member must belong to after the write
            remove_from: Sets the member must leave
        """
        if not self.redis_client:
            await self.connect()

        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.set(key, json.dumps(value))
            for index in add_to:
                pipe.sadd(index, member)
            for index in remove_from:
                pipe.srem(index, member)
            await pipe.execute()

        logger.debug(
            "state_saved",
            key=key,
            add_to=list(add_to),
            remove_from=list(remove_from),
        )

    def lock(self, name: str, timeout: float, blocking_timeout: float) -> Lock:
        """Distributed lock usable as an async context manager."""
        if not self.redis_client:
            raise RuntimeError("StateManager is not connected")

        return self.redis_client.lock(
            name,
            timeout=timeout,
            blocking_timeout=blocking_timeout,
        )

    async def publish(self, channel: str, message: str) -> None:
        """Publish a message to a channel."""
        if not self.redis_client:
            await self.connect()

        await self.redis_client.publish(channel, message)
        logger.debug("message_published", channel=channel)

    async def scan_keys(self, pattern: str) -> list[str]:
        """Collect keys matching a pattern without blocking the server."""
        if not self.redis_client:
            await self.connect()

        return [key async for key in self.redis_client.scan_iter(match=pattern)]


# Global state manager instance
_state_manager: StateManager | None = None


async def get_state_manager() -> StateManager:
    """Get the global state manager instance."""
    global _state_manager
    if _state_manager is None:
        _state_manager = StateManager()
        await _state_manager.connect()
    return _state_manager
