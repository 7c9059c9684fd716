"""Room fanout backends: in-process and Redis Pub/Sub."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis

from exchange_chat.infrastructure.bus.serializer import deserialize_event, serialize_event
from exchange_chat.infrastructure.ws.manager import ConnectionRegistry

logger = logging.getLogger(__name__)


def _user_keys(user_ids: tuple[int, ...] | list[int]) -> list[str]:
    return [f"user:{uid}" for uid in user_ids]


class LocalFanout:
    """Implements application.ports.bus.RoomEventPublisher for a single gateway process."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    async def publish(
        self,
        event_type: str,
        data: dict[str, Any],
        *,
        room_id: str,
        user_ids: tuple[int, ...] = (),
    ) -> None:
        await self._registry.broadcast_to_room(room_id, event_type, data, also=_user_keys(user_ids))


class RedisPubSubPublisher:
    """Implements application.ports.bus.RoomEventPublisher across gateway instances."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def publish(
        self,
        event_type: str,
        data: dict[str, Any],
        *,
        room_id: str,
        user_ids: tuple[int, ...] = (),
    ) -> None:
        payload = {"room_id": room_id, "user_ids": list(user_ids), "data": data}
        await self._redis.publish(self._channel, serialize_event(event_type, payload))


class RedisPubSubSubscriber:
    """Background task that re-dispatches Redis fanout events to local connections."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        registry: ConnectionRegistry,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._registry = registry
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event_type, payload = deserialize_event(message["data"])
                    await self._registry.broadcast_to_room(
                        payload["room_id"],
                        event_type,
                        payload["data"],
                        also=_user_keys(payload.get("user_ids", [])),
                    )
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
