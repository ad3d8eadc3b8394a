import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError
from ulid import ULID

from clypsync.database.base import (
    DeleteCallback,
    InsertCallback,
    PasteStore,
    Subscription,
)
from clypsync.exceptions import StoreError
from clypsync.models import Paste, PasteKind, room_channel

logger = logging.getLogger(__name__)

INSERT_EVENT = "INSERT"
DELETE_EVENT = "DELETE"
RESUBSCRIBE_DELAY = 1.0


def _paste_key(paste_id: str) -> str:
    return f"paste:{paste_id}"


def _room_key(room_code: str) -> str:
    return f"room:{room_code}:pastes"


class RedisSubscription(Subscription):

    def __init__(self, pubsub: Any, channel: str, on_insert: InsertCallback,
                 on_delete: DeleteCallback, retry_delay: float = RESUBSCRIBE_DELAY):
        self._pubsub = pubsub
        self._channel = channel
        self._on_insert = on_insert
        self._on_delete = on_delete
        self._retry_delay = retry_delay
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    def start(self) -> None:
        self._task = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        while True:
            try:
                async for message in self._pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    self._dispatch(message.get("data"))
                return
            except RedisError as e:
                logger.warning(f"Change feed for {self._channel} lost: {e}")
            await self._resubscribe()

    async def _resubscribe(self) -> None:
        while True:
            await asyncio.sleep(self._retry_delay)
            try:
                await self._pubsub.subscribe(self._channel)
            except RedisError as e:
                logger.warning(f"Resubscribing to {self._channel} failed: {e}")
                continue
            logger.info(f"Change feed for {self._channel} restored")
            # Events published while disconnected are gone; a delete makes the room re-fetch.
            self._on_delete()
            return

    def _dispatch(self, raw: Any) -> None:
        try:
            event = json.loads(raw)
            kind = event.get("event")
            if kind == INSERT_EVENT:
                self._on_insert(Paste.from_mapping(event["paste"]))
            elif kind == DELETE_EVENT:
                self._on_delete()
            else:
                logger.warning(f"Ignoring unknown event on {self._channel}: {kind!r}")
        except (ValueError, KeyError, TypeError, PydanticValidationError) as e:
            logger.warning(f"Malformed event on {self._channel}: {e}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        try:
            await self._pubsub.aclose()
        except RedisError as e:
            logger.warning(f"Failed to release subscription to {self._channel}: {e}")


class RedisPasteStore(PasteStore):
    """Pastes kept in Redis.

    Each paste is a hash ``paste:{id}``; a room is the sorted set
    ``room:{pin}:pastes`` scored by creation time. Every successful
    mutation is published on ``room:{pin}:events``.
    """

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None, ssl: bool = False,
                 client: Optional[aioredis.Redis] = None):
        self.client = client if client is not None else aioredis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            ssl=ssl,
            decode_responses=True
        )

    async def _server_time(self) -> datetime:
        seconds, micros = await self.client.time()
        return datetime.fromtimestamp(seconds + micros / 1_000_000, tz=timezone.utc)

    async def _publish(self, room_code: str, event: Dict[str, Any]) -> None:
        await self.client.publish(room_channel(room_code), json.dumps(event))

    async def list(self, room_code: str) -> List[Paste]:
        try:
            paste_ids = await self.client.zrevrange(_room_key(room_code), 0, -1)
            if not paste_ids:
                return []

            async with self.client.pipeline(transaction=False) as pipe:
                for paste_id in paste_ids:
                    pipe.hgetall(_paste_key(paste_id))
                records = await pipe.execute()
        except RedisError as e:
            raise StoreError(f"Failed to list pastes: {e}") from e

        pastes = []
        for paste_id, record in zip(paste_ids, records):
            if not record:
                continue
            try:
                pastes.append(Paste.from_mapping(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed paste {paste_id}: {e}")
        return pastes

    async def get(self, paste_id: str) -> Optional[Paste]:
        try:
            record = await self.client.hgetall(_paste_key(paste_id))
        except RedisError as e:
            raise StoreError(f"Failed to read paste: {e}") from e
        if not record:
            return None
        try:
            return Paste.from_mapping(record)
        except PydanticValidationError as e:
            raise StoreError(f"Malformed paste {paste_id}: {e}") from e

    async def insert(self, room_code: str, content: str, kind: PasteKind) -> Paste:
        try:
            created_at = await self._server_time()
            paste = Paste(
                id=str(ULID()),
                room_code=room_code,
                content=content,
                kind=kind,
                created_at=created_at,
            )

            async with self.client.pipeline(transaction=True) as pipe:
                pipe.hset(_paste_key(paste.id), mapping=paste.to_mapping())
                pipe.zadd(_room_key(room_code), {paste.id: created_at.timestamp()})
                await pipe.execute()

            await self._publish(room_code, {
                "event": INSERT_EVENT,
                "paste": paste.to_mapping(),
            })
        except RedisError as e:
            raise StoreError(f"Failed to insert paste: {e}") from e
        return paste

    async def delete_by_id(self, paste_id: str) -> None:
        try:
            room_code = await self.client.hget(_paste_key(paste_id), "room_code")
            if room_code is None:
                return

            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(_paste_key(paste_id))
                pipe.zrem(_room_key(room_code), paste_id)
                await pipe.execute()

            await self._publish(room_code, {"event": DELETE_EVENT})
        except RedisError as e:
            raise StoreError(f"Failed to delete paste: {e}") from e

    async def delete_by_room(self, room_code: str) -> None:
        try:
            paste_ids = await self.client.zrange(_room_key(room_code), 0, -1)
            if not paste_ids:
                return

            async with self.client.pipeline(transaction=True) as pipe:
                for paste_id in paste_ids:
                    pipe.delete(_paste_key(paste_id))
                pipe.delete(_room_key(room_code))
                await pipe.execute()

            await self._publish(room_code, {"event": DELETE_EVENT})
        except RedisError as e:
            raise StoreError(f"Failed to clear room: {e}") from e

    async def subscribe(self, room_code: str, on_insert: InsertCallback,
                        on_delete: DeleteCallback) -> Subscription:
        channel = room_channel(room_code)
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(channel)
        except RedisError as e:
            await pubsub.aclose()
            raise StoreError(f"Failed to subscribe to room: {e}") from e

        subscription = RedisSubscription(pubsub, channel, on_insert, on_delete)
        subscription.start()
        logger.debug(f"Subscribed to {channel}")
        return subscription

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self.client.ping()
            info = await self.client.info()
            return {
                "status": "healthy",
                "connected_clients": info.get('connected_clients', 0),
                "used_memory": info.get('used_memory_human', 'unknown'),
                "total_keys": await self.client.dbsize(),
            }
        except RedisError as e:
            return {"status": "unhealthy", "error": str(e)}

    async def close(self) -> None:
        await self.client.aclose()
