"""
Availability cache.

CACHING STRATEGY
================

What we cache:
  - Per-event availability snapshots (seats/tables available, sold-out flag)
  - Key pattern: "availability:{event_id}"

Why:
  - Availability is the hottest read path (event pages, seat maps)
  - Computing it aggregates every booking for the event

Invalidation strategy:
  - Every booking write for an event invalidates that event's key
  - TTL expiry (5 minutes) bounds staleness if an invalidation is missed

Staleness is safe here: holds and bookings re-check live state before
they write, so a stale snapshot can only mislead a display, never a commit.

Backends:
  - InMemoryAvailabilityCache: per-process dict of key -> (value, timestamp)
  - RedisAvailabilityCache: shared across API workers
"""

import json
from abc import ABC, abstractmethod
from dataclasses import asdict
from datetime import datetime
from typing import Optional

import redis.asyncio as redis

from reservation_engine.core.config import Settings
from reservation_engine.core.logging import get_logger
from reservation_engine.core.metrics import cache_operations, record_cache_operation
from reservation_engine.domain.holds import Clock, utc_now
from reservation_engine.domain.records import Availability

logger = get_logger(__name__)


class AvailabilityCache(ABC):

    @abstractmethod
    async def get(self, event_id: int) -> Optional[Availability]:
        pass

    @abstractmethod
    async def set(self, event_id: int, value: Availability) -> None:
        pass

    @abstractmethod
    async def invalidate(self, event_id: int) -> None:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass


class InMemoryAvailabilityCache(AvailabilityCache):

    def __init__(self, ttl_seconds: int = 300, clock: Clock = utc_now):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, tuple[Availability, datetime]] = {}

    async def get(self, event_id: int) -> Optional[Availability]:
        entry = self._entries.get(event_id)
        if entry is not None:
            value, stored_at = entry
            if (self._clock() - stored_at).total_seconds() < self.ttl_seconds:
                record_cache_operation("get", hit=True)
                return value
            del self._entries[event_id]
        record_cache_operation("get", hit=False)
        return None

    async def set(self, event_id: int, value: Availability) -> None:
        self._entries[event_id] = (value, self._clock())

    async def invalidate(self, event_id: int) -> None:
        self._entries.pop(event_id, None)
        cache_operations.labels(operation="invalidate", result="ok").inc()

    async def clear(self) -> None:
        self._entries.clear()


class RedisAvailabilityCache(AvailabilityCache):
    """
    Redis-backed cache shared by all workers.
    Redis errors are logged and treated as misses; the database stays
    authoritative.
    """

    KEY_PREFIX = "availability:"

    def __init__(self, client: redis.Redis, ttl_seconds: int = 300):
        self._client = client
        self.ttl_seconds = ttl_seconds

    def _key(self, event_id: int) -> str:
        return f"{self.KEY_PREFIX}{event_id}"

    async def get(self, event_id: int) -> Optional[Availability]:
        key = self._key(event_id)
        try:
            data = await self._client.get(key)
        except redis.RedisError as e:
            logger.error("cache_get_error", key=key, error=str(e))
            return None
        if data:
            record_cache_operation("get", hit=True)
            return Availability(**json.loads(data))
        record_cache_operation("get", hit=False)
        return None

    async def set(self, event_id: int, value: Availability) -> None:
        key = self._key(event_id)
        try:
            await self._client.setex(key, self.ttl_seconds, json.dumps(asdict(value)))
        except redis.RedisError as e:
            logger.error("cache_set_error", key=key, error=str(e))

    async def invalidate(self, event_id: int) -> None:
        key = self._key(event_id)
        try:
            await self._client.delete(key)
            cache_operations.labels(operation="invalidate", result="ok").inc()
        except redis.RedisError as e:
            logger.error("cache_invalidation_error", key=key, error=str(e))

    async def clear(self) -> None:
        try:
            deleted = 0
            async for key in self._client.scan_iter(match=f"{self.KEY_PREFIX}*", count=100):
                await self._client.delete(key)
                deleted += 1
            logger.info("cache_cleared", keys_deleted=deleted)
        except redis.RedisError as e:
            logger.error("cache_clear_error", error=str(e))

    async def close(self) -> None:
        await self._client.aclose()


def build_availability_cache(settings: Settings, clock: Clock = utc_now) -> AvailabilityCache:
    if settings.CACHE_BACKEND == "redis":
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        return RedisAvailabilityCache(client, settings.AVAILABILITY_CACHE_TTL)
    return InMemoryAvailabilityCache(settings.AVAILABILITY_CACHE_TTL, clock)
