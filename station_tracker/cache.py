"""
Element Cache

Time-to-live gated cache of the last fetched element set per station, stored
in a plain string key/value store. Store failures never propagate: a failed
read is a cache miss and a failed write is logged and skipped.

Store access is awaited on the event loop, so a slow or stalled Redis server
delays only the acquisition that is waiting on it.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

import redis
import redis.asyncio
from pydantic import ValidationError

from config import DEFAULT_CACHE_TTL_SECONDS, REDIS_SOCKET_TIMEOUT_SECONDS
from station_tracker.errors import PersistenceFailure
from station_tracker.models import CacheRecord, OrbitalElementRecord

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """In-process key/value store."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value


class RedisStore:
    """
    Key/value store backed by redis.asyncio.

    Connection errors and socket timeouts become PersistenceFailure.
    """

    def __init__(self, url: str, client: Optional[redis.asyncio.Redis] = None,
                 timeout: float = REDIS_SOCKET_TIMEOUT_SECONDS):
        self.url = url
        self.client = client or redis.asyncio.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except redis.exceptions.RedisError as e:
            raise PersistenceFailure(f"Redis read of {key} failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except redis.exceptions.RedisError as e:
            raise PersistenceFailure(f"Redis write of {key} failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis.exceptions.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()


class ElementCache:
    """
    Cache of CacheRecord per tracked station.

    A record older than the TTL reads as absent from read(); read_raw() still
    returns it for diagnostics.
    """

    def __init__(self, store=None, ttl: timedelta = timedelta(seconds=DEFAULT_CACHE_TTL_SECONDS),
                 clock: Callable[[], datetime] = utc_now):
        self.store = store if store is not None else MemoryStore()
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def _keys(key: str):
        prefix = f"{key}_tracker"
        return f"{prefix}:tle", f"{prefix}:timestamp"

    async def read(self, key: str, now: Optional[datetime] = None) -> Optional[CacheRecord]:
        """Return the cached record if it is younger than the TTL, else None."""
        cached = await self.read_raw(key)
        if cached is None:
            return None

        now = now or self.clock()
        age = now - cached.fetched_at
        if age >= self.ttl:
            logger.info(f"Cached elements for {key} expired ({age} old)")
            return None
        return cached

    async def read_raw(self, key: str) -> Optional[CacheRecord]:
        """Return whatever is stored for key, ignoring freshness."""
        tle_key, timestamp_key = self._keys(key)
        try:
            payload = await self.store.get(tle_key)
            timestamp = await self.store.get(timestamp_key)
        except PersistenceFailure as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return None

        if not payload or not timestamp:
            return None

        try:
            record = OrbitalElementRecord.model_validate(json.loads(payload))
            fetched_at = datetime.fromtimestamp(float(timestamp), tz=timezone.utc)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding corrupt cache entry for {key}: {e}")
            return None

        return CacheRecord(record=record, fetched_at=fetched_at)

    async def write(self, key: str, record: OrbitalElementRecord,
                    fetched_at: Optional[datetime] = None) -> bool:
        """
        Replace the cached record for key.

        Args:
            key: Station key
            record: Element record to store
            fetched_at: Acquisition time (default: now)

        Returns:
            True if the store accepted both values
        """
        fetched_at = fetched_at or self.clock()
        tle_key, timestamp_key = self._keys(key)
        try:
            await self.store.set(tle_key, json.dumps(record.to_gp_json()))
            await self.store.set(timestamp_key, repr(fetched_at.timestamp()))
        except PersistenceFailure as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

        logger.info(f"Cached elements for {key}")
        return True

    async def aclose(self) -> None:
        aclose = getattr(self.store, "aclose", None)
        if aclose is not None:
            await aclose()


def create_store(redis_url: Optional[str]):
    """
    Build the configured store without connecting.

    Falls back to memory when Redis is not configured or the URL is invalid.
    """
    if not redis_url:
        return MemoryStore()
    try:
        return RedisStore(redis_url)
    except (ValueError, redis.exceptions.RedisError) as e:
        logger.warning(f"Invalid Redis configuration {redis_url!r}: {e}. Using in-memory cache.")
        return MemoryStore()


async def open_store(redis_url: Optional[str]):
    """
    Build the configured store and check that Redis answers.

    Falls back to memory when Redis is not configured, misconfigured or not
    reachable.
    """
    store = create_store(redis_url)
    if isinstance(store, RedisStore):
        if not await store.ping():
            logger.warning("Redis connection failed. Using in-memory cache.")
            await store.aclose()
            return MemoryStore()
        logger.info("Redis connection established")
    return store
