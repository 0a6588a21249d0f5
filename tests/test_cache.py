"""
Unit Tests for the Element Cache

Run with:
    python -m pytest tests/test_cache.py -v
"""

import json
import unittest
from datetime import timedelta
from unittest import mock

import redis

from config import config
from station_tracker.cache import (
    ElementCache,
    MemoryStore,
    RedisStore,
    create_store,
    open_store,
)
from station_tracker.errors import PersistenceFailure
from station_tracker.scheduler import PeriodicTimer
from station_tracker.tracker import StationTracker

from fakes import FailingStore, FakeClock, SlowStore, iss_record


class TestElementCache(unittest.IsolatedAsyncioTestCase):
    """TTL gating and store failure handling."""

    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.store = MemoryStore()
        self.cache = ElementCache(self.store, ttl=timedelta(hours=6), clock=self.clock)
        self.record = iss_record()

    async def test_miss_when_empty(self):
        self.assertIsNone(await self.cache.read("iss"))
        self.assertIsNone(await self.cache.read_raw("iss"))

    async def test_write_then_read(self):
        self.assertTrue(await self.cache.write("iss", self.record))
        cached = await self.cache.read("iss")

        self.assertIsNotNone(cached)
        self.assertEqual(cached.record, self.record)
        self.assertEqual(cached.fetched_at, self.clock.now)

    async def test_uses_station_scoped_keys(self):
        await self.cache.write("iss", self.record)
        self.assertIn("iss_tracker:tle", self.store._data)
        self.assertIn("iss_tracker:timestamp", self.store._data)
        self.assertIsNone(await self.cache.read("css"))

        payload = json.loads(self.store._data["iss_tracker:tle"])
        self.assertEqual(payload["NORAD_CAT_ID"], 25544)

    async def test_fresh_just_before_ttl(self):
        await self.cache.write("iss", self.record)
        self.clock.advance(hours=6, seconds=-1)
        self.assertIsNotNone(await self.cache.read("iss"))

    async def test_expired_at_ttl(self):
        await self.cache.write("iss", self.record)
        self.clock.advance(hours=6)
        self.assertIsNone(await self.cache.read("iss"))

        # Raw read ignores freshness
        self.assertIsNotNone(await self.cache.read_raw("iss"))

    async def test_ttl_boundary_minutes(self):
        await self.cache.write("iss", self.record)
        fresh = self.clock.now + timedelta(hours=5, minutes=59)
        stale = self.clock.now + timedelta(hours=6, minutes=1)
        self.assertIsNotNone(await self.cache.read("iss", now=fresh))
        self.assertIsNone(await self.cache.read("iss", now=stale))

    async def test_write_replaces_previous_entry(self):
        await self.cache.write("iss", self.record)
        self.clock.advance(hours=1)
        newer = self.record.model_copy(update={"element_set_no": 999})
        await self.cache.write("iss", newer)

        cached = await self.cache.read("iss")
        self.assertEqual(cached.record.element_set_no, 999)
        self.assertEqual(cached.fetched_at, self.clock.now)

    async def test_corrupt_payload_is_a_miss(self):
        await self.store.set("iss_tracker:tle", "{not json")
        await self.store.set("iss_tracker:timestamp", "1700000000.0")
        self.assertIsNone(await self.cache.read("iss"))

    async def test_invalid_record_is_a_miss(self):
        await self.store.set("iss_tracker:tle", json.dumps({"OBJECT_NAME": "ISS"}))
        await self.store.set("iss_tracker:timestamp", "1700000000.0")
        self.assertIsNone(await self.cache.read("iss"))

    async def test_corrupt_timestamp_is_a_miss(self):
        await self.cache.write("iss", self.record)
        await self.store.set("iss_tracker:timestamp", "yesterday")
        self.assertIsNone(await self.cache.read("iss"))

    async def test_failing_store_read_is_a_miss(self):
        cache = ElementCache(FailingStore(PersistenceFailure("down")), clock=self.clock)
        self.assertIsNone(await cache.read("iss"))

    async def test_failing_store_write_returns_false(self):
        cache = ElementCache(FailingStore(PersistenceFailure("down")), clock=self.clock)
        self.assertFalse(await cache.write("iss", self.record))

    async def test_slow_store_does_not_block_timers(self):
        """Other tasks keep running while a cache read waits on the store."""
        cache = ElementCache(SlowStore(0.1), clock=self.clock)
        timer = PeriodicTimer("redisplay", 0.01, lambda: None)
        timer.start()
        try:
            self.assertIsNone(await cache.read("iss"))
        finally:
            timer.stop()

        # Two 0.1 s reads; a blocked loop would leave this at zero
        self.assertGreaterEqual(timer.ticks, 5)


class TestRedisStore(unittest.IsolatedAsyncioTestCase):
    """Redis errors are translated into PersistenceFailure."""

    async def asyncSetUp(self):
        self.client = mock.AsyncMock()
        self.store = RedisStore("redis://localhost:6379/0", client=self.client)

    async def test_get_and_set_pass_through(self):
        self.client.get.return_value = "value"
        self.assertEqual(await self.store.get("k"), "value")
        await self.store.set("k", "v")
        self.client.set.assert_awaited_once_with("k", "v")

    async def test_connection_error_on_get(self):
        self.client.get.side_effect = redis.exceptions.ConnectionError("refused")
        with self.assertRaises(PersistenceFailure):
            await self.store.get("k")

    async def test_timeout_on_set(self):
        self.client.set.side_effect = redis.exceptions.TimeoutError("Timeout reading from socket")
        with self.assertRaises(PersistenceFailure):
            await self.store.set("k", "v")

    async def test_cache_survives_redis_outage(self):
        self.client.get.side_effect = redis.exceptions.ConnectionError("refused")
        self.client.set.side_effect = redis.exceptions.ConnectionError("refused")
        cache = ElementCache(self.store, clock=FakeClock())

        self.assertIsNone(await cache.read("iss"))
        self.assertFalse(await cache.write("iss", iss_record()))

    async def test_ping(self):
        self.client.ping.return_value = True
        self.assertTrue(await self.store.ping())
        self.client.ping.side_effect = redis.exceptions.ConnectionError("refused")
        self.assertFalse(await self.store.ping())

    async def test_client_uses_socket_timeouts(self):
        with mock.patch("station_tracker.cache.redis.asyncio.from_url") as from_url:
            RedisStore("redis://localhost:6379/0", timeout=1.5)

        kwargs = from_url.call_args.kwargs
        self.assertEqual(kwargs["socket_timeout"], 1.5)
        self.assertEqual(kwargs["socket_connect_timeout"], 1.5)
        self.assertTrue(kwargs["decode_responses"])


class TestCreateStore(unittest.IsolatedAsyncioTestCase):

    async def test_memory_when_unconfigured(self):
        self.assertIsInstance(create_store(None), MemoryStore)
        self.assertIsInstance(create_store(""), MemoryStore)

    async def test_memory_when_url_is_malformed(self):
        self.assertIsInstance(create_store("localhost:6379"), MemoryStore)
        self.assertIsInstance(await open_store("localhost:6379"), MemoryStore)

    async def test_redis_store_for_valid_url(self):
        client = mock.AsyncMock()
        with mock.patch("station_tracker.cache.redis.asyncio.from_url", return_value=client):
            store = create_store("redis://localhost:6379/0")
        self.assertIsInstance(store, RedisStore)
        self.assertIs(store.client, client)
        client.ping.assert_not_called()

    async def test_open_store_falls_back_when_unreachable(self):
        client = mock.AsyncMock()
        client.ping.side_effect = redis.exceptions.ConnectionError("refused")
        with mock.patch("station_tracker.cache.redis.asyncio.from_url", return_value=client):
            store = await open_store("redis://nowhere:6379/0")

        self.assertIsInstance(store, MemoryStore)
        client.aclose.assert_awaited_once()

    async def test_open_store_keeps_reachable_redis(self):
        client = mock.AsyncMock()
        client.ping.return_value = True
        with mock.patch("station_tracker.cache.redis.asyncio.from_url", return_value=client):
            store = await open_store("redis://localhost:6379/0")
        self.assertIsInstance(store, RedisStore)


class TestTrackerWithBadRedisUrl(unittest.IsolatedAsyncioTestCase):

    async def test_tracker_construction_survives_malformed_url(self):
        with mock.patch.object(config, "REDIS_URL", "localhost:6379"):
            tracker = StationTracker("iss")
        try:
            self.assertIsInstance(tracker.cache.store, MemoryStore)
        finally:
            await tracker.shutdown()


if __name__ == "__main__":
    unittest.main()
