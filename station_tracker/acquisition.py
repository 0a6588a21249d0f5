"""
Acquisition Pipeline

Obtains the element set for a tracked station:

    cache check -> (hit) ready
                -> (miss) network fetch -> (ok) ready
                                        -> (failed) built-in fallback -> ready

A forced refresh skips the cache check. Only one acquisition runs per tracked
station at a time; overlapping requests join the running one and receive its
result.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

from station_tracker.cache import ElementCache, utc_now
from station_tracker.errors import (
    ElementFormatError,
    EncodingError,
    NetworkAcquisitionFailure,
    PropagationFailure,
)
from station_tracker.events import EventBus, EventType
from station_tracker.models import (
    AcquisitionResult,
    DataSource,
    OrbitalElementRecord,
    Status,
    StatusType,
    TrackedObject,
)
from station_tracker.propagation import PropagationAdapter, PropagationState

logger = logging.getLogger(__name__)


def describe_age(age: timedelta) -> str:
    """Human readable age using its largest whole unit."""
    seconds = max(int(age.total_seconds()), 0)
    days, hours, minutes = seconds // 86400, seconds // 3600, seconds // 60
    if days > 0:
        return f"{days} day{'s' if days != 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    return "just now"


class AcquisitionPipeline:
    """
    Cache, network and fallback acquisition for tracked stations.

    Args:
        cache: ElementCache holding previously fetched records
        client: Object with an async fetch_elements(station) method
        adapter: PropagationAdapter used to validate and build states
        events: EventBus receiving status events
        on_ready: Called with the TrackedObject after new elements are applied
        clock: Returns the current UTC time
    """

    def __init__(self, cache: ElementCache, client, adapter: Optional[PropagationAdapter] = None,
                 events: Optional[EventBus] = None,
                 on_ready: Optional[Callable[[TrackedObject], None]] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.cache = cache
        self.client = client
        self.adapter = adapter or PropagationAdapter()
        self.events = events or EventBus()
        self.on_ready = on_ready
        self.clock = clock

    async def acquire(self, tracked: TrackedObject, force_refresh: bool = False) -> AcquisitionResult:
        """
        Bring the tracked station to the ready state.

        Args:
            tracked: Station aggregate to update
            force_refresh: Skip the cache and go straight to the network

        Returns:
            AcquisitionResult describing where the elements came from
        """
        inflight = tracked.inflight
        if inflight is not None and not inflight.done():
            logger.info(f"Acquisition for {tracked.key} already in flight, joining it")
            return await asyncio.shield(inflight)

        task = asyncio.ensure_future(self._run(tracked, force_refresh))
        tracked.inflight = task
        task.add_done_callback(partial(self._finished, tracked))
        # Shielded so a cancelled caller (e.g. a stopped timer) lets it finish
        return await asyncio.shield(task)

    def _finished(self, tracked: TrackedObject, task: asyncio.Future) -> None:
        if tracked.inflight is task:
            tracked.inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Acquisition for {tracked.key} failed: {task.exception()!r}")

    async def _run(self, tracked: TrackedObject, force_refresh: bool) -> AcquisitionResult:
        station = tracked.station
        self._emit_status(
            tracked,
            f"{station.name} - {'refreshing' if force_refresh else 'fetching data'}...",
            StatusType.LOADING,
        )

        if not force_refresh:
            cached = await self.cache.read(station.key)
            if cached is not None:
                logger.info(f"Using cached elements for {station.key}")
                result = AcquisitionResult(
                    record=cached.record,
                    source=DataSource.CACHE,
                    fetched_at=cached.fetched_at,
                    staleness=self.clock() - cached.fetched_at,
                )
                state = self._build(cached.record)
                if state is not None:
                    self._apply(tracked, result, state)
                    return result
                logger.warning(f"Cached elements for {station.key} unusable, fetching fresh")

        try:
            record = await self.client.fetch_elements(station)
        except NetworkAcquisitionFailure as e:
            logger.error(f"Network acquisition failed for {station.key}: {e}")
        else:
            fetched_at = self.clock()
            state = self._build(record)
            if state is not None:
                result = AcquisitionResult(
                    record=record,
                    source=DataSource.NETWORK,
                    fetched_at=fetched_at,
                    staleness=timedelta(0),
                )
                if tracked.active:
                    await self.cache.write(station.key, record, fetched_at)
                self._apply(tracked, result, state)
                return result
            logger.warning(f"Fetched elements for {station.key} unusable, using fallback")

        return self._fallback(tracked)

    def _fallback(self, tracked: TrackedObject) -> AcquisitionResult:
        station = tracked.station
        record = station.fallback
        logger.info(f"Using built-in fallback elements for {station.key}")

        result = AcquisitionResult(
            record=record,
            source=DataSource.FALLBACK,
            fetched_at=record.epoch,
            staleness=self.clock() - record.epoch,
        )
        state = self._build(record)
        if state is None:
            logger.error(f"Fallback elements for {station.key} could not be propagated")
            self._emit_status(tracked, "Unable to obtain any orbital data", StatusType.ERROR)
            return result

        self._apply(tracked, result, state)
        return result

    def _build(self, record: OrbitalElementRecord) -> Optional[PropagationState]:
        try:
            return self.adapter.build_from_record(record)
        except (EncodingError, ElementFormatError, PropagationFailure) as e:
            logger.warning(f"Elements for {record.norad_cat_id} unusable: {e}")
            return None

    def _apply(self, tracked: TrackedObject, result: AcquisitionResult, state: PropagationState) -> None:
        if not tracked.active:
            logger.info(f"Discarding {result.source.value} elements for inactive {tracked.key}")
            return

        tracked.record = result.record
        tracked.state = state
        tracked.source = result.source
        tracked.last_update = result.fetched_at

        if self.on_ready is not None:
            self.on_ready(tracked)

        self.events.emit(EventType.STATUS, self._status_for(tracked, result))

    def _status_for(self, tracked: TrackedObject, result: AcquisitionResult) -> Status:
        name = tracked.station.name
        if result.source is DataSource.CACHE:
            return Status(
                message=f"{name} - data loaded (cached {describe_age(result.staleness)})",
                type=StatusType.ONLINE,
            )
        if result.source is DataSource.NETWORK:
            return Status(message=f"{name} - data updated", type=StatusType.ONLINE)
        return Status(
            message=(
                f"{name} - network unavailable, using fallback data "
                f"(epoch {describe_age(result.staleness)})"
            ),
            type=StatusType.ERROR,
        )

    def _emit_status(self, tracked: TrackedObject, message: str, status_type: StatusType) -> None:
        if tracked.active:
            self.events.emit(EventType.STATUS, Status(message=message, type=status_type))
