"""
Station Tracker

Facade that owns the active tracked station and wires the acquisition
pipeline, propagation, ground-track projection and scheduler together.

Usage:
    tracker = StationTracker("iss")
    tracker.events.subscribe(EventType.DATA_UPDATE, print)
    await tracker.initialize()
    ...
    await tracker.shutdown()
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional

from config import ORBIT_SAMPLE_COUNT, ORBIT_STEP_MINUTES, config
from station_tracker.acquisition import AcquisitionPipeline, describe_age
from station_tracker.cache import ElementCache, create_store, utc_now
from station_tracker.celestrak import CelestrakClient
from station_tracker.dateline import segment_at_dateline
from station_tracker.errors import PropagationFailure
from station_tracker.events import EventBus, EventType
from station_tracker.ground_track import GroundTrackProjector, normalize_longitude
from station_tracker.models import (
    AcquisitionResult,
    OrbitPath,
    OrbitPoint,
    PositionSample,
    StationData,
    TrackedObject,
)
from station_tracker.propagation import PropagationAdapter
from station_tracker.scheduler import SchedulerActions, TrackerScheduler
from station_tracker.stations import get_station

logger = logging.getLogger(__name__)


class StationTracker:
    """
    Live tracker for one configured station at a time.

    Args:
        station: Station key ("css" or "iss")
        cache: ElementCache (default: Redis if REDIS_URL is set, else memory)
        client: Element source with async fetch_elements(station)
        adapter: PropagationAdapter
        projector: GroundTrackProjector
        scheduler: TrackerScheduler
        events: EventBus for data, status, label and orbit path events
        clock: Returns the current UTC time
        local_tz: Time zone for local time text (default: system zone)
    """

    def __init__(self, station: str = "css", *, cache: Optional[ElementCache] = None,
                 client=None, adapter: Optional[PropagationAdapter] = None,
                 projector: Optional[GroundTrackProjector] = None,
                 scheduler: Optional[TrackerScheduler] = None,
                 events: Optional[EventBus] = None,
                 clock: Callable[[], datetime] = utc_now,
                 local_tz: Optional[tzinfo] = None,
                 orbit_step_minutes: float = ORBIT_STEP_MINUTES,
                 orbit_samples: int = ORBIT_SAMPLE_COUNT):
        self.clock = clock
        self.local_tz = local_tz
        self.orbit_step_minutes = orbit_step_minutes
        self.orbit_samples = orbit_samples
        self.events = events or EventBus()
        self.adapter = adapter or PropagationAdapter()
        self.projector = projector or GroundTrackProjector()
        self.scheduler = scheduler or TrackerScheduler()
        self.client = client or CelestrakClient()
        self._owns_cache = cache is None
        self.cache = cache or ElementCache(
            create_store(config.REDIS_URL),
            ttl=timedelta(seconds=config.CACHE_TTL),
            clock=clock,
        )
        self.pipeline = AcquisitionPipeline(
            self.cache, self.client, self.adapter, self.events,
            on_ready=self._on_ready, clock=clock,
        )
        self.tracked = TrackedObject(station=get_station(station))
        self._actions = SchedulerActions(
            redisplay=self.update_display,
            element_refresh=self._refresh_elements,
            label_refresh=self.refresh_label,
        )

    @property
    def station_key(self) -> str:
        return self.tracked.key

    async def initialize(self) -> AcquisitionResult:
        """Load elements (cache, network, then fallback) and start updates."""
        return await self.pipeline.acquire(self.tracked)

    async def force_refresh(self) -> AcquisitionResult:
        """Skip the cache and fetch fresh elements from the network."""
        return await self.pipeline.acquire(self.tracked, force_refresh=True)

    async def set_station(self, key: str) -> Optional[AcquisitionResult]:
        """Switch to another station; a no-op when it is already tracked."""
        if key == self.tracked.key:
            return None
        station = get_station(key)
        self._teardown(self.tracked)
        self.tracked = TrackedObject(station=station)
        logger.info(f"Switched to {station.name}")
        return await self.initialize()

    async def shutdown(self) -> None:
        self._teardown(self.tracked)
        self.scheduler.stop_all()
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._owns_cache:
            await self.cache.aclose()

    def _teardown(self, tracked: TrackedObject) -> None:
        # An in-flight acquisition finishes on its own and is then discarded
        tracked.active = False
        self.scheduler.stop(tracked)

    def _on_ready(self, tracked: TrackedObject) -> None:
        self.refresh_label(tracked)
        self.update_display(tracked)
        self.update_orbit_path(tracked)
        self.scheduler.start(tracked, self._actions)

    async def _refresh_elements(self, tracked: TrackedObject) -> None:
        await self.pipeline.acquire(tracked)

    def sample(self, tracked: Optional[TrackedObject] = None,
               instant: Optional[datetime] = None) -> Optional[PositionSample]:
        """
        Compute the current position without any network access.

        Returns:
            PositionSample, or None if there is no usable propagation state
        """
        tracked = tracked if tracked is not None else self.tracked
        if tracked.state is None or not tracked.state.is_valid:
            return None

        instant = instant or self.clock()
        try:
            vector = self.adapter.propagate(tracked.state, instant)
        except PropagationFailure as e:
            logger.warning(f"Skipping update for {tracked.key}: {e}")
            return None
        return self.projector.project(vector.position, vector.velocity, instant)

    def update_display(self, tracked: Optional[TrackedObject] = None) -> Optional[StationData]:
        """Emit a data-update event for the current instant."""
        tracked = tracked if tracked is not None else self.tracked
        sample = self.sample(tracked)
        if sample is None:
            return None

        data = self._station_data(tracked, sample)
        if tracked.active:
            self.events.emit(EventType.DATA_UPDATE, data)
        return data

    def _station_data(self, tracked: TrackedObject, sample: PositionSample) -> StationData:
        record = tracked.record
        utc = sample.instant.astimezone(timezone.utc)
        local = sample.instant.astimezone(self.local_tz)

        return StationData(
            longitude=normalize_longitude(round(sample.longitude, 4)),
            latitude=round(sample.latitude, 4),
            altitude=round(sample.altitude, 2),
            velocity=round(sample.speed, 3),
            utc_time=utc.strftime("%Y-%m-%d %H:%M:%S"),
            local_time=local.strftime("%Y-%m-%d %H:%M:%S"),
            period=round(record.period_minutes, 2),
            inclination=round(record.inclination, 4),
            eccentricity=round(record.eccentricity, 7),
            tle_update_time=tracked.update_label,
        )

    def refresh_label(self, tracked: Optional[TrackedObject] = None) -> str:
        """Recompute the "last element update" label; no propagation involved."""
        tracked = tracked if tracked is not None else self.tracked
        if tracked.last_update is None or tracked.source is None:
            label = "--"
        else:
            age = self.clock() - tracked.last_update
            stamp = tracked.last_update.astimezone(self.local_tz).strftime("%m-%d %H:%M")
            label = f"{stamp} ({tracked.source.value}, {describe_age(age)})"

        tracked.update_label = label
        if tracked.active:
            self.events.emit(EventType.LABEL_UPDATE, label)
        return label

    def update_orbit_path(self, tracked: Optional[TrackedObject] = None) -> Optional[OrbitPath]:
        """
        Sample the ground track ahead of now and split it at the dateline.

        Instants that fail to propagate are skipped. The resulting path is
        kept on the tracked object so its end point stays queryable.
        """
        tracked = tracked if tracked is not None else self.tracked
        if tracked.state is None or not tracked.state.is_valid:
            logger.info(f"Orbit path for {tracked.key} skipped: no propagation state")
            return None

        now = self.clock()
        points = []
        for i in range(self.orbit_samples):
            instant = now + timedelta(minutes=i * self.orbit_step_minutes)
            try:
                vector = self.adapter.propagate(tracked.state, instant)
            except PropagationFailure:
                continue
            points.append(self.projector.ground_point(vector.position, instant))

        path = OrbitPath(points=points, segments=segment_at_dateline(points), computed_at=now)
        tracked.orbit_path = path
        logger.debug(f"Orbit path for {tracked.key}: {len(points)} points, {len(path.segments)} segments")

        if tracked.active:
            self.events.emit(EventType.ORBIT_PATH, path)
        return path

    def get_orbit_end_point(self) -> Optional[OrbitPoint]:
        """Predicted (latitude, longitude) at the end of the last computed path."""
        path = self.tracked.orbit_path
        if path is None:
            return None
        return path.end_point
