"""
Command line runner.

Tracks a station headless and logs every event the tracker emits.

Usage:
    station-tracker --station iss --duration 30
    python -m station_tracker.cli --station css --force-refresh
"""

import argparse
import asyncio
import logging
from datetime import timedelta
from typing import List, Optional

from config import config
from logging_config import configure_logging, get_logger
from station_tracker.cache import ElementCache, open_store
from station_tracker.events import EventType
from station_tracker.stations import STATIONS
from station_tracker.tracker import StationTracker

logger = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track a space station's ground position")
    parser.add_argument("--station", choices=sorted(STATIONS), default="css")
    parser.add_argument("--duration", type=float, default=0.0,
                        help="Seconds to run; 0 runs until interrupted")
    parser.add_argument("--force-refresh", action="store_true",
                        help="Bypass the cache and fetch from the network first")
    parser.add_argument("--redis-url", default=config.REDIS_URL,
                        help="Redis URL for the element cache (default: in-memory)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None)
    return parser


def _log_data(data) -> None:
    logger.info(
        f"lat {data.latitude:.4f} lon {data.longitude:.4f} "
        f"alt {data.altitude:.2f} km speed {data.velocity:.3f} km/s "
        f"period {data.period:.2f} min | elements {data.tle_update_time}"
    )


def _log_status(status) -> None:
    level = logging.WARNING if status.type.value == "error" else logging.INFO
    logger.log(level, f"[{status.type.value}] {status.message}")


def _log_path(path) -> None:
    logger.info(
        f"Orbit path: {len(path.points)} points in {len(path.segments)} segments, "
        f"ends at {path.end_point}"
    )


async def run(args: argparse.Namespace) -> None:
    cache = ElementCache(await open_store(args.redis_url), ttl=timedelta(seconds=config.CACHE_TTL))
    tracker = StationTracker(args.station, cache=cache)
    tracker.events.subscribe(EventType.DATA_UPDATE, _log_data)
    tracker.events.subscribe(EventType.STATUS, _log_status)
    tracker.events.subscribe(EventType.ORBIT_PATH, _log_path)

    try:
        result = await tracker.initialize()
        logger.info(f"Elements from {result.source.value}, staleness {result.staleness}")
        if args.force_refresh:
            result = await tracker.force_refresh()
            logger.info(f"Refreshed elements from {result.source.value}")

        if args.duration > 0:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        await tracker.shutdown()
        await cache.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, args.log_level), args.log_file)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
