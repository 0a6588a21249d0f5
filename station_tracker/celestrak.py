"""
CelesTrak GP Client

Fetches a station's element set from CelesTrak's GP JSON endpoints. The
catalog-number endpoint is tried first and the station group endpoint second,
with a randomized pause before each later attempt.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from config import SECONDARY_ENDPOINT_DELAY, STATION_GROUP, USER_AGENT, config
from station_tracker.errors import NetworkAcquisitionFailure, ValidationMismatch
from station_tracker.models import OrbitalElementRecord

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
    "Cache-Control": "no-cache",
}


def station_endpoints(station, base_url: str = config.CELESTRAK_BASE) -> List[str]:
    """Primary catalog-number endpoint followed by the station group endpoint."""
    return [
        f"{base_url}/NORAD/elements/gp.php?CATNR={station.catalog_number}&FORMAT=json",
        f"{base_url}/NORAD/elements/gp.php?GROUP={STATION_GROUP}&FORMAT=json",
    ]


def select_station_record(payload: Any, station) -> OrbitalElementRecord:
    """
    Find the tracked station in a GP JSON payload.

    Prefers an exact catalog-number match, then an entry whose name contains
    one of the station's name patterns. If neither is found but the first
    entry happens to carry the right catalog number, it is accepted as a
    degraded match.

    Raises:
        ValidationMismatch: If the payload does not contain the station
    """
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list) or not payload:
        raise ValidationMismatch("Response is not a non-empty element list")

    entries = [entry for entry in payload if isinstance(entry, dict)]
    named = [entry for entry in entries if entry.get("OBJECT_NAME")]

    match = next(
        (entry for entry in named if entry.get("NORAD_CAT_ID") == station.catalog_number),
        None,
    )
    if match is None:
        match = next(
            (entry for entry in named if station.matches_name(entry["OBJECT_NAME"])),
            None,
        )
    if match is None and entries and entries[0].get("NORAD_CAT_ID") == station.catalog_number:
        logger.warning(f"Accepting first entry for {station.key} on catalog number alone")
        match = entries[0]
    if match is None:
        raise ValidationMismatch(f"No entry for {station.name} in response")

    try:
        return OrbitalElementRecord.model_validate(match)
    except ValidationError as e:
        raise ValidationMismatch(f"Entry for {station.name} is invalid: {e}") from e


class CelestrakClient:
    """
    Async GP JSON client with multi-endpoint fallback.

    Args:
        http: Shared httpx.AsyncClient (created on demand if omitted)
        base_url: CelesTrak base URL
        sleep: Coroutine used for the inter-endpoint pause
        rng: Random source for the pause length
    """

    def __init__(self, http: Optional[httpx.AsyncClient] = None,
                 base_url: str = config.CELESTRAK_BASE,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 rng: Optional[random.Random] = None,
                 delay_range: Tuple[float, float] = SECONDARY_ENDPOINT_DELAY):
        self._http = http
        self._owns_http = http is None
        self.base_url = base_url
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.delay_range = delay_range
        self.request_count = 0

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(headers=REQUEST_HEADERS)
        return self._http

    async def get_json(self, url: str) -> Any:
        self.request_count += 1
        response = await self.http.get(url, headers=REQUEST_HEADERS)
        response.raise_for_status()
        return response.json()

    async def fetch_elements(self, station) -> OrbitalElementRecord:
        """
        Fetch the station's current element record.

        Raises:
            NetworkAcquisitionFailure: If every endpoint fails
        """
        last_error = None
        for attempt, url in enumerate(station_endpoints(station, self.base_url)):
            if attempt > 0:
                delay = self.rng.uniform(*self.delay_range)
                logger.info(f"Waiting {delay:.1f}s before next endpoint")
                await self.sleep(delay)

            logger.info(f"Requesting elements from {url}")
            try:
                payload = await self.get_json(url)
                record = select_station_record(payload, station)
            except (httpx.HTTPError, ValueError, ValidationMismatch) as e:
                logger.warning(f"Endpoint {url} failed: {e}")
                last_error = e
                continue

            logger.info(f"Received elements for {record.object_name} (epoch {record.epoch.isoformat()})")
            return record

        raise NetworkAcquisitionFailure(
            f"All element endpoints failed for {station.name}: {last_error}"
        ) from last_error

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
