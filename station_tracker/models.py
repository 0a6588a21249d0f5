"""
Data models shared across the tracker.

Element records use the CelesTrak GP JSON field names as aliases so a network
entry validates directly into an OrbitalElementRecord.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

OrbitPoint = Tuple[float, float]  # (latitude, longitude)


class OrbitalElementRecord(BaseModel):
    """One station's orbital elements as published in GP JSON format."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    object_name: str = Field(alias="OBJECT_NAME")
    object_id: str = Field("", alias="OBJECT_ID")
    epoch: datetime = Field(alias="EPOCH")
    mean_motion: float = Field(alias="MEAN_MOTION")
    eccentricity: float = Field(alias="ECCENTRICITY")
    inclination: float = Field(alias="INCLINATION")
    ra_of_asc_node: float = Field(alias="RA_OF_ASC_NODE")
    arg_of_pericenter: float = Field(alias="ARG_OF_PERICENTER")
    mean_anomaly: float = Field(alias="MEAN_ANOMALY")
    ephemeris_type: int = Field(0, alias="EPHEMERIS_TYPE")
    classification_type: str = Field("U", alias="CLASSIFICATION_TYPE")
    norad_cat_id: int = Field(alias="NORAD_CAT_ID")
    element_set_no: int = Field(999, alias="ELEMENT_SET_NO")
    rev_at_epoch: int = Field(0, alias="REV_AT_EPOCH")
    bstar: float = Field(0.0, alias="BSTAR")
    mean_motion_dot: float = Field(0.0, alias="MEAN_MOTION_DOT")
    mean_motion_ddot: float = Field(0.0, alias="MEAN_MOTION_DDOT")

    @field_validator("epoch")
    @classmethod
    def _epoch_as_utc(cls, value: datetime) -> datetime:
        # GP JSON epochs carry no offset and are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def period_minutes(self) -> float:
        return 1440.0 / self.mean_motion

    def to_gp_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CacheRecord(BaseModel):
    """Element record plus the instant it was actually fetched."""

    record: OrbitalElementRecord
    fetched_at: datetime


class PositionSample(BaseModel):
    """Geodetic position at one instant (degrees, km, km/s)."""

    model_config = ConfigDict(frozen=True)

    longitude: float
    latitude: float
    altitude: float
    speed: float
    instant: datetime


class OrbitPath(BaseModel):
    """Forward-predicted ground track and its dateline-split form."""

    points: List[OrbitPoint]
    segments: List[List[OrbitPoint]]
    computed_at: datetime

    @property
    def end_point(self) -> Optional[OrbitPoint]:
        if not self.points:
            return None
        return self.points[-1]


class StatusType(str, Enum):
    LOADING = "loading"
    ONLINE = "online"
    ERROR = "error"


class Status(BaseModel):
    message: str
    type: StatusType


class DataSource(str, Enum):
    CACHE = "cache"
    NETWORK = "network"
    FALLBACK = "fallback"


class StationData(BaseModel):
    """Payload of a data-update event, rounded to display precision."""

    longitude: float
    latitude: float
    altitude: float
    velocity: float
    utc_time: str
    local_time: str
    period: float
    inclination: float
    eccentricity: float
    tle_update_time: str


class AcquisitionResult(BaseModel):
    record: OrbitalElementRecord
    source: DataSource
    fetched_at: datetime
    staleness: timedelta


@dataclass(eq=False)
class TrackedObject:
    """
    Mutable per-station aggregate handed to every scheduled action.

    Holds the active element record and propagation state for one station,
    plus the bookkeeping needed to coalesce acquisitions and discard results
    that arrive after the station was switched away.
    """

    station: Any  # stations.StationConfig
    active: bool = True
    record: Optional[OrbitalElementRecord] = None
    state: Any = None  # propagation.PropagationState
    source: Optional[DataSource] = None
    last_update: Optional[datetime] = None
    update_label: str = "--"
    orbit_path: Optional[OrbitPath] = None
    inflight: Optional[asyncio.Future] = field(default=None, repr=False)

    @property
    def key(self) -> str:
        return self.station.key
