"""
SGP4 Propagation Adapter

Wraps the sgp4 library's Satrec behind a small interface: build an opaque
propagation state from TLE lines or from an element record, check its
validity code, and propagate it to an instant.

Nonzero SGP4 error codes are reported as PropagationFailure rather than being
retried; callers decide whether to fall back or skip.
"""

import logging
import math
from datetime import datetime, timezone
from typing import NamedTuple, Optional

import numpy as np
from sgp4.api import Satrec, jday

from station_tracker.errors import ElementFormatError, PropagationFailure
from station_tracker.models import OrbitalElementRecord
from station_tracker.tle_codec import TLECodec

logger = logging.getLogger(__name__)


# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}

NO_SOLUTION = -1


class StateVector(NamedTuple):
    position: np.ndarray  # TEME, km
    velocity: np.ndarray  # TEME, km/s
    instant: datetime


class PropagationState:
    """Opaque handle around an initialized Satrec."""

    def __init__(self, satrec, line1: str, line2: str, record: Optional[OrbitalElementRecord] = None):
        self._satrec = satrec
        self.line1 = line1
        self.line2 = line2
        self.record = record

    @property
    def error_code(self) -> int:
        return int(getattr(self._satrec, "error", 0))

    @property
    def is_valid(self) -> bool:
        return self.error_code == 0

    @property
    def catalog_number(self) -> int:
        return self._satrec.satnum

    def __repr__(self):
        return f"PropagationState(satnum={self.catalog_number}, error={self.error_code})"


def describe_error(code: int) -> str:
    if code == NO_SOLUTION:
        return "No finite solution"
    return SGP4_ERROR_CODES.get(code, f"Unknown error code {code}")


def datetime_to_jd(dt: datetime):
    """
    Convert datetime to Julian date and fraction.

    Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    seconds = dt.second + dt.microsecond / 1e6
    return jday(dt.year, dt.month, dt.day, dt.hour, dt.minute, seconds)


class PropagationAdapter:
    """
    Builds and propagates SGP4 states.

    Features:
    - Structured records go through TLECodec so encoding limits are enforced
    - Line input is validated before it reaches Satrec
    - Validity codes are surfaced as PropagationFailure
    """

    def __init__(self, codec: Optional[TLECodec] = None):
        self.codec = codec or TLECodec()

    def build_from_record(self, record: OrbitalElementRecord) -> PropagationState:
        """
        Build a propagation state from an element record.

        Raises:
            EncodingError: If the record cannot be rendered as TLE lines
            PropagationFailure: If SGP4 rejects the elements
        """
        line1, line2 = self.codec.encode(record)
        return self._initialize(line1, line2, record)

    def build_from_lines(self, line1: str, line2: str) -> PropagationState:
        """
        Build a propagation state from TLE lines.

        Raises:
            ElementFormatError: If the lines are malformed
            PropagationFailure: If SGP4 rejects the elements
        """
        record = self.codec.decode(line1, line2)
        return self._initialize(line1.rstrip(), line2.rstrip(), record)

    def _initialize(self, line1, line2, record):
        try:
            satrec = Satrec.twoline2rv(line1, line2)
        except ValueError as e:
            raise ElementFormatError(f"SGP4 rejected element lines: {e}") from e

        state = PropagationState(satrec, line1, line2, record)
        if not state.is_valid:
            logger.warning(
                f"SGP4 initialization failed for {state.catalog_number}: "
                f"{describe_error(state.error_code)}"
            )
            raise PropagationFailure(state.error_code, describe_error(state.error_code))
        return state

    def propagate(self, state: PropagationState, instant: datetime) -> StateVector:
        """
        Propagate to an instant.

        Args:
            state: State from build_from_record or build_from_lines
            instant: Target time (naive means UTC)

        Returns:
            StateVector with TEME position (km) and velocity (km/s)

        Raises:
            PropagationFailure: For a nonzero SGP4 code or a non-finite result
        """
        jd, fr = datetime_to_jd(instant)
        error, position, velocity = state._satrec.sgp4(jd, fr)

        if error != 0:
            raise PropagationFailure(error, describe_error(error))
        if not all(math.isfinite(v) for v in (*position, *velocity)):
            raise PropagationFailure(NO_SOLUTION, describe_error(NO_SOLUTION))

        return StateVector(np.array(position), np.array(velocity), instant)
