"""
Ground Track Projection

Converts SGP4 output (TEME position and velocity) into geodetic longitude,
latitude and altitude over the WGS-84 ellipsoid.
"""

import math
from datetime import datetime
from typing import Tuple

import numpy as np

from config import WGS84_EQUATORIAL_RADIUS_KM, WGS84_FLATTENING
from station_tracker.models import PositionSample
from station_tracker.propagation import datetime_to_jd


def normalize_longitude(longitude: float) -> float:
    """
    Map a longitude in degrees into [-180, 180).

    In-range values are returned unchanged, so the mapping is idempotent.
    """
    if -180.0 <= longitude < 180.0:
        return longitude
    normalized = ((longitude + 180.0) % 360.0 + 360.0) % 360.0 - 180.0
    # The modulo can round up to exactly 360 for inputs just below a multiple
    if normalized >= 180.0:
        normalized -= 360.0
    return normalized


def greenwich_sidereal_time(instant: datetime) -> float:
    """Greenwich mean sidereal time in radians (IAU-82)."""
    jd, fr = datetime_to_jd(instant)
    T = (jd - 2451545.0 + fr) / 36525.0

    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * T +
        0.093104 * T * T -
        6.2e-6 * T * T * T
    )
    return (gmst_sec % 86400.0) * (2.0 * math.pi / 86400.0)


class GroundTrackProjector:
    """Pure TEME to geodetic projection; identical input gives identical output."""

    def __init__(self, equatorial_radius_km: float = WGS84_EQUATORIAL_RADIUS_KM,
                 flattening: float = WGS84_FLATTENING):
        self.a = equatorial_radius_km
        self.f = flattening
        self.b = self.a * (1.0 - self.f)
        self.e2 = 2.0 * self.f - self.f * self.f
        self.ep2 = self.e2 / (1.0 - self.e2)

    def project(self, position, velocity, instant: datetime) -> PositionSample:
        """
        Project an inertial state onto the ground.

        Args:
            position: TEME position [x, y, z] (km)
            velocity: TEME velocity [vx, vy, vz] (km/s)
            instant: Time of the state

        Returns:
            PositionSample in degrees, km and km/s
        """
        r_ecef = self.teme_to_ecef(np.asarray(position, dtype=float), instant)
        lat_rad, lon_rad, alt = self.ecef_to_geodetic(r_ecef)

        return PositionSample(
            longitude=normalize_longitude(math.degrees(lon_rad)),
            latitude=math.degrees(lat_rad),
            altitude=alt,
            speed=float(np.linalg.norm(np.asarray(velocity, dtype=float))),
            instant=instant,
        )

    def ground_point(self, position, instant: datetime) -> Tuple[float, float]:
        """(latitude, longitude) in degrees, for orbit path sampling."""
        r_ecef = self.teme_to_ecef(np.asarray(position, dtype=float), instant)
        lat_rad, lon_rad, _ = self.ecef_to_geodetic(r_ecef)
        return math.degrees(lat_rad), normalize_longitude(math.degrees(lon_rad))

    def teme_to_ecef(self, r_teme: np.ndarray, instant: datetime) -> np.ndarray:
        """Rotate a TEME position about the pole by GMST."""
        gmst = greenwich_sidereal_time(instant)
        cos_g = math.cos(gmst)
        sin_g = math.sin(gmst)

        return np.array([
            cos_g * r_teme[0] + sin_g * r_teme[1],
            -sin_g * r_teme[0] + cos_g * r_teme[1],
            r_teme[2],
        ])

    def ecef_to_geodetic(self, r_ecef: np.ndarray) -> Tuple[float, float, float]:
        """
        ECEF to geodetic conversion using Bowring's method.

        Args:
            r_ecef: Position vector in ECEF coordinates [x, y, z] (km)

        Returns:
            Tuple of (latitude_rad, longitude_rad, altitude_km)
        """
        a, b, e2, ep2 = self.a, self.b, self.e2, self.ep2
        x, y, z = r_ecef

        lon = math.atan2(y, x)
        p = math.sqrt(x * x + y * y)

        # Pole
        if p < 1e-10:
            lat = math.pi / 2.0 if z > 0 else -math.pi / 2.0
            return lat, lon, abs(z) - b

        theta = math.atan2(z * a, p * b)
        lat = theta
        for _ in range(5):
            sin_theta = math.sin(theta)
            cos_theta = math.cos(theta)

            lat = math.atan2(
                z + ep2 * b * sin_theta ** 3,
                p - e2 * a * cos_theta ** 3,
            )

            # Parametric latitude for the next pass: tan(theta) = (b/a) tan(lat)
            new_theta = math.atan2(b * math.sin(lat), a * math.cos(lat))
            if abs(new_theta - theta) < 1e-12:
                break
            theta = new_theta

        cos_lat = math.cos(lat)
        sin_lat = math.sin(lat)
        N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)

        if cos_lat > 1e-10:
            alt = p / cos_lat - N
        else:
            alt = z / sin_lat - N * (1.0 - e2)

        return lat, lon, alt
