"""Splitting orbit paths where they wrap around the antimeridian."""

from typing import List, Sequence

from station_tracker.models import OrbitPoint

DATELINE_JUMP_DEGREES = 180.0


def segment_at_dateline(points: Sequence[OrbitPoint]) -> List[List[OrbitPoint]]:
    """
    Split (latitude, longitude) points into polyline segments.

    A new segment starts whenever consecutive longitudes differ by more than
    180 degrees, so a renderer never draws a line across the whole map.
    Singleton segments are kept; the renderer may skip them.
    """
    if not points:
        return []

    segments = []
    current = [points[0]]
    for prev, point in zip(points, points[1:]):
        if abs(point[1] - prev[1]) > DATELINE_JUMP_DEGREES:
            segments.append(current)
            current = [point]
        else:
            current.append(point)
    segments.append(current)

    return segments
