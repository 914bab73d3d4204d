"""
PathGuardian - Geospatial Utilities
Coordinate types and bounding-box helpers shared by the map and the API.
"""

from dataclasses import dataclass
from typing import Iterable, NamedTuple, Tuple

from shapely.geometry import Point, box


class LngLat(NamedTuple):
    """Geographic position in (longitude, latitude) order, as map libraries expect."""
    longitude: float
    latitude: float

    def to_latlon(self) -> Tuple[float, float]:
        """Return as (latitude, longitude) for Leaflet/folium."""
        return (self.latitude, self.longitude)


@dataclass
class BoundingBox:
    """Geographic bounding box."""
    west: float   # min longitude
    south: float  # min latitude
    east: float   # max longitude
    north: float  # max latitude

    def __post_init__(self):
        if self.west > self.east or self.south > self.north:
            raise ValueError(
                f"Invalid bounding box: ({self.west}, {self.south}, {self.east}, {self.north})"
            )
        self._polygon = box(self.west, self.south, self.east, self.north)

    def contains(self, longitude: float, latitude: float) -> bool:
        """Check if a point is within the bounding box (edges included)."""
        return self._polygon.covers(Point(longitude, latitude))

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)


def calculate_centroid(points: Iterable[LngLat]) -> LngLat:
    """
    Calculate the mean position of a set of points.

    Args:
        points: Positions to average

    Returns:
        Mean position, or (0, 0) for an empty input
    """
    points = list(points)
    if not points:
        return LngLat(0.0, 0.0)

    n = len(points)
    return LngLat(
        sum(p.longitude for p in points) / n,
        sum(p.latitude for p in points) / n,
    )
