"""Planar geometry helpers on (lat, lng) coordinates."""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Sequence

from trackmap.models.point import Point


def perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
    """Distance from *point* to the line through *line_start* and *line_end*.

    Coordinates are treated as planar with ``lat`` as x and ``lng`` as y.
    A degenerate line (both ends equal) falls back to the distance to
    *line_start*.
    """
    x, y = point.lat, point.lng
    x1, y1 = line_start.lat, line_start.lng
    x2, y2 = line_end.lat, line_end.lng

    dx = x2 - x1
    dy = y2 - y1
    if dx == 0 and dy == 0:
        return math.hypot(x - x1, y - y1)

    numerator = abs(dy * x - dx * y + x2 * y1 - y2 * x1)
    return numerator / math.hypot(dx, dy)


@dataclasses.dataclass(frozen=True)
class Bounds:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def from_track(cls, track: Sequence[Point], *, padded: bool = False) -> Bounds:
        """Bounding box of *track*; the whole world for an empty track.

        With ``padded=True`` each side grows by 10% of its range, or by
        0.1 degrees when the range is zero.
        """
        if not track:
            return cls(min_lat=-90.0, max_lat=90.0, min_lng=-180.0, max_lng=180.0)

        lats = [p.lat for p in track]
        lngs = [p.lng for p in track]
        bounds = cls(min_lat=min(lats), max_lat=max(lats), min_lng=min(lngs), max_lng=max(lngs))
        if not padded:
            return bounds

        lat_pad = (bounds.max_lat - bounds.min_lat) * 0.1 or 0.1
        lng_pad = (bounds.max_lng - bounds.min_lng) * 0.1 or 0.1
        return cls(
            min_lat=bounds.min_lat - lat_pad,
            max_lat=bounds.max_lat + lat_pad,
            min_lng=bounds.min_lng - lng_pad,
            max_lng=bounds.max_lng + lng_pad,
        )

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min_lat + self.max_lat) / 2, (self.min_lng + self.max_lng) / 2)

    @property
    def max_range(self) -> float:
        return max(self.max_lat - self.min_lat, self.max_lng - self.min_lng)

    def as_corners(self) -> list[list[float]]:
        """``[[south, west], [north, east]]`` as Leaflet-style widgets expect."""
        return [[self.min_lat, self.min_lng], [self.max_lat, self.max_lng]]


def center_of(track: Sequence[Point]) -> tuple[float, float]:
    if not track:
        return (0.0, 0.0)
    return Bounds.from_track(track).center


def zoom_for_track(track: Sequence[Point], default: int = 13) -> int:
    """Heuristic zoom level from the coordinate range of *track*."""
    if not track:
        return default
    max_range = Bounds.from_track(track).max_range
    if max_range > 1:
        return 10
    if max_range > 0.1:
        return 13
    if max_range > 0.01:
        return 15
    return 17
