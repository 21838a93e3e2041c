"""Normalization helpers.

Centralizes tolerant parsing of raw location records so that the path
processing layer can assume clean numeric input.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from trackmap.models.point import Point

_logger = logging.getLogger(__name__)

_COORDINATE_KEYS: dict[str, tuple[str, ...]] = {
    "lat": ("lat", "latitude", "gpsLatitude"),
    "lng": ("lng", "longitude", "lon", "gpsLongitude"),
}


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _first_present(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def parse_point(record: Any) -> Point | None:
    """Parse one raw record into a :class:`Point`, or ``None`` if malformed.

    Records with non-numeric coordinates, out-of-range coordinates or no
    parseable time are rejected.  Optional ``speed``/``accuracy`` values
    that cannot be parsed are dropped rather than rejecting the point.
    """
    if isinstance(record, Point):
        return record
    if not isinstance(record, Mapping):
        return None

    lat = safe_float(_first_present(record, _COORDINATE_KEYS["lat"]))
    lng = safe_float(_first_present(record, _COORDINATE_KEYS["lng"]))
    if lat is None or lng is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None

    cleaned = dict(record)
    for key in _COORDINATE_KEYS["lat"] + _COORDINATE_KEYS["lng"]:
        cleaned.pop(key, None)
    cleaned["lat"] = lat
    cleaned["lng"] = lng
    for key in ("speed", "gpsSpeed", "accuracy", "hdop"):
        if key in cleaned:
            cleaned[key] = safe_float(cleaned[key])

    try:
        return Point.model_validate(cleaned)
    except ValidationError:
        return None


def parse_points(records: Iterable[Any]) -> list[Point]:
    """Parse raw records, dropping malformed ones while keeping order."""
    points: list[Point] = []
    dropped = 0
    for record in records:
        point = parse_point(record)
        if point is None:
            dropped += 1
            continue
        points.append(point)
    if dropped:
        _logger.debug("Dropped %d malformed location record(s)", dropped)
    return points
