"""Path simplification and marker clustering.

Both operations are pure and deterministic.  Simplification reduces the
shape of a track with Douglas-Peucker; clustering then bounds the number
of markers drawn on top of it.  Neither ever drops the first or last
point of its input.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from trackmap.config import DEFAULT_SIMPLIFY_TOLERANCE
from trackmap.models.enums import MarkerLabel
from trackmap.models.markers import ClusterMarker
from trackmap.models.point import Point
from trackmap.processing.geometry import Bounds, perpendicular_distance

#: Tracks at or below this length are never simplified.
SIMPLIFY_MIN_POINTS = 100

DEFAULT_MAX_MARKERS = 20


def _douglas_peucker(track: Sequence[Point], tolerance: float) -> tuple[Point, ...]:
    n = len(track)
    if n <= 2:
        return tuple(track)

    keep = [False] * n
    keep[0] = keep[-1] = True
    segments = [(0, n - 1)]
    while segments:
        start, end = segments.pop()
        if end - start < 2:
            continue
        max_distance = 0.0
        max_index = start
        for i in range(start + 1, end):
            distance = perpendicular_distance(track[i], track[start], track[end])
            if distance > max_distance:
                max_distance = distance
                max_index = i
        if max_distance > tolerance:
            keep[max_index] = True
            segments.append((start, max_index))
            segments.append((max_index, end))

    return tuple(point for point, kept in zip(track, keep, strict=True) if kept)


def simplify(track: Sequence[Point], tolerance: float = DEFAULT_SIMPLIFY_TOLERANCE) -> tuple[Point, ...]:
    """Simplify *track* with the Douglas-Peucker algorithm.

    Tracks of :data:`SIMPLIFY_MIN_POINTS` points or fewer are returned
    unchanged.  Otherwise interior points whose perpendicular distance to
    the enclosing chord does not exceed *tolerance* are discarded.  The
    first and last points are always kept, and re-applying with the same
    tolerance returns the same track.
    """
    if len(track) <= SIMPLIFY_MIN_POINTS:
        return tuple(track)
    return _douglas_peucker(track, max(tolerance, 0.0))


def adaptive_tolerance(track: Sequence[Point], target_points: int) -> float:
    """Find a tolerance that simplifies *track* to roughly *target_points*.

    Bisects between 0.01% and 1% of the track's largest coordinate range,
    accepting the first tolerance whose result lands within 80-100% of
    the target.  Returns ``0.0`` when the track is already small enough.
    """
    if len(track) <= target_points:
        return 0.0

    base = Bounds.from_track(track).max_range / 1000
    low = base * 0.1
    high = base * 10
    best = base
    for _ in range(10):
        mid = (low + high) / 2
        count = len(_douglas_peucker(track, mid))
        if count > target_points:
            low = mid
        elif count < target_points * 0.8:
            high = mid
        else:
            return mid
        best = mid
    return best


def simplify_to_target(track: Sequence[Point], target_points: int) -> tuple[Point, ...]:
    """Simplify *track* with a tolerance chosen by :func:`adaptive_tolerance`."""
    if len(track) <= max(target_points, SIMPLIFY_MIN_POINTS):
        return tuple(track)
    return _douglas_peucker(track, adaptive_tolerance(track, target_points))


def as_markers(track: Sequence[Point]) -> tuple[ClusterMarker, ...]:
    """One marker per point, with the endpoints labelled."""
    last = len(track) - 1
    markers: list[ClusterMarker] = []
    for index, point in enumerate(track):
        label: MarkerLabel | None = None
        if index == 0:
            label = MarkerLabel.START
        elif index == last:
            label = MarkerLabel.END
        markers.append(ClusterMarker(representative=point, label=label, absorbed_count=1))
    return tuple(markers)


def cluster(track: Sequence[Point], max_markers: int = DEFAULT_MAX_MARKERS) -> tuple[ClusterMarker, ...]:
    """Bound the marker count for *track* to *max_markers*.

    Start and End are always kept as labelled markers.  The remaining
    budget is spread over the interior by stride sampling; every kept
    interior point absorbs the unkept points up to the next kept one, so
    the ``absorbed_count`` values always sum to ``len(track)``.
    """
    n = len(track)
    if n == 0:
        return ()
    if n <= max_markers:
        return as_markers(track)

    budget = max(max_markers, 2) - 2
    kept: list[int] = []
    if budget > 0:
        stride = math.ceil((n - 2) / budget)
        kept = list(range(1, n - 1, stride))

    first_kept = kept[0] if kept else n - 1
    markers = [
        ClusterMarker(representative=track[0], label=MarkerLabel.START, absorbed_count=first_kept),
    ]
    for position, index in enumerate(kept):
        next_index = kept[position + 1] if position + 1 < len(kept) else n - 1
        markers.append(ClusterMarker(representative=track[index], absorbed_count=next_index - index))
    markers.append(ClusterMarker(representative=track[-1], label=MarkerLabel.END, absorbed_count=1))
    return tuple(markers)
