from __future__ import annotations

import math

from trackmap.models.enums import MarkerLabel
from trackmap.models.point import Point
from trackmap.processing.geometry import Bounds, center_of, perpendicular_distance, zoom_for_track
from trackmap.processing.path import (
    adaptive_tolerance,
    as_markers,
    cluster,
    simplify,
    simplify_to_target,
)

_T0 = 1_767_225_600  # 2026-01-01T00:00:00Z


def _point(lat: float, lng: float, i: int = 0) -> Point:
    return Point(lat=lat, lng=lng, time=_T0 + i)


def _wiggly_track(n: int) -> list[Point]:
    return [
        _point(52.0 + i * 1e-4 + 3e-4 * math.sin(i / 7), 4.9 + 2e-4 * math.cos(i / 11), i)
        for i in range(n)
    ]


def _zigzag_track(n: int) -> list[Point]:
    # Straight legs between corners every third point.
    heights = [0, 1, 2, 3, 2, 1]
    return [_point(52.0 + heights[i % 6] * 1e-3, 4.9 + i * 1e-3, i) for i in range(n)]


def _straight_track(n: int) -> list[Point]:
    # On the equator every interior distance is exactly zero.
    return [_point(0.0, 4.9 + i * 1e-3, i) for i in range(n)]


class TestSimplify:
    def test_short_tracks_are_returned_unchanged(self) -> None:
        track = _straight_track(100)
        assert simplify(track) == tuple(track)

    def test_keeps_endpoints_and_never_grows(self) -> None:
        track = _wiggly_track(1000)
        simplified = simplify(track)

        assert simplified[0] == track[0]
        assert simplified[-1] == track[-1]
        assert len(simplified) <= len(track)

    def test_is_idempotent(self) -> None:
        track = _zigzag_track(600)
        once = simplify(track, 1e-4)

        # Long enough that the second pass runs the full algorithm again.
        assert 100 < len(once) < len(track)
        assert simplify(once, 1e-4) == once

    def test_straight_line_collapses_to_endpoints(self) -> None:
        track = _straight_track(200)
        assert simplify(track) == (track[0], track[-1])

    def test_negative_tolerance_is_treated_as_zero(self) -> None:
        track = _straight_track(150)
        assert simplify(track, -1.0) == (track[0], track[-1])

    def test_preserves_sharp_corner(self) -> None:
        track = [_point(52.0, 4.9 + i * 1e-3, i) for i in range(60)]
        track += [_point(52.0 + (i + 1) * 1e-3, 4.9 + 59e-3, 60 + i) for i in range(60)]
        simplified = simplify(track)
        assert simplified == (track[0], track[59], track[-1])

    def test_keeps_source_order(self) -> None:
        track = _wiggly_track(500)
        simplified = simplify(track)
        positions = [track.index(p) for p in simplified]
        assert positions == sorted(positions)


class TestAdaptiveTolerance:
    def test_small_track_needs_no_tolerance(self) -> None:
        assert adaptive_tolerance(_wiggly_track(50), 100) == 0.0

    def test_simplify_to_target_reduces_large_track(self) -> None:
        track = _wiggly_track(1000)
        simplified = simplify_to_target(track, 100)

        assert len(simplified) < len(track)
        assert simplified[0] == track[0]
        assert simplified[-1] == track[-1]

    def test_simplify_to_target_leaves_short_tracks_alone(self) -> None:
        track = _wiggly_track(80)
        assert simplify_to_target(track, 10) == tuple(track)


class TestCluster:
    def test_bounds_marker_count_and_labels_endpoints(self) -> None:
        track = _wiggly_track(1000)
        markers = cluster(track, 20)

        assert len(markers) <= 20
        assert markers[0].label is MarkerLabel.START
        assert markers[0].representative == track[0]
        assert markers[-1].label is MarkerLabel.END
        assert markers[-1].representative == track[-1]
        assert all(m.label is None for m in markers[1:-1])

    def test_absorbed_counts_cover_the_track(self) -> None:
        for n in (21, 57, 100, 1000, 1234):
            markers = cluster(_wiggly_track(n), 20)
            assert sum(m.absorbed_count for m in markers) == n

    def test_small_track_keeps_every_point(self) -> None:
        track = _wiggly_track(5)
        markers = cluster(track, 20)

        assert [m.representative for m in markers] == track
        assert [m.label for m in markers] == [MarkerLabel.START, None, None, None, MarkerLabel.END]
        assert all(m.absorbed_count == 1 for m in markers)

    def test_empty_track(self) -> None:
        assert cluster([], 20) == ()

    def test_single_point_is_start(self) -> None:
        (marker,) = cluster([_point(1.0, 2.0)], 20)
        assert marker.label is MarkerLabel.START

    def test_budget_below_two_is_clamped(self) -> None:
        track = _wiggly_track(30)
        markers = cluster(track, 1)

        assert len(markers) == 2
        assert markers[0].absorbed_count == 29
        assert markers[1].absorbed_count == 1

    def test_is_deterministic(self) -> None:
        track = _wiggly_track(777)
        assert cluster(track, 15) == cluster(track, 15)

    def test_as_markers_labels_endpoints(self) -> None:
        markers = as_markers(_wiggly_track(3))
        assert markers[0].is_endpoint
        assert not markers[1].is_endpoint
        assert markers[2].label is MarkerLabel.END


class TestGeometry:
    def test_perpendicular_distance(self) -> None:
        start = _point(0.0, 0.0)
        end = _point(0.0, 10.0)
        assert math.isclose(perpendicular_distance(_point(3.0, 5.0), start, end), 3.0)

    def test_degenerate_chord_uses_distance_to_start(self) -> None:
        start = _point(1.0, 1.0)
        assert math.isclose(perpendicular_distance(_point(4.0, 5.0), start, start), 5.0)

    def test_padded_bounds(self) -> None:
        bounds = Bounds.from_track([_point(10.0, 20.0), _point(20.0, 20.0)], padded=True)
        assert math.isclose(bounds.min_lat, 9.0)
        assert math.isclose(bounds.max_lat, 21.0)
        # Zero longitude range pads by 0.1 degrees.
        assert math.isclose(bounds.min_lng, 19.9)
        assert math.isclose(bounds.max_lng, 20.1)

    def test_empty_bounds_cover_the_world(self) -> None:
        bounds = Bounds.from_track([])
        assert bounds.as_corners() == [[-90.0, -180.0], [90.0, 180.0]]

    def test_center_and_zoom(self) -> None:
        track = [_point(52.0, 4.0), _point(52.02, 4.02)]
        lat, lng = center_of(track)
        assert math.isclose(lat, 52.01)
        assert math.isclose(lng, 4.01)
        assert zoom_for_track(track) == 15
        assert zoom_for_track([_point(0.0, 0.0), _point(2.0, 0.0)]) == 10
        assert zoom_for_track([_point(0.0, 0.0), _point(0.5, 0.0)]) == 13
        assert zoom_for_track([_point(0.0, 0.0)]) == 17
        assert zoom_for_track([]) == 13
