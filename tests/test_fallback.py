from __future__ import annotations

import pytest

from trackmap.models.point import Point
from trackmap.render.fallback import FallbackTable

_T0 = 1_767_225_600


def _track() -> list[Point]:
    return [
        Point(lat=52.0, lng=4.9, time=_T0, speed=30.0),
        Point(lat=52.1, lng=4.8, time=_T0 + 60),
        Point(lat=52.2, lng=4.7, time=_T0 + 120, speed=10.0),
    ]


def test_optional_columns_only_when_present() -> None:
    bare = [Point(lat=1.0, lng=2.0, time=_T0)]
    assert FallbackTable.from_track(bare).columns == ("#", "time", "lat", "lng")
    assert FallbackTable.from_track(_track()).columns == ("#", "time", "lat", "lng", "speed")


def test_stats() -> None:
    track = _track()
    table = FallbackTable.from_track(track)

    assert table.stats.total_points == 3
    assert table.stats.start == track[0]
    assert table.stats.end == track[-1]


def test_sort_puts_missing_values_last() -> None:
    track = _track()
    table = FallbackTable.from_track(track)

    ascending = table.sorted_by("speed")
    descending = table.sorted_by("speed", descending=True)

    assert [row.index for row in ascending.rows] == [3, 1, 2]
    assert [row.index for row in descending.rows] == [1, 3, 2]
    # Sorting never touches the source table or track.
    assert [row.index for row in table.rows] == [1, 2, 3]
    assert track == _track()


def test_sort_by_unknown_column() -> None:
    with pytest.raises(KeyError):
        FallbackTable.from_track(_track()).sorted_by("accuracy")


def test_to_text() -> None:
    text = FallbackTable.from_track(_track()).to_text()

    assert "Total points: 3" in text
    assert "Latitude" in text
    assert "52.100000" in text
    assert "30 km/h" in text
    assert text.splitlines()[-2].split()[-1] == "-"


def test_to_html_escapes_error_message() -> None:
    table = FallbackTable.from_track(_track(), error=RuntimeError("<script>"), retry_available=True)
    markup = table.to_html()

    assert "&lt;script&gt;" in markup
    assert "<script>" not in markup
    assert "Retry Loading Map" in markup
    assert markup.count("<tr>") == 4


def test_empty_track() -> None:
    table = FallbackTable.from_track([])

    assert table.rows == ()
    assert "No location data available" in table.to_text()
    assert "No location data available" in table.to_html()
