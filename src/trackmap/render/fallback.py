"""Tabular fallback view shown when no map can be rendered."""

from __future__ import annotations

import dataclasses
import html
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from trackmap.models.point import Point

BASE_COLUMNS: tuple[str, ...] = ("#", "time", "lat", "lng")
OPTIONAL_COLUMNS: tuple[str, ...] = ("speed", "accuracy")

_HEADERS: dict[str, str] = {
    "#": "#",
    "time": "Time",
    "lat": "Latitude",
    "lng": "Longitude",
    "speed": "Speed",
    "accuracy": "Accuracy",
}


@dataclasses.dataclass(frozen=True)
class FallbackRow:
    """One table row; ``index`` is the 1-based position in the source track."""

    index: int
    time: datetime
    lat: float
    lng: float
    speed: float | None = None
    accuracy: float | None = None

    def value(self, column: str) -> Any:
        if column == "#":
            return self.index
        return getattr(self, column)

    def cell(self, column: str) -> str:
        value = self.value(column)
        if value is None:
            return "-"
        if column in ("lat", "lng"):
            return f"{value:.6f}"
        if column == "time":
            return value.isoformat()
        if column == "speed":
            return f"{value:g} km/h"
        if column == "accuracy":
            return f"{value:g}m"
        return str(value)


@dataclasses.dataclass(frozen=True)
class TrackStats:
    total_points: int
    start: Point | None
    end: Point | None


@dataclasses.dataclass(frozen=True)
class FallbackTable:
    """Sortable table of the raw track.

    ``speed`` and ``accuracy`` columns are present only when at least one
    point carries the value.  Sorting returns a new table; missing values
    always sort last.
    """

    columns: tuple[str, ...]
    rows: tuple[FallbackRow, ...]
    stats: TrackStats
    error: BaseException | None = None
    retry_available: bool = False

    @classmethod
    def from_track(
        cls,
        track: Sequence[Point],
        *,
        error: BaseException | None = None,
        retry_available: bool = False,
    ) -> FallbackTable:
        columns = BASE_COLUMNS + tuple(
            column for column in OPTIONAL_COLUMNS if any(getattr(p, column) is not None for p in track)
        )
        rows = tuple(
            FallbackRow(
                index=i + 1,
                time=p.time,
                lat=p.lat,
                lng=p.lng,
                speed=p.speed,
                accuracy=p.accuracy,
            )
            for i, p in enumerate(track)
        )
        stats = TrackStats(
            total_points=len(track),
            start=track[0] if track else None,
            end=track[-1] if track else None,
        )
        return cls(columns=columns, rows=rows, stats=stats, error=error, retry_available=retry_available)

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"Unable to load interactive map: {self.error or 'Unknown error'}"
        return "The interactive map could not be loaded. Showing location data in table format."

    def sorted_by(self, column: str, *, descending: bool = False) -> FallbackTable:
        """Return a copy sorted by *column*.

        Raises
        ------
        KeyError
            If *column* is not one of :attr:`columns`.
        """
        if column not in self.columns:
            raise KeyError(column)
        present = [row for row in self.rows if row.value(column) is not None]
        missing = [row for row in self.rows if row.value(column) is None]
        present.sort(key=lambda row: row.value(column), reverse=descending)
        return dataclasses.replace(self, rows=tuple(present + missing))

    def to_text(self) -> str:
        if not self.rows:
            return f"{self.message}\nNo location data available"

        headers = [_HEADERS[c] for c in self.columns]
        body = [[row.cell(c) for c in self.columns] for row in self.rows]
        widths = [max(len(h), *(len(r[i]) for r in body)) for i, h in enumerate(headers)]

        lines = [self.message, f"Total points: {self.stats.total_points}"]
        lines.append("  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True)))
        lines.append("  ".join("-" * w for w in widths))
        for cells in body:
            lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))
        return "\n".join(lines)

    def to_html(self) -> str:
        parts = [
            '<div class="trackmap-fallback">',
            "<h3>Map Unavailable</h3>",
            f"<p>{html.escape(self.message)}</p>",
        ]
        if self.retry_available:
            parts.append('<button type="button" class="trackmap-retry">Retry Loading Map</button>')
        if not self.rows:
            parts.append("<p>No location data available</p></div>")
            return "".join(parts)

        parts.append(f"<p>Total Points: {self.stats.total_points}</p>")
        for label, point in (("Start Location", self.stats.start), ("End Location", self.stats.end)):
            if point is not None:
                parts.append(f"<p>{label}: {point.lat:.6f}, {point.lng:.6f}</p>")

        parts.append("<table><thead><tr>")
        parts.extend(f"<th>{html.escape(_HEADERS[c])}</th>" for c in self.columns)
        parts.append("</tr></thead><tbody>")
        for row in self.rows:
            parts.append("<tr>")
            parts.extend(f"<td>{html.escape(row.cell(c))}</td>" for c in self.columns)
            parts.append("</tr>")
        parts.append("</tbody></table></div>")
        return "".join(parts)
