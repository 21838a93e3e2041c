"""Static, dependency-free placeholder view of a track."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from trackmap.models.point import Point
from trackmap.processing.geometry import Bounds
from trackmap.render.icons import DEFAULT_COLOR, END_COLOR, START_COLOR

EMPTY_MESSAGE = "No location data available"
BACKGROUND_COLOR = "#1a2332"
GRID_COLOR = "#334155"
TEXT_COLOR = "#64748b"


@dataclasses.dataclass(frozen=True)
class LightweightView:
    """Track projected onto a plain canvas, with Start/End markers.

    The projection is a linear fit of the padded bounding box to the
    canvas; no tiles are involved.
    """

    track: tuple[Point, ...]
    bounds: Bounds
    show_upgrade: bool = False

    @classmethod
    def from_track(cls, track: Sequence[Point], *, show_upgrade: bool = False) -> LightweightView:
        return cls(track=tuple(track), bounds=Bounds.from_track(track, padded=True), show_upgrade=show_upgrade)

    @property
    def is_empty(self) -> bool:
        return not self.track

    @property
    def label(self) -> str:
        return f"{len(self.track)} points"

    def project(self, point: Point, width: float, height: float) -> tuple[float, float]:
        """Canvas ``(x, y)`` for *point*; north is up."""
        b = self.bounds
        x = (point.lng - b.min_lng) / (b.max_lng - b.min_lng) * width
        y = (b.max_lat - point.lat) / (b.max_lat - b.min_lat) * height
        return (x, y)

    def render_svg(self, width: int = 600, height: int = 400) -> str:
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
            f'viewBox="0 0 {width} {height}" role="img" aria-label="Static map showing device location path">',
            f'<rect width="{width}" height="{height}" fill="{BACKGROUND_COLOR}"/>',
        ]
        for i in range(5):
            x = width / 4 * i
            y = height / 4 * i
            parts.append(f'<line x1="{x:.1f}" y1="0" x2="{x:.1f}" y2="{height}" stroke="{GRID_COLOR}" stroke-dasharray="5,5"/>')
            parts.append(f'<line x1="0" y1="{y:.1f}" x2="{width}" y2="{y:.1f}" stroke="{GRID_COLOR}" stroke-dasharray="5,5"/>')

        if self.is_empty:
            parts.append(
                f'<text x="{width / 2}" y="{height / 2}" fill="{TEXT_COLOR}" font-size="16" '
                f'text-anchor="middle" dominant-baseline="middle">{EMPTY_MESSAGE}</text></svg>'
            )
            return "".join(parts)

        coords = [self.project(p, width, height) for p in self.track]
        if len(coords) > 1:
            path = " ".join(f"{x:.2f},{y:.2f}" for x, y in coords)
            parts.append(
                f'<polyline points="{path}" fill="none" stroke="{DEFAULT_COLOR}" stroke-width="3" '
                'stroke-linecap="round" stroke-linejoin="round"/>'
            )

        endpoints = [("Start", coords[0], START_COLOR)]
        if len(coords) > 1:
            endpoints.append(("End", coords[-1], END_COLOR))
        for text, (x, y), color in endpoints:
            parts.append(f'<circle cx="{x:.2f}" cy="{y:.2f}" r="8" fill="{color}" stroke="#ffffff" stroke-width="2"/>')
            parts.append(
                f'<text x="{x:.2f}" y="{y - 12:.2f}" fill="#ffffff" font-size="12" font-weight="bold" '
                f'text-anchor="middle">{text}</text>'
            )

        parts.append(
            f'<text x="{width - 10}" y="10" fill="{TEXT_COLOR}" font-size="12" text-anchor="end" '
            f'dominant-baseline="hanging">{self.label}</text>'
        )
        parts.append("</svg>")
        return "".join(parts)
