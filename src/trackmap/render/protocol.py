"""Rendering protocol for the interactive map widget."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from typing import Protocol

from trackmap.models.point import Point
from trackmap.render.icons import MarkerIcon


@dataclasses.dataclass(frozen=True)
class PolylineStyle:
    color: str = "#7c3aed"
    weight: int = 3
    opacity: float = 0.8


TileErrorHandler = Callable[[BaseException | None], None]


class MapRenderer(Protocol):
    """Structural interface for interactive map widgets.

    Implementations draw onto their own surface; the orchestrator only
    decides what to draw.
    """

    def render_tile_layer(
        self,
        url_template: str,
        attribution: str,
        max_zoom: int,
        on_tile_error: TileErrorHandler,
    ) -> None: ...

    def render_polyline(self, points: Sequence[Point], style: PolylineStyle) -> None: ...

    def render_marker(self, point: Point, icon: MarkerIcon, popup_content: str | None) -> None: ...
