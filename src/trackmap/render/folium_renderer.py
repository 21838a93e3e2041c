"""Folium implementation of :class:`trackmap.render.protocol.MapRenderer`."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import folium

from trackmap.models.point import Point
from trackmap.processing.geometry import Bounds
from trackmap.render.icons import MarkerIcon
from trackmap.render.protocol import PolylineStyle, TileErrorHandler

_logger = logging.getLogger(__name__)


class FoliumMapRenderer:
    """Draws a track onto a :class:`folium.Map`.

    Folium produces a static HTML document, so tile failures surface in
    the browser rather than here.  Callers that detect a failed provider
    (for example from a health check) report it with
    :meth:`report_tile_error`, which drives the same failover as a live
    widget would.
    """

    def __init__(self, center: tuple[float, float] = (0.0, 0.0), zoom: int = 13) -> None:
        self.map = folium.Map(location=list(center), zoom_start=zoom, tiles=None)
        self._on_tile_error: TileErrorHandler | None = None
        self._tile_layer: folium.TileLayer | None = None
        self.marker_count = 0

    def render_tile_layer(
        self,
        url_template: str,
        attribution: str,
        max_zoom: int,
        on_tile_error: TileErrorHandler,
    ) -> None:
        self._tile_layer = folium.TileLayer(
            tiles=url_template,
            attr=attribution,
            max_zoom=max_zoom,
            name="base",
        )
        self._tile_layer.add_to(self.map)
        self._on_tile_error = on_tile_error
        _logger.debug("Tile layer %s (max zoom %d)", url_template, max_zoom)

    def render_polyline(self, points: Sequence[Point], style: PolylineStyle) -> None:
        if len(points) < 2:
            return
        folium.PolyLine(
            locations=[list(p.coordinates) for p in points],
            color=style.color,
            weight=style.weight,
            opacity=style.opacity,
        ).add_to(self.map)

    def render_marker(self, point: Point, icon: MarkerIcon, popup_content: str | None) -> None:
        div_icon = folium.DivIcon(
            html=icon.to_html(),
            icon_size=(icon.size, icon.size),
            icon_anchor=icon.anchor,
            class_name="custom-marker",
        )
        popup = folium.Popup(popup_content, max_width=300) if popup_content else None
        folium.Marker(location=list(point.coordinates), icon=div_icon, popup=popup).add_to(self.map)
        self.marker_count += 1

    def report_tile_error(self, error: BaseException | None = None) -> None:
        if self._on_tile_error is None:
            _logger.debug("Tile error reported before any tile layer was rendered")
            return
        self._on_tile_error(error)

    def fit_bounds(self, track: Sequence[Point]) -> None:
        if track:
            self.map.fit_bounds(Bounds.from_track(track).as_corners())

    def save(self, path: str | Path) -> None:
        self.map.save(str(path))
        _logger.info("Saved map to %s", path)
