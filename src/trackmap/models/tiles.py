"""Tile provider definitions."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class TileProvider:
    """A map tile source.

    Parameters
    ----------
    name : str
        Human-readable provider name.
    url_template : str
        Leaflet-style URL template (``{s}``, ``{z}``, ``{x}``, ``{y}``).
    attribution : str
        Attribution text required by the provider.
    max_zoom : int
        Highest zoom level the provider serves.
    """

    name: str
    url_template: str
    attribution: str
    max_zoom: int = 19


DEFAULT_TILE_PROVIDERS: tuple[TileProvider, ...] = (
    TileProvider(
        name="OpenStreetMap",
        url_template="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        attribution="© OpenStreetMap contributors",
        max_zoom=19,
    ),
    TileProvider(
        name="CartoDB",
        url_template="https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}.png",
        attribution="© OpenStreetMap contributors, © CartoDB",
        max_zoom=19,
    ),
    TileProvider(
        name="Stamen",
        url_template="https://stamen-tiles-{s}.a.ssl.fastly.net/toner-lite/{z}/{x}/{y}.png",
        attribution="Map tiles by Stamen Design, © OpenStreetMap contributors",
        max_zoom=18,
    ),
)
