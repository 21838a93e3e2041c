"""Render layer: map views, tile failover and error recovery."""

from trackmap.render.boundary import ErrorRecoveryBoundary, FallbackContext, RenderResult
from trackmap.render.fallback import FallbackTable
from trackmap.render.icons import MarkerIcon, marker_icon, popup_html
from trackmap.render.lightweight import LightweightView
from trackmap.render.protocol import MapRenderer, PolylineStyle
from trackmap.render.tiles import TileSourceChain

__all__ = [
    "ErrorRecoveryBoundary",
    "FallbackContext",
    "FallbackTable",
    "LightweightView",
    "MapRenderer",
    "MarkerIcon",
    "PolylineStyle",
    "RenderResult",
    "TileSourceChain",
    "marker_icon",
    "popup_html",
]
