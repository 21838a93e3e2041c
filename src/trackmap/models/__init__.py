"""Data models for tracks, markers and loading progress."""

from trackmap.models._base import TrackMapModel, TrackTimestamp, parse_timestamp
from trackmap.models.enums import LoadingState, MapImplementation, MarkerLabel
from trackmap.models.markers import ClusterMarker
from trackmap.models.point import Point
from trackmap.models.progress import LoadProgress, LoadResult
from trackmap.models.tiles import DEFAULT_TILE_PROVIDERS, TileProvider

__all__ = [
    "DEFAULT_TILE_PROVIDERS",
    "ClusterMarker",
    "LoadProgress",
    "LoadResult",
    "LoadingState",
    "MapImplementation",
    "MarkerLabel",
    "Point",
    "TileProvider",
    "TrackMapModel",
    "TrackTimestamp",
    "parse_timestamp",
]
