"""trackmap - Adaptive GPS track map rendering with progressive loading."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trackmap")
except PackageNotFoundError:
    __version__ = "0+local"
from trackmap.config import PerformanceThresholds, TrackMapConfig
from trackmap.exceptions import (
    ChunkFetchError,
    NotMountedError,
    RenderError,
    TileLoadError,
    TrackMapConfigError,
    TrackMapError,
    TrackMapTransportError,
)
from trackmap.ingestion.http import HttpChunkFetcher
from trackmap.ingestion.loader import FetchTrackChunk, ProgressiveLoader, sample_uniform
from trackmap.ingestion.normalize import parse_point, parse_points
from trackmap.models import (
    DEFAULT_TILE_PROVIDERS,
    ClusterMarker,
    LoadingState,
    LoadProgress,
    LoadResult,
    MapImplementation,
    MarkerLabel,
    Point,
    TileProvider,
)
from trackmap.monitoring import MetricsSummary, PerformanceMonitor, PerformanceTimer, Phase
from trackmap.orchestrator import MapOrchestrator
from trackmap.processing import adaptive_tolerance, cluster, simplify, simplify_to_target
from trackmap.render import (
    ErrorRecoveryBoundary,
    FallbackContext,
    FallbackTable,
    LightweightView,
    MapRenderer,
    RenderResult,
    TileSourceChain,
)
from trackmap.state.policy import SelectionContext, select_implementation

__all__ = [
    "__version__",
    "DEFAULT_TILE_PROVIDERS",
    "ChunkFetchError",
    "ClusterMarker",
    "ErrorRecoveryBoundary",
    "FallbackContext",
    "FallbackTable",
    "FetchTrackChunk",
    "HttpChunkFetcher",
    "LightweightView",
    "LoadProgress",
    "LoadResult",
    "LoadingState",
    "MapImplementation",
    "MapOrchestrator",
    "MapRenderer",
    "MarkerLabel",
    "MetricsSummary",
    "NotMountedError",
    "PerformanceMonitor",
    "PerformanceThresholds",
    "PerformanceTimer",
    "Phase",
    "Point",
    "ProgressiveLoader",
    "RenderError",
    "RenderResult",
    "SelectionContext",
    "TileLoadError",
    "TileProvider",
    "TileSourceChain",
    "TrackMapConfig",
    "TrackMapConfigError",
    "TrackMapError",
    "TrackMapTransportError",
    "adaptive_tolerance",
    "cluster",
    "parse_point",
    "parse_points",
    "sample_uniform",
    "select_implementation",
    "simplify",
    "simplify_to_target",
]
