"""Configuration for trackmap views and loaders."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from trackmap.exceptions import TrackMapConfigError
from trackmap.models.tiles import DEFAULT_TILE_PROVIDERS, TileProvider

#: Shape-envelope tolerance in degrees (~11 m), around normal GPS noise.
DEFAULT_SIMPLIFY_TOLERANCE: float = 1e-4


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PerformanceThresholds:
    """Phase duration targets in milliseconds.

    ``path_simplification_ms`` is the single simplification target; it
    applies to the phase as a whole.  ``marker_clustering_ms`` is the
    finer-grain target for the clustering step timed inside that phase.
    """

    initial_render_ms: float = 2000.0
    data_fetch_ms: float = 1000.0
    path_simplification_ms: float = 500.0
    marker_clustering_ms: float = 50.0


@dataclasses.dataclass(frozen=True)
class TrackMapConfig:
    """View configuration.

    Parameters
    ----------
    max_markers : int
        Upper bound on rendered markers after clustering.
    simplify_path : bool
        Apply Douglas-Peucker simplification to tracks over 100 points.
    cluster_markers : bool
        Reduce markers to ``max_markers`` with Start/End preserved.
    chunk_size : int
        Points requested per chunk by the progressive loader.
    sampling_threshold : int
        Cumulative point count above which sampling is considered.
    max_points : int
        Maximum points kept after load-time sampling.
    user_requested_interactive : bool
        Initial user intent for the interactive map.
    auto_upgrade_for_small_tracks : bool
        Treat tracks under 50 points as if the user asked for the
        interactive map.
    simplify_tolerance : float
        Douglas-Peucker tolerance in coordinate degrees.
    simplify_target_points : int or None
        When set, derive the tolerance adaptively so the simplified
        track lands near this many points instead of using
        ``simplify_tolerance``.
    debounce_delay : float
        Seconds to coalesce rapid track updates before re-processing.
    settle_delay : float
        Seconds between a track arriving and the view reporting ready.
    ticker_interval : float
        Seconds between perceived-progress ticks while upgrading.
    ticker_step : float
        Percentage added per tick.
    ticker_cap : float
        Percentage the ticker never exceeds on its own.
    max_render_retries : int
        Retry budget for the error recovery boundary.
    fallback_on_tile_exhaustion : bool
        Switch to the tabular fallback once every tile provider failed,
        instead of keeping the last provider's tiles.
    tile_providers : tuple of TileProvider
        Ordered tile failover chain.
    thresholds : PerformanceThresholds
        Performance targets for the monitor.
    """

    max_markers: int = 20
    simplify_path: bool = True
    cluster_markers: bool = True
    chunk_size: int = 100
    sampling_threshold: int = 500
    max_points: int = 1000
    user_requested_interactive: bool = False
    auto_upgrade_for_small_tracks: bool = False
    simplify_tolerance: float = DEFAULT_SIMPLIFY_TOLERANCE
    simplify_target_points: int | None = None
    debounce_delay: float = 0.3
    settle_delay: float = 0.3
    ticker_interval: float = 0.1
    ticker_step: float = 10.0
    ticker_cap: float = 90.0
    max_render_retries: int = 3
    fallback_on_tile_exhaustion: bool = False
    tile_providers: tuple[TileProvider, ...] = DEFAULT_TILE_PROVIDERS
    thresholds: PerformanceThresholds = dataclasses.field(default_factory=PerformanceThresholds)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise TrackMapConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_points < 2:
            raise TrackMapConfigError(f"max_points must be at least 2, got {self.max_points}")
        if self.sampling_threshold < 0:
            raise TrackMapConfigError(f"sampling_threshold must be non-negative, got {self.sampling_threshold}")
        if self.max_markers < 1:
            raise TrackMapConfigError(f"max_markers must be positive, got {self.max_markers}")
        if self.simplify_tolerance < 0:
            raise TrackMapConfigError(f"simplify_tolerance must be non-negative, got {self.simplify_tolerance}")
        if self.simplify_target_points is not None and self.simplify_target_points < 2:
            raise TrackMapConfigError("simplify_target_points must be at least 2")
        if not 0 < self.ticker_cap <= 100:
            raise TrackMapConfigError(f"ticker_cap must be in (0, 100], got {self.ticker_cap}")
        if self.ticker_step <= 0 or self.ticker_interval <= 0:
            raise TrackMapConfigError("ticker_step and ticker_interval must be positive")
        if self.debounce_delay < 0 or self.settle_delay < 0:
            raise TrackMapConfigError("debounce_delay and settle_delay must be non-negative")
        if self.max_render_retries < 0:
            raise TrackMapConfigError("max_render_retries must be non-negative")
        if not self.tile_providers:
            raise TrackMapConfigError("at least one tile provider is required")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackMapConfig:
        """Create configuration from environment variables.

        Reads optional ``TRACKMAP_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TrackMapConfig
            Populated configuration.

        Raises
        ------
        TrackMapConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_INT_MAP = {
            "TRACKMAP_MAX_MARKERS": "max_markers",
            "TRACKMAP_CHUNK_SIZE": "chunk_size",
            "TRACKMAP_SAMPLING_THRESHOLD": "sampling_threshold",
            "TRACKMAP_MAX_POINTS": "max_points",
            "TRACKMAP_SIMPLIFY_TARGET_POINTS": "simplify_target_points",
            "TRACKMAP_MAX_RENDER_RETRIES": "max_render_retries",
        }
        _ENV_FLOAT_MAP = {
            "TRACKMAP_SIMPLIFY_TOLERANCE": "simplify_tolerance",
            "TRACKMAP_DEBOUNCE_DELAY": "debounce_delay",
            "TRACKMAP_SETTLE_DELAY": "settle_delay",
        }
        _ENV_BOOL_MAP = {
            "TRACKMAP_SIMPLIFY_PATH": ("simplify_path", True),
            "TRACKMAP_CLUSTER_MARKERS": ("cluster_markers", True),
            "TRACKMAP_USER_REQUESTED_INTERACTIVE": ("user_requested_interactive", False),
            "TRACKMAP_AUTO_UPGRADE_FOR_SMALL_TRACKS": ("auto_upgrade_for_small_tracks", False),
            "TRACKMAP_FALLBACK_ON_TILE_EXHAUSTION": ("fallback_on_tile_exhaustion", False),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = int(val)
                except ValueError as exc:
                    raise TrackMapConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise TrackMapConfigError(f"{env_key} must be a number, got {val!r}") from exc

        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
