"""Top-level map view orchestration.

:class:`MapOrchestrator` owns one map view: it selects the map
implementation, runs the loading/upgrade lifecycle through the view-state
reducer and wires the loader, path processing, tile chain, error boundary
and performance monitor together.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, assert_never

from trackmap._tasks import Debouncer, ProgressTicker
from trackmap.config import TrackMapConfig
from trackmap.exceptions import ChunkFetchError, NotMountedError, TileLoadError
from trackmap.ingestion.loader import FetchTrackChunk, ProgressiveLoader
from trackmap.models.enums import LoadingState, MapImplementation
from trackmap.models.markers import ClusterMarker
from trackmap.models.point import Point
from trackmap.models.progress import LoadProgress, LoadResult
from trackmap.monitoring import PerformanceMonitor, PerformanceTimer, Phase
from trackmap.processing.path import SIMPLIFY_MIN_POINTS, as_markers, cluster, simplify, simplify_to_target
from trackmap.render.boundary import ErrorRecoveryBoundary, FallbackFactory, RenderResult
from trackmap.render.fallback import FallbackTable
from trackmap.render.icons import marker_icon, popup_html
from trackmap.render.lightweight import LightweightView
from trackmap.render.protocol import MapRenderer, PolylineStyle
from trackmap.render.tiles import TileSourceChain
from trackmap.state.events import ViewAction, ViewEvent
from trackmap.state.policy import SelectionContext, select_implementation
from trackmap.state.store import ViewState, ViewStateStore

_logger = logging.getLogger(__name__)

__all__ = ["MapOrchestrator", "SelectionContext", "select_implementation"]

PathUpdateCallback = Callable[[tuple[ClusterMarker, ...]], None]
ProgressCallback = Callable[[LoadProgress], None]
ErrorCallback = Callable[[Exception], None]


class MapOrchestrator:
    """Adaptive map view for a single track.

    Usage::

        async with MapOrchestrator(config, on_progress=print) as view:
            await view.load_device("IMEI-1", fetch)
            view.request_upgrade()
            result = view.render(FoliumMapRenderer())

    Parameters
    ----------
    config : TrackMapConfig, optional
        View configuration; defaults to ``TrackMapConfig()``.
    on_path_update : callable, optional
        Receives the marker tuple whenever path processing output changes.
    on_progress : callable, optional
        Receives :class:`LoadProgress` for chunk loads and upgrade ticks.
    on_error : callable, optional
        Receives recoverable errors (chunk, tile and render failures).
    monitor : PerformanceMonitor, optional
        Injected monitor, e.g. with a fake clock.
    tile_chain : TileSourceChain, optional
        Injected tile chain; built from ``config.tile_providers`` otherwise.
    fallback_factory : callable, optional
        Custom fallback view factory for the error boundary.
    loader : ProgressiveLoader, optional
        Injected loader; a fresh one is built per load otherwise.
    """

    def __init__(
        self,
        config: TrackMapConfig | None = None,
        *,
        on_path_update: PathUpdateCallback | None = None,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
        monitor: PerformanceMonitor | None = None,
        tile_chain: TileSourceChain | None = None,
        fallback_factory: FallbackFactory | None = None,
        loader: ProgressiveLoader | None = None,
    ) -> None:
        self._config = config or TrackMapConfig()
        self._on_path_update = on_path_update
        self._on_progress = on_progress
        self._on_error = on_error
        self._monitor = monitor or PerformanceMonitor(self._config.thresholds)
        self._tiles = tile_chain or TileSourceChain(self._config.tile_providers)
        self._boundary = ErrorRecoveryBoundary(
            self._config.max_render_retries,
            fallback_factory=fallback_factory,
            on_error=self._emit_error,
            on_retry=self.retry_interactive,
        )
        self._loader = loader
        self._current_loader: ProgressiveLoader | None = None
        self._store = ViewStateStore(
            ViewState(
                user_requested_interactive=self._config.user_requested_interactive,
                auto_upgrade_for_small_tracks=self._config.auto_upgrade_for_small_tracks,
                fallback_on_tile_exhaustion=self._config.fallback_on_tile_exhaustion,
            ),
            on_swap=self._on_swap,
        )
        self._debouncer = Debouncer(self._config.debounce_delay, name="path-processing")
        self._settle = Debouncer(self._config.settle_delay, name="settle")
        self._ticker = ProgressTicker(
            interval=self._config.ticker_interval,
            step=self._config.ticker_step,
            cap=self._config.ticker_cap,
            on_tick=self._on_tick,
        )
        self._track: tuple[Point, ...] = ()
        self._processed: tuple[Point, ...] = ()
        self._markers: tuple[ClusterMarker, ...] = ()
        self._active = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MapOrchestrator:
        self.mount()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def mount(self) -> None:
        self._active = True
        self._monitor.set_map_type(self.implementation)
        self._monitor.start(Phase.INITIAL_RENDER)
        _logger.debug("Map view mounted (%s)", self.implementation)

    async def close(self) -> None:
        """Unmount: cancel pending work and discard late results."""
        if not self._active:
            return
        self._active = False
        self._debouncer.cancel()
        self._settle.cancel()
        self._ticker.stop()
        if self._current_loader is not None:
            self._current_loader.cancel()
            self._current_loader = None
        _logger.debug("Map view unmounted")

    def _require_mounted(self) -> None:
        if not self._active:
            raise NotMountedError("Map view is not mounted. Use 'async with MapOrchestrator(...) as view:'")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._active

    @property
    def config(self) -> TrackMapConfig:
        return self._config

    @property
    def state(self) -> ViewState:
        return self._store.state

    @property
    def implementation(self) -> MapImplementation:
        return self._store.state.implementation

    @property
    def loading_state(self) -> LoadingState:
        return self._store.state.loading_state

    @property
    def progress(self) -> float:
        return self._store.state.progress

    @property
    def track(self) -> tuple[Point, ...]:
        return self._track

    @property
    def processed_track(self) -> tuple[Point, ...]:
        return self._processed

    @property
    def markers(self) -> tuple[ClusterMarker, ...]:
        return self._markers

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    @property
    def boundary(self) -> ErrorRecoveryBoundary:
        return self._boundary

    @property
    def tile_chain(self) -> TileSourceChain:
        return self._tiles

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _emit_progress(self, progress: LoadProgress) -> None:
        if not self._active or self._on_progress is None:
            return
        try:
            self._on_progress(progress)
        except Exception:
            _logger.exception("Progress callback failed")

    def _emit_error(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            _logger.exception("Error callback failed")

    def _emit_path_update(self) -> None:
        if self._on_path_update is None:
            return
        try:
            self._on_path_update(self._markers)
        except Exception:
            _logger.exception("Path update callback failed")

    def _on_swap(self, previous: MapImplementation, current: MapImplementation) -> None:
        self._monitor.set_map_type(current)

    def _dispatch(self, kind: ViewAction, **fields: Any) -> ViewState:
        return self._store.apply(ViewEvent(kind=kind, **fields))

    # ------------------------------------------------------------------
    # Track input
    # ------------------------------------------------------------------

    def set_track(self, track: Sequence[Point]) -> None:
        """Replace the current track.

        Re-selects the implementation, schedules the settle delay and
        schedules debounced path processing (last write wins).
        """
        self._require_mounted()
        self._track = tuple(track)
        state = self._dispatch(ViewAction.TRACK_ARRIVED, path_length=len(self._track))
        _logger.debug("Track set: %d point(s), %s", len(self._track), state.implementation)

        if state.loading_state is LoadingState.LOADING_DATA:
            self._settle.schedule(self._settled)
        self._debouncer.schedule(self._process_pending)

    async def _settled(self) -> None:
        if not self._active:
            return
        self._dispatch(ViewAction.DATA_READY)
        if self._monitor.is_running(Phase.INITIAL_RENDER):
            self._monitor.end(Phase.INITIAL_RENDER)

    async def _process_pending(self) -> None:
        if not self._active:
            return
        self._process_track()

    async def flush(self) -> None:
        """Process the current track now, dropping any pending debounce."""
        self._require_mounted()
        self._debouncer.cancel()
        self._process_track()

    def _process_track(self) -> None:
        track = self._track
        config = self._config

        with self._monitor.measure(Phase.PATH_SIMPLIFICATION):
            processed = track
            if config.simplify_path and len(track) > SIMPLIFY_MIN_POINTS:
                if config.simplify_target_points is not None:
                    processed = simplify_to_target(track, config.simplify_target_points)
                else:
                    processed = simplify(track, config.simplify_tolerance)

            timer = PerformanceTimer("Marker clustering").start()
            markers = cluster(processed, config.max_markers) if config.cluster_markers else as_markers(processed)
            timer.stop()
            timer.log(config.thresholds.marker_clustering_ms)

        self._monitor.set_point_counts(len(track), len(processed))
        self._monitor.set_marker_count(len(markers))
        _logger.debug(
            "Processed track: %d -> %d point(s), %d marker(s)",
            len(track),
            len(processed),
            len(markers),
        )

        changed = processed != self._processed or markers != self._markers
        self._processed = processed
        self._markers = markers
        if changed:
            self._emit_path_update()

    async def load_device(
        self,
        device_id: str,
        fetch: FetchTrackChunk,
        expected_total: int | None = None,
    ) -> LoadResult:
        """Progressively load a device track and show it.

        Raises
        ------
        NotMountedError
            If the view is not mounted.
        ChunkFetchError
            When a chunk fails; ``partial`` carries the points received.
        """
        self._require_mounted()
        loader = self._loader or ProgressiveLoader.from_config(self._config)
        self._current_loader = loader

        self._monitor.start(Phase.DATA_FETCH)
        try:
            result = await loader.load(fetch, device_id, on_progress=self._emit_progress, expected_total=expected_total)
        except ChunkFetchError as exc:
            self._monitor.end(Phase.DATA_FETCH)
            _logger.warning("Loading %s failed with %d partial point(s)", device_id, len(exc.partial))
            self._emit_error(exc)
            raise
        finally:
            if self._current_loader is loader:
                self._current_loader = None

        self._monitor.end(Phase.DATA_FETCH)
        if result.cancelled or not self._active:
            _logger.debug("Discarding load result for %s after unmount", device_id)
            return result

        self._monitor.set_original_points(result.original_points)
        self.set_track(result.points)
        return result

    # ------------------------------------------------------------------
    # User intent and render outcomes
    # ------------------------------------------------------------------

    def _on_tick(self, value: float) -> None:
        if not self._active:
            return
        state = self._dispatch(ViewAction.PROGRESS_TICK, progress=value)
        self._emit_progress(LoadProgress(current=int(state.progress), total=100, percentage=state.progress))

    def request_upgrade(self) -> None:
        """Ask for the interactive map and start the perceived-progress ticker."""
        self._require_mounted()
        state = self._dispatch(ViewAction.UPGRADE_REQUESTED)
        if state.loading_state is LoadingState.UPGRADING and state.implementation is MapImplementation.INTERACTIVE:
            self._ticker.start(state.progress)
            self._emit_progress(LoadProgress(current=0, total=100, percentage=0.0))

    def interactive_ready(self) -> None:
        """The interactive map finished mounting."""
        self._require_mounted()
        self._ticker.stop()
        state = self._dispatch(ViewAction.INTERACTIVE_READY)
        if state.loading_state is LoadingState.READY:
            self._emit_progress(LoadProgress(current=100, total=100, percentage=state.progress))
        if self._monitor.is_running(Phase.INITIAL_RENDER):
            self._monitor.end(Phase.INITIAL_RENDER)

    def downgrade(self) -> None:
        """Return to the lightweight view, keeping the track."""
        self._require_mounted()
        self._ticker.stop()
        self._dispatch(ViewAction.DOWNGRADE_REQUESTED)

    def retry_interactive(self) -> bool:
        """Retry the interactive map if the error boundary still allows it."""
        self._require_mounted()
        if not self._boundary.retry():
            return False
        self.request_upgrade()
        return True

    def mark_map_unavailable(self, error: Exception) -> None:
        """The map library or tile backend cannot be used at all."""
        self._require_mounted()
        self._ticker.stop()
        _logger.warning("Interactive map unavailable: %s", error)
        self._dispatch(ViewAction.MAP_UNAVAILABLE, error=error)
        self._emit_error(error)

    def handle_tile_error(self, error: BaseException | None = None) -> None:
        """Tile load failure reported by the map widget."""
        was_exhausted = self._tiles.exhausted
        self._tiles.handle_tile_error(error)
        if not self._tiles.exhausted or was_exhausted:
            return
        exhausted = TileLoadError("All tile providers failed", provider=self._tiles.current)
        if self._active:
            self._dispatch(ViewAction.TILES_EXHAUSTED, error=exhausted)
        self._emit_error(exhausted)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _draw_interactive(self, renderer: MapRenderer) -> MapRenderer:
        provider = self._tiles.current
        renderer.render_tile_layer(provider.url_template, provider.attribution, provider.max_zoom, self.handle_tile_error)
        renderer.render_polyline(self._processed, PolylineStyle())
        for marker in self._markers:
            renderer.render_marker(marker.representative, marker_icon(marker.label), popup_html(marker))
        return renderer

    def render(self, renderer: MapRenderer | None = None) -> RenderResult[Any]:
        """Render the current implementation.

        Lightweight and fallback views are returned as view models; the
        interactive map is drawn onto *renderer* inside the error boundary.

        Raises
        ------
        NotMountedError
            If the view is not mounted.
        ValueError
            If the interactive map is selected and no renderer is given.
        """
        self._require_mounted()
        if self._debouncer.pending:
            self._debouncer.cancel()
            self._process_track()

        implementation = self.implementation
        match implementation:
            case MapImplementation.LIGHTWEIGHT:
                view = LightweightView.from_track(self._track, show_upgrade=bool(self._track))
                return RenderResult.success(view)
            case MapImplementation.INTERACTIVE:
                if renderer is None:
                    raise ValueError("The interactive map needs a MapRenderer")
                result = self._boundary.attempt(lambda: self._draw_interactive(renderer), self._track)
                if result.ok:
                    if self.loading_state is LoadingState.UPGRADING:
                        self.interactive_ready()
                    elif self._monitor.is_running(Phase.INITIAL_RENDER):
                        self._monitor.end(Phase.INITIAL_RENDER)
                else:
                    self._ticker.stop()
                    self._dispatch(ViewAction.RENDER_FAILED, error=result.error)
                return result
            case MapImplementation.FALLBACK:
                return RenderResult.success(FallbackTable.from_track(self._track, error=self.state.error))
            case _:
                assert_never(implementation)

    def log_metrics(self) -> None:
        self._monitor.log_metrics()
