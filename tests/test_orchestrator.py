from __future__ import annotations

import asyncio
import math
from collections.abc import Sequence
from typing import Any

import pytest

from trackmap.config import TrackMapConfig
from trackmap.exceptions import ChunkFetchError, NotMountedError, RenderError, TileLoadError
from trackmap.models.enums import LoadingState, MapImplementation, MarkerLabel
from trackmap.models.markers import ClusterMarker
from trackmap.models.point import Point
from trackmap.models.progress import LoadProgress
from trackmap.monitoring import Phase
from trackmap.orchestrator import MapOrchestrator
from trackmap.render.fallback import FallbackTable
from trackmap.render.icons import END_COLOR, START_COLOR, MarkerIcon
from trackmap.render.lightweight import LightweightView
from trackmap.render.protocol import PolylineStyle, TileErrorHandler

_T0 = 1_767_225_600


def _track(n: int) -> list[Point]:
    return [
        Point(lat=52.0 + i * 1e-4 + 3e-4 * math.sin(i / 7), lng=4.9 + 2e-4 * math.cos(i / 11), time=_T0 + i)
        for i in range(n)
    ]


def _config(**overrides: Any) -> TrackMapConfig:
    values: dict[str, Any] = {
        "debounce_delay": 0.01,
        "settle_delay": 0.01,
        "ticker_interval": 0.001,
    }
    values.update(overrides)
    return TrackMapConfig(**values)


class _RecordingRenderer:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.tile_layers: list[tuple[str, str, int]] = []
        self.polylines: list[tuple[tuple[Point, ...], PolylineStyle]] = []
        self.markers: list[tuple[Point, MarkerIcon, str | None]] = []
        self.on_tile_error: TileErrorHandler | None = None

    def render_tile_layer(self, url_template: str, attribution: str, max_zoom: int, on_tile_error: TileErrorHandler) -> None:
        self.tile_layers.append((url_template, attribution, max_zoom))
        self.on_tile_error = on_tile_error

    def render_polyline(self, points: Sequence[Point], style: PolylineStyle) -> None:
        if self.fail:
            raise RuntimeError("polyline layer crashed")
        self.polylines.append((tuple(points), style))

    def render_marker(self, point: Point, icon: MarkerIcon, popup_content: str | None) -> None:
        self.markers.append((point, icon, popup_content))


class _FakeSource:
    def __init__(self, points: Sequence[Point], *, fail_at: int | None = None) -> None:
        self.points = list(points)
        self.fail_at = fail_at

    async def __call__(self, device_id: str, offset: int, chunk_size: int) -> list[Point]:
        await asyncio.sleep(0)
        if self.fail_at is not None and offset >= self.fail_at:
            raise TimeoutError("history backend timed out")
        return self.points[offset : offset + chunk_size]


@pytest.mark.asyncio
async def test_operations_require_mounting() -> None:
    view = MapOrchestrator(_config())

    with pytest.raises(NotMountedError):
        view.set_track(_track(3))
    with pytest.raises(NotMountedError):
        view.request_upgrade()

    async with view:
        view.set_track(_track(3))

    with pytest.raises(NotMountedError):
        view.render()


@pytest.mark.asyncio
async def test_large_track_is_reduced_for_rendering() -> None:
    updates: list[tuple[ClusterMarker, ...]] = []
    track = _track(1000)

    async with MapOrchestrator(_config(), on_path_update=updates.append) as view:
        view.set_track(track)
        assert view.loading_state is LoadingState.LOADING_DATA
        assert view.progress == 50.0
        await view.flush()

        assert len(view.processed_track) < len(track)
        assert view.processed_track[0] == track[0]
        assert view.processed_track[-1] == track[-1]
        assert len(view.markers) <= 20
        assert sum(m.absorbed_count for m in view.markers) == len(view.processed_track)
        assert view.markers[0].label is MarkerLabel.START
        assert view.markers[-1].label is MarkerLabel.END
        assert updates == [view.markers]

        await asyncio.sleep(0.1)
        assert view.loading_state is LoadingState.READY
        assert view.progress == 100.0
        assert view.implementation is MapImplementation.LIGHTWEIGHT
        assert view.monitor.duration(Phase.PATH_SIMPLIFICATION) is not None
        assert view.monitor.duration(Phase.INITIAL_RENDER) is not None

    # The debounced run was dropped by flush, so only one update fired.
    assert len(updates) == 1


@pytest.mark.asyncio
async def test_rapid_updates_are_debounced() -> None:
    updates: list[tuple[ClusterMarker, ...]] = []
    first, second = _track(300), _track(40)

    async with MapOrchestrator(_config(), on_path_update=updates.append) as view:
        view.set_track(first)
        view.set_track(second)
        await asyncio.sleep(0.1)

        assert len(updates) == 1
        assert updates[0][-1].representative == second[-1]
        assert view.processed_track == tuple(second)


@pytest.mark.asyncio
async def test_unchanged_output_does_not_refire_update() -> None:
    updates: list[tuple[ClusterMarker, ...]] = []
    track = _track(60)

    async with MapOrchestrator(_config(), on_path_update=updates.append) as view:
        view.set_track(track)
        await view.flush()
        view.set_track(list(track))
        await view.flush()

    assert len(updates) == 1


@pytest.mark.asyncio
async def test_upgrade_ticks_then_renders_interactive() -> None:
    reports: list[LoadProgress] = []
    track = _track(200)

    async with MapOrchestrator(_config(), on_progress=reports.append) as view:
        view.set_track(track)
        await asyncio.sleep(0.05)
        assert view.implementation is MapImplementation.LIGHTWEIGHT

        view.request_upgrade()
        assert view.loading_state is LoadingState.UPGRADING
        assert view.implementation is MapImplementation.INTERACTIVE
        assert view.progress == 0.0

        await asyncio.sleep(0.2)
        assert view.progress == 90.0

        renderer = _RecordingRenderer()
        result = view.render(renderer)

        assert result.ok
        assert result.value is renderer
        assert view.loading_state is LoadingState.READY
        assert view.progress == 100.0

    percentages = [p.percentage for p in reports]
    assert percentages[0] == 0.0
    assert 90.0 in percentages
    assert percentages[-1] == 100.0
    assert percentages == sorted(percentages)

    assert renderer.tile_layers[0][0] == "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    assert renderer.polylines[0][0] == view.processed_track
    assert renderer.polylines[0][1] == PolylineStyle(color="#7c3aed", weight=3, opacity=0.8)
    assert len(renderer.markers) == len(view.markers)
    assert renderer.markers[0][1].color == START_COLOR
    assert renderer.markers[-1][1].color == END_COLOR
    assert "Start" in (renderer.markers[0][2] or "")


@pytest.mark.asyncio
async def test_small_track_with_intent_is_interactive_immediately() -> None:
    async with MapOrchestrator(_config(user_requested_interactive=True)) as view:
        view.set_track(_track(30))
        assert view.implementation is MapImplementation.INTERACTIVE
        result = view.render(_RecordingRenderer())
        assert result.ok


@pytest.mark.asyncio
async def test_auto_upgrade_only_for_small_tracks() -> None:
    async with MapOrchestrator(_config(auto_upgrade_for_small_tracks=True)) as view:
        view.set_track(_track(30))
        assert view.implementation is MapImplementation.INTERACTIVE
        view.set_track(_track(80))
        assert view.implementation is MapImplementation.LIGHTWEIGHT


@pytest.mark.asyncio
async def test_downgrade_keeps_track() -> None:
    track = _track(120)

    async with MapOrchestrator(_config()) as view:
        view.set_track(track)
        await asyncio.sleep(0.05)
        view.request_upgrade()
        view.downgrade()

        assert view.loading_state is LoadingState.READY
        assert view.implementation is MapImplementation.LIGHTWEIGHT
        assert view.progress == 0.0
        assert view.track == tuple(track)

        result = view.render()
        assert isinstance(result.value, LightweightView)
        assert result.value.label == "120 points"


@pytest.mark.asyncio
async def test_render_failures_are_retried_then_fall_back() -> None:
    errors: list[Exception] = []
    track = _track(60)

    async with MapOrchestrator(_config(), on_error=errors.append) as view:
        view.set_track(track)
        view.request_upgrade()
        renderer = _RecordingRenderer(fail=True)

        first = view.render(renderer)
        assert not first.ok
        assert isinstance(first.error, RenderError)
        assert isinstance(first.fallback, FallbackTable)
        assert first.fallback.retry_available
        assert view.loading_state is LoadingState.ERROR
        assert errors == [first.error]

        # A caught boundary does not touch the widget again.
        view.render(renderer)
        assert len(renderer.tile_layers) == 1

        for _ in range(3):
            assert view.retry_interactive()
            assert view.loading_state is LoadingState.UPGRADING
            assert not view.render(renderer).ok

        assert not view.retry_interactive()
        final = view.render(renderer)
        assert not final.fallback.retry_available
        assert view.boundary.permanent_fallback
        assert len(renderer.tile_layers) == 4


@pytest.mark.asyncio
async def test_retry_that_succeeds_restores_budget() -> None:
    async with MapOrchestrator(_config()) as view:
        view.set_track(_track(60))
        view.request_upgrade()
        renderer = _RecordingRenderer(fail=True)
        view.render(renderer)

        renderer.fail = False
        assert view.retry_interactive()
        result = view.render(renderer)

        assert result.ok
        assert view.loading_state is LoadingState.READY
        assert view.boundary.retry_budget == 0


@pytest.mark.asyncio
async def test_fallback_retry_action_restarts_upgrade() -> None:
    async with MapOrchestrator(_config(), fallback_factory=lambda ctx: ctx) as view:
        view.set_track(_track(60))
        view.request_upgrade()
        ctx = view.render(_RecordingRenderer(fail=True)).fallback

        assert ctx.on_retry is not None
        assert ctx.on_retry()
        assert view.loading_state is LoadingState.UPGRADING


@pytest.mark.asyncio
async def test_tile_exhaustion_keeps_interactive_by_default() -> None:
    errors: list[Exception] = []

    async with MapOrchestrator(_config(), on_error=errors.append) as view:
        view.set_track(_track(60))
        view.request_upgrade()
        renderer = _RecordingRenderer()
        view.render(renderer)
        assert renderer.on_tile_error is not None

        for _ in range(4):
            renderer.on_tile_error(OSError("tile 503"))

        assert view.tile_chain.exhausted
        assert view.state.tiles_exhausted
        assert view.implementation is MapImplementation.INTERACTIVE
        assert [type(e) for e in errors] == [TileLoadError]


@pytest.mark.asyncio
async def test_tile_exhaustion_can_switch_to_fallback() -> None:
    async with MapOrchestrator(_config(fallback_on_tile_exhaustion=True)) as view:
        view.set_track(_track(60))
        view.request_upgrade()
        renderer = _RecordingRenderer()
        view.render(renderer)

        for _ in range(3):
            view.handle_tile_error()

        assert view.implementation is MapImplementation.FALLBACK
        assert isinstance(view.render().value, FallbackTable)


@pytest.mark.asyncio
async def test_map_unavailable_shows_table() -> None:
    errors: list[Exception] = []
    failure = ImportError("map library failed to load")

    async with MapOrchestrator(_config(), on_error=errors.append) as view:
        view.set_track(_track(10))
        view.mark_map_unavailable(failure)

        assert view.implementation is MapImplementation.FALLBACK
        result = view.render()
        assert result.ok
        assert isinstance(result.value, FallbackTable)
        assert result.value.error is failure
        assert len(result.value.rows) == 10

    assert errors == [failure]


@pytest.mark.asyncio
async def test_interactive_render_needs_renderer() -> None:
    async with MapOrchestrator(_config(user_requested_interactive=True)) as view:
        view.set_track(_track(10))
        with pytest.raises(ValueError):
            view.render()


@pytest.mark.asyncio
async def test_empty_view_renders_placeholder() -> None:
    async with MapOrchestrator(_config()) as view:
        result = view.render()
        assert isinstance(result.value, LightweightView)
        assert result.value.is_empty


@pytest.mark.asyncio
async def test_load_device_samples_and_shows_track() -> None:
    reports: list[LoadProgress] = []
    source = _FakeSource(_track(1200))

    async with MapOrchestrator(_config(), on_progress=reports.append) as view:
        result = await view.load_device("IMEI-1", source, expected_total=1200)

        assert result.sampled
        assert len(view.track) == 1000
        assert view.track[0] == source.points[0]
        assert view.track[-1] == source.points[-1]
        assert view.loading_state is LoadingState.LOADING_DATA
        assert reports[-1].percentage == 100.0
        assert view.monitor.duration(Phase.DATA_FETCH) is not None

        await view.flush()
        summary = view.monitor.summary()
        assert summary.original_points == 1200
        assert summary.total_points == 1000


@pytest.mark.asyncio
async def test_load_device_failure_reports_partial_track() -> None:
    errors: list[Exception] = []

    async with MapOrchestrator(_config(), on_error=errors.append) as view:
        with pytest.raises(ChunkFetchError) as excinfo:
            await view.load_device("IMEI-1", _FakeSource(_track(500), fail_at=300))

        assert len(excinfo.value.partial) == 300
        assert errors == [excinfo.value]
        assert view.track == ()


@pytest.mark.asyncio
async def test_load_finishing_after_unmount_is_discarded() -> None:
    release = asyncio.Event()
    points = _track(50)

    async def slow_fetch(device_id: str, offset: int, chunk_size: int) -> list[Point]:
        await release.wait()
        return points[offset : offset + chunk_size]

    view = MapOrchestrator(_config())
    await view.__aenter__()
    task = asyncio.create_task(view.load_device("IMEI-1", slow_fetch))
    await asyncio.sleep(0)

    await view.close()
    release.set()
    result = await task

    assert result.cancelled
    assert view.track == ()
    assert not view.active


@pytest.mark.asyncio
async def test_unmount_cancels_ticker() -> None:
    reports: list[LoadProgress] = []

    async with MapOrchestrator(_config(ticker_interval=0.01), on_progress=reports.append) as view:
        view.set_track(_track(60))
        view.request_upgrade()

    count = len(reports)
    await asyncio.sleep(0.05)
    assert len(reports) == count


@pytest.mark.asyncio
async def test_callback_errors_do_not_break_the_view() -> None:
    def explode(markers: tuple[ClusterMarker, ...]) -> None:
        raise RuntimeError("listener bug")

    async with MapOrchestrator(_config(), on_path_update=explode) as view:
        view.set_track(_track(10))
        await view.flush()
        assert len(view.markers) == 10


@pytest.mark.asyncio
async def test_upgrade_is_refused_once_map_is_unavailable() -> None:
    reports: list[LoadProgress] = []

    async with MapOrchestrator(_config(), on_progress=reports.append) as view:
        view.set_track(_track(60))
        view.mark_map_unavailable(ImportError("map library failed to load"))

        view.request_upgrade()
        await asyncio.sleep(0.05)

        assert view.loading_state is LoadingState.ERROR
        assert view.implementation is MapImplementation.FALLBACK
        assert isinstance(view.render().value, FallbackTable)
        assert view.loading_state is not LoadingState.UPGRADING

    assert reports == []


@pytest.mark.asyncio
async def test_upgrade_is_refused_after_tiles_force_fallback() -> None:
    reports: list[LoadProgress] = []

    async with MapOrchestrator(_config(fallback_on_tile_exhaustion=True), on_progress=reports.append) as view:
        view.set_track(_track(60))
        view.request_upgrade()
        view.render(_RecordingRenderer())
        for _ in range(3):
            view.handle_tile_error()
        count = len(reports)

        view.request_upgrade()
        await asyncio.sleep(0.05)

        assert view.loading_state is LoadingState.READY
        assert view.implementation is MapImplementation.FALLBACK
        assert len(reports) == count
