"""Passive performance instrumentation for map views.

The monitor records phase start/end times, compares durations with the
configured targets and logs a warning for every target missed.  Nothing
in here feeds back into control flow.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from trackmap.config import PerformanceThresholds

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class Phase(StrEnum):
    INITIAL_RENDER = "initial_render"
    DATA_FETCH = "data_fetch"
    PATH_SIMPLIFICATION = "path_simplification"


_PHASE_LABELS: dict[Phase, str] = {
    Phase.INITIAL_RENDER: "Initial render",
    Phase.DATA_FETCH: "Data fetch",
    Phase.PATH_SIMPLIFICATION: "Path simplification",
}


class MetricsSummary(BaseModel):
    """Structured snapshot of the collected metrics."""

    model_config = ConfigDict(frozen=True)

    map_type: str = "unknown"
    initial_render_ms: float | None = None
    data_fetch_ms: float | None = None
    path_simplification_ms: float | None = None
    original_points: int = 0
    total_points: int = 0
    rendered_points: int = 0
    marker_count: int = 0
    reduction_percent: float = 0.0
    warnings: tuple[str, ...] = ()


class PerformanceTimer:
    """Stopwatch for a single labelled operation."""

    def __init__(self, label: str, *, clock: Clock = time.perf_counter) -> None:
        self.label = label
        self._clock = clock
        self._started: float | None = None
        self._stopped: float | None = None

    def start(self) -> PerformanceTimer:
        self._started = self._clock()
        self._stopped = None
        return self

    def stop(self) -> float:
        self._stopped = self._clock()
        return self.duration_ms

    @property
    def duration_ms(self) -> float:
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else self._clock()
        return (end - self._started) * 1000.0

    def log(self, threshold_ms: float | None = None) -> float:
        """Log the duration, as a warning when it exceeds *threshold_ms*."""
        duration = self.duration_ms
        if threshold_ms is not None and duration > threshold_ms:
            _logger.warning("%s: %.2fms (exceeded %.0fms threshold)", self.label, duration, threshold_ms)
        else:
            _logger.debug("%s: %.2fms", self.label, duration)
        return duration


async def measure_performance(
    label: str,
    fn: Callable[[], Awaitable[T]],
    *,
    clock: Clock = time.perf_counter,
) -> tuple[T, float]:
    """Await ``fn()`` and return ``(result, duration_ms)``; errors propagate."""
    timer = PerformanceTimer(label, clock=clock).start()
    try:
        result = await fn()
    finally:
        timer.stop()
    return result, timer.duration_ms


class PerformanceMonitor:
    """Records phase durations and point/marker counts for one view.

    Usage::

        monitor = PerformanceMonitor()
        with monitor.measure(Phase.PATH_SIMPLIFICATION):
            simplified = simplify(track)
        monitor.log_metrics()
    """

    def __init__(
        self,
        thresholds: PerformanceThresholds | None = None,
        *,
        clock: Clock = time.perf_counter,
    ) -> None:
        self._thresholds = thresholds or PerformanceThresholds()
        self._clock = clock
        self._starts: dict[Phase, float] = {}
        self._durations: dict[Phase, float] = {}
        self._map_type = "unknown"
        self._original_points = 0
        self._total_points = 0
        self._rendered_points = 0
        self._marker_count = 0

    @property
    def thresholds(self) -> PerformanceThresholds:
        return self._thresholds

    def threshold_for(self, phase: Phase) -> float:
        if phase is Phase.INITIAL_RENDER:
            return self._thresholds.initial_render_ms
        if phase is Phase.DATA_FETCH:
            return self._thresholds.data_fetch_ms
        return self._thresholds.path_simplification_ms

    def start(self, phase: Phase) -> None:
        self._starts[phase] = self._clock()
        self._durations.pop(phase, None)

    def is_running(self, phase: Phase) -> bool:
        return phase in self._starts

    def end(self, phase: Phase) -> float | None:
        """Finish *phase* and return its duration in ms (``None`` if never started)."""
        started = self._starts.pop(phase, None)
        if started is None:
            _logger.debug("Phase %s ended without a start", phase)
            return None

        duration = (self._clock() - started) * 1000.0
        self._durations[phase] = duration
        label = _PHASE_LABELS[phase]
        _logger.info("%s: %.2fms", label, duration)

        threshold = self.threshold_for(phase)
        if duration > threshold:
            _logger.warning("%s exceeded target (%.0fms): %.2fms", label, threshold, duration)
        return duration

    def duration(self, phase: Phase) -> float | None:
        return self._durations.get(phase)

    @contextlib.contextmanager
    def measure(self, phase: Phase) -> Iterator[None]:
        self.start(phase)
        try:
            yield
        finally:
            self.end(phase)

    def set_map_type(self, map_type: str) -> None:
        self._map_type = str(map_type)

    def set_original_points(self, count: int) -> None:
        self._original_points = count

    def set_point_counts(self, total_points: int, rendered_points: int) -> None:
        self._total_points = total_points
        self._rendered_points = rendered_points

    def set_marker_count(self, count: int) -> None:
        self._marker_count = count
        _logger.debug("Map markers rendered: %d", count)

    def _warnings(self) -> tuple[str, ...]:
        warnings: list[str] = []
        for phase in Phase:
            duration = self._durations.get(phase)
            threshold = self.threshold_for(phase)
            if duration is not None and duration > threshold:
                warnings.append(f"{_PHASE_LABELS[phase]}: {duration:.2f}ms (target: {threshold:.0f}ms)")
        return tuple(warnings)

    def summary(self) -> MetricsSummary:
        reduction = 0.0
        if self._total_points > 0:
            reduction = (1 - self._rendered_points / self._total_points) * 100.0
        return MetricsSummary(
            map_type=self._map_type,
            initial_render_ms=self._durations.get(Phase.INITIAL_RENDER),
            data_fetch_ms=self._durations.get(Phase.DATA_FETCH),
            path_simplification_ms=self._durations.get(Phase.PATH_SIMPLIFICATION),
            original_points=self._original_points or self._total_points,
            total_points=self._total_points,
            rendered_points=self._rendered_points,
            marker_count=self._marker_count,
            reduction_percent=reduction,
            warnings=self._warnings(),
        )

    def log_metrics(self) -> MetricsSummary:
        """Log the metrics summary plus one warning per missed target."""
        summary = self.summary()
        _logger.info(
            "Map metrics: type=%s render=%s fetch=%s simplify=%s points=%d->%d->%d markers=%d reduction=%.1f%%",
            summary.map_type,
            _fmt_ms(summary.initial_render_ms),
            _fmt_ms(summary.data_fetch_ms),
            _fmt_ms(summary.path_simplification_ms),
            summary.original_points,
            summary.total_points,
            summary.rendered_points,
            summary.marker_count,
            summary.reduction_percent,
        )
        if summary.warnings:
            _logger.warning("Performance targets missed:")
            for warning in summary.warnings:
                _logger.warning("  - %s", warning)
        return summary

    def reset(self) -> None:
        self._starts.clear()
        self._durations.clear()
        self._map_type = "unknown"
        self._original_points = 0
        self._total_points = 0
        self._rendered_points = 0
        self._marker_count = 0


def _fmt_ms(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}ms"
