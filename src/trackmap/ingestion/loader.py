"""Progressive track loading.

This module owns the chunked fetch loop for a device track.  The data
source itself is a caller-supplied async callable; see
:mod:`trackmap.ingestion.http` for an HTTP implementation.

Chunks are requested strictly one at a time.  After the last chunk the
accumulated track may be downsampled by uniform-interval selection so
that very large tracks stay within a bounded memory footprint.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

from trackmap.config import TrackMapConfig
from trackmap.exceptions import ChunkFetchError
from trackmap.models.point import Point
from trackmap.models.progress import LoadProgress, LoadResult

_logger = logging.getLogger(__name__)

FetchTrackChunk = Callable[[str, int, int], Awaitable[Sequence[Point]]]
"""``fetch(device_id, offset, chunk_size) -> points`` supplied by the data source."""

ProgressCallback = Callable[[LoadProgress], None]
ChunkCallback = Callable[[Sequence[Point], int], None]


def sample_uniform(points: Sequence[Point], max_points: int) -> list[Point]:
    """Reduce *points* to exactly *max_points* by uniform-interval selection.

    The first and last points are always retained.  Tracks already within
    the limit are returned as a list copy.
    """
    n = len(points)
    if n <= max_points:
        return list(points)
    if max_points <= 1:
        return [points[0]]
    last = n - 1
    span = max_points - 1
    return [points[round(i * last / span)] for i in range(max_points)]


class ProgressiveLoader:
    """Fetch a device track in bounded chunks with progress reporting.

    Usage::

        loader = ProgressiveLoader.from_config(config)
        result = await loader.load(fetch_track_chunk, "IMEI-1", on_progress=print)
    """

    def __init__(
        self,
        *,
        chunk_size: int = 100,
        sampling_threshold: int = 500,
        max_points: int = 1000,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size
        self._sampling_threshold = sampling_threshold
        self._max_points = max_points
        self._active = True

    @classmethod
    def from_config(cls, config: TrackMapConfig) -> ProgressiveLoader:
        return cls(
            chunk_size=config.chunk_size,
            sampling_threshold=config.sampling_threshold,
            max_points=config.max_points,
        )

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop accepting results; in-flight chunks are discarded when they land."""
        self._active = False

    def _should_sample(self, count: int) -> bool:
        return count > self._sampling_threshold and count > self._max_points

    async def iter_chunks(
        self,
        fetch: FetchTrackChunk,
        device_id: str,
        *,
        expected_total: int | None = None,
    ) -> AsyncIterator[tuple[list[Point], LoadProgress]]:
        """Yield ``(chunk, progress)`` as each chunk arrives.

        Iteration ends after a short or empty chunk, once ``expected_total``
        points have arrived, or when the loader is cancelled.  Without
        ``expected_total`` an exact multiple of ``chunk_size`` costs one
        extra, empty request to detect the end (1200 points at 100 per
        chunk take 13 requests instead of 12).

        ``current`` and ``percentage`` never decrease; the final percentage
        is always 100.  While the total is unknown, ``total`` is an estimate
        one chunk ahead of ``current`` and settles to the real count on the
        last chunk, so it can shrink there.

        Raises
        ------
        ChunkFetchError
            When a chunk request fails.  ``partial`` holds every point
            yielded so far.
        """
        received: list[Point] = []
        offset = 0
        last_percentage = 0.0

        while True:
            try:
                chunk = list(await fetch(device_id, offset, self._chunk_size))
            except Exception as exc:
                _logger.warning(
                    "Chunk fetch failed device=%s offset=%d after %d point(s)",
                    device_id,
                    offset,
                    len(received),
                    exc_info=True,
                )
                raise ChunkFetchError(
                    f"Chunk fetch failed for {device_id} at offset {offset}: {exc}",
                    device_id=device_id,
                    offset=offset,
                    partial=received,
                ) from exc

            if not self._active:
                _logger.debug("Loader cancelled; discarding chunk at offset %d", offset)
                return

            received.extend(chunk)
            offset += len(chunk)
            current = len(received)

            finished = len(chunk) < self._chunk_size or (
                expected_total is not None and current >= expected_total
            )
            if finished:
                total = current
            elif expected_total is not None:
                total = max(expected_total, current)
            else:
                total = current + self._chunk_size

            percentage = 100.0 if total == 0 else min(100.0, current * 100.0 / total)
            percentage = max(percentage, last_percentage)
            last_percentage = percentage

            _logger.debug("Chunk device=%s offset=%d size=%d total=%d", device_id, offset, len(chunk), current)
            yield chunk, LoadProgress(current=current, total=total, percentage=percentage)

            if finished:
                return

    async def load(
        self,
        fetch: FetchTrackChunk,
        device_id: str,
        *,
        on_progress: ProgressCallback | None = None,
        on_chunk: ChunkCallback | None = None,
        expected_total: int | None = None,
    ) -> LoadResult:
        """Load a full device track.

        Parameters
        ----------
        fetch : FetchTrackChunk
            Async ``fetch(device_id, offset, chunk_size)`` callable.
        device_id : str
            Device identifier (e.g. IMEI).
        on_progress : callable, optional
            Receives a :class:`LoadProgress` after each chunk.
        on_chunk : callable, optional
            Receives ``(chunk, chunk_index)`` after each chunk.
        expected_total : int, optional
            Best known total point count, used for progress estimates and
            to stop without an extra empty request.

        Returns
        -------
        LoadResult
            Loaded (possibly sampled) track and load metadata.

        Raises
        ------
        ChunkFetchError
            When any chunk request fails.
        """
        started = time.perf_counter()
        points: list[Point] = []
        chunks = 0

        async for chunk, progress in self.iter_chunks(fetch, device_id, expected_total=expected_total):
            points.extend(chunk)
            chunks += 1
            if on_chunk is not None:
                on_chunk(chunk, chunks - 1)
            if on_progress is not None:
                on_progress(progress)

        load_time_ms = (time.perf_counter() - started) * 1000.0
        if not self._active:
            return LoadResult(
                points=tuple(points),
                original_points=len(points),
                chunks_loaded=chunks,
                load_time_ms=load_time_ms,
                cancelled=True,
            )

        original = len(points)
        sampled = False
        if self._should_sample(original):
            points = sample_uniform(points, self._max_points)
            sampled = True
            _logger.info(
                "Sampled %d points from %d (%.1f%%)",
                len(points),
                original,
                len(points) * 100.0 / original,
            )

        _logger.info("Loaded %d point(s) for %s in %d chunk(s)", len(points), device_id, chunks)
        return LoadResult(
            points=tuple(points),
            original_points=original,
            chunks_loaded=chunks,
            sampled=sampled,
            sampling_ratio=(len(points) / original) if original else 1.0,
            load_time_ms=load_time_ms,
        )
