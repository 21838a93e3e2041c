"""Progressive loading models."""

from __future__ import annotations

from pydantic import Field

from trackmap.models._base import TrackMapModel
from trackmap.models.point import Point


class LoadProgress(TrackMapModel):
    """Progress snapshot reported after each chunk.

    ``total`` is an estimate until the last chunk when the source does not
    report a count up front.
    """

    current: int = Field(ge=0)
    total: int = Field(ge=0)
    percentage: float = Field(ge=0.0, le=100.0)


class LoadResult(TrackMapModel):
    """Outcome of a progressive load.

    Parameters
    ----------
    points : tuple of Point
        The loaded (and possibly sampled) track.
    original_points : int
        Number of points received before sampling.
    chunks_loaded : int
        Number of chunk requests issued.
    sampled : bool
        Whether uniform-interval sampling reduced the track.
    sampling_ratio : float
        ``len(points) / original_points`` (``1.0`` when not sampled).
    load_time_ms : float
        Wall time spent in the load.
    cancelled : bool
        ``True`` when the loader was cancelled before completion; in that
        case ``points`` holds whatever arrived before cancellation.
    """

    points: tuple[Point, ...] = ()
    original_points: int = 0
    chunks_loaded: int = 0
    sampled: bool = False
    sampling_ratio: float = 1.0
    load_time_ms: float = 0.0
    cancelled: bool = False
