"""Custom exception hierarchy for trackmap."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trackmap.models.point import Point
    from trackmap.models.tiles import TileProvider


class TrackMapError(Exception):
    """Base exception for all trackmap errors."""


class TrackMapConfigError(TrackMapError):
    """Invalid or missing configuration."""


class NotMountedError(TrackMapError):
    """A state-changing operation was used on an unmounted view."""


class TrackMapTransportError(TrackMapError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ChunkFetchError(TrackMapError):
    """A single chunk request failed.

    The points accumulated before the failing chunk are kept on
    ``partial`` so the caller can decide between showing a partial
    track and reporting a full failure.
    """

    def __init__(
        self,
        message: str,
        *,
        device_id: str,
        offset: int,
        partial: Sequence[Point] = (),
    ) -> None:
        self.device_id = device_id
        self.offset = offset
        self.partial: tuple[Point, ...] = tuple(partial)
        super().__init__(message)


class TileLoadError(TrackMapError):
    """A tile failed to load from a provider.

    Recovered by :class:`trackmap.render.tiles.TileSourceChain`; only
    passed to logs and callbacks, never raised to the user.
    """

    def __init__(self, message: str, *, provider: TileProvider | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class RenderError(TrackMapError):
    """The interactive map failed to mount or render."""

    def __init__(self, message: str, *, original: BaseException | None = None) -> None:
        self.original = original
        super().__init__(message)
