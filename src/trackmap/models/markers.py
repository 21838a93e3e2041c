"""Cluster marker model."""

from __future__ import annotations

from pydantic import Field

from trackmap.models._base import TrackMapModel
from trackmap.models.enums import MarkerLabel
from trackmap.models.point import Point


class ClusterMarker(TrackMapModel):
    """A displayed point standing in for itself plus absorbed neighbours.

    ``absorbed_count`` includes the representative itself, so the sum over
    a marker sequence equals the length of the track it was built from.
    """

    representative: Point
    label: MarkerLabel | None = None
    absorbed_count: int = Field(default=1, ge=1)

    @property
    def is_endpoint(self) -> bool:
        return self.label is not None
