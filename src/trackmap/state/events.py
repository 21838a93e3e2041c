"""View events.

Every input that can change a map view (a track arriving, user intent,
render outcomes) is expressed as a :class:`ViewEvent`.  Only the
state/store layer is allowed to fold them into a :class:`ViewState`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ViewAction(StrEnum):
    TRACK_ARRIVED = "track_arrived"
    DATA_READY = "data_ready"
    UPGRADE_REQUESTED = "upgrade_requested"
    PROGRESS_TICK = "progress_tick"
    INTERACTIVE_READY = "interactive_ready"
    RENDER_FAILED = "render_failed"
    DOWNGRADE_REQUESTED = "downgrade_requested"
    MAP_UNAVAILABLE = "map_unavailable"
    TILES_EXHAUSTED = "tiles_exhausted"


class ViewEvent(BaseModel):
    """A normalized input to the view-state reducer."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ViewAction
    path_length: int | None = Field(default=None, ge=0, description="Track length, for TRACK_ARRIVED")
    progress: float | None = Field(default=None, ge=0.0, le=100.0, description="Progress, for PROGRESS_TICK")
    error: BaseException | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
