"""Deterministic map selection policy.

Pure functions only; the store and orchestrator decide when to call them.
"""

from __future__ import annotations

import dataclasses

from trackmap.models.enums import MapImplementation

#: Tracks at or above this length only go interactive on explicit intent.
INTERACTIVE_PATH_THRESHOLD = 50


@dataclasses.dataclass(frozen=True)
class SelectionContext:
    path_length: int
    user_requested_interactive: bool = False
    tile_source_exhausted: bool = False


def effective_intent(
    *,
    user_requested_interactive: bool,
    auto_upgrade_for_small_tracks: bool,
    path_length: int,
) -> bool:
    """User intent, with auto-upgrade counting only for small tracks."""
    if user_requested_interactive:
        return True
    return auto_upgrade_for_small_tracks and 0 < path_length < INTERACTIVE_PATH_THRESHOLD


def select_implementation(ctx: SelectionContext) -> MapImplementation:
    """Choose the map implementation for *ctx*.

    Policy:
    - Exhausted or unavailable map sources always select the fallback.
    - An empty track shows the lightweight placeholder.
    - Otherwise the interactive map requires user intent, whatever the
      track size.
    """
    if ctx.tile_source_exhausted:
        return MapImplementation.FALLBACK
    if ctx.path_length == 0:
        return MapImplementation.LIGHTWEIGHT
    if ctx.user_requested_interactive and ctx.path_length < INTERACTIVE_PATH_THRESHOLD:
        return MapImplementation.INTERACTIVE
    if ctx.path_length >= INTERACTIVE_PATH_THRESHOLD:
        return MapImplementation.INTERACTIVE if ctx.user_requested_interactive else MapImplementation.LIGHTWEIGHT
    return MapImplementation.LIGHTWEIGHT
