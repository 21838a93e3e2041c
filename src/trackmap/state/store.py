"""Deterministic view-state reducer.

:func:`reduce` is the only place loading-state transitions happen.
Given the same sequence of :class:`ViewEvent`\\ s it always produces the
same :class:`ViewState`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from trackmap.models.enums import LoadingState, MapImplementation
from trackmap.state.events import ViewAction, ViewEvent
from trackmap.state.policy import SelectionContext, effective_intent, select_implementation

_logger = logging.getLogger(__name__)

_UPGRADABLE = frozenset({LoadingState.READY, LoadingState.ERROR, LoadingState.LOADING_DATA})


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    loading_state: LoadingState = LoadingState.IDLE
    implementation: MapImplementation = MapImplementation.LIGHTWEIGHT
    user_requested_interactive: bool = False
    auto_upgrade_for_small_tracks: bool = False
    fallback_on_tile_exhaustion: bool = False
    map_unavailable: bool = False
    tiles_exhausted: bool = False
    path_length: int = 0
    progress: float = 0.0
    error: BaseException | None = None

    @property
    def selection_context(self) -> SelectionContext:
        return SelectionContext(
            path_length=self.path_length,
            user_requested_interactive=effective_intent(
                user_requested_interactive=self.user_requested_interactive,
                auto_upgrade_for_small_tracks=self.auto_upgrade_for_small_tracks,
                path_length=self.path_length,
            ),
            tile_source_exhausted=self.map_unavailable
            or (self.tiles_exhausted and self.fallback_on_tile_exhaustion),
        )


def _ignored(state: ViewState, event: ViewEvent) -> ViewState:
    _logger.debug("Ignoring %s in state %s", event.kind, state.loading_state)
    return state


def _transition(state: ViewState, event: ViewEvent) -> ViewState:
    match event.kind:
        case ViewAction.TRACK_ARRIVED:
            length = event.path_length or 0
            if state.loading_state is LoadingState.UPGRADING:
                return state.model_copy(update={"path_length": length})
            if length == 0:
                return state.model_copy(
                    update={"path_length": 0, "loading_state": LoadingState.IDLE, "progress": 0.0},
                )
            return state.model_copy(
                update={"path_length": length, "loading_state": LoadingState.LOADING_DATA, "progress": 50.0},
            )
        case ViewAction.DATA_READY:
            if state.loading_state is not LoadingState.LOADING_DATA:
                return _ignored(state, event)
            return state.model_copy(update={"loading_state": LoadingState.READY, "progress": 100.0})
        case ViewAction.UPGRADE_REQUESTED:
            if state.loading_state not in _UPGRADABLE or state.selection_context.tile_source_exhausted:
                return _ignored(state, event)
            return state.model_copy(
                update={
                    "loading_state": LoadingState.UPGRADING,
                    "progress": 0.0,
                    "user_requested_interactive": True,
                    "error": None,
                },
            )
        case ViewAction.PROGRESS_TICK:
            if state.loading_state is not LoadingState.UPGRADING or event.progress is None:
                return _ignored(state, event)
            return state.model_copy(update={"progress": max(state.progress, event.progress)})
        case ViewAction.INTERACTIVE_READY:
            if state.loading_state is not LoadingState.UPGRADING:
                return _ignored(state, event)
            return state.model_copy(update={"loading_state": LoadingState.READY, "progress": 100.0})
        case ViewAction.RENDER_FAILED:
            return state.model_copy(update={"loading_state": LoadingState.ERROR, "error": event.error})
        case ViewAction.DOWNGRADE_REQUESTED:
            return state.model_copy(
                update={
                    "loading_state": LoadingState.READY,
                    "user_requested_interactive": False,
                    "progress": 0.0,
                    "error": None,
                },
            )
        case ViewAction.MAP_UNAVAILABLE:
            return state.model_copy(
                update={"loading_state": LoadingState.ERROR, "map_unavailable": True, "error": event.error},
            )
        case ViewAction.TILES_EXHAUSTED:
            return state.model_copy(update={"tiles_exhausted": True})
    return _ignored(state, event)


def reduce(state: ViewState, event: ViewEvent) -> ViewState:
    """Apply *event* to *state* and re-select the implementation."""
    new_state = _transition(state, event)
    implementation = select_implementation(new_state.selection_context)
    if implementation is not new_state.implementation:
        new_state = new_state.model_copy(update={"implementation": implementation})
    if new_state.loading_state is not state.loading_state:
        _logger.debug(
            "View %s -> %s on %s at %s",
            state.loading_state,
            new_state.loading_state,
            event.kind,
            event.observed_at.isoformat(),
        )
    return new_state


class ViewStateStore:
    """Holds the current :class:`ViewState` and reports implementation swaps."""

    def __init__(
        self,
        initial: ViewState | None = None,
        *,
        on_swap: Callable[[MapImplementation, MapImplementation], None] | None = None,
    ) -> None:
        state = initial or ViewState()
        implementation = select_implementation(state.selection_context)
        self._state = state.model_copy(update={"implementation": implementation})
        self._on_swap = on_swap

    @property
    def state(self) -> ViewState:
        return self._state

    def apply(self, event: ViewEvent) -> ViewState:
        previous = self._state
        self._state = reduce(previous, event)
        if self._state.implementation is not previous.implementation:
            _logger.info("Map implementation %s -> %s", previous.implementation, self._state.implementation)
            if self._on_swap is not None:
                self._on_swap(previous.implementation, self._state.implementation)
        return self._state
