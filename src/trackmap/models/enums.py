"""Closed variants used across the view layer."""

from __future__ import annotations

from enum import StrEnum


class MapImplementation(StrEnum):
    LIGHTWEIGHT = "lightweight"
    INTERACTIVE = "interactive"
    FALLBACK = "fallback"


class LoadingState(StrEnum):
    IDLE = "idle"
    LOADING_DATA = "loading_data"
    UPGRADING = "upgrading"
    READY = "ready"
    ERROR = "error"


class MarkerLabel(StrEnum):
    START = "Start"
    END = "End"
