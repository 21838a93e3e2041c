"""Marker icon registry and popup content."""

from __future__ import annotations

import dataclasses
import functools
import html

from trackmap.models.enums import MarkerLabel
from trackmap.models.markers import ClusterMarker

START_COLOR = "#22c55e"
END_COLOR = "#ef4444"
DEFAULT_COLOR = "#7c3aed"

ICON_SIZE = 24


@dataclasses.dataclass(frozen=True)
class MarkerIcon:
    """A round coloured marker with an optional one-letter caption."""

    color: str
    text: str = ""
    size: int = ICON_SIZE

    @property
    def anchor(self) -> tuple[int, int]:
        return (self.size // 2, self.size // 2)

    def to_html(self) -> str:
        return (
            f'<div style="background-color: {self.color}; width: {self.size}px; height: {self.size}px; '
            "border-radius: 50%; border: 3px solid white; box-shadow: 0 2px 8px rgba(0,0,0,0.3); "
            "display: flex; align-items: center; justify-content: center; "
            f'font-weight: bold; color: white; font-size: 10px;">{html.escape(self.text)}</div>'
        )


@functools.lru_cache(maxsize=None)
def marker_icon(label: MarkerLabel | None) -> MarkerIcon:
    """Shared icon for a marker label; the same instance per label."""
    if label is MarkerLabel.START:
        return MarkerIcon(color=START_COLOR, text="S")
    if label is MarkerLabel.END:
        return MarkerIcon(color=END_COLOR, text="E")
    return MarkerIcon(color=DEFAULT_COLOR)


def popup_html(marker: ClusterMarker) -> str:
    """Popup body: label, time, coordinates to 6 decimals and speed if known."""
    point = marker.representative
    lines: list[str] = []
    if marker.label is not None:
        lines.append(f'<div style="font-weight: bold">{html.escape(str(marker.label))}</div>')
    lines.append(f"<div>Time: {html.escape(point.time.isoformat())}</div>")
    lines.append(f"<div>Lat: {point.lat:.6f}, Lng: {point.lng:.6f}</div>")
    if point.speed:
        lines.append(f"<div>Speed: {point.speed:g} km/h</div>")
    if marker.absorbed_count > 1:
        lines.append(f"<div>Points: {marker.absorbed_count}</div>")
    return '<div style="font-size: 0.875rem">' + "".join(lines) + "</div>"
