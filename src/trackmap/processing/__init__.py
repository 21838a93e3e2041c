"""Pure path processing: simplification, clustering and geometry helpers."""

from trackmap.processing.path import (
    SIMPLIFY_MIN_POINTS,
    adaptive_tolerance,
    as_markers,
    cluster,
    simplify,
    simplify_to_target,
)

__all__ = [
    "SIMPLIFY_MIN_POINTS",
    "adaptive_tolerance",
    "as_markers",
    "cluster",
    "simplify",
    "simplify_to_target",
]
