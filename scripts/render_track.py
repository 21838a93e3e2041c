#!/usr/bin/env python3
"""Render a GPS track file to an interactive HTML map.

Reads a JSON list of location records (``lat``/``lng``/``time`` plus
optional ``speed``/``accuracy``; common aliases such as ``latitude`` or
``gpsTime`` are accepted), runs it through the map view and writes a
folium HTML map.

Usage
-----
::

    python scripts/render_track.py track.json -o track.html
    python scripts/render_track.py track.json --table

Options::

    -o, --output FILE     HTML output path (default: <input>.html)
    --table               Print the fallback table instead of a map
    --max-markers N       Marker budget after clustering (default: 20)
    --no-simplify         Draw every point
    --target-points N     Simplify adaptively towards N points
    -v, --verbose         Debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trackmap import MapOrchestrator, TrackMapConfig, parse_points  # noqa: E402
from trackmap.processing.geometry import center_of, zoom_for_track  # noqa: E402
from trackmap.render.fallback import FallbackTable  # noqa: E402
from trackmap.render.folium_renderer import FoliumMapRenderer  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a GPS track to an HTML map")
    parser.add_argument("input", type=Path, help="JSON file with a list of location records")
    parser.add_argument("-o", "--output", type=Path, default=None, help="HTML output path")
    parser.add_argument("--table", action="store_true", help="Print the fallback table instead")
    parser.add_argument("--max-markers", type=int, default=20)
    parser.add_argument("--no-simplify", action="store_true")
    parser.add_argument("--target-points", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def _render(args: argparse.Namespace) -> int:
    records = json.loads(args.input.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        print(f"{args.input}: expected a JSON list of records", file=sys.stderr)
        return 2

    track = parse_points(records)
    print(f"Parsed {len(track)} of {len(records)} record(s)")

    if args.table:
        print(FallbackTable.from_track(track).to_text())
        return 0

    config = TrackMapConfig(
        max_markers=args.max_markers,
        simplify_path=not args.no_simplify,
        simplify_target_points=args.target_points,
        user_requested_interactive=True,
        debounce_delay=0.0,
        settle_delay=0.0,
    )
    renderer = FoliumMapRenderer(center=center_of(track), zoom=zoom_for_track(track))

    async with MapOrchestrator(config) as view:
        view.set_track(track)
        await view.flush()
        result = view.render(renderer)
        if not result.ok:
            print(f"Render failed: {result.error}", file=sys.stderr)
            print(result.fallback.to_text())
            return 1
        renderer.fit_bounds(track)
        view.log_metrics()
        print(f"Points: {len(view.track)} -> {len(view.processed_track)}, markers: {len(view.markers)}")

    output = args.output or args.input.with_suffix(".html")
    renderer.save(output)
    print(f"Wrote {output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    return asyncio.run(_render(args))


if __name__ == "__main__":
    raise SystemExit(main())
