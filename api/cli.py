#!/usr/bin/env python3
"""
HEXROUTE CLI Tool.

Command-line interface for administrative tasks:
- Land mask building (GeoJSON polygons -> bloom filter or cell list)
- One-shot routing (waypoints -> GeoJSON on stdout)
- Health checks

Usage:
    python -m api.cli build-mask --geojson land.geojson --res 5 --out land_r5.bloom
    python -m api.cli route --waypoints '[[-5.5, 36.0], [-9.5, 38.7]]'
    python -m api.cli check-health
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Optional


def build_mask(
    geojson_path: str,
    resolution: int,
    out_path: str,
    false_positive_rate: float = 1e-3,
) -> None:
    """Fill land polygons with H3 cells and write them as a mask file."""
    from hexroute.data.land_mask import BloomCellSet, cells_from_geojson

    data = json.loads(Path(geojson_path).read_text())
    cells = cells_from_geojson(data, resolution)
    if not cells:
        print(f"\nError: no cells at r{resolution} inside {geojson_path}")
        sys.exit(1)

    out = Path(out_path)
    if out.suffix.lower() == ".bloom":
        BloomCellSet.build(cells, false_positive_rate).save(str(out), resolution=resolution)
    elif out.suffix.lower() == ".json":
        out.write_text(json.dumps({"resolution": resolution, "cells": sorted(cells)}))
    elif out.suffix.lower() == ".txt":
        out.write_text("\n".join(sorted(cells)) + "\n")
    else:
        print(f"\nError: unsupported output format {out.suffix} (use .bloom, .json or .txt)")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("LAND MASK BUILT")
    print("=" * 60)
    print(f"Source:     {geojson_path}")
    print(f"Resolution: r{resolution}")
    print(f"Cells:      {len(cells)}")
    print(f"Output:     {out}")
    print("=" * 60 + "\n")


def _read_waypoints(raw: str):
    """Waypoints as inline JSON or a path to a JSON file."""
    path = Path(raw)
    text = path.read_text() if path.exists() else raw
    data = json.loads(text)
    if isinstance(data, dict) and "waypoints" in data:
        data = data["waypoints"]
    return data


def route(
    waypoints: str,
    mask_path: Optional[str] = None,
    h3_res: Optional[int] = None,
    tier_order: Optional[str] = None,
    timeout_s: Optional[float] = None,
) -> None:
    """Plan one route and print it as a GeoJSON feature."""
    from hexroute.config import get_settings
    from hexroute.data.land_mask import load_land_mask
    from hexroute.routing import RouteOptions, RoutingError, plan_route

    settings = get_settings()
    settings.configure_logging()

    try:
        mask = load_land_mask(mask_path or settings.land_mask_path)
        options = RouteOptions.from_settings(
            h3_res=h3_res,
            tier_order=tier_order.split(",") if tier_order else None,
            timeout_s=timeout_s,
        )
        result = plan_route(_read_waypoints(waypoints), mask, options=options)
    except (RoutingError, OSError, ValueError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result.to_geojson(), indent=2))


def check_health(url: str = "http://localhost:8000/api/health") -> None:
    """Check API health."""
    import requests

    try:
        response = requests.get(url, timeout=5)
        if response.status_code == 200:
            data = response.json()
            mask = data.get("components", {}).get("land_mask", {})
            print(f"\nAPI Status: {data.get('status', 'unknown')}")
            print(f"Version: {data.get('version', 'unknown')}")
            print(f"Land mask: {mask.get('status', 'unknown')} ({mask.get('message', '')})")
            print(f"Timestamp: {data.get('timestamp', 'unknown')}")
        else:
            print(f"\nAPI returned status code: {response.status_code}")
            sys.exit(1)
    except requests.exceptions.ConnectionError:
        print("\nError: Could not connect to API. Is the server running?")
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="HEXROUTE CLI Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Build a bloom filter mask at resolution 5:
    python -m api.cli build-mask --geojson land.geojson --res 5 --out land_r5.bloom

  Build an exact cell list instead:
    python -m api.cli build-mask --geojson land.geojson --res 4 --out land_r4.json

  Route between two points with the default mask:
    python -m api.cli route --waypoints '[[-5.5, 36.0], [-9.5, 38.7]]'

  Route from a file, forcing the marching tier:
    python -m api.cli route --waypoints trip.json --mask land_r5.bloom --tiers direct,march

  Check API health:
    python -m api.cli check-health
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # build-mask
    build_parser = subparsers.add_parser("build-mask", help="Build a land mask from GeoJSON polygons")
    build_parser.add_argument("--geojson", required=True, help="GeoJSON file of land polygons")
    build_parser.add_argument("--res", type=int, default=5, help="H3 resolution (default: 5)")
    build_parser.add_argument("--out", required=True, help="Output path (.bloom, .json or .txt)")
    build_parser.add_argument(
        "--fp-rate",
        type=float,
        default=1e-3,
        help="Bloom filter false positive rate (default: 0.001)"
    )

    # route
    route_parser = subparsers.add_parser("route", help="Compute a route and print GeoJSON")
    route_parser.add_argument("--waypoints", required=True, help="JSON [[lng, lat], ...] or a file path")
    route_parser.add_argument("--mask", help="Land mask path (default: HEXROUTE_LAND_MASK_PATH or globe)")
    route_parser.add_argument("--res", type=int, help="Fine search H3 resolution")
    route_parser.add_argument("--tiers", help="Comma-separated tier order")
    route_parser.add_argument("--timeout", type=float, help="Deadline in seconds")

    # check-health
    health_parser = subparsers.add_parser("check-health", help="Check API health")
    health_parser.add_argument("--url", default="http://localhost:8000/api/health")

    args = parser.parse_args(argv)

    if args.command == "build-mask":
        build_mask(args.geojson, args.res, args.out, args.fp_rate)
    elif args.command == "route":
        route(args.waypoints, args.mask, args.res, args.tiers, args.timeout)
    elif args.command == "check-health":
        check_health(args.url)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
