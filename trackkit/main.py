"""Command line entry point: load track files, analyse them and write outputs.

Usage:
    python -m trackkit ride.fit commute.gpx --heatmap-html heatmap.html
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .analytics import cluster_tracks, coverage_area, create_heatmap, find_intersections
from .config import (
    DEFAULT_CLUSTER_THRESHOLD,
    DEFAULT_INTERSECTION_TOLERANCE_KM,
    DEFAULT_SIMPLIFY_TOLERANCE_DEG,
)
from .errors import TrackkitError
from .export import to_geojson, to_gpx
from .geometry import resample, simplify, track_statistics
from .ingest import load_track_file
from .models import IntersectionPoint, Track
from .visualization import create_heatmap_map

LOGGER = logging.getLogger(__name__)

LabelledTrack = Tuple[str, Track]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trackkit",
        description="Decode, sanitize and analyse GPS track files",
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="FIT, GPX, JSON or encoded polyline files to load",
    )
    parser.add_argument(
        "--simplify",
        type=float,
        nargs="?",
        const=DEFAULT_SIMPLIFY_TOLERANCE_DEG,
        default=None,
        metavar="TOLERANCE_DEG",
        help=(
            "Simplify each track with Douglas-Peucker "
            f"(default tolerance: {DEFAULT_SIMPLIFY_TOLERANCE_DEG} degrees)"
        ),
    )
    parser.add_argument(
        "--resample",
        type=int,
        default=None,
        metavar="POINTS",
        help="Reduce each track to roughly this many evenly spaced points",
    )
    parser.add_argument(
        "--intersections",
        type=float,
        nargs="?",
        const=DEFAULT_INTERSECTION_TOLERANCE_KM,
        default=None,
        metavar="TOLERANCE_KM",
        help=(
            "Report where tracks cross or pass close together "
            f"(default tolerance: {DEFAULT_INTERSECTION_TOLERANCE_KM} km)"
        ),
    )
    parser.add_argument(
        "--clusters",
        type=float,
        nargs="?",
        const=DEFAULT_CLUSTER_THRESHOLD,
        default=None,
        metavar="THRESHOLD",
        help=(
            "Group similar tracks "
            f"(default similarity threshold: {DEFAULT_CLUSTER_THRESHOLD})"
        ),
    )
    parser.add_argument(
        "--heatmap-html",
        type=Path,
        default=None,
        help="Write an interactive segment-frequency map to this HTML file",
    )
    parser.add_argument("--gpx", type=Path, default=None, help="Write all tracks as GPX")
    parser.add_argument(
        "--geojson",
        type=Path,
        default=None,
        help="Write all tracks as a GeoJSON FeatureCollection",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    return parser.parse_args(argv)


def _setup_logging(level: str) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(getattr(logging, level))


def _load_all(paths: Sequence[Path]) -> Tuple[List[LabelledTrack], int]:
    """Load every file, returning labelled tracks and the number of failures."""

    loaded: List[LabelledTrack] = []
    failures = 0
    for path in paths:
        try:
            tracks = load_track_file(path)
        except (TrackkitError, OSError) as exc:
            LOGGER.error("Skipping %s: %s", path, exc)
            failures += 1
            continue
        for index, track in enumerate(tracks, start=1):
            label = path.name if len(tracks) == 1 else f"{path.name}#{index}"
            loaded.append((label, track))
    return loaded, failures


def _transform(
    tracks: List[LabelledTrack], args: argparse.Namespace
) -> List[LabelledTrack]:
    result: List[LabelledTrack] = []
    for label, track in tracks:
        if args.simplify is not None:
            track = simplify(track, args.simplify)
        if args.resample is not None:
            track = resample(track, args.resample)
        result.append((label, track))
    return result


def _log_statistics(tracks: Sequence[LabelledTrack]) -> None:
    for label, track in tracks:
        stats = track_statistics(track)
        if stats is None:
            continue
        LOGGER.info(
            "%s: %d points, %.2f km, bbox=%s",
            label,
            stats.point_count,
            stats.distance_km,
            ", ".join(f"{value:.5f}" for value in stats.bounding_box),
        )
    coverage = coverage_area([track for _, track in tracks])
    if coverage is not None:
        LOGGER.info(
            "Coverage: %d points over %.2f km^2", coverage.point_count, coverage.area_km2
        )


def _report_intersections(
    tracks: Sequence[LabelledTrack], tolerance_km: float
) -> List[IntersectionPoint]:
    points = find_intersections([track for _, track in tracks], tolerance_km)
    LOGGER.info("Found %d intersection(s) within %.3f km", len(points), tolerance_km)
    for point in points:
        LOGGER.info(
            "  %.5f, %.5f: %s",
            point.coordinate[0],
            point.coordinate[1],
            ", ".join(tracks[index][0] for index in point.track_indices),
        )
    return points


def _report_clusters(tracks: Sequence[LabelledTrack], threshold: float) -> None:
    clusters = cluster_tracks([track for _, track in tracks], threshold)
    LOGGER.info("Grouped %d track(s) into %d cluster(s)", len(tracks), len(clusters))
    for number, cluster in enumerate(clusters, start=1):
        LOGGER.info(
            "  Cluster %d (score %.3f): %s",
            number,
            cluster.score,
            ", ".join(tracks[index][0] for index in cluster.member_indices),
        )


def _write_outputs(
    tracks: Sequence[LabelledTrack],
    intersections: Sequence[IntersectionPoint],
    args: argparse.Namespace,
) -> None:
    if args.heatmap_html is not None:
        heatmap = create_heatmap([track for _, track in tracks])
        create_heatmap_map(
            heatmap, intersections=intersections, output_html_path=args.heatmap_html
        )
        LOGGER.info(
            "Wrote heatmap to %s (max frequency %d)",
            args.heatmap_html,
            heatmap.max_frequency,
        )
    if args.gpx is not None:
        args.gpx.parent.mkdir(parents=True, exist_ok=True)
        args.gpx.write_text(to_gpx([track for _, track in tracks]), encoding="utf-8")
        LOGGER.info("Wrote GPX to %s", args.gpx)
    if args.geojson is not None:
        collection = {
            "type": "FeatureCollection",
            "features": [
                to_geojson(track, {"name": label}) for label, track in tracks
            ],
        }
        args.geojson.parent.mkdir(parents=True, exist_ok=True)
        args.geojson.write_text(json.dumps(collection), encoding="utf-8")
        LOGGER.info("Wrote GeoJSON to %s", args.geojson)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return a process exit code."""

    args = parse_args(argv)
    _setup_logging(args.log_level)

    tracks, failures = _load_all(args.files)
    if not tracks:
        LOGGER.error("No tracks could be loaded")
        return 1
    try:
        tracks = _transform(tracks, args)
    except ValueError as exc:
        LOGGER.error("Invalid option: %s", exc)
        return 2
    _log_statistics(tracks)

    intersections: List[IntersectionPoint] = []
    try:
        if args.intersections is not None:
            intersections = _report_intersections(tracks, args.intersections)
        if args.clusters is not None:
            _report_clusters(tracks, args.clusters)
    except ValueError as exc:
        LOGGER.error("Invalid option: %s", exc)
        return 2
    _write_outputs(tracks, intersections, args)
    return 1 if failures else 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
