"""Cross-track analytics: heatmaps, intersections, clustering and coverage."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
import logging
import math
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry
from shapely.ops import nearest_points

from .config import (
    CLUSTER_BBOX_PADDING_DEG,
    CLUSTER_DISTANCE_SCALE_KM,
    CLUSTER_SAMPLE_POINTS,
    COORDINATE_DECIMALS,
    SEGMENT_GRID_TOLERANCE,
)
from .geometry import (
    KM_PER_DEGREE,
    bounding_box,
    bounding_boxes_overlap,
    haversine_km,
    haversine_matrix_km,
    pad_bounding_box,
    resample,
    round_point,
    snap_to_grid,
)
from .models import (
    BoundingBox,
    Cluster,
    CoverageArea,
    HeatmapResult,
    HeatmapTrack,
    IntersectionPoint,
    LatLon,
    SegmentKey,
    Track,
)

LOGGER = logging.getLogger(__name__)

_MIN_GRID = 10.0 ** -COORDINATE_DECIMALS


def segment_key(
    start: Sequence[float],
    end: Sequence[float],
    tolerance: float = SEGMENT_GRID_TOLERANCE,
) -> SegmentKey:
    """Return the same key for a segment regardless of travel direction."""

    a = snap_to_grid(start, tolerance)
    b = snap_to_grid(end, tolerance)
    return SegmentKey(a, b) if a <= b else SegmentKey(b, a)


def create_heatmap(tracks: Sequence[Sequence[LatLon]]) -> HeatmapResult:
    """Annotate each track with how many tracks share its busiest segment.

    Each distinct segment key counts once per track, so a route ridden out
    and back is still a single route. Tracks with fewer than two points
    carry no segments and are left out of the result.
    """

    track_keys: List[Optional[Set[SegmentKey]]] = []
    counts: Counter[SegmentKey] = Counter()
    for track in tracks:
        if len(track) < 2:
            track_keys.append(None)
            continue
        keys = {segment_key(a, b) for a, b in zip(track, track[1:])}
        counts.update(keys)
        track_keys.append(keys)

    records: List[HeatmapTrack] = []
    for track, keys in zip(tracks, track_keys):
        if keys is None:
            continue
        frequency = max(counts[key] for key in keys)
        records.append(HeatmapTrack(coordinates=list(track), frequency=frequency))

    max_frequency = max((record.frequency for record in records), default=1)
    LOGGER.debug(
        "Heatmap built from %d tracks, %d distinct segments, max frequency %d",
        len(records),
        len(counts),
        max_frequency,
    )
    return HeatmapResult(tracks=records, max_frequency=max_frequency)


def find_intersections(
    tracks: Sequence[Sequence[LatLon]], tolerance_km: float
) -> List[IntersectionPoint]:
    """Locate places where pairs of tracks cross or pass within ``tolerance_km``.

    Hits closer together than roughly ``tolerance_km`` are merged into a
    single :class:`IntersectionPoint` carrying every track index involved.
    """

    if tolerance_km < 0:
        raise ValueError("tolerance_km must not be negative")
    geometries = [_track_geometry(track) for track in tracks]
    boxes = [bounding_box(track) for track in tracks]
    lat_pad = tolerance_km / KM_PER_DEGREE
    grid = max(lat_pad, _MIN_GRID)

    cells: Dict[LatLon, Tuple[LatLon, Set[int]]] = {}
    for i in range(len(tracks)):
        box_i = boxes[i]
        if box_i is None:
            continue
        padded_i = pad_bounding_box(box_i, lat_pad, _lng_padding(box_i, lat_pad))
        for j in range(i + 1, len(tracks)):
            box_j = boxes[j]
            if box_j is None or not bounding_boxes_overlap(padded_i, box_j):
                continue
            padded_j = pad_bounding_box(box_j, lat_pad, _lng_padding(box_j, lat_pad))
            for location in _pair_hits(
                tracks[i], geometries[i], padded_i,
                tracks[j], geometries[j], padded_j,
                tolerance_km,
            ):
                cell = snap_to_grid(location, grid)
                entry = cells.setdefault(cell, (round_point(location), set()))
                entry[1].update((i, j))

    return [
        IntersectionPoint(coordinate=location, track_indices=tuple(sorted(indices)))
        for location, indices in cells.values()
    ]


def _pair_hits(
    track_a: Sequence[LatLon],
    geom_a: BaseGeometry,
    box_a: BoundingBox,
    track_b: Sequence[LatLon],
    geom_b: BaseGeometry,
    box_b: BoundingBox,
    tolerance_km: float,
) -> Iterator[LatLon]:
    yield from _geometry_points(geom_a.intersection(geom_b))
    yield from _near_vertices(track_b, geom_a, box_a, tolerance_km)
    yield from _near_vertices(track_a, geom_b, box_b, tolerance_km)


def _near_vertices(
    vertices: Sequence[LatLon],
    geometry: BaseGeometry,
    box: BoundingBox,
    tolerance_km: float,
) -> Iterator[LatLon]:
    """Yield midpoints between vertices and the closest point of ``geometry``."""

    min_lat, min_lng, max_lat, max_lng = box
    for lat, lng in vertices:
        if not (min_lat <= lat <= max_lat and min_lng <= lng <= max_lng):
            continue
        nearest, _ = nearest_points(geometry, Point(lat, lng))
        target = (float(nearest.x), float(nearest.y))
        if haversine_km((lat, lng), target) <= tolerance_km:
            yield ((lat + target[0]) / 2.0, (lng + target[1]) / 2.0)


def _track_geometry(track: Sequence[LatLon]) -> Optional[BaseGeometry]:
    points = [(float(lat), float(lng)) for lat, lng in track]
    if not points:
        return None
    if len(set(points)) < 2:
        return Point(points[0])
    return LineString(points)


def _geometry_points(geometry: BaseGeometry) -> List[LatLon]:
    if geometry.is_empty:
        return []
    parts = getattr(geometry, "geoms", None)
    if parts is not None:
        return [point for part in parts for point in _geometry_points(part)]
    return [(float(x), float(y)) for x, y in geometry.coords]


def _lng_padding(box: BoundingBox, lat_pad: float) -> float:
    widest = max(abs(box[0]), abs(box[2]))
    scale = math.cos(math.radians(min(widest, 89.9)))
    return min(lat_pad / scale, 360.0)


def track_similarity(a: Sequence[LatLon], b: Sequence[LatLon]) -> float:
    """Score how alike two tracks are, from 0 (unrelated) to 1 (identical).

    The score averages two symmetric terms: the intersection-over-union of
    the padded bounding boxes, and ``exp(-d / CLUSTER_DISTANCE_SCALE_KM)``
    where ``d`` is the mean nearest-point haversine distance between the
    tracks taken in both directions.
    """

    box_a = bounding_box(a)
    box_b = bounding_box(b)
    if box_a is None or box_b is None:
        return 0.0
    pad = CLUSTER_BBOX_PADDING_DEG
    overlap = _bbox_iou(pad_bounding_box(box_a, pad, pad), pad_bounding_box(box_b, pad, pad))

    distances = haversine_matrix_km(
        resample(a, CLUSTER_SAMPLE_POINTS), resample(b, CLUSTER_SAMPLE_POINTS)
    )
    mean_nearest = 0.5 * (
        float(distances.min(axis=1).mean()) + float(distances.min(axis=0).mean())
    )
    proximity = math.exp(-mean_nearest / CLUSTER_DISTANCE_SCALE_KM)
    score = 0.5 * overlap + 0.5 * proximity
    return min(max(score, 0.0), 1.0)


def _bbox_iou(a: BoundingBox, b: BoundingBox) -> float:
    inter_lat = min(a[2], b[2]) - max(a[0], b[0])
    inter_lng = min(a[3], b[3]) - max(a[1], b[1])
    if inter_lat <= 0 or inter_lng <= 0:
        return 0.0
    intersection = inter_lat * inter_lng
    union = (a[2] - a[0]) * (a[3] - a[1]) + (b[2] - b[0]) * (b[3] - b[1]) - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def cluster_tracks(
    tracks: Sequence[Sequence[LatLon]], threshold: float
) -> List[Cluster]:
    """Greedily group tracks whose similarity to a representative meets ``threshold``.

    Tracks are visited in input order. Each joins the first existing cluster
    whose representative scores at least ``threshold`` against it, or founds
    a new cluster.
    """

    if not 0.0 <= threshold <= 1.0:
        raise ValueError("threshold must be within [0, 1]")
    clusters: Tuple[Cluster, ...] = ()
    for index, track in enumerate(tracks):
        clusters = _assign_to_cluster(clusters, index, list(track), threshold)
    LOGGER.debug("Clustered %d tracks into %d clusters", len(tracks), len(clusters))
    return list(clusters)


def _assign_to_cluster(
    clusters: Tuple[Cluster, ...], index: int, track: Track, threshold: float
) -> Tuple[Cluster, ...]:
    for position, cluster in enumerate(clusters):
        score = track_similarity(cluster.representative, track)
        if score < threshold:
            continue
        member_scores = cluster.member_scores + (score,)
        updated = replace(
            cluster,
            members=cluster.members + (track,),
            member_indices=cluster.member_indices + (index,),
            member_scores=member_scores,
            score=sum(member_scores) / len(member_scores),
        )
        return clusters[:position] + (updated,) + clusters[position + 1 :]
    founded = Cluster(
        representative=track,
        members=(track,),
        member_indices=(index,),
        score=1.0,
        member_scores=(1.0,),
    )
    return clusters + (founded,)


def coverage_area(tracks: Sequence[Sequence[LatLon]]) -> Optional[CoverageArea]:
    """Return the union bounding box, approximate area and point count.

    The area uses an equirectangular approximation: the latitude span times
    the longitude span scaled by the cosine of the box's mid latitude.
    Returns ``None`` when the tracks hold no points.
    """

    points = [point for track in tracks for point in track]
    bbox = bounding_box(points)
    if bbox is None:
        return None
    min_lat, min_lng, max_lat, max_lng = bbox
    mid_lat = math.radians((min_lat + max_lat) / 2.0)
    lat_km = (max_lat - min_lat) * KM_PER_DEGREE
    lng_km = (max_lng - min_lng) * KM_PER_DEGREE * math.cos(mid_lat)
    return CoverageArea(
        bounding_box=bbox,
        area_km2=abs(lat_km * lng_km),
        point_count=len(points),
    )


def merge_nearby_tracks(
    tracks: Sequence[Sequence[LatLon]], threshold_km: float
) -> List[Track]:
    """Join consecutive tracks when one starts within ``threshold_km`` of the last end."""

    merged: List[Track] = []
    for track in tracks:
        if not track:
            continue
        if merged and haversine_km(merged[-1][-1], track[0]) <= threshold_km:
            merged[-1] = merged[-1] + list(track)
        else:
            merged.append(list(track))
    return merged


__all__ = [
    "cluster_tracks",
    "coverage_area",
    "create_heatmap",
    "find_intersections",
    "merge_nearby_tracks",
    "segment_key",
    "track_similarity",
]
