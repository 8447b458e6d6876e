"""Single-track geometry: distances, extents, simplification and resampling."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer
from pyproj.enums import TransformDirection
from pyproj.exceptions import CRSError
from shapely.geometry import LineString

from .config import COORDINATE_DECIMALS, EARTH_RADIUS_KM
from .models import BoundingBox, LatLon, Track, TrackStatistics

CoordinateArray = NDArray[np.float64]

_ROUND_SCALE = 10.0**COORDINATE_DECIMALS

# Kilometres per degree of latitude on the mean-radius sphere.
KM_PER_DEGREE = math.pi * EARTH_RADIUS_KM / 180.0


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle distance in kilometres between two (lat, lng) points."""

    lat1, lon1 = float(a[0]), float(a[1])
    lat2, lon2 = float(b[0]), float(b[1])
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    h = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    h = min(max(h, 0.0), 1.0)
    return 2.0 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def haversine_matrix_km(
    a: Iterable[Sequence[float]], b: Iterable[Sequence[float]]
) -> CoordinateArray:
    """Return the pairwise haversine distances between two point sets."""

    left = as_coordinate_array(a)
    right = as_coordinate_array(b)
    if left.shape[0] == 0 or right.shape[0] == 0:
        return np.zeros((left.shape[0], right.shape[0]), dtype=float)
    lat1 = np.radians(left[:, 0])[:, None]
    lon1 = np.radians(left[:, 1])[:, None]
    lat2 = np.radians(right[:, 0])[None, :]
    lon2 = np.radians(right[:, 1])[None, :]
    h = (
        np.sin((lat2 - lat1) / 2.0) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2.0) ** 2
    )
    h = np.clip(h, 0.0, 1.0)
    return 2.0 * EARTH_RADIUS_KM * np.arctan2(np.sqrt(h), np.sqrt(1.0 - h))


def bounding_box(track: Sequence[LatLon]) -> Optional[BoundingBox]:
    """Return ``(min_lat, min_lng, max_lat, max_lng)`` or ``None`` when empty."""

    if not track:
        return None
    min_lat = max_lat = float(track[0][0])
    min_lng = max_lng = float(track[0][1])
    for lat, lng in track[1:]:
        min_lat = min(min_lat, lat)
        max_lat = max(max_lat, lat)
        min_lng = min(min_lng, lng)
        max_lng = max(max_lng, lng)
    return (min_lat, min_lng, max_lat, max_lng)


def pad_bounding_box(bbox: BoundingBox, lat_pad: float, lng_pad: float) -> BoundingBox:
    """Grow a bounding box by the given margins on every side."""

    min_lat, min_lng, max_lat, max_lng = bbox
    return (min_lat - lat_pad, min_lng - lng_pad, max_lat + lat_pad, max_lng + lng_pad)


def bounding_boxes_overlap(a: BoundingBox, b: BoundingBox) -> bool:
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def round_coordinate(value: float) -> float:
    """Round to five decimal places (about 1.1 m), halves away from zero."""

    return _round_half_away(value * _ROUND_SCALE) / _ROUND_SCALE


def round_point(point: Sequence[float]) -> LatLon:
    return (round_coordinate(point[0]), round_coordinate(point[1]))


def snap_to_grid(point: Sequence[float], tolerance: float) -> LatLon:
    """Snap both axes of ``point`` to the nearest multiple of ``tolerance``."""

    if tolerance <= 0:
        raise ValueError("tolerance must be greater than zero")
    lat = round_coordinate(_round_half_away(point[0] / tolerance) * tolerance)
    lng = round_coordinate(_round_half_away(point[1] / tolerance) * tolerance)
    return (lat, lng)


def track_length_km(track: Sequence[LatLon]) -> float:
    """Sum of haversine distances between consecutive points."""

    return sum(haversine_km(a, b) for a, b in zip(track, track[1:]))


def track_statistics(track: Sequence[LatLon]) -> Optional[TrackStatistics]:
    """Return distance, point count and bounding box, or ``None`` when empty."""

    bbox = bounding_box(track)
    if bbox is None:
        return None
    return TrackStatistics(
        distance_km=track_length_km(track),
        point_count=len(track),
        bounding_box=bbox,
    )


def simplify(track: Sequence[LatLon], tolerance_deg: float) -> Track:
    """Douglas-Peucker simplification in degree space.

    The first and last points are always kept. A tolerance of zero returns
    the track unchanged.
    """

    if tolerance_deg < 0:
        raise ValueError("tolerance_deg must not be negative")
    points = list(track)
    if len(points) < 3 or tolerance_deg == 0:
        return points
    line = LineString(points)
    simplified = line.simplify(tolerance_deg, preserve_topology=False)
    coords: Track = [(float(x), float(y)) for x, y in simplified.coords]
    if len(coords) < 2:
        return [points[0], points[-1]]
    # GEOS may drop or rotate the endpoints of closed loops.
    if coords[0] != points[0]:
        coords.insert(0, points[0])
    if coords[-1] != points[-1]:
        coords.append(points[-1])
    return coords


def resample(track: Sequence[LatLon], target_count: int) -> Track:
    """Pick roughly evenly spaced samples by index.

    Tracks no longer than ``target_count`` are returned unchanged. Otherwise
    ``target_count`` samples are taken at a constant index stride and the
    final point is appended when the stride missed it, so the result holds
    ``target_count`` or ``target_count + 1`` points.
    """

    if target_count < 1:
        raise ValueError("target_count must be at least 1")
    points = list(track)
    count = len(points)
    if count <= target_count:
        return points
    stride = count / float(target_count)
    indices = np.floor(np.arange(target_count) * stride).astype(int).tolist()
    if indices[-1] != count - 1:
        indices.append(count - 1)
    return [points[i] for i in indices]


def resample_by_distance(track: Sequence[LatLon], interval_m: float) -> Track:
    """Resample a track so successive points are ``interval_m`` metres apart."""

    if interval_m <= 0:
        raise ValueError("interval_m must be greater than zero")
    points = list(track)
    if len(points) < 2:
        return points
    transformer = _build_local_transformer(points)
    metric = _project_points(points, transformer)
    deltas = np.diff(metric, axis=0)
    cumulative = np.concatenate(([0.0], np.cumsum(np.linalg.norm(deltas, axis=1))))
    total_length = float(cumulative[-1])
    if total_length == 0:
        return [points[0]]
    target = _build_target_distances(total_length, interval_m)
    xs = np.interp(target, cumulative, metric[:, 0])
    ys = np.interp(target, cumulative, metric[:, 1])
    lngs, lats = transformer.transform(xs, ys, direction=TransformDirection.INVERSE)
    resampled: Track = [(float(lat), float(lng)) for lat, lng in zip(lats, lngs)]
    resampled[0] = points[0]
    resampled[-1] = points[-1]
    return resampled


def as_coordinate_array(points: Iterable[Sequence[float]]) -> CoordinateArray:
    """Convert an iterable of (lat, lng) pairs into an ``(n, 2)`` float array."""

    array = np.asarray(list(points), dtype=float)
    if array.size == 0:
        return np.empty((0, 2), dtype=float)
    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError("Expected a sequence of 2D coordinates")
    return array


def _build_target_distances(total_length: float, interval_m: float) -> CoordinateArray:
    """Return increasing sample distances that include the end point."""

    distances = [0.0]
    current = interval_m
    while current < total_length:
        distances.append(current)
        current += interval_m
    distances.append(total_length)
    return np.asarray(distances, dtype=float)


def _build_local_transformer(points: Sequence[LatLon]) -> Transformer:
    """Build a local UTM transformer centred on the provided coordinates."""

    mean_lat = float(np.mean([pt[0] for pt in points]))
    mean_lon = float(np.mean([pt[1] for pt in points]))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    epsg = 32600 + zone if mean_lat >= 0 else 32700 + zone
    try:
        target_crs = CRS.from_epsg(epsg)
    except CRSError:
        target_crs = CRS.from_epsg(3857)
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def _project_points(
    points: Sequence[LatLon], transformer: Transformer
) -> CoordinateArray:
    lats = np.asarray([pt[0] for pt in points], dtype=float)
    lons = np.asarray([pt[1] for pt in points], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


__all__ = [
    "KM_PER_DEGREE",
    "as_coordinate_array",
    "bounding_box",
    "bounding_boxes_overlap",
    "haversine_km",
    "haversine_matrix_km",
    "pad_bounding_box",
    "resample",
    "resample_by_distance",
    "round_coordinate",
    "round_point",
    "simplify",
    "snap_to_grid",
    "track_length_km",
    "track_statistics",
]
