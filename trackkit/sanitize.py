"""Coordinate validation and repair for decoded or raw tracks."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from .config import MAX_CONSECUTIVE_REJECTIONS, MAX_JUMP_KM
from .geometry import haversine_km
from .models import BoundingBox, LatLon, Track, ValidationResult

LOGGER = logging.getLogger(__name__)


def coordinate_issue(lat: float, lng: float) -> Optional[str]:
    """Describe why a coordinate is invalid, or return ``None`` if it is valid."""

    if math.isnan(lat) or math.isnan(lng):
        return "not a number"
    if math.isinf(lat) or math.isinf(lng):
        return "infinite value"
    if not -90.0 <= lat <= 90.0:
        return f"latitude {lat} outside [-90, 90]"
    if not -180.0 <= lng <= 180.0:
        return f"longitude {lng} outside [-180, 180]"
    if lat == 0.0 and lng == 0.0:
        return "null island (0, 0) is a no-fix sentinel"
    return None


def is_valid_coordinate(lat: float, lng: float) -> bool:
    return coordinate_issue(lat, lng) is None


def validate_coordinates(track: Sequence[Sequence[float]]) -> ValidationResult:
    """Count valid points and list one issue per invalid point, in order."""

    issues: List[str] = []
    valid = 0
    for index, point in enumerate(track):
        try:
            size = len(point)
        except TypeError:
            issues.append(f"Point {index}: not a coordinate pair")
            continue
        if size != 2:
            issues.append(f"Point {index}: expected [lat, lng], got {size} values")
            continue
        try:
            lat, lng = float(point[0]), float(point[1])
        except (TypeError, ValueError):
            issues.append(f"Point {index}: non-numeric value")
            continue
        problem = coordinate_issue(lat, lng)
        if problem is None:
            valid += 1
        else:
            issues.append(f"Point {index}: {problem}")
    return ValidationResult(valid_count=valid, total_count=len(track), issues=issues)


def filter_invalid_coordinates(track: Sequence[LatLon]) -> Track:
    return [point for point in track if is_valid_coordinate(point[0], point[1])]


def filter_unrealistic_jumps(track: Sequence[LatLon]) -> Track:
    """Drop points that teleport more than ``MAX_JUMP_KM`` from the last kept one.

    The first point is always kept. After ``MAX_CONSECUTIVE_REJECTIONS``
    rejections in a row the next point is accepted regardless of distance,
    so a genuine relocation or a burst of noise cannot empty the remainder of
    the track.
    """

    if len(track) < 2:
        return list(track)
    kept: Track = [track[0]]
    rejected_run = 0
    for point in track[1:]:
        distance = haversine_km(kept[-1], point)
        if distance > MAX_JUMP_KM and rejected_run < MAX_CONSECUTIVE_REJECTIONS:
            rejected_run += 1
            continue
        kept.append(point)
        rejected_run = 0
    return kept


def sanitize_track(track: Sequence[LatLon]) -> Track:
    """Remove invalid coordinates and teleport artefacts."""

    valid = filter_invalid_coordinates(track)
    cleaned = filter_unrealistic_jumps(valid)
    dropped = len(track) - len(cleaned)
    if dropped:
        LOGGER.debug(
            "Sanitized track: dropped %d of %d points (%d invalid)",
            dropped,
            len(track),
            len(track) - len(valid),
        )
    return cleaned


def filter_by_bounds(track: Sequence[LatLon], bbox: BoundingBox) -> Track:
    """Keep the points that fall inside ``(min_lat, min_lng, max_lat, max_lng)``."""

    min_lat, min_lng, max_lat, max_lng = bbox
    return [
        point
        for point in track
        if min_lat <= point[0] <= max_lat and min_lng <= point[1] <= max_lng
    ]


def split_track_by_gaps(track: Sequence[LatLon], max_gap_km: float) -> List[Track]:
    """Split a track wherever consecutive points are more than ``max_gap_km`` apart."""

    if max_gap_km <= 0:
        raise ValueError("max_gap_km must be greater than zero")
    if not track:
        return []
    pieces: List[Track] = [[track[0]]]
    for previous, point in zip(track, track[1:]):
        if haversine_km(previous, point) > max_gap_km:
            pieces.append([point])
        else:
            pieces[-1].append(point)
    return pieces


__all__ = [
    "coordinate_issue",
    "filter_by_bounds",
    "filter_invalid_coordinates",
    "filter_unrealistic_jumps",
    "is_valid_coordinate",
    "sanitize_track",
    "split_track_by_gaps",
    "validate_coordinates",
]
