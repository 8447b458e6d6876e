"""Dataclasses describing tracks and analysis results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple


LatLon = Tuple[float, float]
Track = List[LatLon]
BoundingBox = Tuple[float, float, float, float]


class SegmentKey(NamedTuple):
    """Direction-independent identity of a grid-snapped two-point segment."""

    start: LatLon
    end: LatLon

    def __str__(self) -> str:
        return (
            f"{self.start[0]},{self.start[1]}-{self.end[0]},{self.end[1]}"
        )


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a coordinate sequence."""

    valid_count: int
    total_count: int
    issues: List[str] = field(default_factory=list)


@dataclass(slots=True)
class TrackStatistics:
    """Distance, size and extent of a single track."""

    distance_km: float
    point_count: int
    bounding_box: BoundingBox


@dataclass(slots=True)
class HeatmapTrack:
    """Track annotated with how many tracks share its busiest segment."""

    coordinates: Track
    frequency: int


@dataclass(slots=True)
class HeatmapResult:
    """Per-track heatmap records plus the highest frequency observed."""

    tracks: List[HeatmapTrack]
    max_frequency: int


@dataclass(frozen=True, slots=True)
class IntersectionPoint:
    """Approximate location where two or more tracks pass close together."""

    coordinate: LatLon
    track_indices: Tuple[int, ...]


@dataclass(frozen=True, slots=True)
class Cluster:
    """Group of similar tracks led by the first track that founded it."""

    representative: Track
    members: Tuple[Track, ...]
    member_indices: Tuple[int, ...]
    score: float
    member_scores: Tuple[float, ...] = ()


@dataclass(slots=True)
class CoverageArea:
    """Geographic extent covered by a collection of tracks."""

    bounding_box: BoundingBox
    area_km2: float
    point_count: int


@dataclass(slots=True)
class FileInfo:
    """Summary of a track file's detected format and content."""

    format: str
    track_count: int
    point_count: int
    valid: bool
    file_size: int
    error: Optional[str] = None
