"""GPS track ingestion and analytics package."""

from .analytics import (
    cluster_tracks,
    coverage_area,
    create_heatmap,
    find_intersections,
    merge_nearby_tracks,
    track_similarity,
)
from .errors import TrackDecodeError, TrackkitError, UnsupportedFormatError
from .export import encode_polyline, to_geojson, to_gpx
from .fit import decode_fit, is_fit_file
from .geometry import (
    bounding_box,
    haversine_km,
    resample,
    resample_by_distance,
    simplify,
    track_statistics,
)
from .ingest import (
    decode_polyline,
    detect_format,
    file_info,
    load_track_file,
    load_tracks,
    parse_coordinate_text,
    parse_gpx,
)
from .models import (
    Cluster,
    CoverageArea,
    FileInfo,
    HeatmapResult,
    HeatmapTrack,
    IntersectionPoint,
    SegmentKey,
    TrackStatistics,
    ValidationResult,
)
from .sanitize import (
    filter_unrealistic_jumps,
    is_valid_coordinate,
    sanitize_track,
    validate_coordinates,
)

__all__ = [
    "Cluster",
    "CoverageArea",
    "FileInfo",
    "HeatmapResult",
    "HeatmapTrack",
    "IntersectionPoint",
    "SegmentKey",
    "TrackDecodeError",
    "TrackStatistics",
    "TrackkitError",
    "UnsupportedFormatError",
    "ValidationResult",
    "bounding_box",
    "cluster_tracks",
    "coverage_area",
    "create_heatmap",
    "decode_fit",
    "decode_polyline",
    "detect_format",
    "encode_polyline",
    "file_info",
    "filter_unrealistic_jumps",
    "find_intersections",
    "haversine_km",
    "is_fit_file",
    "is_valid_coordinate",
    "load_track_file",
    "load_tracks",
    "merge_nearby_tracks",
    "parse_coordinate_text",
    "parse_gpx",
    "resample",
    "resample_by_distance",
    "sanitize_track",
    "simplify",
    "to_geojson",
    "to_gpx",
    "track_similarity",
    "track_statistics",
    "validate_coordinates",
]
