"""Render heatmap results on an interactive map."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.
import numpy as np

from .geometry import bounding_box
from .models import HeatmapResult, IntersectionPoint, LatLon

PathLike = Union[str, Path]

# Colour ramp endpoints, from rarely to frequently travelled.
_LOW_COLOR = (44, 123, 182)
_HIGH_COLOR = (215, 48, 39)
_INTERSECTION_COLOR = "#1a9641"

_MIN_WEIGHT = 2.0
_MAX_WEIGHT = 8.0


def _blend_color(ratio: float) -> str:
    """Return a hex colour between the low and high ramp endpoints."""

    ratio = float(np.clip(ratio, 0.0, 1.0))
    low = np.asarray(_LOW_COLOR, dtype=float)
    high = np.asarray(_HIGH_COLOR, dtype=float)
    red, green, blue = (int(v) for v in np.rint(low + (high - low) * ratio))
    return f"#{red:02x}{green:02x}{blue:02x}"


def _map_bounds(result: HeatmapResult) -> Optional[Tuple[LatLon, LatLon]]:
    points: List[LatLon] = [pt for track in result.tracks for pt in track.coordinates]
    bbox = bounding_box(points)
    if bbox is None:
        return None
    min_lat, min_lng, max_lat, max_lng = bbox
    return (min_lat, min_lng), (max_lat, max_lng)


def create_heatmap_map(
    result: HeatmapResult,
    *,
    intersections: Sequence[IntersectionPoint] = (),
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Draw every heatmap track coloured and weighted by its frequency.

    Args:
        result: Output of :func:`trackkit.analytics.create_heatmap`.
        intersections: Optional intersection points drawn as circle markers.
        output_html_path: Optional path to persist the map as an HTML file.

    Returns:
        A :class:`folium.Map` instance containing the overlay.
    """

    bounds = _map_bounds(result)
    if bounds is None:
        folium_map = folium.Map(location=(0.0, 0.0), zoom_start=2, control_scale=True)
    else:
        (min_lat, min_lng), (max_lat, max_lng) = bounds
        center = ((min_lat + max_lat) / 2.0, (min_lng + max_lng) / 2.0)
        folium_map = folium.Map(location=center, zoom_start=13, control_scale=True)
        if (min_lat, min_lng) != (max_lat, max_lng):
            folium_map.fit_bounds([list(bounds[0]), list(bounds[1])])

    max_frequency = max(result.max_frequency, 1)
    # Draw quiet routes first so busy ones stay on top.
    for record in sorted(result.tracks, key=lambda item: item.frequency):
        if len(record.coordinates) < 2:
            continue
        ratio = (record.frequency - 1) / (max_frequency - 1) if max_frequency > 1 else 0.0
        folium.PolyLine(
            record.coordinates,
            color=_blend_color(ratio),
            weight=_MIN_WEIGHT + (_MAX_WEIGHT - _MIN_WEIGHT) * ratio,
            opacity=0.7,
            tooltip=f"Frequency {record.frequency} of {max_frequency}",
        ).add_to(folium_map)

    for point in intersections:
        indices = ", ".join(str(index) for index in point.track_indices)
        folium.CircleMarker(
            location=point.coordinate,
            radius=5,
            color=_INTERSECTION_COLOR,
            fill=True,
            fill_color=_INTERSECTION_COLOR,
            tooltip=f"Tracks {indices}",
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_heatmap_map"]
