"""Serialise tracks as encoded polylines, GeoJSON features or GPX documents."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from polyline import encode as polyline_encode

from .models import LatLon

_GPX_DECIMALS = 6


def encode_polyline(track: Sequence[LatLon]) -> str:
    """Encode a track at the standard precision of five decimal places."""

    if not track:
        return ""
    return polyline_encode([(float(lat), float(lng)) for lat, lng in track], 5)


def to_geojson(
    track: Sequence[LatLon], properties: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Return a GeoJSON ``Feature`` with a ``LineString`` in ``[lng, lat]`` order."""

    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[float(lng), float(lat)] for lat, lng in track],
        },
        "properties": dict(properties) if properties else {},
    }


def to_gpx(tracks: Sequence[Sequence[LatLon]], name: Optional[str] = None) -> str:
    """Convert tracks to a GPX 1.1 document.

    Args:
        tracks: Tracks to export, one ``<trk>`` element each.
        name: Optional document name written to ``<metadata>``.

    Returns:
        GPX XML string.
    """

    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="trackkit"',
        '     xmlns="http://www.topografix.com/GPX/1/1"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 '
        'http://www.topografix.com/GPX/1/1/gpx.xsd">',
    ]
    if name:
        gpx_lines.extend(
            [
                "  <metadata>",
                f"    <name>{_escape_xml(name)}</name>",
                "  </metadata>",
            ]
        )

    for number, track in enumerate(tracks, start=1):
        gpx_lines.extend(
            [
                "  <trk>",
                f"    <name>Track {number}</name>",
                "    <trkseg>",
            ]
        )
        for lat, lng in track:
            gpx_lines.append(
                f'      <trkpt lat="{lat:.{_GPX_DECIMALS}f}" '
                f'lon="{lng:.{_GPX_DECIMALS}f}"></trkpt>'
            )
        gpx_lines.extend(["    </trkseg>", "  </trk>"])

    gpx_lines.append("</gpx>")
    return "\n".join(gpx_lines)


def _escape_xml(text: str) -> str:
    """Escape special XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


__all__ = ["encode_polyline", "to_geojson", "to_gpx"]
