"""Turn raw bytes or text from track files into coordinate sequences.

Supported inputs are FIT activity files, GPX documents, JSON arrays of
``[lat, lng]`` pairs and encoded polylines. Every parser degrades to an
empty result on malformed input; only :func:`load_track_file` raises.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET
from polyline import decode as polyline_decode

from .errors import TrackDecodeError, UnsupportedFormatError
from .fit import decode_fit, is_fit_file
from .models import FileInfo, Track
from .sanitize import is_valid_coordinate, sanitize_track

LOGGER = logging.getLogger(__name__)

RawInput = Union[bytes, bytearray, str]

FORMAT_FIT = "fit"
FORMAT_GPX = "gpx"
FORMAT_JSON = "json"
FORMAT_POLYLINE = "polyline"
FORMAT_UNKNOWN = "unknown"

# Encoded polylines only use the printable characters '?' (63) to '~' (126).
_POLYLINE_MIN_CHAR = 63
_POLYLINE_MAX_CHAR = 126

_GPX_POINT_TAGS = {"trkpt", "rtept"}
_GPX_TRACK_TAGS = {"trkseg", "rte"}


def decode_polyline(text: str) -> Track:
    """Decode a precision-5 encoded polyline.

    Returns an empty track for empty or malformed text, including text that
    decodes to coordinates outside the valid latitude/longitude ranges.
    """

    encoded = text.strip()
    if not encoded or not _is_polyline_alphabet(encoded):
        return []
    try:
        points = polyline_decode(encoded, 5)
    except (ValueError, TypeError, IndexError) as exc:
        LOGGER.debug("Polyline decode failed: %s", exc)
        return []
    track: Track = [(float(lat), float(lng)) for lat, lng in points]
    if any(not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0) for lat, lng in track):
        LOGGER.debug("Polyline decoded to out-of-range coordinates")
        return []
    return track


def _is_polyline_alphabet(text: str) -> bool:
    return all(_POLYLINE_MIN_CHAR <= ord(ch) <= _POLYLINE_MAX_CHAR for ch in text)


def _parse_json_track(text: str) -> Optional[Track]:
    """Return the track in a JSON array of pairs, or ``None`` if it is not one."""

    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, list):
        return None
    track: Track = []
    for item in payload:
        if not isinstance(item, list) or len(item) != 2:
            return None
        lat, lng = item
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            return None
        try:
            track.append((float(lat), float(lng)))
        except OverflowError:
            return None
    return track


def parse_coordinate_text(text: str) -> Track:
    """Parse a JSON coordinate array, falling back to an encoded polyline."""

    track = _parse_json_track(text)
    if track is not None:
        return track
    return decode_polyline(text)


def parse_gpx(data: RawInput) -> List[Track]:
    """Extract one track per ``<trkseg>`` or ``<rte>`` from a GPX document.

    Namespaces are ignored so GPX 1.0, 1.1 and unqualified documents all
    parse. Points whose ``lat``/``lon`` attributes are missing or not
    numeric are skipped. Malformed XML yields an empty list.
    """

    try:
        root = ET.fromstring(data)
    except (ET.ParseError, DefusedXmlException) as exc:
        LOGGER.debug("GPX parse failed: %s", exc)
        return []
    tracks: List[Track] = []
    for element in root.iter():
        if _local_name(element.tag) not in _GPX_TRACK_TAGS:
            continue
        track: Track = []
        for child in element:
            if _local_name(child.tag) not in _GPX_POINT_TAGS:
                continue
            try:
                track.append((float(child.get("lat")), float(child.get("lon"))))
            except (TypeError, ValueError):
                continue
        if track:
            tracks.append(track)
    return tracks


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _as_text(data: RawInput) -> Optional[str]:
    if isinstance(data, str):
        return data
    try:
        return bytes(data).decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def detect_format(data: RawInput) -> str:
    """Classify ``data`` as ``fit``, ``gpx``, ``json``, ``polyline`` or ``unknown``."""

    if not isinstance(data, str) and is_fit_file(bytes(data)):
        return FORMAT_FIT
    text = _as_text(data)
    if text is None:
        return FORMAT_UNKNOWN
    stripped = text.strip()
    if not stripped:
        return FORMAT_UNKNOWN
    if stripped.startswith("<"):
        return FORMAT_GPX if "<gpx" in stripped[:1024] else FORMAT_UNKNOWN
    if stripped.startswith("["):
        return FORMAT_JSON if _parse_json_track(stripped) is not None else FORMAT_UNKNOWN
    if decode_polyline(stripped):
        return FORMAT_POLYLINE
    return FORMAT_UNKNOWN


def load_tracks(data: RawInput) -> List[Track]:
    """Decode every track contained in ``data`` without sanitizing it."""

    fmt = detect_format(data)
    if fmt == FORMAT_FIT:
        tracks = [decode_fit(bytes(data))]
    elif fmt == FORMAT_GPX:
        tracks = parse_gpx(data)
    elif fmt in (FORMAT_JSON, FORMAT_POLYLINE):
        text = _as_text(data) or ""
        tracks = [parse_coordinate_text(text.strip())]
    else:
        tracks = []
    return [track for track in tracks if track]


def file_info(data: RawInput) -> FileInfo:
    """Summarise the detected format and content of ``data``."""

    size = len(data.encode("utf-8")) if isinstance(data, str) else len(data)
    fmt = detect_format(data)
    if fmt == FORMAT_UNKNOWN:
        return FileInfo(
            format=fmt,
            track_count=0,
            point_count=0,
            valid=False,
            file_size=size,
            error="unrecognised track format",
        )
    tracks = load_tracks(data)
    point_count = sum(len(track) for track in tracks)
    valid_points = sum(
        1 for track in tracks for lat, lng in track if is_valid_coordinate(lat, lng)
    )
    error = None if valid_points else "no valid coordinates"
    return FileInfo(
        format=fmt,
        track_count=len(tracks),
        point_count=point_count,
        valid=valid_points > 0,
        file_size=size,
        error=error,
    )


def load_track_file(path: Union[str, Path]) -> List[Track]:
    """Read, decode and sanitize every track stored in ``path``.

    Raises:
        UnsupportedFormatError: When the file content matches no known format.
        TrackDecodeError: When no track survives decoding and sanitizing.
    """

    file_path = Path(path)
    data = file_path.read_bytes()
    fmt = detect_format(data)
    if fmt == FORMAT_UNKNOWN:
        LOGGER.warning("Unrecognised track format in %s", file_path)
        raise UnsupportedFormatError(f"{file_path}: unrecognised track format")
    tracks = [sanitize_track(track) for track in load_tracks(data)]
    tracks = [track for track in tracks if track]
    if not tracks:
        LOGGER.warning("No usable coordinates in %s (%s)", file_path, fmt)
        raise TrackDecodeError(f"{file_path}: no usable coordinates in {fmt} data")
    LOGGER.debug(
        "Loaded %d track(s) from %s (%s)", len(tracks), file_path, fmt
    )
    return tracks


__all__ = [
    "FORMAT_FIT",
    "FORMAT_GPX",
    "FORMAT_JSON",
    "FORMAT_POLYLINE",
    "FORMAT_UNKNOWN",
    "decode_polyline",
    "detect_format",
    "file_info",
    "load_track_file",
    "load_tracks",
    "parse_coordinate_text",
    "parse_gpx",
]
