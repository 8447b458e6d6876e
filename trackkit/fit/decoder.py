"""Defensive decoder extracting GPS positions from FIT activity files.

The decoder walks the message stream of a FIT file and keeps only the
position samples it can trust. Every read is bounds-checked through
:class:`~trackkit.fit.cursor.FitCursor`; a message that cannot be parsed ends
decoding and the coordinates gathered so far are returned. Malformed input
therefore produces a shorter track rather than an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import struct
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import (
    FIT_INVALID_SINT32,
    FIT_LATITUDE_FIELD,
    FIT_LONGITUDE_FIELD,
    FIT_MAX_FIELD_COUNT,
    FIT_MAX_FIELD_SIZE,
    FIT_MIN_HEADER_SIZE,
    FIT_RECORD_MESSAGE,
    FIT_SEMICIRCLE_TO_DEGREES,
    FIT_SIGNATURE,
)
from ..models import LatLon, Track
from .cursor import FitCursor

LOGGER = logging.getLogger(__name__)

# Record header bits.
_COMPRESSED_TIMESTAMP_FLAG = 0x80
_DEFINITION_FLAG = 0x40
_DEVELOPER_DATA_FLAG = 0x20
_LOCAL_TYPE_MASK = 0x0F
_COMPRESSED_LOCAL_TYPE_SHIFT = 5
_COMPRESSED_LOCAL_TYPE_MASK = 0x03

# Architecture byte value for big-endian field encoding.
_BIG_ENDIAN = 1

_DEFINITION_HEADER_SIZE = 4
_FIELD_DESCRIPTOR_SIZE = 3
_SINT32_SIZE = 4

RawField = Tuple["FieldDefinition", bytes]


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """Layout of one field inside a data message."""

    field_id: int
    size: int
    base_type: int


@dataclass(frozen=True, slots=True)
class MessageDefinition:
    """Field layout of a data message type, built from a definition message."""

    global_message_number: int
    fields: Tuple[FieldDefinition, ...]
    architecture: int = 0
    developer_fields: Tuple[FieldDefinition, ...] = ()

    @property
    def size(self) -> int:
        """Total number of bytes of one data message using this layout."""
        return sum(f.size for f in self.fields) + sum(
            f.size for f in self.developer_fields
        )

    @property
    def big_endian(self) -> bool:
        return self.architecture == _BIG_ENDIAN

    @property
    def has_position_fields(self) -> bool:
        ids = {f.field_id for f in self.fields}
        return FIT_LATITUDE_FIELD in ids and FIT_LONGITUDE_FIELD in ids


def is_fit_file(data: bytes) -> bool:
    """Return True when ``data`` carries the FIT signature in bytes 8..12."""

    if len(data) < FIT_MIN_HEADER_SIZE:
        return False
    return bytes(data[8:12]) == FIT_SIGNATURE


def semicircles_to_degrees(raw: int) -> float:
    """Convert a signed 32-bit semicircle value into degrees."""

    return raw * FIT_SEMICIRCLE_TO_DEGREES


def _semicircle_degrees(raw: int) -> Optional[float]:
    """Return degrees for ``raw`` unless it is a sentinel value."""

    if raw == FIT_INVALID_SINT32 or raw == 0:
        return None
    return semicircles_to_degrees(raw)


def _decode_sint32(chunk: bytes, big_endian: bool) -> int:
    return struct.unpack(">i" if big_endian else "<i", chunk)[0]


def _is_latitude(value: Optional[float]) -> bool:
    return value is not None and -90.0 <= value <= 90.0


def _is_longitude(value: Optional[float]) -> bool:
    return value is not None and -180.0 <= value <= 180.0


def parse_definition_message(
    cursor: FitCursor, *, has_developer_data: bool = False
) -> Optional[MessageDefinition]:
    """Parse a definition message body positioned just after its header byte.

    Returns ``None`` (leaving the cursor untouched) when the header is
    truncated, the field count or a field size is implausible, or the
    descriptors run past the end of the buffer.
    """

    work = cursor.fork()
    if not work.has(_DEFINITION_HEADER_SIZE):
        return None
    work.read_u8()  # reserved
    architecture = work.read_u8()
    global_number = work.read_u16_le()
    field_count = work.read_u8()
    if architecture is None or global_number is None or field_count is None:
        return None
    if architecture == _BIG_ENDIAN:
        global_number = ((global_number & 0xFF) << 8) | (global_number >> 8)
    if field_count > FIT_MAX_FIELD_COUNT:
        return None

    fields = _read_field_descriptors(work, field_count, max_size=FIT_MAX_FIELD_SIZE)
    if fields is None:
        return None

    developer_fields: Tuple[FieldDefinition, ...] = ()
    if has_developer_data:
        developer_count = work.read_u8()
        if developer_count is None or developer_count > FIT_MAX_FIELD_COUNT:
            return None
        parsed = _read_field_descriptors(work, developer_count, max_size=None)
        if parsed is None:
            return None
        developer_fields = parsed

    cursor.commit(work)
    return MessageDefinition(
        global_message_number=global_number,
        fields=fields,
        architecture=architecture,
        developer_fields=developer_fields,
    )


def _read_field_descriptors(
    cursor: FitCursor, count: int, *, max_size: Optional[int]
) -> Optional[Tuple[FieldDefinition, ...]]:
    if not cursor.has(count * _FIELD_DESCRIPTOR_SIZE):
        return None
    fields: List[FieldDefinition] = []
    for _ in range(count):
        field_id = cursor.read_u8()
        size = cursor.read_u8()
        base_type = cursor.read_u8()
        if field_id is None or size is None or base_type is None:
            return None
        if max_size is not None and size > max_size:
            return None
        fields.append(FieldDefinition(field_id, size, base_type))
    return tuple(fields)


def read_message_fields(
    cursor: FitCursor, definition: MessageDefinition
) -> Optional[List[RawField]]:
    """Read the raw bytes of every declared field of one data message.

    The full message size is checked before anything is consumed; when the
    buffer is too short ``None`` is returned and the cursor does not move.
    Developer fields are consumed but not returned.
    """

    if not cursor.has(definition.size):
        return None
    raw: List[RawField] = []
    for field_def in definition.fields:
        chunk = cursor.read_bytes(field_def.size)
        if chunk is None:
            return None
        raw.append((field_def, chunk))
    for field_def in definition.developer_fields:
        cursor.skip(field_def.size)
    return raw


def parse_record_message(
    cursor: FitCursor, definition: MessageDefinition
) -> Optional[LatLon]:
    """Decode a record message whose position lives in fields 0 and 1."""

    raw = read_message_fields(cursor, definition)
    if raw is None:
        return None
    by_id: Dict[int, bytes] = {}
    for field_def, chunk in raw:
        by_id.setdefault(field_def.field_id, chunk)
    lat_chunk = by_id.get(FIT_LATITUDE_FIELD)
    lon_chunk = by_id.get(FIT_LONGITUDE_FIELD)
    if lat_chunk is None or lon_chunk is None:
        return None
    if len(lat_chunk) != _SINT32_SIZE or len(lon_chunk) != _SINT32_SIZE:
        return None
    lat = _semicircle_degrees(_decode_sint32(lat_chunk, definition.big_endian))
    lon = _semicircle_degrees(_decode_sint32(lon_chunk, definition.big_endian))
    if not _is_latitude(lat) or not _is_longitude(lon):
        return None
    return (lat, lon)  # type: ignore[return-value]


def parse_flexible_gps_message(
    cursor: FitCursor, definition: MessageDefinition
) -> Optional[LatLon]:
    """Decode a position from a message without fixed lat/lon field ids.

    The first 4-byte field that validates as a latitude is taken as the
    latitude; the first later 4-byte field that validates as a longitude is
    taken as the longitude.
    """

    raw = read_message_fields(cursor, definition)
    if raw is None:
        return None
    candidates = [
        _semicircle_degrees(_decode_sint32(chunk, definition.big_endian))
        for field_def, chunk in raw
        if field_def.size == _SINT32_SIZE
    ]
    return _select_position(candidates)


def _select_position(candidates: Sequence[Optional[float]]) -> Optional[LatLon]:
    for lat_index, lat in enumerate(candidates):
        if not _is_latitude(lat):
            continue
        for lon in candidates[lat_index + 1 :]:
            if _is_longitude(lon):
                return (lat, lon)  # type: ignore[return-value]
        return None
    return None


def decode_fit(data: bytes) -> Track:
    """Extract every trustworthy position sample from a FIT file.

    Returns an empty track when ``data`` is not a FIT file. Decoding stops at
    the first message that cannot be parsed and returns the coordinates
    collected up to that point.
    """

    if not is_fit_file(data):
        LOGGER.debug("Input is not a FIT file (%d bytes)", len(data))
        return []
    header_size = data[0]
    if header_size < FIT_MIN_HEADER_SIZE or header_size > len(data):
        LOGGER.debug("FIT header size %d is invalid", header_size)
        return []
    header = FitCursor(data, 4)
    data_size = header.read_u32_le() or 0
    end = header_size + data_size if data_size else len(data)
    cursor = FitCursor(data, header_size, end)

    definitions: Dict[int, MessageDefinition] = {}
    coordinates: Track = []
    messages = 0
    stop_reason = "end of data"
    while not cursor.at_end():
        record_header = cursor.read_u8()
        if record_header is None:
            break
        if record_header & _COMPRESSED_TIMESTAMP_FLAG:
            local_type = (
                record_header >> _COMPRESSED_LOCAL_TYPE_SHIFT
            ) & _COMPRESSED_LOCAL_TYPE_MASK
            is_definition = False
        else:
            local_type = record_header & _LOCAL_TYPE_MASK
            is_definition = bool(record_header & _DEFINITION_FLAG)

        if is_definition:
            definition = parse_definition_message(
                cursor,
                has_developer_data=bool(record_header & _DEVELOPER_DATA_FLAG),
            )
            if definition is None:
                stop_reason = f"malformed definition at byte {cursor.pos}"
                break
            definitions[local_type] = definition
            messages += 1
            continue

        definition = definitions.get(local_type)
        if definition is None:
            stop_reason = f"undefined local message type {local_type}"
            break
        if not cursor.has(definition.size):
            stop_reason = f"truncated data message at byte {cursor.pos}"
            break
        messages += 1
        if definition.global_message_number != FIT_RECORD_MESSAGE:
            cursor.skip(definition.size)
            continue
        if definition.has_position_fields:
            coordinate = parse_record_message(cursor, definition)
        else:
            coordinate = parse_flexible_gps_message(cursor, definition)
        if coordinate is not None:
            coordinates.append(coordinate)

    LOGGER.debug(
        "Decoded %d FIT messages, %d positions (stopped: %s)",
        messages,
        len(coordinates),
        stop_reason,
    )
    return coordinates


__all__ = [
    "FieldDefinition",
    "MessageDefinition",
    "decode_fit",
    "is_fit_file",
    "parse_definition_message",
    "parse_flexible_gps_message",
    "parse_record_message",
    "read_message_fields",
    "semicircles_to_degrees",
]
