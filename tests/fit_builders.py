"""Helpers assembling FIT byte streams for decoder tests."""

from __future__ import annotations

import struct
from typing import Iterable, Optional, Sequence, Tuple

SINT32 = 0x85
UINT32 = 0x86
RECORD = 20
SESSION = 18


def semicircles(degrees: float) -> int:
    return int(round(degrees * 2**31 / 180.0))


def fit_file(
    body: bytes, *, header_size: int = 14, data_size: Optional[int] = None
) -> bytes:
    """Wrap message bytes with a FIT file header and a dummy CRC."""

    size = len(body) if data_size is None else data_size
    header = struct.pack("<BBHI4s", header_size, 0x20, 2132, size, b".FIT")
    if header_size == 14:
        header += b"\x00\x00"
    return header + body + b"\x00\x00"


def definition(
    local_type: int,
    global_number: int,
    fields: Sequence[Tuple[int, int, int]],
    *,
    big_endian: bool = False,
    developer_fields: Optional[Sequence[Tuple[int, int, int]]] = None,
) -> bytes:
    header = 0x40 | local_type
    if developer_fields is not None:
        header |= 0x20
    number = struct.pack(">H" if big_endian else "<H", global_number)
    out = bytes([header, 0, 1 if big_endian else 0]) + number + bytes([len(fields)])
    for field_id, size, base_type in fields:
        out += bytes([field_id, size, base_type])
    if developer_fields is not None:
        out += bytes([len(developer_fields)])
        for field_id, size, index in developer_fields:
            out += bytes([field_id, size, index])
    return out


def data(local_type: int, payload: bytes, *, compressed: bool = False) -> bytes:
    if compressed:
        header = 0x80 | (local_type << 5) | 0x01
    else:
        header = local_type
    return bytes([header]) + payload


def sint32s(values: Iterable[int], *, big_endian: bool = False) -> bytes:
    values = list(values)
    return struct.pack((">" if big_endian else "<") + "i" * len(values), *values)


def position_definition(local_type: int = 0) -> bytes:
    return definition(local_type, RECORD, [(0, 4, SINT32), (1, 4, SINT32)])


def position_record(lat: float, lng: float, local_type: int = 0) -> bytes:
    return data(local_type, sint32s([semicircles(lat), semicircles(lng)]))
