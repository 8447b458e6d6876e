"""Bounds-checked forward-only reader over an immutable byte buffer."""

from __future__ import annotations

import struct
from typing import Optional

_U16_LE = struct.Struct("<H")
_U32_LE = struct.Struct("<I")
_I32_LE = struct.Struct("<i")


class FitCursor:
    """Read position over ``bytes`` that only ever moves forward.

    Every read checks the remaining length first. A read that cannot be
    satisfied returns ``None`` and leaves the position where it was, so a
    caller can abandon a message without the cursor ever passing the end of
    the buffer.
    """

    __slots__ = ("_data", "_pos", "_end")

    def __init__(self, data: bytes, pos: int = 0, end: Optional[int] = None) -> None:
        self._data = data if isinstance(data, bytes) else bytes(data)
        limit = len(self._data) if end is None else min(max(end, 0), len(self._data))
        self._end = limit
        self._pos = min(max(pos, 0), limit)

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def pos(self) -> int:
        return self._pos

    @property
    def end(self) -> int:
        return self._end

    def remaining(self) -> int:
        return self._end - self._pos

    def at_end(self) -> bool:
        return self._pos >= self._end

    def has(self, size: int) -> bool:
        """Return True when ``size`` more bytes can be read."""
        return size >= 0 and self.remaining() >= size

    def read_u8(self) -> Optional[int]:
        if not self.has(1):
            return None
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_u16_le(self) -> Optional[int]:
        return self._unpack(_U16_LE)

    def read_u32_le(self) -> Optional[int]:
        return self._unpack(_U32_LE)

    def read_i32_le(self) -> Optional[int]:
        return self._unpack(_I32_LE)

    def read_bytes(self, size: int) -> Optional[bytes]:
        if not self.has(size):
            return None
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def fork(self) -> "FitCursor":
        """Return an independent cursor over the same bytes and position."""
        return FitCursor(self._data, self._pos, self._end)

    def commit(self, other: "FitCursor") -> None:
        """Adopt the position of a forked cursor if it moved forward."""
        if other._data is self._data and other._pos > self._pos:
            self._pos = min(other._pos, self._end)

    def skip(self, size: int) -> None:
        """Advance by ``size`` bytes, stopping at the end of the buffer."""
        if size <= 0:
            return
        self._pos = min(self._pos + size, self._end)

    def _unpack(self, layout: struct.Struct) -> Optional[int]:
        if not self.has(layout.size):
            return None
        (value,) = layout.unpack_from(self._data, self._pos)
        self._pos += layout.size
        return int(value)


__all__ = ["FitCursor"]
