"""Central error types used across the application."""

from __future__ import annotations


class TrackkitError(RuntimeError):
    """Base error for trackkit failures surfaced to callers."""


class UnsupportedFormatError(TrackkitError):
    """Raised when input bytes match none of the supported track formats."""


class TrackDecodeError(TrackkitError):
    """Raised when a recognised file yields no usable coordinates."""


__all__ = [
    "TrackkitError",
    "TrackDecodeError",
    "UnsupportedFormatError",
]
