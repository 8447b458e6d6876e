"""Central configuration for trackkit.

All values are constants imported by the rest of the package. Numeric
tolerances can be overridden through environment variables (optionally via a
local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Earth model
# ---------------------------------------------------------------------------
# Mean Earth radius used by the haversine distance.
EARTH_RADIUS_KM = 6371.0

# Decimal places kept when snapping coordinates for display, export or keys.
# Five decimals is roughly 1.1 m at the equator.
COORDINATE_DECIMALS = 5


# ---------------------------------------------------------------------------
# FIT decoding
# ---------------------------------------------------------------------------
# Bytes 8..12 of every FIT file header.
FIT_SIGNATURE = b".FIT"

# Minimum number of bytes before the signature can be checked.
FIT_MIN_HEADER_SIZE = 12

# Protocol "invalid value" marker for sint32 fields.
FIT_INVALID_SINT32 = 0x7FFFFFFF

# Real schemas never declare more than a few dozen fields; anything above
# this is treated as a corrupt definition.
FIT_MAX_FIELD_COUNT = _env_int("TRACKKIT_FIT_MAX_FIELD_COUNT", 64)

# Largest plausible size (bytes) of a single field.
FIT_MAX_FIELD_SIZE = _env_int("TRACKKIT_FIT_MAX_FIELD_SIZE", 32)

# Global message number of the "record" message carrying position samples.
FIT_RECORD_MESSAGE = 20

# Field ids of position_lat / position_long inside a record message.
FIT_LATITUDE_FIELD = 0
FIT_LONGITUDE_FIELD = 1

# Semicircle to degree conversion factor (180 / 2**31).
FIT_SEMICIRCLE_TO_DEGREES = 180.0 / 2**31


# ---------------------------------------------------------------------------
# Sanitizing
# ---------------------------------------------------------------------------
# Consecutive samples farther apart than this are treated as teleports.
MAX_JUMP_KM = _env_float("TRACKKIT_MAX_JUMP_KM", 100.0)

# After this many consecutive rejections the jump filter accepts the next
# point so one burst of bad data cannot delete the rest of a track.
MAX_CONSECUTIVE_REJECTIONS = _env_int("TRACKKIT_MAX_CONSECUTIVE_REJECTIONS", 10)


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------
# Grid size (degrees) used to snap segment endpoints for heatmap keys.
SEGMENT_GRID_TOLERANCE = _env_float("TRACKKIT_SEGMENT_GRID_TOLERANCE", 0.001)

# Distance (km) at which the proximity half of the similarity score decays
# to 1/e.
CLUSTER_DISTANCE_SCALE_KM = _env_float("TRACKKIT_CLUSTER_DISTANCE_SCALE_KM", 1.0)

# Padding (degrees) applied to bounding boxes before computing overlap so
# straight or single-point tracks still have an area.
CLUSTER_BBOX_PADDING_DEG = _env_float("TRACKKIT_CLUSTER_BBOX_PADDING_DEG", 0.0005)

# Tracks are decimated to this many points before nearest-point matching.
CLUSTER_SAMPLE_POINTS = _env_int("TRACKKIT_CLUSTER_SAMPLE_POINTS", 64)

# Defaults used by the command line entry point.
DEFAULT_SIMPLIFY_TOLERANCE_DEG = _env_float("TRACKKIT_SIMPLIFY_TOLERANCE_DEG", 0.0001)
DEFAULT_INTERSECTION_TOLERANCE_KM = _env_float(
    "TRACKKIT_INTERSECTION_TOLERANCE_KM", 0.05
)
DEFAULT_CLUSTER_THRESHOLD = _env_float("TRACKKIT_CLUSTER_THRESHOLD", 0.8)
