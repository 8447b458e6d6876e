"""FIT activity-file decoding."""

from .cursor import FitCursor
from .decoder import (
    FieldDefinition,
    MessageDefinition,
    decode_fit,
    is_fit_file,
    parse_definition_message,
    parse_flexible_gps_message,
    parse_record_message,
    semicircles_to_degrees,
)

__all__ = [
    "FitCursor",
    "FieldDefinition",
    "MessageDefinition",
    "decode_fit",
    "is_fit_file",
    "parse_definition_message",
    "parse_flexible_gps_message",
    "parse_record_message",
    "semicircles_to_degrees",
]
