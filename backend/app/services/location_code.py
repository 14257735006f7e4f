"""Warehouse location codes.

A bin's address is rendered as ``{floor}-{area}-{rack:03d}-{shelf:02d}-{bin}``,
e.g. ``G-A-001-01-A1``. Codes are derived from the hierarchy and never used
as a primary key; ``decode`` exists so scanned labels can be resolved back
to a bin.
"""

import re
from typing import NamedTuple

from app.core.exceptions import BadRequestError

SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class LocationParts(NamedTuple):
    floor: str
    area_code: str
    rack_number: int
    shelf_level: int
    bin_code: str


def validate_segment(value: str, label: str) -> str:
    """Reject empty segments and anything that would break the separator."""
    if not isinstance(value, str) or not SEGMENT_PATTERN.match(value):
        raise BadRequestError(
            f"{label} must be non-empty and contain only letters, digits or underscores"
        )
    return value


def validate_position(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise BadRequestError(f"{label} must be a positive integer")
    return value


def encode_location(
    floor: str, area_code: str, rack_number: int, shelf_level: int, bin_code: str
) -> str:
    validate_segment(floor, "Floor")
    validate_segment(area_code, "Area code")
    validate_position(rack_number, "Rack number")
    validate_position(shelf_level, "Shelf level")
    validate_segment(bin_code, "Bin code")
    return f"{floor}-{area_code}-{rack_number:03d}-{shelf_level:02d}-{bin_code}"


def decode_location(code: str) -> LocationParts:
    """Split a location code back into its five parts.

    Raises BadRequestError when the code is not exactly five well-formed
    segments.
    """
    parts = code.split("-") if isinstance(code, str) else []
    if len(parts) != 5:
        raise BadRequestError(f"Invalid location code: {code!r}")
    floor, area_code, rack, shelf, bin_code = parts
    if not (rack.isdigit() and shelf.isdigit()):
        raise BadRequestError(f"Invalid location code: {code!r}")
    for segment in (floor, area_code, bin_code):
        if not SEGMENT_PATTERN.match(segment):
            raise BadRequestError(f"Invalid location code: {code!r}")
    rack_number, shelf_level = int(rack), int(shelf)
    if rack_number < 1 or shelf_level < 1:
        raise BadRequestError(f"Invalid location code: {code!r}")
    parsed = LocationParts(floor, area_code, rack_number, shelf_level, bin_code)
    # Only canonical padding is accepted ("1" is not "001")
    if encode_location(*parsed) != code:
        raise BadRequestError(f"Invalid location code: {code!r}")
    return parsed


def full_path(floor: str, area_name: str, rack_number: int, shelf_level: int, bin_code: str) -> str:
    """Human-readable path shown next to the code in pickers."""
    return f"{floor} > {area_name} > Rack {rack_number} > Shelf {shelf_level} > Bin {bin_code}"
