"""
Encoded polyline decoder (precision 1e-5).

Format: each coordinate is a pair of signed deltas (lat, then lon) against
the previous point. A delta is zig-zag encoded, split into 5-bit groups
(least significant first), each group OR'd with 0x20 when more groups
follow, offset by 63 and emitted as one ASCII character.

Truncated input or characters outside '?'..'~' raise PolylineDecodeError.
"""

from __future__ import annotations

from services.routeplanner.routing.models import Coordinate

PRECISION = 1e5

_OFFSET = 63
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


class PolylineDecodeError(ValueError):
    """Encoded polyline is truncated or contains invalid characters."""


def _read_value(encoded: str, index: int) -> tuple[int, int]:
    """Read one signed delta starting at `index`. Returns (delta, next_index)."""
    result = 0
    shift = 0
    length = len(encoded)

    while True:
        if index >= length:
            raise PolylineDecodeError(f"Truncated polyline at offset {index}")
        b = ord(encoded[index]) - _OFFSET
        if b < 0 or b > 0x3F:
            raise PolylineDecodeError(
                f"Invalid polyline character {encoded[index]!r} at offset {index}"
            )
        index += 1
        result |= (b & _CHUNK_MASK) << shift
        shift += 5
        if b < _CONTINUATION:
            break

    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode(encoded: str) -> list[Coordinate]:
    """Decode an encoded polyline into (lat, lon) coordinates."""
    points: list[Coordinate] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        dlat, index = _read_value(encoded, index)
        if index >= len(encoded):
            raise PolylineDecodeError("Polyline ends after a latitude without longitude")
        dlon, index = _read_value(encoded, index)
        lat += dlat
        lon += dlon
        points.append(Coordinate(lat=lat / PRECISION, lon=lon / PRECISION))

    return points
