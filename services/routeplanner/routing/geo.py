"""
Geospatial primitives.

Great-circle distance on a spherical Earth, plus coordinate validation used
at the planning boundary. Pure math, no I/O.
"""

from __future__ import annotations

import math
from typing import Sequence

from services.routeplanner.routing.models import Coordinate, StructuralInputError

# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute haversine distance between two points in kilometers.

    Symmetric, and exactly 0.0 for identical points. Behaviour for
    out-of-range coordinates is unspecified; callers validate first.
    """
    lat1_r = math.radians(a.lat)
    lat2_r = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push h just past 1.0 for antipodal points
    h = min(max(h, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def path_length_km(points: Sequence[Coordinate]) -> float:
    """Sum of haversine distances along an ordered point sequence."""
    return sum(haversine_km(p, q) for p, q in zip(points, points[1:]))


def ensure_valid(coordinate: Coordinate, label: str = "coordinate") -> Coordinate:
    """Raise StructuralInputError if the coordinate is outside WGS84 ranges."""
    if not coordinate.is_valid():
        raise StructuralInputError(
            f"Invalid {label}: lat={coordinate.lat!r} lon={coordinate.lon!r}"
        )
    return coordinate
