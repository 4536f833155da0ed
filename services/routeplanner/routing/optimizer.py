"""
Route Order Optimizer — greedy nearest-neighbor visiting order.

From the last visited point, repeatedly pick the closest unvisited point.
O(n^2), deterministic: ties go to the point that came first in the input.
Not globally optimal (no 2-opt, no backtracking). Duplicate coordinates are
treated as distinct stops.
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from services.routeplanner.routing.geo import haversine_km
from services.routeplanner.routing.models import Coordinate, Destination

T = TypeVar("T")


def nearest_neighbor_order(
    points: Sequence[T],
    key: Callable[[T], Coordinate],
) -> list[T]:
    """
    Order `points` with points[0] fixed as the start.

    Inputs with two or fewer entries (start + at most one destination) are
    returned unchanged.
    """
    if len(points) <= 2:
        return list(points)

    result: list[T] = [points[0]]
    remaining: list[T] = list(points[1:])

    while remaining:
        current = key(result[-1])
        nearest_idx = 0
        nearest_km = float("inf")
        for idx, candidate in enumerate(remaining):
            distance = haversine_km(current, key(candidate))
            if distance < nearest_km:
                nearest_km = distance
                nearest_idx = idx
        result.append(remaining.pop(nearest_idx))

    return result


def order_destinations(origin: Coordinate, destinations: Sequence[Destination]) -> list[Destination]:
    """Visiting order for destinations starting from `origin` (origin excluded)."""
    start = Destination(id="__origin__", coordinate=origin)
    ordered = nearest_neighbor_order([start, *destinations], key=lambda d: d.coordinate)
    return ordered[1:]
