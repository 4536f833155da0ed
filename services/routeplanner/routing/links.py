"""
Deep links handed to the client. Built only, never fetched.

  - IDOS connection search between two stop names (timetable lookup)
  - Google Maps multi-stop directions for exporting the whole plan
"""

from __future__ import annotations

from typing import Sequence
from urllib.parse import quote, urlencode

from services.routeplanner.routing.models import Coordinate, TravelMode

GOOGLE_MAPS_DIR_URL = "https://www.google.com/maps/dir/"


def timetable_url(from_stop: str, to_stop: str, base_url: str, region_code: str) -> str:
    """IDOS search URL for a connection between two named stops."""
    return (
        f"{base_url}?f={quote(from_stop, safe='')}&t={quote(to_stop, safe='')}"
        f"&fc={region_code}&tc={region_code}"
    )


def _latlon(c: Coordinate) -> str:
    return f"{c.lat},{c.lon}"


def google_maps_export_url(
    origin: Coordinate,
    ordered_stops: Sequence[Coordinate],
    mode: TravelMode,
) -> str | None:
    """Google Maps URL visiting `ordered_stops` in order; None if there are none."""
    if not ordered_stops:
        return None

    params = {
        "api": "1",
        "origin": _latlon(origin),
        "destination": _latlon(ordered_stops[-1]),
    }
    if len(ordered_stops) > 1:
        params["waypoints"] = "|".join(_latlon(c) for c in ordered_stops[:-1])
    params["travelmode"] = mode.value
    return f"{GOOGLE_MAPS_DIR_URL}?{urlencode(params, safe=',|')}"
