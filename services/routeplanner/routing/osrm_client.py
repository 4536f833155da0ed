"""
OSRM client — talks to an OSRM /route endpoint and returns normalized output.

Encapsulates the OSRM-specific details:
  - coordinate formatting (lon,lat;lon,lat)
  - URL construction and profile names
  - timeouts and status / payload validation
  - parsing GeoJSON geometry back into internal (lat, lon) Coordinates

Every failure surfaces as UpstreamError. Deciding what to do about it is
the Segment Router's job, not this module's.

OSRM /route response (geometries=geojson):
  {
    "code": "Ok",
    "routes": [{
      "distance": 1234.5,            # meters
      "duration": 210.3,             # seconds
      "geometry": {"type": "LineString", "coordinates": [[lon, lat], ...]}
    }]
  }
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import httpx

from services.routeplanner.routing.models import Coordinate, RoutingProfile

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Network error, timeout, bad status or malformed payload from a routing service."""


@dataclass
class UpstreamRoute:
    points: list[Coordinate]
    distance_m: float
    duration_s: float


def is_valid_metric(value: float) -> bool:
    """Distances and durations must be finite and non-negative."""
    return math.isfinite(value) and value >= 0


def format_coordinates(coords: list[Coordinate]) -> str:
    """Convert (lat, lon) coordinates to OSRM's 'lon,lat;lon,lat' path segment."""
    return ";".join(f"{c.lon},{c.lat}" for c in coords)


def parse_route_payload(data: dict) -> UpstreamRoute:
    """Validate an OSRM /route JSON body and convert it to internal shape."""
    if not isinstance(data, dict) or data.get("code") != "Ok":
        message = data.get("message", "unknown error") if isinstance(data, dict) else "non-object body"
        raise UpstreamError(f"OSRM error: {message}")

    routes = data.get("routes")
    if not isinstance(routes, list) or not routes:
        raise UpstreamError("OSRM returned no routes")

    route = routes[0]
    try:
        raw_coords = route["geometry"]["coordinates"]
        points = [Coordinate(lat=float(lat), lon=float(lon)) for lon, lat in raw_coords]
        distance_m = float(route["distance"])
        duration_s = float(route["duration"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UpstreamError(f"Malformed OSRM payload: {exc}") from exc

    if not points:
        raise UpstreamError("OSRM route has empty geometry")
    if not all(p.is_valid() for p in points):
        raise UpstreamError("OSRM geometry contains out-of-range coordinates")
    if not is_valid_metric(distance_m) or not is_valid_metric(duration_s):
        raise UpstreamError(
            f"OSRM returned unusable metrics: distance={distance_m!r} duration={duration_s!r}"
        )

    return UpstreamRoute(points=points, distance_m=distance_m, duration_s=duration_s)


class OSRMClient:
    """
    Async OSRM adapter.

    Usage:
        async with httpx.AsyncClient() as http:
            osrm = OSRMClient(http, base_url="https://router.project-osrm.org")
            route = await osrm.route(a, b, RoutingProfile.DRIVING)
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        timeout_s: float = 8.0,
        walking_profile: str = "foot",
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._profiles = {
            RoutingProfile.DRIVING: "driving",
            RoutingProfile.WALKING: walking_profile,
        }

    def build_url(self, origin: Coordinate, destination: Coordinate, profile: RoutingProfile) -> str:
        path = format_coordinates([origin, destination])
        return f"{self._base_url}/route/v1/{self._profiles[profile]}/{path}"

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: RoutingProfile,
    ) -> UpstreamRoute:
        url = self.build_url(origin, destination, profile)

        try:
            resp = await self._http.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
                timeout=self._timeout_s,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"OSRM returned {exc.response.status_code} for {profile.value}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"OSRM request failed: {exc!r}") from exc
        except ValueError as exc:
            raise UpstreamError("OSRM returned a non-JSON body") from exc

        return parse_route_payload(data)
