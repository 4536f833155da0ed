"""
Segment Router — single-mode point-to-point routing with straight-line fallback.

Success: geometry + distance + duration from OSRM, status=ok.
Failure (network error, timeout, non-success response, malformed payload):
a two-point straight line, haversine distance, and duration estimated as
distance * minutes-per-km for the profile, status=fallback.

route() never raises. Callers always get a usable RouteSegment.
"""

from __future__ import annotations

import logging

from services.routeplanner.routing.geo import haversine_km
from services.routeplanner.routing.models import (
    Coordinate,
    LegMode,
    RouteSegment,
    RoutingProfile,
    SegmentStatus,
)
from services.routeplanner.routing.osrm_client import OSRMClient, UpstreamError

logger = logging.getLogger(__name__)

_DEFAULT_LEG_MODE = {
    RoutingProfile.DRIVING: LegMode.DRIVE,
    RoutingProfile.WALKING: LegMode.WALK,
}


class SegmentRouter:
    """
    Usage:
        router = SegmentRouter(osrm, fallback_min_per_km={RoutingProfile.DRIVING: 1.5, ...})
        segment = await router.route(a, b, RoutingProfile.DRIVING)
    """

    def __init__(
        self,
        osrm: OSRMClient,
        fallback_min_per_km: dict[RoutingProfile, float],
    ) -> None:
        self._osrm = osrm
        self._fallback_min_per_km = dict(fallback_min_per_km)

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: RoutingProfile,
        *,
        leg_mode: LegMode | None = None,
        fallback_min_per_km: float | None = None,
    ) -> RouteSegment:
        """
        Route one leg.

        Args:
            leg_mode: mode recorded on the segment (defaults from profile).
                The transit composer routes its bus proxy with the driving
                profile but records it as a transit leg.
            fallback_min_per_km: overrides the profile's fallback calibration.
        """
        mode = leg_mode or _DEFAULT_LEG_MODE[profile]

        try:
            upstream = await self._osrm.route(origin, destination, profile)
        except UpstreamError as exc:
            logger.warning(
                "Routing %s (%s,%s)->(%s,%s) failed, using straight line: %s",
                profile.value, origin.lat, origin.lon, destination.lat, destination.lon, exc,
            )
            return self._fallback(origin, destination, profile, mode, fallback_min_per_km)
        except Exception:
            logger.exception("Unexpected error routing %s segment", profile.value)
            return self._fallback(origin, destination, profile, mode, fallback_min_per_km)

        return RouteSegment(
            mode=mode,
            origin=origin,
            destination=destination,
            points=upstream.points,
            distance_km=upstream.distance_m / 1000,
            duration_min=upstream.duration_s / 60,
            status=SegmentStatus.OK,
        )

    def _fallback(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: RoutingProfile,
        mode: LegMode,
        min_per_km: float | None,
    ) -> RouteSegment:
        factor = min_per_km if min_per_km is not None else self._fallback_min_per_km[profile]
        distance_km = haversine_km(origin, destination)
        return RouteSegment(
            mode=mode,
            origin=origin,
            destination=destination,
            points=[origin, destination],
            distance_km=distance_km,
            duration_min=distance_km * factor,
            status=SegmentStatus.FALLBACK,
        )
