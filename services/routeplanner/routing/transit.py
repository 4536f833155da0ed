"""
Transit Segment Composer — public-transport approximation for one segment.

No timetable or route-shape data is available, so a bus journey between two
arbitrary points is modelled as three legs:

  1. walk   origin              -> nearest stop to origin
  2. bus    nearest stop origin -> nearest stop destination  (driving profile
            as a stand-in for the real bus path)
  3. walk   nearest stop dest   -> destination

The three legs are independent and routed concurrently; the segment is only
built after all of them resolve. Each leg absorbs its own upstream failures
(see segment_router.py).

When a DirectionsClient is configured it is tried first, and the
approximation is used only if it fails.

If either endpoint has no nearby stop the segment is returned as
`degraded`: a straight-line estimate, never an exception.
"""

from __future__ import annotations

import asyncio
import logging

from services.routeplanner.routing.directions import DirectionsClient
from services.routeplanner.routing.geo import haversine_km
from services.routeplanner.routing.links import timetable_url
from services.routeplanner.routing.models import (
    Coordinate,
    LegMode,
    RouteSegment,
    RoutingProfile,
    SegmentStatus,
    StopPair,
    TransitDetail,
    TransitSegmentResult,
)
from services.routeplanner.routing.osrm_client import UpstreamError
from services.routeplanner.routing.segment_router import SegmentRouter
from services.routeplanner.routing.stops import NoNearbyStop, StopIndex

logger = logging.getLogger(__name__)

BUS_LINE_LABEL = "Bus connection"
SCHEDULE_NOTE = "Open the timetable link for exact departures"
DEGRADED_NOTE = "No nearby bus stops found; straight-line estimate"


class TransitSegmentComposer:

    def __init__(
        self,
        stop_index: StopIndex,
        router: SegmentRouter,
        *,
        transit_fallback_min_per_km: float = 2.0,
        timetable_base_url: str,
        timetable_region_code: str,
        directions: DirectionsClient | None = None,
    ) -> None:
        self._stops = stop_index
        self._router = router
        self._transit_min_per_km = transit_fallback_min_per_km
        self._timetable_base_url = timetable_base_url
        self._timetable_region_code = timetable_region_code
        self._directions = directions

    async def compose(self, origin: Coordinate, destination: Coordinate) -> TransitSegmentResult:
        if self._directions is not None:
            try:
                segment, detail = await self._directions.transit_route(origin, destination)
            except UpstreamError as exc:
                logger.warning("Directions unavailable, approximating transit leg: %s", exc)
            else:
                if detail is not None:
                    detail.timetable_url = timetable_url(
                        detail.departure_stop,
                        detail.arrival_stop,
                        self._timetable_base_url,
                        self._timetable_region_code,
                    )
                return TransitSegmentResult(segment=segment, detail=detail)

        return await self._approximate(origin, destination)

    async def _approximate(self, origin: Coordinate, destination: Coordinate) -> TransitSegmentResult:
        try:
            origin_stop, _ = self._stops.nearest(origin)
            dest_stop, _ = self._stops.nearest(destination)
        except NoNearbyStop as exc:
            logger.warning("Transit segment degraded: %s", exc)
            return self._degraded(origin, destination)

        walk_to, bus, walk_from = await asyncio.gather(
            self._router.route(origin, origin_stop.coordinate, RoutingProfile.WALKING),
            self._router.route(
                origin_stop.coordinate,
                dest_stop.coordinate,
                RoutingProfile.DRIVING,
                leg_mode=LegMode.TRANSIT,
                fallback_min_per_km=self._transit_min_per_km,
            ),
            self._router.route(dest_stop.coordinate, destination, RoutingProfile.WALKING),
        )
        legs = [walk_to, bus, walk_from]

        points: list[Coordinate] = []
        for leg in legs:
            points.extend(leg.points)

        all_ok = all(leg.status is SegmentStatus.OK for leg in legs)
        segment = RouteSegment(
            mode=LegMode.TRANSIT,
            origin=origin,
            destination=destination,
            points=points,
            distance_km=sum(leg.distance_km for leg in legs),
            duration_min=sum(leg.duration_min for leg in legs),
            status=SegmentStatus.OK if all_ok else SegmentStatus.FALLBACK,
            legs=legs,
        )

        detail = TransitDetail(
            line=BUS_LINE_LABEL,
            departure_stop=origin_stop.name,
            arrival_stop=dest_stop.name,
            walk_to_stop_km=walk_to.distance_km,
            bus_km=bus.distance_km,
            walk_from_stop_km=walk_from.distance_km,
            timetable_url=timetable_url(
                origin_stop.name,
                dest_stop.name,
                self._timetable_base_url,
                self._timetable_region_code,
            ),
            note=SCHEDULE_NOTE,
        )
        stops = StopPair(
            origin_stop=origin_stop,
            destination_stop=dest_stop,
            walk_to_km=walk_to.distance_km,
            walk_from_km=walk_from.distance_km,
        )
        return TransitSegmentResult(segment=segment, detail=detail, stops=stops)

    def _degraded(self, origin: Coordinate, destination: Coordinate) -> TransitSegmentResult:
        distance_km = haversine_km(origin, destination)
        segment = RouteSegment(
            mode=LegMode.TRANSIT,
            origin=origin,
            destination=destination,
            points=[origin, destination],
            distance_km=distance_km,
            duration_min=distance_km * self._transit_min_per_km,
            status=SegmentStatus.DEGRADED,
        )
        detail = TransitDetail(
            line=BUS_LINE_LABEL,
            departure_stop="Start",
            arrival_stop="Destination",
            note=DEGRADED_NOTE,
        )
        return TransitSegmentResult(segment=segment, detail=detail)
