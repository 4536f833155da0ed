"""
Route Assembler — top-level trip planning orchestrator.

Flow:
  1. Validate the request (at least one destination, WGS84 coordinates).
  2. Order destinations with the nearest-neighbor optimizer, origin first.
  3. Dispatch one task per consecutive pair — Segment Router for driving,
     Transit Segment Composer for transit — bounded by a semaphore.
  4. Join every task, then concatenate geometry and sum totals strictly in
     visiting order.
  5. Collect transit details aligned with segment order.

Failure semantics:
  - Upstream failures never abort the plan; segments come back as
    fallback/degraded and their estimates are included in the totals.
  - Structural input problems return TripPlan(status=invalid). plan()
    does not raise.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from services.routeplanner.routing.geo import ensure_valid, haversine_km
from services.routeplanner.routing.links import google_maps_export_url
from services.routeplanner.routing.models import (
    Coordinate,
    Destination,
    LegMode,
    RouteSegment,
    RoutingProfile,
    SegmentStatus,
    StructuralInputError,
    TransitSegmentResult,
    TravelMode,
    TripPlan,
)
from services.routeplanner.routing.optimizer import order_destinations
from services.routeplanner.routing.segment_router import SegmentRouter
from services.routeplanner.routing.transit import TransitSegmentComposer

logger = logging.getLogger(__name__)


class RouteAssembler:
    """
    Usage:
        assembler = RouteAssembler(router, composer, concurrency=4)
        plan = await assembler.plan(origin, destinations, TravelMode.DRIVING)
    """

    def __init__(
        self,
        router: SegmentRouter,
        composer: TransitSegmentComposer,
        *,
        concurrency: int = 4,
        max_destinations: int = 25,
        emergency_min_per_km: float = 2.0,
    ) -> None:
        self._router = router
        self._composer = composer
        self._concurrency = max(1, concurrency)
        self._max_destinations = max_destinations
        self._emergency_min_per_km = emergency_min_per_km

    def _validate(self, origin: Coordinate, destinations: Sequence[Destination]) -> None:
        if not destinations:
            raise StructuralInputError("At least one destination is required")
        if len(destinations) > self._max_destinations:
            raise StructuralInputError(
                f"Too many destinations: {len(destinations)} (max {self._max_destinations})"
            )
        ensure_valid(origin, "origin")
        for idx, dest in enumerate(destinations):
            ensure_valid(dest.coordinate, f"destination[{idx}]")

    async def plan(
        self,
        origin: Coordinate,
        destinations: Sequence[Destination],
        mode: TravelMode,
    ) -> TripPlan:
        try:
            self._validate(origin, destinations)
        except StructuralInputError as exc:
            logger.info("Rejecting plan request: %s", exc)
            return TripPlan.invalid(mode, str(exc))

        ordered = order_destinations(origin, destinations)
        waypoints = [origin, *(d.coordinate for d in ordered)]
        pairs = list(zip(waypoints, waypoints[1:]))

        semaphore = asyncio.Semaphore(self._concurrency)
        results = await asyncio.gather(
            *(self._route_pair(semaphore, a, b, mode) for a, b in pairs)
        )

        plan = TripPlan(ordered_destinations=ordered, origin=origin, mode=mode)
        for result in results:
            plan.segments.append(result.segment)
            plan.total_distance_km += result.segment.distance_km
            plan.total_duration_min += result.segment.duration_min
            if mode is TravelMode.TRANSIT:
                plan.transit_details.append(result.detail)
                plan.stops_used.append(result.stops)

        plan.export_url = google_maps_export_url(origin, waypoints[1:], mode)

        estimated = sum(1 for s in plan.segments if s.status is not SegmentStatus.OK)
        logger.info(
            "Planned %s trip: %d segments (%d estimated), %.2f km, %.1f min",
            mode.value,
            len(plan.segments),
            estimated,
            plan.total_distance_km,
            plan.total_duration_min,
        )
        return plan

    async def _route_pair(
        self,
        semaphore: asyncio.Semaphore,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
    ) -> TransitSegmentResult:
        async with semaphore:
            try:
                if mode is TravelMode.TRANSIT:
                    return await self._composer.compose(origin, destination)
                segment = await self._router.route(origin, destination, RoutingProfile.DRIVING)
                return TransitSegmentResult(segment=segment, detail=None)
            except Exception:
                logger.exception("Segment routing crashed; using straight-line estimate")
                return self._emergency_segment(origin, destination, mode)

    def _emergency_segment(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
    ) -> TransitSegmentResult:
        distance_km = haversine_km(origin, destination)
        segment = RouteSegment(
            mode=LegMode.TRANSIT if mode is TravelMode.TRANSIT else LegMode.DRIVE,
            origin=origin,
            destination=destination,
            points=[origin, destination],
            distance_km=distance_km,
            duration_min=distance_km * self._emergency_min_per_km,
            status=SegmentStatus.FALLBACK,
        )
        return TransitSegmentResult(segment=segment, detail=None)
