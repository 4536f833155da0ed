"""
Tests for the Route Assembler.

Covers:
- visiting order and segment chaining
- totals equal to the sum of segment metrics (online and offline)
- structural input rejection (status invalid, never an exception)
- transit plans with and without stops
- crash isolation per segment
- bounded concurrency
"""

import asyncio
import math
from unittest.mock import AsyncMock

import pytest

from services.routeplanner.routing.assembler import RouteAssembler
from services.routeplanner.routing.models import (
    Coordinate,
    LegMode,
    PlanStatus,
    RouteSegment,
    SegmentStatus,
    TravelMode,
)
from services.routeplanner.routing.stops import StopIndex
from services.routeplanner.routing.transit import TransitSegmentComposer
from services.routeplanner.tests.helpers.factories import make_destination

ORIGIN = Coordinate(50.2091, 15.8327)
NEAR = make_destination(50.2100, 15.8400, id="near", name="Kavárna")
FAR = make_destination(50.0000, 15.7000, id="far", name="Zámek")


def _assembler(router, stop_index, **kwargs) -> RouteAssembler:
    composer = TransitSegmentComposer(
        stop_index,
        router,
        transit_fallback_min_per_km=2.0,
        timetable_base_url="https://idos.idnes.cz/vlakyautobusymhdvse/spojeni/",
        timetable_region_code="501400",
    )
    return RouteAssembler(router, composer, **kwargs)


# ---------------------------------------------------------------------------
# Driving
# ---------------------------------------------------------------------------

class TestDrivingPlan:

    @pytest.mark.asyncio
    async def test_nearer_destination_first(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        assert plan.status is PlanStatus.OK
        assert [d.id for d in plan.ordered_destinations] == ["near", "far"]
        assert len(plan.segments) == 2

    @pytest.mark.asyncio
    async def test_segments_chain_in_visiting_order(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        first, second = plan.segments
        assert first.origin == ORIGIN
        assert first.destination == NEAR.coordinate
        assert second.origin == NEAR.coordinate
        assert second.destination == FAR.coordinate
        assert all(s.mode is LegMode.DRIVE for s in plan.segments)

    @pytest.mark.asyncio
    async def test_totals_are_segment_sums(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        assert plan.total_distance_km == pytest.approx(sum(s.distance_km for s in plan.segments))
        assert plan.total_duration_min == pytest.approx(sum(s.duration_min for s in plan.segments))
        assert all(s.status is SegmentStatus.OK for s in plan.segments)

    @pytest.mark.asyncio
    async def test_offline_totals_still_sum(self, offline_router, stop_index):
        plan = await _assembler(offline_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        assert plan.status is PlanStatus.OK
        assert all(s.status is SegmentStatus.FALLBACK for s in plan.segments)
        assert plan.total_distance_km == pytest.approx(sum(s.distance_km for s in plan.segments))
        assert plan.total_duration_min == pytest.approx(sum(s.duration_min for s in plan.segments))

    @pytest.mark.asyncio
    async def test_ordered_route_concatenates_geometry(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        assert plan.ordered_route == plan.segments[0].points + plan.segments[1].points
        assert plan.ordered_route[0] == ORIGIN
        assert plan.ordered_route[-1] == FAR.coordinate

    @pytest.mark.asyncio
    async def test_export_url(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.DRIVING
        )
        assert plan.export_url.startswith("https://www.google.com/maps/dir/?api=1")
        assert "destination=50.0,15.7" in plan.export_url
        assert "waypoints=50.21,15.84" in plan.export_url
        assert "travelmode=driving" in plan.export_url

    @pytest.mark.asyncio
    async def test_driving_plan_has_no_transit_details(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(ORIGIN, [NEAR], TravelMode.DRIVING)
        assert plan.transit_details == []
        assert "transitDetails" not in plan.to_response()


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class TestInvalidInput:

    @pytest.mark.asyncio
    async def test_no_destinations(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(ORIGIN, [], TravelMode.DRIVING)
        assert plan.status is PlanStatus.INVALID
        assert plan.segments == []
        assert "destination" in plan.error

    @pytest.mark.asyncio
    async def test_origin_out_of_range(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            Coordinate(95.0, 15.0), [NEAR], TravelMode.DRIVING
        )
        assert plan.status is PlanStatus.INVALID
        assert "origin" in plan.error

    @pytest.mark.asyncio
    async def test_destination_not_finite(self, segment_router, stop_index):
        bad = make_destination(math.nan, 15.0, id="bad")
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [NEAR, bad], TravelMode.DRIVING
        )
        assert plan.status is PlanStatus.INVALID
        assert "destination[1]" in plan.error

    @pytest.mark.asyncio
    async def test_too_many_destinations(self, segment_router, stop_index):
        many = [make_destination(50.2 + i * 0.001, 15.8) for i in range(4)]
        plan = await _assembler(segment_router, stop_index, max_destinations=3).plan(
            ORIGIN, many, TravelMode.DRIVING
        )
        assert plan.status is PlanStatus.INVALID

    @pytest.mark.asyncio
    async def test_invalid_response_shape(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(ORIGIN, [], TravelMode.TRANSIT)
        body = plan.to_response()
        assert body["status"] == "invalid"
        assert body["segments"] == []
        assert body["totalDistanceKm"] == 0.0
        assert body["error"]


# ---------------------------------------------------------------------------
# Transit
# ---------------------------------------------------------------------------

class TestTransitPlan:

    @pytest.mark.asyncio
    async def test_details_align_with_segments(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [FAR, NEAR], TravelMode.TRANSIT
        )
        assert len(plan.transit_details) == len(plan.segments) == 2
        assert len(plan.stops_used) == 2
        assert all(s.mode is LegMode.TRANSIT for s in plan.segments)
        assert all(len(s.legs) == 3 for s in plan.segments)

    @pytest.mark.asyncio
    async def test_per_stop_info_from_first_segment(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [NEAR], TravelMode.TRANSIT
        )
        info = plan.to_response()["perStopInfo"]
        assert info["origin"]["name"] == "Hradec Králové, Náměstí 28. října"
        assert "distance" in info["destination"]

    @pytest.mark.asyncio
    async def test_empty_stop_index_degrades(self, segment_router):
        plan = await _assembler(segment_router, StopIndex([])).plan(
            ORIGIN, [FAR, NEAR], TravelMode.TRANSIT
        )
        assert plan.status is PlanStatus.OK
        assert all(s.status is SegmentStatus.DEGRADED for s in plan.segments)
        assert math.isfinite(plan.total_distance_km)
        assert math.isfinite(plan.total_duration_min)
        assert plan.total_distance_km > 0
        assert plan.to_response()["perStopInfo"] is None

    @pytest.mark.asyncio
    async def test_transit_export_mode(self, segment_router, stop_index):
        plan = await _assembler(segment_router, stop_index).plan(
            ORIGIN, [NEAR], TravelMode.TRANSIT
        )
        assert "travelmode=transit" in plan.export_url


# ---------------------------------------------------------------------------
# Fault isolation and concurrency
# ---------------------------------------------------------------------------

class TestFaultIsolation:

    @pytest.mark.asyncio
    async def test_crashing_segment_gets_estimate(self, stop_index):
        router = AsyncMock()
        router.route = AsyncMock(side_effect=RuntimeError("boom"))
        plan = await _assembler(router, stop_index).plan(ORIGIN, [FAR, NEAR], TravelMode.DRIVING)

        assert plan.status is PlanStatus.OK
        assert len(plan.segments) == 2
        assert all(s.status is SegmentStatus.FALLBACK for s in plan.segments)
        assert plan.segments[0].points == [ORIGIN, NEAR.coordinate]

    @pytest.mark.asyncio
    async def test_order_kept_when_segments_finish_out_of_order(self, stop_index):
        async def slow_first(origin, destination, profile, **kwargs):
            # The first segment resolves last
            await asyncio.sleep(0.05 if origin == ORIGIN else 0)
            return RouteSegment(
                mode=LegMode.DRIVE,
                origin=origin,
                destination=destination,
                points=[origin, destination],
                distance_km=1.0,
                duration_min=2.0,
            )

        router = AsyncMock()
        router.route = AsyncMock(side_effect=slow_first)
        plan = await _assembler(router, stop_index).plan(ORIGIN, [FAR, NEAR], TravelMode.DRIVING)

        assert plan.segments[0].origin == ORIGIN
        assert plan.segments[1].origin == NEAR.coordinate
        assert plan.total_distance_km == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, stop_index):
        in_flight = 0
        peak = 0

        async def tracked(origin, destination, profile, **kwargs):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return RouteSegment(
                mode=LegMode.DRIVE,
                origin=origin,
                destination=destination,
                points=[origin, destination],
                distance_km=1.0,
                duration_min=1.0,
            )

        router = AsyncMock()
        router.route = AsyncMock(side_effect=tracked)
        destinations = [make_destination(50.21 + i * 0.01, 15.84) for i in range(6)]
        plan = await _assembler(router, stop_index, concurrency=2).plan(
            ORIGIN, destinations, TravelMode.DRIVING
        )

        assert len(plan.segments) == 6
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_antipodal_destinations(self, segment_router, stop_index):
        origin = Coordinate(-43.5577, -29.1694)
        antipode = make_destination(43.5577, 150.8306, id="antipode")
        null_island = make_destination(0.0, 0.0, id="null-island")

        plan = await _assembler(segment_router, stop_index).plan(
            origin, [antipode, null_island], TravelMode.DRIVING
        )

        assert plan.status is PlanStatus.OK
        assert len(plan.segments) == 2
        assert math.isfinite(plan.total_distance_km)
        assert math.isfinite(plan.total_duration_min)
