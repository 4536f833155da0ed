"""
Trip routing core.

Orders destinations, routes each segment through OSRM (or approximates a bus
journey from the stop dataset), and assembles a best-effort TripPlan.

Public API:
    from services.routeplanner.routing import RouteAssembler, TripPlan, TravelMode
"""

from services.routeplanner.routing.assembler import RouteAssembler
from services.routeplanner.routing.models import (
    Coordinate,
    Destination,
    RouteSegment,
    SegmentStatus,
    Stop,
    TravelMode,
    TripPlan,
)
from services.routeplanner.routing.segment_router import SegmentRouter
from services.routeplanner.routing.stops import GeoJsonStopSource, NoNearbyStop, StopIndex
from services.routeplanner.routing.transit import TransitSegmentComposer

__all__ = [
    "Coordinate",
    "Destination",
    "GeoJsonStopSource",
    "NoNearbyStop",
    "RouteAssembler",
    "RouteSegment",
    "SegmentRouter",
    "SegmentStatus",
    "Stop",
    "StopIndex",
    "TransitSegmentComposer",
    "TravelMode",
    "TripPlan",
]
