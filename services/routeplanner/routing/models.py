"""
Domain models for trip routing.

Coordinates are always (lat, lon) inside the service. Longitude-first
ordering exists only at the wire boundary of the upstream clients
(see osrm_client.py) and never leaks into these types.

Rule: no HTTP calls, no routing logic. Models only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TravelMode(str, Enum):
    """Plan-level travel mode requested by the caller."""

    DRIVING = "driving"
    TRANSIT = "transit"


class RoutingProfile(str, Enum):
    """Single-mode profile understood by the Segment Router."""

    DRIVING = "driving"
    WALKING = "walking"


class LegMode(str, Enum):
    WALK = "walk"
    TRANSIT = "transit"
    DRIVE = "drive"


class SegmentStatus(str, Enum):
    """
    ok        — geometry + metrics came from an upstream service
    fallback  — straight-line estimate (upstream failed)
    degraded  — transit segment without a usable stop pair
    """

    OK = "ok"
    FALLBACK = "fallback"
    DEGRADED = "degraded"


class PlanStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"


class StructuralInputError(ValueError):
    """Request cannot be planned at all (no destinations, bad coordinates)."""


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def is_valid(self) -> bool:
        return (
            math.isfinite(self.lat)
            and math.isfinite(self.lon)
            and -90.0 <= self.lat <= 90.0
            and -180.0 <= self.lon <= 180.0
        )

    def as_lon_lat(self) -> tuple[float, float]:
        return (self.lon, self.lat)

    def to_list(self) -> list[float]:
        return [self.lat, self.lon]


@dataclass(frozen=True)
class Stop:
    """A public-transport stop from the static dataset."""

    id: str
    name: str
    coordinate: Coordinate


@dataclass(frozen=True)
class Destination:
    """A place the user wants to visit. Ephemeral, supplied per request."""

    id: str
    coordinate: Coordinate
    name: str | None = None
    category: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass
class RouteSegment:
    """
    One leg between two consecutive visiting points.

    Transit segments carry their walk / bus-proxy / walk sub-legs in `legs`;
    `points`, `distance_km` and `duration_min` are already the concatenation
    and sums of those legs.
    """

    mode: LegMode
    origin: Coordinate
    destination: Coordinate
    points: list[Coordinate]
    distance_km: float
    duration_min: float
    status: SegmentStatus = SegmentStatus.OK
    legs: list[RouteSegment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mode": self.mode.value,
            "origin": self.origin.to_list(),
            "destination": self.destination.to_list(),
            "points": [p.to_list() for p in self.points],
            "distanceKm": round(self.distance_km, 3),
            "durationMin": round(self.duration_min, 1),
            "status": self.status.value,
        }
        if self.legs:
            data["legs"] = [leg.to_dict() for leg in self.legs]
        return data


@dataclass
class StepInstruction:
    """One step of a scheduled directions answer, as shown to the user."""

    html: str | None
    distance_text: str | None = None
    duration_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "html": self.html,
            "distance": self.distance_text,
            "duration": self.duration_text,
        }


@dataclass
class TransitDetail:
    """Human-facing description of one transit segment."""

    line: str
    departure_stop: str
    arrival_stop: str
    walk_to_stop_km: float | None = None
    bus_km: float | None = None
    walk_from_stop_km: float | None = None
    timetable_url: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    num_stops: int | None = None
    duration_text: str | None = None
    note: str | None = None
    # Directions path only: one record per TRANSIT step, every step's
    # instruction, and a "distance, duration" summary of the leg
    steps: list[TransitDetail] = field(default_factory=list)
    instructions: list[StepInstruction] = field(default_factory=list)
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "line": self.line,
            "departure": self.departure_stop,
            "arrival": self.arrival_stop,
            "walkToStopKm": _round_or_none(self.walk_to_stop_km),
            "busKm": _round_or_none(self.bus_km),
            "walkFromStopKm": _round_or_none(self.walk_from_stop_km),
            "timetableUrl": self.timetable_url,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "numStops": self.num_stops,
            "duration": self.duration_text,
            "note": self.note,
            "summary": self.summary,
        }
        if self.steps:
            data["steps"] = [step.to_dict() for step in self.steps]
        if self.instructions:
            data["instructions"] = [i.to_dict() for i in self.instructions]
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class StopPair:
    """Departure/arrival stop chosen for a transit segment."""

    origin_stop: Stop
    destination_stop: Stop
    walk_to_km: float
    walk_from_km: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin": {
                "name": self.origin_stop.name,
                "coordinates": self.origin_stop.coordinate.to_list(),
                "distance": round(self.walk_to_km, 3),
            },
            "destination": {
                "name": self.destination_stop.name,
                "coordinates": self.destination_stop.coordinate.to_list(),
                "distance": round(self.walk_from_km, 3),
            },
        }


@dataclass
class TransitSegmentResult:
    """Output of the Transit Segment Composer / directions path."""

    segment: RouteSegment
    detail: TransitDetail | None
    stops: StopPair | None = None


@dataclass
class TripPlan:
    ordered_destinations: list[Destination]
    origin: Coordinate | None
    mode: TravelMode
    segments: list[RouteSegment] = field(default_factory=list)
    total_distance_km: float = 0.0
    total_duration_min: float = 0.0
    transit_details: list[TransitDetail | None] = field(default_factory=list)
    stops_used: list[StopPair | None] = field(default_factory=list)
    export_url: str | None = None
    status: PlanStatus = PlanStatus.OK
    error: str | None = None

    @classmethod
    def invalid(cls, mode: TravelMode, message: str) -> TripPlan:
        return cls(
            ordered_destinations=[],
            origin=None,
            mode=mode,
            status=PlanStatus.INVALID,
            error=message,
        )

    @property
    def ordered_route(self) -> list[Coordinate]:
        points: list[Coordinate] = []
        for segment in self.segments:
            points.extend(segment.points)
        return points

    @property
    def per_stop_info(self) -> dict[str, Any] | None:
        for pair in self.stops_used:
            if pair is not None:
                return pair.to_dict()
        return None

    def to_response(self) -> dict[str, Any]:
        """Render the caller-facing plan shape (camelCase keys)."""
        data: dict[str, Any] = {
            "status": self.status.value,
            "mode": self.mode.value,
            "orderedRoute": [p.to_list() for p in self.ordered_route],
            "orderedDestinations": [
                {
                    "id": d.id,
                    "name": d.name,
                    "category": d.category,
                    "coordinates": d.coordinate.to_list(),
                }
                for d in self.ordered_destinations
            ],
            "segments": [s.to_dict() for s in self.segments],
            "totalDistanceKm": round(self.total_distance_km, 3),
            "totalDurationMin": round(self.total_duration_min, 1),
            "exportUrl": self.export_url,
        }
        if self.mode is TravelMode.TRANSIT:
            data["transitDetails"] = [
                d.to_dict() if d is not None else None for d in self.transit_details
            ]
            data["perStopInfo"] = self.per_stop_info
        if self.error:
            data["error"] = self.error
        return data


def _round_or_none(value: float | None, digits: int = 2) -> float | None:
    return round(value, digits) if value is not None else None
