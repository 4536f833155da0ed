"""
POST /route-planning — multi-stop trip planning endpoint.

Orders the requested destinations from the user's location and returns the
assembled route: geometry, per-segment metrics and status flags, totals,
transit details (transit mode) and an export link.

The plan is always best-effort. Upstream outages show up as segment
status "fallback" / "degraded", never as an HTTP error. Structurally
unusable input (no destinations, coordinates out of range) returns
success=false with code INVALID_INPUT.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, field_validator

from services.routeplanner.routing.models import (
    Coordinate,
    Destination,
    PlanStatus,
    TravelMode,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/route-planning", tags=["routing"])

# Mode names the map frontend historically sent
_MODE_ALIASES = {
    "driving": TravelMode.DRIVING,
    "car": TravelMode.DRIVING,
    "transit": TravelMode.TRANSIT,
    "bus": TravelMode.TRANSIT,
}


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class DestinationIn(BaseModel):
    id: str | None = Field(default=None, description="Client-side place id")
    name: str | None = None
    category: str | None = None
    coordinates: list[float] = Field(
        ..., min_length=2, max_length=2, description="[lat, lon] in WGS84 degrees"
    )


class RoutePlanningRequest(BaseModel):
    origin: list[float] = Field(
        ..., min_length=2, max_length=2, description="User location as [lat, lon]"
    )
    destinations: list[DestinationIn] = Field(default_factory=list)
    mode: TravelMode = TravelMode.DRIVING

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        if isinstance(v, TravelMode):
            return v
        key = str(v).strip().lower()
        if key not in _MODE_ALIASES:
            raise ValueError(f"Unsupported mode {v!r}; expected 'driving' or 'transit'")
        return _MODE_ALIASES[key]

    def to_domain(self) -> tuple[Coordinate, list[Destination]]:
        origin = Coordinate(lat=self.origin[0], lon=self.origin[1])
        destinations = [
            Destination(
                id=d.id or str(idx),
                coordinate=Coordinate(lat=d.coordinates[0], lon=d.coordinates[1]),
                name=d.name,
                category=d.category,
            )
            for idx, d in enumerate(self.destinations)
        ]
        return origin, destinations


class RoutePlanningResponse(BaseModel):
    success: bool
    data: dict
    error: dict | None = None
    requestId: str


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post("", response_model=RoutePlanningResponse)
async def plan_route(body: RoutePlanningRequest, request: Request) -> dict:
    """
    Plan a trip through every destination.

    Mode "driving" routes each segment by car; "transit" approximates each
    segment as walk + bus + walk using the nearest stops.
    """
    assembler = request.app.state.assembler
    request_id: str = getattr(request.state, "request_id", str(uuid.uuid4()))

    origin, destinations = body.to_domain()
    plan = await assembler.plan(origin, destinations, body.mode)

    if plan.status is PlanStatus.INVALID:
        return {
            "success": False,
            "data": plan.to_response(),
            "error": {"code": "INVALID_INPUT", "message": plan.error},
            "requestId": request_id,
        }

    return {
        "success": True,
        "data": plan.to_response(),
        "requestId": request_id,
    }
