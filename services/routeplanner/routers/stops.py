"""
GET /stops/nearest — nearest bus stops to a point.

Used by the map to show the stops relevant to a planned route.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from services.routeplanner.routing.models import Coordinate

router = APIRouter(prefix="/stops", tags=["stops"])


@router.get("/nearest")
async def nearest_stops(
    request: Request,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    limit: int = Query(default=5, ge=1, le=50),
) -> dict:
    stop_index = request.app.state.stop_index
    hits = stop_index.nearest_many(Coordinate(lat=lat, lon=lon), limit=limit)

    return {
        "success": True,
        "data": {
            "stops": [
                {
                    "id": stop.id,
                    "name": stop.name,
                    "coordinates": stop.coordinate.to_list(),
                    "distanceKm": round(distance_km, 3),
                }
                for stop, distance_km in hits
            ],
            "count": len(hits),
        },
        "requestId": request.state.request_id,
    }
