"""
Google Directions client — optional scheduled-transit path for one segment.

Only used when GOOGLE_MAPS_API_KEY is configured. Requests
mode=transit&transit_mode=bus&departure_time=now and converts the answer
into a transit RouteSegment plus a TransitDetail: the TRANSIT steps
summarised end to end, one record per TRANSIT step, every step's
instruction and a "distance, duration" summary. The overview polyline is
decoded with polyline.decode().

Any failure, including a malformed body, raises UpstreamError; the transit
composer then falls back to its walk + bus-proxy + walk approximation.

Directions response (abridged):
  {
    "status": "OK",
    "routes": [{
      "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC"},
      "legs": [{
        "distance": {"value": 12000, "text": "12 km"},
        "duration": {"value": 1800, "text": "30 mins"},
        "steps": [{
          "travel_mode": "TRANSIT",
          "html_instructions": "Bus towards Pardubice",
          "distance": {"text": "9.8 km"},
          "duration": {"text": "18 mins"},
          "transit_details": {
            "line": {"short_name": "12", "name": "Hradec - Pardubice"},
            "departure_stop": {"name": "Hlavní nádraží"},
            "arrival_stop": {"name": "Náměstí"},
            "departure_time": {"text": "10:05"},
            "arrival_time": {"text": "10:23"},
            "num_stops": 6
          }
        }]
      }]
    }]
  }
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from services.routeplanner.routing.models import (
    Coordinate,
    LegMode,
    RouteSegment,
    SegmentStatus,
    StepInstruction,
    TransitDetail,
)
from services.routeplanner.routing.osrm_client import UpstreamError, is_valid_metric
from services.routeplanner.routing.polyline import PolylineDecodeError, decode

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


def _text(obj: Any, key: str) -> str | None:
    """`obj[key]["text"]` for Google's {value, text} pairs, else None."""
    value = obj.get(key) or {}
    return value.get("text")


def _parse_transit_step(step: dict[str, Any]) -> TransitDetail:
    details = step.get("transit_details") or {}
    line = details.get("line") or {}
    num_stops = details.get("num_stops")
    return TransitDetail(
        line=line.get("short_name") or line.get("name") or "Bus",
        departure_stop=(details.get("departure_stop") or {}).get("name") or "",
        arrival_stop=(details.get("arrival_stop") or {}).get("name") or "",
        departure_time=_text(details, "departure_time"),
        arrival_time=_text(details, "arrival_time"),
        num_stops=num_stops if isinstance(num_stops, int) else None,
        duration_text=_text(step, "duration"),
    )


def _parse_instruction(step: dict[str, Any]) -> StepInstruction:
    return StepInstruction(
        html=step.get("html_instructions"),
        distance_text=_text(step, "distance"),
        duration_text=_text(step, "duration"),
    )


def _summarize_steps(
    steps: list[TransitDetail],
    instructions: list[StepInstruction],
    leg_duration_text: str | None,
    summary: str | None,
) -> TransitDetail | None:
    """
    Collapse the TRANSIT steps of a route into one TransitDetail.

    The per-step records stay available on `steps`; the top level spans
    first departure to last arrival.
    """
    if not steps:
        return None

    stop_counts = [s.num_stops for s in steps if s.num_stops is not None]
    return TransitDetail(
        line=" → ".join(s.line for s in steps),
        departure_stop=steps[0].departure_stop,
        arrival_stop=steps[-1].arrival_stop,
        departure_time=steps[0].departure_time,
        arrival_time=steps[-1].arrival_time,
        num_stops=sum(stop_counts) if stop_counts else None,
        duration_text=leg_duration_text,
        steps=steps,
        instructions=instructions,
        summary=summary,
    )


class DirectionsClient:
    """
    Usage:
        client = DirectionsClient(http, api_key="...")
        segment, detail = await client.transit_route(a, b)
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        timeout_s: float = 8.0,
        url: str = DIRECTIONS_URL,
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._url = url

    async def transit_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
    ) -> tuple[RouteSegment, TransitDetail | None]:
        params = {
            "origin": f"{origin.lat},{origin.lon}",
            "destination": f"{destination.lat},{destination.lon}",
            "mode": "transit",
            "transit_mode": "bus",
            "departure_time": "now",
            "key": self._api_key,
        }

        try:
            resp = await self._http.get(self._url, params=params, timeout=self._timeout_s)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"Directions returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Directions request failed: {exc!r}") from exc
        except ValueError as exc:
            raise UpstreamError("Directions returned a non-JSON body") from exc

        return self._parse(data, origin, destination)

    def _parse(
        self,
        data: Any,
        origin: Coordinate,
        destination: Coordinate,
    ) -> tuple[RouteSegment, TransitDetail | None]:
        if not isinstance(data, dict) or data.get("status") != "OK":
            status = data.get("status") if isinstance(data, dict) else None
            raise UpstreamError(f"Directions status {status!r}")

        routes = data.get("routes")
        if not isinstance(routes, list) or not routes:
            raise UpstreamError("Directions returned no routes")

        try:
            route = routes[0]
            points = decode(route["overview_polyline"]["points"])
            legs = route["legs"]
            if not isinstance(legs, list) or not legs:
                raise UpstreamError("Directions route has no legs")
            distance_m = sum(float(leg["distance"]["value"]) for leg in legs)
            duration_s = sum(float(leg["duration"]["value"]) for leg in legs)

            transit_steps: list[TransitDetail] = []
            instructions: list[StepInstruction] = []
            for leg in legs:
                steps = leg.get("steps") or []
                if not isinstance(steps, list):
                    raise UpstreamError("Directions leg steps are not a list")
                for step in steps:
                    instructions.append(_parse_instruction(step))
                    if step.get("travel_mode") == "TRANSIT":
                        transit_steps.append(_parse_transit_step(step))

            summary = None
            leg_duration_text = None
            if len(legs) == 1:
                leg_duration_text = _text(legs[0], "duration")
                leg_distance_text = _text(legs[0], "distance")
                if leg_distance_text and leg_duration_text:
                    summary = f"{leg_distance_text}, {leg_duration_text}"
        except PolylineDecodeError as exc:
            raise UpstreamError(f"Directions polyline undecodable: {exc}") from exc
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
            raise UpstreamError(f"Malformed directions payload: {exc!r}") from exc

        if not points:
            raise UpstreamError("Directions route has empty geometry")
        if not all(p.is_valid() for p in points):
            raise UpstreamError("Directions geometry contains out-of-range coordinates")
        if not is_valid_metric(distance_m) or not is_valid_metric(duration_s):
            raise UpstreamError(
                f"Directions returned unusable metrics: distance={distance_m!r} duration={duration_s!r}"
            )

        segment = RouteSegment(
            mode=LegMode.TRANSIT,
            origin=origin,
            destination=destination,
            points=points,
            distance_km=distance_m / 1000,
            duration_min=duration_s / 60,
            status=SegmentStatus.OK,
        )
        detail = _summarize_steps(transit_steps, instructions, leg_duration_text, summary)
        return segment, detail
