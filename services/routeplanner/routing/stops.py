"""
Nearest-Point Index over the static bus-stop dataset.

The dataset is small (low thousands of stops) and read-only after startup,
so the index is a vectorised linear scan: one numpy haversine over all
stops per lookup. Safe for concurrent reads; nothing mutates after
construction.

GeoJsonStopSource is the file-backed data source used by the service. It
reads a FeatureCollection of Point features once and exposes
get_all_stops().
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

import numpy as np

from services.routeplanner.routing.geo import EARTH_RADIUS_KM, haversine_km
from services.routeplanner.routing.models import Coordinate, Stop

logger = logging.getLogger(__name__)

# Property keys that may carry the stop name, in priority order
_NAME_KEYS = ("nazev", "name", "NAZEV")
_DEFAULT_STOP_NAME = "Zastávka"


class NoNearbyStop(LookupError):
    """Raised when a lookup runs against an empty stop collection."""


class StopSource(Protocol):
    def get_all_stops(self) -> list[Stop]: ...


class StopIndex:
    """
    Immutable nearest-stop lookup.

    Usage:
        index = StopIndex(source.get_all_stops())
        stop, distance_km = index.nearest(Coordinate(50.21, 15.83))
    """

    def __init__(self, stops: Iterable[Stop]) -> None:
        self._stops: tuple[Stop, ...] = tuple(stops)
        if self._stops:
            self._lat_r = np.radians(np.array([s.coordinate.lat for s in self._stops], dtype=float))
            self._lon_r = np.radians(np.array([s.coordinate.lon for s in self._stops], dtype=float))
        else:
            self._lat_r = np.empty(0, dtype=float)
            self._lon_r = np.empty(0, dtype=float)

    def __len__(self) -> int:
        return len(self._stops)

    @property
    def stops(self) -> tuple[Stop, ...]:
        return self._stops

    def _distances_km(self, point: Coordinate) -> np.ndarray:
        lat_r = np.radians(point.lat)
        lon_r = np.radians(point.lon)
        dlat = self._lat_r - lat_r
        dlon = self._lon_r - lon_r
        h = np.sin(dlat / 2) ** 2 + np.cos(lat_r) * np.cos(self._lat_r) * np.sin(dlon / 2) ** 2
        h = np.clip(h, 0.0, 1.0)
        return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

    def nearest(self, point: Coordinate) -> tuple[Stop, float]:
        """
        Return the stop closest to `point` and its distance in km.

        Ties resolve to the stop that appears first in the dataset.
        Raises NoNearbyStop if the index is empty.
        """
        if not self._stops:
            raise NoNearbyStop(f"No stops available near ({point.lat}, {point.lon})")

        idx = int(np.argmin(self._distances_km(point)))
        stop = self._stops[idx]
        return stop, haversine_km(point, stop.coordinate)

    def nearest_many(self, point: Coordinate, limit: int = 5) -> list[tuple[Stop, float]]:
        """Return up to `limit` stops ordered by distance (stable on ties)."""
        if not self._stops or limit <= 0:
            return []

        distances = self._distances_km(point)
        order = np.argsort(distances, kind="stable")[:limit]
        return [
            (self._stops[i], haversine_km(point, self._stops[i].coordinate))
            for i in order
        ]


# ---------------------------------------------------------------------------
# GeoJSON data source
# ---------------------------------------------------------------------------


def _stop_name(properties: dict) -> str:
    for key in _NAME_KEYS:
        value = properties.get(key)
        if value:
            return str(value)
    return _DEFAULT_STOP_NAME


def parse_stop_features(payload: dict) -> list[Stop]:
    """
    Convert a GeoJSON FeatureCollection into Stops.

    Features without Point geometry are skipped. GeoJSON stores
    [lon, lat]; the result is (lat, lon).
    """
    stops: list[Stop] = []
    skipped = 0

    for idx, feature in enumerate(payload.get("features") or []):
        geometry = (feature or {}).get("geometry") or {}
        coords = geometry.get("coordinates")
        if geometry.get("type", "Point") != "Point" or not coords or len(coords) < 2:
            skipped += 1
            continue

        try:
            coordinate = Coordinate(lat=float(coords[1]), lon=float(coords[0]))
        except (TypeError, ValueError):
            skipped += 1
            continue
        if not coordinate.is_valid():
            skipped += 1
            continue

        properties = feature.get("properties") or {}
        stop_id = str(feature.get("id") or properties.get("id") or idx)
        stops.append(Stop(id=stop_id, name=_stop_name(properties), coordinate=coordinate))

    if skipped:
        logger.warning("Skipped %d stop features without usable geometry", skipped)
    return stops


class GeoJsonStopSource:
    """File-backed stop dataset, loaded once on first access."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._stops: list[Stop] | None = None

    def get_all_stops(self) -> list[Stop]:
        if self._stops is None:
            self._stops = self._load()
        return list(self._stops)

    def _load(self) -> list[Stop]:
        if not self._path.exists():
            logger.warning("Stop dataset %s not found; transit planning will degrade", self._path)
            return []

        with self._path.open(encoding="utf-8") as fh:
            payload = json.load(fh)

        stops = parse_stop_features(payload)
        logger.info("Loaded %d stops from %s", len(stops), self._path)
        return stops
